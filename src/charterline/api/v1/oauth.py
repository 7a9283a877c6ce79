# OAuth router - provider app install, callback, status.
# Created: 2026-10-08

from __future__ import annotations

import html
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from charterline.api import deps
from charterline.api.v1.schemas.oauth import OAuthStatusResponse
from charterline.errors import (
    ConfigurationError,
    InvalidRequestError,
    SignatureError,
    UpstreamHTTPError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth"])

_SUCCESS_HTML = """<!DOCTYPE html>
<html><head><title>Charterline connected</title>
<style>
body {{ font-family: system-ui; max-width: 480px; margin: 40px auto; padding: 20px; }}
.ok {{ background: #dcfce7; padding: 12px; border-radius: 8px; margin: 16px 0; }}
.scope {{ display: inline-block; background: #dbeafe; padding: 4px 8px;
  border-radius: 4px; margin: 2px; font-size: 14px; }}
a {{ color: #2563eb; }}
</style></head><body>
<h2>Connected to {domain}</h2>
<div class="ok">Authorization complete. Booking data is now available.</div>
<p>Vendor: {vendor_id}</p>
<p>{scope_badges}</p>
<p><a href="{dashboard_url}">Go to dashboard</a></p>
</body></html>"""


@router.get("/oauth/install")
async def install(request: Request):
    """Verify the provider's install request and redirect to its authorize page."""
    gateway = deps.get_oauth_gateway()
    try:
        redirect = gateway.install(request.query_params.multi_items())
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SignatureError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return RedirectResponse(redirect.url, status_code=302)


@router.get("/oauth/callback", response_class=HTMLResponse)
async def callback(request: Request):
    """Verify the callback, exchange the code and show a confirmation page."""
    gateway = deps.get_oauth_gateway()
    try:
        token = await gateway.callback(request.query_params.multi_items())
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SignatureError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except UpstreamHTTPError as e:
        status = e.status_code if e.status_code >= 400 else 502
        raise HTTPException(status_code=status, detail=str(e))

    scope_badges = " ".join(
        f'<span class="scope">{html.escape(s)}</span>' for s in token.scopes
    )
    return HTMLResponse(
        _SUCCESS_HTML.format(
            domain=html.escape(token.domain),
            vendor_id=html.escape(token.vendor_id or "unknown"),
            scope_badges=scope_badges,
            dashboard_url=html.escape(gateway.settings.dashboard_url),
        )
    )


@router.get("/oauth/status", response_model=OAuthStatusResponse)
async def oauth_status(domain: str = Query("")):
    """Whether a usable token exists for *domain* (default: configured domain)."""
    gateway = deps.get_oauth_gateway()
    return gateway.status(domain or None)
