# Health router - liveness plus configuration summary.
# Created: 2026-10-09

from __future__ import annotations

from fastapi import APIRouter

from charterline import __version__
from charterline.api import deps
from charterline.api.v1.schemas.health import HealthSummary
from charterline.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthSummary)
async def get_health_status():
    """Liveness. Reports which integrations have credentials, never the credentials."""
    settings = get_settings()
    auth = deps.get_token_store().status(settings.provider_domain)
    return HealthSummary(
        status="ok",
        version=__version__,
        checks={
            "octo": bool(settings.octo_token),
            "native": bool(settings.native_access_key and settings.native_secret_key),
            "oauth_app": settings.oauth_configured,
            "oauth_token": auth["is_authenticated"],
            "stripe": settings.stripe_configured,
        },
    )
