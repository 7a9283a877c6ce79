# Bookings router - dashboard list (GET) and public booking flow (POST).
# Created: 2026-10-08

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from charterline.api import deps
from charterline.api.errors import error_envelope, status_for
from charterline.api.v1.schemas.bookings import BookingCreateRequest, BookingCreateResponse
from charterline.api.v1.schemas.common import Envelope
from charterline.errors import BookingError, CharterlineError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])


@router.get("/bookings", response_model=Envelope)
async def list_bookings(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
    enhanced: bool = Query(True),
):
    """Dashboard booking list, enriched with per-booking details when *enhanced*."""
    aggregator = deps.get_aggregator()
    try:
        result = await aggregator.list_bookings(
            limit=limit, offset=offset, date_from=date_from, date_to=date_to, enhanced=enhanced
        )
    except CharterlineError as e:
        return error_envelope(e, "graphql", "Failed to fetch bookings")

    if result.oauth_required:
        domain = result.auth_status.get("domain")
        return Envelope(
            success=False,
            data=[],
            stats=result.stats,
            source="graphql",
            message="OAuth authentication required to access booking data",
            oauth_required=True,
            install_url=aggregator.settings.app_install_url(domain),
        )

    stats = dict(result.stats)
    stats["offset"] = offset
    stats["limit"] = limit
    source = "graphql+native" if result.enhanced else "graphql"
    degraded = stats.get("degraded", 0) if result.enhanced else 0
    message = f"Loaded {len(result.records)} bookings"
    if degraded:
        message += f" ({degraded} without detail)"
    return Envelope(
        success=True,
        data=[r.to_dict() for r in result.records],
        stats=stats,
        source=source,
        message=message,
    )


@router.post("/bookings", response_model=BookingCreateResponse)
async def create_booking(body: BookingCreateRequest):
    """Hold, confirm and (when payments are configured) open a checkout session."""
    orchestrator = deps.get_orchestrator()
    try:
        result = await orchestrator.create_booking(body.to_command())
    except BookingError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except CharterlineError as e:
        logger.error("Booking failed after confirmation step: %s", e)
        raise HTTPException(status_code=status_for(e), detail=str(e))
    return BookingCreateResponse(**result.to_dict())
