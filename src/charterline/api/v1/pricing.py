# Pricing router - categories and availability for the booking window.
# Created: 2026-10-08

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from charterline.api import deps
from charterline.api.errors import error_envelope
from charterline.api.v1.schemas.common import Envelope
from charterline.errors import CharterlineError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pricing"])


@router.get("/pricing", response_model=Envelope)
async def get_pricing(activity_id: str = Query("")):
    """Pricing categories (deduplicated) and availability slots."""
    fetcher = deps.get_fetcher()
    try:
        result = await fetcher.fetch(activity_id or None)
    except CharterlineError as e:
        return error_envelope(e, "native-api", "Failed to fetch pricing")

    start, end = fetcher.window()
    return Envelope(
        success=True,
        data={
            "activity_id": result.activity_id,
            "window": {"start": start, "end": end},
            "pricing_categories": [c.to_dict() for c in result.categories],
            "availabilities": [vars(slot) for slot in result.availabilities],
        },
        stats={
            "categories": len(result.categories),
            "availabilities": len(result.availabilities),
        },
        source="native-api",
        message=f"Found {len(result.categories)} pricing categories",
    )
