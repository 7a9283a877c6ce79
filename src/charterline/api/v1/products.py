# Products router - OCTO product lookup and availability check.
# Created: 2026-10-08

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from charterline.api import deps
from charterline.api.errors import error_envelope
from charterline.api.v1.schemas.common import Envelope
from charterline.config import get_settings
from charterline.errors import CharterlineError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Products"])


@router.get("/products/{product_id}", response_model=Envelope)
async def get_product(product_id: str):
    provider = deps.get_provider()
    try:
        product = await provider.get_product(product_id)
    except CharterlineError as e:
        return error_envelope(e, "octo", f"Failed to fetch product {product_id}")
    return Envelope(success=True, data=product, source="octo", message="Product loaded")


@router.get("/availability", response_model=Envelope)
async def check_availability(
    date_start: str = Query(..., description="YYYY-MM-DD"),
    date_end: str = Query("", description="YYYY-MM-DD, defaults to date_start"),
    product_id: str = Query(""),
    option_id: str = Query(""),
    adults: int = Query(0, ge=0),
    children: int = Query(0, ge=0),
):
    """Availability slots for a product option; unit counts price the slots."""
    settings = get_settings()
    units = []
    if adults:
        units.append({"id": settings.adult_unit_id, "quantity": adults})
    if children:
        units.append({"id": settings.child_unit_id, "quantity": children})

    provider = deps.get_provider()
    try:
        slots = await provider.check_availability(
            product_id or settings.activity_id,
            option_id or settings.option_id,
            date_start,
            date_end or date_start,
            units,
        )
    except CharterlineError as e:
        return error_envelope(e, "octo", "Failed to check availability")

    available = [s for s in slots if s.get("available")]
    return Envelope(
        success=True,
        data=slots,
        stats={"total": len(slots), "available": len(available)},
        source="octo",
        message=f"{len(available)} of {len(slots)} slots available",
    )
