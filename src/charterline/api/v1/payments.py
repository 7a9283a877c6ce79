# Payments router - recent checkout sessions with revenue stats.
# Created: 2026-10-09

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from charterline.api import deps
from charterline.api.errors import error_envelope
from charterline.api.v1.schemas.common import Envelope
from charterline.errors import CharterlineError, ConfigurationError
from charterline.integrations.payments import payment_stats, transform_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


@router.get("/payments", response_model=Envelope)
async def list_payments(limit: int = Query(100, ge=1, le=100)):
    payments = deps.get_payments()
    if not payments.configured:
        return error_envelope(
            ConfigurationError("Stripe secret key is not configured"),
            "stripe",
            "Payments are not configured",
        )
    try:
        sessions = await payments.list_sessions(limit)
    except CharterlineError as e:
        return error_envelope(e, "stripe", "Failed to fetch payments")

    rows = [transform_session(s) for s in sessions]
    return Envelope(
        success=True,
        data=rows,
        stats=payment_stats(rows, payments.settings.currency),
        source="stripe",
        message=f"Loaded {len(rows)} payments",
    )
