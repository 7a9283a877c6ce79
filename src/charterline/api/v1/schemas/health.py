# Health schemas.
# Created: 2026-10-09

from __future__ import annotations

from pydantic import BaseModel


class HealthSummary(BaseModel):
    """Liveness summary with per-integration credential presence."""

    status: str = "unknown"
    version: str = ""
    checks: dict[str, bool] = {}
