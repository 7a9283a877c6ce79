# Common API response schemas.
# Created: 2026-10-08

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class APIResponse(BaseModel):
    """Base response wrapper."""

    model_config = {"from_attributes": True}


class Envelope(APIResponse):
    """Read-endpoint envelope. Always well-formed; ``success`` is False on failure."""

    success: bool
    data: Any = None
    stats: dict[str, Any] | None = None
    source: str = ""
    message: str = ""
    error: str | None = None
    oauth_required: bool = False
    install_url: str | None = None
