# OAuth schemas.
# Created: 2026-10-08

from __future__ import annotations

from pydantic import BaseModel


class OAuthStatusResponse(BaseModel):
    """Authentication status for one operator domain."""

    is_authenticated: bool
    domain: str
    scopes: list[str] = []
    vendor_id: str | None = None
    source: str | None = None
    next_steps: list[str] = []
