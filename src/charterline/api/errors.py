# Error -> HTTP status mapping for the API layer.
# Created: 2026-10-08

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse

from charterline.api.v1.schemas.common import Envelope
from charterline.errors import (
    AuthenticationError,
    BookingError,
    CharterlineError,
    ConfigurationError,
    InvalidRequestError,
    SignatureError,
    UpstreamHTTPError,
)

logger = logging.getLogger(__name__)

_STATUS_MAP: list[tuple[type[CharterlineError], int]] = [
    (InvalidRequestError, 400),
    (SignatureError, 401),
    (AuthenticationError, 401),
    (ConfigurationError, 500),
    (BookingError, 502),
    (UpstreamHTTPError, 502),
]


def status_for(error: CharterlineError) -> int:
    for error_type, status in _STATUS_MAP:
        if isinstance(error, error_type):
            return status
    return 500


def error_envelope(error: CharterlineError, source: str, message: str) -> JSONResponse:
    """Failed read as a well-formed envelope with the mapped status code."""
    status = status_for(error)
    logger.error("%s failed (%d): %s", source, status, error)
    body = Envelope(success=False, source=source, message=message, error=str(error))
    return JSONResponse(status_code=status, content=body.model_dump(mode="json"))
