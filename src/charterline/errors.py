# Error taxonomy for provider, OAuth and payment integrations.
# Created: 2026-10-02

from __future__ import annotations

__all__ = [
    "CharterlineError",
    "ConfigurationError",
    "AuthenticationError",
    "SignatureError",
    "InvalidRequestError",
    "UpstreamHTTPError",
    "BookingError",
    "ReservationError",
    "ConfirmationError",
    "PartialEnrichmentFailure",
]

BODY_PREVIEW_CHARS = 200


class CharterlineError(Exception):
    """Base class for all Charterline errors."""


class ConfigurationError(CharterlineError):
    """A required setting (credential, URL, id) is missing."""


class AuthenticationError(CharterlineError):
    """Missing or rejected credential (no token, upstream 401/403)."""


class SignatureError(CharterlineError):
    """Inbound HMAC verification failed. Never retried."""


class InvalidRequestError(CharterlineError):
    """Inbound request is missing required parameters."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required parameters: {', '.join(missing)}")


class UpstreamHTTPError(CharterlineError):
    """Non-2xx response from the provider or the payment gateway."""

    def __init__(self, status_code: int, body: str = "", url: str = "", message: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        detail = message or f"HTTP error! status: {status_code}"
        if body:
            detail = f"{detail}, body: {self.body_preview}"
        super().__init__(detail)

    @property
    def body_preview(self) -> str:
        return self.body[:BODY_PREVIEW_CHARS]


class BookingError(CharterlineError):
    """A booking step failed; the attempt cannot continue."""

    step = "booking"

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class ReservationError(BookingError):
    """Reserve step failed; nothing was created upstream."""

    step = "reserve"


class ConfirmationError(BookingError):
    """Confirm step failed; the hold is left to lapse upstream."""

    step = "confirm"

    def __init__(self, message: str, reservation_uuid: str, cause: Exception | None = None):
        self.reservation_uuid = reservation_uuid
        super().__init__(message, cause)


class PartialEnrichmentFailure(CharterlineError):
    """A single detail lookup failed; the record degrades to list-only fields."""

    def __init__(self, confirmation_code: str, reason: str):
        self.confirmation_code = confirmation_code
        self.reason = reason
        super().__init__(f"Enrichment failed for {confirmation_code}: {reason}")
