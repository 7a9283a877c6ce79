# Request signing - bearer and HMAC-SHA1 schemes for the provider APIs.
# Created: 2026-10-03
#
# The provider exposes two API surfaces with incompatible auth:
#   - OCTO (bearer token + capability header), used for products,
#     availability and bookings.
#   - Native (per-request HMAC-SHA1 over date + access key + method + path),
#     used for pricing availabilities and booking details.
# Each call site picks a Signer; nothing below caches a signature.

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Protocol

from charterline.errors import AuthenticationError

__all__ = [
    "Signer",
    "BearerSigner",
    "HmacSigner",
    "format_signing_date",
    "hmac_signature",
]

DATE_HEADER = "X-Bokun-Date"
ACCESS_KEY_HEADER = "X-Bokun-AccessKey"
SIGNATURE_HEADER = "X-Bokun-Signature"
CAPABILITIES_HEADER = "Octo-Capabilities"


class Signer(Protocol):
    """Produces the auth headers for one outbound request."""

    def headers(self, method: str, path: str) -> dict[str, str]: ...


class BearerSigner:
    """Static bearer token plus the OCTO capability flags.

    No per-request computation; method and path are ignored.
    """

    def __init__(self, token: str, capabilities: Iterable[str] = ("pricing",)):
        self._token = token
        self.capabilities = list(capabilities)

    def headers(self, method: str, path: str) -> dict[str, str]:
        if not self._token:
            raise AuthenticationError("OCTO bearer token is not configured")
        h = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        if self.capabilities:
            h[CAPABILITIES_HEADER] = ",".join(self.capabilities)
        return h


def format_signing_date(moment: datetime) -> str:
    """Format *moment* as ``yyyy-MM-dd HH:mm:ss`` in UTC, no offset."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def hmac_signature(date: str, access_key: str, method: str, path: str, secret_key: str) -> str:
    """Base64 HMAC-SHA1 of ``date + access_key + METHOD + path``.

    *path* must include the query string exactly as sent. The body is not signed.
    """
    message = f"{date}{access_key}{method.upper()}{path}"
    digest = hmac.new(secret_key.encode(), message.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


class HmacSigner:
    """Native-API signer. Recomputes the signature for every request."""

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        clock: Callable[[], datetime] | None = None,
    ):
        self.access_key = access_key
        self._secret_key = secret_key
        self._clock = clock or (lambda: datetime.now(UTC))

    def headers(self, method: str, path: str) -> dict[str, str]:
        if not self.access_key or not self._secret_key:
            raise AuthenticationError("Native API access key / secret key are not configured")
        date = format_signing_date(self._clock())
        return {
            DATE_HEADER: date,
            ACCESS_KEY_HEADER: self.access_key,
            SIGNATURE_HEADER: hmac_signature(
                date, self.access_key, method, path, self._secret_key
            ),
            "Content-Type": "application/json;charset=UTF-8",
        }
