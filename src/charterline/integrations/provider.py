# Provider Client - HTTP client for the booking provider's three API surfaces.
# Created: 2026-10-04
#
#   OCTO (bearer):    GET /products/{id}, POST /availability, POST /bookings,
#                     POST /bookings/{uuid}/confirm
#   Native (HMAC):    GET /activity.json/{id}/availabilities?..., GET /booking.json/{code}
#   GraphQL (app token, per operator domain): POST {domain}/api/graphql

from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any

import httpx

from charterline.config import Settings, get_settings
from charterline.errors import AuthenticationError, UpstreamHTTPError
from charterline.integrations.signing import BearerSigner, HmacSigner, Signer
from charterline.integrations.token_store import TokenStore
from charterline.logging_setup import redact

logger = logging.getLogger(__name__)

GRAPHQL_TOKEN_HEADER = "X-Bokun-App-Access-Token"


def _decode(resp: httpx.Response, url: str) -> Any:
    """Raise on non-2xx, otherwise parse the JSON body."""
    if resp.status_code in (401, 403):
        raise AuthenticationError(
            f"Provider rejected credentials ({resp.status_code}): {resp.text[:200]}"
        )
    if resp.is_error:
        raise UpstreamHTTPError(resp.status_code, resp.text, url)
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise UpstreamHTTPError(
            resp.status_code, resp.text, url, "Response is not valid JSON"
        ) from e


class ProviderClient:
    """Bearer (OCTO) and HMAC (native) provider endpoints.

    Signers default to the configured credentials; pass explicit ones to
    override (tests, multi-account setups).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        octo_signer: Signer | None = None,
        native_signer: Signer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.octo_signer = octo_signer or BearerSigner(
            self.settings.octo_token, self.settings.octo_capabilities
        )
        self.native_signer = native_signer or HmacSigner(
            self.settings.native_access_key, self.settings.native_secret_key
        )
        self._transport = transport

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.settings.http_timeout, transport=self._transport
        )

    async def _octo(self, method: str, path: str, body: dict | None = None) -> Any:
        url = f"{self.settings.provider_octo_url}{path}"
        headers = self.octo_signer.headers(method, path)
        logger.debug("OCTO %s %s", method, path)
        try:
            async with self._client() as client:
                resp = await client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise UpstreamHTTPError(502, str(e), url, "Provider request failed") from e
        return _decode(resp, url)

    async def _native(self, method: str, path: str, timeout: float | None = None) -> Any:
        # path carries its query string; it is signed and sent verbatim
        url = f"{self.settings.provider_api_url}{path}"
        headers = self.native_signer.headers(method, path)
        logger.debug("Native %s %s", method, path)
        try:
            async with self._client(timeout) as client:
                resp = await client.request(method, url, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamHTTPError(502, str(e), url, "Provider request failed") from e
        return _decode(resp, url)

    # -- OCTO ---------------------------------------------------------------

    async def get_product(self, product_id: str) -> dict[str, Any]:
        """Fetch one product with its options and units."""
        return await self._octo("GET", f"/products/{product_id}")

    async def check_availability(
        self,
        product_id: str,
        option_id: str,
        date_start: str,
        date_end: str,
        units: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Availability slots (with pricing) for a product option over a date range."""
        body: dict[str, Any] = {
            "productId": str(product_id),
            "optionId": str(option_id),
            "localDateStart": date_start,
            "localDateEnd": date_end,
        }
        if units:
            body["units"] = units
        data = await self._octo("POST", "/availability", body)
        return data or []

    async def reserve(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create an ON_HOLD booking."""
        return await self._octo("POST", "/bookings", body)

    async def confirm(self, booking_uuid: str, body: dict[str, Any]) -> dict[str, Any]:
        """Confirm an ON_HOLD booking with contact details."""
        return await self._octo("POST", f"/bookings/{booking_uuid}/confirm", body)

    # -- Native -------------------------------------------------------------

    async def get_activity_availabilities(
        self,
        activity_id: str,
        start: str,
        end: str,
        booking_channel_uuid: str,
        lang: str = "EN",
        currency: str = "GBP",
    ) -> Any:
        query = urllib.parse.urlencode(
            {
                "start": start,
                "end": end,
                "bookingChannelUuid": booking_channel_uuid,
                "lang": lang,
                "currency": currency,
            }
        )
        return await self._native("GET", f"/activity.json/{activity_id}/availabilities?{query}")

    async def get_booking_details(
        self, confirmation_code: str, timeout: float | None = None
    ) -> dict[str, Any] | None:
        code = urllib.parse.quote(confirmation_code, safe="-_")
        return await self._native("GET", f"/booking.json/{code}", timeout=timeout)


class ProviderGraphQLClient:
    """GraphQL client for one operator domain, authenticated by the app token."""

    def __init__(
        self,
        domain: str | None = None,
        token_store: TokenStore | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.domain = domain or self.settings.provider_domain
        self.store = token_store or TokenStore(settings=self.settings)
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.settings.provider_app_url(self.domain)}/api/graphql"

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run *query*; GraphQL ``errors`` are raised as UpstreamHTTPError."""
        token = self.store.require(self.domain)
        url = self.endpoint
        logger.debug("GraphQL %s (token %s)", url, redact(token.access_token))
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    url,
                    json={"query": query, "variables": variables or {}},
                    headers={
                        "Content-Type": "application/json",
                        GRAPHQL_TOKEN_HEADER: token.access_token,
                    },
                )
        except httpx.HTTPError as e:
            raise UpstreamHTTPError(502, str(e), url, "GraphQL request failed") from e

        result = _decode(resp, url) or {}
        errors = result.get("errors") or []
        if errors:
            messages = ", ".join(e.get("message", "unknown") for e in errors)
            raise UpstreamHTTPError(resp.status_code, messages, url, "GraphQL errors")
        return result

    async def get_bookings(
        self,
        limit: int = 20,
        offset: int = 0,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> dict[str, Any]:
        """One page of bookings: ``{"edges": [...], "totalCount": n}``."""
        where = []
        if date_from:
            where.append(f"createdAt_gte: {json.dumps(date_from)}")
        if date_to:
            where.append(f"createdAt_lte: {json.dumps(date_to)}")
        where_clause = f"where: {{ {' '.join(where)} }}" if where else ""

        result = await self.query(
            _BOOKINGS_QUERY.replace("$WHERE", where_clause),
            {"limit": limit, "offset": offset},
        )
        return (result.get("data") or {}).get("bookings") or {}


_BOOKINGS_QUERY = """
query GetBookings($limit: Int, $offset: Int) {
  bookings(first: $limit, skip: $offset $WHERE) {
    totalCount
    edges {
      node {
        id
        confirmationCode
        status
        totalPrice { amount currency }
        createdAt
        updatedAt
        customer { id firstName lastName email phoneNumber }
        productBookings {
          id
          product { id title }
          startDate
          startTime
          participants
        }
        payments {
          id
          amount { amount currency }
          status
          type
        }
      }
    }
    pageInfo { hasNextPage hasPreviousPage }
  }
}
"""
