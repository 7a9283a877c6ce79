# OAuth Gateway - provider app-store install flow with HMAC-verified requests.
# Created: 2026-10-03
#
# Install:  GET ?domain=&timestamp=&hmac=        -> redirect to provider authorize URL
# Callback: GET ?domain=&state=&timestamp=&hmac=&code= -> code exchange, token saved
#
# Both requests are signed by the provider with HMAC-SHA256 (hex) over the
# sorted ``key=value`` pairs joined by ``&``, excluding ``hmac`` itself.
# Verification always runs before any other side effect.

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
import urllib.parse
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import httpx

from charterline.config import Settings, get_settings
from charterline.errors import (
    ConfigurationError,
    InvalidRequestError,
    SignatureError,
    UpstreamHTTPError,
)
from charterline.integrations.token_store import AccessToken, TokenStore
from charterline.logging_setup import get_security_logger, redact

logger = logging.getLogger(__name__)
security_logger = get_security_logger()

SIGNATURE_PARAM = "hmac"
INSTALL_PARAMS = ("domain", "timestamp", "hmac")
CALLBACK_PARAMS = ("domain", "state", "timestamp", "hmac", "code")

QueryParams = Mapping[str, str] | Iterable[tuple[str, str]]


def _pairs(params: QueryParams) -> list[tuple[str, str]]:
    if isinstance(params, Mapping):
        return [(str(k), str(v)) for k, v in params.items()]
    return [(str(k), str(v)) for k, v in params]


def canonical_query(params: QueryParams) -> str:
    """Sorted ``key=value`` pairs joined by ``&``, without the signature param."""
    pairs = [(k, v) for k, v in _pairs(params) if k != SIGNATURE_PARAM]
    pairs.sort(key=lambda kv: kv[0])
    return "&".join(f"{k}={v}" for k, v in pairs)


def sign_query(params: QueryParams, secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical query string."""
    return hmac.new(
        secret.encode(), canonical_query(params).encode(), hashlib.sha256
    ).hexdigest()


def verify_query(params: QueryParams, secret: str) -> bool:
    """True if the ``hmac`` param matches the recomputed signature."""
    provided = dict(_pairs(params)).get(SIGNATURE_PARAM)
    if not provided or not secret:
        return False
    return hmac.compare_digest(provided, sign_query(params, secret))


# ---------------------------------------------------------------------------
# State nonces
# ---------------------------------------------------------------------------


@dataclass
class OAuthState:
    """Random nonce issued for one install attempt."""

    value: str
    domain: str
    issued_at: float = field(default_factory=time.time)


class OAuthStateStore:
    """In-memory, one-time-use, time-bounded store of issued state values."""

    def __init__(self, ttl_seconds: int = 600):
        self.ttl_seconds = ttl_seconds
        self._states: dict[str, OAuthState] = {}

    def issue(self, domain: str) -> OAuthState:
        self.cleanup_expired()
        state = OAuthState(value=secrets.token_hex(32), domain=domain)
        self._states[state.value] = state
        return state

    def consume(self, value: str, domain: str) -> bool:
        """Pop *value*; True only if it was issued for *domain* and is unexpired."""
        state = self._states.pop(value, None)
        if state is None:
            return False
        if time.time() - state.issued_at > self.ttl_seconds:
            return False
        return state.domain == domain

    def cleanup_expired(self) -> None:
        now = time.time()
        expired = [k for k, v in self._states.items() if now - v.issued_at > self.ttl_seconds]
        for k in expired:
            del self._states[k]

    def __len__(self) -> int:
        return len(self._states)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


@dataclass
class InstallRedirect:
    url: str
    state: OAuthState


class OAuthGateway:
    """Handles the provider's app install + callback requests.

    Args:
        settings: OAuth client id/secret/redirect and provider URL template.
        token_store: Where the exchanged token is persisted.
        state_store: Issued state nonces (enforced when ``oauth_strict_state``).
        transport: Optional httpx transport (tests).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        state_store: OAuthStateStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = token_store or TokenStore(settings=self.settings)
        self.states = state_store or OAuthStateStore(self.settings.oauth_state_ttl_seconds)
        self._transport = transport

    def _require_config(self) -> None:
        if not self.settings.oauth_configured:
            raise ConfigurationError("Missing OAuth configuration")

    def _verify(self, params: QueryParams, required: tuple[str, ...], step: str) -> dict[str, str]:
        values = dict(_pairs(params))
        missing = [name for name in required if not values.get(name)]
        if missing:
            raise InvalidRequestError(missing)

        if not verify_query(params, self.settings.oauth_client_secret):
            security_logger.warning(
                "Rejected OAuth %s request: HMAC mismatch (domain=%s, hmac=%s)",
                step,
                values.get("domain"),
                redact(values.get(SIGNATURE_PARAM)),
            )
            raise SignatureError("Invalid HMAC signature")
        return values

    def authorize_url(self, domain: str, state: str) -> str:
        params = {
            "client_id": self.settings.oauth_client_id,
            "scope": ",".join(self.settings.oauth_scopes),
            "redirect_uri": self.settings.oauth_redirect_uri,
            "state": state,
        }
        base = self.settings.provider_app_url(domain)
        return f"{base}/appstore/oauth/authorize?{urllib.parse.urlencode(params)}"

    def install(self, params: QueryParams) -> InstallRedirect:
        """Verify an install request and build the authorization redirect."""
        self._require_config()
        values = self._verify(params, INSTALL_PARAMS, "install")
        domain = values["domain"]

        state = self.states.issue(domain)
        url = self.authorize_url(domain, state.value)
        logger.info("OAuth install verified for %s, redirecting to authorize", domain)
        return InstallRedirect(url=url, state=state)

    async def callback(self, params: QueryParams) -> AccessToken:
        """Verify a callback request, exchange the code and persist the token."""
        self._require_config()
        values = self._verify(params, CALLBACK_PARAMS, "callback")
        domain = values["domain"]

        if self.settings.oauth_strict_state and not self.states.consume(values["state"], domain):
            security_logger.warning(
                "Rejected OAuth callback: unknown or expired state (domain=%s)", domain
            )
            raise SignatureError("Unknown or expired state")

        token = await self.exchange_code(domain, values["code"])
        self.store.save(token)
        logger.info(
            "OAuth completed for %s (vendor=%s, scopes=%s)",
            domain,
            token.vendor_id,
            ",".join(token.scopes),
        )
        return token

    async def exchange_code(self, domain: str, code: str) -> AccessToken:
        """POST the authorization code to the provider's token endpoint."""
        url = f"{self.settings.provider_app_url(domain)}/appstore/oauth/access_token"
        payload = {
            "client_id": self.settings.oauth_client_id,
            "client_secret": self.settings.oauth_client_secret,
            "code": code,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamHTTPError(502, str(e), url, "Token exchange request failed") from e

        if resp.is_error:
            logger.error("Token exchange failed for %s: %s", domain, resp.status_code)
            raise UpstreamHTTPError(
                resp.status_code,
                resp.text,
                url,
                "Failed to exchange code for access token",
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamHTTPError(
                resp.status_code, resp.text, url, "Token exchange response is not valid JSON"
            ) from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise UpstreamHTTPError(resp.status_code, resp.text, url, "No access_token in response")
        return AccessToken.from_exchange(domain, data)

    def status(self, domain: str | None = None) -> dict:
        """Authentication status plus next steps for the dashboard."""
        domain = domain or self.settings.provider_domain
        status = self.store.status(domain)
        if status["is_authenticated"]:
            status["next_steps"] = [
                "OAuth is active",
                "GraphQL API available",
                "Real booking data accessible",
            ]
        else:
            status["next_steps"] = [
                "Install app in the provider extranet",
                "Complete OAuth authorization",
                "Get access to real booking data",
            ]
        return status
