# Token Store - provider app access tokens, one record per operator domain.
# Created: 2026-10-03
#
# Read path: the runtime secret (CHARTERLINE_PROVIDER_ACCESS_TOKEN) wins, then
# the persisted record in <config_dir>/provider_tokens.json.
# Write path: only the OAuth callback. Records are overwritten, never versioned.

from __future__ import annotations

import json
import logging
import os
import stat
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from charterline.config import Settings, get_config_dir, get_settings
from charterline.errors import AuthenticationError

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class AccessToken:
    """Provider app access token for one operator domain."""

    domain: str
    access_token: str
    scopes: list[str] = field(default_factory=list)
    vendor_id: str = ""
    acquired_at: str = field(default_factory=_now_iso)
    source: str = "file"  # "file" or "runtime"

    @classmethod
    def from_exchange(cls, domain: str, data: dict) -> AccessToken:
        """Build from the provider's access_token response body."""
        scope = data.get("scope") or ""
        if isinstance(scope, str):
            scopes = [s.strip() for s in scope.split(",") if s.strip()]
        else:
            scopes = list(scope)
        return cls(
            domain=domain,
            access_token=data["access_token"],
            scopes=scopes,
            vendor_id=str(data.get("vendor_id") or ""),
        )


def _default_path() -> Path:
    return get_config_dir() / "provider_tokens.json"


class TokenStore:
    """Per-domain provider token store.

    File format is a JSON object keyed by domain. The file is chmod 0600.
    Loaded records are cached in memory until the next save/delete.
    """

    def __init__(self, path: Path | None = None, settings: Settings | None = None):
        self._path = path
        self._settings = settings
        self._cache: dict[str, AccessToken] = {}

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _get_path(self) -> Path:
        return self._path if self._path is not None else _default_path()

    def _read_all(self) -> dict[str, dict]:
        path = self._get_path()
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read provider tokens from %s: %s", path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _runtime_token(self, domain: str) -> AccessToken | None:
        settings = self.settings
        if not settings.provider_access_token:
            return None
        return AccessToken(
            domain=domain,
            access_token=settings.provider_access_token,
            scopes=list(settings.provider_scopes or settings.oauth_scopes),
            vendor_id=settings.provider_vendor_id,
            acquired_at="",
            source="runtime",
        )

    def load(self, domain: str) -> AccessToken | None:
        """Get the token for *domain*. Returns None when not authenticated."""
        runtime = self._runtime_token(domain)
        if runtime is not None:
            return runtime

        if domain in self._cache:
            return self._cache[domain]

        entry = self._read_all().get(domain)
        if not entry or not entry.get("access_token"):
            return None
        try:
            token = AccessToken(**{**entry, "domain": domain, "source": "file"})
        except TypeError as e:
            logger.warning("Malformed token record for %s: %s", domain, e)
            return None
        self._cache[domain] = token
        return token

    def require(self, domain: str) -> AccessToken:
        """Like load(), but raises AuthenticationError when no token exists."""
        token = self.load(domain)
        if token is None:
            raise AuthenticationError(
                f"No provider access token for domain '{domain}'. "
                "Install the app and complete the OAuth flow."
            )
        return token

    def save(self, token: AccessToken) -> None:
        """Store *token*, replacing any previous record for its domain."""
        path = self._get_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        records = self._read_all()
        data = asdict(token)
        data.pop("source", None)
        records[token.domain] = data
        path.write_text(json.dumps(records, indent=2))
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        self._cache.pop(token.domain, None)
        logger.info("Saved provider access token for %s", token.domain)

    def delete(self, domain: str) -> bool:
        """Delete the persisted token for *domain*. Returns True if one existed."""
        records = self._read_all()
        self._cache.pop(domain, None)
        if domain not in records:
            return False
        del records[domain]
        path = self._get_path()
        path.write_text(json.dumps(records, indent=2))
        logger.info("Deleted provider access token for %s", domain)
        return True

    def domains(self) -> list[str]:
        """List domains with a persisted token."""
        return sorted(self._read_all())

    def status(self, domain: str) -> dict:
        """Authentication summary for *domain* (no secret material)."""
        token = self.load(domain)
        return {
            "is_authenticated": token is not None,
            "domain": domain,
            "scopes": token.scopes if token else [],
            "vendor_id": token.vendor_id if token else "",
            "source": token.source if token else None,
        }
