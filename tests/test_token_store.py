# Tests for integrations/token_store.py
# Created: 2026-10-10

import json
import stat

import pytest

from charterline.config import Settings
from charterline.errors import AuthenticationError
from charterline.integrations.token_store import AccessToken, TokenStore


@pytest.fixture
def store(tmp_path, settings):
    return TokenStore(path=tmp_path / "tokens.json", settings=settings)


class TestAccessToken:
    def test_from_exchange_splits_scopes(self):
        token = AccessToken.from_exchange(
            "acme",
            {"access_token": "abc", "scope": "BOOKINGS_READ, PRODUCTS_READ", "vendor_id": 42},
        )
        assert token.domain == "acme"
        assert token.scopes == ["BOOKINGS_READ", "PRODUCTS_READ"]
        assert token.vendor_id == "42"
        assert token.source == "file"


class TestTokenStore:
    def test_save_and_load(self, store):
        store.save(AccessToken(domain="acme", access_token="tok-1", scopes=["BOOKINGS_READ"]))
        loaded = store.load("acme")
        assert loaded is not None
        assert loaded.access_token == "tok-1"
        assert loaded.scopes == ["BOOKINGS_READ"]

    def test_load_unknown_domain(self, store):
        assert store.load("nope") is None

    def test_domains_are_isolated(self, store):
        store.save(AccessToken(domain="acme", access_token="a"))
        store.save(AccessToken(domain="other", access_token="b"))
        assert store.load("acme").access_token == "a"
        assert store.load("other").access_token == "b"
        assert store.domains() == ["acme", "other"]

    def test_save_overwrites(self, store):
        store.save(AccessToken(domain="acme", access_token="old"))
        store.load("acme")
        store.save(AccessToken(domain="acme", access_token="new"))
        assert store.load("acme").access_token == "new"

    def test_delete(self, store):
        store.save(AccessToken(domain="acme", access_token="x"))
        assert store.delete("acme") is True
        assert store.load("acme") is None
        assert store.delete("acme") is False

    def test_file_permissions(self, store, tmp_path):
        store.save(AccessToken(domain="acme", access_token="secret"))
        mode = (tmp_path / "tokens.json").stat().st_mode
        assert stat.S_IMODE(mode) == 0o600

    def test_file_is_keyed_by_domain(self, store, tmp_path):
        store.save(AccessToken(domain="acme", access_token="secret"))
        data = json.loads((tmp_path / "tokens.json").read_text())
        assert data["acme"]["access_token"] == "secret"

    def test_corrupt_file_reads_as_empty(self, store, tmp_path):
        (tmp_path / "tokens.json").write_text("{not json")
        assert store.load("acme") is None

    def test_require_raises_when_missing(self, store):
        with pytest.raises(AuthenticationError):
            store.require("acme")

    def test_runtime_token_wins(self, tmp_path, settings):
        runtime = Settings(
            **{
                **settings.model_dump(),
                "provider_access_token": "runtime-tok",
                "provider_vendor_id": "7",
            },
            _env_file=None,
        )
        store = TokenStore(path=tmp_path / "tokens.json", settings=runtime)
        store.save(AccessToken(domain="acme", access_token="file-tok"))
        token = store.load("acme")
        assert token.access_token == "runtime-tok"
        assert token.source == "runtime"
        assert token.vendor_id == "7"

    def test_status(self, store):
        assert store.status("acme")["is_authenticated"] is False
        store.save(AccessToken(domain="acme", access_token="x", scopes=["A"], vendor_id="9"))
        status = store.status("acme")
        assert status == {
            "is_authenticated": True,
            "domain": "acme",
            "scopes": ["A"],
            "vendor_id": "9",
            "source": "file",
        }
        assert "access_token" not in status
