# Shared fixtures: isolated environment and a fully-credentialed Settings.
# Created: 2026-10-10

import os

import pytest

from charterline.api import deps
from charterline.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("CHARTERLINE_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("CHARTERLINE_CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    deps.reset_services()
    yield
    get_settings.cache_clear()
    deps.reset_services()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        provider_domain="acme",
        octo_token="octo-token",
        native_access_key="test-access-key",
        native_secret_key="test-secret-key",
        booking_channel_uuid="channel-uuid",
        oauth_client_id="client-id",
        oauth_client_secret="client-secret",
        oauth_redirect_uri="https://charters.example.com/api/v1/oauth/callback",
        stripe_secret_key="sk_test_123",
        enrichment_concurrency=3,
        enrichment_timeout=0.2,
        enrichment_total_timeout=5.0,
        config_dir=str(tmp_path / "config"),
    )
