# Settings - environment-driven configuration for Charterline.
# Created: 2026-10-02
#
# All values come from CHARTERLINE_* environment variables (or a .env file).
# get_settings() is cached; tests call get_settings.cache_clear() after
# monkeypatching the environment.

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCOPES = ["BOOKINGS_READ", "CUSTOMERS_READ", "CHECKOUTS_READ", "PRODUCTS_READ"]


class Settings(BaseSettings):
    """Charterline runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHARTERLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider endpoints
    provider_api_url: str = "https://api.bokun.io"
    provider_octo_url: str = "https://api.bokun.io/octo/v1"
    provider_app_url_template: str = "https://{domain}.bokun.io"
    provider_domain: str = ""

    # Bearer (OCTO) credentials
    octo_token: str = ""
    octo_capabilities: list[str] = Field(default_factory=lambda: ["pricing"])

    # Native HMAC credentials
    native_access_key: str = ""
    native_secret_key: str = ""
    booking_channel_uuid: str = ""

    # Product catalogue
    activity_id: str = "1031959"
    option_id: str = "2017520"
    adult_unit_id: str = "1001055"
    child_unit_id: str = "1001057"
    currency: str = "GBP"
    lang: str = "EN"
    product_name: str = "Boat Charter"

    # OAuth app (install flow)
    oauth_client_id: str = ""
    oauth_client_secret: str = ""
    oauth_redirect_uri: str = ""
    oauth_scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    oauth_strict_state: bool = False
    oauth_state_ttl_seconds: int = 600
    dashboard_url: str = "/"
    cors_allowed_origins: list[str] = Field(default_factory=list)
    oauth_app_slug: str = "charterline-dashboard"

    # Runtime token override (deployed environments)
    provider_access_token: str = ""
    provider_vendor_id: str = ""
    provider_scopes: list[str] = Field(default_factory=list)

    # Stripe
    stripe_secret_key: str = ""
    stripe_success_url: str = (
        "http://localhost:3000/booking-success"
        "?booking_uuid={booking_uuid}&session_id={{CHECKOUT_SESSION_ID}}"
    )
    stripe_cancel_url: str = "http://localhost:3000/booking-cancelled?booking_uuid={booking_uuid}"

    # Booking behaviour
    hold_minutes: int = 30
    lookahead_days: int = 7

    # Enrichment fan-out
    enrichment_concurrency: int = 5
    enrichment_timeout: float = 10.0
    enrichment_total_timeout: float = 30.0

    # HTTP
    http_timeout: float = 15.0

    # Logging
    log_level: str = "INFO"

    config_dir: str = ""

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def oauth_configured(self) -> bool:
        return bool(self.oauth_client_id and self.oauth_client_secret and self.oauth_redirect_uri)

    def provider_app_url(self, domain: str | None = None) -> str:
        """Base URL of the operator's provider extranet (``https://{domain}.bokun.io``)."""
        return self.provider_app_url_template.format(domain=domain or self.provider_domain)

    def app_install_url(self, domain: str | None = None) -> str:
        """Extranet page where an operator installs the dashboard app."""
        return f"{self.provider_app_url(domain)}/extranet/apps/new?app={self.oauth_app_slug}"


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()


def get_config_dir() -> Path:
    """Get/create the Charterline data directory (default ``~/.charterline``)."""
    override = os.environ.get("CHARTERLINE_CONFIG_DIR") or get_settings().config_dir
    d = Path(override) if override else Path.home() / ".charterline"
    d.mkdir(parents=True, exist_ok=True)
    return d
