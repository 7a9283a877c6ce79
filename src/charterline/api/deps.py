# Shared service singletons for the API layer.
# Created: 2026-10-08
#
# Routers resolve services through these getters; tests swap the module-level
# instances with monkeypatch and call reset_services() between runs.

from __future__ import annotations

from charterline.booking.aggregator import BookingAggregator
from charterline.booking.orchestrator import BookingOrchestrator
from charterline.booking.pricing import AvailabilityPricingFetcher
from charterline.config import get_settings
from charterline.integrations.oauth import OAuthGateway
from charterline.integrations.payments import PaymentGateway
from charterline.integrations.provider import ProviderClient
from charterline.integrations.token_store import TokenStore

_token_store: TokenStore | None = None
_gateway: OAuthGateway | None = None
_provider: ProviderClient | None = None
_payments: PaymentGateway | None = None
_fetcher: AvailabilityPricingFetcher | None = None
_orchestrator: BookingOrchestrator | None = None
_aggregator: BookingAggregator | None = None


def get_token_store() -> TokenStore:
    global _token_store
    if _token_store is None:
        _token_store = TokenStore(settings=get_settings())
    return _token_store


def get_oauth_gateway() -> OAuthGateway:
    """Gateway singleton; it owns the in-memory state store."""
    global _gateway
    if _gateway is None:
        _gateway = OAuthGateway(get_settings(), get_token_store())
    return _gateway


def get_provider() -> ProviderClient:
    global _provider
    if _provider is None:
        _provider = ProviderClient(get_settings())
    return _provider


def get_payments() -> PaymentGateway:
    global _payments
    if _payments is None:
        _payments = PaymentGateway(get_settings())
    return _payments


def get_fetcher() -> AvailabilityPricingFetcher:
    global _fetcher
    if _fetcher is None:
        _fetcher = AvailabilityPricingFetcher(get_provider(), get_settings())
    return _fetcher


def get_orchestrator() -> BookingOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = BookingOrchestrator(get_provider(), get_payments(), get_settings())
    return _orchestrator


def get_aggregator() -> BookingAggregator:
    global _aggregator
    if _aggregator is None:
        _aggregator = BookingAggregator(
            get_settings(), token_store=get_token_store(), provider=get_provider()
        )
    return _aggregator


def reset_services() -> None:
    """Drop all cached services (tests, settings reload)."""
    global _token_store, _gateway, _provider, _payments, _fetcher, _orchestrator, _aggregator
    _token_store = _gateway = _provider = _payments = None
    _fetcher = _orchestrator = _aggregator = None
