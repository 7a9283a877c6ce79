# Tests for the /api/v1 routers.
# Created: 2026-10-13

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

import charterline.api.deps as deps
from charterline.api.serve import create_api_app
from charterline.booking.aggregator import BookingAggregator
from charterline.booking.orchestrator import BookingOrchestrator
from charterline.booking.pricing import AvailabilityPricingFetcher
from charterline.config import Settings
from charterline.errors import UpstreamHTTPError
from charterline.integrations.oauth import OAuthGateway, sign_query
from charterline.integrations.payments import CheckoutSession, PaymentGateway
from charterline.integrations.provider import ProviderClient
from charterline.integrations.token_store import AccessToken, TokenStore


@pytest.fixture
def client():
    return TestClient(create_api_app())


@pytest.fixture
def token_store(tmp_path, settings, monkeypatch):
    store = TokenStore(path=tmp_path / "tokens.json", settings=settings)
    monkeypatch.setattr(deps, "_token_store", store)
    return store


def _signed(params: dict) -> dict:
    return {**params, "hmac": sign_query(params, "client-secret")}


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"]
        assert body["checks"]["stripe"] is False

    def test_openapi_lists_routes(self, client):
        paths = client.get("/api/v1/openapi.json").json()["paths"]
        for path in ("/api/v1/oauth/install", "/api/v1/bookings", "/api/v1/pricing"):
            assert path in paths


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


class TestOAuthRoutes:
    @pytest.fixture
    def exchange_requests(self):
        return []

    @pytest.fixture(autouse=True)
    def gateway(self, settings, token_store, exchange_requests, monkeypatch):
        def handler(request):
            exchange_requests.append(request)
            return httpx.Response(
                200, json={"access_token": "app-token", "scope": "BOOKINGS_READ", "vendor_id": 5}
            )

        gateway = OAuthGateway(settings, token_store, transport=httpx.MockTransport(handler))
        monkeypatch.setattr(deps, "_gateway", gateway)
        return gateway

    def test_install_redirects(self, client):
        resp = client.get(
            "/api/v1/oauth/install",
            params=_signed({"domain": "acme", "timestamp": "1700000000"}),
            follow_redirects=False,
        )
        assert resp.status_code == 302
        assert resp.headers["location"].startswith(
            "https://acme.bokun.io/appstore/oauth/authorize?"
        )

    def test_install_missing_params(self, client):
        resp = client.get("/api/v1/oauth/install", params={"domain": "acme"})
        assert resp.status_code == 400
        assert "timestamp" in resp.json()["detail"]

    def test_install_bad_signature(self, client):
        params = _signed({"domain": "acme", "timestamp": "1700000000"})
        params["timestamp"] = "1700000001"
        resp = client.get("/api/v1/oauth/install", params=params, follow_redirects=False)
        assert resp.status_code == 401

    def test_install_unconfigured(self, client, token_store, monkeypatch):
        monkeypatch.setattr(deps, "_gateway", OAuthGateway(Settings(_env_file=None), token_store))
        resp = client.get(
            "/api/v1/oauth/install", params=_signed({"domain": "acme", "timestamp": "1"})
        )
        assert resp.status_code == 500

    def test_callback_success(self, client, token_store):
        params = _signed(
            {"domain": "acme", "state": "s1", "timestamp": "1700000000", "code": "c1"}
        )
        resp = client.get("/api/v1/oauth/callback", params=params)
        assert resp.status_code == 200
        assert "Connected to acme" in resp.text
        assert "BOOKINGS_READ" in resp.text
        assert token_store.load("acme").access_token == "app-token"

    def test_callback_tampered_state(self, client, exchange_requests, token_store):
        params = _signed(
            {"domain": "acme", "state": "s1", "timestamp": "1700000000", "code": "c1"}
        )
        params["state"] = "tampered"
        resp = client.get("/api/v1/oauth/callback", params=params)
        assert resp.status_code == 401
        assert exchange_requests == []
        assert token_store.load("acme") is None

    def test_callback_exchange_error(self, client, settings, token_store, monkeypatch):
        def handler(request):
            return httpx.Response(400, text='{"error":"invalid_grant"}')

        monkeypatch.setattr(
            deps,
            "_gateway",
            OAuthGateway(settings, token_store, transport=httpx.MockTransport(handler)),
        )
        params = _signed(
            {"domain": "acme", "state": "s1", "timestamp": "1700000000", "code": "c1"}
        )
        resp = client.get("/api/v1/oauth/callback", params=params)
        assert resp.status_code == 400
        assert "invalid_grant" in resp.json()["detail"]

    def test_callback_exchange_not_json(self, client, settings, token_store, monkeypatch):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        monkeypatch.setattr(
            deps,
            "_gateway",
            OAuthGateway(settings, token_store, transport=httpx.MockTransport(handler)),
        )
        params = _signed(
            {"domain": "acme", "state": "s1", "timestamp": "1700000000", "code": "c1"}
        )
        resp = client.get("/api/v1/oauth/callback", params=params)
        assert resp.status_code == 502
        assert "maintenance" in resp.json()["detail"]
        assert token_store.load("acme") is None

    def test_status(self, client, token_store):
        assert client.get("/api/v1/oauth/status").json()["is_authenticated"] is False
        token_store.save(AccessToken(domain="acme", access_token="x", scopes=["BOOKINGS_READ"]))
        body = client.get("/api/v1/oauth/status", params={"domain": "acme"}).json()
        assert body["is_authenticated"] is True
        assert body["scopes"] == ["BOOKINGS_READ"]
        assert "access_token" not in body


# ---------------------------------------------------------------------------
# Pricing / products
# ---------------------------------------------------------------------------

AVAILABILITIES = [
    {
        "id": "a1",
        "localizedDate": "2024-01-15",
        "availabilityCount": 10,
        "pricesByRate": [
            {
                "pricePerCategoryUnit": [
                    {"id": 1001055, "amount": {"amount": 120, "currency": "GBP"}},
                    {"id": 1001057, "amount": {"amount": 60, "currency": "GBP"}},
                ]
            }
        ],
    },
]


class TestPricingRoutes:
    @pytest.fixture
    def provider(self, settings, monkeypatch):
        provider = MagicMock()
        provider.get_activity_availabilities = AsyncMock(return_value=AVAILABILITIES)
        fetcher = AvailabilityPricingFetcher(provider, settings, today=lambda: date(2024, 1, 15))
        monkeypatch.setattr(deps, "_fetcher", fetcher)
        return provider

    def test_pricing(self, client, provider):
        body = client.get("/api/v1/pricing").json()
        assert body["success"] is True
        assert body["source"] == "native-api"
        names = [c["name"] for c in body["data"]["pricing_categories"]]
        assert names == ["Adult", "Child"]
        assert body["data"]["window"] == {"start": "2024-01-15", "end": "2024-01-22"}

    def test_pricing_upstream_failure(self, client, provider):
        provider.get_activity_availabilities.side_effect = UpstreamHTTPError(503, "maintenance")
        resp = client.get("/api/v1/pricing")
        assert resp.status_code == 502
        body = resp.json()
        assert body["success"] is False
        assert "maintenance" in body["error"]

    def test_product_and_availability(self, client, settings, monkeypatch):
        def handler(request):
            if request.url.path.endswith("/availability"):
                return httpx.Response(
                    200, json=[{"id": "s1", "available": True}, {"id": "s2", "available": False}]
                )
            return httpx.Response(200, json={"id": "1031959", "title": "Charter"})

        monkeypatch.setattr(
            deps, "_provider", ProviderClient(settings, transport=httpx.MockTransport(handler))
        )
        product = client.get("/api/v1/products/1031959").json()
        assert product["data"]["title"] == "Charter"

        avail = client.get(
            "/api/v1/availability", params={"date_start": "2024-01-15", "adults": 2}
        ).json()
        assert avail["stats"] == {"total": 2, "available": 1}

    def test_availability_requires_date(self, client):
        assert client.get("/api/v1/availability").status_code == 422


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

BOOKING_FORM = {
    "availability_id": "avail-1",
    "unit_price": "120.00",
    "guests": [
        {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"},
        {"first_name": "Alan", "last_name": "Turing", "email": "alan@example.com"},
    ],
}


class TestBookingRoutes:
    @pytest.fixture
    def graphql(self):
        graphql = MagicMock()
        node = {
            "id": "n1",
            "confirmationCode": "ABC-1",
            "status": "CONFIRMED",
            "totalPrice": {"amount": 200, "currency": "GBP"},
            "payments": [{"amount": {"amount": 200}, "status": "PAID"}],
        }
        graphql.get_bookings = AsyncMock(
            return_value={"edges": [{"node": node}], "totalCount": 1}
        )
        return graphql

    @pytest.fixture
    def provider(self):
        provider = MagicMock()
        provider.get_booking_details = AsyncMock(side_effect=UpstreamHTTPError(500, "down"))
        provider.reserve = AsyncMock(
            return_value={"uuid": "b-1", "status": "ON_HOLD", "unitItems": []}
        )
        provider.confirm = AsyncMock(return_value={"uuid": "b-1", "status": "CONFIRMED"})
        return provider

    @pytest.fixture(autouse=True)
    def services(self, settings, token_store, graphql, provider, monkeypatch):
        payments = MagicMock()
        payments.configured = True
        payments.create_checkout_session = AsyncMock(
            return_value=CheckoutSession(
                id="cs_1", url="https://checkout.stripe.com/c/pay/cs_1", amount_total=24000,
                currency="GBP", metadata={"booking_uuid": "b-1"},
            )
        )
        monkeypatch.setattr(
            deps, "_aggregator", BookingAggregator(settings, token_store, graphql, provider)
        )
        monkeypatch.setattr(
            deps, "_orchestrator", BookingOrchestrator(provider, payments, settings)
        )

    def test_list_requires_oauth(self, client):
        body = client.get("/api/v1/bookings").json()
        assert body["success"] is False
        assert body["oauth_required"] is True
        assert body["install_url"].startswith("https://acme.bokun.io/extranet/apps/new")
        assert body["data"] == []

    def test_list_degrades_failed_detail(self, client, token_store):
        token_store.save(AccessToken(domain="acme", access_token="app-token"))
        body = client.get("/api/v1/bookings", params={"limit": 5}).json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        record = body["data"][0]
        assert record["confirmation_code"] == "ABC-1"
        assert record["enriched"] is False
        assert body["stats"]["degraded"] == 1
        assert body["stats"]["total_revenue"] == 200.0
        assert body["stats"]["limit"] == 5

    def test_list_graphql_failure(self, client, token_store, graphql):
        token_store.save(AccessToken(domain="acme", access_token="app-token"))
        graphql.get_bookings.side_effect = UpstreamHTTPError(500, "graphql down")
        resp = client.get("/api/v1/bookings")
        assert resp.status_code == 502
        assert resp.json()["success"] is False

    def test_create_booking(self, client):
        resp = client.post("/api/v1/bookings", json=BOOKING_FORM)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "PAYMENT_PENDING"
        assert body["checkout_url"] == "https://checkout.stripe.com/c/pay/cs_1"
        assert body["metadata"]["booking_uuid"] == "b-1"
        assert body["amount_minor"] == 24000

    def test_create_booking_reserve_failure(self, client, provider):
        provider.reserve.side_effect = UpstreamHTTPError(500, "no capacity")
        resp = client.post("/api/v1/bookings", json=BOOKING_FORM)
        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("Reservation failed")
        provider.confirm.assert_not_awaited()

    def test_create_booking_cancelled_on_confirm(self, client, provider):
        provider.confirm.return_value = {"uuid": "b-1", "status": "CANCELLED"}
        resp = client.post("/api/v1/bookings", json=BOOKING_FORM)
        assert resp.status_code == 502
        assert "CANCELLED" in resp.json()["detail"]

    def test_list_malformed_detail_still_envelope(self, client, token_store, provider):
        token_store.save(AccessToken(domain="acme", access_token="app-token"))
        provider.get_booking_details.side_effect = None
        provider.get_booking_details.return_value = {"customer": "Jane Doe"}
        resp = client.get("/api/v1/bookings")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"][0]["enriched"] is False
        assert body["stats"]["degraded"] == 1

    def test_create_booking_validation(self, client, provider):
        resp = client.post("/api/v1/bookings", json={**BOOKING_FORM, "guests": []})
        assert resp.status_code == 422
        provider.reserve.assert_not_awaited()


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


class TestPaymentRoutes:
    def test_list_payments(self, client, settings, monkeypatch):
        monkeypatch.setattr(deps, "_payments", PaymentGateway(settings))
        page = {
            "data": [
                {"id": "cs_1", "amount_total": 24000, "currency": "gbp", "payment_status": "paid"}
            ]
        }
        with patch("stripe.checkout.Session.list", return_value=page):
            body = client.get("/api/v1/payments").json()
        assert body["success"] is True
        assert body["stats"]["total_revenue"] == 240.0
        assert body["data"][0]["amount"] == 240.0

    def test_unconfigured(self, client, monkeypatch):
        monkeypatch.setattr(deps, "_payments", PaymentGateway(Settings(_env_file=None)))
        resp = client.get("/api/v1/payments")
        assert resp.status_code == 500
        assert resp.json()["success"] is False


def test_booking_form_to_command():
    from charterline.api.v1.schemas.bookings import BookingCreateRequest

    command = BookingCreateRequest(**BOOKING_FORM).to_command()
    assert command.unit_price == Decimal("120.00")
    assert command.lead_guest.email == "ada@example.com"
    assert len(command.guests) == 2
    assert command.hold_minutes is None
