# Payment Gateway - Stripe Checkout sessions for confirmed bookings.
# Created: 2026-10-05
#
# The stripe SDK is blocking; calls run in a worker thread. The API key is
# passed per call so nothing touches the module-level ``stripe.api_key``.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe

from charterline.config import Settings, get_settings
from charterline.errors import UpstreamHTTPError

logger = logging.getLogger(__name__)

# ISO 4217 currencies Stripe treats as having no minor unit
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }
)


def to_minor_units(amount: Decimal | float | str, currency: str) -> int:
    """Convert a major-unit amount to Stripe's integer minor unit."""
    value = Decimal(str(amount))
    if currency.upper() not in ZERO_DECIMAL_CURRENCIES:
        value = value * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount)
    return (Decimal(amount) / 100).quantize(Decimal("0.01"))


@dataclass
class CheckoutSession:
    """The parts of a Stripe Checkout Session we hand back to callers."""

    id: str
    url: str
    amount_total: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)


class PaymentGateway:
    """Creates and lists Stripe Checkout sessions."""

    def __init__(self, settings: Settings | None = None, api_key: str | None = None):
        self.settings = settings or get_settings()
        self._api_key = api_key or self.settings.stripe_secret_key

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _redirect_urls(self, booking_uuid: str) -> tuple[str, str]:
        success = self.settings.stripe_success_url.format(booking_uuid=booking_uuid)
        cancel = self.settings.stripe_cancel_url.format(booking_uuid=booking_uuid)
        return success, cancel

    async def create_checkout_session(
        self,
        booking_uuid: str,
        amount_minor: int,
        currency: str,
        description: str,
        metadata: dict[str, str] | None = None,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Create a hosted checkout page for *amount_minor* in *currency*.

        Success and cancel URLs carry ``booking_uuid`` so the caller can
        recover the booking after the redirect.
        """
        success_url, cancel_url = self._redirect_urls(booking_uuid)
        meta = {"booking_uuid": booking_uuid, **(metadata or {})}
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": description[:100]},
                        "unit_amount": amount_minor,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": meta,
            "client_reference_id": booking_uuid,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create, api_key=self._api_key, **params
            )
        except stripe.StripeError as e:
            status = getattr(e, "http_status", None) or 502
            body = getattr(e, "http_body", None) or str(e)
            logger.error("Stripe checkout session creation failed: %s", e)
            raise UpstreamHTTPError(status, body, "stripe:checkout.sessions.create") from e

        logger.info("Created checkout session %s for booking %s", session["id"], booking_uuid)
        return CheckoutSession(
            id=session["id"],
            url=session["url"],
            amount_total=session.get("amount_total") or amount_minor,
            currency=(session.get("currency") or currency).upper(),
            metadata=meta,
        )

    async def list_sessions(self, limit: int = 100) -> list[dict[str, Any]]:
        """Most recent checkout sessions (max 100)."""
        try:
            page = await asyncio.to_thread(
                stripe.checkout.Session.list,
                api_key=self._api_key,
                limit=min(max(limit, 1), 100),
            )
        except stripe.StripeError as e:
            status = getattr(e, "http_status", None) or 502
            raise UpstreamHTTPError(status, str(e), "stripe:checkout.sessions.list") from e
        return list(page["data"])


def transform_session(session: dict[str, Any]) -> dict[str, Any]:
    """Dashboard view of one checkout session."""
    metadata = session.get("metadata") or {}
    details = session.get("customer_details") or {}
    currency = (session.get("currency") or "gbp").upper()
    amount_minor = session.get("amount_total") or 0
    amount = from_minor_units(amount_minor, currency)
    return {
        "id": session.get("id", ""),
        "payment_id": f"PAY-{str(session.get('id', ''))[-8:]}",
        "booking_id": metadata.get("booking_uuid")
        or metadata.get("supplier_reference")
        or "Unknown",
        "customer_email": details.get("email") or "No email",
        "customer_name": details.get("name") or "Unknown Customer",
        "amount_minor": amount_minor,
        "amount": float(amount),
        "currency": currency,
        "formatted_amount": f"{currency} {amount:.2f}",
        "status": session.get("payment_status") or "unknown",
        "created": session.get("created"),
    }


def payment_stats(payments: list[dict[str, Any]], currency: str = "GBP") -> dict[str, Any]:
    """Counts across all sessions; revenue totals are kept per currency.

    ``total_revenue`` and ``average_transaction_value`` cover *currency* only.
    """
    currency = currency.upper()
    paid = [p for p in payments if p["status"] == "paid"]
    minor_by_currency: dict[str, int] = {}
    for p in paid:
        code = p["currency"]
        minor_by_currency[code] = minor_by_currency.get(code, 0) + p["amount_minor"]
    by_currency = {
        code: from_minor_units(minor, code) for code, minor in sorted(minor_by_currency.items())
    }
    revenue = by_currency.get(currency, Decimal("0"))
    paid_here = sum(1 for p in paid if p["currency"] == currency)
    return {
        "total_payments": len(payments),
        "successful_payments": len(paid),
        "pending_payments": sum(
            1 for p in payments if p["status"] in ("unpaid", "no_payment_required")
        ),
        "failed_payments": sum(1 for p in payments if p["status"] == "failed"),
        "currency": currency,
        "total_revenue": float(revenue),
        "revenue_by_currency": {code: float(amount) for code, amount in by_currency.items()},
        "average_transaction_value": float(revenue / paid_here) if paid_here else 0.0,
    }
