# Booking Aggregator - GraphQL list page + per-booking native detail lookups.
# Created: 2026-10-07
#
# Enrichment runs concurrently, bounded by a semaphore, with a per-call and an
# overall timeout. A failed lookup degrades that record to list-only fields;
# it never fails the page.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from charterline.booking.models import AggregatedBookingRecord
from charterline.config import Settings, get_settings
from charterline.errors import CharterlineError, PartialEnrichmentFailure
from charterline.integrations.provider import ProviderClient, ProviderGraphQLClient
from charterline.integrations.token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER = "Unknown Customer"
DEFAULT_EMAIL = "Email not available"
DEFAULT_PHONE = "No phone provided"
DEFAULT_DATE = "Date TBC"
DEFAULT_TIME = "Time TBC"
DEFAULT_STATUS = "confirmed"
DEFAULT_TRIP = "Full Day Charter"
DEFAULT_TIMESTAMP = "Unknown"


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def first_of(*values: Any, default: Any) -> Any:
    """First present value, else *default*."""
    for value in values:
        if _present(value):
            return value
    return default


def _first_item(items: Any) -> dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _decimal(value: Any) -> Decimal | None:
    if isinstance(value, dict):
        value = value.get("amount")
    if not _present(value):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _as_date(value: Any) -> Any:
    # Native API dates are epoch milliseconds
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=UTC).date().isoformat()
    return value


def _as_timestamp(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()
    return value


def _participants(value: Any) -> int | None:
    if isinstance(value, list):
        return len(value) or None
    if isinstance(value, int) and value > 0:
        return value
    return None


def normalize_status(status: str) -> str:
    return status.lower().replace("_", " ")


def format_amount(amount: Decimal, currency: str) -> str:
    if currency == "GBP":
        return f"£{amount:.2f}"
    return f"{currency} {amount:.2f}"


def _full_name(customer: dict[str, Any]) -> str:
    return f"{customer.get('firstName') or ''} {customer.get('lastName') or ''}".strip()


def _payment_status(node: dict[str, Any], detail: dict[str, Any]) -> str:
    explicit = detail.get("paymentStatus")
    if _present(explicit):
        return str(explicit).lower()
    paid_amount = _decimal(detail.get("paidAmount"))
    if paid_amount is not None and paid_amount > 0:
        return "paid"
    for payment in node.get("payments") or []:
        amount = _decimal(payment.get("amount"))
        state = str(payment.get("status") or "").lower()
        if amount is not None and amount > 0 and state not in ("failed", "refunded", "cancelled"):
            return "paid"
    return "pending"


def merge_booking(
    node: dict[str, Any],
    detail: dict[str, Any] | None = None,
    default_currency: str = "GBP",
) -> AggregatedBookingRecord:
    """Merge a list node with an optional detail payload.

    Precedence per field: detail value, then list value, then a named default.
    """
    detail = detail or {}
    customer = node.get("customer") or {}
    d_customer = detail.get("customer") or {}
    product_booking = _first_item(node.get("productBookings"))
    d_activity = _first_item(detail.get("activityBookings"))
    payment = _first_item(node.get("payments"))
    list_total = node.get("totalPrice") or {}
    payment_amount = payment.get("amount") or {}

    node_id = str(node.get("id") or "unknown")
    code = first_of(detail.get("confirmationCode"), node.get("confirmationCode"), default="TBC")
    amount = first_of(
        _decimal(detail.get("totalPrice")),
        _decimal(list_total),
        _decimal(payment_amount),
        default=Decimal("0"),
    )
    currency = str(
        first_of(
            detail.get("currency"),
            list_total.get("currency") if isinstance(list_total, dict) else None,
            payment_amount.get("currency") if isinstance(payment_amount, dict) else None,
            default=default_currency,
        )
    ).upper()
    status = first_of(detail.get("status"), node.get("status"), default=DEFAULT_STATUS)

    return AggregatedBookingRecord(
        id=node_id,
        booking_ref=code if code != "TBC" else (node_id[-6:] if node_id != "unknown" else "UNKNOWN"),
        confirmation_code=code,
        customer_name=first_of(_full_name(d_customer), _full_name(customer), default=DEFAULT_CUSTOMER),
        email=first_of(d_customer.get("email"), customer.get("email"), default=DEFAULT_EMAIL),
        phone=first_of(
            d_customer.get("phoneNumber"), customer.get("phoneNumber"), default=DEFAULT_PHONE
        ),
        date=str(
            first_of(
                _as_date(d_activity.get("startDate") or d_activity.get("date")),
                product_booking.get("startDate"),
                default=DEFAULT_DATE,
            )
        ),
        time=str(
            first_of(d_activity.get("startTime"), product_booking.get("startTime"), default=DEFAULT_TIME)
        ),
        guests=first_of(
            _participants(d_activity.get("participants") or d_activity.get("totalParticipants")),
            _participants(product_booking.get("participants")),
            default=1,
        ),
        status=normalize_status(str(status)),
        payment_status=_payment_status(node, detail),
        amount=amount,
        currency=currency,
        formatted_amount=format_amount(amount, currency),
        trip_type=first_of(
            (d_activity.get("activity") or {}).get("title"),
            (product_booking.get("product") or {}).get("title"),
            default=DEFAULT_TRIP,
        ),
        created_at=str(
            first_of(_as_timestamp(detail.get("creationDate") or detail.get("created")),
                     node.get("createdAt"), default=DEFAULT_TIMESTAMP)
        ),
        updated_at=str(
            first_of(_as_timestamp(detail.get("lastModified")), node.get("updatedAt"),
                     default=DEFAULT_TIMESTAMP)
        ),
        enriched=bool(detail),
        raw={"graphql": node, "detail": detail or None},
    )


def compute_stats(records: list[AggregatedBookingRecord], total_count: int) -> dict[str, Any]:
    revenue = sum((r.amount for r in records if r.payment_status == "paid"), Decimal("0"))
    return {
        "total": total_count,
        "confirmed": sum(1 for r in records if r.status == "confirmed"),
        "pending": sum(1 for r in records if r.status in ("pending", "on hold")),
        "cancelled": sum(1 for r in records if r.status == "cancelled"),
        "total_revenue": float(revenue),
        "enriched": sum(1 for r in records if r.enriched),
        "degraded": sum(1 for r in records if not r.enriched),
    }


@dataclass
class AggregationResult:
    records: list[AggregatedBookingRecord] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    total_count: int = 0
    enhanced: bool = True
    oauth_required: bool = False
    auth_status: dict[str, Any] = field(default_factory=dict)
    failures: list[PartialEnrichmentFailure] = field(default_factory=list)


class BookingAggregator:
    """Dashboard booking list for one operator domain."""

    def __init__(
        self,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        graphql: ProviderGraphQLClient | None = None,
        provider: ProviderClient | None = None,
        domain: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.domain = domain or self.settings.provider_domain
        self.store = token_store or TokenStore(settings=self.settings)
        self.graphql = graphql or ProviderGraphQLClient(self.domain, self.store, self.settings)
        self.provider = provider or ProviderClient(self.settings)

    async def _lookup(
        self, code: str, semaphore: asyncio.Semaphore
    ) -> tuple[dict[str, Any] | None, PartialEnrichmentFailure | None]:
        async with semaphore:
            try:
                timeout = self.settings.enrichment_timeout
                detail = await asyncio.wait_for(
                    self.provider.get_booking_details(code, timeout=timeout),
                    timeout=timeout,
                )
            except TimeoutError:
                return None, PartialEnrichmentFailure(code, "timed out")
            except CharterlineError as e:
                return None, PartialEnrichmentFailure(code, str(e))
        if not detail or not isinstance(detail, dict):
            return None, PartialEnrichmentFailure(code, "empty detail response")
        return detail, None

    async def enrich(
        self, nodes: list[dict[str, Any]]
    ) -> tuple[list[AggregatedBookingRecord], list[PartialEnrichmentFailure]]:
        """Detail lookup for every node with a confirmation code, in parallel."""
        semaphore = asyncio.Semaphore(max(self.settings.enrichment_concurrency, 1))
        tasks: dict[int, asyncio.Task] = {}
        for index, node in enumerate(nodes):
            code = node.get("confirmationCode")
            if code:
                tasks[index] = asyncio.create_task(self._lookup(str(code), semaphore))

        if tasks:
            _, pending = await asyncio.wait(
                tasks.values(), timeout=self.settings.enrichment_total_timeout
            )
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        records = []
        failures = []
        for index, node in enumerate(nodes):
            detail = None
            failure = None
            task = tasks.get(index)
            code = str(node.get("confirmationCode"))
            if task is not None:
                if task.cancelled():
                    failure = PartialEnrichmentFailure(code, "overall enrichment timeout")
                else:
                    detail, failure = task.result()
            record = None
            if detail is not None:
                try:
                    record = merge_booking(node, detail, self.settings.currency)
                except (AttributeError, TypeError, ValueError) as e:
                    failure = PartialEnrichmentFailure(code, f"malformed detail response: {e!r}")
            if failure is not None:
                logger.warning("%s", failure)
                failures.append(failure)
            if record is None:
                record = merge_booking(node, None, self.settings.currency)
            records.append(record)
        return records, failures

    async def list_bookings(
        self,
        limit: int = 10,
        offset: int = 0,
        date_from: str | None = None,
        date_to: str | None = None,
        enhanced: bool = True,
    ) -> AggregationResult:
        """List phase, optional enrichment phase, then statistics.

        List-phase errors propagate; enrichment errors degrade single records.
        """
        auth_status = self.store.status(self.domain)
        if not auth_status["is_authenticated"]:
            return AggregationResult(
                enhanced=enhanced,
                oauth_required=True,
                auth_status=auth_status,
                stats=compute_stats([], 0),
            )

        page = await self.graphql.get_bookings(
            limit=limit, offset=offset, date_from=date_from, date_to=date_to
        )
        nodes = [edge.get("node") or {} for edge in page.get("edges") or []]
        total_count = page.get("totalCount") or len(nodes)
        logger.info("Fetched %d booking nodes (total %d)", len(nodes), total_count)

        failures: list[PartialEnrichmentFailure] = []
        if enhanced and nodes:
            records, failures = await self.enrich(nodes)
            logger.info(
                "Enriched %d/%d bookings", len(records) - len(failures), len(records)
            )
        else:
            records = [merge_booking(node, None, self.settings.currency) for node in nodes]

        return AggregationResult(
            records=records,
            stats=compute_stats(records, total_count),
            total_count=total_count,
            enhanced=enhanced,
            auth_status=auth_status,
            failures=failures,
        )
