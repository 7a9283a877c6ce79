# Availability & pricing - one signed native call per fetch over a rolling window.
# Created: 2026-10-06

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from charterline.booking.categories import category_name
from charterline.booking.models import AvailabilitySlot, PricingCategory
from charterline.config import Settings, get_settings
from charterline.errors import AuthenticationError, UpstreamHTTPError
from charterline.integrations.provider import ProviderClient

logger = logging.getLogger(__name__)


@dataclass
class PricingResult:
    activity_id: str
    categories: list[PricingCategory] = field(default_factory=list)
    availabilities: list[AvailabilitySlot] = field(default_factory=list)
    raw: Any = None


def _amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def extract_categories(availabilities: Iterable[dict[str, Any]]) -> list[PricingCategory]:
    """Flatten ``pricesByRate[].pricePerCategoryUnit[]`` across all entries."""
    found: list[PricingCategory] = []
    for availability in availabilities:
        for rate_group in availability.get("pricesByRate") or []:
            for price in rate_group.get("pricePerCategoryUnit") or []:
                amount = price.get("amount") or {}
                category_id = str(price.get("id"))
                found.append(
                    PricingCategory(
                        category_id=category_id,
                        name=category_name(category_id),
                        amount=_amount(amount.get("amount")),
                        currency=str(amount.get("currency") or ""),
                        availability_id=str(availability.get("id", "")),
                        date=str(availability.get("localizedDate") or availability.get("date") or ""),
                    )
                )
    return found


def dedupe_categories(categories: Iterable[PricingCategory]) -> list[PricingCategory]:
    """Keep the first entry per category id, preserving order."""
    seen: set[str] = set()
    unique = []
    for category in categories:
        if category.category_id in seen:
            continue
        seen.add(category.category_id)
        unique.append(category)
    return unique


def to_slot(availability: dict[str, Any]) -> AvailabilitySlot:
    return AvailabilitySlot(
        id=str(availability.get("id", "")),
        date=str(availability.get("localizedDate") or availability.get("date") or ""),
        start_time=str(availability.get("startTime") or ""),
        capacity=availability.get("availabilityCount") or 0,
        booked=availability.get("bookedParticipants") or 0,
        available=not availability.get("unavailable") and not availability.get("soldOut"),
    )


class AvailabilityPricingFetcher:
    """Fetches pricing categories and slots for the next ``lookahead_days``."""

    def __init__(
        self,
        provider: ProviderClient | None = None,
        settings: Settings | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or ProviderClient(self.settings)
        self._today = today or date.today

    def window(self) -> tuple[str, str]:
        start = self._today()
        end = start + timedelta(days=self.settings.lookahead_days)
        return start.isoformat(), end.isoformat()

    async def fetch(self, activity_id: str | None = None) -> PricingResult:
        """Fetch the whole window in one request. Any upstream error aborts."""
        activity_id = activity_id or self.settings.activity_id
        if not self.settings.booking_channel_uuid:
            raise AuthenticationError("Booking channel UUID is not configured")

        start, end = self.window()
        logger.info("Fetching pricing for activity %s (%s..%s)", activity_id, start, end)

        data = await self.provider.get_activity_availabilities(
            activity_id,
            start,
            end,
            self.settings.booking_channel_uuid,
            lang=self.settings.lang,
            currency=self.settings.currency,
        )
        if data is None:
            data = []
        if not isinstance(data, list):
            raise UpstreamHTTPError(
                200, str(data), message="Unexpected availabilities payload (expected a list)"
            )

        categories = dedupe_categories(extract_categories(data))
        slots = [to_slot(a) for a in data]
        logger.info(
            "Pricing fetched: %d categories, %d availabilities", len(categories), len(slots)
        )
        return PricingResult(
            activity_id=activity_id, categories=categories, availabilities=slots, raw=data
        )
