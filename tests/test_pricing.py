# Tests for booking/pricing.py and booking/categories.py
# Created: 2026-10-11

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from charterline.booking.categories import category_name
from charterline.booking.pricing import (
    AvailabilityPricingFetcher,
    dedupe_categories,
    extract_categories,
    to_slot,
)
from charterline.config import Settings
from charterline.errors import AuthenticationError, UpstreamHTTPError


def _availability(avail_id, day, prices, **extra):
    return {
        "id": avail_id,
        "localizedDate": day,
        "startTime": "09:00",
        "availabilityCount": 12,
        "bookedParticipants": 4,
        "pricesByRate": [
            {
                "activityRateId": 1,
                "pricePerCategoryUnit": [
                    {"id": cat_id, "amount": {"amount": amount, "currency": "GBP"}}
                    for cat_id, amount in prices
                ],
            }
        ],
        **extra,
    }


PAYLOAD = [
    _availability("a1", "2024-01-15", [(1001055, 120), (1001057, 60)]),
    _availability("a2", "2024-01-16", [(1001055, 130), (999, 10)], soldOut=True),
]


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.get_activity_availabilities = AsyncMock(return_value=PAYLOAD)
    return provider


@pytest.fixture
def fetcher(provider, settings):
    return AvailabilityPricingFetcher(provider, settings, today=lambda: date(2024, 1, 15))


class TestCategories:
    def test_known(self):
        assert category_name(1001055) == "Adult"
        assert category_name("1001057") == "Child"

    def test_fallback(self):
        assert category_name(999) == "Category 999"


class TestExtraction:
    def test_extract_flattens_all_entries(self):
        assert len(extract_categories(PAYLOAD)) == 4

    def test_dedupe_keeps_first(self):
        unique = dedupe_categories(extract_categories(PAYLOAD))
        assert [c.category_id for c in unique] == ["1001055", "1001057", "999"]
        adult = unique[0]
        assert adult.amount == Decimal("120")
        assert adult.availability_id == "a1"
        assert adult.display == "£120.00"

    def test_dedupe_at_most_one_per_id(self):
        repeated = extract_categories(PAYLOAD * 5)
        unique = dedupe_categories(repeated)
        ids = [c.category_id for c in unique]
        assert len(ids) == len(set(ids))

    def test_missing_price_groups(self):
        assert extract_categories([{"id": "x"}, {"id": "y", "pricesByRate": None}]) == []

    def test_slot_availability(self):
        open_slot = to_slot(PAYLOAD[0])
        sold_out = to_slot(PAYLOAD[1])
        assert open_slot.available is True
        assert open_slot.capacity == 12
        assert open_slot.booked == 4
        assert sold_out.available is False


class TestFetcher:
    def test_window(self, fetcher):
        assert fetcher.window() == ("2024-01-15", "2024-01-22")

    async def test_single_request_for_window(self, fetcher, provider):
        result = await fetcher.fetch()
        provider.get_activity_availabilities.assert_awaited_once_with(
            "1031959", "2024-01-15", "2024-01-22", "channel-uuid", lang="EN", currency="GBP"
        )
        assert result.activity_id == "1031959"
        assert [c.name for c in result.categories] == ["Adult", "Child", "Category 999"]
        assert len(result.availabilities) == 2

    async def test_activity_override(self, fetcher, provider):
        await fetcher.fetch("42")
        assert provider.get_activity_availabilities.await_args.args[0] == "42"

    async def test_upstream_error_aborts(self, fetcher, provider):
        provider.get_activity_availabilities.side_effect = UpstreamHTTPError(503, "down")
        with pytest.raises(UpstreamHTTPError):
            await fetcher.fetch()

    async def test_non_list_payload(self, fetcher, provider):
        provider.get_activity_availabilities.return_value = {"message": "nope"}
        with pytest.raises(UpstreamHTTPError):
            await fetcher.fetch()

    async def test_empty_payload(self, fetcher, provider):
        provider.get_activity_availabilities.return_value = None
        result = await fetcher.fetch()
        assert result.categories == []
        assert result.availabilities == []

    async def test_requires_booking_channel(self, provider):
        fetcher = AvailabilityPricingFetcher(provider, Settings(_env_file=None))
        with pytest.raises(AuthenticationError):
            await fetcher.fetch()
        provider.get_activity_availabilities.assert_not_awaited()
