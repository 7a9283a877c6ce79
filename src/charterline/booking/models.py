"""Booking data models.

Created: 2026-10-05

Transient request/response shapes for the booking flow and the dashboard:

- ReservationRequest / UnitItem / GuestContact: input to the hold step
- Booking / BookingStatus: provider booking as seen by this layer
- BookingResult: outcome of a hold -> confirm -> pay attempt
- AvailabilitySlot / PricingCategory: pricing fetch output
- AggregatedBookingRecord: one dashboard row (list node + optional detail)

Nothing here is persisted; the provider is the system of record.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class BookingStatus(str, Enum):
    """Booking lifecycle as driven by the orchestrator."""

    ON_HOLD = "ON_HOLD"  # Perishable hold, lapses after hold_minutes
    CONFIRMED = "CONFIRMED"  # Contact details attached
    PAYMENT_PENDING = "PAYMENT_PENDING"  # Checkout session exists
    PAID = "PAID"  # Reconciled out of band only
    CANCELLED = "CANCELLED"


@dataclass
class GuestContact:
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    country: str = "GB"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_octo(self) -> dict[str, Any]:
        return {
            "fullName": self.full_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "emailAddress": self.email,
            "phoneNumber": self.phone,
            "country": self.country,
        }


@dataclass
class UnitItem:
    """One guest's seat in a booking."""

    unit_id: str
    uuid: str | None = None
    contact: GuestContact | None = None


@dataclass
class ReservationRequest:
    product_id: str
    option_id: str
    availability_id: str
    unit_items: list[UnitItem]
    hold_minutes: int = 30

    def to_octo(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "optionId": self.option_id,
            "availabilityId": self.availability_id,
            "expirationMinutes": self.hold_minutes,
            "unitItems": [{"unitId": item.unit_id} for item in self.unit_items],
        }


@dataclass
class BookingCommand:
    """Caller input for one booking attempt."""

    availability_id: str
    guests: list[GuestContact]
    unit_price: Decimal
    currency: str = "GBP"
    product_id: str = ""
    option_id: str = ""
    unit_id: str = ""
    hold_minutes: int | None = None
    notes: str = ""

    @property
    def lead_guest(self) -> GuestContact:
        return self.guests[0]


@dataclass
class Booking:
    uuid: str
    status: BookingStatus
    supplier_reference: str = ""
    reseller_reference: str = ""
    unit_items: list[UnitItem] = field(default_factory=list)
    total_minor: int | None = None
    currency: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_octo(cls, data: dict[str, Any], default_status: BookingStatus) -> Booking:
        try:
            status = BookingStatus(str(data.get("status") or default_status.value).upper())
        except ValueError:
            status = default_status
        pricing = data.get("pricing")
        if not isinstance(pricing, dict):
            pricing = {}
        retail = pricing.get("retail")
        return cls(
            uuid=str(data.get("uuid") or data.get("id") or ""),
            status=status,
            supplier_reference=str(data.get("supplierReference") or ""),
            reseller_reference=str(data.get("resellerReference") or ""),
            unit_items=[
                UnitItem(unit_id=str(u.get("unitId", "")), uuid=u.get("uuid"))
                for u in data.get("unitItems") or []
                if isinstance(u, dict)
            ],
            total_minor=int(retail) if isinstance(retail, int | float) else None,
            currency=str(pricing.get("currency") or ""),
            raw=data,
        )


@dataclass
class BookingResult:
    booking: Booking
    status: BookingStatus
    checkout_url: str = ""
    checkout_session_id: str = ""
    payment_skipped: bool = False
    amount_minor: int | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_uuid": self.booking.uuid,
            "supplier_reference": self.booking.supplier_reference,
            "reseller_reference": self.booking.reseller_reference,
            "status": self.status.value,
            "checkout_url": self.checkout_url,
            "checkout_session_id": self.checkout_session_id,
            "payment_skipped": self.payment_skipped,
            "amount_minor": self.amount_minor,
            "currency": self.booking.currency,
            "metadata": self.metadata,
        }


@dataclass
class AvailabilitySlot:
    id: str
    date: str
    start_time: str
    capacity: int
    booked: int
    available: bool


@dataclass
class PricingCategory:
    category_id: str
    name: str
    amount: Decimal
    currency: str
    availability_id: str
    date: str

    @property
    def display(self) -> str:
        if self.currency == "GBP":
            return f"£{self.amount:.2f}"
        return f"{self.currency} {self.amount:,}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_id": self.category_id,
            "name": self.name,
            "amount": float(self.amount),
            "currency": self.currency,
            "display": self.display,
            "availability_id": self.availability_id,
            "date": self.date,
        }


@dataclass
class AggregatedBookingRecord:
    """Dashboard row. Every field resolves to detail, list, or a default."""

    id: str
    booking_ref: str
    confirmation_code: str
    customer_name: str
    email: str
    phone: str
    date: str
    time: str
    guests: int
    status: str
    payment_status: str
    amount: Decimal
    currency: str
    formatted_amount: str
    trip_type: str
    created_at: str
    updated_at: str
    enriched: bool = False
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["amount"] = float(self.amount)
        return data
