# Booking schemas.
# Created: 2026-10-08

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from charterline.booking.models import BookingCommand, GuestContact


class GuestIn(BaseModel):
    """One guest's contact details."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = ""
    country: str = "GB"

    def to_contact(self) -> GuestContact:
        return GuestContact(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            country=self.country,
        )


class BookingCreateRequest(BaseModel):
    """Public booking form submission. The first guest is the lead contact."""

    availability_id: str = Field(..., min_length=1)
    guests: list[GuestIn] = Field(..., min_length=1)
    unit_price: Decimal = Field(..., ge=0)
    currency: str = "GBP"
    product_id: str = ""
    option_id: str = ""
    unit_id: str = ""
    hold_minutes: int | None = Field(None, ge=1, le=1440)
    notes: str = ""

    def to_command(self) -> BookingCommand:
        return BookingCommand(
            availability_id=self.availability_id,
            guests=[g.to_contact() for g in self.guests],
            unit_price=self.unit_price,
            currency=self.currency.upper(),
            product_id=self.product_id,
            option_id=self.option_id,
            unit_id=self.unit_id,
            hold_minutes=self.hold_minutes,
            notes=self.notes,
        )


class BookingCreateResponse(BaseModel):
    """Outcome of a hold -> confirm -> pay attempt."""

    success: bool = True
    booking_uuid: str
    supplier_reference: str = ""
    reseller_reference: str = ""
    status: str
    checkout_url: str = ""
    checkout_session_id: str = ""
    payment_skipped: bool = False
    amount_minor: int | None = None
    currency: str = ""
    metadata: dict[str, str] = {}
