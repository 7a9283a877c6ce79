# Booking Orchestrator - hold -> confirm -> pay across the provider and Stripe.
# Created: 2026-10-06
#
# Each step is one round trip. There is no compensation between steps: if
# confirm fails the ON_HOLD booking is left to lapse after hold_minutes.
# This layer never marks a booking PAID; payment is reconciled elsewhere.

from __future__ import annotations

import logging
import secrets
from decimal import Decimal

from charterline.booking.models import (
    Booking,
    BookingCommand,
    BookingResult,
    BookingStatus,
    ReservationRequest,
    UnitItem,
)
from charterline.config import Settings, get_settings
from charterline.errors import (
    AuthenticationError,
    BookingError,
    ConfirmationError,
    ReservationError,
    UpstreamHTTPError,
)
from charterline.integrations.payments import PaymentGateway, to_minor_units
from charterline.integrations.provider import ProviderClient

logger = logging.getLogger(__name__)


# Statuses a confirm response may carry; ON_HOLD is promoted to CONFIRMED
_CONFIRMABLE = frozenset({BookingStatus.CONFIRMED.value, BookingStatus.ON_HOLD.value})


def new_reseller_reference() -> str:
    return f"CL-{secrets.token_hex(5).upper()}"


class BookingOrchestrator:
    """Drives one booking attempt through the provider and the payment gateway.

    ``payments`` may be None (or unconfigured); the booking then stops at
    CONFIRMED with ``payment_skipped=True``.
    """

    def __init__(
        self,
        provider: ProviderClient | None = None,
        payments: PaymentGateway | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or ProviderClient(self.settings)
        self.payments = payments

    def build_reservation(self, command: BookingCommand) -> ReservationRequest:
        unit_id = command.unit_id or self.settings.adult_unit_id
        return ReservationRequest(
            product_id=command.product_id or self.settings.activity_id,
            option_id=command.option_id or self.settings.option_id,
            availability_id=command.availability_id,
            unit_items=[UnitItem(unit_id=unit_id, contact=g) for g in command.guests],
            hold_minutes=command.hold_minutes or self.settings.hold_minutes,
        )

    async def reserve(self, request: ReservationRequest) -> Booking:
        """Step 1: create the ON_HOLD booking."""
        try:
            data = await self.provider.reserve(request.to_octo())
        except (UpstreamHTTPError, AuthenticationError) as e:
            logger.error("Reservation failed for %s: %s", request.availability_id, e)
            raise ReservationError(f"Reservation failed: {e}", cause=e) from e

        if data and not isinstance(data, dict):
            raise ReservationError("Reservation response is not an object")
        booking = Booking.from_octo(data or {}, BookingStatus.ON_HOLD)
        if not booking.uuid:
            raise ReservationError("Reservation response carried no booking uuid")
        logger.info(
            "Reserved booking %s (%d units, hold %d min)",
            booking.uuid,
            len(request.unit_items),
            request.hold_minutes,
        )
        return booking

    async def confirm(self, booking: Booking, command: BookingCommand) -> Booking:
        """Step 2: attach reseller reference and per-guest contacts."""
        if not booking.uuid:
            raise ConfirmationError("Cannot confirm without a reservation uuid", "")

        reseller_reference = new_reseller_reference()
        unit_uuids = [u.uuid for u in booking.unit_items]
        unit_items = []
        for index, guest in enumerate(command.guests):
            item = {"contact": guest.to_octo()}
            if index < len(unit_uuids) and unit_uuids[index]:
                item["uuid"] = unit_uuids[index]
            unit_items.append(item)

        body = {
            "resellerReference": reseller_reference,
            "contact": command.lead_guest.to_octo(),
            "unitItems": unit_items,
        }
        if command.notes:
            body["notes"] = command.notes

        try:
            data = await self.provider.confirm(booking.uuid, body)
        except (UpstreamHTTPError, AuthenticationError) as e:
            logger.warning(
                "Confirmation failed for %s; hold left to lapse upstream: %s", booking.uuid, e
            )
            raise ConfirmationError(f"Confirmation failed: {e}", booking.uuid, cause=e) from e

        data = data or {}
        if not isinstance(data, dict):
            raise ConfirmationError("Confirmation response is not an object", booking.uuid)
        reported = str(data.get("status") or BookingStatus.CONFIRMED.value).upper()
        if reported not in _CONFIRMABLE:
            logger.warning(
                "Confirmation of %s came back %s; hold left to lapse upstream",
                booking.uuid,
                reported,
            )
            raise ConfirmationError(
                f"Confirmation returned booking status {reported}", booking.uuid
            )

        confirmed = Booking.from_octo(data, BookingStatus.CONFIRMED)
        confirmed.uuid = confirmed.uuid or booking.uuid
        confirmed.reseller_reference = confirmed.reseller_reference or reseller_reference
        confirmed.unit_items = [
            UnitItem(unit_id=u.unit_id, uuid=u.uuid, contact=g)
            for u, g in zip(confirmed.unit_items or booking.unit_items, command.guests, strict=False)
        ]
        if confirmed.total_minor is None:
            confirmed.total_minor = booking.total_minor
            confirmed.currency = confirmed.currency or booking.currency
        if confirmed.status == BookingStatus.ON_HOLD:
            confirmed.status = BookingStatus.CONFIRMED
        logger.info("Confirmed booking %s (%s)", confirmed.uuid, confirmed.reseller_reference)
        return confirmed

    def total_minor(self, booking: Booking, command: BookingCommand) -> tuple[int, str]:
        """Amount to charge in minor units; provider pricing wins over unit price."""
        if booking.total_minor is not None:
            return booking.total_minor, booking.currency or command.currency
        total = Decimal(command.unit_price) * len(command.guests)
        return to_minor_units(total, command.currency), command.currency

    async def pay(self, booking: Booking, command: BookingCommand) -> BookingResult:
        """Step 3: open a checkout session for the confirmed booking."""
        if booking.status != BookingStatus.CONFIRMED:
            raise BookingError(f"Cannot open payment for booking in state {booking.status.value}")

        amount_minor, currency = self.total_minor(booking, command)
        booking.currency = booking.currency or currency
        metadata = {
            "booking_uuid": booking.uuid,
            "supplier_reference": booking.supplier_reference,
            "reseller_reference": booking.reseller_reference,
        }
        guests = len(command.guests)
        description = f"{self.settings.product_name} - {guests} guest{'s' if guests != 1 else ''}"

        session = await self.payments.create_checkout_session(
            booking_uuid=booking.uuid,
            amount_minor=amount_minor,
            currency=currency,
            description=description,
            metadata=metadata,
            customer_email=command.lead_guest.email or None,
        )
        booking.status = BookingStatus.PAYMENT_PENDING
        return BookingResult(
            booking=booking,
            status=BookingStatus.PAYMENT_PENDING,
            checkout_url=session.url,
            checkout_session_id=session.id,
            amount_minor=amount_minor,
            metadata=session.metadata,
        )

    async def create_booking(self, command: BookingCommand) -> BookingResult:
        """Run reserve, confirm and (if configured) pay in order."""
        if not command.guests:
            raise ReservationError("At least one guest is required")

        request = self.build_reservation(command)
        held = await self.reserve(request)
        confirmed = await self.confirm(held, command)

        if self.payments is None or not self.payments.configured:
            logger.info("Payment gateway not configured; booking %s left CONFIRMED", confirmed.uuid)
            amount_minor, _ = self.total_minor(confirmed, command)
            return BookingResult(
                booking=confirmed,
                status=BookingStatus.CONFIRMED,
                payment_skipped=True,
                amount_minor=amount_minor,
            )

        return await self.pay(confirmed, command)
