"""
Booking Pricing Service (Domain Logic).

Drives a booking's fare through its lifecycle:
1. Quote at creation (resolver + fare calculator)
2. Operator overrides of the final fare
3. Lifecycle transitions, optionally charging a cancellation / no-show fee
4. Post-trip extras once the booking is completed

A missing rule never blocks booking creation; it only leaves the fare empty
for an operator to fill in.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.exceptions import (
    ConflictError,
    InvalidRuleError,
    InvalidStateTransitionError,
    PricingNotConfiguredError,
    ResourceNotFoundError,
)
from fleetops.app.domain.pricing import extra_charges
from fleetops.app.domain.pricing.catalog import RuleTerms
from fleetops.app.domain.pricing.extra_charges import ExtraChargeBreakdown
from fleetops.app.domain.pricing.fare_calculator import compute_fare, penalty_fee
from fleetops.app.domain.pricing.money import non_negative, quantize_money
from fleetops.app.domain.pricing.payment_reconciler import reconcile
from fleetops.app.domain.pricing.rule_resolver import PricingResolver
from fleetops.app.models.booking import Booking
from fleetops.app.models.payment import Payment
from fleetops.app.models.pricing_enums import BookingPaymentStatus, BookingStatus, PenaltyKind
from fleetops.app.models.service_type import ServiceType
from fleetops.app.schemas.booking import BookingCreate
from fleetops.app.services.audit import log_event, AuditAction

logger = logging.getLogger("fleetops.bookings")

# pending -> accepted -> started -> completed, or cancelled / no_driver
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.ACCEPTED, BookingStatus.CANCELLED, BookingStatus.NO_DRIVER},
    BookingStatus.ACCEPTED: {BookingStatus.STARTED, BookingStatus.CANCELLED},
    BookingStatus.STARTED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
}


def _money_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class BookingService:

    @staticmethod
    async def get_service_type(db: AsyncSession, service_type_id: int) -> ServiceType:
        service_type = await db.get(ServiceType, service_type_id)
        if not service_type:
            raise ResourceNotFoundError("Service type", service_type_id)
        return service_type

    @staticmethod
    async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
        booking = await db.get(Booking, booking_id)
        if not booking:
            raise ResourceNotFoundError("Booking", booking_id)
        return booking

    @staticmethod
    async def reopen_payment_status(db: AsyncSession, booking: Booking) -> None:
        """
        Drop a paid booking back to pending when its payable amount grew
        past what has been settled.
        """
        if booking.payment_status != BookingPaymentStatus.PAID:
            return

        result = await db.execute(select(Payment).where(Payment.booking_id == booking.id))
        reconciliation = reconcile(booking.fare_amount, result.scalars().all())
        if reconciliation.remaining_amount > 0:
            logger.info(
                "Booking %s reopened for payment, %s remaining",
                booking.id, reconciliation.remaining_amount
            )
            booking.payment_status = BookingPaymentStatus.PENDING

    @staticmethod
    async def quote(
        db: AsyncSession,
        service_type: ServiceType,
        vehicle_type: str,
        zone: Optional[str],
        distance_km: Any,
        duration_minutes: Any = None,
    ) -> Tuple[RuleTerms, Decimal]:
        """
        Resolve the applicable rule and compute the estimate.

        Raises:
            PricingNotConfiguredError, InvalidRuleError, FareValidationError
        """
        rule = await PricingResolver.resolve_for_scope(db, service_type, vehicle_type, zone)
        return rule, compute_fare(rule, distance_km, duration_minutes)

    @staticmethod
    async def create_booking(
        db: AsyncSession,
        data: BookingCreate,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[Booking, Optional[str]]:
        """
        Create a booking and quote its fare.

        Returns:
            (booking, pricing_message) where pricing_message explains why the
            fare is empty, or None when the quote succeeded.
        """
        service_type = await BookingService.get_service_type(db, data.service_type_id)
        if not service_type.is_active:
            raise ConflictError(
                f"Service type '{service_type.name}' is inactive",
                details={"service_type_id": service_type.id}
            )

        quoted_fare = None
        pricing_message = None
        try:
            _, quoted_fare = await BookingService.quote(
                db, service_type, data.vehicle_type, data.zone,
                data.distance_km, data.duration_minutes
            )
        except (PricingNotConfiguredError, InvalidRuleError) as exc:
            pricing_message = exc.message
            logger.warning("Booking created without automatic fare: %s", exc.message)

        booking = Booking(
            service_type_id=service_type.id,
            vehicle_type=data.vehicle_type,
            zone=data.zone,
            customer_name=data.customer_name,
            pickup_address=data.pickup_address,
            dropoff_address=data.dropoff_address,
            distance_km=data.distance_km,
            duration_minutes=data.duration_minutes,
            quoted_fare=quoted_fare,
            final_fare=quoted_fare,
            status=BookingStatus.PENDING,
        )

        db.add(booking)
        await db.commit()
        await db.refresh(booking)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_CREATED,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={
                "quoted_fare": _money_str(quoted_fare),
                "pricing_message": pricing_message,
            },
            ip_address=ip_address
        )

        return booking, pricing_message

    @staticmethod
    async def override_fare(
        db: AsyncSession,
        booking_id: int,
        final_fare: Any,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Booking:
        """
        Overwrite the booking's final fare. The quoted fare is left untouched.
        """
        booking = await BookingService.get_booking(db, booking_id)
        new_fare = quantize_money(non_negative(final_fare, "final_fare"))
        previous = booking.final_fare

        booking.final_fare = new_fare
        booking.fare_override_reason = reason
        await BookingService.reopen_payment_status(db, booking)

        await db.commit()
        await db.refresh(booking)

        logger.info("Booking %s final fare overridden %s -> %s", booking.id, previous, new_fare)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_FARE_OVERRIDDEN,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={
                "quoted_fare": _money_str(booking.quoted_fare),
                "previous_final_fare": _money_str(previous),
                "final_fare": _money_str(new_fare),
                "reason": reason,
            },
            ip_address=ip_address
        )

        return booking

    @staticmethod
    async def change_status(
        db: AsyncSession,
        booking_id: int,
        new_status: BookingStatus,
        reason: Optional[str] = None,
        penalty: Optional[PenaltyKind] = None,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking along its lifecycle.

        When cancelling with a penalty, the resolved rule's cancellation or
        no-show fee replaces the final fare.
        """
        booking = await BookingService.get_booking(db, booking_id)
        current = booking.status

        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(
                f"Cannot move booking from {current.value} to {new_status.value}",
                details={"booking_id": booking.id, "from": current.value, "to": new_status.value}
            )

        if penalty is not None and new_status != BookingStatus.CANCELLED:
            raise InvalidStateTransitionError(
                "Penalty fees only apply when cancelling a booking",
                details={"booking_id": booking.id, "penalty": penalty.value}
            )

        previous_fare = booking.final_fare
        if penalty is not None:
            service_type = await BookingService.get_service_type(db, booking.service_type_id)
            rule = await PricingResolver.resolve_for_scope(
                db, service_type, booking.vehicle_type, booking.zone
            )
            booking.final_fare = penalty_fee(rule, penalty)
            booking.fare_override_reason = f"{penalty.value} fee"
            await BookingService.reopen_payment_status(db, booking)

        if new_status in (BookingStatus.CANCELLED, BookingStatus.NO_DRIVER):
            booking.cancellation_reason = reason

        booking.status = new_status
        await db.commit()
        await db.refresh(booking)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_STATUS_CHANGED,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={
                "from": current.value,
                "to": new_status.value,
                "reason": reason,
                "penalty": penalty.value if penalty else None,
                "previous_final_fare": _money_str(previous_fare),
                "final_fare": _money_str(booking.final_fare),
            },
            ip_address=ip_address
        )

        return booking

    @staticmethod
    async def apply_extras(
        db: AsyncSession,
        booking_id: int,
        extras: Dict[str, Any],
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[Booking, ExtraChargeBreakdown]:
        """
        Store itemized post-trip extras for a completed booking.

        Values replace whatever was stored before, so repeating the call
        with the same extras leaves the payable amount unchanged.
        """
        booking = await BookingService.get_booking(db, booking_id)
        if booking.status != BookingStatus.COMPLETED:
            raise InvalidStateTransitionError(
                "Extras can only be applied to completed bookings",
                details={"booking_id": booking.id, "status": booking.status.value}
            )

        service_type = await BookingService.get_service_type(db, booking.service_type_id)
        rule = await PricingResolver.resolve_for_scope(db, service_type, booking.vehicle_type, booking.zone)
        breakdown = extra_charges.apply_extras(booking.final_fare, rule, extras)

        booking.extra_km_used = breakdown.extra_km_used
        booking.extra_hours_used = breakdown.extra_hours_used
        booking.waiting_time_minutes = breakdown.waiting_time_minutes
        booking.upgrade_charges = breakdown.upgrade_charges
        booking.extra_km_charge = breakdown.extra_km_charge
        booking.extra_hour_charge = breakdown.extra_hour_charge
        booking.waiting_charge = breakdown.waiting_charge
        await BookingService.reopen_payment_status(db, booking)

        await db.commit()
        await db.refresh(booking)

        logger.info("Booking %s extras applied, total %s", booking.id, breakdown.total)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_EXTRAS_APPLIED,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={
                "rule_kind": rule.kind.value,
                "rule_id": rule.id,
                "extra_km_charge": str(breakdown.extra_km_charge),
                "extra_hour_charge": str(breakdown.extra_hour_charge),
                "waiting_charge": str(breakdown.waiting_charge),
                "upgrade_charges": str(breakdown.upgrade_charges),
                "total": str(breakdown.total),
            },
            ip_address=ip_address
        )

        return booking, breakdown
