"""
Payment Service (Domain Logic).

Records payments, moves them through their status workflow and reconciles
them against the booking fare. Reconciliation is always computed from the
current payment rows; no paid/remaining figure is ever stored.
"""

import logging
import time
from typing import List, Optional, Tuple

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.config import settings
from fleetops.app.core.exceptions import InvalidStateTransitionError, ResourceNotFoundError
from fleetops.app.domain.pricing.booking_service import BookingService
from fleetops.app.domain.pricing.payment_reconciler import PaymentReconciliation, reconcile
from fleetops.app.models.booking import Booking
from fleetops.app.models.payment import Payment
from fleetops.app.models.pricing_enums import BookingPaymentStatus, PaymentStatus
from fleetops.app.schemas.payment import PaymentCreate
from fleetops.app.services.audit import log_event, AuditAction

logger = logging.getLogger("fleetops.payments")

# pending -> paid | failed | completed, paid -> completed
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.COMPLETED},
    PaymentStatus.PAID: {PaymentStatus.COMPLETED},
}


class PaymentService:

    @staticmethod
    async def list_payments(db: AsyncSession, booking_id: int) -> List[Payment]:
        """Payments of a booking, newest first."""
        result = await db.execute(
            select(Payment)
            .where(Payment.booking_id == booking_id)
            .order_by(desc(Payment.created_at), desc(Payment.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def summarize(db: AsyncSession, booking_id: int) -> Tuple[Booking, List[Payment], PaymentReconciliation]:
        """Fetch a booking with its payments and reconcile them."""
        booking = await BookingService.get_booking(db, booking_id)
        payments = await PaymentService.list_payments(db, booking_id)
        return booking, payments, reconcile(booking.fare_amount, payments)

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        booking_id: int,
        data: PaymentCreate,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Payment:
        booking = await BookingService.get_booking(db, booking_id)

        payment = Payment(
            booking_id=booking.id,
            amount=data.amount,
            currency=data.currency or settings.currency_code,
            status=data.status,
            transaction_id=data.transaction_id,
        )
        db.add(payment)
        await db.commit()
        await db.refresh(payment)

        logger.info("Payment %s recorded for booking %s: %s %s", payment.id, booking.id, payment.amount, payment.status.value)

        await log_event(
            db=db,
            action=AuditAction.PAYMENT_RECORDED,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={
                "payment_id": payment.id,
                "amount": str(payment.amount),
                "status": payment.status.value,
            },
            ip_address=ip_address
        )

        return payment

    @staticmethod
    async def change_status(
        db: AsyncSession,
        payment_id: int,
        new_status: PaymentStatus,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Payment:
        """Transition a payment's status. Amount and booking never change."""
        payment = await db.get(Payment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        current = payment.status
        if new_status not in PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(
                f"Cannot move payment from {current.value} to {new_status.value}",
                details={"payment_id": payment.id, "from": current.value, "to": new_status.value}
            )

        payment.status = new_status
        await db.commit()
        await db.refresh(payment)

        await log_event(
            db=db,
            action=AuditAction.PAYMENT_STATUS_CHANGED,
            actor_username=actor,
            entity_type="booking",
            entity_id=payment.booking_id,
            metadata={"payment_id": payment.id, "from": current.value, "to": new_status.value},
            ip_address=ip_address
        )

        return payment

    @staticmethod
    async def mark_as_paid(
        db: AsyncSession,
        booking_id: int,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Payment:
        """
        Settle the remaining amount with a manual payment and flag the booking paid.

        Raises:
            InvalidStateTransitionError: If nothing remains to be paid.
        """
        booking, _, reconciliation = await PaymentService.summarize(db, booking_id)

        if reconciliation.remaining_amount <= 0:
            raise InvalidStateTransitionError(
                "No remaining amount to mark as paid",
                details={"booking_id": booking.id, "paid_amount": str(reconciliation.paid_amount)}
            )

        payment = Payment(
            booking_id=booking.id,
            amount=reconciliation.remaining_amount,
            currency=settings.currency_code,
            status=PaymentStatus.PAID,
            transaction_id=f"MANUAL_{int(time.time() * 1000)}",
        )
        db.add(payment)
        booking.payment_status = BookingPaymentStatus.PAID

        await db.commit()
        await db.refresh(payment)

        logger.info("Booking %s marked paid with manual payment of %s", booking.id, payment.amount)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_MARKED_PAID,
            actor_username=actor,
            entity_type="booking",
            entity_id=booking.id,
            metadata={"payment_id": payment.id, "amount": str(payment.amount)},
            ip_address=ip_address
        )

        return payment
