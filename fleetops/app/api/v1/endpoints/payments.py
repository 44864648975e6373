"""
Payment API Endpoints.

Records payments against bookings and serves the reconciled payment view.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.db.session import get_db
from fleetops.app.core.config import settings
from fleetops.app.core.dependencies import get_operator, client_ip
from fleetops.app.domain.pricing.booking_service import BookingService
from fleetops.app.domain.pricing.money import format_currency
from fleetops.app.domain.pricing.payment_service import PaymentService
from fleetops.app.schemas.payment import (
    PaymentCreate, PaymentResponse, PaymentStatusUpdate,
    PaymentSummaryResponse, FormattedAmounts,
)

booking_router = APIRouter(prefix="/bookings", tags=["Payments"])
router = APIRouter(prefix="/payments", tags=["Payments"])


@booking_router.post(
    "/{booking_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED
)
async def record_payment(
    booking_id: int,
    data: PaymentCreate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    payment = await PaymentService.record_payment(
        db, booking_id, data, actor=operator, ip_address=client_ip(request)
    )
    return PaymentResponse.model_validate(payment)


@booking_router.get("/{booking_id}/payments", response_model=List[PaymentResponse])
async def list_payments(booking_id: int, db: AsyncSession = Depends(get_db)):
    """
    Payments of a booking, newest first.
    """
    await BookingService.get_booking(db, booking_id)
    payments = await PaymentService.list_payments(db, booking_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@booking_router.get("/{booking_id}/payment-summary", response_model=PaymentSummaryResponse)
async def payment_summary(booking_id: int, db: AsyncSession = Depends(get_db)):
    """
    Reconcile the booking's fare against its payments.

    Computed on every request from the current payment rows.
    """
    booking, payments, reconciliation = await PaymentService.summarize(db, booking_id)
    symbol = settings.currency_symbol

    return PaymentSummaryResponse(
        booking_id=booking.id,
        quoted_fare=booking.quoted_fare,
        final_fare=booking.final_fare,
        extra_charges_total=booking.extra_charges_total,
        fare_amount=booking.fare_amount,
        paid_amount=reconciliation.paid_amount,
        remaining_amount=reconciliation.remaining_amount,
        progress_percent=reconciliation.progress_percent,
        overpaid_amount=reconciliation.overpaid_amount,
        needs_review=reconciliation.overpaid_amount > 0,
        payment_status=booking.payment_status,
        currency=settings.currency_code,
        formatted=FormattedAmounts(
            fare_amount=format_currency(booking.fare_amount, symbol),
            paid_amount=format_currency(reconciliation.paid_amount, symbol),
            remaining_amount=format_currency(reconciliation.remaining_amount, symbol),
        ),
        payments=[PaymentResponse.model_validate(p) for p in payments],
    )


@booking_router.post("/{booking_id}/mark-paid", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def mark_booking_paid(
    booking_id: int,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a manual payment for the remaining amount and flag the booking paid.

    Returns 409 when nothing remains to be paid.
    """
    payment = await PaymentService.mark_as_paid(
        db, booking_id, actor=operator, ip_address=client_ip(request)
    )
    return PaymentResponse.model_validate(payment)


@router.post("/{payment_id}/status", response_model=PaymentResponse)
async def change_payment_status(
    payment_id: int,
    data: PaymentStatusUpdate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    payment = await PaymentService.change_status(
        db, payment_id, data.status, actor=operator, ip_address=client_ip(request)
    )
    return PaymentResponse.model_validate(payment)
