"""
Payment Reconciler.

Read-time projection of a booking's payments against its fare. Nothing here
is stored; it is recomputed whenever the payment set is read.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from fleetops.app.domain.pricing.money import ZERO, non_negative, quantize_money
from fleetops.app.models.pricing_enums import PaymentStatus

SETTLED_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.COMPLETED})

HUNDRED = Decimal("100")


class PaymentReconciliation(BaseModel):
    paid_amount: Decimal
    remaining_amount: Decimal
    progress_percent: Decimal
    overpaid_amount: Decimal

    class Config:
        frozen = True


def is_settled(payment: Any) -> bool:
    return PaymentStatus(payment.status) in SETTLED_STATUSES


def reconcile(fare_amount: Optional[Any], payments: Iterable[Any]) -> PaymentReconciliation:
    """
    Compute paid, remaining and progress figures for a booking.

    Only paid/completed payments count. Overpayment is surfaced through
    `overpaid_amount` and never makes `remaining_amount` negative.

    Args:
        fare_amount: payable fare of the booking (None counts as zero)
        payments: objects exposing `amount` and `status`

    Raises:
        FareValidationError: negative or non-numeric fare or payment amount
    """
    fare = non_negative(fare_amount, "fare_amount") if fare_amount is not None else ZERO

    paid = ZERO
    for payment in payments:
        amount = non_negative(payment.amount, "payment.amount")
        if is_settled(payment):
            paid += amount

    remaining = max(ZERO, fare - paid)
    if fare <= 0:
        progress = ZERO
    else:
        progress = min(HUNDRED, paid / fare * HUNDRED)

    return PaymentReconciliation(
        paid_amount=quantize_money(paid),
        remaining_amount=quantize_money(remaining),
        progress_percent=quantize_money(progress),
        overpaid_amount=quantize_money(max(ZERO, paid - fare)),
    )
