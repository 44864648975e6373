"""
Payment Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from fleetops.app.models.pricing_enums import PaymentStatus, BookingPaymentStatus


class PaymentCreate(BaseModel):
    """Schema for recording a payment against a booking."""
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    status: PaymentStatus = PaymentStatus.PENDING
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentResponse(BaseModel):
    """Schema for displaying a payment."""
    id: int
    booking_id: int
    amount: Decimal
    currency: str
    status: PaymentStatus
    transaction_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class FormattedAmounts(BaseModel):
    fare_amount: str
    paid_amount: str
    remaining_amount: str


class PaymentSummaryResponse(BaseModel):
    """Reconciliation of a booking's fare against its payments."""
    booking_id: int
    quoted_fare: Optional[Decimal]
    final_fare: Optional[Decimal]
    extra_charges_total: Decimal
    fare_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    progress_percent: Decimal
    overpaid_amount: Decimal
    needs_review: bool
    payment_status: BookingPaymentStatus
    currency: str
    formatted: FormattedAmounts
    payments: List[PaymentResponse]
