"""
Booking Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from fleetops.app.models.pricing_enums import BookingStatus, BookingPaymentStatus, PenaltyKind


class BookingCreate(BaseModel):
    """Schema for creating a booking. The fare is quoted automatically."""
    service_type_id: int
    vehicle_type: str = Field(..., min_length=1, max_length=50)
    zone: Optional[str] = Field(None, max_length=100)
    customer_name: Optional[str] = Field(None, max_length=200)
    pickup_address: Optional[str] = Field(None, max_length=500)
    dropoff_address: Optional[str] = Field(None, max_length=500)
    distance_km: Decimal = Field(..., ge=0, decimal_places=2)
    duration_minutes: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class BookingResponse(BaseModel):
    """Schema for displaying a booking."""
    id: int
    service_type_id: int
    vehicle_type: str
    zone: Optional[str]
    customer_name: Optional[str]
    pickup_address: Optional[str]
    dropoff_address: Optional[str]
    distance_km: Decimal
    duration_minutes: Optional[Decimal]
    quoted_fare: Optional[Decimal]
    final_fare: Optional[Decimal]
    fare_override_reason: Optional[str]
    extra_km_used: Decimal
    extra_hours_used: Decimal
    waiting_time_minutes: Decimal
    upgrade_charges: Decimal
    extra_km_charge: Decimal
    extra_hour_charge: Decimal
    waiting_charge: Decimal
    extra_charges_total: Decimal
    fare_amount: Decimal
    status: BookingStatus
    payment_status: BookingPaymentStatus
    cancellation_reason: Optional[str]
    created_at: datetime
    pricing_message: Optional[str] = None

    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int
    page: int
    page_size: int


class FareOverrideRequest(BaseModel):
    """Operator override of the final fare. Bypasses the fare calculator."""
    final_fare: Decimal = Field(..., ge=0, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=500, description="Recommended for audit")


class BookingStatusUpdate(BaseModel):
    """Lifecycle transition request."""
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=500)
    penalty: Optional[PenaltyKind] = Field(None, description="Charge the rule's fee; only when cancelling")


class BookingExtrasRequest(BaseModel):
    """Post-trip extras. Each application replaces the previous values."""
    extra_km_used: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    extra_hours_used: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    waiting_time_minutes: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    upgrade_charges: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class ExtraChargesResponse(BaseModel):
    booking_id: int
    extra_km_charge: Decimal
    extra_hour_charge: Decimal
    waiting_charge: Decimal
    upgrade_charges: Decimal
    billable_waiting_minutes: Decimal
    total: Decimal
    fare_amount: Decimal


class AuditEntryResponse(BaseModel):
    id: int
    action: str
    actor_username: Optional[str]
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True
