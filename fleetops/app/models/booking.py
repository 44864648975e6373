"""
Booking database model.

A single trip or rental instance with its fare and itemized post-trip extras.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from fleetops.app.db.session import Base
from fleetops.app.models.pricing_enums import BookingStatus, BookingPaymentStatus


class Booking(Base):
    """
    Booking model.

    Fare fields:
    - quoted_fare: engine output, written once when the booking is quoted
    - final_fare: operator-editable, defaults to quoted_fare

    Extras are stored itemized and replaced on every application, so the
    payable `fare_amount` is always derived on read and never accumulated.
    The resolved rule is not stored; it is recomputed when needed.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Pricing scope
    service_type_id = Column(Integer, ForeignKey('service_types.id'), nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=False)
    zone = Column(String(100), nullable=True)

    # Trip details
    customer_name = Column(String(200), nullable=True)
    pickup_address = Column(String(500), nullable=True)
    dropoff_address = Column(String(500), nullable=True)
    distance_km = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Numeric(10, 2), nullable=True)

    # Fares
    quoted_fare = Column(Numeric(12, 2), nullable=True)
    final_fare = Column(Numeric(12, 2), nullable=True)
    fare_override_reason = Column(String(500), nullable=True)

    # Post-trip extras (inputs)
    extra_km_used = Column(Numeric(10, 2), nullable=False, default=0)
    extra_hours_used = Column(Numeric(10, 2), nullable=False, default=0)
    waiting_time_minutes = Column(Numeric(10, 2), nullable=False, default=0)
    upgrade_charges = Column(Numeric(12, 2), nullable=False, default=0)

    # Post-trip extras (itemized charges)
    extra_km_charge = Column(Numeric(12, 2), nullable=False, default=0)
    extra_hour_charge = Column(Numeric(12, 2), nullable=False, default=0)
    waiting_charge = Column(Numeric(12, 2), nullable=False, default=0)

    # Status
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(BookingPaymentStatus), default=BookingPaymentStatus.PENDING, nullable=False)
    cancellation_reason = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def extra_charges_total(self) -> Decimal:
        """Sum of itemized extras, derived on read."""
        return sum(
            (Decimal(value or 0) for value in (
                self.extra_km_charge,
                self.extra_hour_charge,
                self.waiting_charge,
                self.upgrade_charges,
            )),
            Decimal("0"),
        )

    @property
    def fare_amount(self) -> Decimal:
        """Payable amount: final fare plus itemized extras (0 when unpriced)."""
        if self.final_fare is None:
            return self.extra_charges_total
        return Decimal(self.final_fare) + self.extra_charges_total

    def __repr__(self):
        return f"<Booking(id={self.id}, status='{self.status}', final_fare={self.final_fare})>"
