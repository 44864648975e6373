"""
Pricing Rule database model.

Defines one fare formula for a (service type, vehicle type, zone) scope.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from fleetops.app.db.session import Base


class PricingRule(Base):
    """
    Pricing Rule model.

    A NULL zone is a wildcard that matches any requested zone.
    Rules are soft-deactivated, never deleted, so past bookings stay explainable.
    """
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Scope
    service_type_id = Column(Integer, ForeignKey('service_types.id'), nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=False, index=True)
    zone = Column(String(100), nullable=True)

    # Fare formula
    base_fare = Column(Numeric(12, 2), nullable=False)
    per_km_rate = Column(Numeric(10, 2), nullable=False)
    per_minute_rate = Column(Numeric(10, 2), nullable=True)
    minimum_fare = Column(Numeric(12, 2), default=0, nullable=False)
    surge_multiplier = Column(Numeric(5, 2), default=1, nullable=False)

    # Fees and waiting
    cancellation_fee = Column(Numeric(12, 2), default=0, nullable=False)
    no_show_fee = Column(Numeric(12, 2), default=0, nullable=False)
    waiting_charge_per_minute = Column(Numeric(10, 2), default=0, nullable=False)
    free_waiting_minutes = Column(Integer, default=5, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<PricingRule(id={self.id}, vehicle_type='{self.vehicle_type}', "
            f"zone={self.zone!r}, base_fare={self.base_fare})>"
        )
