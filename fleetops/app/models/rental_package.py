"""
Rental Package database model.

A fixed-duration / fixed-distance rental product (e.g. 4 hrs / 40 km).
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from fleetops.app.db.session import Base


class RentalPackage(Base):
    """Rental Package model. Same scoping and soft-delete rules as PricingRule."""
    __tablename__ = "rental_packages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Scope
    service_type_id = Column(Integer, ForeignKey('service_types.id'), nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=False, index=True)
    zone = Column(String(100), nullable=True)

    # Package terms
    name = Column(String(100), nullable=False)
    duration_hours = Column(Numeric(6, 2), nullable=False)
    included_km = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    extra_km_rate = Column(Numeric(10, 2), nullable=False)
    extra_hour_rate = Column(Numeric(10, 2), nullable=False)

    # Waiting and fees
    free_waiting_minutes = Column(Integer, default=0, nullable=False)
    waiting_charge_per_minute = Column(Numeric(10, 2), nullable=True)
    cancellation_fee = Column(Numeric(12, 2), default=0, nullable=False)
    no_show_fee = Column(Numeric(12, 2), default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RentalPackage(id={self.id}, name='{self.name}', vehicle_type='{self.vehicle_type}')>"
