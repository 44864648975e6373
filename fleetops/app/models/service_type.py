"""
Service Type database model.

A category of bookable service (metered ride, airport transfer, rental, ...).
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from fleetops.app.db.session import Base


class ServiceType(Base):
    """
    Service Type model.

    Pricing rules and rental packages are scoped by service type.
    `name`, `zone_based_pricing` and `uses_rental_packages` are frozen
    once any rule or package references the type.
    """
    __tablename__ = "service_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(50), nullable=False, unique=True, index=True)  # Machine name
    display_name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    # Pricing behaviour
    zone_based_pricing = Column(Boolean, default=False, nullable=False)
    uses_rental_packages = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<ServiceType(id={self.id}, name='{self.name}')>"
