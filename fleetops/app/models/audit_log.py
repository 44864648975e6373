"""
Audit Log Database Model.

Tracks every operator mutation of pricing, bookings and payments.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleetops.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking operator actions.

    Events logged:
    - SERVICE_TYPE_* / PRICING_RULE_* / RENTAL_PACKAGE_*
    - BOOKING_CREATED / BOOKING_FARE_OVERRIDDEN / BOOKING_STATUS_CHANGED
    - BOOKING_EXTRAS_APPLIED
    - PAYMENT_RECORDED / PAYMENT_STATUS_CHANGED / BOOKING_MARKED_PAID
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
