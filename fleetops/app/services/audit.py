"""
Audit logging service for tracking operator actions.

Every pricing, booking and payment mutation goes through `log_event`.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetops.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    SERVICE_TYPE_CREATED = "SERVICE_TYPE_CREATED"
    SERVICE_TYPE_UPDATED = "SERVICE_TYPE_UPDATED"

    PRICING_RULE_CREATED = "PRICING_RULE_CREATED"
    PRICING_RULE_UPDATED = "PRICING_RULE_UPDATED"
    PRICING_RULE_DEACTIVATED = "PRICING_RULE_DEACTIVATED"

    RENTAL_PACKAGE_CREATED = "RENTAL_PACKAGE_CREATED"
    RENTAL_PACKAGE_UPDATED = "RENTAL_PACKAGE_UPDATED"
    RENTAL_PACKAGE_DEACTIVATED = "RENTAL_PACKAGE_DEACTIVATED"

    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_FARE_OVERRIDDEN = "BOOKING_FARE_OVERRIDDEN"
    BOOKING_STATUS_CHANGED = "BOOKING_STATUS_CHANGED"
    BOOKING_EXTRAS_APPLIED = "BOOKING_EXTRAS_APPLIED"

    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    PAYMENT_STATUS_CHANGED = "PAYMENT_STATUS_CHANGED"
    BOOKING_MARKED_PAID = "BOOKING_MARKED_PAID"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an operator event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_username: Operator performing the action (None for system actions)
        entity_type: Kind of record acted upon ("booking", "pricing_rule", ...)
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON (amounts as strings)
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
