"""
Audit logging service for tracking writes to the books.

Events are written inside the caller's unit of work, so an audit row exists
exactly when the change it describes was committed.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from travel_ledger.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    ACCOUNT_REGISTERED = "ACCOUNT_REGISTERED"
    ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"

    VOUCHER_POSTED = "VOUCHER_POSTED"
    VOUCHER_UPDATED = "VOUCHER_UPDATED"
    VOUCHER_DELETED = "VOUCHER_DELETED"
    VOUCHER_VOIDED = "VOUCHER_VOIDED"

    CONFIG_UPDATED = "CONFIG_UPDATED"
    DATABASE_IMPORTED = "DATABASE_IMPORTED"


async def log_event(
    db: AsyncSession,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Record an event in the audit log.

    Flushes but does not commit; the surrounding unit of work decides.

    Args:
        db: Database session of the current unit of work
        action: Action being performed (use AuditAction constants)
        entity_type: "account", "voucher", "config" or "database"
        entity_id: ID of the entity acted upon
        metadata: Additional context as JSON (values must be JSON-serializable)

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_id: Filter by entity ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
