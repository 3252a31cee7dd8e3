"""
Audit logging service for tracking security events and bookkeeping actions.

Provides centralized logging for compliance and security monitoring.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from erp_backend.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"

    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"

    # Accounting
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
    TRANSACTION_RECORDED = "TRANSACTION_RECORDED"
    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_STATUS_CHANGED = "INVOICE_STATUS_CHANGED"

    # Inventory
    PRODUCT_CREATED = "PRODUCT_CREATED"
    MOVEMENT_RECORDED = "MOVEMENT_RECORDED"
    ALERT_RESOLVED = "ALERT_RESOLVED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor: Optional[Dict[str, Any]] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Write one audit record and commit it.

    Must be called after the business write has been committed, so a
    failing audit insert never rolls back the audited change. A failed
    insert is logged and rolled back; the caller still gets its response.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor: Identity dict of the caller (user_id, sub), None for system actions
        entity_type: Kind of record touched ("account", "invoice", ...)
        entity_id: Primary key of the record touched
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance, or None when the insert failed
    """
    audit_log = AuditLog(
        actor_id=actor.get("user_id") if actor else None,
        actor_email=actor.get("sub") if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Audit record %s for %s %s was not written", action, entity_type, entity_id)
        return None

    await db.refresh(audit_log)
    return audit_log


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    email: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Log an authentication event (login success/failure, logout).

    Args:
        user_id: ID of the user, None when the email matched nobody
        email: Email used in the attempt
    """
    return await log_event(
        db=db,
        action=action,
        actor={"user_id": user_id, "sub": email},
        entity_type="user",
        entity_id=user_id,
        metadata=metadata,
        ip_address=ip_address
    )


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    actor_id: Optional[int] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if action:
        query = query.where(AuditLog.action == action)

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


def client_ip(request) -> Optional[str]:
    """Best-effort caller address for audit records."""
    return request.client.host if request.client else None
