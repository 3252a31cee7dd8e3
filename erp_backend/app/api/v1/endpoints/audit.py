"""
Audit trail API endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from erp_backend.app.db.session import get_db
from erp_backend.app.schemas.audit import AuditTrailResponse, AuditLogResponse
from erp_backend.app.core.guards import require_permission
from erp_backend.app.core.permissions import Permission
from erp_backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("", response_model=AuditTrailResponse)
async def list_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    limit: int = Query(100, ge=1, le=500, description="Max records to return"),
    current_user: dict = Depends(require_permission(Permission.USERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Audit records, most recent first."""
    logs = await get_audit_trail(db=db, action=action, entity_type=entity_type, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
