"""
Role API endpoints (read-only).
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from erp_backend.app.db.session import get_db
from erp_backend.app.models.role import Role
from erp_backend.app.schemas.auth import RoleResponse
from erp_backend.app.core.exceptions import ResourceNotFoundError
from erp_backend.app.core.guards import require_permission
from erp_backend.app.core.permissions import ADMIN_ROLE, Permission

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    current_user: dict = Depends(require_permission(Permission.USERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Assignable roles ordered by name; the admin role is never listed."""
    result = await db.execute(select(Role).where(Role.name != ADMIN_ROLE).order_by(Role.name))
    return [RoleResponse.model_validate(r) for r in result.scalars().all()]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int,
    current_user: dict = Depends(require_permission(Permission.USERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    role = await db.get(Role, role_id)
    if not role:
        raise ResourceNotFoundError("Role", role_id)
    return RoleResponse.model_validate(role)
