"""
Initial data: the four base roles and the administrator account.

Idempotent: existing roles and users are left untouched.
"""

import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erp_backend.app.core.config import settings
from erp_backend.app.core.permissions import ADMIN_ROLE, WILDCARD, Permission
from erp_backend.app.core.security import get_password_hash
from erp_backend.app.models.role import Role
from erp_backend.app.models.user import User

logger = logging.getLogger(__name__)

BASE_ROLES = [
    {
        "name": ADMIN_ROLE,
        "description": "System administrator",
        "permissions": [WILDCARD],
    },
    {
        "name": "usuario",
        "description": "Basic user",
        "permissions": [Permission.DASHBOARD_READ, Permission.PROFILE_READ],
    },
    {
        "name": "contabilidad",
        "description": "Accounting department",
        "permissions": [Permission.DASHBOARD_READ, Permission.ACCOUNTING_READ, Permission.ACCOUNTING_WRITE],
    },
    {
        "name": "almacen",
        "description": "Warehouse department",
        "permissions": [Permission.DASHBOARD_READ, Permission.INVENTORY_READ, Permission.INVENTORY_WRITE],
    },
]


async def seed_roles(db: AsyncSession) -> Dict[str, Role]:
    """Create missing base roles; returns every base role by name."""
    result = await db.execute(select(Role).where(Role.name.in_([r["name"] for r in BASE_ROLES])))
    roles = {role.name: role for role in result.scalars().all()}

    for spec in BASE_ROLES:
        if spec["name"] not in roles:
            role = Role(**spec)
            db.add(role)
            roles[role.name] = role
            logger.info("Seeding role %s", role.name)

    await db.commit()
    return roles


async def seed_admin(db: AsyncSession, admin_role: Role) -> User:
    result = await db.execute(select(User).where(User.email == settings.admin_email))
    admin = result.scalar_one_or_none()
    if admin:
        return admin

    admin = User(
        email=settings.admin_email,
        name="Administrator",
        hashed_password=get_password_hash(settings.admin_password),
        role_id=admin_role.id,
        is_active=True,
    )
    db.add(admin)
    await db.commit()
    logger.info("Seeding administrator %s", admin.email)
    return admin


async def seed_database(db: AsyncSession) -> None:
    roles = await seed_roles(db)
    await seed_admin(db, roles[ADMIN_ROLE])
