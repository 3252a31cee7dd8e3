"""
API Router.

Aggregates all API endpoints.
"""

from fastapi import APIRouter
from erp_backend.app.api.v1.endpoints import auth, users, roles, accounting, inventory, audit

router = APIRouter()

# Identity
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(roles.router)

# Accounting
router.include_router(accounting.router)

# Inventory
router.include_router(inventory.router)

# Audit trail
router.include_router(audit.router)
