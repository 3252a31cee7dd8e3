"""
Security guards for capability-based access control.

Wraps the pure policy in ``permissions.py`` as FastAPI dependencies.
"""

from fastapi import Depends
from erp_backend.app.core.dependencies import get_current_user
from erp_backend.app.core.exceptions import InsufficientPermissionsError
from erp_backend.app.core.permissions import is_allowed


def require_permission(capability: str):
    """
    Dependency factory for capability checks.

    Usage:
        @router.get("/accounts")
        async def list_accounts(
            current_user: dict = Depends(require_permission(Permission.ACCOUNTING_READ))
        ):
            ...

    Raises:
        InsufficientPermissionsError (403) if the caller lacks ``capability``
    """
    async def permission_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not is_allowed(current_user, capability):
            raise InsufficientPermissionsError(
                message="Insufficient permissions",
                details={"required": capability}
            )
        return current_user

    return permission_checker
