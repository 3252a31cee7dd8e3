"""
Capability policy.

A pure decision function over a caller identity and a capability tag,
independent of HTTP. The FastAPI wiring lives in ``guards.py``.
"""

import enum
from typing import Any, Iterable, Mapping, Optional

ADMIN_ROLE = "admin"
WILDCARD = "*"


class Permission:
    """Capability tags checked by the API."""
    DASHBOARD_READ = "dashboard:read"
    PROFILE_READ = "profile:read"

    ACCOUNTING_READ = "contabilidad:read"
    ACCOUNTING_WRITE = "contabilidad:write"

    INVENTORY_READ = "almacen:read"
    INVENTORY_WRITE = "almacen:write"

    USERS_READ = "users:read"
    USERS_WRITE = "users:write"
    USERS_DELETE = "users:delete"


class Decision(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


def check_permission(identity: Optional[Mapping[str, Any]], capability: str) -> Decision:
    """
    Decide whether ``identity`` holds ``capability``.

    The admin role and the ``*`` tag grant everything. A missing identity
    is always denied.
    """
    if not identity:
        return Decision.DENY

    if identity.get("role") == ADMIN_ROLE:
        return Decision.ALLOW

    permissions: Iterable[str] = identity.get("permissions") or ()
    if WILDCARD in permissions or capability in permissions:
        return Decision.ALLOW

    return Decision.DENY


def is_allowed(identity: Optional[Mapping[str, Any]], capability: str) -> bool:
    return check_permission(identity, capability) is Decision.ALLOW
