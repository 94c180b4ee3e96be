"""
Access Control Domain Models (``freight_modules.access.models``).

Responsibility
--------------
Frozen value objects for roles, the seven-flag permission set, and the
user profile that carries its own copy of those flags.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
permission resolver, the feature map, and ``UserAdminService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* A profile's ``permissions`` are its own; the role table only seeds them.
"""

from dataclasses import dataclass, fields
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Core roles keyed by the default permission table."""
    ADMIN = "admin"
    MANAGER = "manager"
    OPS = "ops"
    FINANCE = "finance"
    VIEWER = "viewer"


# Roles that appear on activity-log rows but carry no permission-table entry.
EXTENDED_ROLES: frozenset[str] = frozenset({
    "owner",
    "director",
    "sysadmin",
    "administration",
    "marketing",
    "engineer",
    "hr",
    "hse",
})

DEFAULT_DASHBOARD = "default"


@dataclass(frozen=True)
class PermissionSet:
    """The fixed group of capability flags attached to a role or profile."""
    can_see_revenue: bool = False
    can_see_profit: bool = False
    can_approve_pjo: bool = False
    can_manage_invoices: bool = False
    can_manage_users: bool = False
    can_create_pjo: bool = False
    can_fill_costs: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in PERMISSION_FLAGS}

    def granted(self) -> frozenset[str]:
        """Names of the flags that are set."""
        return frozenset(name for name in PERMISSION_FLAGS if getattr(self, name))


PERMISSION_FLAGS: tuple[str, ...] = tuple(f.name for f in fields(PermissionSet))


@dataclass(frozen=True)
class UserProfile:
    """An ERP user as seen by the permission resolver.

    ``user_id`` is the authentication identity and stays ``None`` until the
    pre-registered user logs in for the first time.  ``roles`` optionally
    lists every role the user holds; when empty the single ``role`` applies.
    """
    id: UUID
    email: str
    full_name: str
    role: str
    permissions: PermissionSet
    user_id: UUID | None = None
    custom_dashboard: str = DEFAULT_DASHBOARD
    is_active: bool = True
    roles: tuple[str, ...] = ()

    @property
    def all_roles(self) -> tuple[str, ...]:
        return self.roles or (self.role,)
