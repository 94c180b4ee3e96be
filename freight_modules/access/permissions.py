"""
Permission Resolver (``freight_modules.access.permissions``).

Responsibility
--------------
Answers "what may this role / profile do" from a static role table and the
profile's own flags.  Also hosts the small admin-management rules: who may
edit whom, which roles are assignable, and the last-admin self-removal
guard.

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O, no process-wide state.  The
caller fetches the profile (and, for the admin guard, the admin count) and
passes them in.

Invariants enforced
-------------------
* ``DEFAULT_PERMISSIONS`` is a read-only mapping of frozen sets; the ``ops``
  entry never sees revenue or profit.
* Every function is total: ``None`` profiles, unknown roles and unknown flag
  names all resolve to the most restrictive answer instead of raising.
* The role table is applied only when a profile is seeded, never at read
  time.

Failure modes
-------------
* None at runtime.  ``with_permissions`` raises ``ValueError`` for a flag
  name that does not exist, which is a programming error at the call site.
"""

from collections.abc import Iterable
from dataclasses import replace
from types import MappingProxyType
from uuid import UUID, uuid4

from freight_kernel.domain.results import GuardResult
from freight_kernel.logging_config import get_logger
from freight_modules.access.models import (
    DEFAULT_DASHBOARD,
    EXTENDED_ROLES,
    PERMISSION_FLAGS,
    PermissionSet,
    UserProfile,
    UserRole,
)

logger = get_logger("modules.access.permissions")


DEFAULT_PERMISSIONS = MappingProxyType({
    UserRole.ADMIN.value: PermissionSet(
        can_see_revenue=True,
        can_see_profit=True,
        can_approve_pjo=True,
        can_manage_invoices=True,
        can_manage_users=True,
        can_create_pjo=True,
        can_fill_costs=True,
    ),
    UserRole.MANAGER.value: PermissionSet(
        can_see_revenue=True,
        can_see_profit=True,
        can_approve_pjo=True,
        can_create_pjo=True,
    ),
    UserRole.FINANCE.value: PermissionSet(
        can_see_revenue=True,
        can_see_profit=True,
        can_manage_invoices=True,
    ),
    UserRole.OPS.value: PermissionSet(
        can_fill_costs=True,
    ),
    UserRole.VIEWER.value: PermissionSet(),
})

ADMIN_ROLES: frozenset[str] = frozenset({UserRole.ADMIN.value})
FINANCE_ROLES: frozenset[str] = frozenset({UserRole.ADMIN.value, UserRole.FINANCE.value})
COST_ROLES: frozenset[str] = frozenset({UserRole.ADMIN.value, UserRole.OPS.value})

LAST_ADMIN_REASON = (
    "Cannot remove your own admin permission: you are the last admin"
)


def _role_key(role: object) -> str | None:
    if isinstance(role, UserRole):
        return role.value
    if isinstance(role, str):
        return role
    return None


def get_default_permissions(role: object) -> PermissionSet:
    """Role-default permission set; anything unrecognised gets ``viewer``."""
    key = _role_key(role)
    if key is None or key not in DEFAULT_PERMISSIONS:
        return DEFAULT_PERMISSIONS[UserRole.VIEWER.value]
    return DEFAULT_PERMISSIONS[key]


def has_permission(profile: UserProfile | None, flag_name: str) -> bool:
    """Read a flag from the profile itself.  Unknown flags deny."""
    if profile is None or flag_name not in PERMISSION_FLAGS:
        return False
    return getattr(profile.permissions, flag_name) is True


def is_role(profile: UserProfile | None, role_or_roles: object) -> bool:
    """Membership test of the profile's role(s) against one role or several."""
    if profile is None:
        return False
    single = _role_key(role_or_roles)
    if single is not None:
        wanted = {single}
    elif isinstance(role_or_roles, Iterable):
        wanted = {k for k in (_role_key(r) for r in role_or_roles) if k is not None}
    else:
        return False
    return any(r in wanted for r in profile.all_roles)


def get_dashboard_type(profile: UserProfile | None) -> str:
    if profile is None:
        return UserRole.VIEWER.value
    if profile.custom_dashboard and profile.custom_dashboard != DEFAULT_DASHBOARD:
        return profile.custom_dashboard
    return profile.role


def can_remove_admin_permission(
    total_admin_count: int,
    target_user_id: object,
    acting_user_id: object,
) -> GuardResult:
    """Block the sole admin from demoting themselves.

    The caller supplies the current admin count; no lookup happens here.
    """
    if total_admin_count <= 1 and target_user_id == acting_user_id:
        return GuardResult.deny(LAST_ADMIN_REASON)
    return GuardResult.allow()


def can_modify_user(actor_role: object, target_role: object = None) -> bool:
    """Only admins may change another user's role or permissions."""
    return _role_key(actor_role) in ADMIN_ROLES


def get_assignable_roles() -> tuple[str, ...]:
    return tuple(role.value for role in UserRole)


def is_pending_user(profile: UserProfile | None) -> bool:
    """A pre-registered profile whose owner has never logged in."""
    return profile is not None and profile.user_id is None


def normalize_activity_role(role: object) -> str:
    """Role to record on an activity-log row: core or extended, else viewer."""
    key = _role_key(role)
    if key is not None and (key in DEFAULT_PERMISSIONS or key in EXTENDED_ROLES):
        return key
    return UserRole.VIEWER.value


def seed_profile(
    email: str,
    full_name: str,
    role: object,
    *,
    profile_id: UUID | None = None,
    user_id: UUID | None = None,
    custom_dashboard: str = DEFAULT_DASHBOARD,
) -> UserProfile:
    """Build a new profile whose flags are copied from the role defaults.

    An unknown role is stored as ``viewer`` so the persisted role and the
    seeded flags agree.
    """
    key = _role_key(role)
    if key not in DEFAULT_PERMISSIONS:
        logger.warning(
            "unknown_role_seeded_as_viewer",
            extra={"requested_role": str(role), "email": email},
        )
        key = UserRole.VIEWER.value
    return UserProfile(
        id=profile_id or uuid4(),
        user_id=user_id,
        email=email,
        full_name=full_name,
        role=key,
        custom_dashboard=custom_dashboard or DEFAULT_DASHBOARD,
        permissions=DEFAULT_PERMISSIONS[key],
    )


def with_permissions(profile: UserProfile, **flags: bool) -> UserProfile:
    """Return a copy of ``profile`` with the given flags overridden."""
    unknown = set(flags) - set(PERMISSION_FLAGS)
    if unknown:
        raise ValueError(f"Unknown permission flags: {sorted(unknown)}")
    return replace(
        profile,
        permissions=replace(profile.permissions, **{k: bool(v) for k, v in flags.items()}),
    )


def with_role(profile: UserProfile, role: object, *, reseed: bool = True) -> UserProfile:
    """Return a copy with a new role; flags are re-seeded unless told not to."""
    key = _role_key(role)
    if key not in DEFAULT_PERMISSIONS:
        key = UserRole.VIEWER.value
    permissions = DEFAULT_PERMISSIONS[key] if reseed else profile.permissions
    return replace(profile, role=key, roles=(), permissions=permissions)


def deactivate(profile: UserProfile) -> UserProfile:
    """Soft-deactivate: the profile is kept, only ``is_active`` changes."""
    return replace(profile, is_active=False)
