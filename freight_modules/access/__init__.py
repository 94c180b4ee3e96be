"""
Access Control Module.

Role-default permission table, per-profile permission flags, the feature
access map, and admin management of user profiles.
"""

from freight_modules.access.features import FEATURE_PERMISSION_MAP, can_access_feature
from freight_modules.access.models import (
    EXTENDED_ROLES,
    PERMISSION_FLAGS,
    PermissionSet,
    UserProfile,
    UserRole,
)
from freight_modules.access.permissions import (
    DEFAULT_PERMISSIONS,
    can_remove_admin_permission,
    get_dashboard_type,
    get_default_permissions,
    has_permission,
    is_role,
)

__all__ = [
    "DEFAULT_PERMISSIONS",
    "EXTENDED_ROLES",
    "FEATURE_PERMISSION_MAP",
    "PERMISSION_FLAGS",
    "PermissionSet",
    "UserProfile",
    "UserRole",
    "can_access_feature",
    "can_remove_admin_permission",
    "get_dashboard_type",
    "get_default_permissions",
    "has_permission",
    "is_role",
]
