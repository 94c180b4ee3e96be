"""
Feature Access Map (``freight_modules.access.features``).

Static map from dot-namespaced feature keys to a single predicate over a
profile's ``PermissionSet``.  ``can_access_feature`` looks the key up and
applies the predicate; a missing key is a denial, never an error.
"""

from collections.abc import Callable
from types import MappingProxyType

from freight_kernel.logging_config import get_logger
from freight_modules.access.models import PermissionSet, UserProfile

logger = get_logger("modules.access.features")

FeaturePredicate = Callable[[PermissionSet], bool]


def _revenue_and_profit(p: PermissionSet) -> bool:
    return p.can_see_revenue and p.can_see_profit


def _costs_visible(p: PermissionSet) -> bool:
    return p.can_fill_costs or p.can_see_revenue


FEATURE_PERMISSION_MAP: MappingProxyType[str, FeaturePredicate] = MappingProxyType({
    # Dashboards
    "dashboard.full": _revenue_and_profit,
    "dashboard.ops": lambda p: p.can_fill_costs,

    # Proforma job orders
    "pjo.create": lambda p: p.can_create_pjo,
    "pjo.view": lambda p: p.can_create_pjo or p.can_approve_pjo or _costs_visible(p),
    "pjo.edit": lambda p: p.can_create_pjo,
    "pjo.view_revenue": lambda p: p.can_see_revenue,
    "pjo.view_costs": _costs_visible,
    "pjo.approve": lambda p: p.can_approve_pjo,
    "pjo.confirm_costs": lambda p: p.can_fill_costs,

    # Job orders
    "jo.view": lambda p: p.can_see_revenue or p.can_fill_costs,
    "jo.view_full": lambda p: p.can_see_revenue,
    "jo.view_revenue": lambda p: p.can_see_revenue,
    "jo.view_costs": _costs_visible,
    "jo.fill_costs": lambda p: p.can_fill_costs,

    # Invoices and payments
    "invoices.crud": lambda p: p.can_manage_invoices,
    "invoices.view": lambda p: p.can_manage_invoices or p.can_see_revenue,
    "invoices.create": lambda p: p.can_manage_invoices,
    "invoices.edit": lambda p: p.can_manage_invoices,
    "payments.view": lambda p: p.can_manage_invoices,
    "payments.create": lambda p: p.can_manage_invoices,
    "payments.delete": lambda p: p.can_manage_invoices,

    # Reports
    "reports.pnl": _revenue_and_profit,
    "reports.revenue": lambda p: p.can_see_revenue,
    "reports.profit": lambda p: p.can_see_profit,

    # User administration
    "users.manage": lambda p: p.can_manage_users,
    "admin.users.view": lambda p: p.can_manage_users,
    "admin.users.edit": lambda p: p.can_manage_users,
})


def feature_keys() -> frozenset[str]:
    return frozenset(FEATURE_PERMISSION_MAP)


def can_access_feature(profile: UserProfile | None, feature_key: str) -> bool:
    """Evaluate ``feature_key`` against the profile's own flags.

    ``None`` profiles and unrecognised keys deny.
    """
    if profile is None or not isinstance(feature_key, str):
        return False
    predicate = FEATURE_PERMISSION_MAP.get(feature_key)
    if predicate is None:
        logger.debug("unknown_feature_denied", extra={"feature_key": feature_key})
        return False
    return bool(predicate(profile.permissions))
