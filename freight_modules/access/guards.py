"""
Service-boundary authorization.

Turns the resolver's boolean answers into typed exceptions for services
that own a transaction.  Pure callers should use ``has_permission``
directly.
"""

from freight_kernel.exceptions import InactiveUserError, PermissionDeniedError
from freight_kernel.logging_config import get_logger
from freight_modules.access.models import UserProfile
from freight_modules.access.permissions import has_permission

logger = get_logger("modules.access.guards")


def require_permission(actor: UserProfile | None, flag_name: str, action: str) -> UserProfile:
    """Return ``actor`` if it is active and holds ``flag_name``, else raise."""
    if actor is None:
        logger.warning("permission_denied", extra={
            "permission": flag_name,
            "action": action,
        })
        raise PermissionDeniedError(None, flag_name, action)
    if not actor.is_active:
        logger.warning("inactive_user_denied", extra={
            "actor_id": str(actor.id),
            "action": action,
        })
        raise InactiveUserError(str(actor.id))
    if not has_permission(actor, flag_name):
        logger.warning("permission_denied", extra={
            "actor_id": str(actor.id),
            "actor_role": actor.role,
            "permission": flag_name,
            "action": action,
        })
        raise PermissionDeniedError(str(actor.id), flag_name, action)
    return actor
