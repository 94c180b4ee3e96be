"""
User Administration Service - persists profiles and applies admin edits.

Thin glue layer that:
1. Seeds new profiles from the role-default table
2. Applies permission / role edits made by an admin
3. Locks the active admin rows, runs the last-admin guard before any
   self-demotion, and re-checks after the write that an active admin
   remains
4. Soft-deactivates users

This service owns the transaction boundary: it commits on success and
rolls back on any failure.

Usage:
    service = UserAdminService(session)
    profile = service.create_profile(actor, "ops@example.com", "Budi", "ops")
    service.update_permissions(actor, profile.id, can_see_revenue=True)
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from freight_kernel.exceptions import (
    DuplicateUserProfileError,
    LastAdminRemovalError,
    PermissionDeniedError,
    UserProfileNotFoundError,
)
from freight_kernel.logging_config import get_logger
from freight_modules.access.guards import require_permission
from freight_modules.access.models import UserProfile, UserRole
from freight_modules.access.orm import UserProfileModel
from freight_modules.access.permissions import (
    LAST_ADMIN_REASON,
    can_modify_user,
    can_remove_admin_permission,
    seed_profile,
    with_permissions,
    with_role,
)

logger = get_logger("modules.access.service")

_ACTIVE_ADMIN = (
    UserProfileModel.role == UserRole.ADMIN.value,
    UserProfileModel.is_active.is_(True),
    UserProfileModel.can_manage_users.is_(True),
)


class UserAdminService:
    """
    Creates and edits user profiles on behalf of an administrator.

    The acting profile must be active, hold ``can_manage_users`` and have an
    admin role.  Demoting an admin (role change or dropping
    ``can_manage_users``) is checked against the number of active admins
    counted under the same transaction.
    """

    def __init__(self, session: Session):
        self._session = session

    # =========================================================================
    # Queries
    # =========================================================================

    def get_profile(self, profile_id: UUID) -> UserProfile:
        return self._load(profile_id).to_dto()

    def find_by_email(self, email: str) -> UserProfile | None:
        model = self._session.scalars(
            select(UserProfileModel).where(UserProfileModel.email == email)
        ).first()
        return model.to_dto() if model is not None else None

    def count_active_admins(self) -> int:
        """Active admin-role profiles that still hold ``can_manage_users``."""
        return self._session.scalar(
            select(func.count())
            .select_from(UserProfileModel)
            .where(*_ACTIVE_ADMIN)
        ) or 0

    # =========================================================================
    # Commands
    # =========================================================================

    def create_profile(
        self,
        actor: UserProfile | None,
        email: str,
        full_name: str,
        role: str,
        custom_dashboard: str = "default",
    ) -> UserProfile:
        """Pre-register a user; flags are seeded from the role defaults."""
        try:
            self._require_admin(actor, "create user profiles")
            if self.find_by_email(email) is not None:
                raise DuplicateUserProfileError(email)

            profile = seed_profile(
                email, full_name, role, custom_dashboard=custom_dashboard
            )
            self._session.add(
                UserProfileModel.from_dto(profile, created_by_id=actor.id)
            )
            self._session.commit()
            logger.info("user_profile_created", extra={
                "profile_id": str(profile.id),
                "role": profile.role,
                "actor_id": str(actor.id),
            })
            return profile
        except Exception:
            self._session.rollback()
            raise

    def bootstrap_admin(self, email: str, full_name: str) -> UserProfile:
        """Create the first admin of an empty installation (no actor needed)."""
        try:
            if self.count_active_admins() > 0:
                raise PermissionDeniedError(None, "can_manage_users", "bootstrap an admin")
            profile = seed_profile(email, full_name, UserRole.ADMIN)
            self._session.add(UserProfileModel.from_dto(profile))
            self._session.commit()
            logger.info("admin_bootstrapped", extra={"profile_id": str(profile.id)})
            return profile
        except Exception:
            self._session.rollback()
            raise

    def update_permissions(
        self,
        actor: UserProfile | None,
        target_id: UUID,
        **flags: bool,
    ) -> UserProfile:
        """Override individual permission flags on a profile."""
        try:
            self._require_admin(actor, "edit user permissions")
            model = self._load(target_id, for_update=True)
            current = model.to_dto()

            removes_admin = (
                current.role == UserRole.ADMIN.value
                and "can_manage_users" in flags
                and not flags["can_manage_users"]
            )
            if removes_admin:
                self._guard_admin_removal(actor, target_id)

            updated = with_permissions(current, **flags)
            model.apply_permissions(updated.permissions)
            model.updated_by_id = actor.id
            if removes_admin:
                self._require_remaining_admin(actor)
            self._session.commit()
            logger.info("user_permissions_updated", extra={
                "profile_id": str(target_id),
                "flags": {k: bool(v) for k, v in flags.items()},
                "actor_id": str(actor.id),
            })
            return updated
        except Exception:
            self._session.rollback()
            raise

    def change_role(
        self,
        actor: UserProfile | None,
        target_id: UUID,
        new_role: str,
        reseed_permissions: bool = True,
    ) -> UserProfile:
        """Change a profile's role, re-seeding its flags by default."""
        try:
            self._require_admin(actor, "change user roles")
            model = self._load(target_id, for_update=True)
            current = model.to_dto()

            removes_admin = (
                current.role == UserRole.ADMIN.value and new_role != UserRole.ADMIN.value
            )
            if removes_admin:
                self._guard_admin_removal(actor, target_id)

            updated = with_role(current, new_role, reseed=reseed_permissions)
            model.role = updated.role
            model.extra_roles = None
            model.apply_permissions(updated.permissions)
            model.updated_by_id = actor.id
            if removes_admin:
                self._require_remaining_admin(actor)
            self._session.commit()
            logger.info("user_role_changed", extra={
                "profile_id": str(target_id),
                "previous_role": current.role,
                "new_role": updated.role,
                "actor_id": str(actor.id),
            })
            return updated
        except Exception:
            self._session.rollback()
            raise

    def deactivate_user(self, actor: UserProfile | None, target_id: UUID) -> UserProfile:
        """Soft-deactivate a profile.  The row is kept."""
        try:
            self._require_admin(actor, "deactivate users")
            model = self._load(target_id, for_update=True)
            removes_admin = model.role == UserRole.ADMIN.value and model.is_active
            if removes_admin:
                self._guard_admin_removal(actor, target_id)
            model.is_active = False
            model.updated_by_id = actor.id
            if removes_admin:
                self._require_remaining_admin(actor)
            self._session.commit()
            logger.info("user_deactivated", extra={
                "profile_id": str(target_id),
                "actor_id": str(actor.id),
            })
            return model.to_dto()
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_admin(self, actor: UserProfile | None, action: str) -> None:
        require_permission(actor, "can_manage_users", action)
        if not can_modify_user(actor.role):
            logger.warning("user_admin_denied", extra={
                "actor_id": str(actor.id),
                "actor_role": actor.role,
                "action": action,
            })
            raise PermissionDeniedError(str(actor.id), "can_manage_users", action)

    def _guard_admin_removal(self, actor: UserProfile, target_id: UUID) -> None:
        """Run the self-demotion rule against the locked set of active admins.

        Every active admin row is taken ``FOR UPDATE`` first, so two admins
        demoting themselves at the same time are serialised on the count.
        """
        admins = self._session.scalars(
            select(UserProfileModel).where(*_ACTIVE_ADMIN).with_for_update()
        ).all()
        result = can_remove_admin_permission(len(admins), target_id, actor.id)
        if not result.allowed:
            logger.warning("last_admin_removal_blocked", extra={
                "actor_id": str(actor.id),
                "admin_count": len(admins),
            })
            raise LastAdminRemovalError(str(actor.id), result.reason)

    def _require_remaining_admin(self, actor: UserProfile) -> None:
        """Refuse a flushed admin removal that leaves no active admin."""
        self._session.flush()
        if self.count_active_admins() == 0:
            logger.warning("last_admin_removal_blocked", extra={
                "actor_id": str(actor.id),
                "admin_count": 0,
            })
            raise LastAdminRemovalError(str(actor.id), LAST_ADMIN_REASON)

    def _load(self, profile_id: UUID, for_update: bool = False) -> UserProfileModel:
        stmt = select(UserProfileModel).where(UserProfileModel.id == profile_id)
        if for_update:
            stmt = stmt.with_for_update()
        model = self._session.scalars(stmt).first()
        if model is None:
            raise UserProfileNotFoundError(str(profile_id))
        return model
