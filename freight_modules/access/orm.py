"""
Access Control ORM Models (``freight_modules.access.orm``).

Responsibility
--------------
SQLAlchemy persistence for user profiles.  The seven permission flags are
stored as columns on the profile row so an admin's edits survive role-table
changes.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``freight_kernel.db.base``
and sibling ``models.py``.
"""

import json
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from freight_kernel.db.base import TrackedBase
from freight_modules.access.models import (
    DEFAULT_DASHBOARD,
    PERMISSION_FLAGS,
    PermissionSet,
    UserProfile,
)


class UserProfileModel(TrackedBase):
    """
    ORM model for ERP user profiles.

    Guarantees:
        - email is unique (uq_user_profiles_email).
        - user_id is NULL until the pre-registered user first logs in.
        - Rows are soft-deactivated through is_active, never deleted.
    """

    __tablename__ = "user_profiles"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_profiles_email"),
        Index("idx_user_profiles_role", "role"),
        Index("idx_user_profiles_is_active", "is_active"),
    )

    user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    # JSON array; empty means the single ``role`` applies
    extra_roles: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_dashboard: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_DASHBOARD, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    can_see_revenue: Mapped[bool] = mapped_column(Boolean, default=False)
    can_see_profit: Mapped[bool] = mapped_column(Boolean, default=False)
    can_approve_pjo: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_invoices: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_users: Mapped[bool] = mapped_column(Boolean, default=False)
    can_create_pjo: Mapped[bool] = mapped_column(Boolean, default=False)
    can_fill_costs: Mapped[bool] = mapped_column(Boolean, default=False)

    def apply_permissions(self, permissions: PermissionSet) -> None:
        for name in PERMISSION_FLAGS:
            setattr(self, name, getattr(permissions, name))

    def to_dto(self) -> UserProfile:
        """Convert ORM model to frozen dataclass."""
        return UserProfile(
            id=self.id,
            user_id=self.user_id,
            email=self.email,
            full_name=self.full_name,
            role=self.role,
            roles=tuple(json.loads(self.extra_roles)) if self.extra_roles else (),
            custom_dashboard=self.custom_dashboard or DEFAULT_DASHBOARD,
            is_active=self.is_active,
            permissions=PermissionSet(
                **{name: bool(getattr(self, name)) for name in PERMISSION_FLAGS}
            ),
        )

    @classmethod
    def from_dto(
        cls, dto: UserProfile, created_by_id: UUID | None = None
    ) -> "UserProfileModel":
        """Create ORM model from frozen dataclass."""
        model = cls(
            id=dto.id,
            user_id=dto.user_id,
            email=dto.email,
            full_name=dto.full_name,
            role=dto.role,
            extra_roles=json.dumps(list(dto.roles)) if dto.roles else None,
            custom_dashboard=dto.custom_dashboard,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )
        model.apply_permissions(dto.permissions)
        return model

    def __repr__(self) -> str:
        return f"<UserProfileModel {self.email}: {self.role}>"
