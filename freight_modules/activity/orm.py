"""
Activity Log ORM Model (``freight_modules.activity.orm``).

Rows are inserted once and never updated.
"""

from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from freight_kernel.db.base import TrackedBase


class ActivityLogModel(TrackedBase):
    """
    ORM model for activity-feed entries.

    Guarantees:
        - actor_role is always a core or extended role (unknown -> viewer).
    """

    __tablename__ = "activity_log"

    __table_args__ = (
        Index("idx_activity_log_document", "document_type", "document_id"),
        Index("idx_activity_log_action_type", "action_type"),
    )

    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    document_id: Mapped[UUID] = mapped_column(nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    actor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<ActivityLogModel {self.action_type} {self.document_type}:{self.document_number}>"
