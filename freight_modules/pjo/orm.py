"""
PJO ORM Models (``freight_modules.pjo.orm``).

Responsibility
--------------
SQLAlchemy persistence for proforma job orders, their cost items, and the
job orders they convert into.  The cost totals and flags on the PJO row
are derived columns rewritten by ``PJOService``.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``freight_kernel.db.base``
and sibling ``models.py``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_kernel.db.base import TrackedBase
from freight_modules.pjo.models import (
    CostItemStatus,
    JobOrderStatus,
    PJOCostItem,
    PJOStatus,
    ProformaJobOrder,
)


class PJOModel(TrackedBase):
    """
    ORM model for proforma job orders.

    Guarantees:
        - pjo_number is unique (uq_proforma_job_orders_pjo_number).
        - converted_to_jo flips to True once, when the job order is created.
    """

    __tablename__ = "proforma_job_orders"

    __table_args__ = (
        UniqueConstraint("pjo_number", name="uq_proforma_job_orders_pjo_number"),
        Index("idx_proforma_job_orders_status", "status"),
    )

    pjo_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=PJOStatus.DRAFT.value, nullable=False
    )
    total_revenue: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_cost_estimated: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_cost_actual: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    all_costs_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    has_cost_overruns: Mapped[bool] = mapped_column(Boolean, default=False)
    converted_to_jo: Mapped[bool] = mapped_column(Boolean, default=False)
    converted_to_jo_at: Mapped[datetime | None] = mapped_column(nullable=True)

    cost_items: Mapped[list["PJOCostItemModel"]] = relationship(
        back_populates="pjo",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> ProformaJobOrder:
        """Convert ORM model to frozen dataclass."""
        return ProformaJobOrder(
            id=self.id,
            pjo_number=self.pjo_number,
            status=PJOStatus(self.status),
            total_revenue=self.total_revenue,
            total_cost_estimated=self.total_cost_estimated,
            total_cost_actual=self.total_cost_actual,
            all_costs_confirmed=self.all_costs_confirmed,
            has_cost_overruns=self.has_cost_overruns,
            converted_to_jo=self.converted_to_jo,
        )

    @classmethod
    def from_dto(
        cls, dto: ProformaJobOrder, created_by_id: UUID | None = None
    ) -> "PJOModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            pjo_number=dto.pjo_number,
            status=dto.status.value,
            total_revenue=dto.total_revenue,
            total_cost_estimated=dto.total_cost_estimated,
            total_cost_actual=dto.total_cost_actual,
            all_costs_confirmed=dto.all_costs_confirmed,
            has_cost_overruns=dto.has_cost_overruns,
            converted_to_jo=dto.converted_to_jo,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PJOModel {self.pjo_number}: {self.status}>"


class PJOCostItemModel(TrackedBase):
    """
    ORM model for PJO cost items.

    Guarantees:
        - pjo_id FK to proforma_job_orders.id.
        - actual_amount and confirmed_at are written together.
    """

    __tablename__ = "pjo_cost_items"

    __table_args__ = (
        Index("idx_pjo_cost_items_pjo_id", "pjo_id"),
    )

    pjo_id: Mapped[UUID] = mapped_column(
        ForeignKey("proforma_job_orders.id"), nullable=False
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    estimated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    actual_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    confirmed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=CostItemStatus.ESTIMATED.value, nullable=False
    )

    pjo: Mapped["PJOModel"] = relationship(back_populates="cost_items")

    def to_dto(self) -> PJOCostItem:
        """Convert ORM model to frozen dataclass."""
        return PJOCostItem(
            id=self.id,
            pjo_id=self.pjo_id,
            category=self.category,
            description=self.description,
            estimated_amount=self.estimated_amount,
            actual_amount=self.actual_amount,
            confirmed_at=self.confirmed_at,
            confirmed_by=self.confirmed_by,
            justification=self.justification,
            status=CostItemStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<PJOCostItemModel {self.category}: {self.status}>"


class JobOrderModel(TrackedBase):
    """
    ORM model for job orders created from a fully confirmed PJO.

    Guarantees:
        - pjo_id is unique: one job order per PJO.
        - status moves to ``closed`` when its invoice is paid and back to
          ``invoiced`` if that payment is removed.
    """

    __tablename__ = "job_orders"

    __table_args__ = (
        UniqueConstraint("jo_number", name="uq_job_orders_jo_number"),
        UniqueConstraint("pjo_id", name="uq_job_orders_pjo_id"),
    )

    jo_number: Mapped[str] = mapped_column(String(50), nullable=False)
    pjo_id: Mapped[UUID] = mapped_column(
        ForeignKey("proforma_job_orders.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default=JobOrderStatus.ACTIVE.value, nullable=False
    )
    final_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<JobOrderModel {self.jo_number}: {self.status}>"
