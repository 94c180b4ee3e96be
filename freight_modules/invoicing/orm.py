"""
Invoicing ORM Models (``freight_modules.invoicing.orm``).

Responsibility
--------------
SQLAlchemy persistence for invoices and their payments.  ``amount_paid``
and ``status`` on the invoice row are derived columns: ``PaymentService``
rewrites them from the payment rows on every payment mutation.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``freight_kernel.db.base``
and sibling ``models.py``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_kernel.db.base import TrackedBase
from freight_modules.invoicing.models import (
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
)


class InvoiceModel(TrackedBase):
    """
    ORM model for customer invoices.

    Guarantees:
        - invoice_number is unique (uq_invoices_invoice_number).
        - status stored as the string enum value.
        - paid_at is set only while status is ``paid``.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_due_date", "due_date"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    jo_id: Mapped[UUID | None] = mapped_column(nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=InvoiceStatus.DRAFT.value, nullable=False
    )
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    payments: Mapped[list["PaymentModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="PaymentModel.payment_date",
    )

    def to_dto(self) -> Invoice:
        """Convert ORM model to frozen dataclass."""
        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number,
            customer_name=self.customer_name,
            total_amount=self.total_amount,
            due_date=self.due_date,
            status=InvoiceStatus(self.status),
            amount_paid=self.amount_paid,
            paid_at=self.paid_at,
            jo_id=self.jo_id,
        )

    @classmethod
    def from_dto(cls, dto: Invoice, created_by_id: UUID | None = None) -> "InvoiceModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            invoice_number=dto.invoice_number,
            customer_name=dto.customer_name,
            jo_id=dto.jo_id,
            total_amount=dto.total_amount,
            amount_paid=dto.amount_paid,
            due_date=dto.due_date,
            status=dto.status.value,
            paid_at=dto.paid_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number}: {self.status}>"


class PaymentModel(TrackedBase):
    """
    ORM model for payments received against an invoice.

    Guarantees:
        - invoice_id FK to invoices.id.
        - payment_method stored as the string enum value.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payments_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="payments")

    def to_dto(self) -> Payment:
        """Convert ORM model to frozen dataclass."""
        return Payment(
            id=self.id,
            invoice_id=self.invoice_id,
            amount=self.amount,
            payment_method=PaymentMethod(self.payment_method),
            payment_date=self.payment_date,
            reference_number=self.reference_number,
            bank_name=self.bank_name,
            notes=self.notes,
            recorded_by=self.created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.amount} ({self.payment_method})>"
