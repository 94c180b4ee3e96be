"""
Invoicing Domain Models (``freight_modules.invoicing.models``).

Responsibility
--------------
Frozen value objects for customer invoices, the payments recorded against
them, and the results returned by the payment rules and the payment
service.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""
    DRAFT = "draft"
    SENT = "sent"
    RECEIVED = "received"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Accepted payment instruments."""
    TRANSFER = "transfer"
    CASH = "cash"
    CHECK = "check"
    GIRO = "giro"


# Statuses in which an invoice is still awaiting money
OPEN_STATUSES: frozenset[InvoiceStatus] = frozenset({
    InvoiceStatus.SENT,
    InvoiceStatus.RECEIVED,
    InvoiceStatus.PARTIAL,
})


@dataclass(frozen=True)
class Invoice:
    """A customer invoice raised from a job order."""
    id: UUID
    invoice_number: str
    customer_name: str
    total_amount: Decimal
    due_date: date
    status: InvoiceStatus = InvoiceStatus.DRAFT
    amount_paid: Decimal = Decimal("0")
    paid_at: datetime | None = None
    jo_id: UUID | None = None

    @property
    def remaining_balance(self) -> Decimal:
        return max(self.total_amount - self.amount_paid, Decimal("0"))


@dataclass(frozen=True)
class Payment:
    """Money received against exactly one invoice."""
    id: UUID
    invoice_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    reference_number: str | None = None
    bank_name: str | None = None
    notes: str | None = None
    recorded_by: UUID | None = None


@dataclass(frozen=True)
class InvoiceTotals:
    """Line subtotal, VAT, and grand total of an invoice."""
    subtotal: Decimal
    vat_amount: Decimal
    grand_total: Decimal


@dataclass(frozen=True)
class PaymentOutcome:
    """What a payment mutation did to its invoice.

    ``became_paid`` / ``left_paid`` tell the caller whether downstream work
    (closing the job order, notifications) should run.
    """
    invoice_id: UUID
    payment_id: UUID
    previous_status: InvoiceStatus
    new_status: InvoiceStatus
    amount_paid: Decimal
    remaining_balance: Decimal
    paid_at: datetime | None
    overpaid: bool = False

    @property
    def became_paid(self) -> bool:
        return (
            self.new_status == InvoiceStatus.PAID
            and self.previous_status != InvoiceStatus.PAID
        )

    @property
    def left_paid(self) -> bool:
        return (
            self.previous_status == InvoiceStatus.PAID
            and self.new_status != InvoiceStatus.PAID
        )
