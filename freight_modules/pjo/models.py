"""
Proforma Job Order Domain Models (``freight_modules.pjo.models``).

Responsibility
--------------
Frozen value objects for proforma job orders (PJOs), their cost items,
and the results of the cost rules: per-item status with variance, the
confirmation gate, overall progress, and budget analysis.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A cost item is confirmed iff ``actual_amount`` and ``confirmed_at`` are
  both set.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PJOStatus(str, Enum):
    """PJO approval lifecycle."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class CostItemStatus(str, Enum):
    """Budget standing of a cost item."""
    ESTIMATED = "estimated"
    CONFIRMED = "confirmed"
    AT_RISK = "at_risk"
    EXCEEDED = "exceeded"


class JobOrderStatus(str, Enum):
    """Job order states touched by conversion and invoice payment."""
    ACTIVE = "active"
    COMPLETED = "completed"
    SUBMITTED_TO_FINANCE = "submitted_to_finance"
    INVOICED = "invoiced"
    CLOSED = "closed"


COST_CATEGORIES: tuple[str, ...] = (
    "trucking",
    "port_charges",
    "documentation",
    "handling",
    "customs",
    "insurance",
    "storage",
    "labor",
    "fuel",
    "tolls",
    "other",
)


@dataclass(frozen=True)
class PJOCostItem:
    """A budgeted cost line on a PJO."""
    id: UUID
    pjo_id: UUID
    category: str
    description: str
    estimated_amount: Decimal
    actual_amount: Decimal | None = None
    confirmed_at: datetime | None = None
    confirmed_by: UUID | None = None
    justification: str | None = None
    status: CostItemStatus = CostItemStatus.ESTIMATED

    @property
    def is_confirmed(self) -> bool:
        return self.actual_amount is not None and self.confirmed_at is not None


@dataclass(frozen=True)
class ProformaJobOrder:
    """A pre-commitment cost/revenue estimate awaiting conversion to a JO."""
    id: UUID
    pjo_number: str
    status: PJOStatus
    total_revenue: Decimal = Decimal("0")
    total_cost_estimated: Decimal = Decimal("0")
    total_cost_actual: Decimal = Decimal("0")
    all_costs_confirmed: bool = False
    has_cost_overruns: bool = False
    converted_to_jo: bool = False


@dataclass(frozen=True)
class CostStatusResult:
    status: CostItemStatus
    variance: Decimal
    variance_pct: Decimal


@dataclass(frozen=True)
class ConfirmationCheck:
    """Outcome of the confirmation gate.

    ``requires_justification`` is set whenever the amount lands in
    ``exceeded``, whether or not a long enough justification was given.
    """
    is_valid: bool
    status: CostItemStatus | None = None
    requires_justification: bool = False
    error: str | None = None


@dataclass(frozen=True)
class PJOProgress:
    total: int
    confirmed: int
    all_confirmed: bool
    has_overruns: bool
    can_convert_to_jo: bool

    @property
    def pending(self) -> int:
        return self.total - self.confirmed


@dataclass(frozen=True)
class BudgetAnalysis:
    total_estimated: Decimal
    total_actual: Decimal
    total_variance: Decimal
    variance_pct: Decimal
    items_confirmed: int
    items_pending: int
    items_over_budget: int
    items_at_risk: int
    all_confirmed: bool
    has_overruns: bool
