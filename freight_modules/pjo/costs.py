"""
PJO Cost Rules (``freight_modules.pjo.costs``).

Responsibility
--------------
Pure rules for budgeted cost items on a proforma job order: variance and
budget status of a single item, the confirmation gate, progress towards
conversion into a job order, and whole-PJO budget analysis.

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O.  The confirmation form and
``PJOService`` both call :func:`validate_cost_confirmation`,
so the gate is defined exactly once.

Invariants enforced
-------------------
* ``actual <= estimated`` is confirmed, up to ``estimated * 1.10`` is at
  risk (inclusive), above that is exceeded.  Decimal arithmetic keeps the
  boundary exact.
* An exceeded item needs a justification of at least 10 non-blank
  characters before it can be confirmed.
* Overruns never block conversion; only unconfirmed items do.

Failure modes
-------------
* None.  Unusable amounts come back as an invalid ``ConfirmationCheck``
  or count as zero in totals.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from freight_kernel.domain.results import ValidationResult
from freight_kernel.domain.values import ZERO, as_decimal, as_decimal_or_zero
from freight_kernel.logging_config import get_logger
from freight_modules.access.models import UserProfile
from freight_modules.access.permissions import has_permission
from freight_modules.pjo.models import (
    BudgetAnalysis,
    ConfirmationCheck,
    CostItemStatus,
    CostStatusResult,
    PJOProgress,
    PJOStatus,
)

logger = get_logger("modules.pjo.costs")

OVERRUN_TOLERANCE = Decimal("0.10")
JUSTIFICATION_MIN_LENGTH = 10
_HUNDRED = Decimal("100")

INVALID_ACTUAL_ERROR = "Actual amount must be a valid number"
NEGATIVE_ACTUAL_ERROR = "Actual amount cannot be negative"
JUSTIFICATION_REQUIRED_ERROR = (
    f"Justification of at least {JUSTIFICATION_MIN_LENGTH} characters is "
    "required when the budget is exceeded"
)


def _field(item: object, name: str) -> object:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _item_status(item: object) -> CostItemStatus:
    raw = _field(item, "status")
    try:
        return CostItemStatus(raw)
    except ValueError:
        return CostItemStatus.ESTIMATED


def is_item_confirmed(item: object) -> bool:
    return _field(item, "actual_amount") is not None and _field(item, "confirmed_at") is not None


def calculate_variance(estimated: object, actual: object) -> tuple[Decimal, Decimal]:
    """``(actual - estimated, percentage of estimated)``; pct is 0 with no budget."""
    est = as_decimal_or_zero(estimated)
    act = as_decimal_or_zero(actual)
    variance = act - est
    variance_pct = variance / est * _HUNDRED if est > ZERO else ZERO
    return variance, variance_pct


def calculate_cost_status(estimated: object, actual: object) -> CostStatusResult:
    """Budget status of one cost item with its variance.

    Without a usable actual amount the item is still ``estimated``.
    """
    act = as_decimal(actual)
    if act is None:
        return CostStatusResult(CostItemStatus.ESTIMATED, ZERO, ZERO)

    est = as_decimal_or_zero(estimated)
    variance, variance_pct = calculate_variance(est, act)

    if act <= est:
        status = CostItemStatus.CONFIRMED
    elif act <= est * (1 + OVERRUN_TOLERANCE):
        status = CostItemStatus.AT_RISK
    else:
        status = CostItemStatus.EXCEEDED
    return CostStatusResult(status=status, variance=variance, variance_pct=variance_pct)


def validate_cost_confirmation(
    estimated: object,
    actual: object,
    justification: str | None,
) -> ConfirmationCheck:
    """The single gate an actual cost must pass before it is persisted."""
    act = as_decimal(actual)
    if act is None:
        return ConfirmationCheck(is_valid=False, error=INVALID_ACTUAL_ERROR)
    if act < ZERO:
        return ConfirmationCheck(is_valid=False, error=NEGATIVE_ACTUAL_ERROR)

    status = calculate_cost_status(estimated, act).status
    if status != CostItemStatus.EXCEEDED:
        return ConfirmationCheck(is_valid=True, status=status)

    text = justification.strip() if isinstance(justification, str) else ""
    if len(text) < JUSTIFICATION_MIN_LENGTH:
        return ConfirmationCheck(
            is_valid=False,
            status=status,
            requires_justification=True,
            error=JUSTIFICATION_REQUIRED_ERROR,
        )
    return ConfirmationCheck(is_valid=True, status=status, requires_justification=True)


def calculate_pjo_progress(items: Iterable[object]) -> PJOProgress:
    """Confirmation progress of a PJO's cost items.

    Conversion to a job order needs every item confirmed and at least one
    item; overruns are reported but do not block it.
    """
    items = list(items)
    confirmed_items = [i for i in items if is_item_confirmed(i)]
    total = len(items)
    confirmed = len(confirmed_items)
    all_confirmed = confirmed == total
    has_overruns = any(_item_status(i) == CostItemStatus.EXCEEDED for i in confirmed_items)
    return PJOProgress(
        total=total,
        confirmed=confirmed,
        all_confirmed=all_confirmed,
        has_overruns=has_overruns,
        can_convert_to_jo=all_confirmed and total > 0,
    )


def calculate_cost_total(items: Iterable[object], kind: str = "estimated") -> Decimal:
    """Sum of estimated amounts, or of actual amounts (missing counts as 0)."""
    if kind not in ("estimated", "actual"):
        raise ValueError(f"kind must be 'estimated' or 'actual', got {kind!r}")
    name = "estimated_amount" if kind == "estimated" else "actual_amount"
    return sum((as_decimal_or_zero(_field(i, name)) for i in items), ZERO)


def analyze_budget(items: Iterable[object]) -> BudgetAnalysis:
    items = list(items)
    total_estimated = calculate_cost_total(items, "estimated")
    with_actual = [i for i in items if _field(i, "actual_amount") is not None]
    total_actual = calculate_cost_total(with_actual, "actual")
    total_variance, variance_pct = calculate_variance(total_estimated, total_actual)

    items_confirmed = len(with_actual)
    items_over_budget = sum(1 for i in items if _item_status(i) == CostItemStatus.EXCEEDED)
    return BudgetAnalysis(
        total_estimated=total_estimated,
        total_actual=total_actual,
        total_variance=total_variance,
        variance_pct=variance_pct,
        items_confirmed=items_confirmed,
        items_pending=len(items) - items_confirmed,
        items_over_budget=items_over_budget,
        items_at_risk=sum(1 for i in items if _item_status(i) == CostItemStatus.AT_RISK),
        all_confirmed=items_confirmed == len(items) and len(items) > 0,
        has_overruns=items_over_budget > 0,
    )


def validate_positive_margin(total_revenue: object, total_cost: object) -> ValidationResult:
    """A PJO may only be submitted when revenue exceeds estimated cost."""
    revenue = as_decimal_or_zero(total_revenue)
    cost = as_decimal_or_zero(total_cost)
    if cost < revenue:
        return ValidationResult.ok()
    margin = (
        ((revenue - cost) / revenue * _HUNDRED).quantize(Decimal("0.01"))
        if revenue > ZERO
        else Decimal("0.00")
    )
    return ValidationResult.fail(
        f"Cannot submit: Estimated cost ({cost}) exceeds or equals revenue "
        f"({revenue}). Current margin: {margin}%"
    )


def can_edit_cost_items(
    profile: UserProfile | None,
    pjo_status: object,
    converted_to_jo: bool | None,
) -> bool:
    """Actual costs are editable on approved, unconverted PJOs by cost fillers."""
    return (
        has_permission(profile, "can_fill_costs")
        and pjo_status in (PJOStatus.APPROVED, PJOStatus.APPROVED.value)
        and not converted_to_jo
    )
