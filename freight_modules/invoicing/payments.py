"""
Payment Rules (``freight_modules.invoicing.payments``).

Responsibility
--------------
Pure rules around recording and removing payments: summing the payment
set, deriving the invoice status from what has been paid, validating
amounts and methods, and the ``paid_at`` bookkeeping contract.

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O.  ``PaymentService`` calls
these inside its transaction after re-reading the full payment set.

Invariants enforced
-------------------
* ``cancelled`` is absorbing: no amount moves an invoice out of it.
* An invoice is ``paid`` only when its total is positive and fully covered.
* Recomputation never regresses a ``sent`` invoice back to ``draft``.
* Amounts are ``Decimal``; unusable input never advances a status.

Failure modes
-------------
* None.  Bad input yields an invalid ``ValidationResult`` or the most
  conservative status.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from freight_kernel.domain.results import ValidationResult
from freight_kernel.domain.values import ZERO, as_decimal, as_decimal_or_zero
from freight_modules.access.permissions import get_default_permissions
from freight_modules.invoicing.models import (
    InvoiceStatus,
    PaymentMethod,
)

INVALID_AMOUNT_ERROR = "Payment amount must be a valid number"
NON_POSITIVE_AMOUNT_ERROR = "Payment amount must be greater than 0"
INVALID_METHOD_ERROR = "Invalid payment method selected"
UNCONFIRMED_OVERPAYMENT_ERROR = "Payment exceeds the remaining balance and was not confirmed"


def coerce_status(status: object) -> InvoiceStatus:
    """Map a raw status to ``InvoiceStatus``; unknown values count as draft."""
    if isinstance(status, InvoiceStatus):
        return status
    try:
        return InvoiceStatus(status)
    except ValueError:
        return InvoiceStatus.DRAFT


def _amount_of(payment: object) -> Decimal:
    if isinstance(payment, Mapping):
        return as_decimal_or_zero(payment.get("amount"))
    return as_decimal_or_zero(getattr(payment, "amount", None))


def calculate_total_paid(payments: Iterable[object]) -> Decimal:
    """Sum ``amount`` over payment rows or objects.  Empty sums to zero."""
    return sum((_amount_of(p) for p in payments), ZERO)


def determine_invoice_status(
    total_amount: object,
    total_paid: object,
    current_status: object,
) -> InvoiceStatus:
    """Derive the invoice status from what has been paid.

    In priority order: cancelled stays cancelled; a positive total fully
    covered is paid; a partial payment is partial; otherwise the current
    status stands.  An invoice that was ``partial`` or ``paid`` and has no
    payment left falls back to ``sent``, the status it had before money
    arrived.
    """
    current = coerce_status(current_status)
    if current == InvoiceStatus.CANCELLED:
        return InvoiceStatus.CANCELLED

    total = as_decimal(total_amount)
    paid = as_decimal_or_zero(total_paid)

    if total is not None and total > ZERO and paid >= total:
        return InvoiceStatus.PAID
    if total is not None and ZERO < paid < total:
        return InvoiceStatus.PARTIAL

    if current in (InvoiceStatus.PARTIAL, InvoiceStatus.PAID):
        return InvoiceStatus.SENT
    return current


def validate_payment_amount(amount: object) -> ValidationResult:
    """Reject missing, non-numeric and non-positive amounts.

    There is no upper bound here: an overpayment is confirmed by the user
    (see :func:`is_overpayment`).
    """
    value = as_decimal(amount)
    if value is None:
        return ValidationResult.fail(INVALID_AMOUNT_ERROR)
    if value <= ZERO:
        return ValidationResult.fail(NON_POSITIVE_AMOUNT_ERROR)
    return ValidationResult.ok()


def is_valid_payment_method(method: object) -> bool:
    if isinstance(method, PaymentMethod):
        return True
    try:
        PaymentMethod(method)
    except ValueError:
        return False
    return True


def calculate_remaining_balance(total_amount: object, amount_paid: object) -> Decimal:
    """Outstanding amount, never below zero."""
    remaining = as_decimal_or_zero(total_amount) - as_decimal_or_zero(amount_paid)
    return max(remaining, ZERO)


def is_overpayment(amount: object, remaining_balance: object) -> bool:
    """True when ``amount`` exceeds what is still owed."""
    value = as_decimal(amount)
    remaining = as_decimal(remaining_balance)
    if value is None or remaining is None:
        return False
    return value > remaining


def can_record_payment(role: object) -> bool:
    """Role-name shortcut over the default table.

    Persisted profiles can diverge from their role defaults; check those
    with ``has_permission(profile, "can_manage_invoices")`` instead.
    """
    return get_default_permissions(role).can_manage_invoices


def resolve_paid_at(
    previous_status: InvoiceStatus,
    new_status: InvoiceStatus,
    current_paid_at: datetime | None,
    now: datetime,
) -> datetime | None:
    """The ``paid_at`` value after a status recomputation.

    Stamped on entering ``paid``, cleared on leaving it, untouched otherwise.
    """
    if new_status == InvoiceStatus.PAID and previous_status != InvoiceStatus.PAID:
        return now
    if previous_status == InvoiceStatus.PAID and new_status != InvoiceStatus.PAID:
        return None
    return current_paid_at
