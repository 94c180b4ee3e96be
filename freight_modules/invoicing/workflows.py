"""
Invoice Workflow.

State machine for the customer invoice lifecycle.  User actions (send,
mark received, mark overdue, cancel) are the manual transitions; payment
recording and deletion move the invoice through ``partial`` and ``paid``
as system-only transitions driven by ``determine_invoice_status``.
"""

from datetime import date

from freight_kernel.domain.workflow import Guard, Transition, Workflow
from freight_kernel.logging_config import get_logger
from freight_modules.invoicing.models import OPEN_STATUSES, InvoiceStatus
from freight_modules.invoicing.payments import coerce_status

logger = get_logger("modules.invoicing.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

PAST_DUE = Guard(
    name="past_due",
    description="Due date has passed and a balance is outstanding",
)

BALANCE_ZERO = Guard(
    name="balance_zero",
    description="Payments cover the invoice total",
)

NO_PAYMENTS = Guard(
    name="no_payments",
    description="No payment has been recorded against the invoice",
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

_S = InvoiceStatus

INVOICE_WORKFLOW = Workflow(
    name="customer_invoice",
    description="Customer invoice lifecycle",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in InvoiceStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.SENT.value, action="send"),
        Transition(_S.DRAFT.value, _S.CANCELLED.value, action="cancel"),
        Transition(_S.SENT.value, _S.RECEIVED.value, action="mark_received"),
        Transition(_S.SENT.value, _S.OVERDUE.value, action="mark_overdue", guard=PAST_DUE),
        Transition(_S.SENT.value, _S.CANCELLED.value, action="cancel", guard=NO_PAYMENTS),
        Transition(_S.RECEIVED.value, _S.OVERDUE.value, action="mark_overdue", guard=PAST_DUE),
        Transition(_S.RECEIVED.value, _S.CANCELLED.value, action="cancel", guard=NO_PAYMENTS),
        Transition(_S.OVERDUE.value, _S.CANCELLED.value, action="cancel", guard=NO_PAYMENTS),
        Transition(_S.PARTIAL.value, _S.OVERDUE.value, action="mark_overdue", guard=PAST_DUE),
        # Driven by payment recomputation
        Transition(_S.SENT.value, _S.PARTIAL.value, action="apply_payment", system_only=True),
        Transition(_S.SENT.value, _S.PAID.value, action="apply_payment", guard=BALANCE_ZERO, system_only=True),
        Transition(_S.RECEIVED.value, _S.PARTIAL.value, action="apply_payment", system_only=True),
        Transition(_S.RECEIVED.value, _S.PAID.value, action="apply_payment", guard=BALANCE_ZERO, system_only=True),
        Transition(_S.OVERDUE.value, _S.PARTIAL.value, action="apply_payment", system_only=True),
        Transition(_S.OVERDUE.value, _S.PAID.value, action="apply_payment", guard=BALANCE_ZERO, system_only=True),
        Transition(_S.PARTIAL.value, _S.PAID.value, action="apply_payment", guard=BALANCE_ZERO, system_only=True),
        Transition(_S.PAID.value, _S.PARTIAL.value, action="remove_payment", system_only=True),
        Transition(_S.PAID.value, _S.SENT.value, action="remove_payment", system_only=True),
        Transition(_S.PARTIAL.value, _S.SENT.value, action="remove_payment", system_only=True),
    ),
    terminal_states=(_S.CANCELLED.value,),
)

# Manual (user-initiated) transitions only, keyed by origin status
VALID_STATUS_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    status: frozenset(
        InvoiceStatus(t.to_state)
        for t in INVOICE_WORKFLOW.transitions
        if t.from_state == status.value and not t.system_only
    )
    for status in InvoiceStatus
}

logger.info(
    "invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
        "initial_state": INVOICE_WORKFLOW.initial_state,
    },
)


def is_valid_status_transition(from_status: object, to_status: object) -> bool:
    """Whether a user may move an invoice from one status to another."""
    try:
        source = InvoiceStatus(from_status)
        target = InvoiceStatus(to_status)
    except ValueError:
        return False
    return target in VALID_STATUS_TRANSITIONS[source]


def is_invoice_overdue(due_date: date | None, status: object, as_of: date) -> bool:
    """An open invoice whose due date is strictly before ``as_of``."""
    if due_date is None:
        return False
    return coerce_status(status) in OPEN_STATUSES and due_date < as_of
