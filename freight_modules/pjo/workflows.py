"""
PJO Workflow.

Approval lifecycle of a proforma job order.  Cost items are added while
the PJO is a draft; actual costs are confirmed once it is approved.
"""

from freight_kernel.domain.workflow import Guard, Transition, Workflow
from freight_kernel.logging_config import get_logger
from freight_modules.pjo.models import PJOStatus

logger = get_logger("modules.pjo.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

POSITIVE_MARGIN = Guard(
    name="positive_margin",
    description="Total revenue exceeds total estimated cost",
)

APPROVER = Guard(
    name="approver",
    description="Actor holds can_approve_pjo",
)


# -----------------------------------------------------------------------------
# PJO Workflow
# -----------------------------------------------------------------------------

_S = PJOStatus

PJO_WORKFLOW = Workflow(
    name="proforma_job_order",
    description="Proforma job order approval lifecycle",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in PJOStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.PENDING_APPROVAL.value, action="submit", guard=POSITIVE_MARGIN),
        Transition(_S.PENDING_APPROVAL.value, _S.APPROVED.value, action="approve", guard=APPROVER),
        Transition(_S.PENDING_APPROVAL.value, _S.REJECTED.value, action="reject", guard=APPROVER),
        Transition(_S.REJECTED.value, _S.DRAFT.value, action="revise"),
    ),
)

logger.info(
    "pjo_workflow_registered",
    extra={
        "workflow_name": PJO_WORKFLOW.name,
        "state_count": len(PJO_WORKFLOW.states),
        "transition_count": len(PJO_WORKFLOW.transitions),
        "initial_state": PJO_WORKFLOW.initial_state,
    },
)


def target_status(current: PJOStatus, action: str) -> PJOStatus | None:
    """Status reached by ``action`` from ``current``, or None if not allowed."""
    for t in PJO_WORKFLOW.transitions_for(action):
        if t.from_state == current.value:
            return PJOStatus(t.to_state)
    return None
