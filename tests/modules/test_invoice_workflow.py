"""
Invoice workflow tests.

Exhaustive check of the manual transition table plus the system-only
moves driven by payment recomputation.
"""

from datetime import date

import pytest

from freight_modules.invoicing.models import InvoiceStatus
from freight_modules.invoicing.workflows import (
    INVOICE_WORKFLOW,
    VALID_STATUS_TRANSITIONS,
    is_invoice_overdue,
    is_valid_status_transition,
)

S = InvoiceStatus

MANUAL_EDGES = {
    (S.DRAFT, S.SENT),
    (S.DRAFT, S.CANCELLED),
    (S.SENT, S.RECEIVED),
    (S.SENT, S.OVERDUE),
    (S.SENT, S.CANCELLED),
    (S.RECEIVED, S.OVERDUE),
    (S.RECEIVED, S.CANCELLED),
    (S.OVERDUE, S.CANCELLED),
    (S.PARTIAL, S.OVERDUE),
}


class TestInvoiceWorkflowDefinition:

    def test_states_cover_every_status(self):
        assert set(INVOICE_WORKFLOW.states) == {s.value for s in InvoiceStatus}

    def test_initial_state_is_draft(self):
        assert INVOICE_WORKFLOW.initial_state == "draft"

    def test_cancelled_is_terminal(self):
        assert INVOICE_WORKFLOW.terminal_states == ("cancelled",)
        assert INVOICE_WORKFLOW.allowed_targets("cancelled") == frozenset()

    def test_payment_moves_are_system_only(self):
        for t in INVOICE_WORKFLOW.transitions:
            if t.action in ("apply_payment", "remove_payment"):
                assert t.system_only is True
            else:
                assert t.system_only is False

    def test_paid_only_left_by_removing_payment(self):
        exits = [t for t in INVOICE_WORKFLOW.transitions if t.from_state == "paid"]
        assert exits
        assert all(t.action == "remove_payment" for t in exits)

    def test_every_payment_derivable_status_reachable(self):
        assert INVOICE_WORKFLOW.can_transition("sent", "partial")
        assert INVOICE_WORKFLOW.can_transition("partial", "paid")
        assert INVOICE_WORKFLOW.can_transition("paid", "sent")


class TestManualTransitions:

    @pytest.mark.parametrize("source", list(InvoiceStatus))
    @pytest.mark.parametrize("target", list(InvoiceStatus))
    def test_exhaustive_table(self, source, target):
        expected = (source, target) in MANUAL_EDGES
        assert is_valid_status_transition(source, target) is expected
        assert is_valid_status_transition(source.value, target.value) is expected

    def test_paid_and_cancelled_have_no_manual_exit(self):
        assert VALID_STATUS_TRANSITIONS[S.PAID] == frozenset()
        assert VALID_STATUS_TRANSITIONS[S.CANCELLED] == frozenset()

    def test_unknown_status_rejected(self):
        assert is_valid_status_transition("draft", "archived") is False
        assert is_valid_status_transition(None, "sent") is False


class TestOverdue:

    AS_OF = date(2024, 3, 1)

    @pytest.mark.parametrize("status", ["sent", "received", "partial"])
    def test_open_invoice_past_due(self, status):
        assert is_invoice_overdue(date(2024, 2, 29), status, self.AS_OF) is True

    def test_due_today_not_overdue(self):
        assert is_invoice_overdue(self.AS_OF, "sent", self.AS_OF) is False

    @pytest.mark.parametrize("status", ["draft", "paid", "cancelled", "overdue"])
    def test_closed_or_unsent_not_overdue(self, status):
        assert is_invoice_overdue(date(2024, 1, 1), status, self.AS_OF) is False

    def test_no_due_date(self):
        assert is_invoice_overdue(None, "sent", self.AS_OF) is False
