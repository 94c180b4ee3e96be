"""PJO approval workflow and job order numbering."""

from datetime import date

import pytest

from freight_modules.pjo.models import PJOStatus
from freight_modules.pjo.numbering import format_jo_number, to_roman_month
from freight_modules.pjo.workflows import PJO_WORKFLOW, target_status


class TestPJOWorkflow:

    @pytest.mark.parametrize("current,action,expected", [
        (PJOStatus.DRAFT, "submit", PJOStatus.PENDING_APPROVAL),
        (PJOStatus.PENDING_APPROVAL, "approve", PJOStatus.APPROVED),
        (PJOStatus.PENDING_APPROVAL, "reject", PJOStatus.REJECTED),
        (PJOStatus.REJECTED, "revise", PJOStatus.DRAFT),
    ])
    def test_allowed_moves(self, current, action, expected):
        assert target_status(current, action) == expected

    @pytest.mark.parametrize("current,action", [
        (PJOStatus.DRAFT, "approve"),
        (PJOStatus.APPROVED, "submit"),
        (PJOStatus.APPROVED, "reject"),
        (PJOStatus.PENDING_APPROVAL, "submit"),
        (PJOStatus.DRAFT, "teleport"),
    ])
    def test_refused_moves(self, current, action):
        assert target_status(current, action) is None

    def test_submit_guarded_by_margin(self):
        (submit,) = PJO_WORKFLOW.transitions_for("submit")
        assert submit.guard is not None
        assert submit.guard.name == "positive_margin"

    def test_approved_has_no_exit(self):
        assert PJO_WORKFLOW.allowed_targets("approved") == frozenset()


class TestJobOrderNumbering:

    @pytest.mark.parametrize("month,roman", [(1, "I"), (4, "IV"), (9, "IX"), (12, "XII")])
    def test_roman_months(self, month, roman):
        assert to_roman_month(month) == roman

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_month_out_of_range(self, month):
        with pytest.raises(ValueError):
            to_roman_month(month)

    def test_format(self):
        assert format_jo_number(7, date(2024, 11, 3)) == "JO-0007/CARGO/XI/2024"
