"""
Tests for PJOService (freight_modules/pjo/service.py).

Validates:
- Draft editing of cost items and the positive-margin submit check
- Approval by can_approve_pjo holders
- Actual cost confirmation through the shared gate
- PJO cost totals and flags recomputed after every item change
- Conversion into a numbered job order, once
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from freight_kernel.db.engine import get_session
from freight_kernel.exceptions import (
    CostConfirmationError,
    CostItemNotFoundError,
    InvalidCostItemError,
    NegativeMarginError,
    PermissionDeniedError,
    PJONotFoundError,
    PJOStatusError,
)
from freight_modules.activity.orm import ActivityLogModel
from freight_modules.pjo.costs import JUSTIFICATION_REQUIRED_ERROR
from freight_modules.pjo.models import CostItemStatus, JobOrderStatus, PJOStatus
from freight_modules.pjo.orm import JobOrderModel
from freight_modules.pjo import service as pjo_service_module
from freight_modules.pjo.service import PJOService


@pytest.fixture
def pjo_service(session, deterministic_clock):
    return PJOService(session, clock=deterministic_clock)


@pytest.fixture
def draft_pjo(pjo_service, manager):
    """A draft PJO worth 10,000,000 with two budgeted cost items."""
    pjo = pjo_service.create_pjo(manager, "PJO-0001/CARGO/I/2024", Decimal("10000000"))
    trucking = pjo_service.add_cost_item(
        manager, pjo.id, "trucking", "Tanjung Priok - Cikarang", Decimal("3000000")
    )
    port = pjo_service.add_cost_item(
        manager, pjo.id, "port_charges", "THC and storage", Decimal("2000000")
    )
    return pjo, trucking, port


@pytest.fixture
def approved_pjo(pjo_service, manager, draft_pjo):
    pjo, trucking, port = draft_pjo
    pjo_service.submit_for_approval(manager, pjo.id)
    pjo_service.approve(manager, pjo.id)
    return pjo, trucking, port


class TestDraftEditing:

    def test_create_and_totals(self, pjo_service, draft_pjo):
        pjo, _, _ = draft_pjo
        stored = pjo_service.get_pjo(pjo.id)
        assert stored.status == PJOStatus.DRAFT
        assert stored.total_revenue == Decimal("10000000")
        assert stored.total_cost_estimated == Decimal("5000000")
        assert stored.all_costs_confirmed is False

    def test_unknown_category(self, pjo_service, manager, draft_pjo):
        pjo, _, _ = draft_pjo
        with pytest.raises(InvalidCostItemError) as exc_info:
            pjo_service.add_cost_item(manager, pjo.id, "catering", "Lunch", Decimal("1"))
        assert exc_info.value.field == "category"

    def test_negative_estimate(self, pjo_service, manager, draft_pjo):
        pjo, _, _ = draft_pjo
        with pytest.raises(InvalidCostItemError) as exc_info:
            pjo_service.add_cost_item(manager, pjo.id, "fuel", "Solar", Decimal("-5"))
        assert exc_info.value.field == "estimated_amount"

    def test_update_estimate_recomputes_total(self, pjo_service, manager, draft_pjo):
        pjo, trucking, _ = draft_pjo
        updated = pjo_service.update_cost_estimate(manager, trucking.id, Decimal("3500000"))
        assert updated.estimated_amount == Decimal("3500000")
        assert pjo_service.get_pjo(pjo.id).total_cost_estimated == Decimal("5500000")

    def test_delete_item_recomputes_total(self, pjo_service, manager, draft_pjo):
        pjo, _, port = draft_pjo
        pjo_service.delete_cost_item(manager, port.id)
        assert len(pjo_service.list_cost_items(pjo.id)) == 1
        assert pjo_service.get_pjo(pjo.id).total_cost_estimated == Decimal("3000000")

    def test_ops_cannot_create(self, pjo_service, ops_user):
        with pytest.raises(PermissionDeniedError):
            pjo_service.create_pjo(ops_user, "PJO-X", Decimal("1"))

    def test_items_frozen_after_submit(self, pjo_service, manager, draft_pjo):
        pjo, trucking, _ = draft_pjo
        pjo_service.submit_for_approval(manager, pjo.id)
        with pytest.raises(PJOStatusError):
            pjo_service.add_cost_item(manager, pjo.id, "fuel", "Solar", Decimal("100"))
        with pytest.raises(PJOStatusError):
            pjo_service.update_cost_estimate(manager, trucking.id, Decimal("1"))

    def test_unknown_pjo(self, pjo_service, manager):
        with pytest.raises(PJONotFoundError):
            pjo_service.add_cost_item(manager, uuid4(), "fuel", "Solar", Decimal("1"))


class TestApproval:

    def test_submit_and_approve(self, pjo_service, manager, draft_pjo):
        pjo, _, _ = draft_pjo
        assert pjo_service.submit_for_approval(manager, pjo.id).status == PJOStatus.PENDING_APPROVAL
        assert pjo_service.approve(manager, pjo.id).status == PJOStatus.APPROVED

    def test_submit_refused_without_margin(self, pjo_service, manager):
        pjo = pjo_service.create_pjo(manager, "PJO-0002", Decimal("1000000"))
        pjo_service.add_cost_item(manager, pjo.id, "trucking", "Long haul", Decimal("1000000"))
        with pytest.raises(NegativeMarginError) as exc_info:
            pjo_service.submit_for_approval(manager, pjo.id)
        assert "exceeds or equals revenue" in exc_info.value.reason
        assert pjo_service.get_pjo(pjo.id).status == PJOStatus.DRAFT

    def test_approve_requires_flag(self, pjo_service, manager, finance_user, draft_pjo):
        pjo, _, _ = draft_pjo
        pjo_service.submit_for_approval(manager, pjo.id)
        with pytest.raises(PermissionDeniedError):
            pjo_service.approve(finance_user, pjo.id)

    def test_cannot_approve_draft(self, pjo_service, manager, draft_pjo):
        pjo, _, _ = draft_pjo
        with pytest.raises(PJOStatusError):
            pjo_service.approve(manager, pjo.id)

    def test_reject_then_revise(self, pjo_service, manager, draft_pjo):
        pjo, _, _ = draft_pjo
        pjo_service.submit_for_approval(manager, pjo.id)
        assert pjo_service.reject(manager, pjo.id).status == PJOStatus.REJECTED
        assert pjo_service.revise(manager, pjo.id).status == PJOStatus.DRAFT


class TestCostConfirmation:

    def test_confirm_under_budget(self, pjo_service, ops_user, approved_pjo, deterministic_clock):
        pjo, trucking, _ = approved_pjo
        result = pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("2800000"))
        assert result.cost_status.status == CostItemStatus.CONFIRMED
        assert result.item.actual_amount == Decimal("2800000")
        assert result.item.confirmed_at == deterministic_clock.now()
        assert result.item.confirmed_by == ops_user.id
        assert result.progress.confirmed == 1
        assert result.progress.can_convert_to_jo is False

    def test_at_risk_within_tolerance(self, pjo_service, ops_user, approved_pjo):
        _, trucking, _ = approved_pjo
        result = pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3300000"))
        assert result.cost_status.status == CostItemStatus.AT_RISK
        assert result.cost_status.variance_pct == Decimal("10")

    def test_exceeded_needs_justification(self, pjo_service, ops_user, approved_pjo):
        pjo, _, port = approved_pjo
        with pytest.raises(CostConfirmationError) as exc_info:
            pjo_service.confirm_actual_cost(ops_user, port.id, Decimal("2500000"), "late")
        assert exc_info.value.reason == JUSTIFICATION_REQUIRED_ERROR
        assert exc_info.value.code == "COST_CONFIRMATION"

        item = next(i for i in pjo_service.list_cost_items(pjo.id) if i.id == port.id)
        assert item.actual_amount is None
        assert item.confirmed_at is None

    def test_exceeded_with_justification(self, pjo_service, ops_user, approved_pjo):
        _, _, port = approved_pjo
        result = pjo_service.confirm_actual_cost(
            ops_user, port.id, Decimal("2500000"), "  Port congestion surcharge  "
        )
        assert result.cost_status.status == CostItemStatus.EXCEEDED
        assert result.item.justification == "Port congestion surcharge"

    def test_negative_actual(self, pjo_service, ops_user, approved_pjo):
        _, trucking, _ = approved_pjo
        with pytest.raises(CostConfirmationError):
            pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("-1"))

    def test_draft_pjo_not_editable(self, pjo_service, ops_user, draft_pjo):
        _, trucking, _ = draft_pjo
        with pytest.raises(PJOStatusError):
            pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("1"))

    def test_requires_fill_costs(self, pjo_service, finance_user, approved_pjo):
        _, trucking, _ = approved_pjo
        with pytest.raises(PermissionDeniedError):
            pjo_service.confirm_actual_cost(finance_user, trucking.id, Decimal("1"))

    def test_unknown_item(self, pjo_service, ops_user):
        with pytest.raises(CostItemNotFoundError):
            pjo_service.confirm_actual_cost(ops_user, uuid4(), Decimal("1"))

    def test_totals_and_flags_follow_items(self, session, pjo_service, ops_user, approved_pjo):
        pjo, trucking, port = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3100000"))
        stored = pjo_service.get_pjo(pjo.id)
        assert stored.total_cost_actual == Decimal("3100000")
        assert stored.all_costs_confirmed is False

        result = pjo_service.confirm_actual_cost(
            ops_user, port.id, Decimal("2600000"), "Extra demurrage days"
        )
        assert result.progress.all_confirmed is True
        assert result.progress.has_overruns is True

        stored = pjo_service.get_pjo(pjo.id)
        assert stored.total_cost_actual == Decimal("5700000")
        assert stored.all_costs_confirmed is True
        assert stored.has_cost_overruns is True

        rows = session.scalars(
            select(ActivityLogModel).where(ActivityLogModel.action_type == "costs_confirmed")
        ).all()
        assert len(rows) == 1
        assert rows[0].actor_role == "ops"

    def test_budget_analysis(self, pjo_service, ops_user, approved_pjo):
        pjo, trucking, _ = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3200000"))
        analysis = pjo_service.analyze(pjo.id)
        assert analysis.total_estimated == Decimal("5000000")
        assert analysis.total_actual == Decimal("3200000")
        assert analysis.items_confirmed == 1
        assert analysis.items_pending == 1
        assert analysis.items_at_risk == 1


class TestConversion:

    def test_convert_after_all_confirmed(self, session, pjo_service, manager, ops_user, approved_pjo):
        pjo, trucking, port = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3000000"))
        pjo_service.confirm_actual_cost(ops_user, port.id, Decimal("2600000"), "Extra demurrage days")

        result = pjo_service.convert_to_job_order(manager, pjo.id)
        assert result.jo_number == "JO-0001/CARGO/I/2024"
        assert result.has_cost_overruns is True
        assert pjo_service.get_pjo(pjo.id).converted_to_jo is True

        jo = session.get(JobOrderModel, result.job_order_id)
        assert jo.status == JobOrderStatus.ACTIVE.value
        assert jo.final_cost == Decimal("5600000")

    def test_pending_items_block_conversion(self, pjo_service, manager, ops_user, approved_pjo):
        pjo, trucking, _ = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3000000"))
        with pytest.raises(PJOStatusError) as exc_info:
            pjo_service.convert_to_job_order(manager, pjo.id)
        assert "1 unconfirmed" in exc_info.value.action

    def test_converted_pjo_is_locked(self, pjo_service, manager, ops_user, approved_pjo):
        pjo, trucking, port = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3000000"))
        pjo_service.confirm_actual_cost(ops_user, port.id, Decimal("2000000"))
        pjo_service.convert_to_job_order(manager, pjo.id)

        with pytest.raises(PJOStatusError):
            pjo_service.convert_to_job_order(manager, pjo.id)
        with pytest.raises(PJOStatusError):
            pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("2900000"))

    def test_empty_pjo_cannot_convert(self, pjo_service, manager):
        pjo = pjo_service.create_pjo(manager, "PJO-0003", Decimal("1000000"))
        pjo_service.add_cost_item(manager, pjo.id, "handling", "Forklift", Decimal("100000"))
        item = pjo_service.list_cost_items(pjo.id)[0]
        pjo_service.delete_cost_item(manager, item.id)
        pjo_service.submit_for_approval(manager, pjo.id)
        pjo_service.approve(manager, pjo.id)
        assert pjo_service.get_progress(pjo.id).can_convert_to_jo is False
        with pytest.raises(PJOStatusError):
            pjo_service.convert_to_job_order(manager, pjo.id)


class TestJobOrderSequence:
    """Job order numbers come from a locked per-month counter."""

    @staticmethod
    def _ready_pjo(service, manager, ops_user, pjo_number):
        pjo = service.create_pjo(manager, pjo_number, Decimal("2000000"))
        item = service.add_cost_item(manager, pjo.id, "trucking", "Depot run", Decimal("1000000"))
        service.submit_for_approval(manager, pjo.id)
        service.approve(manager, pjo.id)
        service.confirm_actual_cost(ops_user, item.id, Decimal("950000"))
        return pjo

    def test_interleaved_conversions_get_distinct_numbers(
        self, session, monkeypatch, pjo_service, manager, ops_user, deterministic_clock
    ):
        first = self._ready_pjo(pjo_service, manager, ops_user, "PJO-0010")
        second = self._ready_pjo(pjo_service, manager, ops_user, "PJO-0011")

        other_session = get_session()
        other_service = PJOService(other_session, clock=deterministic_clock)
        real_format = pjo_service_module.format_jo_number
        allocated = []

        def convert_other_in_between(sequence, on_date):
            allocated.append(sequence)
            if len(allocated) == 1:
                other_service.convert_to_job_order(manager, second.id)
            return real_format(sequence, on_date)

        monkeypatch.setattr(pjo_service_module, "format_jo_number", convert_other_in_between)
        try:
            result = pjo_service.convert_to_job_order(manager, first.id)
        finally:
            other_session.close()

        assert allocated == [1, 2]
        assert result.jo_number == "JO-0001/CARGO/I/2024"
        numbers = sorted(session.scalars(select(JobOrderModel.jo_number)).all())
        assert numbers == ["JO-0001/CARGO/I/2024", "JO-0002/CARGO/I/2024"]

    def test_numbering_restarts_each_month(
        self, pjo_service, manager, ops_user, deterministic_clock
    ):
        january = self._ready_pjo(pjo_service, manager, ops_user, "PJO-0020")
        february = self._ready_pjo(pjo_service, manager, ops_user, "PJO-0021")

        assert pjo_service.convert_to_job_order(manager, january.id).jo_number == (
            "JO-0001/CARGO/I/2024"
        )
        deterministic_clock.set_time(datetime(2024, 2, 2, 8, 0, tzinfo=timezone.utc))
        assert pjo_service.convert_to_job_order(manager, february.id).jo_number == (
            "JO-0001/CARGO/II/2024"
        )

    def test_rolled_back_conversion_releases_its_number(
        self, monkeypatch, pjo_service, manager, ops_user
    ):
        ready = self._ready_pjo(pjo_service, manager, ops_user, "PJO-0030")

        def numbering_offline(sequence, on_date):
            raise RuntimeError("numbering offline")

        monkeypatch.setattr(pjo_service_module, "format_jo_number", numbering_offline)
        with pytest.raises(RuntimeError):
            pjo_service.convert_to_job_order(manager, ready.id)
        monkeypatch.undo()

        assert pjo_service.get_pjo(ready.id).converted_to_jo is False
        assert pjo_service.convert_to_job_order(manager, ready.id).jo_number == (
            "JO-0001/CARGO/I/2024"
        )


class TestCostsConfirmedActivity:

    def test_recorded_once_when_last_item_confirmed(
        self, session, pjo_service, ops_user, approved_pjo
    ):
        pjo, trucking, port = approved_pjo
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("3000000"))
        pjo_service.confirm_actual_cost(ops_user, port.id, Decimal("1900000"))
        pjo_service.confirm_actual_cost(ops_user, trucking.id, Decimal("2950000"))
        pjo_service.confirm_actual_cost(ops_user, port.id, Decimal("1950000"))

        rows = session.scalars(
            select(ActivityLogModel).where(ActivityLogModel.action_type == "costs_confirmed")
        ).all()
        assert len(rows) == 1
        assert pjo_service.get_pjo(pjo.id).total_cost_actual == Decimal("4900000")
