"""
PJO Service - cost items, approval, cost confirmation and conversion.

Thin glue layer that:
1. Checks the actor's own permission flags
2. Enforces the PJO status in which each operation is allowed
3. Runs the shared confirmation gate before persisting an actual cost
4. Recomputes the PJO's cost totals from all of its items under a row
   lock on the PJO
5. Converts a fully confirmed PJO into a job order numbered from a
   locked per-month sequence

This service owns the transaction boundary: it commits on success and
rolls back on failure.

Usage:
    service = PJOService(session, clock)
    result = service.confirm_actual_cost(
        actor, cost_item_id, Decimal("1150000"),
        justification="Port congestion surcharge",
    )
    if result.progress.can_convert_to_jo:
        service.convert_to_job_order(actor, result.item.pjo_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_kernel.domain.clock import Clock, SystemClock
from freight_kernel.domain.values import ZERO, as_decimal
from freight_kernel.exceptions import (
    CostConfirmationError,
    CostItemNotFoundError,
    InvalidCostItemError,
    NegativeMarginError,
    PJONotFoundError,
    PJOStatusError,
)
from freight_kernel.logging_config import LogContext, get_logger
from freight_kernel.services.sequence_service import SequenceService
from freight_modules.access.guards import require_permission
from freight_modules.access.models import UserProfile
from freight_modules.activity.recorder import ActivityType, record_activity
from freight_modules.pjo.costs import (
    analyze_budget,
    calculate_cost_status,
    calculate_cost_total,
    calculate_pjo_progress,
    can_edit_cost_items,
    validate_cost_confirmation,
    validate_positive_margin,
)
from freight_modules.pjo.models import (
    COST_CATEGORIES,
    BudgetAnalysis,
    CostStatusResult,
    JobOrderStatus,
    PJOCostItem,
    PJOProgress,
    PJOStatus,
    ProformaJobOrder,
)
from freight_modules.pjo.numbering import format_jo_number, job_order_sequence_name
from freight_modules.pjo.orm import JobOrderModel, PJOCostItemModel, PJOModel
from freight_modules.pjo.workflows import target_status

logger = get_logger("modules.pjo.service")


@dataclass(frozen=True)
class ConfirmedCost:
    """Result of confirming one actual cost."""
    item: PJOCostItem
    cost_status: CostStatusResult
    progress: PJOProgress


@dataclass(frozen=True)
class ConversionResult:
    pjo_id: UUID
    job_order_id: UUID
    jo_number: str
    has_cost_overruns: bool


class PJOService:
    """
    Orchestrates the PJO lifecycle around its cost items.

    Permission flags used:
    - ``can_create_pjo``: create PJOs, edit draft cost items, submit, convert
    - ``can_approve_pjo``: approve / reject submitted PJOs
    - ``can_fill_costs``: confirm actual costs on approved PJOs
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_pjo(self, pjo_id: UUID) -> ProformaJobOrder:
        return self._load_pjo(pjo_id).to_dto()

    def list_cost_items(self, pjo_id: UUID) -> list[PJOCostItem]:
        return [m.to_dto() for m in self._items_of(pjo_id)]

    def get_progress(self, pjo_id: UUID) -> PJOProgress:
        self._load_pjo(pjo_id)
        return calculate_pjo_progress(self.list_cost_items(pjo_id))

    def analyze(self, pjo_id: UUID) -> BudgetAnalysis:
        self._load_pjo(pjo_id)
        return analyze_budget(self.list_cost_items(pjo_id))

    # =========================================================================
    # Draft editing
    # =========================================================================

    def create_pjo(
        self,
        actor: UserProfile | None,
        pjo_number: str,
        total_revenue: object,
    ) -> ProformaJobOrder:
        try:
            require_permission(actor, "can_create_pjo", "create PJOs")
            revenue = as_decimal(total_revenue)
            if revenue is None or revenue < ZERO:
                raise InvalidCostItemError("Total revenue must be a non-negative number", "total_revenue")
            pjo = PJOModel(
                pjo_number=pjo_number,
                status=PJOStatus.DRAFT.value,
                total_revenue=revenue,
                created_by_id=actor.id,
            )
            self._session.add(pjo)
            self._session.commit()
            logger.info("pjo_created", extra={
                "pjo_id": str(pjo.id),
                "pjo_number": pjo_number,
                "actor_id": str(actor.id),
            })
            return pjo.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def add_cost_item(
        self,
        actor: UserProfile | None,
        pjo_id: UUID,
        category: str,
        description: str,
        estimated_amount: object,
    ) -> PJOCostItem:
        """Add a budgeted cost line.  Only draft PJOs accept new items."""
        try:
            require_permission(actor, "can_create_pjo", "add cost items")
            pjo = self._load_pjo(pjo_id, for_update=True)
            self._require_status(pjo, PJOStatus.DRAFT, "add cost items")
            estimated = self._validate_item_fields(category, estimated_amount)

            item = PJOCostItemModel(
                pjo_id=pjo.id,
                category=category,
                description=description,
                estimated_amount=estimated,
                created_by_id=actor.id,
            )
            self._session.add(item)
            self._session.flush()
            self._refresh_totals(pjo)
            self._session.commit()
            logger.info("pjo_cost_item_added", extra={
                "pjo_id": str(pjo_id),
                "cost_item_id": str(item.id),
                "category": category,
                "estimated_amount": str(estimated),
            })
            return item.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def update_cost_estimate(
        self,
        actor: UserProfile | None,
        cost_item_id: UUID,
        estimated_amount: object,
        category: str | None = None,
        description: str | None = None,
    ) -> PJOCostItem:
        try:
            require_permission(actor, "can_create_pjo", "edit cost estimates")
            item = self._load_item(cost_item_id)
            pjo = self._load_pjo(item.pjo_id, for_update=True)
            self._require_status(pjo, PJOStatus.DRAFT, "edit cost estimates")
            estimated = self._validate_item_fields(category or item.category, estimated_amount)

            item.estimated_amount = estimated
            if category is not None:
                item.category = category
            if description is not None:
                item.description = description
            item.updated_by_id = actor.id
            self._session.flush()
            self._refresh_totals(pjo)
            self._session.commit()
            return item.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def delete_cost_item(self, actor: UserProfile | None, cost_item_id: UUID) -> None:
        try:
            require_permission(actor, "can_create_pjo", "delete cost items")
            item = self._load_item(cost_item_id)
            pjo = self._load_pjo(item.pjo_id, for_update=True)
            self._require_status(pjo, PJOStatus.DRAFT, "delete cost items")
            self._session.delete(item)
            self._session.flush()
            self._refresh_totals(pjo)
            self._session.commit()
            logger.info("pjo_cost_item_deleted", extra={
                "pjo_id": str(pjo.id),
                "cost_item_id": str(cost_item_id),
            })
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Approval
    # =========================================================================

    def submit_for_approval(self, actor: UserProfile | None, pjo_id: UUID) -> ProformaJobOrder:
        """Submit a draft; estimated cost must stay below revenue."""
        try:
            require_permission(actor, "can_create_pjo", "submit PJOs")
            pjo = self._load_pjo(pjo_id, for_update=True)
            new_status = self._next_status(pjo, "submit")
            margin = validate_positive_margin(pjo.total_revenue, pjo.total_cost_estimated)
            if not margin.is_valid:
                raise NegativeMarginError(str(pjo_id), margin.error)
            return self._apply_status(pjo, new_status, actor)
        except Exception:
            self._session.rollback()
            raise

    def approve(self, actor: UserProfile | None, pjo_id: UUID) -> ProformaJobOrder:
        try:
            require_permission(actor, "can_approve_pjo", "approve PJOs")
            pjo = self._load_pjo(pjo_id, for_update=True)
            return self._apply_status(pjo, self._next_status(pjo, "approve"), actor)
        except Exception:
            self._session.rollback()
            raise

    def reject(self, actor: UserProfile | None, pjo_id: UUID) -> ProformaJobOrder:
        try:
            require_permission(actor, "can_approve_pjo", "reject PJOs")
            pjo = self._load_pjo(pjo_id, for_update=True)
            return self._apply_status(pjo, self._next_status(pjo, "reject"), actor)
        except Exception:
            self._session.rollback()
            raise

    def revise(self, actor: UserProfile | None, pjo_id: UUID) -> ProformaJobOrder:
        """Return a rejected PJO to draft so its cost items can be edited."""
        try:
            require_permission(actor, "can_create_pjo", "revise PJOs")
            pjo = self._load_pjo(pjo_id, for_update=True)
            return self._apply_status(pjo, self._next_status(pjo, "revise"), actor)
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Cost confirmation
    # =========================================================================

    def confirm_actual_cost(
        self,
        actor: UserProfile | None,
        cost_item_id: UUID,
        actual_amount: object,
        justification: str | None = None,
    ) -> ConfirmedCost:
        """Persist an actual cost after it passes the confirmation gate.

        Raises:
            PermissionDeniedError / InactiveUserError: actor lacks can_fill_costs.
            CostItemNotFoundError: no such cost item.
            PJOStatusError: PJO not approved, or already converted.
            CostConfirmationError: amount invalid or justification missing.
        """
        try:
            require_permission(actor, "can_fill_costs", "confirm actual costs")
            item = self._load_item(cost_item_id)

            with LogContext.bind(actor_id=str(actor.id), pjo_id=str(item.pjo_id)):
                pjo = self._load_pjo(item.pjo_id, for_update=True)
                if not can_edit_cost_items(actor, pjo.status, pjo.converted_to_jo):
                    action = (
                        "confirm costs on a converted PJO"
                        if pjo.converted_to_jo
                        else "confirm actual costs"
                    )
                    raise PJOStatusError(str(pjo.id), pjo.status, action)

                check = validate_cost_confirmation(
                    item.estimated_amount, actual_amount, justification
                )
                if not check.is_valid:
                    logger.info("cost_confirmation_rejected", extra={
                        "cost_item_id": str(cost_item_id),
                        "requires_justification": check.requires_justification,
                    })
                    raise CostConfirmationError(
                        str(cost_item_id), check.error, as_decimal(actual_amount)
                    )

                actual = as_decimal(actual_amount)
                cost_status = calculate_cost_status(item.estimated_amount, actual)
                item.actual_amount = actual
                item.confirmed_at = self._clock.now()
                item.confirmed_by = actor.id
                item.status = cost_status.status.value
                item.justification = (
                    justification.strip() if isinstance(justification, str) and justification.strip()
                    else None
                )
                item.updated_by_id = actor.id
                self._session.flush()

                was_complete = bool(pjo.all_costs_confirmed)
                progress = self._refresh_totals(pjo)
                if pjo.all_costs_confirmed and not was_complete:
                    record_activity(
                        self._session,
                        ActivityType.COSTS_CONFIRMED,
                        "pjo",
                        pjo.id,
                        actor,
                        document_number=pjo.pjo_number,
                    )
                self._session.commit()

                logger.info("actual_cost_confirmed", extra={
                    "cost_item_id": str(cost_item_id),
                    "status": cost_status.status.value,
                    "variance": str(cost_status.variance),
                    "variance_pct": str(cost_status.variance_pct),
                    "confirmed": progress.confirmed,
                    "total": progress.total,
                })
                return ConfirmedCost(
                    item=item.to_dto(),
                    cost_status=cost_status,
                    progress=progress,
                )
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Conversion
    # =========================================================================

    def convert_to_job_order(self, actor: UserProfile | None, pjo_id: UUID) -> ConversionResult:
        """Create the job order for a PJO whose costs are all confirmed.

        Overruns do not block conversion; they are carried on the result.
        """
        try:
            require_permission(actor, "can_create_pjo", "convert PJOs")
            pjo = self._load_pjo(pjo_id, for_update=True)
            if pjo.converted_to_jo:
                raise PJOStatusError(str(pjo_id), pjo.status, "convert an already converted PJO")
            if pjo.status != PJOStatus.APPROVED.value:
                raise PJOStatusError(str(pjo_id), pjo.status, "convert to job order")

            progress = calculate_pjo_progress(self.list_cost_items(pjo_id))
            if not progress.can_convert_to_jo:
                raise PJOStatusError(
                    str(pjo_id),
                    pjo.status,
                    f"convert with {progress.pending} unconfirmed cost item(s)",
                )

            now = self._clock.now()
            sequence = SequenceService(self._session).next_value(
                job_order_sequence_name(now.date())
            )
            jo = JobOrderModel(
                jo_number=format_jo_number(sequence, now.date()),
                pjo_id=pjo.id,
                status=JobOrderStatus.ACTIVE.value,
                final_cost=pjo.total_cost_actual,
                created_by_id=actor.id,
            )
            self._session.add(jo)
            pjo.converted_to_jo = True
            pjo.converted_to_jo_at = now
            pjo.updated_by_id = actor.id
            self._session.flush()
            record_activity(
                self._session,
                ActivityType.PJO_CONVERTED,
                "pjo",
                pjo.id,
                actor,
                document_number=pjo.pjo_number,
            )
            self._session.commit()

            logger.info("pjo_converted_to_job_order", extra={
                "pjo_id": str(pjo_id),
                "jo_number": jo.jo_number,
                "has_cost_overruns": progress.has_overruns,
            })
            return ConversionResult(
                pjo_id=pjo.id,
                job_order_id=jo.id,
                jo_number=jo.jo_number,
                has_cost_overruns=progress.has_overruns,
            )
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Helpers
    # =========================================================================

    def _refresh_totals(self, pjo: PJOModel) -> PJOProgress:
        """Rewrite the PJO's cost totals and flags from all of its items."""
        items = self.list_cost_items(pjo.id)
        progress = calculate_pjo_progress(items)
        pjo.total_cost_estimated = calculate_cost_total(items, "estimated")
        pjo.total_cost_actual = calculate_cost_total(items, "actual")
        pjo.all_costs_confirmed = progress.all_confirmed and progress.total > 0
        pjo.has_cost_overruns = progress.has_overruns
        return progress

    def _validate_item_fields(self, category: str, estimated_amount: object) -> Decimal:
        if category not in COST_CATEGORIES:
            raise InvalidCostItemError(f"Unknown cost category: {category}", "category")
        estimated = as_decimal(estimated_amount)
        if estimated is None or estimated < ZERO:
            raise InvalidCostItemError(
                "Estimated amount must be a non-negative number", "estimated_amount"
            )
        return estimated

    def _next_status(self, pjo: PJOModel, action: str) -> PJOStatus:
        new_status = target_status(PJOStatus(pjo.status), action)
        if new_status is None:
            raise PJOStatusError(str(pjo.id), pjo.status, action)
        return new_status

    def _apply_status(
        self, pjo: PJOModel, new_status: PJOStatus, actor: UserProfile
    ) -> ProformaJobOrder:
        previous = pjo.status
        pjo.status = new_status.value
        pjo.updated_by_id = actor.id
        self._session.commit()
        logger.info("pjo_status_changed", extra={
            "pjo_id": str(pjo.id),
            "previous_status": previous,
            "new_status": new_status.value,
            "actor_id": str(actor.id),
        })
        return pjo.to_dto()

    def _require_status(self, pjo: PJOModel, status: PJOStatus, action: str) -> None:
        if pjo.status != status.value:
            raise PJOStatusError(str(pjo.id), pjo.status, action)

    def _items_of(self, pjo_id: UUID) -> list[PJOCostItemModel]:
        return list(self._session.scalars(
            select(PJOCostItemModel)
            .where(PJOCostItemModel.pjo_id == pjo_id)
            .order_by(PJOCostItemModel.created_at)
        ).all())

    def _load_item(self, cost_item_id: UUID) -> PJOCostItemModel:
        item = self._session.get(PJOCostItemModel, cost_item_id)
        if item is None:
            raise CostItemNotFoundError(str(cost_item_id))
        return item

    def _load_pjo(self, pjo_id: UUID, for_update: bool = False) -> PJOModel:
        stmt = select(PJOModel).where(PJOModel.id == pjo_id)
        if for_update:
            stmt = stmt.with_for_update()
        pjo = self._session.scalars(stmt).first()
        if pjo is None:
            raise PJONotFoundError(str(pjo_id))
        return pjo
