"""
Payment Service - records and removes invoice payments transactionally.

Thin glue layer that:
1. Checks the actor's own ``can_manage_invoices`` flag
2. Validates amount and payment method with the pure payment rules, and
   refuses an unconfirmed overpayment when settings require confirmation
3. Locks the invoice row (SELECT ... FOR UPDATE)
4. Inserts or deletes the payment and re-reads the FULL payment set
5. Derives the new status (an invoice left with no payments past its
   due date is overdue), applies the ``paid_at`` contract, and updates
   the linked job order and the activity log

The recomputation happens under the row lock in the same transaction as
the payment write, so two concurrent payments against one invoice cannot
both work from a stale ``amount_paid``.  This service owns the
transaction boundary: it commits on success and rolls back on failure.

Usage:
    service = PaymentService.from_settings(session, load_settings(), clock)
    outcome = service.record_payment(
        actor, invoice_id, Decimal("2000000"), "transfer", date.today(),
    )
    if outcome.became_paid:
        notify_finance(outcome.invoice_id)
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_config.loader import FreightSettings
from freight_kernel.domain.clock import Clock, SystemClock
from freight_kernel.domain.values import as_decimal
from freight_kernel.exceptions import (
    InvoiceCancelledError,
    InvoiceNotFoundError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from freight_kernel.logging_config import LogContext, get_logger
from freight_modules.access.guards import require_permission
from freight_modules.access.models import UserProfile
from freight_modules.activity.recorder import ActivityType, record_activity
from freight_modules.invoicing.models import (
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    PaymentOutcome,
)
from freight_modules.invoicing.orm import InvoiceModel, PaymentModel
from freight_modules.invoicing.payments import (
    INVALID_METHOD_ERROR,
    UNCONFIRMED_OVERPAYMENT_ERROR,
    calculate_remaining_balance,
    calculate_total_paid,
    coerce_status,
    determine_invoice_status,
    is_overpayment,
    is_valid_payment_method,
    resolve_paid_at,
    validate_payment_amount,
)
from freight_modules.invoicing.workflows import is_invoice_overdue
from freight_modules.pjo.models import JobOrderStatus
from freight_modules.pjo.orm import JobOrderModel

logger = get_logger("modules.invoicing.service")

_PERMISSION = "can_manage_invoices"


class PaymentService:
    """
    Records and deletes payments, keeping the invoice's derived columns
    (``amount_paid``, ``status``, ``paid_at``) consistent with its payment
    rows.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        overpayment_requires_confirmation: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._overpayment_requires_confirmation = overpayment_requires_confirmation

    @classmethod
    def from_settings(
        cls,
        session: Session,
        settings: FreightSettings,
        clock: Clock | None = None,
    ) -> PaymentService:
        return cls(
            session,
            clock=clock,
            overpayment_requires_confirmation=settings.overpayment_requires_confirmation,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        return self._load_invoice(invoice_id).to_dto()

    def list_payments(self, invoice_id: UUID) -> list[Payment]:
        rows = self._session.scalars(
            select(PaymentModel)
            .where(PaymentModel.invoice_id == invoice_id)
            .order_by(PaymentModel.payment_date, PaymentModel.created_at)
        ).all()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Commands
    # =========================================================================

    def record_payment(
        self,
        actor: UserProfile | None,
        invoice_id: UUID,
        amount: object,
        payment_method: str | PaymentMethod,
        payment_date: date,
        reference_number: str | None = None,
        bank_name: str | None = None,
        notes: str | None = None,
        confirm_overpayment: bool = False,
    ) -> PaymentOutcome:
        """Record a payment and recompute the invoice from all its payments.

        An amount above the remaining balance is logged.  When the service
        requires confirmation it is refused unless ``confirm_overpayment``
        is set.

        Raises:
            PermissionDeniedError / InactiveUserError: actor may not record payments.
            PaymentValidationError: amount or method rejected, or an
                unconfirmed overpayment.
            InvoiceNotFoundError: no such invoice.
            InvoiceCancelledError: invoice is cancelled.
        """
        try:
            require_permission(actor, _PERMISSION, "record payments")

            validation = validate_payment_amount(amount)
            if not validation.is_valid:
                raise PaymentValidationError(validation.error, amount)
            if not is_valid_payment_method(payment_method):
                raise PaymentValidationError(INVALID_METHOD_ERROR, amount)
            value = as_decimal(amount)

            with LogContext.bind(actor_id=str(actor.id), invoice_id=str(invoice_id)):
                logger.info("payment_record_started", extra={
                    "amount": str(value),
                    "payment_method": PaymentMethod(payment_method).value,
                })

                invoice = self._load_invoice(invoice_id, for_update=True)
                if invoice.status == InvoiceStatus.CANCELLED.value:
                    raise InvoiceCancelledError(str(invoice_id))

                already_paid = self._paid_total(invoice.id)
                overpaid = is_overpayment(
                    value,
                    calculate_remaining_balance(invoice.total_amount, already_paid),
                )
                if overpaid:
                    logger.warning("payment_exceeds_balance", extra={
                        "amount": str(value),
                        "amount_paid": str(already_paid),
                        "total_amount": str(invoice.total_amount),
                        "confirmed": confirm_overpayment,
                    })
                    if self._overpayment_requires_confirmation and not confirm_overpayment:
                        raise PaymentValidationError(UNCONFIRMED_OVERPAYMENT_ERROR, value)

                payment = PaymentModel(
                    invoice_id=invoice.id,
                    amount=value,
                    payment_method=PaymentMethod(payment_method).value,
                    payment_date=payment_date,
                    reference_number=reference_number,
                    bank_name=bank_name,
                    notes=notes,
                    created_by_id=actor.id,
                )
                self._session.add(payment)
                self._session.flush()

                outcome = self._recompute(invoice, payment.id, actor, overpaid=overpaid)
                self._session.commit()

                logger.info("payment_recorded", extra={
                    "payment_id": str(payment.id),
                    "previous_status": outcome.previous_status.value,
                    "new_status": outcome.new_status.value,
                    "amount_paid": str(outcome.amount_paid),
                })
                return outcome
        except Exception:
            self._session.rollback()
            raise

    def delete_payment(self, actor: UserProfile | None, payment_id: UUID) -> PaymentOutcome:
        """Delete a payment and recompute the invoice from the remaining ones.

        Raises:
            PermissionDeniedError / InactiveUserError: actor may not delete payments.
            PaymentNotFoundError: no such payment.
        """
        try:
            require_permission(actor, _PERMISSION, "delete payments")

            payment = self._session.get(PaymentModel, payment_id)
            if payment is None:
                raise PaymentNotFoundError(str(payment_id))

            with LogContext.bind(actor_id=str(actor.id), invoice_id=str(payment.invoice_id)):
                invoice = self._load_invoice(payment.invoice_id, for_update=True)
                logger.info("payment_delete_started", extra={
                    "payment_id": str(payment_id),
                    "amount": str(payment.amount),
                })

                self._session.delete(payment)
                self._session.flush()

                record_activity(
                    self._session,
                    ActivityType.PAYMENT_DELETED,
                    "invoice",
                    invoice.id,
                    actor,
                    document_number=invoice.invoice_number,
                )
                outcome = self._recompute(invoice, payment_id, actor)
                self._session.commit()

                logger.info("payment_deleted", extra={
                    "payment_id": str(payment_id),
                    "previous_status": outcome.previous_status.value,
                    "new_status": outcome.new_status.value,
                    "amount_paid": str(outcome.amount_paid),
                })
                return outcome
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Helpers
    # =========================================================================

    def _recompute(
        self,
        invoice: InvoiceModel,
        payment_id: UUID,
        actor: UserProfile,
        overpaid: bool = False,
    ) -> PaymentOutcome:
        """Rewrite the invoice's derived columns from its payment rows."""
        total_paid = self._paid_total(invoice.id)

        previous = coerce_status(invoice.status)
        new_status = determine_invoice_status(invoice.total_amount, total_paid, previous)
        if new_status == InvoiceStatus.SENT and is_invoice_overdue(
            invoice.due_date, new_status, self._clock.today()
        ):
            new_status = InvoiceStatus.OVERDUE
        paid_at = resolve_paid_at(previous, new_status, invoice.paid_at, self._clock.now())

        invoice.amount_paid = total_paid
        invoice.status = new_status.value
        invoice.paid_at = paid_at
        invoice.updated_by_id = actor.id

        outcome = PaymentOutcome(
            invoice_id=invoice.id,
            payment_id=payment_id,
            previous_status=previous,
            new_status=new_status,
            amount_paid=total_paid,
            remaining_balance=calculate_remaining_balance(invoice.total_amount, total_paid),
            paid_at=paid_at,
            overpaid=overpaid,
        )

        if outcome.became_paid:
            record_activity(
                self._session,
                ActivityType.INVOICE_PAID,
                "invoice",
                invoice.id,
                actor,
                document_number=invoice.invoice_number,
            )
            self._set_job_order_status(invoice.jo_id, JobOrderStatus.CLOSED)
        elif outcome.left_paid:
            self._set_job_order_status(invoice.jo_id, JobOrderStatus.INVOICED)

        if previous != new_status:
            logger.info("invoice_status_derived", extra={
                "previous_status": previous.value,
                "new_status": new_status.value,
                "total_paid": str(total_paid),
                "total_amount": str(invoice.total_amount),
            })
        return outcome

    def _paid_total(self, invoice_id: UUID) -> Decimal:
        amounts = self._session.scalars(
            select(PaymentModel.amount).where(PaymentModel.invoice_id == invoice_id)
        ).all()
        return calculate_total_paid({"amount": a} for a in amounts)

    def _set_job_order_status(self, jo_id: UUID | None, status: JobOrderStatus) -> None:
        if jo_id is None:
            return
        jo = self._session.get(JobOrderModel, jo_id)
        if jo is None:
            logger.warning("job_order_missing_for_invoice", extra={"jo_id": str(jo_id)})
            return
        jo.status = status.value

    def _load_invoice(self, invoice_id: UUID, for_update: bool = False) -> InvoiceModel:
        stmt = select(InvoiceModel).where(InvoiceModel.id == invoice_id)
        if for_update:
            stmt = stmt.with_for_update()
        invoice = self._session.scalars(stmt).first()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice
