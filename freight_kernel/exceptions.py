"""
Typed exception hierarchy for the freight kernel and its modules.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The pure rule functions never raise: validation failures come back as
result values and authorization questions as booleans.  The service layer,
which owns the transaction, turns those answers into exceptions so that
callers can catch by TYPE and read structured attributes instead of
parsing messages:

    try:
        service.record_payment(actor, invoice_id, amount, "transfer", today)
    except PermissionDeniedError as e:
        respond(403, code=e.code, permission=e.permission)
    except PaymentValidationError as e:
        respond(422, code=e.code, error=e.reason)

Every class carries a ``code`` class attribute (machine-readable, stable
across message rewording).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FreightKernelError (base)
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |   +-- InactiveUserError
    |   +-- LastAdminRemovalError
    |
    +-- UserError
    |   +-- UserProfileNotFoundError
    |   +-- DuplicateUserProfileError
    |
    +-- InvoiceError
    |   +-- InvoiceNotFoundError
    |   +-- InvoiceCancelledError
    |   +-- PaymentNotFoundError
    |   +-- PaymentValidationError
    |
    +-- PJOError
        +-- PJONotFoundError
        +-- PJOStatusError
        +-- CostItemNotFoundError
        +-- CostConfirmationError
        +-- InvalidCostItemError
        +-- NegativeMarginError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                     | When Raised
--------------|--------------------------|------------------------------------------
Authorization | PERMISSION_DENIED        | Actor lacks the required permission flag
              | INACTIVE_USER            | Actor profile is deactivated
              | LAST_ADMIN_REMOVAL       | Sole admin removing own admin rights
--------------|--------------------------|------------------------------------------
User          | USER_PROFILE_NOT_FOUND   | Profile ID doesn't exist
              | DUPLICATE_USER_PROFILE   | Email already registered
--------------|--------------------------|------------------------------------------
Invoice       | INVOICE_NOT_FOUND        | Invoice ID doesn't exist
              | INVOICE_CANCELLED        | Payment against a cancelled invoice
              | PAYMENT_NOT_FOUND        | Payment ID doesn't exist
              | PAYMENT_VALIDATION       | Amount or payment method rejected
--------------|--------------------------|------------------------------------------
PJO           | PJO_NOT_FOUND            | PJO ID doesn't exist
              | PJO_STATUS               | Operation not allowed in the PJO status
              | COST_ITEM_NOT_FOUND      | Cost item ID doesn't exist
              | COST_CONFIRMATION        | Actual amount / justification rejected
              | INVALID_COST_ITEM        | Unknown category or bad estimated amount
              | NEGATIVE_MARGIN          | Submitted PJO with cost >= revenue
"""

from decimal import Decimal


class FreightKernelError(Exception):
    """
    Base exception for all freight kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "FREIGHT_KERNEL_ERROR"


# Authorization exceptions


class AuthorizationError(FreightKernelError):
    """Base exception for authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Actor does not hold the permission flag an operation requires."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, actor_id: str | None, permission: str, action: str):
        self.actor_id = actor_id
        self.permission = permission
        self.action = action
        super().__init__(
            f"Permission '{permission}' required to {action} "
            f"(actor: {actor_id or 'anonymous'})"
        )


class InactiveUserError(AuthorizationError):
    """Actor profile has been deactivated."""

    code: str = "INACTIVE_USER"

    def __init__(self, actor_id: str | None):
        self.actor_id = actor_id
        super().__init__(f"User profile is inactive: {actor_id}")


class LastAdminRemovalError(AuthorizationError):
    """The only remaining admin tried to remove their own admin rights."""

    code: str = "LAST_ADMIN_REMOVAL"

    def __init__(self, actor_id: str, reason: str):
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(reason)


# User exceptions


class UserError(FreightKernelError):
    """Base exception for user-profile errors."""

    code: str = "USER_ERROR"


class UserProfileNotFoundError(UserError):
    """User profile with given ID was not found."""

    code: str = "USER_PROFILE_NOT_FOUND"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"User profile not found: {profile_id}")


class DuplicateUserProfileError(UserError):
    """A profile with this email already exists."""

    code: str = "DUPLICATE_USER_PROFILE"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User profile already exists for {email}")


# Invoice and payment exceptions


class InvoiceError(FreightKernelError):
    """Base exception for invoice and payment errors."""

    code: str = "INVOICE_ERROR"


class InvoiceNotFoundError(InvoiceError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class InvoiceCancelledError(InvoiceError):
    """Payments cannot be recorded against a cancelled invoice."""

    code: str = "INVOICE_CANCELLED"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Cannot record payment for cancelled invoice {invoice_id}")


class PaymentNotFoundError(InvoiceError):
    """Payment with given ID was not found."""

    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class PaymentValidationError(InvoiceError):
    """Payment amount or method failed validation."""

    code: str = "PAYMENT_VALIDATION"

    def __init__(self, reason: str, amount: object = None):
        self.reason = reason
        self.amount = amount
        super().__init__(reason)


# PJO exceptions


class PJOError(FreightKernelError):
    """Base exception for proforma job order errors."""

    code: str = "PJO_ERROR"


class PJONotFoundError(PJOError):
    """PJO with given ID was not found."""

    code: str = "PJO_NOT_FOUND"

    def __init__(self, pjo_id: str):
        self.pjo_id = pjo_id
        super().__init__(f"PJO not found: {pjo_id}")


class PJOStatusError(PJOError):
    """Operation is not allowed in the PJO's current status."""

    code: str = "PJO_STATUS"

    def __init__(self, pjo_id: str, status: str, action: str):
        self.pjo_id = pjo_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} for PJO {pjo_id} in status '{status}'")


class CostItemNotFoundError(PJOError):
    """Cost item with given ID was not found."""

    code: str = "COST_ITEM_NOT_FOUND"

    def __init__(self, cost_item_id: str):
        self.cost_item_id = cost_item_id
        super().__init__(f"Cost item not found: {cost_item_id}")


class CostConfirmationError(PJOError):
    """Actual cost or justification was rejected by the confirmation gate."""

    code: str = "COST_CONFIRMATION"

    def __init__(
        self,
        cost_item_id: str,
        reason: str,
        actual_amount: Decimal | None = None,
    ):
        self.cost_item_id = cost_item_id
        self.reason = reason
        self.actual_amount = actual_amount
        super().__init__(f"Cost item {cost_item_id}: {reason}")


class InvalidCostItemError(PJOError):
    """Cost item fields (category, estimated amount) were rejected."""

    code: str = "INVALID_COST_ITEM"

    def __init__(self, reason: str, field: str | None = None):
        self.reason = reason
        self.field = field
        super().__init__(reason)


class NegativeMarginError(PJOError):
    """PJO submitted while estimated cost is not below revenue."""

    code: str = "NEGATIVE_MARGIN"

    def __init__(self, pjo_id: str, reason: str):
        self.pjo_id = pjo_id
        self.reason = reason
        super().__init__(reason)
