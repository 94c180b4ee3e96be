"""
Invoicing Module.

Customer invoices and the payments recorded against them.  Invoice status
is derived from the full payment set after every payment change.
"""

from freight_modules.invoicing.documents import (
    VAT_RATE,
    calculate_invoice_totals,
    format_invoice_number,
    next_invoice_number,
)
from freight_modules.invoicing.models import (
    OPEN_STATUSES,
    Invoice,
    InvoiceStatus,
    InvoiceTotals,
    Payment,
    PaymentMethod,
    PaymentOutcome,
)
from freight_modules.invoicing.payments import (
    calculate_remaining_balance,
    calculate_total_paid,
    determine_invoice_status,
    validate_payment_amount,
)
from freight_modules.invoicing.workflows import (
    INVOICE_WORKFLOW,
    VALID_STATUS_TRANSITIONS,
    is_invoice_overdue,
    is_valid_status_transition,
)

__all__ = [
    "INVOICE_WORKFLOW",
    "OPEN_STATUSES",
    "VALID_STATUS_TRANSITIONS",
    "VAT_RATE",
    "Invoice",
    "InvoiceStatus",
    "InvoiceTotals",
    "Payment",
    "PaymentMethod",
    "PaymentOutcome",
    "calculate_invoice_totals",
    "calculate_remaining_balance",
    "calculate_total_paid",
    "determine_invoice_status",
    "format_invoice_number",
    "is_invoice_overdue",
    "is_valid_status_transition",
    "next_invoice_number",
    "validate_payment_amount",
]
