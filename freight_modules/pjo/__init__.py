"""
Proforma Job Order Module.

Budgeted cost items, the actual-cost confirmation gate, approval workflow
and conversion of a fully confirmed PJO into a job order.
"""

from freight_modules.pjo.costs import (
    analyze_budget,
    calculate_cost_status,
    calculate_pjo_progress,
    validate_cost_confirmation,
)
from freight_modules.pjo.models import (
    COST_CATEGORIES,
    BudgetAnalysis,
    ConfirmationCheck,
    CostItemStatus,
    CostStatusResult,
    JobOrderStatus,
    PJOCostItem,
    PJOProgress,
    PJOStatus,
    ProformaJobOrder,
)
from freight_modules.pjo.numbering import format_jo_number, job_order_sequence_name
from freight_modules.pjo.workflows import PJO_WORKFLOW

__all__ = [
    "COST_CATEGORIES",
    "PJO_WORKFLOW",
    "BudgetAnalysis",
    "ConfirmationCheck",
    "CostItemStatus",
    "CostStatusResult",
    "JobOrderStatus",
    "PJOCostItem",
    "PJOProgress",
    "PJOStatus",
    "ProformaJobOrder",
    "analyze_budget",
    "calculate_cost_status",
    "calculate_pjo_progress",
    "format_jo_number",
    "job_order_sequence_name",
    "validate_cost_confirmation",
]
