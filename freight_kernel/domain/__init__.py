"""
Pure domain layer.

Value objects and helpers with NO dependencies on the ORM, the database,
or I/O.  Everything here is immutable and deterministic.
"""

from freight_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from freight_kernel.domain.values import as_decimal
from freight_kernel.domain.results import GuardResult, ValidationResult
from freight_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "as_decimal",
    "Guard",
    "GuardResult",
    "ValidationResult",
    "Transition",
    "Workflow",
]
