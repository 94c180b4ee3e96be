"""Kernel services that need a database session."""

from freight_kernel.services.sequence_service import SequenceCounterModel, SequenceService

__all__ = ["SequenceCounterModel", "SequenceService"]
