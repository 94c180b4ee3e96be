"""
SequenceService -- document number allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers per named sequence (for example
    one sequence per month of job-order numbers).  The counter row is read
    with ``SELECT ... FOR UPDATE`` so concurrent allocations for the same
    name are serialised; aggregate ``count(*) + 1`` is never used.

Architecture position:
    Kernel > Services.  Called by ``PJOService.convert_to_job_order``.

Invariants enforced:
    - The increment is part of the caller's transaction: a rollback
      returns the value.
    - Counter rows are created with an insert that ignores a duplicate
      name, so two first allocations cannot both create the row.

Failure modes:
    - ValueError for an empty sequence name.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Mapped, Session, mapped_column

from freight_kernel.db.base import Base
from freight_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounterModel(Base):
    """One named sequence and the last value handed out."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Allocates the next value of a named sequence.

    Does NOT commit; the caller owns the transaction.

    Usage:
        seq = SequenceService(session).next_value("job_order:2024-01")
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """Lock the counter row, increment it and return the new value."""
        if not sequence_name:
            raise ValueError("sequence_name must be a non-empty string")

        self._ensure_counter(sequence_name)
        counter = self._session.execute(
            select(SequenceCounterModel)
            .where(SequenceCounterModel.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounterModel)
            .where(SequenceCounterModel.name == sequence_name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def _ensure_counter(self, sequence_name: str) -> None:
        """Create the counter at zero unless a row with this name exists."""
        dialect = self._session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        self._session.execute(
            insert(SequenceCounterModel)
            .values(name=sequence_name, current_value=0)
            .on_conflict_do_nothing(index_elements=["name"])
        )
