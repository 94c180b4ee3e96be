"""
Pytest fixtures for the freight kernel test suite.

Provides:
- Structured logging configured once per run, plus a JSON log capture
- A fresh in-memory SQLite database per test
- Deterministic clock
- Profile factories (pure and persisted)
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from freight_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from freight_kernel.domain.clock import DeterministicClock
from freight_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from freight_modules.access.models import UserProfile
from freight_modules.access.orm import UserProfileModel
from freight_modules.access.permissions import seed_profile
from freight_modules.invoicing.models import InvoiceStatus
from freight_modules.invoicing.orm import InvoiceModel

TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_NOW = datetime(2024, 1, 15, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture freight_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payment_service):
            payment_service.record_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("freight_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session bound to a fresh in-memory SQLite schema."""
    init_engine_from_url(TEST_DATABASE_URL)
    create_tables()
    db = get_session()
    try:
        yield db
    finally:
        db.close()
        reset_engine()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


# =============================================================================
# Profile factories
# =============================================================================


@pytest.fixture
def make_profile():
    """Build an unsaved profile seeded from its role defaults."""

    def _make(role: str = "viewer", email: str | None = None, **kwargs) -> UserProfile:
        return seed_profile(
            email or f"{role}@example.com",
            f"Test {role.title()}",
            role,
            **kwargs,
        )

    return _make


@pytest.fixture
def persist_profile(session):
    """Seed a profile from its role defaults and store it."""

    def _persist(role: str, email: str | None = None) -> UserProfile:
        profile = seed_profile(email or f"{role}@example.com", f"Test {role.title()}", role)
        session.add(UserProfileModel.from_dto(profile))
        session.commit()
        return profile

    return _persist


@pytest.fixture
def admin(persist_profile) -> UserProfile:
    return persist_profile("admin")


@pytest.fixture
def finance_user(persist_profile) -> UserProfile:
    return persist_profile("finance")


@pytest.fixture
def ops_user(persist_profile) -> UserProfile:
    return persist_profile("ops")


@pytest.fixture
def manager(persist_profile) -> UserProfile:
    return persist_profile("manager")


@pytest.fixture
def viewer(persist_profile) -> UserProfile:
    return persist_profile("viewer")


# =============================================================================
# Document factories
# =============================================================================


@pytest.fixture
def create_invoice(session):
    """Store an invoice directly; payment tests start from here."""

    def _create(
        total_amount: Decimal = Decimal("5000000"),
        status: InvoiceStatus = InvoiceStatus.SENT,
        invoice_number: str = "INV-2024-0001",
        jo_id=None,
    ) -> InvoiceModel:
        invoice = InvoiceModel(
            invoice_number=invoice_number,
            customer_name="PT Samudra Logistik",
            total_amount=total_amount,
            amount_paid=Decimal("0"),
            due_date=date(2024, 2, 15),
            status=status.value,
            jo_id=jo_id,
        )
        session.add(invoice)
        session.commit()
        return invoice

    return _create
