"""
Pytest fixtures for the dues test suite.

Provides:
- Structured logging configured once per session, plus a log capture
- A DeterministicClock fixed inside October 2026
- An in-memory SQLite session with all tables created

Environment Variables:
- DATABASE_URL: database for the service tests.  Defaults to in-memory
  SQLite; point it at PostgreSQL to exercise the row locks for real.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from dues_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from dues_kernel.domain.clock import DeterministicClock
from dues_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from dues_kernel.models import Customer

AS_OF = date(2026, 10, 18)


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
    Capture dues_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            process_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_processing_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dues_kernel")
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
# Time
# =============================================================================


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def clock() -> DeterministicClock:
    """Clock fixed at noon UTC on 2026-10-18."""
    return DeterministicClock.on(AS_OF)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", "sqlite:///:memory:")


@pytest.fixture
def db_engine():
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    """A session whose work is rolled back after the test."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def create_customer(session):
    """Insert a customer row and return its id."""

    def _create(
        name: str = "Asha Dairy",
        pending_dues: str = "0",
        last_payment: date | None = None,
        status: str = "active",
        rate_per_liter: str = "60.00",
        daily_quantity: str = "1.0",
    ) -> int:
        customer = Customer(
            name=name,
            phone="9800000000",
            daily_quantity=Decimal(daily_quantity),
            rate_per_liter=Decimal(rate_per_liter),
            pending_dues=Decimal(pending_dues),
            last_payment=last_payment,
            currency="INR",
            status=status,
        )
        session.add(customer)
        session.flush()
        return customer.id

    return _create
