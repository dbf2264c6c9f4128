"""
Tests for dues_kernel.logging_config.

Covers:
- Encoding of Money, Decimal, dates and enums in log payloads
- Structured fields of dues exceptions
- LogContext binding, including the ids bound while a payment is recorded
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from dues_engines.payment_processor import PaymentOutcome
from dues_kernel.domain.billing_window import PeriodBucket
from dues_kernel.domain.dtos import PaymentRequest, ValidationIssue
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import InactiveCustomerError, PaymentValidationError
from dues_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)
from dues_services.payment_service import PaymentService
from dues_services.repository import SqlAlchemyDuesRepository


@pytest.fixture
def log_stream():
    """Route dues_kernel logs into a fresh stream; restore the suite's handler afterwards."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)

    def _records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _records

    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestPayloadEncoding:

    def test_domain_values(self, log_stream):
        get_logger("engines.payment_summary").info(
            "summary_built",
            extra={
                "as_of": date(2026, 10, 18),
                "total_due": Money.of("2280.00", "INR"),
                "older_dues": Decimal("1200.00"),
                "bucket": PeriodBucket.MONTH3,
                "outcome": PaymentOutcome.OVERPAID,
            },
        )

        record = log_stream()[0]
        assert record["logger"] == "dues_kernel.engines.payment_summary"
        assert record["as_of"] == "2026-10-18"
        assert record["total_due"] == {"amount": "2280.00", "currency": "INR"}
        assert record["older_dues"] == "1200.00"
        assert record["bucket"] == "month3"
        assert record["outcome"] == "overpaid"

    def test_debug_dropped_at_info_level(self):
        reset_logging()
        stream = StringIO()
        try:
            configure_logging(stream=stream)
            logger = get_logger("engines.period_amounts")
            logger.debug("period_amounts_calculated")
            logger.info("payment_history_unmatched_funds")
            lines = stream.getvalue().splitlines()
            assert [json.loads(line)["message"] for line in lines] == [
                "payment_history_unmatched_funds"
            ]
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_second_configure_is_ignored(self, log_stream):
        configure_logging(stream=StringIO())
        root = logging.getLogger("dues_kernel")
        assert len(root.handlers) == 1


class TestExceptionFields:

    def test_inactive_customer(self, log_stream):
        try:
            raise InactiveCustomerError(7, "suspended")
        except InactiveCustomerError:
            get_logger("services.payment").error("payment_failed", exc_info=True)

        record = log_stream()[0]
        assert record["exc_type"] == "InactiveCustomerError"
        assert record["exc_code"] == "INACTIVE_CUSTOMER"
        assert record["exc_customer_id"] == 7
        assert record["exc_status"] == "suspended"
        assert "traceback" in record

    def test_validation_issues_serialized(self, log_stream):
        issue = ValidationIssue("amount", "Payment amount must be greater than zero", "INVALID_AMOUNT")
        try:
            raise PaymentValidationError((issue,), ("Payment amount is very small. Please verify.",))
        except PaymentValidationError:
            get_logger("services.payment").warning("payment_rejected", exc_info=True)

        record = log_stream()[0]
        assert record["exc_code"] == "VALIDATION_FAILED"
        assert record["exc_issues"] == [
            {
                "field": "amount",
                "message": "Payment amount must be greater than zero",
                "code": "INVALID_AMOUNT",
            }
        ]
        assert record["exc_warnings"] == ["Payment amount is very small. Please verify."]


class TestLogContext:

    def test_bound_fields_appear_on_records(self, log_stream):
        with LogContext.bind(customer_id=42, correlation_id="c-1"):
            get_logger("engines.payment_processor").info("payment_processed")

        record = log_stream()[0]
        assert record["customer_id"] == "42"
        assert record["correlation_id"] == "c-1"

    def test_bind_restores_outer_fields(self):
        LogContext.set(customer_id=1)
        with LogContext.bind(customer_id=2, payment_id=10):
            assert LogContext.get_all() == {"customer_id": "2", "payment_id": "10"}
        assert LogContext.get_all() == {"customer_id": "1"}

    def test_none_values_skipped(self):
        with LogContext.bind(customer_id=5, payment_id=None):
            assert LogContext.get_all() == {"customer_id": "5"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="trace_id"):
            with LogContext.bind(trace_id="t"):
                pass

    def test_restored_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(customer_id=3):
                raise RuntimeError("abort")
        assert LogContext.get_all() == {}


class TestPaymentRecordingContext:

    def test_every_record_carries_the_payment_context(
        self, log_stream, session, create_customer, clock
    ):
        customer_id = create_customer(pending_dues="500")
        service = PaymentService(SqlAlchemyDuesRepository(session), clock)

        receipt = service.record_payment(
            PaymentRequest(customer_id=customer_id, amount="200", payment_method="UPI")
        )

        records = [r for r in log_stream() if r["logger"] != "dues_kernel.db.engine"]
        started = next(r for r in records if r["message"] == "payment_recording_started")
        completed = next(r for r in records if r["message"] == "payment_recording_completed")
        assert started["customer_id"] == completed["customer_id"] == str(customer_id)
        assert started["correlation_id"] == completed["correlation_id"]
        assert "payment_id" not in started
        assert completed["payment_id"] == str(receipt.payment_id)
        assert {r["correlation_id"] for r in records if "correlation_id" in r} == {
            started["correlation_id"]
        }
        assert LogContext.get_all() == {}
