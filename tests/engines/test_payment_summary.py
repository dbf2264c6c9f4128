"""
Tests for payment summary assembly.

Covers:
- Per-period amount / paid / due
- Older dues and total due
- Status and overdue rules
- Determinism and input filtering
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from dues_config.schema import EngineSettings
from dues_engines.payment_summary import (
    PaymentStatus,
    calculate_customer_payment_summary,
    determine_payment_status,
    is_customer_overdue,
)
from dues_kernel.domain.billing_window import PeriodBucket
from dues_kernel.domain.dtos import (
    CustomerRecord,
    DeliveryCharge,
    PaymentRecord,
    PaymentRecordStatus,
)
from dues_kernel.domain.values import Money

AS_OF = date(2026, 10, 18)


def inr(amount) -> Money:
    return Money.of(str(amount), "INR")


def customer(pending="0", last_payment=None, customer_id=1):
    return CustomerRecord(
        customer_id=customer_id,
        pending_dues=inr(pending),
        last_payment=last_payment,
        name="Ravi",
    )


def deliveries(first_day, days, daily="60", customer_id=1):
    return [
        DeliveryCharge(
            customer_id=customer_id,
            delivery_date=first_day + timedelta(days=i),
            daily_amount=inr(daily),
        )
        for i in range(days)
    ]


def payment(amount, paid_date, customer_id=1, status=PaymentRecordStatus.PAID):
    return PaymentRecord(
        payment_id=None,
        customer_id=customer_id,
        amount=inr(amount),
        status=status,
        created_at=datetime(paid_date.year, paid_date.month, paid_date.day, 10, tzinfo=timezone.utc),
        paid_date=paid_date,
    )


class TestSummaryScenarios:

    def test_new_customer_current_month_only(self):
        """1800 billed this month, never paid, nothing carried forward."""
        summary = calculate_customer_payment_summary(
            customer(), [], deliveries(date(2026, 10, 1), 18, "100"), AS_OF
        )

        assert summary.current_month.amount == inr(1800)
        assert summary.current_month.due == inr(1800)
        assert summary.month1.amount.is_zero
        assert summary.older_dues.is_zero
        assert summary.total_due == inr(1800)
        assert summary.payment_status == PaymentStatus.PENDING
        assert summary.is_overdue is False
        assert summary.last_payment_date is None

    def test_pending_dues_with_no_payments(self):
        current = deliveries(date(2026, 10, 1), 18, "60")
        summary = calculate_customer_payment_summary(customer("1200"), [], current, AS_OF)

        assert summary.older_dues == inr(1200)
        assert summary.pending_dues == inr(1200)
        assert summary.total_due == inr(1080 + 1200)
        # Older dues are always past the overdue threshold
        assert summary.is_overdue
        assert summary.payment_status == PaymentStatus.OVERDUE


class TestPeriodDues:

    def test_periods_reflect_window(self):
        summary = calculate_customer_payment_summary(customer(), [], [], AS_OF)
        assert summary.current_month.period_start == date(2026, 10, 1)
        assert summary.month1.period_start == date(2026, 9, 1)
        assert summary.month2.period_start == date(2026, 8, 1)
        assert summary.month3.period_start == date(2026, 7, 1)
        assert [p.period_start for p in summary.periods] == [
            date(2026, 7, 1),
            date(2026, 8, 1),
            date(2026, 9, 1),
            date(2026, 10, 1),
        ]

    def test_partial_payment_reduces_month_due(self):
        summary = calculate_customer_payment_summary(
            customer(last_payment=date(2026, 9, 20)),
            [payment(500, date(2026, 9, 20))],
            deliveries(date(2026, 9, 1), 30),
            AS_OF,
        )
        assert summary.month1.amount == inr(1800)
        assert summary.month1.paid == inr(500)
        assert summary.month1.due == inr(1300)
        assert summary.payment_status == PaymentStatus.PARTIAL

    def test_over_payment_of_a_month_never_negative(self):
        summary = calculate_customer_payment_summary(
            customer(last_payment=date(2026, 9, 20)),
            [payment(5000, date(2026, 9, 20))],
            deliveries(date(2026, 9, 1), 30),
            AS_OF,
        )
        assert summary.month1.paid == inr(1800)
        assert summary.month1.due.is_zero
        assert summary.total_due.is_zero
        assert summary.payment_status == PaymentStatus.PAID

    def test_total_due_sums_dues_and_older(self):
        charges = (
            deliveries(date(2026, 7, 1), 10)
            + deliveries(date(2026, 8, 1), 10)
            + deliveries(date(2026, 9, 1), 10)
            + deliveries(date(2026, 10, 1), 10)
        )
        summary = calculate_customer_payment_summary(
            customer("300", last_payment=date(2026, 10, 2)),
            [payment(400, date(2026, 10, 2))],
            charges,
            AS_OF,
        )
        assert summary.current_month.due == inr(200)
        assert summary.total_due == inr(600 * 3 + 200 + 300)
        assert summary.total_billed == inr(2400)

    def test_due_for_bucket(self):
        summary = calculate_customer_payment_summary(
            customer("250"), [], deliveries(date(2026, 8, 1), 5), AS_OF
        )
        assert summary.due_for(PeriodBucket.OLDER_DUES) == inr(250)
        assert summary.due_for(PeriodBucket.MONTH2) == inr(300)
        assert summary.due_for(PeriodBucket.MONTH1).is_zero


class TestSummaryInputs:

    def test_total_paid_counts_all_paid_payments(self):
        summary = calculate_customer_payment_summary(
            customer(last_payment=date(2026, 10, 1)),
            [
                payment(1000, date(2025, 1, 15)),
                payment(200, date(2026, 10, 1)),
                payment(999, date(2026, 10, 1), status=PaymentRecordStatus.FAILED),
            ],
            [],
            AS_OF,
        )
        assert summary.total_paid == inr(1200)

    def test_other_customers_ignored(self):
        summary = calculate_customer_payment_summary(
            customer(),
            [payment(700, date(2026, 10, 2), customer_id=2)],
            deliveries(date(2026, 10, 1), 5) + deliveries(date(2026, 10, 1), 5, customer_id=2),
            AS_OF,
        )
        assert summary.current_month.amount == inr(300)
        assert summary.current_month.paid.is_zero
        assert summary.total_paid.is_zero

    def test_same_inputs_same_summary(self):
        args = (
            customer("500", last_payment=date(2026, 9, 1)),
            [payment(800, date(2026, 9, 1)), payment(100, date(2026, 10, 4))],
            deliveries(date(2026, 8, 1), 60),
        )
        first = calculate_customer_payment_summary(*args, AS_OF)
        second = calculate_customer_payment_summary(*args, AS_OF)
        assert first == second

    def test_next_due_date(self):
        summary = calculate_customer_payment_summary(customer(), [], [], AS_OF)
        assert summary.next_due_date == date(2026, 11, 5)

    def test_settings_change_due_day(self):
        summary = calculate_customer_payment_summary(
            customer(), [], [], AS_OF, EngineSettings(due_day_of_month=10)
        )
        assert summary.next_due_date == date(2026, 11, 10)

    def test_trace_emitted(self, captured_logs):
        calculate_customer_payment_summary(customer(), [], [], AS_OF)
        traces = [r for r in captured_logs() if r["message"] == "DUES_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "payment_summary"
        assert len(traces[-1]["input_fingerprint"]) == 16


class TestOverdue:

    def test_recent_payment_not_overdue(self):
        assert not is_customer_overdue(date(2026, 9, 1), inr(100), AS_OF)

    def test_stale_payment_overdue(self):
        assert is_customer_overdue(date(2026, 8, 1), inr(100), AS_OF)

    def test_exactly_threshold_not_overdue(self):
        last = AS_OF - timedelta(days=60)
        assert not is_customer_overdue(last, inr(100), AS_OF)
        assert is_customer_overdue(last - timedelta(days=1), inr(100), AS_OF)

    def test_nothing_due_never_overdue(self):
        assert not is_customer_overdue(date(2020, 1, 1), inr(0), AS_OF)
        assert not is_customer_overdue(None, inr(0), AS_OF)

    def test_never_paid_uses_oldest_due(self):
        assert not is_customer_overdue(None, inr(100), AS_OF, 60, date(2026, 10, 1))
        assert is_customer_overdue(None, inr(100), AS_OF, 60, date(2026, 7, 1))

    def test_never_paid_unknown_age_overdue(self):
        assert is_customer_overdue(None, inr(100), AS_OF)

    def test_never_paid_old_month_due_overdue(self):
        summary = calculate_customer_payment_summary(
            customer(), [], deliveries(date(2026, 7, 1), 3), AS_OF
        )
        assert summary.is_overdue
        assert summary.payment_status == PaymentStatus.OVERDUE

    def test_custom_threshold(self):
        summary = calculate_customer_payment_summary(
            customer(last_payment=date(2026, 9, 1)),
            [payment(10, date(2026, 9, 1))],
            deliveries(date(2026, 10, 1), 3),
            AS_OF,
            EngineSettings(overdue_after_days=30),
        )
        assert summary.is_overdue


class TestDetermineStatus:

    @pytest.mark.parametrize(
        "total_due,last_payment,overdue,expected",
        [
            ("0", None, False, PaymentStatus.PAID),
            ("-10", date(2026, 1, 1), False, PaymentStatus.PAID),
            ("10", None, True, PaymentStatus.OVERDUE),
            ("10", date(2026, 10, 1), False, PaymentStatus.PARTIAL),
            ("10", None, False, PaymentStatus.PENDING),
        ],
    )
    def test_status_table(self, total_due, last_payment, overdue, expected):
        assert determine_payment_status(Money.of(Decimal(total_due), "INR"), last_payment, overdue) == expected
