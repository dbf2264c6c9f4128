"""
Module: dues_engines.payment_summary
Responsibility:
    Assemble a customer's payment summary: per-month amount / paid / due,
    remaining older dues, total due, total ever paid, payment status,
    overdue flag and next due date.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Pipeline: period_amounts -> payment_allocation -> this module.
    The summary is ephemeral: callers may cache it for one request but it
    is never persisted.

Invariants enforced:
    - Every ``due`` and ``older_dues`` is >= 0.
    - total_due <= 0 implies status PAID and is_overdue False.
    - Same inputs and same ``as_of`` give an equal summary.
    - ``as_of`` is an argument; the engine never reads the system clock.

Status rules:
    PAID     total_due <= 0
    OVERDUE  total_due > 0 and overdue
    PARTIAL  total_due > 0, not overdue, customer has a last payment date
    PENDING  total_due > 0, not overdue, never paid

Overdue rule:
    total_due > 0 and either
      - the last payment is more than ``settings.overdue_after_days``
        whole days old, or
      - there is no payment at all and the oldest outstanding charge is
        older than that threshold (older dues always are).  A brand-new
        customer billed only for recent months is PENDING, not OVERDUE.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from dues_config.schema import DEFAULT_SETTINGS, EngineSettings
from dues_engines.payment_allocation import allocate_payment_history
from dues_engines.period_amounts import period_amounts
from dues_engines.tracer import traced_engine
from dues_kernel.domain.billing_window import (
    TRACKED_PERIODS,
    PeriodBucket,
    TrackingWindow,
)
from dues_kernel.domain.dtos import CustomerRecord, DeliveryCharge, PaymentRecord
from dues_kernel.domain.values import Money, sum_money
from dues_kernel.logging_config import get_logger

logger = get_logger("engines.payment_summary")


class PaymentStatus(str, Enum):
    """Account payment status, recomputed on every summary build."""

    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class PeriodDues:
    """
    Amount, paid and due for one tracked calendar month.

    Guarantees:
        - ``due == max(0, amount - paid)``.
    """

    period_start: date
    amount: Money
    paid: Money
    due: Money

    @classmethod
    def of(cls, period_start: date, amount: Money, paid: Money) -> PeriodDues:
        return cls(
            period_start=period_start,
            amount=amount,
            paid=paid,
            due=(amount - paid).clamp_non_negative(),
        )


@dataclass(frozen=True)
class PaymentSummary:
    """
    Complete dues picture for one customer at one instant.

    Contract:
        All fields always present; empty periods carry zero Money.
    """

    customer_id: int
    as_of_date: date
    current_month: PeriodDues
    month1: PeriodDues
    month2: PeriodDues
    month3: PeriodDues
    pending_dues: Money
    older_dues: Money
    total_due: Money
    total_paid: Money
    payment_status: PaymentStatus
    is_overdue: bool
    last_payment_date: date | None
    next_due_date: date

    @property
    def currency(self) -> str:
        return self.total_due.currency.code

    @property
    def periods(self) -> tuple[PeriodDues, ...]:
        """Tracked months, oldest first."""
        return (self.month3, self.month2, self.month1, self.current_month)

    def period(self, bucket: PeriodBucket) -> PeriodDues:
        return {
            PeriodBucket.MONTH3: self.month3,
            PeriodBucket.MONTH2: self.month2,
            PeriodBucket.MONTH1: self.month1,
            PeriodBucket.CURRENT_MONTH: self.current_month,
        }[bucket]

    def due_for(self, bucket: PeriodBucket) -> Money:
        """Outstanding amount of a bucket, including older dues."""
        if bucket == PeriodBucket.OLDER_DUES:
            return self.older_dues
        return self.period(bucket).due

    @property
    def total_billed(self) -> Money:
        """Sum of the four tracked months' amounts."""
        return sum_money((p.amount for p in self.periods), self.currency)


def is_customer_overdue(
    last_payment_date: date | None,
    total_due: Money,
    as_of: date,
    overdue_after_days: int = 60,
    oldest_due_since: date | None = None,
) -> bool:
    """
    True when there is something due and the account has gone quiet.

    A customer with nothing due is never overdue.  For a customer who has
    never paid, ``oldest_due_since`` (start of the oldest period with an
    outstanding due) decides; when it is unknown the account is overdue.
    """
    if not total_due.is_positive:
        return False
    if last_payment_date is None:
        if oldest_due_since is None:
            return True
        return (as_of - oldest_due_since).days > overdue_after_days
    return (as_of - last_payment_date).days > overdue_after_days


def oldest_outstanding_since(
    older_dues: Money,
    period_dues: Iterable[PeriodDues],
) -> date | None:
    """Start of the oldest bucket that still has something due."""
    if older_dues.is_positive:
        return date.min
    starts = [p.period_start for p in period_dues if p.due.is_positive]
    return min(starts) if starts else None


def determine_payment_status(
    total_due: Money,
    last_payment_date: date | None,
    is_overdue: bool,
) -> PaymentStatus:
    """Map dues and payment history onto the four account states."""
    if not total_due.is_positive:
        return PaymentStatus.PAID
    if is_overdue:
        return PaymentStatus.OVERDUE
    if last_payment_date is not None:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


@traced_engine("payment_summary", "1.0", fingerprint_fields=("customer", "as_of"))
def calculate_customer_payment_summary(
    customer: CustomerRecord,
    payments: Iterable[PaymentRecord],
    deliveries: Iterable[DeliveryCharge],
    as_of: date,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PaymentSummary:
    """
    Build a customer's payment summary from scratch.

    Args:
        customer: The customer (read-only).
        payments: Payment history; other customers' records are ignored.
        deliveries: Delivery charges; other customers' records are ignored.
        as_of: "Today" -- anchors the tracking window and overdue check.
        settings: Overdue threshold and due-day configuration.

    Returns:
        Frozen PaymentSummary.
    """
    t0 = time.monotonic()
    currency = customer.pending_dues.currency.code
    window = TrackingWindow.for_date(as_of)

    own_payments = tuple(p for p in payments if p.customer_id == customer.customer_id)
    amounts = period_amounts(customer.customer_id, deliveries, window, currency)

    history = allocate_payment_history(
        own_payments, amounts, customer.pending_dues, window
    )

    period_dues = {
        bucket: PeriodDues.of(window.start_of(bucket), amounts[bucket], history.paid_for(bucket))
        for bucket in TRACKED_PERIODS
    }
    older_dues = (customer.pending_dues - history.older_dues_paid).clamp_non_negative()

    total_due = sum_money((d.due for d in period_dues.values()), currency) + older_dues
    total_paid = sum_money((p.amount for p in own_payments if p.is_applied), currency)

    is_overdue = is_customer_overdue(
        customer.last_payment,
        total_due,
        as_of,
        settings.overdue_after_days,
        oldest_outstanding_since(older_dues, period_dues.values()),
    )
    status = determine_payment_status(total_due, customer.last_payment, is_overdue)

    summary = PaymentSummary(
        customer_id=customer.customer_id,
        as_of_date=as_of,
        current_month=period_dues[PeriodBucket.CURRENT_MONTH],
        month1=period_dues[PeriodBucket.MONTH1],
        month2=period_dues[PeriodBucket.MONTH2],
        month3=period_dues[PeriodBucket.MONTH3],
        pending_dues=customer.pending_dues,
        older_dues=older_dues,
        total_due=total_due,
        total_paid=total_paid,
        payment_status=status,
        is_overdue=is_overdue,
        last_payment_date=customer.last_payment,
        next_due_date=window.next_due_date(settings.due_day_of_month),
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("payment_summary_calculated", extra={
        "customer_id": customer.customer_id,
        "as_of": as_of.isoformat(),
        "total_due": str(total_due.amount),
        "total_paid": str(total_paid.amount),
        "older_dues": str(older_dues.amount),
        "payment_status": status.value,
        "is_overdue": is_overdue,
        "payment_count": len(own_payments),
        "duration_ms": duration_ms,
    })

    return summary
