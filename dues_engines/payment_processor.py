"""
Module: dues_engines.payment_processor
Responsibility:
    Split one new payment across a customer's outstanding dues, oldest
    first, and compute the resulting customer state.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes a PaymentSummary built by ``dues_engines.payment_summary``
    moments earlier (the pre-payment state).

Invariants enforced:
    - Conservation: the allocation lines plus credit sum to exactly the
      payment amount.
    - Oldest first: older dues -> month3 -> month2 -> month1 -> current
      month; a later bucket receives nothing until every earlier bucket's
      due is fully covered.
    - Only ``pending_dues`` and ``last_payment`` of the customer change.

Failure modes:
    - InvalidPaymentAmountError for a non-positive amount.
    - CurrencyMismatchError when the payment and summary currencies differ.

Concurrency:
    The summary must have been built while holding exclusive access to the
    customer's payment state, and the returned patch persisted before that
    access is released.  Otherwise two payments can both allocate against
    the same stale dues.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from dues_engines.payment_summary import PaymentSummary
from dues_engines.tracer import traced_engine
from dues_kernel.domain.billing_window import ALLOCATION_ORDER, PeriodBucket
from dues_kernel.domain.dtos import CustomerDuesPatch, CustomerRecord
from dues_kernel.domain.values import Money, sum_money
from dues_kernel.exceptions import CurrencyMismatchError, InvalidPaymentAmountError
from dues_kernel.logging_config import get_logger

logger = get_logger("engines.payment_processor")


class PaymentOutcome(str, Enum):
    """How a single payment left the account."""

    PAID = "paid"
    PARTIAL = "partial"
    OVERPAID = "overpaid"


@dataclass(frozen=True)
class PaymentAllocation:
    """
    Breakdown of one payment across the dues buckets.

    Contract:
        All fields always present; untouched buckets carry zero Money.
    Guarantees:
        - ``total`` equals the payment amount.
    """

    older_dues: Money
    month3: Money
    month2: Money
    month1: Money
    current_month: Money
    credit: Money

    @classmethod
    def zero(cls, currency: str) -> PaymentAllocation:
        z = Money.zero(currency)
        return cls(z, z, z, z, z, z)

    def amount_for(self, bucket: PeriodBucket) -> Money:
        return getattr(self, bucket.value)

    def lines(self) -> tuple[tuple[PeriodBucket, Money], ...]:
        """(bucket, amount) pairs in allocation order, credit excluded."""
        return tuple((bucket, self.amount_for(bucket)) for bucket in ALLOCATION_ORDER)

    @property
    def applied(self) -> Money:
        """Portion of the payment that settled dues."""
        return sum_money((amount for _, amount in self.lines()), self.credit.currency)

    @property
    def total(self) -> Money:
        return self.applied + self.credit


@dataclass(frozen=True)
class PaymentProcessingResult:
    """Everything the caller needs to persist and report a payment."""

    allocation: PaymentAllocation
    new_customer_state: CustomerDuesPatch
    remaining_balance: Money
    payment_status: PaymentOutcome


@traced_engine(
    "payment_processor",
    "1.0",
    fingerprint_fields=("payment_amount", "current_summary", "recorded_on"),
)
def process_payment(
    customer: CustomerRecord,
    payment_amount: Money,
    current_summary: PaymentSummary,
    recorded_on: date,
) -> PaymentProcessingResult:
    """
    Allocate a new payment oldest-first against a pre-payment summary.

    Args:
        customer: The paying customer.
        payment_amount: Amount received; must be positive.
        current_summary: Summary built just before this payment.
        recorded_on: Date the payment is recorded; becomes ``last_payment``.

    Returns:
        PaymentProcessingResult with allocation, customer patch, remaining
        balance and outcome.

    Raises:
        InvalidPaymentAmountError: If ``payment_amount`` is not positive.
    """
    if not payment_amount.is_positive:
        logger.warning("payment_rejected_non_positive", extra={
            "customer_id": customer.customer_id,
            "amount": str(payment_amount.amount),
        })
        raise InvalidPaymentAmountError(str(payment_amount.amount))

    if payment_amount.currency.code != current_summary.currency:
        raise CurrencyMismatchError(
            current_summary.currency,
            payment_amount.currency.code,
            context=f"payment for customer {customer.customer_id}",
        )

    logger.info("payment_processing_started", extra={
        "customer_id": customer.customer_id,
        "amount": str(payment_amount.amount),
        "total_due": str(current_summary.total_due.amount),
    })

    remaining = payment_amount
    zero = Money.zero(current_summary.currency)
    applied: dict[PeriodBucket, Money] = {}
    for bucket in ALLOCATION_ORDER:
        due = current_summary.due_for(bucket)
        if remaining.is_positive and due.is_positive:
            portion = min(remaining, due)
        else:
            portion = zero
        applied[bucket] = portion
        remaining = remaining - portion

    allocation = PaymentAllocation(
        older_dues=applied[PeriodBucket.OLDER_DUES],
        month3=applied[PeriodBucket.MONTH3],
        month2=applied[PeriodBucket.MONTH2],
        month1=applied[PeriodBucket.MONTH1],
        current_month=applied[PeriodBucket.CURRENT_MONTH],
        credit=remaining,
    )

    # INVARIANT: allocation conserves the payment amount
    assert allocation.total == payment_amount, (
        f"Allocation conservation violated: {allocation.total} != {payment_amount}"
    )

    new_state = CustomerDuesPatch(
        pending_dues=(current_summary.older_dues - allocation.older_dues).clamp_non_negative(),
        last_payment=recorded_on,
    )

    balance_after = current_summary.total_due - payment_amount + allocation.credit
    remaining_balance = balance_after.clamp_non_negative()

    if allocation.credit.is_positive:
        outcome = PaymentOutcome.OVERPAID
    elif not balance_after.is_positive:
        outcome = PaymentOutcome.PAID
    else:
        outcome = PaymentOutcome.PARTIAL

    logger.info("payment_processing_completed", extra={
        "customer_id": customer.customer_id,
        "amount": str(payment_amount.amount),
        "older_dues_applied": str(allocation.older_dues.amount),
        "month3_applied": str(allocation.month3.amount),
        "month2_applied": str(allocation.month2.amount),
        "month1_applied": str(allocation.month1.amount),
        "current_month_applied": str(allocation.current_month.amount),
        "credit": str(allocation.credit.amount),
        "remaining_balance": str(remaining_balance.amount),
        "outcome": outcome.value,
    })

    return PaymentProcessingResult(
        allocation=allocation,
        new_customer_state=new_state,
        remaining_balance=remaining_balance,
        payment_status=outcome,
    )
