"""
Module: dues_engines.payment_allocation
Responsibility:
    Reconstruct, from a customer's complete payment history, how much of
    each tracked month and of the older-dues bucket is already paid.  The
    result is rebuilt from scratch on every call; it is not a running
    ledger.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes period amounts from ``dues_engines.period_amounts``.

Algorithm:
    1. Group every ``paid`` payment by *when it was made* (effective date)
       into older / month3 / month2 / month1 / current_month.
    2. Older-dated funds pay older dues first, capped at pending dues; the
       excess spills into month3, capped at month3's amount.
    3. Month3-dated funds plus that spillover pay month3, capped.
    4. Month2-, month1- and current-dated funds each pay their own month,
       capped.  Excess in these buckets does not spill further.

Invariants enforced:
    - Payment order in the input is irrelevant; results are identical for
      any permutation.
    - Every ``paid`` amount is >= 0 and <= its period's amount.
    - older_dues_paid <= pending_dues.

Failure modes:
    - CurrencyMismatchError when a payment is not in the pending dues
      currency.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from dues_kernel.domain.billing_window import (
    ALLOCATION_ORDER,
    PeriodBucket,
    TrackingWindow,
)
from dues_kernel.domain.dtos import PaymentRecord
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import CurrencyMismatchError
from dues_kernel.logging_config import get_logger

logger = get_logger("engines.payment_allocation")


@dataclass(frozen=True)
class HistoricalAllocation:
    """
    How the payment history is matched against the tracked periods.

    Contract:
        Every field is always present; zero, never None.
    Guarantees:
        - ``funds_by_bucket`` holds the raw date-bucketed totals (before caps).
        - ``unmatched`` is the total of funds no bucket could absorb.
    """

    older_dues_paid: Money
    month3_paid: Money
    month2_paid: Money
    month1_paid: Money
    current_month_paid: Money
    funds_by_bucket: dict[PeriodBucket, Money]
    unmatched: Money

    def paid_for(self, bucket: PeriodBucket) -> Money:
        return {
            PeriodBucket.OLDER_DUES: self.older_dues_paid,
            PeriodBucket.MONTH3: self.month3_paid,
            PeriodBucket.MONTH2: self.month2_paid,
            PeriodBucket.MONTH1: self.month1_paid,
            PeriodBucket.CURRENT_MONTH: self.current_month_paid,
        }[bucket]


def bucket_payments(
    payments: Iterable[PaymentRecord],
    window: TrackingWindow,
    currency: str,
) -> dict[PeriodBucket, Money]:
    """Total of applied (``paid``) funds per bucket of the payment's effective date."""
    funds = {bucket: Money.zero(currency) for bucket in ALLOCATION_ORDER}
    for payment in payments:
        if not payment.is_applied:
            continue
        if payment.amount.currency != funds[PeriodBucket.OLDER_DUES].currency:
            raise CurrencyMismatchError(
                currency,
                payment.amount.currency.code,
                context=f"payment {payment.payment_id}",
            )
        bucket = window.bucket_for(payment.effective_date)
        funds[bucket] = funds[bucket] + payment.amount
    return funds


def allocate_payment_history(
    payments: Iterable[PaymentRecord],
    amounts: dict[PeriodBucket, Money],
    pending_dues: Money,
    window: TrackingWindow,
) -> HistoricalAllocation:
    """
    Match historical payments against period amounts, oldest first.

    Args:
        payments: The customer's payments; non-``paid`` records are ignored.
        amounts: Billable amount per tracked month (from ``period_amounts``).
        pending_dues: The customer's carried-forward older dues.
        window: Tracking window the amounts were computed for.

    Returns:
        HistoricalAllocation with the paid portion of every bucket.
    """
    currency = pending_dues.currency.code
    zero = Money.zero(currency)
    funds = bucket_payments(payments, window, currency)

    # Older-dated funds settle older dues, then spill into month3 only.
    older_funds = funds[PeriodBucket.OLDER_DUES]
    older_dues_paid = min(older_funds, pending_dues)
    spillover = older_funds - older_dues_paid

    month3_amount = amounts.get(PeriodBucket.MONTH3, zero)
    month3_paid = min(spillover + funds[PeriodBucket.MONTH3], month3_amount)

    month2_paid = min(funds[PeriodBucket.MONTH2], amounts.get(PeriodBucket.MONTH2, zero))
    month1_paid = min(funds[PeriodBucket.MONTH1], amounts.get(PeriodBucket.MONTH1, zero))
    current_month_paid = min(
        funds[PeriodBucket.CURRENT_MONTH], amounts.get(PeriodBucket.CURRENT_MONTH, zero)
    )

    # Amounts are never negative, so each ``paid`` is >= 0 already.
    total_funds = sum((f.amount for f in funds.values()), zero.amount)
    total_matched = (
        older_dues_paid + month3_paid + month2_paid + month1_paid + current_month_paid
    )
    unmatched = Money.of(total_funds, currency) - total_matched

    if unmatched.is_positive:
        logger.info("payment_history_unmatched_funds", extra={
            "unmatched": str(unmatched.amount),
            "older_funds": str(older_funds.amount),
            "month2_funds": str(funds[PeriodBucket.MONTH2].amount),
            "month1_funds": str(funds[PeriodBucket.MONTH1].amount),
            "current_month_funds": str(funds[PeriodBucket.CURRENT_MONTH].amount),
        })

    return HistoricalAllocation(
        older_dues_paid=older_dues_paid,
        month3_paid=month3_paid,
        month2_paid=month2_paid,
        month1_paid=month1_paid,
        current_month_paid=current_month_paid,
        funds_by_bucket=funds,
        unmatched=unmatched,
    )
