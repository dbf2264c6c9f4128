"""Human-readable descriptions of how a payment was split across dues."""

from __future__ import annotations

from dues_engines.payment_processor import PaymentAllocation
from dues_engines.payment_summary import PaymentSummary
from dues_kernel.domain.billing_window import PeriodBucket

NO_DUES_NOTE = "No dues outstanding"


def period_label(bucket: PeriodBucket, summary: PaymentSummary) -> str:
    """Label for a bucket: ``older dues`` or the month name, e.g. ``Jul 2026``."""
    if bucket == PeriodBucket.OLDER_DUES:
        return "older dues"
    return summary.period(bucket).period_start.strftime("%b %Y")


def describe_allocation(allocation: PaymentAllocation, summary: PaymentSummary) -> str:
    """
    One-line note for the stored payment, e.g.
    ``"₹1200.00 applied to older dues, ₹800.00 applied to Jul 2026"``.

    Zero lines are left out.  Any advance credit is appended last.
    """
    parts = [
        f"{amount.display()} applied to {period_label(bucket, summary)}"
        for bucket, amount in allocation.lines()
        if amount.is_positive
    ]
    if allocation.credit.is_positive:
        parts.append(f"{allocation.credit.display()} credited as advance")
    if not parts:
        return NO_DUES_NOTE
    return ", ".join(parts)
