"""
Module: dues_engines.period_amounts
Responsibility:
    Derive the billable amount of each tracked calendar month from raw
    delivery charge records.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf of the dues
    pipeline: every other engine consumes its output.

Invariants enforced:
    - Calendar-month boundaries derived from the month start's year/month,
      inclusive of the last day; never a rolling 30-day window.
    - Only deliveries of the requested customer are counted.
    - Always returns a Money (zero when nothing matches), never None.

Failure modes:
    - CurrencyMismatchError when a delivery charge is not in the
      requested currency.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from dues_config.schema import DEFAULT_SETTINGS
from dues_kernel.domain.billing_window import (
    TRACKED_PERIODS,
    PeriodBucket,
    TrackingWindow,
    end_of_month,
    month_start,
)
from dues_kernel.domain.dtos import DeliveryCharge
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import CurrencyMismatchError
from dues_kernel.logging_config import get_logger

logger = get_logger("engines.period_amounts")


def month_amount(
    customer_id: int,
    deliveries: Iterable[DeliveryCharge],
    month_begin: date,
    currency: str = DEFAULT_SETTINGS.currency,
) -> Money:
    """
    Sum a customer's delivery charges for one calendar month.

    Args:
        customer_id: Customer whose deliveries are summed.
        deliveries: Delivery charges (may include other customers).
        month_begin: Any date in the month; normalized to the 1st.
        currency: Currency of the result.

    Returns:
        Total ``daily_amount`` for deliveries dated within
        ``[month_begin, end_of_month(month_begin)]``.
    """
    first = month_start(month_begin)
    last = end_of_month(first)
    total = Money.zero(currency)

    for delivery in deliveries:
        if delivery.customer_id != customer_id:
            continue
        if not first <= delivery.delivery_date <= last:
            continue
        if delivery.daily_amount.currency != total.currency:
            raise CurrencyMismatchError(
                total.currency.code,
                delivery.daily_amount.currency.code,
                context=f"delivery on {delivery.delivery_date}",
            )
        total = total + delivery.daily_amount

    return total


def period_amounts(
    customer_id: int,
    deliveries: Iterable[DeliveryCharge],
    window: TrackingWindow,
    currency: str = DEFAULT_SETTINGS.currency,
) -> dict[PeriodBucket, Money]:
    """Billable amount for each of the four tracked months, keyed by bucket."""
    deliveries = tuple(deliveries)
    amounts = {
        bucket: month_amount(customer_id, deliveries, window.start_of(bucket), currency)
        for bucket in TRACKED_PERIODS
    }
    logger.debug("period_amounts_calculated", extra={
        "customer_id": customer_id,
        "delivery_count": len(deliveries),
        **{f"{bucket.value}_amount": str(amount.amount) for bucket, amount in amounts.items()},
    })
    return amounts
