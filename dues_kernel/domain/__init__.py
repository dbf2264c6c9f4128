"""
Pure domain layer.

Immutable value objects, DTOs and the billing window, with NO
dependencies on the ORM, the database, or I/O.  Time enters only through
an injected Clock.
"""

from dues_kernel.domain.billing_window import (
    ALLOCATION_ORDER,
    TRACKED_PERIODS,
    PeriodBucket,
    TrackingWindow,
)
from dues_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from dues_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from dues_kernel.domain.dtos import (
    CustomerDuesPatch,
    CustomerRecord,
    CustomerStatus,
    DeliveryCharge,
    DeliveryStatus,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordStatus,
    PaymentRequest,
    ValidationIssue,
    ValidationReport,
)
from dues_kernel.domain.values import Currency, Money, sum_money

__all__ = [
    "ALLOCATION_ORDER",
    "TRACKED_PERIODS",
    "PeriodBucket",
    "TrackingWindow",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Currency",
    "Money",
    "sum_money",
    "CustomerDuesPatch",
    "CustomerRecord",
    "CustomerStatus",
    "DeliveryCharge",
    "DeliveryStatus",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentRecordStatus",
    "PaymentRequest",
    "ValidationIssue",
    "ValidationReport",
]
