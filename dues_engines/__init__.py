"""
Dues engines -- pure calculation layer.

All engines are pure functions over immutable DTOs: no database, no clock,
no file access.  ``as_of`` dates and settings are always arguments.

Pipeline:
    period_amounts -> payment_allocation -> payment_summary -> payment_processor
"""

from dues_engines.allocation_notes import describe_allocation
from dues_engines.payment_allocation import (
    HistoricalAllocation,
    allocate_payment_history,
    bucket_payments,
)
from dues_engines.payment_processor import (
    PaymentAllocation,
    PaymentOutcome,
    PaymentProcessingResult,
    process_payment,
)
from dues_engines.payment_summary import (
    PaymentStatus,
    PaymentSummary,
    PeriodDues,
    calculate_customer_payment_summary,
    determine_payment_status,
    is_customer_overdue,
)
from dues_engines.payment_validation import (
    format_validation_errors,
    parse_amount,
    parse_payment_date,
    validate_customer_for_payment,
    validate_payment_amount,
    validate_payment_business_rules,
    validate_payment_request,
)
from dues_engines.period_amounts import month_amount, period_amounts

__all__ = [
    "describe_allocation",
    "HistoricalAllocation",
    "allocate_payment_history",
    "bucket_payments",
    "PaymentAllocation",
    "PaymentOutcome",
    "PaymentProcessingResult",
    "process_payment",
    "PaymentStatus",
    "PaymentSummary",
    "PeriodDues",
    "calculate_customer_payment_summary",
    "determine_payment_status",
    "is_customer_overdue",
    "format_validation_errors",
    "parse_amount",
    "parse_payment_date",
    "validate_customer_for_payment",
    "validate_payment_amount",
    "validate_payment_business_rules",
    "validate_payment_request",
    "month_amount",
    "period_amounts",
]
