"""
Module: dues_engines.payment_validation
Responsibility:
    Pre-flight checks for recording a payment: the raw request, the paying
    customer, the amount against total due, and business-rule advisories.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Today's date and the
    thresholds arrive as arguments; nothing here reads a clock or a file.

Contract:
    Every validator returns a ValidationReport.  Errors make the request
    invalid and must be refused by the caller (HTTP 400 equivalent);
    warnings are advisory text surfaced alongside a successful response
    and never block processing.

Error codes:
    REQUIRED_FIELD, INVALID_FORMAT, INVALID_AMOUNT, INVALID_PRECISION,
    INVALID_PAYMENT_METHOD, INVALID_DATE, FUTURE_DATE,
    CUSTOMER_NOT_FOUND, INACTIVE_CUSTOMER, SUSPENDED_CUSTOMER,
    CALCULATION_ERROR
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from dues_config.schema import DEFAULT_SETTINGS, ValidationSettings
from dues_engines.payment_summary import PaymentSummary
from dues_kernel.domain.dtos import (
    CustomerRecord,
    CustomerStatus,
    PaymentRequest,
    ValidationIssue,
    ValidationReport,
)
from dues_kernel.domain.values import Money
from dues_kernel.logging_config import get_logger

logger = get_logger("engines.payment_validation")


def parse_amount(value: Any) -> Decimal | None:
    """Decimal view of an amount-like value; None if it is not numeric."""
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        return result if result.is_finite() else None
    return None


def decimal_places(value: Decimal) -> int:
    """Number of significant fractional digits (``10.50`` has 1)."""
    normalized = value.normalize()
    exponent = normalized.as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def _display(value: Decimal, symbol: str = "₹") -> str:
    return f"{symbol}{value}"


def validate_payment_amount(
    amount: Money | Decimal,
    total_due: Money | Decimal,
    settings: ValidationSettings = DEFAULT_SETTINGS.validation,
) -> ValidationReport:
    """
    Check a payment amount against the customer's total due.

    - amount <= 0 is an error.
    - amount > total_due warns that the excess becomes an advance credit.
    - amount > total_due * verify_multiplier warns to verify the amount.
    Both warnings may fire together.  A non-positive total due with a
    positive amount is a valid pure advance payment.
    """
    value = parse_amount(amount)
    due = parse_amount(total_due)
    if due is None:
        due = Decimal("0")

    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    if value is None or value <= 0:
        errors.append(ValidationIssue(
            field="amount",
            message="Payment amount must be greater than zero",
            code="INVALID_AMOUNT",
        ))
        return ValidationReport.of(errors, warnings)

    if value > due * settings.verify_multiplier:
        warnings.append(
            f"Payment amount ({_display(value)}) is significantly higher than "
            f"total due ({_display(due)}). Please verify."
        )

    if value > due:
        warnings.append(
            f"Payment amount exceeds total due. {_display(value - due)} will be "
            f"credited as advance payment."
        )

    return ValidationReport.of(errors, warnings)


def validate_payment_request(
    request: PaymentRequest,
    today: date,
    settings: ValidationSettings = DEFAULT_SETTINGS.validation,
) -> ValidationReport:
    """
    Validate a raw payment request before any lookup happens.

    Args:
        request: The inbound request as received from the API layer.
        today: The business date, used for future/old date checks.
        settings: Thresholds and accepted payment methods.
    """
    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    # Customer
    customer_id = request.customer_id
    if customer_id is None or customer_id == "" or customer_id == 0:
        errors.append(ValidationIssue("customerId", "Customer ID is required", "REQUIRED_FIELD"))
    elif isinstance(customer_id, bool) or not isinstance(customer_id, int) or customer_id < 0:
        errors.append(ValidationIssue(
            "customerId", "Customer ID must be a positive number", "INVALID_FORMAT"
        ))

    # Amount
    if request.amount is None or request.amount == "":
        errors.append(ValidationIssue("amount", "Payment amount is required", "REQUIRED_FIELD"))
    else:
        value = parse_amount(request.amount)
        if value is None or value <= 0:
            errors.append(ValidationIssue(
                "amount", "Payment amount must be a positive number", "INVALID_AMOUNT"
            ))
        else:
            if value > settings.large_amount_threshold:
                warnings.append("Payment amount is very large. Please verify.")
            if decimal_places(value) > settings.max_decimal_places:
                errors.append(ValidationIssue(
                    "amount",
                    f"Payment amount cannot have more than "
                    f"{settings.max_decimal_places} decimal places",
                    "INVALID_PRECISION",
                ))

    # Method
    method = getattr(request.payment_method, "value", request.payment_method)
    if not method:
        errors.append(ValidationIssue(
            "paymentMethod", "Payment method is required", "REQUIRED_FIELD"
        ))
    elif method not in settings.payment_methods:
        errors.append(ValidationIssue(
            "paymentMethod", "Invalid payment method", "INVALID_PAYMENT_METHOD"
        ))

    # Paid date
    if request.paid_date:
        paid_date = parse_payment_date(request.paid_date)
        if paid_date is None:
            errors.append(ValidationIssue(
                "paidDate", "Invalid payment date format", "INVALID_DATE"
            ))
        elif paid_date > today + timedelta(days=settings.future_date_tolerance_days):
            errors.append(ValidationIssue(
                "paidDate", "Payment date cannot be in the future", "FUTURE_DATE"
            ))
        elif paid_date < settings.earliest_plausible_payment_date:
            warnings.append("Payment date is very old. Please verify.")

    # Notes
    if isinstance(request.notes, str) and len(request.notes) > settings.max_notes_length:
        warnings.append("Payment notes are very long. Consider shortening them.")

    report = ValidationReport.of(errors, warnings)
    if not report.is_valid:
        logger.info("payment_request_rejected", extra={
            "error_codes": [e.code for e in report.errors],
            "warning_count": len(report.warnings),
        })
    return report


def parse_payment_date(value: Any) -> date | None:
    """ISO date (or date/datetime) from a request field; None if unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def validate_customer_for_payment(customer: CustomerRecord | None) -> ValidationReport:
    """A payment may only be recorded for an existing, active customer."""
    errors: list[ValidationIssue] = []

    if customer is None:
        errors.append(ValidationIssue("customer", "Customer not found", "CUSTOMER_NOT_FOUND"))
        return ValidationReport.of(errors, [])

    if not customer.is_active:
        errors.append(ValidationIssue(
            "customer.status",
            "Cannot process payment for inactive customer",
            "INACTIVE_CUSTOMER",
        ))

    if customer.status == CustomerStatus.SUSPENDED:
        errors.append(ValidationIssue(
            "customer.status", "Customer account is suspended", "SUSPENDED_CUSTOMER"
        ))

    return ValidationReport.of(errors, [])


def validate_payment_business_rules(
    amount: Money | Decimal,
    summary: PaymentSummary | None,
    settings: ValidationSettings = DEFAULT_SETTINGS.validation,
) -> ValidationReport:
    """Advisory checks of an amount against the customer's live summary."""
    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    if summary is None:
        errors.append(ValidationIssue(
            "customerSummary",
            "Unable to calculate customer payment summary",
            "CALCULATION_ERROR",
        ))
        return ValidationReport.of(errors, warnings)

    value = parse_amount(amount) or Decimal("0")
    total_due = summary.total_due.amount

    if value > total_due * settings.business_verify_multiplier:
        warnings.append(
            f"Payment amount ({_display(value)}) is significantly higher than "
            f"total due ({_display(total_due)}). Please verify."
        )

    if value < settings.small_amount_threshold:
        warnings.append("Payment amount is very small. Please verify.")

    if summary.is_overdue:
        warnings.append(
            "Customer account is overdue. This payment will help clear the "
            "outstanding balance."
        )

    return ValidationReport.of(errors, warnings)


def format_validation_errors(errors: Sequence[ValidationIssue]) -> str:
    """Collapse validation errors into one API-friendly message."""
    if not errors:
        return ""
    if len(errors) == 1:
        return errors[0].message
    return "Multiple errors: " + ", ".join(e.message for e in errors)
