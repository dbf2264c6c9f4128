"""
Typed Exception Hierarchy for the Dues Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the API layer, batch jobs, tests) must be able to tell an invalid
payment apart from a missing customer without parsing message text:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        receipt = service.record_payment(request)
    except PaymentValidationError as e:
        return 400, {"error": e.code, "issues": e.issues, "warnings": e.warnings}
    except CustomerNotFoundError as e:
        return 404, {"error": e.code, "customer_id": e.customer_id}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DuesKernelError (base)
    |
    +-- CustomerError
    |   +-- CustomerNotFoundError
    |   +-- InactiveCustomerError
    |
    +-- PaymentError
    |   +-- InvalidPaymentAmountError
    |   +-- PaymentValidationError
    |
    +-- CurrencyError
        +-- CurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                 | When Raised
-----------|----------------------|------------------------------------------
Customer   | CUSTOMER_NOT_FOUND   | Customer ID doesn't exist
           | INACTIVE_CUSTOMER    | Customer is inactive or suspended
-----------|----------------------|------------------------------------------
Payment    | INVALID_AMOUNT       | Non-positive amount reached the processor
           | VALIDATION_FAILED    | Request/customer/amount validation failed
-----------|----------------------|------------------------------------------
Currency   | CURRENCY_MISMATCH    | Records in different currencies combined

Business anomalies -- overdue, overpaid, partial -- are output states of
the engines, never exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dues_kernel.domain.dtos import ValidationIssue


class DuesKernelError(Exception):
    """
    Base exception for all dues kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DUES_KERNEL_ERROR"


# Customer-related exceptions


class CustomerError(DuesKernelError):
    """Base exception for customer-related errors."""

    code: str = "CUSTOMER_ERROR"


class CustomerNotFoundError(CustomerError):
    """Customer with given ID was not found."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: int | str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class InactiveCustomerError(CustomerError):
    """Customer cannot accept payments in its current status."""

    code: str = "INACTIVE_CUSTOMER"

    def __init__(self, customer_id: int | str, status: str):
        self.customer_id = customer_id
        self.status = status
        super().__init__(f"Customer {customer_id} is {status}")


# Payment-related exceptions


class PaymentError(DuesKernelError):
    """Base exception for payment processing errors."""

    code: str = "PAYMENT_ERROR"


class InvalidPaymentAmountError(PaymentError):
    """A non-positive amount was handed to the payment processor."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Payment amount must be greater than zero, got {amount}")


class PaymentValidationError(PaymentError):
    """
    A payment request was rejected by validation.

    Carries every error found plus any advisory warnings that were raised
    alongside them.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(
        self,
        issues: tuple[ValidationIssue, ...],
        warnings: tuple[str, ...] = (),
    ):
        self.issues = issues
        self.warnings = warnings
        if len(issues) == 1:
            message = issues[0].message
        else:
            message = "Multiple errors: " + ", ".join(i.message for i in issues)
        super().__init__(message)

    @property
    def issue_codes(self) -> tuple[str, ...]:
        return tuple(i.code for i in self.issues)


# Currency-related exceptions


class CurrencyError(DuesKernelError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class CurrencyMismatchError(CurrencyError):
    """Records in different currencies were combined."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, received: str, context: str = ""):
        self.expected = expected
        self.received = received
        self.context = context
        suffix = f" ({context})" if context else ""
        super().__init__(f"Currency mismatch: expected {expected}, got {received}{suffix}")
