"""
PaymentService -- imperative shell around the dues engines.

Responsibility:
    Orchestrates one request: load records through the repository, run
    the pure engines, persist the result.

    get_summary(customer_id)
        Build (and cache for this service instance) the customer's
        PaymentSummary as of the clock's today.

    record_payment(request)
        1. validate_payment_request            -> PaymentValidationError
        2. lock the customer row               -> CustomerNotFoundError
        3. validate_customer_for_payment       -> InactiveCustomerError
        4. rebuild the summary under the lock
        5. amount + business-rule warnings
        6. process_payment (oldest-first waterfall)
        7. insert the ``paid`` payment row, apply the CustomerDuesPatch
        8. drop the cached summary, return a PaymentReceipt

Architecture position:
    Services -- the only layer that touches the Clock and the repository.
    One instance per request; the summary cache lives and dies with it.

Invariants enforced:
    - The summary a payment is allocated against is rebuilt while the
      customer row is locked, and the patch is written before the lock is
      released by the caller's commit.
    - The service flushes through the repository and never commits.

Known behaviour:
    The stored payment is dated today, so the next summary rebuild also
    counts it in the current-month bucket while ``pending_dues`` has
    already been reduced by its older-dues share.  Summaries therefore
    rebuild from records, never from a previous processing result.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from uuid import uuid4

from dues_config.schema import DEFAULT_SETTINGS, EngineSettings
from dues_engines.allocation_notes import describe_allocation
from dues_engines.payment_processor import (
    PaymentAllocation,
    PaymentOutcome,
    process_payment,
)
from dues_engines.payment_summary import (
    PaymentSummary,
    calculate_customer_payment_summary,
)
from dues_engines.payment_validation import (
    parse_amount,
    parse_payment_date,
    validate_customer_for_payment,
    validate_payment_amount,
    validate_payment_business_rules,
    validate_payment_request,
)
from dues_kernel.domain.billing_window import TrackingWindow, end_of_month
from dues_kernel.domain.clock import Clock
from dues_kernel.domain.dtos import (
    CustomerRecord,
    PaymentMethod,
    PaymentRequest,
)
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import (
    CustomerNotFoundError,
    InactiveCustomerError,
    PaymentValidationError,
)
from dues_kernel.logging_config import LogContext, get_logger
from dues_services.repository import DuesRepository

logger = get_logger("services.payment")


@dataclass(frozen=True)
class PaymentReceipt:
    """What the caller gets back after a payment is recorded."""

    payment_id: int | None
    customer_id: int
    amount: Money
    paid_date: date
    allocation: PaymentAllocation
    payment_status: PaymentOutcome
    remaining_balance: Money
    pending_dues: Money
    warnings: tuple[str, ...]
    notes: str

    @property
    def credit(self) -> Money:
        return self.allocation.credit


class PaymentService:
    """
    Records payments and serves payment summaries for one request.

    Contract:
        Built per request with a repository bound to the caller's
        session.  The caller commits (or rolls back) afterwards.
    """

    def __init__(
        self,
        repository: DuesRepository,
        clock: Clock,
        settings: EngineSettings = DEFAULT_SETTINGS,
    ):
        self._repository = repository
        self._clock = clock
        self._settings = settings
        self._summaries: dict[int, PaymentSummary] = {}

    def get_summary(self, customer_id: int) -> PaymentSummary:
        """
        The customer's payment summary as of today.

        Raises:
            CustomerNotFoundError: If the customer doesn't exist.
        """
        cached = self._summaries.get(customer_id)
        if cached is not None:
            return cached

        customer = self._repository.get_customer(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)

        summary = self._build_summary(customer)
        self._summaries[customer_id] = summary
        return summary

    def invalidate(self, customer_id: int) -> None:
        self._summaries.pop(customer_id, None)

    def _build_summary(self, customer: CustomerRecord) -> PaymentSummary:
        today = self._clock.today()
        window = TrackingWindow.for_date(today)
        payments = self._repository.find_payments_by_customer(customer.customer_id)
        deliveries = self._repository.find_deliveries_by_customer(
            customer.customer_id,
            start=window.month3,
            end=end_of_month(window.current_month),
        )
        return calculate_customer_payment_summary(
            customer, payments, deliveries, today, self._settings
        )

    def record_payment(self, request: PaymentRequest) -> PaymentReceipt:
        """
        Validate, allocate and persist one payment.

        Args:
            request: Raw payment request.

        Returns:
            PaymentReceipt with the allocation, outcome and any warnings.

        Raises:
            PaymentValidationError: The request is malformed.
            CustomerNotFoundError: No such customer.
            InactiveCustomerError: The customer cannot accept payments.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            customer_id=request.customer_id,
        ):
            t0 = time.monotonic()
            logger.info("payment_recording_started", extra={
                "amount": str(request.amount),
                "payment_method": str(getattr(request.payment_method, "value", request.payment_method)),
            })

            today = self._clock.today()
            request_report = validate_payment_request(
                request, today, self._settings.validation
            )
            if not request_report.is_valid:
                raise PaymentValidationError(request_report.errors, request_report.warnings)

            customer = self._repository.get_customer(request.customer_id, lock=True)
            customer_report = validate_customer_for_payment(customer)
            if customer is None:
                logger.warning("payment_customer_not_found")
                raise CustomerNotFoundError(request.customer_id)
            if not customer_report.is_valid:
                logger.warning("payment_customer_not_active", extra={
                    "status": customer.status.value,
                })
                raise InactiveCustomerError(customer.customer_id, customer.status.value)

            # Rebuilt under the row lock, never served from the cache
            self.invalidate(customer.customer_id)
            summary = self._build_summary(customer)

            amount = Money.of(parse_amount(request.amount), summary.currency)
            report = request_report.merge(
                validate_payment_amount(amount, summary.total_due, self._settings.validation)
            ).merge(
                validate_payment_business_rules(amount, summary, self._settings.validation)
            )
            warnings = tuple(dict.fromkeys(report.warnings))

            result = process_payment(customer, amount, summary, today)
            note = describe_allocation(result.allocation, summary)
            notes = f"{request.notes} ({note})" if request.notes else note

            paid_date = parse_payment_date(request.paid_date) if request.paid_date else today
            method = PaymentMethod(getattr(request.payment_method, "value", request.payment_method))

            payment = self._repository.add_payment(
                customer_id=customer.customer_id,
                amount=amount,
                payment_method=method,
                paid_date=paid_date,
                notes=notes,
                created_at=self._clock.now(),
            )
            LogContext.set(payment_id=payment.payment_id)
            updated = self._repository.update_customer_dues(
                customer.customer_id, result.new_customer_state
            )
            self.invalidate(customer.customer_id)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("payment_recording_completed", extra={
                "amount": str(amount.amount),
                "outcome": result.payment_status.value,
                "remaining_balance": str(result.remaining_balance.amount),
                "credit": str(result.allocation.credit.amount),
                "warning_count": len(warnings),
                "duration_ms": duration_ms,
            })

            return PaymentReceipt(
                payment_id=payment.payment_id,
                customer_id=customer.customer_id,
                amount=amount,
                paid_date=paid_date,
                allocation=result.allocation,
                payment_status=result.payment_status,
                remaining_balance=result.remaining_balance,
                pending_dues=updated.pending_dues,
                warnings=warnings,
                notes=notes,
            )
