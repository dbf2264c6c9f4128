"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that flow into and out of the dues
    engines: CustomerRecord, DeliveryCharge and PaymentRecord (inputs),
    CustomerDuesPatch (the only customer mutation the system produces),
    PaymentRequest (raw inbound request) and the validation report types.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  ``from_model()`` converters exist as
    boundary helpers but are only invoked from the service layer.

Invariants enforced:
    - Money value objects for every monetary field.
    - CustomerRecord.pending_dues is never negative.
    - PaymentRecord.amount is strictly positive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from dues_kernel.domain.values import Money

if TYPE_CHECKING:
    from dues_kernel.models.customer import Customer as CustomerModel
    from dues_kernel.models.delivery import DailyDelivery as DailyDeliveryModel
    from dues_kernel.models.payment import Payment as PaymentModel


class CustomerStatus(str, Enum):
    """Customer lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class PaymentRecordStatus(str, Enum):
    """Status of a stored payment.  Only PAID counts as applied funds."""

    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    MISSED = "missed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CustomerRecord:
    """
    Read-only view of a customer as the engines see it.

    Contract:
        ``pending_dues`` is the older-dues bucket carried forward from before
        the four-period window -- a single scalar, not period-attributed.
        ``last_payment`` is the date of the most recent successful payment.
    """

    customer_id: int
    pending_dues: Money
    last_payment: date | None = None
    name: str = ""
    daily_quantity: Decimal = Decimal("0")
    rate_per_liter: Decimal = Decimal("0")
    status: CustomerStatus = CustomerStatus.ACTIVE

    def __post_init__(self) -> None:
        if self.pending_dues.is_negative:
            raise ValueError(
                f"pending_dues cannot be negative for customer {self.customer_id}: "
                f"{self.pending_dues}"
            )

    @property
    def is_active(self) -> bool:
        return self.status == CustomerStatus.ACTIVE

    @classmethod
    def from_model(cls, model: CustomerModel) -> CustomerRecord:
        """Boundary converter from the ORM row."""
        return cls(
            customer_id=model.id,
            pending_dues=Money.of(model.pending_dues, model.currency),
            last_payment=model.last_payment,
            name=model.name,
            daily_quantity=model.daily_quantity,
            rate_per_liter=model.rate_per_liter,
            status=CustomerStatus(model.status),
        )


@dataclass(frozen=True)
class DeliveryCharge:
    """A single day's delivery charge (quantity x rate).  Immutable."""

    customer_id: int
    delivery_date: date
    daily_amount: Money
    quantity: Decimal = Decimal("0")
    status: DeliveryStatus = DeliveryStatus.DELIVERED

    @classmethod
    def from_model(cls, model: DailyDeliveryModel, currency: str) -> DeliveryCharge:
        return cls(
            customer_id=model.customer_id,
            delivery_date=model.delivery_date,
            daily_amount=Money.of(model.daily_amount, currency),
            quantity=model.quantity_delivered,
            status=DeliveryStatus(model.status),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """
    A historical payment.  Never mutated by the engines.

    The effective date is ``paid_date`` when present, otherwise the date
    the record was created.
    """

    payment_id: int | None
    customer_id: int
    amount: Money
    status: PaymentRecordStatus
    created_at: datetime
    paid_date: date | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str | None = None

    def __post_init__(self) -> None:
        if not self.amount.is_positive:
            raise ValueError(f"Payment amount must be positive, got {self.amount}")

    @property
    def effective_date(self) -> date:
        return self.paid_date or self.created_at.date()

    @property
    def is_applied(self) -> bool:
        return self.status == PaymentRecordStatus.PAID

    @classmethod
    def from_model(cls, model: PaymentModel, currency: str) -> PaymentRecord:
        return cls(
            payment_id=model.id,
            customer_id=model.customer_id,
            amount=Money.of(model.amount, currency),
            status=PaymentRecordStatus(model.status),
            created_at=model.created_at,
            paid_date=model.paid_date,
            payment_method=PaymentMethod(model.payment_method),
            notes=model.notes,
        )


@dataclass(frozen=True)
class CustomerDuesPatch:
    """The two customer fields a processed payment updates."""

    pending_dues: Money
    last_payment: date


@dataclass(frozen=True)
class PaymentRequest:
    """
    Raw inbound request to record a payment.

    Fields are deliberately loose (``Any``): this is what arrives from the
    API layer before validation has run.
    """

    customer_id: Any
    amount: Any
    payment_method: Any
    paid_date: Any = None
    notes: Any = None


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single validation error.

    Contract:
        Carries the offending field, a human-readable message, and a
        machine-readable code.
    """

    field: str
    message: str
    code: str


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of validation: hard errors plus advisory warnings.

    Guarantees:
        - ``is_valid`` is True only when there are no errors.
        - Warnings never affect validity.
        - bool(report) == report.is_valid.
    """

    errors: tuple[ValidationIssue, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def of(cls, errors: list[ValidationIssue], warnings: list[str]) -> ValidationReport:
        return cls(errors=tuple(errors), warnings=tuple(warnings))

    def merge(self, other: ValidationReport) -> ValidationReport:
        return ValidationReport(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )

    def __bool__(self) -> bool:
        return self.is_valid
