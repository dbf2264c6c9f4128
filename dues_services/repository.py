"""
Persistence boundary for the dues system.

Responsibility:
    Loads customers, payments and delivery charges as immutable DTOs and
    writes back the only two mutations the dues system makes: a new
    payment row and the customer's ``pending_dues`` / ``last_payment``.

Architecture position:
    Services -- imperative shell.  Engines never see this module; the
    PaymentService feeds them the DTOs it returns.

Invariants enforced:
    - Flush only.  The caller owns the transaction (``session_scope()``)
      and decides when to commit or roll back.
    - ORM rows never escape: every public method returns DTOs.
    - ``get_customer(..., lock=True)`` issues ``SELECT ... FOR UPDATE`` so
      the summary rebuild and the dues update of one payment are
      serialized per customer.

Failure modes:
    - CustomerNotFoundError from ``update_customer_dues`` for an unknown id.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from dues_config.schema import DEFAULT_SETTINGS, EngineSettings
from dues_kernel.domain.dtos import (
    CustomerDuesPatch,
    CustomerRecord,
    DeliveryCharge,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordStatus,
)
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import CustomerNotFoundError
from dues_kernel.logging_config import get_logger
from dues_kernel.models import Customer, DailyDelivery, Payment

logger = get_logger("services.repository")


class DuesRepository(Protocol):
    """What the payment service needs from storage."""

    def get_customer(self, customer_id: int, lock: bool = False) -> CustomerRecord | None:
        ...

    def find_payments_by_customer(self, customer_id: int) -> list[PaymentRecord]:
        ...

    def find_deliveries_by_customer(
        self,
        customer_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DeliveryCharge]:
        ...

    def update_customer_dues(self, customer_id: int, patch: CustomerDuesPatch) -> CustomerRecord:
        ...

    def add_payment(
        self,
        customer_id: int,
        amount: Money,
        payment_method: PaymentMethod,
        paid_date: date | None,
        notes: str | None,
        created_at: datetime,
        status: PaymentRecordStatus = PaymentRecordStatus.PAID,
    ) -> PaymentRecord:
        ...


class SqlAlchemyDuesRepository:
    """DuesRepository over the SQLAlchemy models in ``dues_kernel.models``."""

    def __init__(self, session: Session, settings: EngineSettings = DEFAULT_SETTINGS):
        self.session = session
        self._settings = settings

    def _get_model(self, customer_id: int, lock: bool = False) -> Customer | None:
        stmt = select(Customer).where(Customer.id == customer_id)
        if lock:
            # Row lock held until the caller's transaction ends
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_customer(self, customer_id: int, lock: bool = False) -> CustomerRecord | None:
        """
        Load a customer.

        Args:
            customer_id: Customer primary key.
            lock: Take a row lock for a read-modify-write of the dues.

        Returns:
            CustomerRecord, or None if the customer doesn't exist.
        """
        model = self._get_model(customer_id, lock=lock)
        if model is None:
            return None
        return CustomerRecord.from_model(model)

    def find_payments_by_customer(self, customer_id: int) -> list[PaymentRecord]:
        """Every payment of the customer, any status, oldest first."""
        currency = self._currency_of(customer_id)
        rows = self.session.execute(
            select(Payment)
            .where(Payment.customer_id == customer_id)
            .order_by(Payment.created_at, Payment.id)
        ).scalars()
        return [PaymentRecord.from_model(row, currency) for row in rows]

    def find_deliveries_by_customer(
        self,
        customer_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DeliveryCharge]:
        """Delivery charges of the customer, optionally limited to ``[start, end]``."""
        currency = self._currency_of(customer_id)
        stmt = select(DailyDelivery).where(DailyDelivery.customer_id == customer_id)
        if start is not None:
            stmt = stmt.where(DailyDelivery.delivery_date >= start)
        if end is not None:
            stmt = stmt.where(DailyDelivery.delivery_date <= end)
        rows = self.session.execute(stmt.order_by(DailyDelivery.delivery_date)).scalars()
        return [DeliveryCharge.from_model(row, currency) for row in rows]

    def update_customer_dues(self, customer_id: int, patch: CustomerDuesPatch) -> CustomerRecord:
        """
        Persist a processed payment's effect on the customer.

        Only ``pending_dues`` and ``last_payment`` are written.

        Raises:
            CustomerNotFoundError: If the customer doesn't exist.
        """
        model = self._get_model(customer_id)
        if model is None:
            raise CustomerNotFoundError(customer_id)

        previous = model.pending_dues
        model.pending_dues = patch.pending_dues.amount
        model.last_payment = patch.last_payment
        self.session.flush()

        logger.info("customer_dues_updated", extra={
            "customer_id": customer_id,
            "previous_pending_dues": str(previous),
            "pending_dues": str(patch.pending_dues.amount),
            "last_payment": patch.last_payment.isoformat(),
        })
        return CustomerRecord.from_model(model)

    def add_payment(
        self,
        customer_id: int,
        amount: Money,
        payment_method: PaymentMethod,
        paid_date: date | None,
        notes: str | None,
        created_at: datetime,
        status: PaymentRecordStatus = PaymentRecordStatus.PAID,
    ) -> PaymentRecord:
        """Insert a payment row and return it with its assigned id."""
        row = Payment(
            customer_id=customer_id,
            amount=amount.amount,
            payment_method=payment_method.value,
            status=status.value,
            paid_date=paid_date,
            notes=notes,
            created_at=created_at,
            updated_at=created_at,
        )
        self.session.add(row)
        self.session.flush()

        logger.info("payment_inserted", extra={
            "customer_id": customer_id,
            "payment_id": row.id,
            "amount": str(amount.amount),
            "payment_method": payment_method.value,
            "status": status.value,
        })
        return PaymentRecord(
            payment_id=row.id,
            customer_id=customer_id,
            amount=amount,
            status=status,
            created_at=created_at,
            paid_date=paid_date,
            payment_method=payment_method,
            notes=notes,
        )

    def _currency_of(self, customer_id: int) -> str:
        currency = self.session.execute(
            select(Customer.currency).where(Customer.id == customer_id)
        ).scalar_one_or_none()
        return currency or self._settings.currency
