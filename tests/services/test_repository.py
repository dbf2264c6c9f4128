"""
Tests for SqlAlchemyDuesRepository.

Runs against the session fixture (in-memory SQLite unless DATABASE_URL
says otherwise).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from dues_config.schema import EngineSettings
from dues_kernel.db.engine import get_session, is_postgres, session_scope
from dues_kernel.domain.dtos import (
    CustomerDuesPatch,
    CustomerStatus,
    PaymentMethod,
    PaymentRecordStatus,
)
from dues_kernel.domain.values import Money
from dues_kernel.exceptions import CustomerNotFoundError
from dues_kernel.models import Customer, DailyDelivery
from dues_services.repository import SqlAlchemyDuesRepository

NOW = datetime(2026, 10, 18, 12, tzinfo=timezone.utc)


def add_deliveries(session, customer_id, first_day, days, daily="60.00"):
    for i in range(days):
        session.add(
            DailyDelivery(
                customer_id=customer_id,
                delivery_date=first_day + timedelta(days=i),
                quantity_delivered=Decimal("1.0"),
                rate_per_liter=Decimal(daily),
                daily_amount=Decimal(daily),
                status="delivered",
            )
        )
    session.flush()


class TestCustomers:

    def test_get_customer(self, session, create_customer):
        customer_id = create_customer(pending_dues="1200.00", last_payment=date(2026, 9, 3))
        repo = SqlAlchemyDuesRepository(session)

        customer = repo.get_customer(customer_id)

        assert customer.customer_id == customer_id
        assert customer.pending_dues == Money.of("1200", "INR")
        assert customer.last_payment == date(2026, 9, 3)
        assert customer.status == CustomerStatus.ACTIVE

    def test_get_customer_with_lock(self, session, create_customer):
        customer_id = create_customer()
        assert SqlAlchemyDuesRepository(session).get_customer(customer_id, lock=True) is not None

    def test_missing_customer_is_none(self, session):
        assert SqlAlchemyDuesRepository(session).get_customer(9999) is None

    def test_unknown_customer_falls_back_to_configured_currency(self, session):
        repo = SqlAlchemyDuesRepository(session, EngineSettings(currency="USD"))
        assert repo._currency_of(9999) == "USD"

    def test_stored_currency_wins_over_configured(self, session, create_customer):
        customer_id = create_customer()
        repo = SqlAlchemyDuesRepository(session, EngineSettings(currency="USD"))
        assert repo._currency_of(customer_id) == "INR"

    def test_update_customer_dues(self, session, create_customer):
        customer_id = create_customer(pending_dues="1200")
        repo = SqlAlchemyDuesRepository(session)

        updated = repo.update_customer_dues(
            customer_id,
            CustomerDuesPatch(pending_dues=Money.of("200", "INR"), last_payment=date(2026, 10, 18)),
        )

        assert updated.pending_dues == Money.of("200", "INR")
        assert repo.get_customer(customer_id).last_payment == date(2026, 10, 18)

    def test_update_missing_customer_raises(self, session):
        with pytest.raises(CustomerNotFoundError):
            SqlAlchemyDuesRepository(session).update_customer_dues(
                9999,
                CustomerDuesPatch(pending_dues=Money.zero("INR"), last_payment=date(2026, 10, 18)),
            )


class TestPayments:

    def test_add_and_find_payment(self, session, create_customer):
        customer_id = create_customer()
        repo = SqlAlchemyDuesRepository(session)

        stored = repo.add_payment(
            customer_id=customer_id,
            amount=Money.of("750.00", "INR"),
            payment_method=PaymentMethod.UPI,
            paid_date=date(2026, 10, 17),
            notes="counter",
            created_at=NOW,
        )

        assert stored.payment_id is not None
        found = repo.find_payments_by_customer(customer_id)
        assert len(found) == 1
        assert found[0].payment_id == stored.payment_id
        assert found[0].amount == Money.of("750", "INR")
        assert found[0].status == PaymentRecordStatus.PAID
        assert found[0].payment_method == PaymentMethod.UPI
        assert found[0].effective_date == date(2026, 10, 17)

    def test_payments_scoped_to_customer(self, session, create_customer):
        first = create_customer(name="A")
        second = create_customer(name="B")
        repo = SqlAlchemyDuesRepository(session)
        repo.add_payment(first, Money.of("10", "INR"), PaymentMethod.CASH, None, None, NOW)

        assert repo.find_payments_by_customer(second) == []


class TestDeliveries:

    def test_find_deliveries_in_range(self, session, create_customer):
        customer_id = create_customer()
        add_deliveries(session, customer_id, date(2026, 6, 25), 20)
        repo = SqlAlchemyDuesRepository(session)

        july = repo.find_deliveries_by_customer(
            customer_id, start=date(2026, 7, 1), end=date(2026, 7, 31)
        )

        assert len(july) == 14
        assert all(d.delivery_date.month == 7 for d in july)
        assert july[0].daily_amount == Money.of("60", "INR")

    def test_find_all_deliveries(self, session, create_customer):
        customer_id = create_customer()
        add_deliveries(session, customer_id, date(2026, 6, 25), 20)
        assert len(SqlAlchemyDuesRepository(session).find_deliveries_by_customer(customer_id)) == 20


@pytest.mark.postgres
class TestCustomerRowLock:
    """SELECT ... FOR UPDATE only serializes writers on PostgreSQL."""

    @pytest.fixture(autouse=True)
    def _require_postgres(self, db_engine):
        if not is_postgres():
            pytest.skip("row locks need PostgreSQL (set DATABASE_URL)")

    @pytest.fixture
    def committed_customer_id(self, db_engine):
        with session_scope() as setup:
            customer = Customer(name="Meena", pending_dues=Decimal("500"))
            setup.add(customer)
            setup.flush()
            return customer.id

    @staticmethod
    def _try_lock(session, customer_id):
        return session.execute(
            select(Customer).where(Customer.id == customer_id).with_for_update(nowait=True)
        ).scalar_one()

    def test_locked_customer_blocks_second_session(self, committed_customer_id):
        holder = get_session()
        contender = get_session()
        try:
            repo = SqlAlchemyDuesRepository(holder)
            assert repo.get_customer(committed_customer_id, lock=True) is not None

            with pytest.raises(OperationalError):
                self._try_lock(contender, committed_customer_id)
        finally:
            contender.rollback()
            contender.close()
            holder.rollback()
            holder.close()

    def test_lock_released_when_transaction_ends(self, committed_customer_id):
        holder = get_session()
        contender = get_session()
        try:
            SqlAlchemyDuesRepository(holder).get_customer(committed_customer_id, lock=True)
            holder.rollback()

            assert self._try_lock(contender, committed_customer_id).id == committed_customer_id
        finally:
            contender.rollback()
            contender.close()
            holder.close()
