"""
Module: dues_kernel.models.payment
Responsibility: ORM persistence for customer payments.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount > 0 (ck_payment_amount_positive).
    - Payments are historical facts: the dues system inserts new rows and
      never updates existing ones.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dues_kernel.db.base import TrackedBase


class Payment(TrackedBase):
    """A payment received from a customer."""

    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("idx_payment_customer", "customer_id"),
        Index("idx_payment_customer_paid_date", "customer_id", "paid_date"),
    )

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)

    # paid | pending | failed | refunded -- only "paid" is applied funds
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="paid")

    paid_date: Mapped[date | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment {self.id}: customer={self.customer_id} {self.amount} {self.status}>"
