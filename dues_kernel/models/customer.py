"""
Module: dues_kernel.models.customer
Responsibility: ORM persistence for customers receiving daily deliveries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - pending_dues >= 0 (ck_customer_pending_dues_non_negative).
    - Within the dues system only ``pending_dues`` and ``last_payment`` are
      ever written after creation, and only via CustomerDuesPatch.

Audit relevance:
    ``pending_dues`` is the older-dues bucket carried forward from before the
    four-month tracking window; it is not attributed to any period.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dues_kernel.db.base import TrackedBase


class Customer(TrackedBase):
    """A delivery customer and its carried-forward dues."""

    __tablename__ = "customers"

    __table_args__ = (
        CheckConstraint("pending_dues >= 0", name="ck_customer_pending_dues_non_negative"),
        Index("idx_customer_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    daily_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    rate_per_liter: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Older dues carried forward from before the tracking window
    pending_dues: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    last_payment: Mapped[date | None] = mapped_column(nullable=True)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<Customer {self.id}: {self.name} dues={self.pending_dues}>"
