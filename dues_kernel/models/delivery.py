"""
Module: dues_kernel.models.delivery
Responsibility: ORM persistence for daily delivery charges.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per customer per day (uq_delivery_customer_date).
    - Rows are immutable once created; the dues engines only sum them.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dues_kernel.db.base import TrackedBase


class DailyDelivery(TrackedBase):
    """One day's delivery to a customer and what it costs."""

    __tablename__ = "daily_deliveries"

    __table_args__ = (
        UniqueConstraint("customer_id", "delivery_date", name="uq_delivery_customer_date"),
        Index("idx_delivery_customer_date", "customer_id", "delivery_date"),
    )

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)

    delivery_date: Mapped[date] = mapped_column(nullable=False)

    quantity_delivered: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    rate_per_liter: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # quantity_delivered x rate_per_liter
    daily_amount: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="delivered")

    def __repr__(self) -> str:
        return f"<DailyDelivery {self.customer_id}@{self.delivery_date}: {self.daily_amount}>"
