"""ORM models.  Importing this package registers every table on Base.metadata."""

from dues_kernel.models.customer import Customer
from dues_kernel.models.delivery import DailyDelivery
from dues_kernel.models.payment import Payment

__all__ = ["Customer", "DailyDelivery", "Payment"]
