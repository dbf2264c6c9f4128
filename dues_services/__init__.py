"""Imperative shell: persistence and request orchestration for the dues engines."""

from dues_services.payment_service import PaymentReceipt, PaymentService
from dues_services.repository import DuesRepository, SqlAlchemyDuesRepository

__all__ = [
    "DuesRepository",
    "PaymentReceipt",
    "PaymentService",
    "SqlAlchemyDuesRepository",
]
