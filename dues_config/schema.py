"""
Dues engine settings schema.

Frozen dataclasses parsed from YAML by ``dues_config.loader``.  Every field
has the production default, so ``EngineSettings()`` is the configuration
the engines use when no file is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class ValidationSettings:
    """Thresholds for payment request and amount validation."""

    max_decimal_places: int = 2
    large_amount_threshold: Decimal = Decimal("1000000")
    small_amount_threshold: Decimal = Decimal("10")
    # Warn when the amount exceeds total due by this factor
    verify_multiplier: Decimal = Decimal("2")
    # Business-rule warning factor, applied against the live summary
    business_verify_multiplier: Decimal = Decimal("3")
    earliest_plausible_payment_date: date = date(2020, 1, 1)
    future_date_tolerance_days: int = 1
    max_notes_length: int = 500
    payment_methods: tuple[str, ...] = ("Cash", "UPI", "Card", "Bank Transfer")


@dataclass(frozen=True)
class EngineSettings:
    """Settings shared by the summary engine, processor and validators."""

    currency: str = "INR"
    overdue_after_days: int = 60
    due_day_of_month: int = 5
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    checksum: str = ""


DEFAULT_SETTINGS = EngineSettings()
