"""
Configuration Loader (``dues_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``dues_config.schema`` dataclasses.  The public runtime entry point is
``dues_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with descriptive messages.
* Keys not present in the file fall back to the schema defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from dues_config.schema import EngineSettings, ValidationSettings
from dues_kernel.domain.currency import CurrencyRegistry


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML content."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a Decimal from a YAML string or int.  Floats are rejected."""
    if isinstance(value, float):
        raise ValueError(f"{name} must be quoted or an integer, got float {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name} is not a valid decimal: {value!r}") from e


def _require_positive_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def parse_validation(data: dict[str, Any]) -> ValidationSettings:
    """Parse ``ValidationSettings`` from the ``validation:`` mapping."""
    defaults = ValidationSettings()
    methods = data.get("payment_methods", defaults.payment_methods)
    if not methods or not all(isinstance(m, str) for m in methods):
        raise ValueError(f"payment_methods must be a non-empty list of names, got {methods!r}")

    decimal_places = data.get("max_decimal_places", defaults.max_decimal_places)
    if not isinstance(decimal_places, int) or decimal_places < 0:
        raise ValueError(f"max_decimal_places must be a non-negative integer, got {decimal_places!r}")

    return ValidationSettings(
        max_decimal_places=decimal_places,
        large_amount_threshold=parse_decimal(
            data.get("large_amount_threshold", defaults.large_amount_threshold),
            "large_amount_threshold",
        ),
        small_amount_threshold=parse_decimal(
            data.get("small_amount_threshold", defaults.small_amount_threshold),
            "small_amount_threshold",
        ),
        verify_multiplier=parse_decimal(
            data.get("verify_multiplier", defaults.verify_multiplier),
            "verify_multiplier",
        ),
        business_verify_multiplier=parse_decimal(
            data.get("business_verify_multiplier", defaults.business_verify_multiplier),
            "business_verify_multiplier",
        ),
        earliest_plausible_payment_date=parse_date(
            data.get("earliest_plausible_payment_date", defaults.earliest_plausible_payment_date)
        ),
        future_date_tolerance_days=data.get(
            "future_date_tolerance_days", defaults.future_date_tolerance_days
        ),
        max_notes_length=_require_positive_int(
            data.get("max_notes_length", defaults.max_notes_length), "max_notes_length"
        ),
        payment_methods=tuple(methods),
    )


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a YAML mapping.

    Raises:
        ValueError: if any value is out of range.
    """
    defaults = EngineSettings()

    currency = CurrencyRegistry.validate(data.get("currency", defaults.currency))

    overdue_after_days = _require_positive_int(
        data.get("overdue_after_days", defaults.overdue_after_days), "overdue_after_days"
    )

    due_day = data.get("due_day_of_month", defaults.due_day_of_month)
    if not isinstance(due_day, int) or not 1 <= due_day <= 28:
        raise ValueError(f"due_day_of_month must be between 1 and 28, got {due_day!r}")

    return EngineSettings(
        currency=currency,
        overdue_after_days=overdue_after_days,
        due_day_of_month=due_day,
        validation=parse_validation(data.get("validation") or {}),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> EngineSettings:
    """Load and parse a settings file."""
    return parse_settings(load_yaml_file(path))
