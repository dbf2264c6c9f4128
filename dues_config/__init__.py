"""
dues_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  Engines never read files or environment
    variables; they receive an ``EngineSettings`` from their caller.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- a value in the file is out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``DUES_CONFIG_TRACE`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dues_config.loader import load_settings
from dues_config.schema import DEFAULT_SETTINGS, EngineSettings, ValidationSettings

_logger = logging.getLogger("dues_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "DUES_CONFIG_PATH"

__all__ = [
    "DEFAULT_SETTINGS",
    "EngineSettings",
    "ValidationSettings",
    "get_active_config",
]


def get_active_config(config_path: Path | str | None = None) -> EngineSettings:
    """The public settings entrypoint.

    Resolution order: explicit ``config_path``, then the ``DUES_CONFIG_PATH``
    environment variable, then the packaged ``defaults.yaml``.

    Returns:
        Frozen ``EngineSettings``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If settings validation fails.
    """
    if config_path is not None:
        path = Path(config_path)
    elif os.environ.get(CONFIG_PATH_ENV):
        path = Path(os.environ[CONFIG_PATH_ENV])
    else:
        path = _DEFAULT_CONFIG_PATH

    settings = load_settings(path)

    _logger.info(
        "DUES_CONFIG_TRACE",
        extra={
            "trace_type": "DUES_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "currency": settings.currency,
            "overdue_after_days": settings.overdue_after_days,
            "due_day_of_month": settings.due_day_of_month,
        },
    )
    return settings
