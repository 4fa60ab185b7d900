"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from backend.utils.config import get_settings


_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process-wide logging once.

    Every layer logs through the same handler so lifecycle transitions,
    blocked attempts and event delivery failures read as one stream.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()

    logging.basicConfig(
        level=resolved_level,
        format=(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        ),
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for the requested module."""
    configure_logging()
    return logging.getLogger(name)


def format_fields(**fields: object) -> str:
    """Render ``key=value`` pairs in the pipe-separated log style.

    Iterable values (hall id sets) are rendered as comma-joined lists so the
    same record is greppable by any single hall id.
    """
    parts: list[str] = []
    for key, value in fields.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            rendered = ",".join(str(item) for item in sorted(value, key=str))
        else:
            rendered = str(value)
        parts.append(f"{key}={rendered}")
    return " | ".join(parts)
