"""
spantree.level
~~~~~~~~~~~~~~

Span severity levels.

A span is written only when its level is at least the minimum level of the
spanner that creates it. The same comparison decides whether the exit line
is written, so entry and exit suppression always agree.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

__all__ = [
    "Level",
    "DEFAULT_LEVEL",
]


class Level(IntEnum):
    """Totally ordered span severity: TRACE < DEBUG < INFO < WARN < ERROR."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    @classmethod
    def parse(cls, value: Any) -> Level:
        """
        Coerce a level, an int or a level name into a Level.

        Names are case-insensitive; ``"warning"`` is accepted for WARN.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid span level: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name == "WARNING":
                name = "WARN"
            try:
                return cls[name]
            except KeyError:
                pass
        raise ValueError(f"invalid span level: {value!r}")


DEFAULT_LEVEL = Level.INFO
