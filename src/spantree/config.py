"""
Configuration module for spantree.

A SpanConfig controls how span lines are drawn and which spans are drawn
at all. It is frozen: changing a setting produces a new SpanConfig via one
of the ``with_*`` builders, and a Spanner picks it up through
``Spanner.with_config``.

Configuration Priority (highest to lowest):
    1. Programmatic configuration via SpanConfig(...) / with_* builders
    2. Environment variables (SpanConfig.from_env)
    3. Default values

Environment Variables:
    SPANTREE_TABWIDTH: Columns of indentation per depth (default: 2)
    SPANTREE_SKIP: Draw a bar every N depths, 0 disables bars (default: 2)
    SPANTREE_LEVEL: Minimum span level to emit (default: INFO)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .level import DEFAULT_LEVEL, Level

__all__ = [
    "DEPTH_GLYPHS",
    "default_depthmap",
    "SpanConfig",
]

logger = logging.getLogger("spantree.config")

DEPTH_GLYPHS = ('|', '¦', '┆', '┊')


def default_depthmap(depth: int) -> str:
    """Cycle through ``DEPTH_GLYPHS`` by depth."""
    return DEPTH_GLYPHS[depth % len(DEPTH_GLYPHS)]


def _get_int_env(key: str, default: int) -> int:
    """Parse int from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class SpanConfig(BaseModel):
    """
    Formatting and filtering rules for a Spanner.

    Attributes:
        tabwidth: Display columns added per depth level.
        skip: Frequency of tree bars; a bar is drawn at depth ``i`` when
            ``i % skip == 0``. ``0`` never draws a bar.
        depthmap: Pure function mapping a depth to the bar character drawn
            at that depth.
        level: Minimum level a span must carry to be emitted.

    Examples:
        !!! example "Builder-style replacement"
            ```python
            config = SpanConfig().with_skip(3).with_level(Level.DEBUG)
            ```
    """

    model_config = ConfigDict(frozen=True)

    tabwidth: int = Field(
        default=2,
        ge=1,
        description="Columns of indentation per depth level"
    )
    skip: int = Field(
        default=2,
        ge=0,
        description="Draw a tree bar every `skip` depths, 0 disables bars"
    )
    depthmap: Callable[[int], str] = Field(
        default=default_depthmap,
        description="Maps a depth to its bar character"
    )
    level: Level = Field(
        default=DEFAULT_LEVEL,
        description="Minimum level of emitted spans"
    )

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Level:
        return Level.parse(value)

    def _replace(self, **changes: Any) -> SpanConfig:
        # model_copy() skips validation, so rebuild instead
        return type(self)(**{**dict(self), **changes})

    def with_tabwidth(self, tabwidth: int) -> SpanConfig:
        """Return a copy with ``tabwidth`` replaced."""
        return self._replace(tabwidth=tabwidth)

    def with_skip(self, skip: int) -> SpanConfig:
        """Return a copy with ``skip`` replaced."""
        return self._replace(skip=skip)

    def with_depthmap(self, depthmap: Callable[[int], str]) -> SpanConfig:
        """
        Return a copy with ``depthmap`` replaced.

        Example:
            >>> config = SpanConfig().with_depthmap(
            ...     lambda depth: '|' if depth % 2 == 0 else '¦'
            ... )
        """
        return self._replace(depthmap=depthmap)

    def with_level(self, level: Level | str | int) -> SpanConfig:
        """Return a copy with the minimum ``level`` replaced."""
        return self._replace(level=level)

    @classmethod
    def from_env(cls) -> SpanConfig:
        """
        Create configuration from environment variables.

        Values that fail validation are replaced by their defaults and
        reported on the ``spantree.config`` logger.
        """
        defaults = cls()
        tabwidth = _get_int_env("SPANTREE_TABWIDTH", defaults.tabwidth)
        if tabwidth < 1:
            logger.warning(f"Ignoring SPANTREE_TABWIDTH={tabwidth}, must be at least 1")
            tabwidth = defaults.tabwidth

        skip = _get_int_env("SPANTREE_SKIP", defaults.skip)
        if skip < 0:
            logger.warning(f"Ignoring SPANTREE_SKIP={skip}, must not be negative")
            skip = defaults.skip

        level = defaults.level
        level_str = os.getenv("SPANTREE_LEVEL")
        if level_str:
            try:
                level = Level.parse(level_str)
            except ValueError:
                logger.warning(f"Ignoring unknown SPANTREE_LEVEL={level_str!r}")

        return cls(tabwidth=tabwidth, skip=skip, level=level)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/debugging."""
        return {
            'tabwidth': self.tabwidth,
            'skip': self.skip,
            'depthmap': getattr(self.depthmap, '__name__', repr(self.depthmap)),
            'level': self.level.name,
        }
