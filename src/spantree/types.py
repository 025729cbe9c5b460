"""
spantree.types
~~~~~~~~~~~~~~

Type aliases and protocols for spantree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

# =============================================================================
# Type Aliases
# =============================================================================

SpanName = str
"""Caller-supplied span label (e.g., 'fib(5)')."""

# =============================================================================
# Protocols
# =============================================================================


class Writer(Protocol):
    """Append-only byte sink a Spanner writes rendered lines to."""

    def write(self, data: bytes, /) -> Any:
        ...

# =============================================================================
# Generic Type Variables
# =============================================================================

F = TypeVar("F", bound="Callable[..., Any]")
"""Type variable for callable decorators."""

# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "SpanName",
    "Writer",
    "F",
]
