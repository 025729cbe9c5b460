"""
Shared counter used for span depth.

Every span created from one Spanner moves the same depth counter, from
whichever thread it runs on. The interpreter offers no atomic integer, so
the counter is a plain int whose read-modify-write steps happen under a
lock. The lock is held for a single arithmetic step and never while
writing output.
"""

from __future__ import annotations

import threading

__all__ = [
    "AtomicCounter",
]


class AtomicCounter:
    """
    Non-negative integer with fetch-and-add / fetch-and-subtract.

    Two concurrent ``fetch_add`` calls always observe different previous
    values, so no two spans entered concurrently are given the same depth.

    Examples:
        !!! example "Basic usage"
            ```python
            depth = AtomicCounter()
            prev = depth.fetch_add()   # 0
            depth.fetch_sub()          # returns 1, value back to 0
            ```
    """

    __slots__ = ('_value', '_lock')

    def __init__(self, value: int = 0) -> None:
        if value < 0:
            raise ValueError("Counter value must not be negative")
        self._value = value
        self._lock = threading.Lock()

    def fetch_add(self, n: int = 1) -> int:
        """Add ``n`` and return the previous value."""
        with self._lock:
            prev = self._value
            self._value = prev + n
            return prev

    def fetch_sub(self, n: int = 1) -> int:
        """
        Subtract ``n`` and return the previous value.

        Saturates at zero: an unmatched release can not drive the counter
        negative.
        """
        with self._lock:
            prev = self._value
            self._value = max(prev - n, 0)
            return prev

    @property
    def value(self) -> int:
        """Current value (a snapshot; may change right after it is read)."""
        return self._value

    def __repr__(self) -> str:
        return f"<AtomicCounter value={self._value}>"
