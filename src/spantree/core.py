"""
Spanner and Span for spantree.

This module provides the core tracing API:
- Spanner: owns the output sink, the shared depth counter and the config
- Span: scoped handle that writes the matching exit line exactly once
- generate_messages: renders the enter/exit line pair for one depth

Usage:
    from spantree import StdoutSpanner

    spanner = StdoutSpanner()

    def fib(n):
        with spanner.enter_span(f"fib({n})"):
            return n if n < 2 else fib(n - 1) + fib(n - 2)

Output (default config, ``fib(3)``)::

    ┌fib(3)
    |  fib(2)
    |   ┌fib(1)
    |   └fib(1)
    |   ┌fib(0)
    |   └fib(0)
    |  fib(2)
    |  fib(1)
    |  fib(1)
    └fib(3)

Architecture:
    - No tree is stored. Nesting is the depth counter shared by every
      span of one Spanner; entering increments it, exiting decrements it.
    - The exit line is rendered when the span is entered, so releasing a
      span does no formatting work.
    - Writes are serialized by a lock held for one write call. Write
      failures are logged and dropped; depth bookkeeping still happens.

Thread Safety:
    A Spanner may be shared by threads, but the lines of unrelated spans
    interleave in no particular order. Use one Spanner per thread for a
    readable tree per thread.
"""

from __future__ import annotations

import copy
import io
import logging
import os
import sys
import threading
from typing import Any

from .config import SpanConfig
from .level import DEFAULT_LEVEL, Level
from .structures import AtomicCounter
from .types import SpanName, Writer

logger = logging.getLogger("spantree.core")

__all__ = [
    "ENTER_GLYPH",
    "EXIT_GLYPH",
    "generate_messages",
    "Spanner",
    "Span",
    "VecSpanner",
    "FileSpanner",
    "StdoutSpanner",
]

ENTER_GLYPH = '┌'
EXIT_GLYPH = '└'


def _indentation(depth: int, config: SpanConfig) -> str:
    """Render ``depth`` columns of ``config.tabwidth`` characters each."""
    skip = config.skip
    pad = ' ' * (config.tabwidth - 1)
    columns = []
    for i in range(depth):
        if skip and i % skip == 0:
            columns.append(config.depthmap(i))
        else:
            columns.append(' ')
        columns.append(pad)
    return ''.join(columns)


def generate_messages(name: SpanName, depth: int, config: SpanConfig) -> tuple[str, str]:
    """
    Generate the enter and exit lines of a span.

    Both lines share the indentation of ``depth``; they differ only in the
    glyph in front of the name, which is drawn when bars are enabled and
    ``depth`` falls on a bar, and is a blank otherwise.

    Args:
        name: Span name, written verbatim
        depth: Depth of the span (the counter value before entering)
        config: Formatting rules

    Returns:
        ``(enter_message, exit_message)``, each newline-terminated
    """
    spaces = _indentation(depth, config)
    if config.skip and depth % config.skip == 0:
        enter_glyph, exit_glyph = ENTER_GLYPH, EXIT_GLYPH
    else:
        enter_glyph = exit_glyph = ' '
    return f"{spaces}{enter_glyph}{name}\n", f"{spaces}{exit_glyph}{name}\n"


class Spanner:
    """
    Generates spans and keeps track of the span depth.

    Attributes:
        config: The active SpanConfig (read-only)
        depth: Number of currently open, emitted spans

    !!! example "Tracing into a buffer"
        ```python
        spanner = VecSpanner().with_config(SpanConfig().with_skip(3))

        with spanner.enter_span("outer"):
            with spanner.enter_with_level(Level.DEBUG, "hidden"):
                pass

        spanner.text()  # '┌outer\\n└outer\\n'
        ```
    """

    def __init__(self, writer: Writer, config: SpanConfig | None = None) -> None:
        """
        Create a spanner with depth 0.

        Args:
            writer: Sink with a ``write(bytes)`` method
            config: Formatting rules (defaults to ``SpanConfig()``)
        """
        self._writer = writer
        # reentrant: a span collected by the GC mid-write releases on this thread
        self._write_lock = threading.RLock()
        self._depth = AtomicCounter()
        self._config = config if config is not None else SpanConfig()

    @classmethod
    def from_writer(cls, writer: Writer) -> Spanner:
        """Create a spanner with the default config writing to ``writer``."""
        return cls(writer)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} depth={self.depth} level={self._config.level.name}>"

    @property
    def config(self) -> SpanConfig:
        return self._config

    @property
    def depth(self) -> int:
        return self._depth.value

    def with_config(self, config: SpanConfig) -> Spanner:
        """
        Return a spanner using ``config``.

        The returned spanner shares this one's sink, write lock and depth
        counter; only the config differs. Stop using the old value after
        the call, as is done when chaining off a constructor:

            spanner = VecSpanner().with_config(SpanConfig().with_skip(3))
        """
        spanner = copy.copy(self)
        spanner._config = config
        return spanner

    def is_enabled_for(self, level: Level) -> bool:
        """Whether spans of ``level`` are emitted (entry and exit alike)."""
        return level >= self._config.level

    def enter_span(self, name: SpanName) -> Span:
        """
        Enter a span with ``Level.INFO``.

        Use the returned Span as a context manager, or keep it in a local
        variable until the enclosing function returns.
        """
        return self.enter_with_level(DEFAULT_LEVEL, name)

    def enter_with_level(self, level: Level, name: SpanName) -> Span:
        """
        Enter a span with ``level``.

        Below the configured minimum level nothing is written, the depth
        is left alone, and the returned Span does nothing on exit.

        Args:
            level: Span level
            name: Shown in the enter and the exit line

        Returns:
            The Span handle owning the matching exit line
        """
        level = Level.parse(level)
        if not self.is_enabled_for(level):
            return Span(self, level, name, "")

        prev_depth = self._depth.fetch_add()
        try:
            enter_message, drop_message = generate_messages(name, prev_depth, self._config)
        except Exception:
            # a failing depthmap must not leave the counter raised
            self._depth.fetch_sub()
            raise

        self._write(enter_message)
        return Span(self, level, name, drop_message)

    def enter_fmt(self, level: Level, template: str, *args: Any, **kwargs: Any) -> Span:
        """
        Enter a span whose name is ``template.format(*args, **kwargs)``.

        The name is only formatted when ``level`` passes the filter.
        """
        level = Level.parse(level)
        if not self.is_enabled_for(level):
            return Span(self, level, template, "")
        return self.enter_with_level(level, template.format(*args, **kwargs))

    def _write(self, message: str) -> None:
        """
        Write one line to the sink. Failures are logged and dropped.

        Characters UTF-8 can not encode (lone surrogates from
        ``os.fsdecode``) are written as backslash escapes.
        """
        try:
            data = message.encode('utf-8', 'backslashreplace')
            with self._write_lock:
                self._writer.write(data)
        except Exception as e:
            logger.debug(f"Span line dropped, sink write failed: {e!r}")

    def _release(self) -> None:
        self._depth.fetch_sub()


class Span:
    """
    Handle tying one enter line to exactly one exit line.

    Spans are created by ``Spanner.enter_span`` and friends; do not
    instantiate them directly. The exit line is written, and the depth
    restored, the first time one of these happens:

    - the ``with`` block using the span ends, normally or by an exception
    - ``exit()`` is called
    - the last reference to the span goes away

    Later triggers do nothing. A span that was filtered out by level never
    writes or touches the depth.

    !!! example "Scoped span"
        ```python
        def parse(tokens):
            with spanner.enter_span("parse"):
                if not tokens:
                    return None     # exit line still written
                return build(tokens)
        ```
    """

    __slots__ = ('_parent', '_name', '_level', '_drop_message', '_released')

    def __init__(self, parent: Spanner, level: Level, name: SpanName, drop_message: str) -> None:
        self._parent = parent
        self._name = name
        self._level = level
        self._drop_message = drop_message
        self._released = False

    def __repr__(self) -> str:
        state = "released" if self._released else "open"
        return f"<Span {self._name!r} level={self._level.name} {state}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def level(self) -> Level:
        return self._level

    @property
    def emitted(self) -> bool:
        """Whether this span passed the level filter and wrote its enter line."""
        return bool(self._drop_message)

    @property
    def released(self) -> bool:
        return self._released

    def exit(self) -> None:
        """Write the exit line and decrement the depth. Idempotent."""
        with self._parent._write_lock:
            if self._released:
                return
            self._released = True
        if not self._parent.is_enabled_for(self._level):
            return
        self._parent._release()
        self._parent._write(self._drop_message)

    def __enter__(self) -> Span:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.exit()

    def __del__(self) -> None:
        if getattr(self, '_released', True):
            return
        self.exit()

    def __copy__(self) -> Span:
        raise TypeError("Span handles can not be copied")

    def __deepcopy__(self, memo: dict[int, Any]) -> Span:
        raise TypeError("Span handles can not be copied")


class VecSpanner(Spanner):
    """A Spanner that writes into an in-memory byte buffer."""

    def __init__(self, initial: bytes = b"", config: SpanConfig | None = None) -> None:
        buffer = io.BytesIO()
        buffer.write(initial)
        super().__init__(buffer, config)

    def getvalue(self) -> bytes:
        """Everything written so far."""
        return self._writer.getvalue()

    def text(self) -> str:
        """Everything written so far, decoded as UTF-8."""
        return self.getvalue().decode('utf-8')


class FileSpanner(Spanner):
    """
    A Spanner that writes to a file.

    Accepts an already open binary file, or a path which is then opened
    (truncating) and owned by the spanner until ``close()``.
    """

    def __init__(self, file: Any, config: SpanConfig | None = None) -> None:
        self._owns_file = isinstance(file, (str, os.PathLike))
        if self._owns_file:
            file = open(file, 'wb')
        super().__init__(file, config)

    def close(self) -> None:
        """Close the file if this spanner opened it, else flush it."""
        with self._write_lock:
            if self._owns_file:
                self._writer.close()
            else:
                self._writer.flush()

    def __enter__(self) -> FileSpanner:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class _StdoutWriter:
    """Writes to whatever ``sys.stdout`` is at the time of the write."""

    def write(self, data: bytes) -> int:
        return sys.stdout.write(data.decode('utf-8'))


class StdoutSpanner(Spanner):
    """A Spanner that writes to the standard output."""

    def __init__(self, config: SpanConfig | None = None) -> None:
        super().__init__(_StdoutWriter(), config)
