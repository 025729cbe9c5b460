"""
spantree.api
~~~~~~~~~~~~

Process-wide default spanner and call-site helpers.

Most programs want one spanner shared by every traced function. The
default spanner writes to standard output and is configured from the
environment on first use; ``configure()`` swaps in a new config and
``set_spanner()`` replaces it altogether.

    from spantree import traced

    @traced("fib({n})")
    def fib(n):
        return n if n < 2 else fib(n - 1) + fib(n - 2)

Environment Variables:
    SPANTREE_LOG_LEVEL: Level of the ``spantree`` logger (default: unset)
    SPANTREE_TABWIDTH, SPANTREE_SKIP, SPANTREE_LEVEL: see spantree.config
"""

from __future__ import annotations

import functools
import inspect
import logging
import os
import threading
from collections.abc import Callable
from typing import Any

from .config import SpanConfig
from .core import Span, Spanner, StdoutSpanner
from .level import DEFAULT_LEVEL, Level
from .types import F, SpanName

logger = logging.getLogger("spantree.api")

__all__ = [
    "SpannerProvider",
    "get_spanner",
    "set_spanner",
    "configure",
    "reset",
    "spf",
    "traced",
]


def _apply_log_level(log_level: str) -> bool:
    """Set the ``spantree`` logger level by name; False if the name is unknown."""
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        return False
    logging.getLogger("spantree").setLevel(level)
    return True


class SpannerProvider:
    """
    Singleton holder of the default spanner.

    Use get_spanner() instead of instantiating directly.
    """

    _instance: SpannerProvider | None = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._spanner: Spanner | None = None

    @classmethod
    def get_instance(cls) -> SpannerProvider:
        """Get or create the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the provider and its spanner (for testing)."""
        with cls._lock:
            cls._instance = None

    @property
    def spanner(self) -> Spanner:
        """The default spanner, created from the environment on first use."""
        if self._spanner is None:
            with self._lock:
                if self._spanner is None:
                    log_level = os.getenv("SPANTREE_LOG_LEVEL")
                    if log_level and not _apply_log_level(log_level):
                        logger.warning(f"Ignoring unknown SPANTREE_LOG_LEVEL={log_level!r}")
                    self._spanner = StdoutSpanner(SpanConfig.from_env())
                    logger.debug(f"Default spanner created: {self._spanner.config.to_dict()}")
        return self._spanner

    def set_spanner(self, spanner: Spanner) -> None:
        with self._lock:
            self._spanner = spanner


def get_spanner() -> Spanner:
    """
    Get the process-wide default spanner.

    Returns:
        The spanner used by traced() and spf() when none is given
    """
    return SpannerProvider.get_instance().spanner


def set_spanner(spanner: Spanner) -> None:
    """Replace the process-wide default spanner."""
    SpannerProvider.get_instance().set_spanner(spanner)


def configure(
    *,
    tabwidth: int | None = None,
    skip: int | None = None,
    depthmap: Callable[[int], str] | None = None,
    level: Level | str | None = None,
    log_level: str | None = None,
) -> SpanConfig:
    """
    Reconfigure the default spanner.

    Unset arguments keep their current value. Call this at startup,
    before any span of the default spanner is open.

    Args:
        tabwidth: Columns of indentation per depth
        skip: Bar frequency, 0 disables bars
        depthmap: Depth to bar character function
        level: Minimum span level
        log_level: Level name for the ``spantree`` logger

    Returns:
        The new SpanConfig

    Raises:
        pydantic.ValidationError: If a value is out of range
        ValueError: If ``log_level`` names no logging level

    Example:
        >>> from spantree import configure
        >>> configure(skip=1, level="debug")
    """
    provider = SpannerProvider.get_instance()
    spanner = provider.spanner
    config = spanner.config

    if tabwidth is not None:
        config = config.with_tabwidth(tabwidth)
    if skip is not None:
        config = config.with_skip(skip)
    if depthmap is not None:
        config = config.with_depthmap(depthmap)
    if level is not None:
        config = config.with_level(level)
    if log_level is not None and not _apply_log_level(log_level):
        raise ValueError(f"unknown log level: {log_level!r}")

    if spanner.depth:
        logger.warning(
            "Default spanner reconfigured with open spans. "
            "Their exit lines keep the old formatting."
        )
    provider.set_spanner(spanner.with_config(config))
    return config


def reset() -> None:
    """
    Forget the default spanner.

    Primarily for testing purposes; the next get_spanner() call reads the
    environment again.
    """
    SpannerProvider.reset()


def spf(
    spanner: Spanner,
    template: str,
    *args: Any,
    level: Level = DEFAULT_LEVEL,
    **kwargs: Any,
) -> Span:
    """
    Enter a span named by a format template.

    Without arguments the template is used verbatim as the name. With
    arguments it is formatted with ``str.format``, only if ``level`` is
    emitted.

    !!! example
        ```python
        with spf(spanner, "fib({})", n):
            ...
        with spf(spanner, "load {path}", path=path, level=Level.DEBUG):
            ...
        ```
    """
    if not args and not kwargs:
        return spanner.enter_with_level(level, template)
    return spanner.enter_fmt(level, template, *args, **kwargs)


# =============================================================================
# @traced DECORATOR
# =============================================================================


class _TracedDecorator:
    """
    Wraps a function so each call runs inside a span.

    See `traced` function for usage. One instance may decorate several
    functions; the name and signature are kept per wrapped function.
    """

    __slots__ = ('_name', '_level', '_spanner')

    def __init__(
        self,
        name: SpanName | None = None,
        level: Level = DEFAULT_LEVEL,
        spanner: Spanner | None = None,
    ) -> None:
        self._name = name
        self._level = Level.parse(level)
        self._spanner = spanner

    def _resolve_spanner(self) -> Spanner:
        return self._spanner if self._spanner is not None else get_spanner()

    @staticmethod
    def _span_name(
        name: SpanName,
        signature: inspect.Signature | None,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> SpanName:
        """Format the name template with the call's arguments."""
        if signature is None:
            return name
        try:
            bound = signature.bind(*args, **kwargs)
        except TypeError:
            # the call itself is about to fail; keep the raw template
            return name
        bound.apply_defaults()
        try:
            return name.format(**bound.arguments)
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            logger.debug(f"Span name template {name!r} not formatted: {e!r}")
            return name

    def __call__(self, func: F) -> F:
        """
        Called when decorating a function.

        Resolves the span name and inspects the signature once, at
        decoration time.
        """
        name = self._name or func.__qualname__
        signature = inspect.signature(func) if '{' in name else None
        level = self._level

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                spanner = self._resolve_spanner()
                if not spanner.is_enabled_for(level):
                    return await func(*args, **kwargs)
                span_name = self._span_name(name, signature, args, kwargs)
                with spanner.enter_with_level(level, span_name):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            spanner = self._resolve_spanner()
            if not spanner.is_enabled_for(level):
                return func(*args, **kwargs)
            span_name = self._span_name(name, signature, args, kwargs)
            with spanner.enter_with_level(level, span_name):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore


def traced(
    name: str | Callable | None = None,
    *,
    level: Level = DEFAULT_LEVEL,
    spanner: Spanner | None = None,
) -> Callable | _TracedDecorator:
    """
    Decorator tracing every call of a function as a span.

    Supports both:
        @traced
        def func(): ...

        @traced("fib({n})", level=Level.DEBUG)
        def fib(n): ...

    The name defaults to the function's qualified name. Placeholders in
    the name are filled from the call's arguments, defaults included. The
    spanner defaults to get_spanner(), looked up on every call.
    """
    if callable(name):
        return _TracedDecorator(level=level, spanner=spanner)(name)
    return _TracedDecorator(name=name, level=level, spanner=spanner)
