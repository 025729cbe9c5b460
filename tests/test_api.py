#!/usr/bin/env python
"""
test_api.py
~~~~~~~~~~~

Unit tests for the default spanner and the call-site helpers.

Tests:
    1. Default spanner creation, replacement and reconfiguration
    2. spf() verbatim and formatted names
    3. @traced on sync and async functions
"""

from __future__ import annotations

import asyncio
import logging
import os
import unittest
from unittest import mock

import spantree
from spantree import Level, SpanConfig, StdoutSpanner, VecSpanner, spf, traced
from spantree.api import SpannerProvider


def clean_environ() -> dict[str, str]:
    """Copy of the environment without SPANTREE_* variables."""
    return {k: v for k, v in os.environ.items() if not k.startswith("SPANTREE_")}


@traced("fib({n})")
def fib(n: int) -> int:
    return n if n < 2 else fib(n - 1) + fib(n - 2)


@traced
def double(x: int) -> int:
    return 2 * x


@traced("scale({x}, {factor})")
def scale(x: int, factor: int = 2) -> int:
    return x * factor


@traced("oops({missing})")
def oops(x: int) -> int:
    return x


@traced("hidden", level=Level.DEBUG)
def hidden() -> str:
    return "ran"


@traced("explode({reason})")
def explode(reason: str) -> None:
    raise RuntimeError(reason)


@traced("fetch({key})")
async def fetch(key: str) -> str:
    await asyncio.sleep(0)
    return key.upper()


class ApiTestCase(unittest.TestCase):
    """Resets the default spanner around every test."""

    def setUp(self) -> None:
        spantree.reset()
        self._environ = mock.patch.dict(os.environ, clean_environ(), clear=True)
        self._environ.start()

    def tearDown(self) -> None:
        self._environ.stop()
        spantree.reset()
        logging.getLogger("spantree").setLevel(logging.NOTSET)

    def install_buffer(self) -> VecSpanner:
        spanner = VecSpanner()
        spantree.set_spanner(spanner)
        return spanner


class TestDefaultSpanner(ApiTestCase):
    """Tests for get_spanner/set_spanner/configure/reset."""

    def test_default_is_stdout_singleton(self) -> None:
        spanner = spantree.get_spanner()
        self.assertIsInstance(spanner, StdoutSpanner)
        self.assertIs(spantree.get_spanner(), spanner)
        self.assertIs(SpannerProvider.get_instance().spanner, spanner)
        self.assertEqual(spanner.config, SpanConfig())

    def test_default_reads_environment(self) -> None:
        with mock.patch.dict(os.environ, {"SPANTREE_SKIP": "1", "SPANTREE_LEVEL": "warn"}):
            spanner = spantree.get_spanner()
        self.assertEqual(spanner.config.skip, 1)
        self.assertEqual(spanner.config.level, Level.WARN)

    def test_reset_creates_new_spanner(self) -> None:
        first = spantree.get_spanner()
        spantree.reset()
        self.assertIsNot(spantree.get_spanner(), first)

    def test_set_spanner(self) -> None:
        spanner = self.install_buffer()
        self.assertIs(spantree.get_spanner(), spanner)

    def test_configure(self) -> None:
        """Only the given fields change."""
        self.install_buffer()
        config = spantree.configure(skip=1, level="debug")
        self.assertEqual(config.skip, 1)
        self.assertEqual(config.level, Level.DEBUG)
        self.assertEqual(config.tabwidth, 2)
        self.assertIs(spantree.get_spanner().config, config)
        self.assertIsInstance(spantree.get_spanner(), VecSpanner)

    def test_configure_keeps_sink(self) -> None:
        spanner = self.install_buffer()
        spantree.configure(tabwidth=4, depthmap=lambda depth: '!', skip=1)
        with spantree.get_spanner().enter_span("a"):
            with spantree.get_spanner().enter_span("b"):
                pass
        self.assertEqual(spanner.text(), "┌a\n!   ┌b\n!   └b\n└a\n")

    def test_configure_log_level(self) -> None:
        spantree.configure(log_level="debug")
        self.assertEqual(logging.getLogger("spantree").level, logging.DEBUG)
        with self.assertRaises(ValueError):
            spantree.configure(log_level="chatty")

    def test_configure_invalid_value(self) -> None:
        with self.assertRaises(ValueError):
            spantree.configure(skip=-1)

    def test_configure_with_open_span_warns(self) -> None:
        spanner = self.install_buffer()
        with spanner.enter_span("open"):
            with self.assertLogs("spantree.api", level="WARNING"):
                spantree.configure(skip=1)

    def test_log_level_from_environment(self) -> None:
        with mock.patch.dict(os.environ, {"SPANTREE_LOG_LEVEL": "error"}):
            spantree.get_spanner()
        self.assertEqual(logging.getLogger("spantree").level, logging.ERROR)

    def test_unknown_log_level_in_environment(self) -> None:
        with mock.patch.dict(os.environ, {"SPANTREE_LOG_LEVEL": "chatty"}):
            with self.assertLogs("spantree.api", level="WARNING") as logs:
                spantree.get_spanner()
        self.assertIn("chatty", logs.output[0])


class TestSpf(ApiTestCase):
    """Tests for spf()."""

    def test_literal_name(self) -> None:
        """Without arguments the template is not formatted."""
        spanner = VecSpanner()
        with spf(spanner, "Span({current_depth})"):
            pass
        self.assertEqual(spanner.text(), "┌Span({current_depth})\n└Span({current_depth})\n")

    def test_formatted_name(self) -> None:
        spanner = VecSpanner()
        with spf(spanner, "Span({})", 0):
            with spf(spanner, "Span({depth})", depth=1, level=Level.ERROR):
                pass
        self.assertEqual(spanner.text(), "┌Span(0)\n|  Span(1)\n|  Span(1)\n└Span(0)\n")

    def test_filtered(self) -> None:
        spanner = VecSpanner()
        with spf(spanner, "{missing}", 1, level=Level.TRACE) as span:
            self.assertFalse(span.emitted)
        self.assertEqual(spanner.getvalue(), b"")


class TestTraced(ApiTestCase):
    """Tests for @traced."""

    def test_recursive_tree(self) -> None:
        spanner = self.install_buffer()
        self.assertEqual(fib(3), 2)
        self.assertEqual(spanner.text(), (
            "┌fib(3)\n"
            "|  fib(2)\n"
            "|   ┌fib(1)\n"
            "|   └fib(1)\n"
            "|   ┌fib(0)\n"
            "|   └fib(0)\n"
            "|  fib(2)\n"
            "|  fib(1)\n"
            "|  fib(1)\n"
            "└fib(3)\n"
        ))

    def test_bare_decorator_uses_qualname(self) -> None:
        spanner = self.install_buffer()
        self.assertEqual(double(4), 8)
        self.assertEqual(spanner.text(), "┌double\n└double\n")
        self.assertEqual(double.__name__, "double")

    def test_defaults_fill_template(self) -> None:
        spanner = self.install_buffer()
        self.assertEqual(scale(3), 6)
        self.assertEqual(scale(3, factor=3), 9)
        self.assertEqual(spanner.text(), (
            "┌scale(3, 2)\n└scale(3, 2)\n┌scale(3, 3)\n└scale(3, 3)\n"
        ))

    def test_bad_template_kept_verbatim(self) -> None:
        spanner = self.install_buffer()
        with self.assertLogs("spantree.api", level="DEBUG"):
            self.assertEqual(oops(1), 1)
        self.assertEqual(spanner.text(), "┌oops({missing})\n└oops({missing})\n")

    def test_filtered_function_still_runs(self) -> None:
        spanner = self.install_buffer()
        self.assertEqual(hidden(), "ran")
        self.assertEqual(spanner.getvalue(), b"")

    def test_exception_propagates(self) -> None:
        spanner = self.install_buffer()
        with self.assertRaises(RuntimeError):
            explode("boom")
        self.assertEqual(spanner.text(), "┌explode(boom)\n└explode(boom)\n")
        self.assertEqual(spanner.depth, 0)

    def test_spanner_resolved_per_call(self) -> None:
        first = self.install_buffer()
        double(1)
        second = self.install_buffer()
        double(2)
        self.assertEqual(first.text(), "┌double\n└double\n")
        self.assertEqual(second.text(), "┌double\n└double\n")

    def test_explicit_spanner(self) -> None:
        spanner = VecSpanner()
        default = self.install_buffer()

        @traced("local({x})", spanner=spanner)
        def local(x: int) -> int:
            return x

        self.assertEqual(local(7), 7)
        self.assertEqual(spanner.text(), "┌local(7)\n└local(7)\n")
        self.assertEqual(default.getvalue(), b"")

    def test_async_function(self) -> None:
        spanner = self.install_buffer()
        self.assertEqual(asyncio.run(fetch("key")), "KEY")
        self.assertEqual(spanner.text(), "┌fetch(key)\n└fetch(key)\n")

    def test_unencodable_argument(self) -> None:
        spanner = VecSpanner()

        @traced("open({path})", spanner=spanner)
        def load(path: str) -> int:
            return 42

        self.assertEqual(load(os.fsdecode(b"\xff")), 42)
        self.assertEqual(spanner.depth, 0)
        self.assertEqual(spanner.text(), "┌open(\\udcff)\n└open(\\udcff)\n")

    def test_decorator_instance_reused(self) -> None:
        """Each decorated function keeps its own name."""
        spanner = VecSpanner()
        decorator = traced(level=Level.INFO, spanner=spanner)

        @decorator
        def first() -> int:
            return 1

        @decorator
        def second() -> int:
            return 2

        self.assertEqual(first() + second(), 3)
        lines = spanner.text().splitlines()
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].endswith(".first"))
        self.assertTrue(lines[2].endswith(".second"))

    def test_template_instance_reused(self) -> None:
        spanner = VecSpanner()
        decorator = traced("call({x})", spanner=spanner)
        add_one = decorator(lambda x: x + 1)
        negate = decorator(lambda x, y=0: -x)
        self.assertEqual(add_one(1), 2)
        self.assertEqual(negate(3), -3)
        self.assertEqual(spanner.text(), "┌call(1)\n└call(1)\n┌call(3)\n└call(3)\n")


def run_tests() -> None:
    """Run all tests with verbose output."""
    unittest.main(module=__name__, verbosity=2, exit=False)


if __name__ == "__main__":
    run_tests()
