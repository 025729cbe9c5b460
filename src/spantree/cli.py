"""
spantree.cli
~~~~~~~~~~~~

Command-line demonstrations of span output.

Examples:
    !!! example "Trace a recursive Fibonacci"
        ```bash
        spantree-demo fib 5
        ```

    !!! example "Trace an expression parser with a bar on every depth"
        ```bash
        spantree-demo --skip 1 parse "10 + 13 - 23 / ( 103 - 10 ) + 1"
        ```

    !!! example "Write the trace to a file"
        ```bash
        spantree-demo --output trace.txt fib 8
        ```

Execution Flow:
    1. Parse CLI arguments.
    2. Build a SpanConfig from the environment, overridden by options.
    3. Create a StdoutSpanner, or a FileSpanner for ``--output``.
    4. Run the demo, printing its result to stdout after the trace.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from pydantic import ValidationError

from .config import SpanConfig
from .core import FileSpanner, Spanner, StdoutSpanner
from .demos import fib, parse_expression
from .level import Level

__all__ = [
    "main",
    "setup_logging",
    "build_spanner",
]

logger = logging.getLogger("spantree")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for spantree."""
    level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter = logging.Formatter(
        '[spantree] %(levelname)s %(name)s: %(message)s'
    )
    handler.setFormatter(formatter)

    spantree_logger = logging.getLogger("spantree")
    spantree_logger.setLevel(level)
    spantree_logger.handlers = [handler]
    spantree_logger.propagate = False


def _level(value: str) -> Level:
    try:
        return Level.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='spantree-demo',
        description='Print the span tree of a small recursive program',
        epilog='''
Examples:
    spantree-demo fib 5
    spantree-demo --skip 1 parse "10 + 13 - 23 / ( 103 - 10 ) + 1"
    spantree-demo --level warn --span-level error fib 3
        ''',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Span configuration
    parser.add_argument(
        '--tabwidth',
        type=int,
        default=None,
        help='Columns of indentation per depth (default: $SPANTREE_TABWIDTH or 2)',
    )
    parser.add_argument(
        '--skip',
        type=int,
        default=None,
        help='Draw a bar every N depths, 0 disables bars (default: $SPANTREE_SKIP or 2)',
    )
    parser.add_argument(
        '--level',
        type=_level,
        default=None,
        help='Minimum span level to print (default: $SPANTREE_LEVEL or info)',
    )
    parser.add_argument(
        '--span-level',
        type=_level,
        default=Level.INFO,
        help='Level the demo spans are entered with (default: info)',
    )
    parser.add_argument(
        '-o', '--output',
        default=None,
        help='Write the trace to this file instead of stdout',
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging',
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Disable spantree logging',
    )

    subparsers = parser.add_subparsers(dest='demo', required=True)

    fib_parser = subparsers.add_parser('fib', help='Trace a recursive Fibonacci')
    fib_parser.add_argument('n', type=int, help='Which Fibonacci number to compute')

    parse_parser = subparsers.add_parser('parse', help='Trace an expression parser')
    parse_parser.add_argument(
        'expression',
        help='Whitespace-separated integer arithmetic, e.g. "1 + ( 2 * 3 )"',
    )

    return parser


def build_config(args: argparse.Namespace) -> SpanConfig:
    """Environment config overridden by command-line options."""
    config = SpanConfig.from_env()
    if args.tabwidth is not None:
        config = config.with_tabwidth(args.tabwidth)
    if args.skip is not None:
        config = config.with_skip(args.skip)
    if args.level is not None:
        config = config.with_level(args.level)
    return config


def build_spanner(args: argparse.Namespace) -> Spanner:
    """Create the spanner the demo traces into."""
    config = build_config(args)
    if args.output:
        return FileSpanner(args.output, config)
    return StdoutSpanner(config)


def run_demo(args: argparse.Namespace, spanner: Spanner) -> Any:
    """Run the selected demo and return its result."""
    if args.demo == 'fib':
        return fib(spanner, args.n, args.span_level)
    return parse_expression(spanner, args.expression, args.span_level)


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the spantree-demo CLI.

    Returns:
        Process exit code: 0 on success, 2 on invalid input
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.quiet:
        setup_logging(verbose=args.verbose)

    try:
        spanner = build_spanner(args)
    except ValidationError as e:
        parser.error(f"invalid span configuration: {e.errors()[0]['msg']}")
    except OSError as e:
        parser.error(f"can not open output file: {e}")

    logger.debug(f"Running demo {args.demo!r} with {spanner.config.to_dict()}")

    try:
        result = run_demo(args, spanner)
    except ValueError as e:
        print(f"spantree-demo: error: {e}", file=sys.stderr)
        return 2
    finally:
        if isinstance(spanner, FileSpanner):
            spanner.close()

    print(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
