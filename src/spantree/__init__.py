"""
spantree
~~~~~~~~

Tree-shaped call-stack tracing for humans.

Spans print a matched enter/exit line pair, indented by how many spans
are open on the same spanner, so nested calls read as a tree.
"""

from .api import configure, get_spanner, reset, set_spanner, spf, traced
from .config import DEPTH_GLYPHS, SpanConfig, default_depthmap
from .core import (
    FileSpanner, Span, Spanner, StdoutSpanner, VecSpanner, generate_messages,
)
from .level import DEFAULT_LEVEL, Level

__version__ = "0.1.0"
__all__ = [
    # Levels
    "Level", "DEFAULT_LEVEL",

    # Configuration
    "SpanConfig", "default_depthmap", "DEPTH_GLYPHS",

    # Spanners
    "Spanner", "Span", "VecSpanner", "FileSpanner", "StdoutSpanner",
    "generate_messages",

    # Default spanner and helpers
    "get_spanner", "set_spanner", "configure", "reset",
    "spf", "traced",
]
