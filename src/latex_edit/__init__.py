"""
latex-edit: LaTeX-aware structural text engine.

Parses LaTeX structure inside plain text, classifies cursor positions,
inserts LaTeX constructs with useful cursor placement and renders
Markdown+LaTeX to HTML.
"""

from .core.parser import parse_latex
from .core.positioning import PositionResolver, get_cursor_context, position_info
from .editing.engine import CommandInsertionEngine
from .editing.options import InsertionOptions, InsertionRequest, InsertionResult
from .render.markdown import render_latex_markdown

__version__ = "0.1.0"

__all__ = [
    "parse_latex",
    "PositionResolver",
    "get_cursor_context",
    "position_info",
    "CommandInsertionEngine",
    "InsertionOptions",
    "InsertionRequest",
    "InsertionResult",
    "render_latex_markdown",
]
