"""
Markdown+LaTeX to HTML rendering.
"""

from .markdown import CommandKind, render_latex_expression, render_latex_markdown

__all__ = ["CommandKind", "render_latex_expression", "render_latex_markdown"]
