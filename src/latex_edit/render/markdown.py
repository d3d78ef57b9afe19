"""
Markdown + LaTeX to HTML renderer.

Two passes: a line-based block tokenizer (headings, list items, paragraphs,
blank-line breaks), then inline expansion where math spans are rendered by a
recursive expression walker and the remaining text gets the usual Markdown
bold/italic/code/link substitutions. Output is a plain HTML fragment.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..core.parser import COMMAND_LETTERS, find_math_delimiter


logger = logging.getLogger(__name__)


SYMBOLS: Dict[str, str] = {
    # Greek letters
    "alpha": "α", "beta": "β", "gamma": "γ", "delta": "δ", "epsilon": "ε",
    "zeta": "ζ", "eta": "η", "theta": "θ", "iota": "ι", "kappa": "κ",
    "lambda": "λ", "mu": "μ", "nu": "ν", "xi": "ξ", "pi": "π", "rho": "ρ",
    "sigma": "σ", "tau": "τ", "upsilon": "υ", "phi": "φ", "chi": "χ",
    "psi": "ψ", "omega": "ω",
    "Gamma": "Γ", "Delta": "Δ", "Theta": "Θ", "Lambda": "Λ", "Xi": "Ξ",
    "Pi": "Π", "Sigma": "Σ", "Phi": "Φ", "Psi": "Ψ", "Omega": "Ω",
    # Operators and relations
    "times": "×", "div": "÷", "cdot": "·", "pm": "±", "mp": "∓",
    "leq": "≤", "geq": "≥", "neq": "≠", "approx": "≈", "equiv": "≡",
    "propto": "∝", "sim": "∼", "infty": "∞", "in": "∈", "notin": "∉",
    "subset": "⊂", "supset": "⊃", "emptyset": "∅", "partial": "∂",
    "nabla": "∇", "therefore": "∴", "forall": "∀", "exists": "∃",
    # Functions
    "sin": "sin", "cos": "cos", "tan": "tan", "ln": "ln", "log": "log",
    "exp": "exp", "lim": "lim", "sum": "∑", "prod": "∏", "int": "∫",
}

OPERATORS: Dict[str, str] = {"sum": "∑", "prod": "∏", "int": "∫"}


class CommandKind(Enum):
    """Closed set of command renderers."""
    FRACTION = "fraction"
    SQRT = "sqrt"
    OPERATOR = "operator"
    LIMIT = "limit"
    SYMBOL = "symbol"
    UNKNOWN = "unknown"


def classify_command(name: str) -> CommandKind:
    if name == "frac":
        return CommandKind.FRACTION
    if name == "sqrt":
        return CommandKind.SQRT
    if name in OPERATORS:
        return CommandKind.OPERATOR
    if name == "lim":
        return CommandKind.LIMIT
    if name in SYMBOLS:
        return CommandKind.SYMBOL
    return CommandKind.UNKNOWN


def _extract_group(expr: str, start: int, opener: str, closer: str) -> Tuple[str, int]:
    """Content of the group opening at ``start`` and the index after it.

    An unclosed group runs to the end of the expression.
    """
    depth = 1
    i = start + 1
    while i < len(expr):
        if expr[i] == opener:
            depth += 1
        elif expr[i] == closer:
            depth -= 1
            if depth == 0:
                return expr[start + 1:i], i + 1
        i += 1
    return expr[start + 1:], len(expr)


class LatexExpressionRenderer:
    """Recursive-descent walker turning a math expression into HTML spans."""

    def __init__(self, escape_html: bool = False):
        self.escape_html = escape_html

    def _text(self, value: str) -> str:
        return html.escape(value, quote=False) if self.escape_html else value

    def render(self, expr: str) -> str:
        if not expr:
            return ""

        parts = ['<span class="latex-expression">']
        i = 0
        while i < len(expr):
            char = expr[i]
            if char == "\\":
                fragment, i = self._render_command(expr, i)
                parts.append(fragment)
            elif char in "^_":
                fragment, i = self._render_script(expr, i)
                parts.append(fragment)
            else:
                parts.append(self._text(char))
                i += 1
        parts.append("</span>")
        return "".join(parts)

    def _render_command(self, expr: str, start: int) -> Tuple[str, int]:
        i = start + 1
        while i < len(expr) and expr[i] in COMMAND_LETTERS:
            i += 1
        name = expr[start + 1:i]
        if not name:
            # Control symbol such as \{ or \,
            symbol = expr[start:start + 2]
            return self._text(symbol), start + len(symbol)

        optional: Optional[str] = None
        if i < len(expr) and expr[i] == "[":
            optional, i = _extract_group(expr, i, "[", "]")

        args: List[str] = []
        while i < len(expr) and expr[i] == "{":
            arg, i = _extract_group(expr, i, "{", "}")
            args.append(arg)

        kind = classify_command(name)
        return self.RENDERERS[kind](self, name, args, optional), i

    def _render_script(self, expr: str, start: int) -> Tuple[str, int]:
        marker = expr[start]
        i = start + 1
        if i >= len(expr):
            return self._text(marker), i
        if expr[i] == "{":
            content, i = _extract_group(expr, i, "{", "}")
        else:
            content, i = expr[i], i + 1

        tag, css = ("sup", "latex-superscript") if marker == "^" else ("sub", "latex-subscript")
        return f'<{tag} class="{css}">{self.render(content)}</{tag}>', i

    def _raw(self, name: str, args: List[str], optional: Optional[str]) -> str:
        source = "\\" + name
        if optional is not None:
            source += "[" + optional + "]"
        source += "".join("{" + arg + "}" for arg in args)
        return self._text(source)

    def _render_fraction(self, name: str, args: List[str], optional: Optional[str]) -> str:
        if len(args) < 2:
            return self._raw(name, args, optional)
        return (
            '<span class="latex-frac">'
            f'<span class="latex-frac-num">{self.render(args[0])}</span>'
            '<span class="latex-frac-line"></span>'
            f'<span class="latex-frac-denom">{self.render(args[1])}</span>'
            "</span>"
        )

    def _render_sqrt(self, name: str, args: List[str], optional: Optional[str]) -> str:
        if not args:
            return self._raw(name, args, optional)
        content = (
            '<span class="latex-sqrt-symbol">√</span>'
            f'<span class="latex-sqrt-content">{self.render(args[0])}</span>'
        )
        if optional:
            return (
                '<span class="latex-root">'
                f'<sup class="latex-root-index">{self.render(optional)}</sup>'
                f"{content}</span>"
            )
        return f'<span class="latex-sqrt">{content}</span>'

    def _render_operator(self, name: str, args: List[str], optional: Optional[str]) -> str:
        parts = ['<span class="latex-operator">']
        if len(args) >= 2 and args[1]:
            parts.append(f'<span class="latex-upper-limit">{self.render(args[1])}</span>')
        parts.append(f'<span class="latex-operator-symbol">{OPERATORS[name]}</span>')
        if args:
            parts.append(f'<span class="latex-lower-limit">{self.render(args[0])}</span>')
        parts.append("</span>")
        return "".join(parts)

    def _render_limit(self, name: str, args: List[str], optional: Optional[str]) -> str:
        if not args:
            return "lim"
        return (
            '<span class="latex-limit">lim'
            f'<span class="latex-lower-limit">{self.render(args[0])}</span>'
            "</span>"
        )

    def _render_symbol(self, name: str, args: List[str], optional: Optional[str]) -> str:
        symbol = f'<span class="latex-symbol">{SYMBOLS[name]}</span>'
        # Symbols take no arguments; any groups that follow are rendered as content
        return symbol + "".join(self.render(arg) for arg in args)

    def _render_unknown(self, name: str, args: List[str], optional: Optional[str]) -> str:
        logger.debug("No renderer for \\%s, emitting it verbatim", name)
        return self._raw(name, args, optional)

    RENDERERS: Dict[CommandKind, Callable[..., str]] = {
        CommandKind.FRACTION: _render_fraction,
        CommandKind.SQRT: _render_sqrt,
        CommandKind.OPERATOR: _render_operator,
        CommandKind.LIMIT: _render_limit,
        CommandKind.SYMBOL: _render_symbol,
        CommandKind.UNKNOWN: _render_unknown,
    }


class BlockKind(Enum):
    HEADING = "heading"
    LIST_ITEM = "list-item"
    ORDERED_LIST_ITEM = "ordered-list-item"
    PARAGRAPH = "paragraph"
    LINE_BREAK = "line-break"


@dataclass
class BlockToken:
    kind: BlockKind
    content: str = ""
    level: int = 0


HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
UNORDERED_ITEM_PATTERN = re.compile(r"^\s*-\s+(.+)$")
ORDERED_ITEM_PATTERN = re.compile(r"^\s*\d+\.\s+(.+)$")

INLINE_SUBSTITUTIONS = [
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"_(.+?)_"), r"<em>\1</em>"),
    (re.compile(r"`(.+?)`"), r"<code>\1</code>"),
    (re.compile(r"\[(.+?)\]\((.+?)\)"), r'<a href="\2">\1</a>'),
]

PLACEHOLDER_PATTERN = re.compile("\x00(\\d+)\x00")


def tokenize_blocks(content: str) -> List[BlockToken]:
    """Split a document into block tokens, one per non-blank line."""
    tokens: List[BlockToken] = []
    lines = content.split("\n")

    for index, line in enumerate(lines):
        if not line.strip():
            if index < len(lines) - 1 and lines[index + 1].strip():
                tokens.append(BlockToken(BlockKind.LINE_BREAK))
            continue

        match = HEADING_PATTERN.match(line)
        if match:
            tokens.append(BlockToken(BlockKind.HEADING, match.group(2), len(match.group(1))))
            continue

        match = UNORDERED_ITEM_PATTERN.match(line)
        if match:
            tokens.append(BlockToken(BlockKind.LIST_ITEM, match.group(1)))
            continue

        match = ORDERED_ITEM_PATTERN.match(line)
        if match:
            tokens.append(BlockToken(BlockKind.ORDERED_LIST_ITEM, match.group(1)))
            continue

        tokens.append(BlockToken(BlockKind.PARAGRAPH, line))

    return tokens


def split_math_segments(line: str) -> List[Tuple[str, str]]:
    """
    Split a line into ``(kind, content)`` segments where kind is ``"text"``,
    ``"math-inline"`` or ``"math-display"``. Delimiters follow the editor's
    rules: ``\\$`` never delimits and an unclosed span stays literal.
    """
    segments: List[Tuple[str, str]] = []
    text_start = 0
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            i += 2
            continue
        if char != "$":
            i += 1
            continue

        delimiter = "$$" if line.startswith("$$", i) else "$"
        close = find_math_delimiter(line, i + len(delimiter), len(line), delimiter)
        if close is None:
            break

        if i > text_start:
            segments.append(("text", line[text_start:i]))
        kind = "math-display" if delimiter == "$$" else "math-inline"
        segments.append((kind, line[i + len(delimiter):close]))
        i = text_start = close + len(delimiter)

    if text_start < len(line):
        segments.append(("text", line[text_start:]))
    return segments


class MarkdownLatexRenderer:
    """Renders whole documents; holds only the escaping choice."""

    def __init__(self, escape_html: bool = False):
        self.escape_html = escape_html
        self.expressions = LatexExpressionRenderer(escape_html=escape_html)

    def render(self, content: str) -> str:
        parts: List[str] = []
        tokens = tokenize_blocks(content)
        open_list: Optional[BlockKind] = None

        for token in tokens:
            if token.kind in (BlockKind.LIST_ITEM, BlockKind.ORDERED_LIST_ITEM):
                if open_list != token.kind:
                    if open_list is not None:
                        parts.append(self._close_list(open_list))
                    parts.append("<ul>" if token.kind == BlockKind.LIST_ITEM else "<ol>")
                    open_list = token.kind
                parts.append(f"<li>{self.render_inline(token.content)}</li>")
                continue

            if open_list is not None:
                parts.append(self._close_list(open_list))
                open_list = None

            if token.kind == BlockKind.HEADING:
                parts.append(f"<h{token.level}>{self.render_inline(token.content)}</h{token.level}>")
            elif token.kind == BlockKind.LINE_BREAK:
                parts.append("<br>")
            else:
                parts.append(f"<p>{self.render_inline(token.content)}</p>")

        if open_list is not None:
            parts.append(self._close_list(open_list))
        return "".join(parts)

    @staticmethod
    def _close_list(kind: BlockKind) -> str:
        return "</ul>" if kind == BlockKind.LIST_ITEM else "</ol>"

    def render_inline(self, text: str) -> str:
        """Render math spans, then apply Markdown substitutions to the rest."""
        rendered_math: List[str] = []
        buffer: List[str] = []

        for kind, segment in split_math_segments(text):
            if kind == "text":
                buffer.append(html.escape(segment) if self.escape_html else segment)
                continue
            tag = "div" if kind == "math-display" else "span"
            rendered_math.append(f'<{tag} class="{kind}">{self.expressions.render(segment)}</{tag}>')
            buffer.append(f"\x00{len(rendered_math) - 1}\x00")

        result = "".join(buffer)
        for pattern, replacement in INLINE_SUBSTITUTIONS:
            result = pattern.sub(replacement, result)
        return PLACEHOLDER_PATTERN.sub(lambda match: rendered_math[int(match.group(1))], result)


def render_latex_expression(expr: str, escape_html: bool = False) -> str:
    """Render a single math expression (without delimiters) to HTML."""
    return LatexExpressionRenderer(escape_html=escape_html).render(expr)


def render_latex_markdown(content: str, escape_html: bool = False) -> str:
    """Render a Markdown+LaTeX document to an HTML fragment."""
    return MarkdownLatexRenderer(escape_html=escape_html).render(content)
