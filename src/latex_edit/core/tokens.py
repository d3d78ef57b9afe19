"""
Token and context types shared by the structural parser and the resolver.

All offsets are LEFT-BASED: offset 0 is before the first character and a
token range ``[start, end)`` covers ``text[start:end]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional


class TokenType(Enum):
    """Structural token types produced by the parser."""
    TEXT = "text"
    COMMAND = "command"
    MATH_INLINE = "math-inline"
    MATH_DISPLAY = "math-display"
    GROUP = "group"
    OPTIONAL_GROUP = "optional-group"


class ContextKind(Enum):
    """Classification of a cursor offset."""
    TEXT = "text"
    COMMAND_ARG = "command-args"
    COMMAND_OPTIONAL_ARG = "command-optional"


MATH_TYPES = (TokenType.MATH_INLINE, TokenType.MATH_DISPLAY)
ARGUMENT_TYPES = (TokenType.GROUP, TokenType.OPTIONAL_GROUP)


@dataclass
class Token:
    """
    A parsed structural unit.

    For ``GROUP``/``OPTIONAL_GROUP`` the range is the interior of the
    brackets (an empty argument has ``start == end``). For math tokens the
    range includes the delimiters. ``name`` is set on commands only.
    """

    type: TokenType
    start: int
    end: int
    name: Optional[str] = None
    children: List[Token] = field(default_factory=list)
    braced: bool = True

    @property
    def is_math(self) -> bool:
        return self.type in MATH_TYPES

    @property
    def is_argument(self) -> bool:
        return self.type in ARGUMENT_TYPES

    @property
    def delimiter(self) -> str:
        """The math delimiter (``$`` or ``$$``); empty for other tokens."""
        if self.type == TokenType.MATH_DISPLAY:
            return "$$"
        if self.type == TokenType.MATH_INLINE:
            return "$"
        return ""

    @property
    def inner_start(self) -> int:
        """Start of the content (after the opening delimiter for math)."""
        return self.start + len(self.delimiter)

    @property
    def inner_end(self) -> int:
        """End of the content (before the closing delimiter for math)."""
        return self.end - len(self.delimiter)

    @property
    def name_end(self) -> int:
        """Offset just past a command's name (backslash included)."""
        if self.type != TokenType.COMMAND or self.name is None:
            return self.start
        if self.name in ("^", "_"):
            return self.start + 1
        return self.start + 1 + len(self.name)

    @property
    def arguments(self) -> List[Token]:
        return [child for child in self.children if child.is_argument]

    def contains(self, position: int) -> bool:
        """Inclusive containment, so empty arguments still contain their offset."""
        return self.start <= position <= self.end

    def text(self, source: str) -> str:
        return source[self.start:self.end]

    def walk(self) -> Iterator[Token]:
        """Yield this token and all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __str__(self) -> str:
        label = f"{self.type.value}"
        if self.name is not None:
            label += f" \\{self.name}" if self.name not in ("^", "_") else f" {self.name}"
        return f"{label} [{self.start}, {self.end})"


@dataclass
class PositionContext:
    """
    Derived, per-call description of a cursor offset.

    ``in_math`` is true only strictly inside math content; offsets directly
    beside a delimiter are reported through ``is_after_opening_math`` and
    ``is_before_closing_math`` instead.
    """

    position: int
    context: ContextKind = ContextKind.TEXT
    in_math: bool = False
    is_after_opening_math: bool = False
    is_before_closing_math: bool = False
    is_valid: bool = True
    token: Optional[Token] = None
    command: Optional[Token] = None
    math: Optional[Token] = None

    @property
    def in_argument(self) -> bool:
        return self.context in (ContextKind.COMMAND_ARG, ContextKind.COMMAND_OPTIONAL_ARG)

    @property
    def adjacent_to_math_delimiter(self) -> bool:
        return self.is_after_opening_math or self.is_before_closing_math

    def requires_math_wrap(self, wrap_with_math: Optional[bool] = None) -> bool:
        """Whether a construct inserted here needs its own ``$...$``."""
        if wrap_with_math is False:
            return False
        return not (self.in_math or self.adjacent_to_math_delimiter)


@dataclass
class CursorPosition:
    """Offset plus its zero-based line and column."""

    index: int
    line: int
    column: int


@dataclass
class CursorState:
    """Comprehensive cursor state kept by the editor."""

    position: CursorPosition
    context: ContextKind
    in_math: bool
    selection_start: Optional[CursorPosition] = None
    selection_end: Optional[CursorPosition] = None
