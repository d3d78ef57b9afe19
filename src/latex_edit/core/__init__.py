"""
Structural parsing and cursor positioning.
"""

from .tokens import Token, TokenType, ContextKind, PositionContext, CursorPosition, CursorState
from .parser import StructuralParser, parse_latex, iter_tokens
from .positioning import PositionResolver

__all__ = [
    "Token",
    "TokenType",
    "ContextKind",
    "PositionContext",
    "CursorPosition",
    "CursorState",
    "StructuralParser",
    "parse_latex",
    "iter_tokens",
    "PositionResolver",
]
