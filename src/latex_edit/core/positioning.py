"""
Position & context resolver.

Classifies cursor offsets against the structure produced by the parser and
validates or repairs caller-supplied offsets. ``PositionResolver`` is a
stateless service: it reparses on every call and keeps no cache, so it can
be shared freely or swapped for a stub in tests.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .parser import StructuralParser, find_command_at_position, iter_tokens
from .tokens import ContextKind, CursorPosition, PositionContext, Token, TokenType


logger = logging.getLogger(__name__)


def _splits_surrogate_pair(text: str, position: int) -> bool:
    """True if ``position`` falls between the halves of a UTF-16 surrogate pair."""
    if position <= 0 or position >= len(text):
        return False
    return "\ud800" <= text[position - 1] <= "\udbff" and "\udc00" <= text[position] <= "\udfff"


class PositionResolver:
    """Answers validity and context queries for ``(text, position)`` pairs."""

    def __init__(self, parser: Optional[StructuralParser] = None):
        self.parser = parser or StructuralParser()

    def parse(self, text: str) -> List[Token]:
        return self.parser.parse(text)

    @staticmethod
    def clamp(text: str, position: int) -> int:
        return max(0, min(len(text), position))

    # Validity

    def is_valid_position(self, text: str, position: int, tokens: Optional[List[Token]] = None) -> bool:
        """
        False iff ``position`` is out of range or strictly inside an atomic
        lexeme: a command name, the gap between a command and its arguments,
        the two characters of a ``$$`` delimiter, or a surrogate pair.
        """
        if position < 0 or position > len(text):
            return False
        if position == 0 or position == len(text):
            return True
        if _splits_surrogate_pair(text, position):
            return False

        if tokens is None:
            tokens = self.parse(text)

        for token in iter_tokens(tokens):
            if token.type == TokenType.COMMAND:
                if not token.start < position < token.end:
                    continue
                if position < token.name_end:
                    return False
                if not any(arg.contains(position) for arg in token.arguments):
                    return False
            elif token.type == TokenType.MATH_DISPLAY:
                if position in (token.start + 1, token.end - 1):
                    return False
        return True

    def next_valid_position(self, text: str, position: int) -> int:
        """Smallest valid offset strictly after ``position`` (or the end of text)."""
        tokens = self.parse(text)
        candidate = max(0, position + 1)
        while candidate < len(text):
            if self.is_valid_position(text, candidate, tokens):
                return candidate
            candidate += 1
        return len(text)

    def previous_valid_position(self, text: str, position: int) -> int:
        """Largest valid offset strictly before ``position`` (or 0)."""
        tokens = self.parse(text)
        candidate = min(len(text), position - 1)
        while candidate > 0:
            if self.is_valid_position(text, candidate, tokens):
                return candidate
            candidate -= 1
        return 0

    def nearest_valid_position(self, text: str, position: int) -> int:
        """Closest valid offset; ties resolve forwards."""
        position = self.clamp(text, position)
        if self.is_valid_position(text, position):
            return position
        forward = self.next_valid_position(text, position)
        backward = self.previous_valid_position(text, position)
        if position - backward < forward - position:
            return backward
        return forward

    def repair(self, text: str, position: int) -> int:
        """Clamp ``position`` into range and move it forward to a valid offset."""
        clamped = self.clamp(text, position)
        if self.is_valid_position(text, clamped):
            if clamped != position:
                logger.debug("Clamped position %d to %d", position, clamped)
            return clamped
        repaired = self.next_valid_position(text, clamped)
        logger.debug("Repaired invalid position %d to %d", position, repaired)
        return repaired

    # Context

    def position_info(self, text: str, position: int) -> PositionContext:
        """Classify ``position``: argument context, math state and enclosing argument."""
        is_valid = self.is_valid_position(text, position)
        position = self.clamp(text, position)
        tokens = self.parse(text)

        argument, command, math = self._descend(tokens, position)

        info = PositionContext(position=position, is_valid=is_valid)
        if math is not None:
            info.math = math
            info.in_math = math.inner_start < position < math.inner_end
            info.is_after_opening_math = position == math.inner_start
            info.is_before_closing_math = position == math.inner_end

        if argument is not None:
            info.token = argument
            info.command = command
            if argument.type == TokenType.OPTIONAL_GROUP:
                info.context = ContextKind.COMMAND_OPTIONAL_ARG
            else:
                info.context = ContextKind.COMMAND_ARG
        return info

    def get_cursor_context(self, text: str, position: int) -> PositionContext:
        """``position_info`` plus the nearest enclosing command, even outside arguments."""
        info = self.position_info(text, position)
        if info.command is None:
            info.command = find_command_at_position(self.parse(text), info.position)
        return info

    def _descend(
        self, tokens: List[Token], position: int
    ) -> Tuple[Optional[Token], Optional[Token], Optional[Token]]:
        """Innermost braced argument (with its command) and math span containing ``position``."""
        argument: Optional[Token] = None
        command: Optional[Token] = None
        math: Optional[Token] = None

        scope = tokens
        parent: Optional[Token] = None
        while True:
            for token in scope:
                if token.type == TokenType.COMMAND:
                    if token.start < position < token.end:
                        parent = token
                        scope = token.children
                        break
                elif token.is_argument:
                    if token.braced and token.contains(position):
                        argument, command = token, parent
                        scope = token.children
                        break
                elif token.is_math:
                    if token.inner_start <= position <= token.inner_end:
                        math = token
                        scope = token.children
                        break
            else:
                return argument, command, math

    def is_at_math_delimiter(self, text: str, position: int) -> bool:
        """True if ``position`` touches a real ``$``/``$$`` delimiter."""
        for token in iter_tokens(self.parse(text)):
            if not token.is_math:
                continue
            if token.start <= position <= token.inner_start or token.inner_end <= position <= token.end:
                return True
        return False

    # Navigation

    def find_tab_stops(self, text: str) -> List[int]:
        """All valid offsets, in order."""
        tokens = self.parse(text)
        return [i for i in range(len(text) + 1) if self.is_valid_position(text, i, tokens)]

    def find_next_tab_stop(self, text: str, index: int, forward: bool = True) -> Optional[int]:
        """
        Next (or previous) tab stop from ``index``, wrapping around the text.
        None when the only stop is ``index`` itself.
        """
        stops = self.find_tab_stops(text)
        if forward:
            candidates = [stop for stop in stops if stop > index] or stops
            stop = candidates[0]
        else:
            candidates = [stop for stop in stops if stop < index] or stops
            stop = candidates[-1]
        return None if stop == index else stop

    @staticmethod
    def calculate_cursor_position(text: str, index: int) -> CursorPosition:
        """Zero-based line and column for ``index``."""
        index = max(0, min(len(text), index))
        lines = text[:index].split("\n")
        return CursorPosition(index=index, line=len(lines) - 1, column=len(lines[-1]))


_default_resolver = PositionResolver()


def is_valid_position(text: str, position: int) -> bool:
    return _default_resolver.is_valid_position(text, position)


def next_valid_position(text: str, position: int) -> int:
    return _default_resolver.next_valid_position(text, position)


def previous_valid_position(text: str, position: int) -> int:
    return _default_resolver.previous_valid_position(text, position)


def nearest_valid_position(text: str, position: int) -> int:
    return _default_resolver.nearest_valid_position(text, position)


def position_info(text: str, position: int) -> PositionContext:
    return _default_resolver.position_info(text, position)


def get_cursor_context(text: str, position: int) -> PositionContext:
    return _default_resolver.get_cursor_context(text, position)


def is_at_math_delimiter(text: str, position: int) -> bool:
    return _default_resolver.is_at_math_delimiter(text, position)


def find_tab_stops(text: str) -> List[int]:
    return _default_resolver.find_tab_stops(text)


def find_next_tab_stop(text: str, index: int, forward: bool = True) -> Optional[int]:
    return _default_resolver.find_next_tab_stop(text, index, forward)


def calculate_cursor_position(text: str, index: int) -> CursorPosition:
    return PositionResolver.calculate_cursor_position(text, index)
