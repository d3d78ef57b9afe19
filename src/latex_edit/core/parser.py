"""
Structural parser for LaTeX-aware text buffers.

Tokenizes plain text into commands, arguments and math spans. Parsing is
stateless: every call builds a fresh token tree that callers discard after
the query. Malformed input never raises; an unmatched opening brace,
bracket or math delimiter turns the rest of its enclosing scope into text.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .tokens import Token, TokenType


COMMAND_LETTERS = frozenset(string.ascii_letters)
SCRIPT_CHARACTERS = "^_"


@dataclass
class Expression:
    """A run of text ending at the cursor that can become a command argument."""

    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


class StructuralParser:
    """
    Single left-to-right scanner with recursive descent into argument groups
    and math spans.

    Commands (``\\name``) are recognised everywhere, followed greedily by any
    immediately adjacent ``{...}`` and ``[...]`` groups. Inside math, ``^``
    and ``_`` are script commands taking one braced group or one character.
    """

    def parse(self, text: str) -> List[Token]:
        """Parse ``text`` into its ordered top-level tokens."""
        return self._parse_scope(text, 0, len(text), in_math=False)

    def _parse_scope(self, text: str, start: int, end: int, in_math: bool) -> List[Token]:
        tokens: List[Token] = []
        run_start = start
        i = start

        while i < end:
            char = text[i]
            token: Optional[Token] = None
            complete = True

            if char == "\\":
                token, complete = self._parse_command(text, i, end, in_math)
            elif in_math and char in SCRIPT_CHARACTERS:
                token, complete = self._parse_script(text, i, end)
            elif not in_math and char == "$":
                token = self._parse_math(text, i, end)
                if token is None:
                    # Unterminated delimiter: the remainder is literal text
                    break

            if token is None:
                i += 1
                continue

            if token.start > run_start:
                tokens.append(Token(TokenType.TEXT, run_start, token.start))
            tokens.append(token)
            run_start = token.end
            i = token.end

            if not complete:
                break

        if end > run_start:
            tokens.append(Token(TokenType.TEXT, run_start, end))
        return tokens

    def _parse_command(
        self, text: str, start: int, end: int, in_math: bool
    ) -> Tuple[Optional[Token], bool]:
        """Parse ``\\name`` plus its argument groups, or a control symbol like ``\\$``."""
        j = start + 1
        while j < end and text[j] in COMMAND_LETTERS:
            j += 1

        if j == start + 1:
            if j >= end:
                # A lone backslash at the end of a scope is plain text
                return None, True
            return Token(TokenType.COMMAND, start, j + 1, name=text[j]), True

        command = Token(TokenType.COMMAND, start, j, name=text[start + 1:j])
        complete = self._parse_arguments(text, command, j, end, in_math, "{[")
        return command, complete

    def _parse_script(self, text: str, start: int, end: int) -> Tuple[Token, bool]:
        command = Token(TokenType.COMMAND, start, start + 1, name=text[start])
        j = start + 1

        if j < end and text[j] == "{":
            complete = self._parse_arguments(text, command, j, end, True, "{", limit=1)
            return command, complete

        if j < end and text[j] != "\\" and not text[j].isspace():
            command.children.append(Token(TokenType.GROUP, j, j + 1, braced=False))
            command.end = j + 1
        return command, True

    def _parse_arguments(
        self,
        text: str,
        command: Token,
        j: int,
        end: int,
        in_math: bool,
        openers: str,
        limit: Optional[int] = None,
    ) -> bool:
        """Attach argument groups to ``command``; False if a group is unmatched."""
        while j < end and text[j] in openers:
            if limit is not None and len(command.children) >= limit:
                break
            close = find_matching_bracket(text, j, end)
            if close is None:
                command.end = j
                return False
            kind = TokenType.GROUP if text[j] == "{" else TokenType.OPTIONAL_GROUP
            command.children.append(Token(
                kind,
                j + 1,
                close,
                children=self._parse_scope(text, j + 1, close, in_math),
            ))
            j = close + 1

        command.end = j
        return True

    def _parse_math(self, text: str, start: int, end: int) -> Optional[Token]:
        if start + 1 < end and text[start + 1] == "$":
            delimiter, kind = "$$", TokenType.MATH_DISPLAY
        else:
            delimiter, kind = "$", TokenType.MATH_INLINE

        content_start = start + len(delimiter)
        close = find_math_delimiter(text, content_start, end, delimiter)
        if close is None:
            return None

        return Token(
            kind,
            start,
            close + len(delimiter),
            children=self._parse_scope(text, content_start, close, in_math=True),
        )


def find_matching_bracket(text: str, open_index: int, end: Optional[int] = None) -> Optional[int]:
    """Index of the bracket closing ``text[open_index]``, skipping escapes."""
    if end is None:
        end = len(text)
    opener = text[open_index]
    closer = "}" if opener == "{" else "]"
    depth = 0
    i = open_index
    while i < end:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def find_math_delimiter(text: str, start: int, end: int, delimiter: str) -> Optional[int]:
    """Index of the next unescaped ``delimiter`` within ``[start, end)``."""
    i = start
    while i < end:
        if text[i] == "\\":
            i += 2
            continue
        if text.startswith(delimiter, i) and i + len(delimiter) <= end:
            return i
        i += 1
    return None


_default_parser = StructuralParser()


def parse_latex(text: str) -> List[Token]:
    """Parse ``text`` with the default parser."""
    return _default_parser.parse(text)


def iter_tokens(tokens: Iterable[Token]) -> Iterator[Token]:
    """Depth-first walk over a token sequence and all descendants."""
    for token in tokens:
        yield from token.walk()


def find_command_at_position(tokens: List[Token], position: int) -> Optional[Token]:
    """Most specific (shortest) command whose range contains ``position``."""
    matches = [
        token for token in iter_tokens(tokens)
        if token.type == TokenType.COMMAND and token.contains(position)
    ]
    if not matches:
        return None
    return min(matches, key=lambda token: token.end - token.start)


def find_command_ending_at(
    tokens: List[Token], position: int, named_only: bool = True
) -> Optional[Token]:
    """
    Outermost command ending exactly at ``position``, at any depth.

    With ``named_only`` the match is restricted to alphabetic commands, so
    control symbols and ``^``/``_`` scripts are never returned.
    """
    for token in iter_tokens(tokens):
        if token.type != TokenType.COMMAND or token.end != position:
            continue
        if named_only and not (token.name and token.name[0] in COMMAND_LETTERS):
            continue
        return token
    return None


def get_all_nested_commands(text: str) -> List[Token]:
    """Every command token in ``text``, in document order."""
    return [token for token in iter_tokens(parse_latex(text)) if token.type == TokenType.COMMAND]


def is_balanced(text: str) -> bool:
    """True if every unescaped brace in ``text`` is matched."""
    depth = 0
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False
        i += 1
    return depth == 0


def find_expression_before_cursor(
    text: str, position: int, scope_start: int = 0
) -> Optional[Expression]:
    """
    Find text ending at ``position`` that can be absorbed as an argument.

    Either a balanced parenthesized expression ending exactly at the cursor,
    or the contiguous non-whitespace run ending there. The search never
    crosses ``scope_start``. Returns None when the cursor follows whitespace
    or when the candidate would split a brace group.
    """
    i = position - 1
    if i < scope_start or text[i].isspace():
        return None

    if text[i] == ")":
        depth = 1
        i -= 1
        while i >= scope_start and depth > 0:
            if text[i] == ")":
                depth += 1
            elif text[i] == "(":
                depth -= 1
            i -= 1
        if depth == 0:
            candidate = Expression(text[i + 1:position], i + 1)
            if is_balanced(candidate.text):
                return candidate

    i = position - 1
    while i >= scope_start and not text[i].isspace():
        i -= 1
    start = i + 1
    if start >= position:
        return None

    candidate = Expression(text[start:position], start)
    if not is_balanced(candidate.text):
        return None
    return candidate


def normalize_adjacent_math_environments(text: str) -> str:
    """
    Insert a space between math spans that touch (``$a$$b$`` -> ``$a$ $b$``).

    Touching spans read as a ``$$`` display delimiter to most renderers.
    """
    if not text:
        return text

    math_tokens = [token for token in iter_tokens(parse_latex(text)) if token.is_math]
    ends = {token.end for token in math_tokens}
    insert_at = sorted({token.start for token in math_tokens if token.start in ends}, reverse=True)

    for offset in insert_at:
        text = text[:offset] + " " + text[offset:]
    return text


def debug_tokens(tokens: List[Token], source: str, indent: int = 0) -> List[str]:
    """Indented, one-line-per-token dump of a token tree."""
    lines = []
    for token in tokens:
        lines.append(f"{'  ' * indent}{token}: {token.text(source)!r}")
        if token.children:
            lines.extend(debug_tokens(token.children, source, indent + 1))
    return lines
