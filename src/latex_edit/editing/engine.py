"""
Command insertion engine.

Every operation is a pure function of ``(text, position, options)`` that
returns an ``InsertionResult``; nothing here touches an editor. Two rules
apply throughout:

* math wrap: a construct gets its own ``$...$`` unless the cursor is in
  math, beside a math delimiter, or the caller disabled wrapping;
* argument scoping: inside a command argument the edit stays within that
  argument's range.

Positions are repaired to valid offsets before any other logic runs.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from ..core.parser import (
    Expression,
    find_command_ending_at,
    find_expression_before_cursor,
)
from ..core.positioning import PositionResolver
from ..core.tokens import PositionContext, Token
from .options import ArgumentTarget, InsertionOptions, InsertionRequest, InsertionResult


logger = logging.getLogger(__name__)

DEFAULT_COLOR = ("255", "0", "0")


def build_command_string(name: str, args: Sequence[str], min_args: int = 2) -> str:
    """``\\name{a}{b}``, padded with empty groups up to ``min_args``."""
    padded = list(args) + [""] * max(0, min_args - len(args))
    return "\\" + name + "".join("{" + arg + "}" for arg in padded)


def argument_offsets(command: str) -> List[int]:
    """Offsets of every top-level argument interior within ``command``."""
    offsets = []
    depth = 0
    i = 0
    while i < len(command):
        char = command[i]
        if char == "\\":
            i += 2
            continue
        if char == "{":
            depth += 1
            if depth == 1:
                offsets.append(i + 1)
        elif char == "}":
            depth -= 1
        i += 1
    return offsets


def cursor_for_argument(command: str, base: int, target: ArgumentTarget) -> int:
    """Absolute cursor offset for ``target`` in ``command`` inserted at ``base``."""
    offsets = argument_offsets(command)
    index = target.resolve(len(offsets))
    if index is None:
        return base + len(command)
    return base + offsets[index]


def build_matrix(rows: int, cols: int, environment: str = "pmatrix") -> str:
    """A matrix environment with ``rows`` x ``cols`` blank cells."""
    rows = max(1, int(rows))
    cols = max(1, int(cols))
    body = " \\\\\n".join(" & ".join([" "] * cols) for _ in range(rows))
    return f"\\begin{{{environment}}}\n{body}\n\\end{{{environment}}}"


class CommandInsertionEngine:
    """Synthesizes LaTeX constructs at a cursor and places the cursor in them."""

    def __init__(self, resolver: Optional[PositionResolver] = None):
        self.resolver = resolver or PositionResolver()

    # Shared steps

    def _prepare(self, text: str, position: int) -> Tuple[int, PositionContext]:
        position = self.resolver.repair(text, position)
        return position, self.resolver.get_cursor_context(text, position)

    def _scope_start(self, info: PositionContext) -> int:
        """Left boundary for text absorption: enclosing argument or math content."""
        start = 0
        if info.in_argument and info.token is not None:
            start = max(start, info.token.start)
        if info.math is not None:
            start = max(start, info.math.inner_start)
        return start

    def _splice(
        self, text: str, start: int, end: int, construct: str, wrap: bool
    ) -> Tuple[str, int]:
        """Replace ``[start, end)`` with ``construct``; returns new text and construct offset."""
        delimiter = "$" if wrap else ""
        new_text = text[:start] + delimiter + construct + delimiter + text[end:]
        return new_text, start + len(delimiter)

    def _expression_before(self, text: str, position: int, info: PositionContext) -> Optional[Expression]:
        expression = find_expression_before_cursor(text, position, self._scope_start(info))
        if expression is not None and "$" in expression.text:
            logger.debug("Skipping absorption of %r: contains a math delimiter", expression.text)
            return None
        return expression

    def _math_at_document_start(self, text: str, position: int) -> Optional[Token]:
        if position != 0:
            return None
        tokens = self.resolver.parse(text)
        if tokens and tokens[0].is_math and tokens[0].start == 0:
            return tokens[0]
        return None

    # Operations

    def apply(self, text: str, position: int, request: InsertionRequest) -> InsertionResult:
        """Run an ``InsertionRequest``, absorbing preceding text if it asks to."""
        if request.options.use_text_before_cursor:
            return self.insert_command_with_text_before_cursor(
                text, position, request.command_name, request.options
            )
        return self.insert_command(text, position, request.command_name, request.args, request.options)

    def insert_command(
        self,
        text: str,
        position: int,
        name: str,
        args: Optional[Sequence[str]] = None,
        options: Optional[InsertionOptions] = None,
    ) -> InsertionResult:
        """Insert ``\\name{args...}`` and put the cursor in the targeted argument."""
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)
        command = build_command_string(name, args or [])
        target = options.argument_target()

        math = self._math_at_document_start(text, position)
        if math is not None:
            logger.debug("Inserting \\%s at the start of the leading math span", name)
            new_text, base = self._splice(text, math.inner_start, math.inner_start, command, False)
            return InsertionResult(
                new_text=new_text,
                new_cursor_position=cursor_for_argument(command, base, target),
            )

        wrap = info.requires_math_wrap(options.wrap_with_math)
        logger.debug(
            "Inserting \\%s at %d (context=%s, wrap=%s)", name, position, info.context.value, wrap
        )
        new_text, base = self._splice(text, position, position, command, wrap)
        return InsertionResult(
            new_text=new_text,
            new_cursor_position=cursor_for_argument(command, base, target),
        )

    def insert_command_with_text_before_cursor(
        self,
        text: str,
        position: int,
        name: str,
        options: Optional[InsertionOptions] = None,
    ) -> InsertionResult:
        """
        Insert ``\\name`` using the expression before the cursor as its first
        argument, falling back to a plain insertion when nothing is absorbable.
        """
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)

        if info.is_after_opening_math:
            logger.debug("Cursor follows an opening delimiter; plain insertion of \\%s", name)
            return self.insert_command(text, position, name, [], options.merged(wrap_with_math=False))

        expression = self._expression_before(text, position, info)
        if expression is None:
            return self.insert_command(text, position, name, [], options)

        logger.debug("Absorbing %r into \\%s", expression.text, name)
        return self.insert_command_with_wrapper(
            text, expression.start, position, name, expression.text, options
        )

    def insert_command_with_wrapper(
        self,
        text: str,
        start: int,
        end: int,
        name: str,
        text_to_wrap: str,
        options: Optional[InsertionOptions] = None,
    ) -> InsertionResult:
        """Replace ``[start, end)`` with ``\\name{text_to_wrap}{}``; cursor defaults to the second argument."""
        options = options or InsertionOptions()
        low, high = sorted((self.resolver.clamp(text, start), self.resolver.clamp(text, end)))
        start, end = sorted((self.resolver.repair(text, low), self.resolver.repair(text, high)))
        if (start, end) != (low, high):
            logger.debug("Repaired wrap range [%d, %d) to [%d, %d)", low, high, start, end)
            if text_to_wrap == text[low:high]:
                text_to_wrap = text[start:end]
        info = self.resolver.get_cursor_context(text, start)

        if info.in_argument and info.token is not None and end > info.token.end:
            logger.debug("Wrap range [%d, %d) leaves its argument; plain insertion instead", start, end)
            return self.insert_command(text, start, name, [], options)

        command = build_command_string(name, [text_to_wrap])
        wrap = info.requires_math_wrap(options.wrap_with_math)
        new_text, base = self._splice(text, start, end, command, wrap)
        target = options.argument_target(default=ArgumentTarget.at(1))
        return InsertionResult(
            new_text=new_text,
            new_cursor_position=cursor_for_argument(command, base, target),
        )

    def insert_fraction(
        self, text: str, position: int, options: Optional[InsertionOptions] = None
    ) -> InsertionResult:
        """
        Insert ``\\frac``. A complete command ending at the cursor becomes the
        numerator with the cursor in the denominator; otherwise the usual
        expression absorption applies.
        """
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)

        command = find_command_ending_at(self.resolver.parse(text), position)
        if command is not None and command.start >= self._scope_start(info):
            logger.debug("Using \\%s as the numerator", command.name)
            return self.insert_command_with_wrapper(
                text, command.start, position, "frac", text[command.start:position], options
            )

        return self.insert_command_with_text_before_cursor(text, position, "frac", options)

    def insert_sqrt(
        self,
        text: str,
        position: int,
        options: Optional[InsertionOptions] = None,
        index: Optional[str] = None,
    ) -> InsertionResult:
        """
        Insert ``\\sqrt{}`` (or ``\\sqrt[index]{}``). Absorbed text becomes the
        radicand and the cursor trails the construct; otherwise the cursor
        lands inside the empty radicand. An explicit ``cursor_argument_index``
        or ``position_in_first_arg`` places the cursor in that argument instead.
        """
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)
        head = "\\sqrt" + (f"[{index}]" if index else "")
        explicit = options.cursor_argument_index is not None or options.position_in_first_arg is not None

        expression = None if info.is_after_opening_math else self._expression_before(text, position, info)
        if expression is not None:
            construct = head + "{" + expression.text + "}"
            start_info = self.resolver.get_cursor_context(text, expression.start)
            wrap = start_info.requires_math_wrap(options.wrap_with_math)
            new_text, base = self._splice(text, expression.start, position, construct, wrap)
            cursor = base + len(construct)
        else:
            construct = head + "{}"
            wrap = info.requires_math_wrap(options.wrap_with_math)
            new_text, base = self._splice(text, position, position, construct, wrap)
            cursor = base + len(construct) - 1

        if explicit:
            cursor = cursor_for_argument(construct, base, options.argument_target())
        return InsertionResult(new_text=new_text, new_cursor_position=cursor)

    def _insert_script(
        self, text: str, position: int, marker: str, options: Optional[InsertionOptions]
    ) -> InsertionResult:
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)
        script = marker + "{}"

        expression = self._expression_before(text, position, info)
        if expression is not None:
            start_info = self.resolver.get_cursor_context(text, expression.start)
            wrap = start_info.requires_math_wrap(options.wrap_with_math)
            new_text, base = self._splice(text, expression.start, position, expression.text + script, wrap)
            return InsertionResult(
                new_text=new_text,
                new_cursor_position=base + len(expression.text) + 2,
            )

        wrap = info.requires_math_wrap(options.wrap_with_math)
        new_text, base = self._splice(text, position, position, script, wrap)
        return InsertionResult(new_text=new_text, new_cursor_position=base + 2)

    def insert_subscript(
        self, text: str, position: int, options: Optional[InsertionOptions] = None
    ) -> InsertionResult:
        """Append ``_{}`` to the expression before the cursor."""
        return self._insert_script(text, position, "_", options)

    def insert_superscript(
        self, text: str, position: int, options: Optional[InsertionOptions] = None
    ) -> InsertionResult:
        """Append ``^{}`` to the expression before the cursor."""
        return self._insert_script(text, position, "^", options)

    def insert_matrix(
        self,
        text: str,
        position: int,
        rows: int = 2,
        cols: int = 2,
        options: Optional[InsertionOptions] = None,
    ) -> InsertionResult:
        """Insert a ``pmatrix``; the cursor lands just after the first newline."""
        options = options or InsertionOptions()
        position, info = self._prepare(text, position)
        matrix = build_matrix(rows, cols)

        wrap = info.requires_math_wrap(options.wrap_with_math)
        new_text, base = self._splice(text, position, position, matrix, wrap)
        return InsertionResult(new_text=new_text, new_cursor_position=base + matrix.index("\n") + 1)

    def insert_color(
        self,
        text: str,
        position: int,
        options: Optional[InsertionOptions] = None,
        color: Sequence[str] = DEFAULT_COLOR,
        content: str = "",
    ) -> InsertionResult:
        """Insert ``\\color{r}{g}{b}{content}``; the cursor defaults to the content."""
        options = (options or InsertionOptions()).with_defaults(cursor_argument_index=3)
        args = [str(component) for component in color] + [content]
        return self.insert_command(text, position, "color", args, options)
