"""
Command manager: runs engine operations against an editor collaborator.

The editor only needs ``get_state()`` (returning an object with ``content``
and ``selection_start``), ``set_content(text, start, end)`` and
``set_cursor(start, end)``. Every public operation applies the engine's
result atomically and returns the resulting cursor offset.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

from .engine import DEFAULT_COLOR, CommandInsertionEngine
from .options import InsertionOptions, InsertionRequest, InsertionResult


logger = logging.getLogger(__name__)

OptionsLike = Union[InsertionOptions, Dict[str, Any], None]


def coerce_options(options: OptionsLike) -> InsertionOptions:
    """Accept options as a model or a plain dict (validated by pydantic)."""
    if options is None:
        return InsertionOptions()
    if isinstance(options, InsertionOptions):
        return options
    return InsertionOptions.model_validate(options)


class CommandManager:
    """Applies insertions to an editor and reports where the cursor went."""

    def __init__(self, editor: Any, engine: Optional[CommandInsertionEngine] = None):
        self.editor = editor
        self.engine = engine or CommandInsertionEngine()

    def _content(self) -> str:
        return self.editor.get_state().content

    def _apply(self, result: InsertionResult) -> int:
        cursor = result.new_cursor_position
        logger.debug("Applying insertion, cursor -> %d", cursor)
        self.editor.set_content(result.new_text, cursor, cursor)
        # The editor may shift the cursor while normalizing the content
        return self.editor.get_state().selection_start

    def insert(self, request: InsertionRequest, position: int) -> int:
        return self._apply(self.engine.apply(self._content(), position, request))

    def insert_command(
        self,
        name: str,
        position: int,
        args: Optional[Sequence[str]] = None,
        options: OptionsLike = None,
    ) -> int:
        return self._apply(self.engine.insert_command(
            self._content(), position, name, args, coerce_options(options)
        ))

    def insert_command_with_text_before_cursor(self, name: str, position: int, options: OptionsLike = None) -> int:
        return self._apply(self.engine.insert_command_with_text_before_cursor(
            self._content(), position, name, coerce_options(options)
        ))

    def insert_command_with_wrapper(
        self, name: str, start: int, end: int, text_to_wrap: str, options: OptionsLike = None
    ) -> int:
        return self._apply(self.engine.insert_command_with_wrapper(
            self._content(), start, end, name, text_to_wrap, coerce_options(options)
        ))

    def wrap_selection(self, name: str, options: OptionsLike = None) -> int:
        """Wrap the editor's current selection in ``\\name{...}{}``."""
        state = self.editor.get_state()
        start, end = state.selection_start, state.selection_end
        return self.insert_command_with_wrapper(name, start, end, state.content[start:end], options)

    def insert_fraction(self, position: int, options: OptionsLike = None) -> int:
        return self._apply(self.engine.insert_fraction(self._content(), position, coerce_options(options)))

    def insert_sqrt(self, position: int, options: OptionsLike = None, index: Optional[str] = None) -> int:
        return self._apply(self.engine.insert_sqrt(self._content(), position, coerce_options(options), index))

    def insert_subscript(self, position: int, options: OptionsLike = None) -> int:
        return self._apply(self.engine.insert_subscript(self._content(), position, coerce_options(options)))

    def insert_superscript(self, position: int, options: OptionsLike = None) -> int:
        return self._apply(self.engine.insert_superscript(self._content(), position, coerce_options(options)))

    def insert_matrix(self, position: int, rows: int = 2, cols: int = 2, options: OptionsLike = None) -> int:
        return self._apply(self.engine.insert_matrix(
            self._content(), position, rows, cols, coerce_options(options)
        ))

    def insert_color(
        self,
        position: int,
        options: OptionsLike = None,
        color: Sequence[str] = DEFAULT_COLOR,
        content: str = "",
    ) -> int:
        return self._apply(self.engine.insert_color(
            self._content(), position, coerce_options(options), color, content
        ))
