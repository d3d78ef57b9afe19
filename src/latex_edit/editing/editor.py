"""
Reference editor collaborator.

``LatexEditor`` owns the authoritative ``(content, selection)`` pair. It
repairs every incoming offset, optionally separates touching math spans,
keeps a bounded undo/redo history and notifies listeners on change.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..config import LatexEditConfig, load_config
from ..core.parser import normalize_adjacent_math_environments
from ..core.positioning import PositionResolver
from ..core.tokens import CursorState


logger = logging.getLogger(__name__)

ContentListener = Callable[[str], None]
CursorListener = Callable[[int, int], None]


@dataclass
class HistoryEntry:
    content: str
    selection_start: int
    selection_end: int


@dataclass
class EditorState:
    """Snapshot returned by ``LatexEditor.get_state``."""

    content: str
    selection_start: int
    selection_end: int
    cursor: CursorState
    can_undo: bool = False
    can_redo: bool = False


def adjust_cursor_after_transformation(original: str, transformed: str, position: int) -> int:
    """Map an offset in ``original`` onto ``transformed`` using a character diff."""
    if original == transformed:
        return position

    opcodes = difflib.SequenceMatcher(None, original, transformed, autojunk=False).get_opcodes()
    for tag, i1, i2, j1, j2 in opcodes:
        if tag == "equal" and i1 <= position <= i2:
            return j1 + (position - i1)
    for tag, i1, i2, j1, j2 in opcodes:
        if i1 <= position <= i2:
            return j2 if position == i2 else j1
    return len(transformed)


class LatexEditor:
    """In-memory editor satisfying the ``get_state``/``set_content``/``set_cursor`` contract."""

    def __init__(
        self,
        content: str = "",
        history_limit: int = 50,
        normalize_adjacent_math: bool = True,
        resolver: Optional[PositionResolver] = None,
        on_content_change: Optional[ContentListener] = None,
        on_cursor_change: Optional[CursorListener] = None,
    ):
        self.resolver = resolver or PositionResolver()
        self.history_limit = max(1, history_limit)
        self.normalize_adjacent_math = normalize_adjacent_math
        self.on_content_change = on_content_change
        self.on_cursor_change = on_cursor_change

        self._content = self._normalize(content)
        self._selection: Tuple[int, int] = (len(self._content), len(self._content))
        self._past: List[HistoryEntry] = []
        self._future: List[HistoryEntry] = []

    @classmethod
    def from_config(cls, content: str = "", config: Optional[LatexEditConfig] = None, **kwargs) -> "LatexEditor":
        """Build an editor using the ``editor`` section of the loaded configuration."""
        config = config or load_config()
        return cls(
            content,
            history_limit=config.editor.history_limit,
            normalize_adjacent_math=config.editor.normalize_adjacent_math,
            **kwargs,
        )

    # Collaborator contract

    def get_state(self) -> EditorState:
        start, end = self._selection
        return EditorState(
            content=self._content,
            selection_start=start,
            selection_end=end,
            cursor=self.get_cursor_state(),
            can_undo=bool(self._past),
            can_redo=bool(self._future),
        )

    def set_content(self, content: str, selection_start: Optional[int] = None, selection_end: Optional[int] = None) -> None:
        """Replace the content, recording the previous state for undo."""
        if selection_start is None:
            selection_start = len(content)
        if selection_end is None:
            selection_end = selection_start

        normalized = self._normalize(content)
        if normalized != content:
            logger.debug("Separated adjacent math spans")
            selection_start = adjust_cursor_after_transformation(content, normalized, selection_start)
            selection_end = adjust_cursor_after_transformation(content, normalized, selection_end)

        if normalized == self._content:
            self.set_cursor(selection_start, selection_end)
            return

        self._push_history()
        self._content = normalized
        self._selection = self._repair_selection(selection_start, selection_end)
        self._notify_content()
        self._notify_cursor()

    def set_cursor(self, selection_start: int, selection_end: Optional[int] = None) -> None:
        if selection_end is None:
            selection_end = selection_start
        selection = self._repair_selection(selection_start, selection_end)
        if selection != self._selection:
            self._selection = selection
            self._notify_cursor()

    # Convenience accessors

    @property
    def content(self) -> str:
        return self._content

    @property
    def selection(self) -> Tuple[int, int]:
        return self._selection

    def get_cursor_state(self) -> CursorState:
        start, end = self._selection
        info = self.resolver.position_info(self._content, start)
        state = CursorState(
            position=self.resolver.calculate_cursor_position(self._content, start),
            context=info.context,
            in_math=info.in_math,
        )
        if start != end:
            state.selection_start = self.resolver.calculate_cursor_position(self._content, start)
            state.selection_end = self.resolver.calculate_cursor_position(self._content, end)
        return state

    def insert_text(self, text: str) -> int:
        """Replace the selection with ``text``; returns the new cursor."""
        start, end = self._selection
        self.set_content(self._content[:start] + text + self._content[end:], start + len(text))
        return self._selection[0]

    # History

    def undo(self) -> bool:
        if not self._past:
            return False
        self._future.append(self._snapshot())
        self._restore(self._past.pop())
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(self._snapshot())
        self._restore(self._future.pop())
        return True

    def _snapshot(self) -> HistoryEntry:
        return HistoryEntry(self._content, *self._selection)

    def _push_history(self) -> None:
        self._past.append(self._snapshot())
        if len(self._past) > self.history_limit:
            del self._past[0]
        self._future.clear()

    def _restore(self, entry: HistoryEntry) -> None:
        self._content = entry.content
        self._selection = self._repair_selection(entry.selection_start, entry.selection_end)
        self._notify_content()
        self._notify_cursor()

    # Internals

    def _normalize(self, content: str) -> str:
        if self.normalize_adjacent_math:
            return normalize_adjacent_math_environments(content)
        return content

    def _repair_selection(self, start: int, end: int) -> Tuple[int, int]:
        start = self.resolver.repair(self._content, start)
        end = self.resolver.repair(self._content, end)
        return (start, end) if start <= end else (end, start)

    def _notify_content(self) -> None:
        if self.on_content_change:
            self.on_content_change(self._content)

    def _notify_cursor(self) -> None:
        if self.on_cursor_change:
            self.on_cursor_change(*self._selection)
