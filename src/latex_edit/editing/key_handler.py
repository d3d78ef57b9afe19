"""
Keyboard shortcuts mapped onto insertion operations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .editor import LatexEditor
from .manager import CommandManager


logger = logging.getLogger(__name__)

AUTO_PAIRS = {"(": ")", "[": "]", "{": "}"}


@dataclass
class KeyEvent:
    """A key press as delivered by the host UI."""

    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    selection_start: Optional[int] = None
    selection_end: Optional[int] = None

    @property
    def command(self) -> bool:
        """Ctrl on most platforms, Cmd on macOS."""
        return self.ctrl or self.meta


class KeyHandler:
    """Interprets key events against a ``LatexEditor``.

    ``handle_key_down`` returns True when the event was consumed and the host
    should suppress its default behaviour.
    """

    def __init__(self, editor: LatexEditor, manager: Optional[CommandManager] = None):
        self.editor = editor
        self.manager = manager or CommandManager(editor)
        self.resolver = self.manager.engine.resolver

    def handle_key_down(self, event: KeyEvent) -> bool:
        state = self.editor.get_state()
        value = state.content
        if event.selection_start is None:
            start, end = state.selection_start, state.selection_end
        else:
            start = event.selection_start
            end = start if event.selection_end is None else event.selection_end

        if event.key in AUTO_PAIRS and not event.command:
            new_content = value[:start] + event.key + AUTO_PAIRS[event.key] + value[end:]
            self.editor.set_content(new_content, start + 1, start + 1)
            return True

        if event.key == "Tab":
            stop = self.resolver.find_next_tab_stop(value, start, forward=not event.shift)
            if stop is not None:
                self.editor.set_cursor(stop, stop)
                return True
            new_content = value[:start] + "  " + value[end:]
            self.editor.set_content(new_content, start + 2, start + 2)
            return True

        if event.key == "ArrowLeft" and start == end and start > 0:
            previous = self.resolver.previous_valid_position(value, start)
            if previous != start - 1:
                logger.debug("ArrowLeft skips to %d", previous)
                self.editor.set_cursor(previous, previous)
                return True
            return False

        if event.key == "ArrowRight" and start == end and start < len(value):
            following = self.resolver.next_valid_position(value, start)
            if following != start + 1:
                logger.debug("ArrowRight skips to %d", following)
                self.editor.set_cursor(following, following)
                return True
            return False

        if event.key == "/" and not event.command:
            self.manager.insert_fraction(start)
            return True

        if event.key == "$" and event.shift:
            new_content = value[:start] + "$$$$" + value[end:]
            self.editor.set_content(new_content, start + 2, start + 2)
            return True

        if not event.command:
            return False

        key = event.key.lower() if len(event.key) == 1 else event.key
        if key == "z":
            if event.shift:
                self.editor.redo()
            else:
                self.editor.undo()
            return True
        if key == "r":
            self.manager.insert_sqrt(start)
            return True
        if key == "k":
            self.manager.insert_color(start, {"cursor_argument_index": 0})
            return True
        if key == "ArrowUp":
            self.manager.insert_superscript(start)
            return True
        if key == "ArrowDown":
            self.manager.insert_subscript(start)
            return True
        return False
