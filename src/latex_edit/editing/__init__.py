"""
Command insertion and the editor collaborators that apply it.
"""

from .options import ArgumentTarget, InsertionOptions, InsertionRequest, InsertionResult
from .engine import CommandInsertionEngine
from .editor import LatexEditor
from .manager import CommandManager
from .key_handler import KeyEvent, KeyHandler

__all__ = [
    "ArgumentTarget",
    "InsertionOptions",
    "InsertionRequest",
    "InsertionResult",
    "CommandInsertionEngine",
    "LatexEditor",
    "CommandManager",
    "KeyEvent",
    "KeyHandler",
]
