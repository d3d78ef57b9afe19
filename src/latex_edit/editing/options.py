"""
Request, option and result models for the command insertion engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TargetKind(Enum):
    FIRST = "first"
    LAST = "last"
    INDEX = "index"


@dataclass(frozen=True)
class ArgumentTarget:
    """Which argument of an inserted command receives the cursor."""

    kind: TargetKind = TargetKind.FIRST
    index: int = 0

    @classmethod
    def first(cls) -> ArgumentTarget:
        return cls(TargetKind.FIRST)

    @classmethod
    def last(cls) -> ArgumentTarget:
        return cls(TargetKind.LAST)

    @classmethod
    def at(cls, index: int) -> ArgumentTarget:
        return cls(TargetKind.INDEX, index)

    def resolve(self, count: int) -> Optional[int]:
        """Concrete argument index for a command with ``count`` arguments.

        Negative indexes count from the end; the result is clamped to
        ``[0, count - 1]``. Returns None when there are no arguments.
        """
        if count <= 0:
            return None
        if self.kind == TargetKind.FIRST:
            index = 0
        elif self.kind == TargetKind.LAST:
            index = count - 1
        else:
            index = self.index if self.index >= 0 else count + self.index
        return max(0, min(count - 1, index))


class InsertionOptions(BaseModel):
    """Caller options for an insertion. Unset fields mean "use the operation's default"."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    wrap_with_math: Optional[bool] = None
    position_in_first_arg: Optional[bool] = None
    use_text_before_cursor: Optional[bool] = None
    cursor_argument_index: Optional[int] = None

    def argument_target(self, default: Optional[ArgumentTarget] = None) -> ArgumentTarget:
        """Collapse the cursor placement fields into a single target."""
        if self.cursor_argument_index is not None:
            return ArgumentTarget.at(self.cursor_argument_index)
        if self.position_in_first_arg is False:
            return ArgumentTarget.at(1)
        if self.position_in_first_arg is True:
            return ArgumentTarget.first()
        return default or ArgumentTarget.first()

    def merged(self, **overrides: Any) -> InsertionOptions:
        """Copy with ``overrides`` applied unconditionally."""
        return self.model_copy(update=overrides)

    def with_defaults(self, **defaults: Any) -> InsertionOptions:
        """Copy with ``defaults`` applied only to fields that are unset."""
        update = {key: value for key, value in defaults.items() if getattr(self, key) is None}
        return self.model_copy(update=update)


class InsertionRequest(BaseModel):
    """A command to insert: ``\\command_name{args[0]}{args[1]}...``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    command_name: str
    args: List[str] = Field(default_factory=list)
    options: InsertionOptions = Field(default_factory=InsertionOptions)

    @field_validator("command_name")
    @classmethod
    def _strip_backslash(cls, value: str) -> str:
        value = value.lstrip("\\")
        if not value:
            raise ValueError("command_name must not be empty")
        return value


class InsertionResult(BaseModel):
    """New document text and cursor offset; applied atomically by the caller."""

    model_config = ConfigDict(frozen=True)

    new_text: str
    new_cursor_position: int
