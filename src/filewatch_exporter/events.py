"""Transition events recorded by the state store."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .models import WatchTarget


class ChangeType(str, Enum):
    """Kinds of field transitions observed between two probes."""

    EXISTENCE = "existence"
    SIZE = "size"
    PERMISSIONS = "permissions"
    ENTRY_COUNT = "entry_count"
    CONTENT = "content"


@dataclass(frozen=True)
class TransitionEvent:
    """A single field of a watched target that differs from its last value."""

    target: WatchTarget
    change_type: ChangeType
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None

    def describe(self) -> str:
        noun = "Directory" if self.target.is_directory else "File"
        if self.change_type is ChangeType.EXISTENCE:
            return f"{noun} status change: {self.target.path} exists = {int(bool(self.new_value))}"
        if self.change_type is ChangeType.SIZE:
            return f"{noun} size change: {self.target.path} size = {self.new_value} bytes"
        if self.change_type is ChangeType.PERMISSIONS:
            return f"{noun} permissions change: {self.target.path} permissions = {self.new_value}"
        if self.change_type is ChangeType.ENTRY_COUNT:
            return f"{noun} file count change: {self.target.path} count = {self.new_value} files"
        return f"{noun} content change detected for {self.target.path}, change count: {self.new_value}"
