"""Value types shared by the probes, the state store and the collector."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TargetKind(str, Enum):
    """What a watch target points at."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class WatchTarget:
    """One path under observation."""

    path: str
    kind: TargetKind = TargetKind.FILE

    @classmethod
    def file(cls, path: str) -> "WatchTarget":
        return cls(path=path, kind=TargetKind.FILE)

    @classmethod
    def directory(cls, path: str) -> "WatchTarget":
        return cls(path=path, kind=TargetKind.DIRECTORY)

    @property
    def is_directory(self) -> bool:
        return self.kind is TargetKind.DIRECTORY


@dataclass(frozen=True)
class FileObservation:
    """Result of probing a single file.

    ``fingerprint`` is ``None`` when the file could be stat'd but not read; the
    store keeps the previously known fingerprint in that case.
    """

    exists: bool
    size: int = 0
    permission_bits: int = 0
    fingerprint: Optional[str] = None


@dataclass(frozen=True)
class DirectoryObservation:
    """Aggregate result of walking a directory tree."""

    exists: bool
    size: int = 0
    entry_count: int = 0


@dataclass
class ObservationRecord:
    """Latest known state of a watch target, owned by the state store."""

    target: WatchTarget
    exists: bool = False
    size: int = 0
    permission_bits: int = 0
    entry_count: int = 0
    fingerprint: Optional[str] = None
    change_count: int = 0
    last_observed_at: Optional[datetime] = None
