"""Lock-guarded store of per-target observation records."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .events import ChangeType, TransitionEvent
from .models import (
    DirectoryObservation,
    FileObservation,
    ObservationRecord,
    TargetKind,
    WatchTarget,
)

logger = logging.getLogger(__name__)

Observation = Union[FileObservation, DirectoryObservation]
Snapshot = Dict[WatchTarget, ObservationRecord]


class StateStore:
    """Single source of truth for everything the pollers have observed.

    Every mutation and every snapshot goes through one lock, so a reader never
    sees a record that is half way through a merge.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[WatchTarget, ObservationRecord] = {}
        self._last_reset_at = datetime.now()

    @property
    def last_reset_at(self) -> datetime:
        with self._lock:
            return self._last_reset_at

    def merge(
        self,
        target: WatchTarget,
        observation: Observation,
        observed_at: Optional[datetime] = None,
    ) -> List[TransitionEvent]:
        """Apply a fresh observation and return the transitions it caused."""

        with self._lock:
            return self._merge_locked(target, observation, observed_at or datetime.now())

    def merge_all(
        self,
        observations: Iterable[Tuple[WatchTarget, Observation]],
        observed_at: Optional[datetime] = None,
    ) -> List[TransitionEvent]:
        """Apply a batch of observations under a single lock acquisition."""

        stamp = observed_at or datetime.now()
        transitions: List[TransitionEvent] = []
        with self._lock:
            for target, observation in observations:
                transitions.extend(self._merge_locked(target, observation, stamp))
        return transitions

    def drop_targets(self, targets: Iterable[WatchTarget]) -> int:
        """Forget every record of the given targets; returns how many existed."""

        dropped = 0
        with self._lock:
            for target in targets:
                if self._records.pop(target, None) is not None:
                    dropped += 1
                    logger.info("Dropped state for %s %s", target.kind.value, target.path)
        return dropped

    def reset_counters(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            logger.info("Resetting file change counters")
            for record in self._records.values():
                record.change_count = 0
            self._last_reset_at = now or datetime.now()

    def snapshot(self) -> Snapshot:
        """Copy every record out under the lock."""

        with self._lock:
            return {target: replace(record) for target, record in self._records.items()}

    def tracked(self, kind: Optional[TargetKind] = None) -> Set[WatchTarget]:
        with self._lock:
            return {target for target in self._records if kind is None or target.kind is kind}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _merge_locked(
        self,
        target: WatchTarget,
        observation: Observation,
        observed_at: datetime,
    ) -> List[TransitionEvent]:
        record = self._records.get(target)
        is_new = record is None
        if record is None:
            record = ObservationRecord(target=target)
            self._records[target] = record

        transitions: List[TransitionEvent] = []
        # Size, permissions and entry count are only meaningful while the target existed.
        was_measured = not is_new and record.exists

        if is_new or record.exists != observation.exists:
            transitions.append(
                TransitionEvent(target, ChangeType.EXISTENCE, None if is_new else record.exists, observation.exists)
            )
        record.exists = observation.exists

        if observation.exists:
            if not was_measured or record.size != observation.size:
                transitions.append(TransitionEvent(target, ChangeType.SIZE, record.size, observation.size))
            record.size = observation.size

            if isinstance(observation, FileObservation):
                if not was_measured or record.permission_bits != observation.permission_bits:
                    transitions.append(
                        TransitionEvent(
                            target, ChangeType.PERMISSIONS, record.permission_bits, observation.permission_bits
                        )
                    )
                record.permission_bits = observation.permission_bits
                self._merge_fingerprint(record, observation.fingerprint, transitions)
            else:
                if not was_measured or record.entry_count != observation.entry_count:
                    transitions.append(
                        TransitionEvent(target, ChangeType.ENTRY_COUNT, record.entry_count, observation.entry_count)
                    )
                record.entry_count = observation.entry_count

        record.last_observed_at = observed_at

        for transition in transitions:
            logger.info("%s", transition.describe())
        return transitions

    @staticmethod
    def _merge_fingerprint(
        record: ObservationRecord,
        fingerprint: Optional[str],
        transitions: List[TransitionEvent],
    ) -> None:
        # An unreadable file keeps its last fingerprint and change count.
        if fingerprint is None:
            return
        if record.fingerprint is not None and record.fingerprint != fingerprint:
            record.change_count += 1
            transitions.append(
                TransitionEvent(record.target, ChangeType.CONTENT, record.change_count - 1, record.change_count)
            )
        record.fingerprint = fingerprint
