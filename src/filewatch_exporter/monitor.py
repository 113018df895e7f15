"""Background polling loops feeding the state store."""
from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .models import DirectoryObservation, FileObservation, WatchTarget
from .probes import DirectoryProbe, FileProbe
from .resolver import PathResolver
from .store import Observation, StateStore

logger = logging.getLogger(__name__)


class PollPhase(str, Enum):
    """Where a poller currently is within its cycle."""

    IDLE = "idle"
    RESOLVING = "resolving"
    PROBING = "probing"
    MERGING = "merging"


@dataclass
class PollerStats:
    """Counters emitted by a poller for observability."""

    cycles: int = 0
    targets_probed: int = 0
    probe_failures: int = 0


class _Loop:
    """Shared run/stop plumbing for the background loops."""

    name = "loop"

    def __init__(self, interval: float):
        if interval <= 0:
            raise ValueError(f"{self.name} interval must be positive, got {interval}")
        self._interval = interval
        self._stop_event = threading.Event()

    @property
    def interval(self) -> float:
        return self._interval

    def stop(self) -> None:
        """Signal the loop to stop at the next opportunity."""

        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True once a stop was requested."""

        return self._stop_event.wait(max(seconds, 0.0))


class Poller(_Loop):
    """Probes targets every interval and merges the results into the store."""

    name = "poller"

    def __init__(self, store: StateStore, interval: float):
        super().__init__(interval)
        self._store = store
        self._stats = PollerStats()
        self._phase = PollPhase.IDLE

    @property
    def stats(self) -> PollerStats:
        return self._stats

    @property
    def phase(self) -> PollPhase:
        return self._phase

    def run(self) -> None:
        """Run the polling loop until stopped."""

        logger.info("Starting %s with interval %ss", self.name, self._interval)
        try:
            while not self.stopped:
                started_at = time.monotonic()
                self.run_cycle()
                elapsed = time.monotonic() - started_at
                logger.debug("%s cycle %s took %.3fs", self.name, self._stats.cycles, elapsed)
                if self._wait(self._interval):
                    break
        finally:
            self._phase = PollPhase.IDLE
            logger.info(
                "%s stopped after %s cycles, %s probe failures",
                self.name,
                self._stats.cycles,
                self._stats.probe_failures,
            )

    def run_cycle(self) -> None:
        """Perform one resolve/probe/merge cycle."""

        try:
            try:
                targets = self._resolve()
            except Exception:
                logger.exception("%s failed to resolve targets; skipping cycle", self.name)
                return
            self._phase = PollPhase.PROBING
            observations = self._probe_all(targets)
            self._phase = PollPhase.MERGING
            self._store.merge_all(observations)
            self._stats.cycles += 1
        finally:
            self._phase = PollPhase.IDLE

    def _resolve(self) -> List[WatchTarget]:
        raise NotImplementedError

    def _probe(self, target: WatchTarget) -> Observation:
        raise NotImplementedError

    def _probe_all(self, targets: Iterable[WatchTarget]) -> List[Tuple[WatchTarget, Observation]]:
        results: List[Tuple[WatchTarget, Observation]] = []
        for target in targets:
            try:
                observation = self._probe(target)
            except Exception:
                self._stats.probe_failures += 1
                logger.exception("Probe failed for %s %s", target.kind.value, target.path)
                continue
            self._stats.targets_probed += 1
            results.append((target, observation))
        return results


class FilePoller(Poller):
    """Re-resolves the configured patterns and probes every matched file."""

    name = "file poller"

    def __init__(
        self,
        store: StateStore,
        resolver: PathResolver,
        interval: float,
        probe: Optional[FileProbe] = None,
    ):
        super().__init__(store, interval)
        self._resolver = resolver
        self._file_probe = probe or FileProbe()

    def _resolve(self) -> List[WatchTarget]:
        self._phase = PollPhase.RESOLVING
        resolution = self._resolver.resolve()
        if resolution.removed:
            self._store.drop_targets(WatchTarget.file(path) for path in resolution.removed)
        return [WatchTarget.file(path) for path in resolution.paths]

    def _probe(self, target: WatchTarget) -> FileObservation:
        return self._file_probe.probe(target.path)


class DirectoryPoller(Poller):
    """Walks every configured directory; directories are never globbed."""

    name = "directory poller"

    def __init__(
        self,
        store: StateStore,
        directories: Iterable[str],
        interval: float,
        probe: Optional[DirectoryProbe] = None,
    ):
        super().__init__(store, interval)
        self._targets = _unique([WatchTarget.directory(normalize_directory(path)) for path in directories])
        self._dir_probe = probe or DirectoryProbe()

    @property
    def targets(self) -> List[WatchTarget]:
        return list(self._targets)

    def _resolve(self) -> List[WatchTarget]:
        return list(self._targets)

    def _probe(self, target: WatchTarget) -> DirectoryObservation:
        return self._dir_probe.probe(target.path)


class CounterResetLoop(_Loop):
    """Zeroes every change counter once per reset period."""

    name = "counter reset loop"

    def __init__(self, store: StateStore, period: float):
        super().__init__(period)
        self._store = store
        self.resets = 0

    def run(self) -> None:
        logger.info("Starting %s with period %ss", self.name, self._interval)
        while not self._wait(self._interval):
            self._store.reset_counters()
            self.resets += 1
        logger.info("%s stopped after %s resets", self.name, self.resets)


def normalize_directory(path: str) -> str:
    """Strip trailing separators so ``data/`` and ``data`` are one target."""

    stripped = path.rstrip(os.sep)
    if os.altsep:
        stripped = stripped.rstrip(os.altsep)
    return stripped or path[:1]


def _unique(targets: List[WatchTarget]) -> List[WatchTarget]:
    seen = set()
    ordered: List[WatchTarget] = []
    for target in targets:
        if target not in seen:
            seen.add(target)
            ordered.append(target)
    return ordered
