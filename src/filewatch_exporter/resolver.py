"""Expansion of configured file patterns into concrete paths."""
from __future__ import annotations

import glob
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

logger = logging.getLogger(__name__)

GLOB_CHARS = "*?[]"

ResolvedSet = Dict[str, List[str]]


@dataclass(frozen=True)
class Resolution:
    """Outcome of one resolution pass."""

    paths: List[str] = field(default_factory=list)
    added: Dict[str, List[str]] = field(default_factory=dict)
    removed: Set[str] = field(default_factory=set)


def contains_glob_char(pattern: str) -> bool:
    return any(char in pattern for char in GLOB_CHARS)


class PathResolver:
    """Keeps the mapping from configured patterns to the paths they match."""

    def __init__(self, patterns: Iterable[str]):
        self._patterns: List[str] = list(patterns)
        self._resolved: ResolvedSet = {}

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    @property
    def resolved(self) -> ResolvedSet:
        return {pattern: list(paths) for pattern, paths in self._resolved.items()}

    def resolve(self) -> Resolution:
        """Expand every pattern and diff the result against the previous pass.

        A pattern whose expansion fails keeps its previous matches so that a
        transient error does not drop the state of every path it covered.
        """

        previous_paths = _flatten(self._resolved)
        new_resolved: ResolvedSet = {}

        for pattern in self._patterns:
            try:
                new_resolved[pattern] = _expand(pattern)
            except (OSError, ValueError, re.error) as exc:
                logger.error("Error expanding glob pattern %s: %s", pattern, exc)
                new_resolved[pattern] = list(self._resolved.get(pattern, []))

        current_paths = _flatten(new_resolved)
        current_set = set(current_paths)
        previous_set = set(previous_paths)

        added: Dict[str, List[str]] = {}
        for pattern, paths in new_resolved.items():
            for path in paths:
                if path in previous_set:
                    continue
                if any(path in found for found in added.values()):
                    continue
                added.setdefault(pattern, []).append(path)
                logger.info("New file added under pattern %s: %s", pattern, path)

        removed = previous_set - current_set
        for path in sorted(removed):
            logger.info("File no longer matched by any pattern: %s", path)

        self._resolved = new_resolved
        return Resolution(paths=current_paths, added=added, removed=removed)


def _expand(pattern: str) -> List[str]:
    if not contains_glob_char(pattern):
        return [pattern]
    _validate_pattern(pattern)
    return sorted(glob.glob(pattern, include_hidden=True))


def _validate_pattern(pattern: str) -> None:
    """Reject patterns with an unterminated ``[`` character set.

    ``glob`` silently treats such a bracket as a literal character.
    """

    index = 0
    length = len(pattern)
    while index < length:
        if pattern[index] != "[":
            index += 1
            continue
        # A leading "!" negates and a leading "]" is a literal member.
        end = index + 1
        if end < length and pattern[end] == "!":
            end += 1
        if end < length and pattern[end] == "]":
            end += 1
        end = pattern.find("]", end)
        if end == -1:
            raise ValueError(f"unterminated character set at position {index}")
        index = end + 1


def _flatten(resolved: ResolvedSet) -> List[str]:
    seen: Set[str] = set()
    ordered: List[str] = []
    for paths in resolved.values():
        for path in paths:
            if path not in seen:
                seen.add(path)
                ordered.append(path)
    return ordered
