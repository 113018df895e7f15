"""One-shot filesystem inspections producing observation fragments."""
from __future__ import annotations

import hashlib
import logging
import os
import stat
from typing import Optional, Tuple

from .models import DirectoryObservation, FileObservation

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 64 * 1024


def permission_bits(mode: int) -> int:
    """Pack the owner/group/other triplets as octal digits (0o644 -> 644)."""

    perm = stat.S_IMODE(mode)
    return ((perm >> 6) & 7) * 100 + ((perm >> 3) & 7) * 10 + (perm & 7)


class FileProbe:
    """Stats and fingerprints a single file."""

    def __init__(self, chunk_size: int = HASH_CHUNK_SIZE):
        self._chunk_size = chunk_size

    def probe(self, path: str) -> FileObservation:
        try:
            info = os.stat(path)
        except FileNotFoundError:
            return FileObservation(exists=False)
        except OSError as exc:
            logger.warning("Error checking file %s: %s", path, exc)
            return FileObservation(exists=False)

        # Only regular files are hashed; opening a FIFO would block the poller.
        fingerprint = self.fingerprint(path) if stat.S_ISREG(info.st_mode) else None
        return FileObservation(
            exists=True,
            size=info.st_size,
            permission_bits=permission_bits(info.st_mode),
            fingerprint=fingerprint,
        )

    def fingerprint(self, path: str) -> Optional[str]:
        """Return the MD5 hex digest of the content, or None if unreadable."""

        digest = hashlib.md5()
        try:
            with open(path, "rb") as handle:
                for chunk in iter(lambda: handle.read(self._chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            logger.warning("Error calculating hash for %s: %s", path, exc)
            return None
        return digest.hexdigest()


class DirectoryProbe:
    """Aggregates size and regular-file count over a directory tree.

    Subtrees that cannot be read are logged and skipped. Symbolic links are
    neither followed nor counted.
    """

    def probe(self, path: str) -> DirectoryObservation:
        try:
            info = os.stat(path)
        except FileNotFoundError:
            return DirectoryObservation(exists=False)
        except OSError as exc:
            logger.warning("Error checking directory %s: %s", path, exc)
            return DirectoryObservation(exists=False)

        if not stat.S_ISDIR(info.st_mode):
            logger.warning("Path %s exists but is not a directory", path)
            return DirectoryObservation(exists=False)

        size, count = self._walk(path)
        return DirectoryObservation(exists=True, size=size, entry_count=count)

    def _walk(self, root: str) -> Tuple[int, int]:
        total_size = 0
        total_count = 0
        pending = [root]
        while pending:
            current = pending.pop()
            try:
                with os.scandir(current) as entries:
                    for entry in entries:
                        try:
                            if entry.is_dir(follow_symlinks=False):
                                pending.append(entry.path)
                            elif entry.is_file(follow_symlinks=False):
                                total_size += entry.stat(follow_symlinks=False).st_size
                                total_count += 1
                        except OSError as exc:
                            logger.warning("Warning: error accessing path %s: %s", entry.path, exc)
            except OSError as exc:
                logger.warning("Warning: error accessing path %s: %s", current, exc)
        return total_size, total_count
