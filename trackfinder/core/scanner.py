"""Directory scanner -- lazily enumerates candidate audio files under root folders."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from trackfinder.utils.constants import (
    DEFAULT_MAX_SCAN_DEPTH,
    DENIED_DIRECTORY_NAMES,
    SCAN_EXTENSIONS,
)
from trackfinder.utils.file_utils import expand_folder, is_hidden
from trackfinder.utils.logger import get_logger

logger = get_logger("core.scanner")


@dataclass(frozen=True)
class ScanPolicy:
    """What the scanner visits.

    Attributes:
        max_depth: Deepest directory level enumerated (roots are level 0).
        extensions: Lowercase file extensions (with dot) that are yielded.
        denied_dirs: Directory names that are never entered.
    """

    max_depth: int = DEFAULT_MAX_SCAN_DEPTH
    extensions: frozenset[str] = SCAN_EXTENSIONS
    denied_dirs: frozenset[str] = field(default=DENIED_DIRECTORY_NAMES)

    def accepts_file(self, name: str) -> bool:
        return not is_hidden(name) and os.path.splitext(name)[1].lower() in self.extensions

    def enters_dir(self, name: str, depth: int) -> bool:
        return depth < self.max_depth and not is_hidden(name) and name not in self.denied_dirs


class ScanSequence:
    """A finite, restartable sequence of audio files under a set of roots.

    Nothing touches the filesystem until iteration starts, and every new
    iteration walks the tree afresh.
    """

    def __init__(self, roots: Iterable[Path | str], policy: ScanPolicy) -> None:
        self._roots = [expand_folder(root) for root in roots]
        self._policy = policy

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def __iter__(self) -> Iterator[Path]:
        for root in self._roots:
            if not root.is_dir():
                logger.debug("Skipping missing root folder: %s", root)
                continue
            yield from self._walk(root, 0)

    def _walk(self, directory: Path, depth: int) -> Iterator[Path]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            # Restricted folders are skipped quietly: surfacing the error can
            # make the host OS prompt for folder access again and again.
            logger.debug("Cannot list %s: %s", directory, e)
            return

        subdirs: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if self._policy.enters_dir(entry.name, depth):
                        subdirs.append(entry.name)
                elif entry.is_file() and self._policy.accepts_file(entry.name):
                    yield directory / entry.name
            except OSError as e:
                logger.debug("Cannot stat %s: %s", entry.path, e)

        # Files in this directory come first; only then descend
        for name in subdirs:
            yield from self._walk(directory / name, depth + 1)


class DirectoryScanner:
    """Enumerates audio files under the configured root folders.

    Usage:
        scanner = DirectoryScanner()
        for path in scanner.scan(["~/Music"]):
            ...
    """

    def __init__(self, policy: ScanPolicy | None = None) -> None:
        """Initialize the scanner.

        Args:
            policy: Depth limit, extensions and deny-list. Defaults to ScanPolicy().
        """
        self._policy = policy or ScanPolicy()

    @property
    def policy(self) -> ScanPolicy:
        return self._policy

    def scan(self, roots: Iterable[Path | str]) -> ScanSequence:
        """Build a lazy sequence of audio files under ``roots``.

        Args:
            roots: Root folders, searched in order.

        Returns:
            A ScanSequence; iterate it (possibly more than once) to walk the tree.
        """
        return ScanSequence(roots, self._policy)

    def count_audio_files(self, roots: Iterable[Path | str]) -> int:
        """Quick count of audio files without matching anything."""
        return sum(1 for _ in self.scan(roots))
