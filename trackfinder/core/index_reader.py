"""Binary index reader -- pulls file paths out of the player's local-files database.

The external player keeps one ``local-files.bnk`` per user profile. Its
structure is undocumented, but every imported file's absolute path is stored
as plain text. Instead of parsing the format, the reader scans raw bytes for
anything that looks like a path ending in an audio extension.
"""

from __future__ import annotations

import os
import re
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from trackfinder.core.cache import SnapshotCache
from trackfinder.models.track import IndexEntry
from trackfinder.utils.constants import INDEX_EXTENSIONS, INDEX_FILENAME
from trackfinder.utils.file_utils import display_key, is_hidden
from trackfinder.utils.logger import get_logger

logger = get_logger("core.index_reader")

_EXTENSION_ALTERNATION = "|".join(sorted(ext.lstrip(".") for ext in INDEX_EXTENSIONS))

# A POSIX ("/...") or Windows ("C:\...") path with no control characters,
# ending at the first audio extension that is not followed by more word characters.
_PATH_RE = re.compile(
    r"(?:/|[A-Za-z]:\\)[^\x00-\x1f]+?\.(?:" + _EXTENSION_ALTERNATION + r")(?![A-Za-z0-9])",
    re.IGNORECASE,
)


def extract_paths(data: bytes) -> list[str]:
    """Find every embedded audio file path in a blob of binary data.

    Args:
        data: Raw contents of an index file.

    Returns:
        Paths in the order they appear. May contain duplicates.
    """
    text = data.decode("utf-8", errors="replace")
    return [match.group(0) for match in _PATH_RE.finditer(text)]


class _IndexEventHandler(FileSystemEventHandler):
    """Invalidates the index when an index file or a profile directory changes."""

    def __init__(self, reader: BinaryIndexReader) -> None:
        super().__init__()
        self._reader = reader

    def on_any_event(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if path.name == self._reader.index_filename:
            logger.info("Index file changed (%s), invalidating", event.event_type)
            self._reader.handle_change("index file changed")
        elif event.is_directory and event.event_type == "created" and path.parent == self._reader.root:
            logger.info("New profile directory %s, invalidating", path.name)
            self._reader.handle_change("profile directory added")


class BinaryIndexReader:
    """Reads and memoizes ``{display_key -> file_path}`` entries from the index.

    The snapshot is reloaded lazily: a directory watch and a modification-time
    signature both only drop it, and the next ``load_index()`` re-reads disk.

    Usage:
        reader = BinaryIndexReader(Path("~/Library/.../Spotify/Users").expanduser())
        for entry in reader.load_index():
            ...
    """

    def __init__(
        self,
        root: Path | str,
        index_filename: str = INDEX_FILENAME,
        read_bytes: Callable[[Path], bytes] = Path.read_bytes,
        clock: Callable[[], float] = time.monotonic,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        """Initialize the reader.

        Args:
            root: Directory containing one subdirectory per player profile.
            index_filename: Name of the index file inside each profile directory.
            read_bytes: Reads a whole file; replaceable in tests.
            clock: Time source for the snapshot cache.
            observer_factory: Builds the watchdog observer for ``start_watching()``.
        """
        self.root = Path(root)
        self.index_filename = index_filename
        self._read_bytes = read_bytes
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self.on_change: Callable[[], None] | None = None
        self._cache: SnapshotCache[tuple[IndexEntry, ...]] = SnapshotCache(
            self.read_all,
            signature=self.signature,
            clock=clock,
            name="index",
        )

    @property
    def cache(self) -> SnapshotCache[tuple[IndexEntry, ...]]:
        return self._cache

    @property
    def watching(self) -> bool:
        return self._observer is not None

    def load_index(self) -> tuple[IndexEntry, ...]:
        """Return the current index entries, reloading from disk if stale."""
        return self._cache.get()

    def invalidate(self, reason: str = "manual") -> None:
        """Drop the cached snapshot so the next access re-reads disk."""
        self._cache.invalidate(reason)

    def handle_change(self, reason: str) -> None:
        """Entry point for watch events: drop the snapshot, then tell ``on_change``."""
        self.invalidate(reason)
        if self.on_change is not None:
            self.on_change()

    def index_files(self) -> list[Path]:
        """List the index file of every profile directory, in name order.

        Returns:
            Existing index file paths. Empty if the root does not exist.
        """
        try:
            profiles = sorted(
                entry for entry in self.root.iterdir()
                if entry.is_dir() and not is_hidden(entry.name)
            )
        except OSError:
            return []

        files = []
        for profile in profiles:
            candidate = profile / self.index_filename
            if candidate.is_file():
                files.append(candidate)
        return files

    def signature(self) -> tuple[tuple[str, int, int], ...]:
        """Change signature: (path, mtime_ns, size) of every index file."""
        parts = []
        for index_file in self.index_files():
            try:
                stat = index_file.stat()
            except OSError:
                continue
            parts.append((str(index_file), stat.st_mtime_ns, stat.st_size))
        return tuple(parts)

    def read_all(self) -> tuple[IndexEntry, ...]:
        """Read every index file from disk, bypassing the cache.

        Unreadable files are skipped. The same path listed by several
        profiles is kept once, at its first position.

        Returns:
            Entries in discovery order.
        """
        entries: list[IndexEntry] = []
        seen: set[str] = set()

        for index_file in self.index_files():
            try:
                data = self._read_bytes(index_file)
            except OSError as e:
                logger.debug("Skipping unreadable index %s: %s", index_file, e)
                continue

            for file_path in extract_paths(data):
                if file_path in seen:
                    continue
                seen.add(file_path)
                entries.append(IndexEntry(display_key=display_key(file_path), file_path=file_path))

        logger.debug("Loaded %d index entries from %s", len(entries), self.root)
        return tuple(entries)

    def start_watching(self) -> bool:
        """Watch the profile directories for index changes.

        A failure is logged and tolerated: the modification-time signature
        still catches changes on the next access.

        Returns:
            True if a watch is active.
        """
        if self._observer is not None:
            return True
        if not self.root.is_dir():
            logger.debug("Index root %s does not exist; not watching", self.root)
            return False

        observer = self._observer_factory()
        observer.daemon = True
        try:
            observer.schedule(_IndexEventHandler(self), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            logger.warning("Failed to watch index at %s: %s", self.root, e)
            return False

        self._observer = observer
        logger.info("Watching index at %s", self.root)
        return True

    def stop_watching(self) -> None:
        """Stop the index watch, if running."""
        if self._observer is None:
            return
        observer = self._observer
        self._observer = None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5.0)
