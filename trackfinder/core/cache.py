"""Snapshot caching and filesystem-watch bookkeeping.

Both data sources (the external binary index and the configured music
folders) can change underneath a running process. Invalidation is always
coarse: a change signal drops the whole snapshot and the next reader
rebuilds it. A watch callback never rebuilds or mutates a snapshot in place.
"""

from __future__ import annotations

import itertools
import os
import threading
import time
from pathlib import Path
from typing import Callable, Generic, Hashable, TypeVar

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from trackfinder.models.cache_state import CacheState
from trackfinder.models.track import FolderWatchState
from trackfinder.utils.file_utils import is_audio_file
from trackfinder.utils.logger import get_logger

logger = get_logger("core.cache")

T = TypeVar("T")

_NO_SIGNATURE = object()

OBSERVER_JOIN_TIMEOUT_SECONDS = 5.0


class SnapshotCache(Generic[T]):
    """Memoizes an immutable snapshot produced by a loader.

    Usage:
        cache = SnapshotCache(reader.read_all, signature=reader.signature)
        entries = cache.get()       # loads on first access
        cache.invalidate("changed") # next get() reloads

    The loader must return an immutable value (e.g. a tuple) so a snapshot
    handed to one caller can never be altered by another.
    """

    def __init__(
        self,
        loader: Callable[[], T],
        signature: Callable[[], Hashable] | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "snapshot",
    ) -> None:
        """Initialize the cache.

        Args:
            loader: Builds a fresh snapshot from the authoritative source.
            signature: Optional cheap fingerprint of the source (e.g. modification times). A
                changed signature invalidates the snapshot on next access.
            clock: Time source used to stamp loads.
            name: Label used in log messages.
        """
        self._loader = loader
        self._signature = signature
        self._clock = clock
        self._name = name

        self._snapshot: T | None = None
        self._state = CacheState.EMPTY
        self._last_signature: Hashable = _NO_SIGNATURE
        self._generations = itertools.count(1)
        self._generation = 0
        self._load_lock = threading.Lock()
        self.loaded_at: float | None = None
        self.load_count = 0

    @property
    def state(self) -> CacheState:
        """Current lifecycle state."""
        return self._state

    def get(self) -> T:
        """Return the cached snapshot, rebuilding it if it was dropped."""
        self._check_signature()

        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._load_lock:
            # Another thread may have rebuilt while we waited
            if self._snapshot is not None:
                return self._snapshot

            generation = self._generation
            snapshot = self._loader()
            self.load_count += 1

            if generation == self._generation:
                self._snapshot = snapshot
                self._state = CacheState.POPULATED
                self.loaded_at = self._clock()
                logger.debug("%s cache populated (load #%d)", self._name, self.load_count)
            else:
                # Invalidated mid-load: serve this result, keep nothing
                logger.debug("%s cache invalidated during load; not storing", self._name)
            return snapshot

    def invalidate(self, reason: str = "manual") -> None:
        """Drop the snapshot. Never blocks and never rebuilds.

        Args:
            reason: Short description of the change signal, for logging.
        """
        self._generation = next(self._generations)
        if self._snapshot is not None:
            logger.debug("%s cache invalidated: %s", self._name, reason)
            self._state = CacheState.INVALIDATED
        self._snapshot = None

    def _check_signature(self) -> None:
        if self._signature is None:
            return
        current = self._signature()
        if current != self._last_signature:
            if self._last_signature is not _NO_SIGNATURE:
                self.invalidate("modification signature changed")
            self._last_signature = current


class _FolderEventHandler(FileSystemEventHandler):
    """Forwards events about audio files under a watched folder."""

    def __init__(self, registry: WatchRegistry, folder: Path) -> None:
        super().__init__()
        self._registry = registry
        self._folder = folder

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        for raw in paths:
            if not raw:
                continue
            path = os.fsdecode(raw)
            if is_audio_file(path):
                logger.debug("FS event: %s on %s in %s", event.event_type, path, self._folder)
                self._registry.handle_change(path)
                return


class WatchRegistry:
    """Reference-counted filesystem watches over the configured folders.

    Watches exist only while at least one subscriber is registered: the
    first ``subscribe()`` attaches a watch per folder, and removing the last
    subscriber releases them all.

    Usage:
        registry = WatchRegistry(on_change=lambda path: cache.invalidate(path))
        registry.sync(folders)
        unsubscribe = registry.subscribe(lambda: print("changed"))
        ...
        unsubscribe()
    """

    def __init__(
        self,
        on_change: Callable[[str], None] | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        """Initialize the registry.

        Args:
            on_change: Called with the changed path before subscribers are
                notified (e.g. to invalidate caches).
            observer_factory: Builds the watchdog observer; replaceable in tests.
        """
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._folders: list[Path] = []
        self._watches: dict[Path, FolderWatchState] = {}
        self._subscribers: list[Callable[[], None]] = []
        self._lock = threading.RLock()

    @property
    def watched_folders(self) -> list[Path]:
        """Folders that currently hold a live watch."""
        return list(self._watches)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def sync(self, folders: list[Path]) -> None:
        """Record the folder list and, if anyone is listening, attach/detach to match it."""
        with self._lock:
            self._folders = list(folders)
            if not self._subscribers:
                return
            for folder in list(self._watches):
                if folder not in self._folders:
                    self.detach(folder)
            for folder in self._folders:
                self._attach(folder)

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener.

        Args:
            callback: Invoked (without arguments) after a relevant change.

        Returns:
            A function that removes this listener.
        """
        with self._lock:
            self._subscribers.append(callback)
            for folder in self._folders:
                self._attach(folder)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
                if not self._subscribers:
                    self.release_all()

        return unsubscribe

    def notify(self) -> None:
        """Invoke every subscriber."""
        for callback in list(self._subscribers):
            callback()

    def handle_change(self, path: str) -> None:
        """Entry point for watch events naming a relevant file."""
        if self._on_change is not None:
            self._on_change(path)
        self.notify()

    def detach(self, folder: Path) -> None:
        """Release the watch on one folder, if any."""
        with self._lock:
            state = self._watches.pop(folder, None)
            if state is None:
                return
            logger.info("Stopping watcher for: %s", folder)
            if self._observer is not None and state.handle is not None:
                try:
                    self._observer.unschedule(state.handle)
                except (KeyError, OSError) as e:
                    logger.debug("Unschedule failed for %s: %s", folder, e)
            if not self._watches:
                self._stop_observer()

    def release_all(self) -> None:
        """Release every watch and stop the observer."""
        with self._lock:
            for folder in list(self._watches):
                self.detach(folder)
            self._stop_observer()

    def _attach(self, folder: Path) -> None:
        if folder in self._watches:
            return
        if not folder.is_dir():
            logger.debug("Not watching missing folder: %s", folder)
            return

        try:
            observer = self._ensure_observer()
            handle = observer.schedule(
                _FolderEventHandler(self, folder), str(folder), recursive=True
            )
        except OSError as e:
            logger.warning(
                "Failed to watch %s (%s); changes will be picked up on next scan", folder, e
            )
            return

        logger.info("Starting watcher for: %s", folder)
        self._watches[folder] = FolderWatchState(path=folder, handle=handle)

    def _ensure_observer(self) -> Observer:
        if self._observer is None:
            observer = self._observer_factory()
            observer.daemon = True
            observer.start()
            self._observer = observer
        return self._observer

    def _stop_observer(self) -> None:
        if self._observer is None:
            return
        observer = self._observer
        self._observer = None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=OBSERVER_JOIN_TIMEOUT_SECONDS)
