"""Track resolution -- turns a local-track locator into a file on disk.

Resolution order:
1. The player's own binary index (fast, covers tracks the player imported).
2. A depth-bounded scan of the configured music folders.

Both sources are scored by the same MatchScorer; the first source that
produces a match wins.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator

from watchdog.observers import Observer

from trackfinder.core.cache import WatchRegistry
from trackfinder.core.fuzzy_matcher import FuzzyMatcher
from trackfinder.core.index_reader import BinaryIndexReader
from trackfinder.core.locator import parse_locator
from trackfinder.core.scanner import DirectoryScanner, ScanPolicy
from trackfinder.core.scorer import MatchScorer
from trackfinder.models.config import AppConfig
from trackfinder.models.track import Candidate, IndexEntry, TrackDescriptor
from trackfinder.utils.constants import DEFAULT_SUGGESTION_LIMIT
from trackfinder.utils.file_utils import expand_folder
from trackfinder.utils.logger import get_logger

logger = get_logger("core.resolver")


class TrackResolver:
    """Finds the audio file behind a local-track locator.

    Usage:
        resolver = TrackResolver(AppConfig(music_folders=["~/Music"]))
        path = resolver.resolve("spotify:local:Artist:Album:Title:180")
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        index_reader: BinaryIndexReader | None = None,
        scanner: DirectoryScanner | None = None,
        scorer: MatchScorer | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Engine configuration. Defaults to AppConfig().
            index_reader: Reader for the player's binary index. Built from
                the config if omitted.
            scanner: Folder scanner. Built from the config if omitted.
            scorer: Candidate scorer. Built from the config if omitted.
            observer_factory: Builds watchdog observers; replaceable in tests.
        """
        self._config = config or AppConfig()
        self._folders: list[Path] = self._config.music_folders_resolved
        self._index = index_reader or BinaryIndexReader(
            self._config.index_root_resolved,
            index_filename=self._config.index_filename,
            observer_factory=observer_factory,
        )
        self._scanner = scanner or DirectoryScanner(
            ScanPolicy(max_depth=self._config.max_scan_depth)
        )
        self._scorer = scorer or MatchScorer(min_score=self._config.min_score)
        self._fuzzy = FuzzyMatcher()
        self._watches = WatchRegistry(
            on_change=self._on_folder_change,
            observer_factory=observer_factory,
        )
        self._index.on_change = self._watches.notify
        self._sync_watches()

    # ------------------------------------------------------------------
    # Folder management
    # ------------------------------------------------------------------

    @property
    def folders(self) -> list[Path]:
        """Configured root folders, in search order."""
        return list(self._folders)

    @property
    def watches(self) -> WatchRegistry:
        return self._watches

    @property
    def index_reader(self) -> BinaryIndexReader:
        return self._index

    @property
    def scanner(self) -> DirectoryScanner:
        return self._scanner

    def add_folder(self, folder: Path | str) -> bool:
        """Add a root folder for this process (not persisted).

        Returns:
            True if the folder was added, False if it was already configured.
        """
        path = expand_folder(folder)
        if path in self._folders:
            return False
        self._folders.append(path)
        self._sync_watches()
        logger.info("Added music folder: %s", path)
        return True

    def remove_folder(self, folder: Path | str) -> bool:
        """Remove a root folder and release its watch.

        Returns:
            True if the folder was configured.
        """
        path = expand_folder(folder)
        if path not in self._folders:
            return False
        self._folders.remove(path)
        self._watches.detach(path)
        self._sync_watches()
        logger.info("Removed music folder: %s", path)
        return True

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def on_change(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to "local files may have changed" notifications.

        Folder watches are held only while at least one subscriber exists.

        Args:
            callback: Invoked without arguments after a relevant change.

        Returns:
            A function that removes the subscription.
        """
        if self._config.watch_enabled:
            self._index.start_watching()
        else:
            logger.info("Watching disabled; subscriber will only see manual notifications")
        release = self._watches.subscribe(callback)

        def unsubscribe() -> None:
            release()
            if self._watches.subscriber_count == 0:
                self._index.stop_watching()

        return unsubscribe

    def clear_caches(self, notify: bool = False) -> None:
        """Force the next lookup to re-read every source.

        Args:
            notify: Also invoke change subscribers.
        """
        logger.info("Clearing all caches")
        self._index.invalidate("manual clear")
        if notify:
            self._watches.notify()

    def close(self) -> None:
        """Release every watch held by this resolver."""
        self._watches.release_all()
        self._index.stop_watching()

    def _on_folder_change(self, path: str) -> None:
        self._index.invalidate(f"folder change: {path}")

    def _sync_watches(self) -> None:
        self._watches.sync(self._folders if self._config.watch_enabled else [])

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def load_index(self) -> tuple[IndexEntry, ...]:
        """Current entries of the player's binary index."""
        state = self._index.cache.state
        if state.needs_reload():
            logger.debug("Index snapshot %s; reading from disk", state.value)
        return self._index.load_index()

    def resolve(self, locator: str) -> Path | None:
        """Resolve a locator to an absolute file path.

        Args:
            locator: Track locator reported by the player.

        Returns:
            Path to the best-matching file, or None if the locator is not a
            local track or nothing matched.
        """
        descriptor = parse_locator(locator)
        if descriptor is None:
            logger.debug("Not a local-track locator: %r", locator)
            return None
        return self.resolve_descriptor(descriptor)

    def resolve_descriptor(self, descriptor: TrackDescriptor) -> Path | None:
        """Resolve an already-decoded descriptor. See ``resolve()``."""
        candidate = self.find_in_index(descriptor)
        if candidate is not None:
            logger.info("Resolved '%s' via index: %s", descriptor.display_label, candidate.file_path)
            return candidate.file_path

        candidate = self.find_in_folders(descriptor)
        if candidate is not None:
            logger.info("Resolved '%s' via folders: %s", descriptor.display_label, candidate.file_path)
            return candidate.file_path

        logger.info("No local file found for '%s'", descriptor.display_label)
        if logger.isEnabledFor(logging.DEBUG):
            for path, score in self._suggest_descriptor(descriptor, DEFAULT_SUGGESTION_LIMIT):
                logger.debug("  near miss (%.0f): %s", score, path)
        return None

    def find_in_index(self, descriptor: TrackDescriptor) -> Candidate | None:
        """Best match among the player's index entries."""
        best = self._scorer.match(descriptor, self._index_pool(), album_in_full_path=True)
        if best is None:
            return None
        if self._config.verify_index_paths and not best.file_path.is_file():
            logger.info("Index match %s no longer exists; falling back to folders", best.file_path)
            return None
        return best

    def find_in_folders(self, descriptor: TrackDescriptor) -> Candidate | None:
        """Best match among audio files under the configured folders."""
        if not self._folders:
            return None
        return self._scorer.match(descriptor, self._folder_pool())

    def suggest(self, locator: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[tuple[Path, float]]:
        """List files with names similar to the locator's title.

        Args:
            locator: Track locator reported by the player.
            limit: Maximum number of suggestions.

        Returns:
            (file_path, similarity) pairs, best first. Empty for non-local locators.
        """
        descriptor = parse_locator(locator)
        if descriptor is None:
            return []
        return self._suggest_descriptor(descriptor, limit)

    def _suggest_descriptor(self, descriptor: TrackDescriptor, limit: int) -> list[tuple[Path, float]]:
        def pool() -> Iterator[tuple[str, Path | str]]:
            yield from self._index_pool()
            yield from self._folder_pool()

        return self._fuzzy.closest(descriptor.title, pool(), limit=limit)

    def _index_pool(self) -> Iterator[tuple[str, str]]:
        for entry in self.load_index():
            yield entry.display_key, entry.file_path

    def _folder_pool(self) -> Iterator[tuple[str, Path]]:
        for path in self._scanner.scan(self._folders):
            yield path.stem, path
