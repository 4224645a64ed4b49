"""Tests for SnapshotCache and WatchRegistry."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileMovedEvent

from trackfinder.core.cache import SnapshotCache, WatchRegistry
from trackfinder.models.cache_state import CacheState


class CountingLoader:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> tuple[int, ...]:
        self.calls += 1
        return (self.calls,)


# ------------------------------------------------------------------
# SnapshotCache
# ------------------------------------------------------------------


class TestSnapshotCache:
    def test_loads_once(self):
        loader = CountingLoader()
        cache = SnapshotCache(loader)

        assert cache.get() == (1,)
        assert cache.get() == (1,)
        assert loader.calls == 1

    def test_state_transitions(self):
        cache = SnapshotCache(CountingLoader())
        assert cache.state is CacheState.EMPTY
        assert cache.state.needs_reload()

        cache.get()
        assert cache.state is CacheState.POPULATED
        assert not cache.state.needs_reload()

        cache.invalidate("test")
        assert cache.state is CacheState.INVALIDATED

        assert cache.get() == (2,)
        assert cache.state is CacheState.POPULATED

    def test_invalidate_empty_cache_stays_empty(self):
        cache = SnapshotCache(CountingLoader())
        cache.invalidate()
        assert cache.state is CacheState.EMPTY

    def test_loaded_at_uses_clock(self):
        cache = SnapshotCache(CountingLoader(), clock=lambda: 42.0)
        assert cache.loaded_at is None
        cache.get()
        assert cache.loaded_at == 42.0

    def test_signature_change_reloads(self):
        loader = CountingLoader()
        signature = ["v1"]
        cache = SnapshotCache(loader, signature=lambda: signature[0])

        cache.get()
        cache.get()
        assert loader.calls == 1

        signature[0] = "v2"
        assert cache.get() == (2,)
        assert loader.calls == 2

    def test_invalidated_during_load_not_stored(self):
        cache = None
        calls = []

        def loader() -> tuple[int, ...]:
            calls.append(1)
            if len(calls) == 1:
                cache.invalidate("changed mid-load")
            return (len(calls),)

        cache = SnapshotCache(loader)

        assert cache.get() == (1,)
        assert cache.state is not CacheState.POPULATED
        assert cache.get() == (2,)
        assert cache.state is CacheState.POPULATED
        assert cache.load_count == 2


# ------------------------------------------------------------------
# WatchRegistry
# ------------------------------------------------------------------


@pytest.fixture
def folders(tmp_path: Path) -> list[Path]:
    result = [tmp_path / "music", tmp_path / "more"]
    for folder in result:
        folder.mkdir()
    return result


class TestWatchRegistry:
    def test_sync_without_subscribers_attaches_nothing(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders)

        assert registry.watched_folders == []
        assert observer_factory.built == []

    def test_first_subscriber_attaches(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders)

        registry.subscribe(lambda: None)

        assert registry.watched_folders == folders
        observer = observer_factory.last
        assert observer.started and observer.daemon
        assert [w.path for w in observer.watches] == [str(f) for f in folders]
        assert all(w.recursive for w in observer.watches)

    def test_missing_folder_not_watched(self, tmp_path: Path, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync([tmp_path / "missing"])
        registry.subscribe(lambda: None)

        assert registry.watched_folders == []

    def test_last_unsubscribe_releases(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders)
        first = registry.subscribe(lambda: None)
        second = registry.subscribe(lambda: None)
        observer = observer_factory.last

        first()
        assert registry.watched_folders == folders
        assert registry.subscriber_count == 1

        second()
        assert registry.watched_folders == []
        assert observer.stopped and observer.joined

    def test_unsubscribe_twice_is_harmless(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders)
        unsubscribe = registry.subscribe(lambda: None)
        unsubscribe()
        unsubscribe()
        assert registry.subscriber_count == 0

    def test_sync_detaches_removed_folder(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders)
        registry.subscribe(lambda: None)
        observer = observer_factory.last

        registry.sync(folders[:1])

        assert registry.watched_folders == folders[:1]
        assert [w.path for w in observer.unscheduled] == [str(folders[1])]

    def test_sync_attaches_added_folder(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders[:1])
        registry.subscribe(lambda: None)

        registry.sync(folders)

        assert registry.watched_folders == folders

    def test_detach_last_folder_stops_observer(self, folders, observer_factory):
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders[:1])
        registry.subscribe(lambda: None)

        registry.detach(folders[0])

        assert observer_factory.last.stopped

    def test_attach_failure_logged(self, folders, observer_factory, caplog):
        observer_factory.fail_schedule = True
        registry = WatchRegistry(observer_factory=observer_factory)
        registry.sync(folders[:1])

        with caplog.at_level(logging.WARNING):
            registry.subscribe(lambda: None)

        assert registry.watched_folders == []
        assert any("Failed to watch" in r.getMessage() for r in caplog.records)

    def test_handle_change_calls_hook_then_subscribers(self):
        order = []
        registry = WatchRegistry(on_change=lambda path: order.append(("hook", path)))
        registry.subscribe(lambda: order.append(("subscriber", None)))

        registry.handle_change("/m/a.mp3")

        assert order == [("hook", "/m/a.mp3"), ("subscriber", None)]
        registry.release_all()


class TestFolderEvents:
    @pytest.fixture
    def watched(self, folders, observer_factory):
        changed_paths: list[str] = []
        notified: list[bool] = []
        registry = WatchRegistry(on_change=changed_paths.append, observer_factory=observer_factory)
        registry.sync(folders[:1])
        registry.subscribe(lambda: notified.append(True))
        return folders[0], observer_factory.last, changed_paths, notified

    def test_audio_file_event_notifies(self, watched):
        folder, observer, changed_paths, notified = watched
        observer.emit(FileCreatedEvent(str(folder / "new.mp3")))

        assert changed_paths == [str(folder / "new.mp3")]
        assert notified == [True]

    def test_non_audio_event_ignored(self, watched):
        folder, observer, changed_paths, notified = watched
        observer.emit(FileCreatedEvent(str(folder / "notes.txt")))

        assert notified == []

    def test_directory_event_ignored(self, watched):
        folder, observer, changed_paths, notified = watched
        observer.emit(DirCreatedEvent(str(folder / "New Album")))

        assert notified == []

    def test_rename_to_audio_notifies(self, watched):
        folder, observer, changed_paths, notified = watched
        observer.emit(FileMovedEvent(str(folder / "download.part"), str(folder / "song.flac")))

        assert changed_paths == [str(folder / "song.flac")]
        assert notified == [True]
