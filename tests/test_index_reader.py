"""Tests for BinaryIndexReader -- path extraction, caching, and watch handling."""

from __future__ import annotations

from pathlib import Path

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent

from trackfinder.core.index_reader import BinaryIndexReader, extract_paths
from trackfinder.models.cache_state import CacheState


def write_index(profile_dir: Path, *paths: str, filename: str = "local-files.bnk") -> Path:
    """Write a fake binary index with each path wrapped in junk bytes."""
    profile_dir.mkdir(parents=True, exist_ok=True)
    blob = b"SPBNK\x00\x01"
    for p in paths:
        blob += b"\x12\x00" + p.encode("utf-8") + b"\x00\x08\xff"
    index_file = profile_dir / filename
    index_file.write_bytes(blob)
    return index_file


@pytest.fixture
def users_dir(tmp_path: Path) -> Path:
    root = tmp_path / "Users"
    root.mkdir()
    return root


# ------------------------------------------------------------------
# extract_paths
# ------------------------------------------------------------------


class TestExtractPaths:
    def test_finds_paths_between_junk(self):
        data = b"\x00\x12/Users/me/Music/Song.mp3\x00\x05/Users/me/Other.FLAC\x08"
        assert extract_paths(data) == ["/Users/me/Music/Song.mp3", "/Users/me/Other.FLAC"]

    def test_paths_with_spaces_and_unicode(self):
        data = b"\x01" + "/Music/Beyoncé/01 - Halo (Live).m4a".encode() + b"\x00"
        assert extract_paths(data) == ["/Music/Beyoncé/01 - Halo (Live).m4a"]

    def test_windows_paths(self):
        data = b"\x02C:\\Music\\Artist\\Track.wma\x00"
        assert extract_paths(data) == ["C:\\Music\\Artist\\Track.wma"]

    def test_all_index_extensions(self):
        names = ["a.mp3", "b.m4a", "c.flac", "d.wav", "e.ogg", "f.opus", "g.aac", "h.wma"]
        data = b"".join(b"\x00/m/" + n.encode() for n in names) + b"\x00"
        assert [Path(p).name for p in extract_paths(data)] == names

    def test_extension_must_end_the_name(self):
        assert extract_paths(b"\x00/m/song.mp3x\x00") == []

    def test_non_audio_ignored(self):
        assert extract_paths(b"\x00/m/cover.jpg\x00/m/notes.txt\x00") == []

    def test_empty(self):
        assert extract_paths(b"") == []

    def test_duplicates_kept(self):
        data = b"\x00/m/a.mp3\x00/m/a.mp3\x00"
        assert extract_paths(data) == ["/m/a.mp3", "/m/a.mp3"]


# ------------------------------------------------------------------
# read_all / load_index
# ------------------------------------------------------------------


class TestReadAll:
    def test_reads_every_profile_in_order(self, users_dir: Path):
        write_index(users_dir / "bob-user", "/m/b.mp3")
        write_index(users_dir / "alice-user", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir)

        entries = reader.read_all()

        assert [e.file_path for e in entries] == ["/m/a.mp3", "/m/b.mp3"]
        assert entries[0].display_key == "a"

    def test_deduplicates_across_profiles(self, users_dir: Path):
        write_index(users_dir / "one", "/m/shared.mp3", "/m/only-one.mp3")
        write_index(users_dir / "two", "/m/shared.mp3")
        reader = BinaryIndexReader(users_dir)

        paths = [e.file_path for e in reader.read_all()]

        assert paths == ["/m/shared.mp3", "/m/only-one.mp3"]

    def test_hidden_profiles_and_stray_files_skipped(self, users_dir: Path):
        write_index(users_dir / ".cache", "/m/hidden.mp3")
        (users_dir / "local-files.bnk").write_bytes(b"\x00/m/stray.mp3\x00")
        reader = BinaryIndexReader(users_dir)

        assert reader.read_all() == ()

    def test_profile_without_index(self, users_dir: Path):
        (users_dir / "empty-user").mkdir()
        assert BinaryIndexReader(users_dir).read_all() == ()

    def test_missing_root_is_empty(self, tmp_path: Path):
        reader = BinaryIndexReader(tmp_path / "nowhere")
        assert reader.load_index() == ()

    def test_unreadable_index_skipped(self, users_dir: Path):
        bad = write_index(users_dir / "bad", "/m/bad.mp3")
        write_index(users_dir / "good", "/m/good.mp3")

        def read_bytes(path: Path) -> bytes:
            if path == bad:
                raise PermissionError("denied")
            return path.read_bytes()

        reader = BinaryIndexReader(users_dir, read_bytes=read_bytes)

        assert [e.file_path for e in reader.read_all()] == ["/m/good.mp3"]

    def test_custom_filename(self, users_dir: Path):
        write_index(users_dir / "u", "/m/x.ogg", filename="other.bnk")
        reader = BinaryIndexReader(users_dir, index_filename="other.bnk")
        assert [e.file_path for e in reader.read_all()] == ["/m/x.ogg"]


class TestIndexCaching:
    def test_second_load_uses_cache(self, users_dir: Path):
        write_index(users_dir / "u", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir)

        first = reader.load_index()
        second = reader.load_index()

        assert first is second
        assert reader.cache.load_count == 1

    def test_rewritten_index_reloads(self, users_dir: Path):
        write_index(users_dir / "u", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir)
        assert [e.file_path for e in reader.load_index()] == ["/m/a.mp3"]

        write_index(users_dir / "u", "/m/a.mp3", "/m/sentinel.mp3")

        assert [e.file_path for e in reader.load_index()] == ["/m/a.mp3", "/m/sentinel.mp3"]
        assert reader.cache.load_count == 2

    def test_new_profile_reloads(self, users_dir: Path):
        write_index(users_dir / "u1", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir)
        reader.load_index()

        write_index(users_dir / "u2", "/m/b.mp3")

        assert len(reader.load_index()) == 2

    def test_manual_invalidate(self, users_dir: Path):
        write_index(users_dir / "u", "/m/a.mp3")
        calls = []

        def read_bytes(path: Path) -> bytes:
            calls.append(path)
            return path.read_bytes()

        reader = BinaryIndexReader(users_dir, read_bytes=read_bytes)
        reader.load_index()
        reader.invalidate("test")
        assert reader.cache.state is CacheState.INVALIDATED

        reader.load_index()

        assert len(calls) == 2
        assert reader.cache.state is CacheState.POPULATED


# ------------------------------------------------------------------
# Watching
# ------------------------------------------------------------------


class TestIndexWatch:
    def test_start_and_stop(self, users_dir: Path, observer_factory):
        reader = BinaryIndexReader(users_dir, observer_factory=observer_factory)

        assert reader.start_watching() is True
        assert reader.watching is True
        observer = observer_factory.last
        assert observer.started and observer.daemon
        assert observer.watches[0].path == str(users_dir)

        reader.stop_watching()
        assert reader.watching is False
        assert observer.stopped

    def test_start_is_idempotent(self, users_dir: Path, observer_factory):
        reader = BinaryIndexReader(users_dir, observer_factory=observer_factory)
        reader.start_watching()
        reader.start_watching()
        assert len(observer_factory.built) == 1

    def test_missing_root_not_watched(self, tmp_path: Path, observer_factory):
        reader = BinaryIndexReader(tmp_path / "nowhere", observer_factory=observer_factory)
        assert reader.start_watching() is False
        assert observer_factory.built == []

    def test_index_event_invalidates_and_notifies(self, users_dir: Path, observer_factory):
        index_file = write_index(users_dir / "u", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir, observer_factory=observer_factory)
        notified = []
        reader.on_change = lambda: notified.append(True)
        reader.load_index()
        reader.start_watching()

        observer_factory.last.emit(FileModifiedEvent(str(index_file)))

        assert reader.cache.state is CacheState.INVALIDATED
        assert notified == [True]

    def test_new_profile_dir_invalidates(self, users_dir: Path, observer_factory):
        write_index(users_dir / "u", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir, observer_factory=observer_factory)
        reader.load_index()
        reader.start_watching()

        observer_factory.last.emit(DirCreatedEvent(str(users_dir / "new-user")))

        assert reader.cache.state is CacheState.INVALIDATED

    def test_unrelated_event_ignored(self, users_dir: Path, observer_factory):
        write_index(users_dir / "u", "/m/a.mp3")
        reader = BinaryIndexReader(users_dir, observer_factory=observer_factory)
        reader.load_index()
        reader.start_watching()

        observer_factory.last.emit(FileCreatedEvent(str(users_dir / "u" / "prefs")))
        observer_factory.last.emit(DirCreatedEvent(str(users_dir / "u" / "nested")))

        assert reader.cache.state is CacheState.POPULATED
