"""Track data models -- the descriptor being resolved and the files it may match."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class TrackDescriptor:
    """What the player says is playing, decoded from a local-track locator.

    Attributes:
        artist: Artist name (may be empty).
        album: Album name (may be empty).
        title: Track title (may be empty).
        duration_seconds: Duration from the locator's fourth field, if present.
    """

    artist: str
    album: str
    title: str
    duration_seconds: int | None = None

    @property
    def display_label(self) -> str:
        """Human-readable label for log lines."""
        parts = [p for p in (self.artist, self.title) if p]
        label = " - ".join(parts) if parts else "(Unknown)"
        if self.album:
            label += f" [{self.album}]"
        return label


@dataclass(frozen=True)
class IndexEntry:
    """One file path embedded in the external application's binary index.

    Attributes:
        display_key: Lowercased filename without extension.
        file_path: Absolute path exactly as stored in the index.
    """

    display_key: str
    file_path: str


@dataclass(frozen=True)
class Candidate:
    """A file that fired a scoring rule during one resolution attempt.

    Attributes:
        file_path: Path to the candidate file.
        score: Base rule score plus bonuses.
        rule: Name of the scoring rule that fired.
    """

    file_path: Path
    score: float
    rule: str = ""


@dataclass
class FolderWatchState:
    """A configured root folder and the watch handle observing it.

    Attributes:
        path: The watched folder.
        handle: Opaque handle returned by the observer's ``schedule()``.
    """

    path: Path
    handle: Any = None
