"""Typed configuration model for Track Finder.

The engine only ever reads configuration. All values have explicit types,
defaults, and documentation; persistence belongs to whoever hosts the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from trackfinder.utils.constants import (
    DEFAULT_INDEX_ROOT,
    DEFAULT_MAX_SCAN_DEPTH,
    DEFAULT_MIN_SCORE,
    INDEX_FILENAME,
)
from trackfinder.utils.file_utils import expand_folder


@dataclass
class AppConfig:
    """Strongly-typed configuration for the Track Finder engine.

    Attributes:
        music_folders: Ordered list of root folders searched when the
            external index has no match.
        index_root: Directory holding one subdirectory per player profile.
            If empty, uses the platform default.
        index_filename: Name of the binary index file in each profile directory.
        max_scan_depth: How many directory levels below each root are scanned.
        min_score: Candidates scoring below this are discarded.
        verify_index_paths: If True, an index match whose file no longer
            exists falls through to the folder scan.
        watch_enabled: Whether to attach filesystem watches at all. When
            disabled, invalidation relies on modification-time checks only.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file (None = console only).
    """

    # --- Search Roots ---
    music_folders: list[str] = field(default_factory=list)

    # --- External Index ---
    index_root: str = ""
    index_filename: str = INDEX_FILENAME
    verify_index_paths: bool = True

    # --- Scanning / Scoring ---
    max_scan_depth: int = DEFAULT_MAX_SCAN_DEPTH
    min_score: float = DEFAULT_MIN_SCORE

    # --- Watching ---
    watch_enabled: bool = True

    # --- Logging ---
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Create an AppConfig from a raw dictionary (e.g., from YAML).

        Unknown keys are silently ignored so YAML files with extra comments
        or future keys don't break older code.

        Args:
            data: Dictionary of configuration values.

        Returns:
            Populated AppConfig instance.
        """
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields and v is not None}
        if "music_folders" in filtered:
            filtered["music_folders"] = list(filtered["music_folders"])
        return cls(**filtered)

    def to_dict(self) -> dict:
        """Serialize the config to a dictionary.

        Returns:
            Dictionary of all configuration values.
        """
        from dataclasses import asdict
        return asdict(self)

    @property
    def index_root_resolved(self) -> Path:
        """Return the index root as an absolute Path, falling back to the platform default."""
        if not self.index_root:
            return DEFAULT_INDEX_ROOT
        return expand_folder(self.index_root)

    @property
    def music_folders_resolved(self) -> list[Path]:
        """Return the configured folders as absolute Paths, in order."""
        return [expand_folder(folder) for folder in self.music_folders if folder]
