"""Named constants for Track Finder. No magic numbers."""

import os as _os
import sys as _sys
from pathlib import Path as _Path

# --- Application ---
APP_NAME = "Track Finder"
APP_VERSION = "0.1.0"

# --- Locators ---
# Prefixes that mark a locator as a locally-stored track.
LOCAL_TRACK_PREFIXES = ("spotify:local:", "local-track:")
LOCATOR_SEPARATOR = ":"
MIN_LOCATOR_FIELDS = 3

# --- Supported Audio Extensions ---
# Extensions the folder scanner considers.
SCAN_EXTENSIONS = frozenset({
    ".mp3",
    ".m4a",
    ".flac",
    ".wav",
    ".ogg",
    ".opus",
})

# The index reader additionally recognizes these when extracting paths.
INDEX_EXTENSIONS = SCAN_EXTENSIONS | frozenset({".aac", ".wma"})

# Formats that earn the quality bonus over lossy alternatives.
LOSSLESS_EXTENSIONS = frozenset({".flac", ".wav"})

# --- External Binary Index ---
INDEX_FILENAME = "local-files.bnk"


def _default_index_root() -> _Path:
    home = _Path.home()
    if _sys.platform == "darwin":
        return home / "Library" / "Application Support" / "Spotify" / "Users"
    if _sys.platform == "win32":
        appdata = _os.environ.get("APPDATA")
        base = _Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "Spotify" / "Users"
    return home / ".config" / "spotify" / "Users"


DEFAULT_INDEX_ROOT = _default_index_root()

# --- Directory Scanning ---
DEFAULT_MAX_SCAN_DEPTH = 5
MAX_SCAN_DEPTH_LIMIT = 10

# Directory names never descended into (package caches, OS trees).
DENIED_DIRECTORY_NAMES = frozenset({
    "node_modules",
    "__pycache__",
    "site-packages",
    "Library",
    "System",
    "Applications",
    "Windows",
    "Program Files",
    "Program Files (x86)",
    "ProgramData",
    "AppData",
    "$RECYCLE.BIN",
    "System Volume Information",
})

# --- Match Scoring (first firing rule wins) ---
SCORE_EXACT = 100
SCORE_ARTIST_ASSISTED = 85
SCORE_ORDINAL_STRIPPED = 80
SCORE_QUALIFIER_STRIPPED = 75
SCORE_QUALIFIER_AND_ORDINAL_STRIPPED = 70
SCORE_CONTAINS_QUALIFIER_STRIPPED = 50
SCORE_CONTAINS_ORDINAL_STRIPPED = 45
SCORE_CONTAINS_BOTH_STRIPPED = 40
SCORE_SPACE_BLIND = 30

# --- Match Bonuses ---
BONUS_ALBUM_IN_PATH = 20
BONUS_LOSSLESS = 5

# --- Rule Guards ---
MIN_CONTAINMENT_TITLE_LENGTH = 4  # Shorter titles are too ambiguous for substring matching
MIN_SPACE_BLIND_TITLE_LENGTH = 5

# --- Result Filtering ---
DEFAULT_MIN_SCORE = 0
MAX_MIN_SCORE = 200

# --- Fuzzy Suggestions ---
DEFAULT_SUGGESTION_LIMIT = 5
SUGGESTION_SCORE_CUTOFF = 60  # Minimum rapidfuzz score (0-100) for a suggestion

# --- Paths ---
DEFAULT_CONFIG_FILENAME = "config.yaml"
