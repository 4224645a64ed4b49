"""Path helpers shared by the index reader, scanner, and watchers."""

from __future__ import annotations

from pathlib import Path, PurePath

from trackfinder.utils.constants import (
    LOSSLESS_EXTENSIONS,
    SCAN_EXTENSIONS,
)


def is_audio_file(path: PurePath | str) -> bool:
    """Check if a file has an extension the folder scanner considers.

    Args:
        path: Path to check.

    Returns:
        True if the file extension is a supported audio format.
    """
    return PurePath(path).suffix.lower() in SCAN_EXTENSIONS


def is_lossless(path: PurePath | str) -> bool:
    """Check if a file is in a lossless / high-fidelity format."""
    return PurePath(path).suffix.lower() in LOSSLESS_EXTENSIONS


def is_hidden(name: str) -> bool:
    """Dotfiles and dot-directories are skipped everywhere."""
    return name.startswith(".")


def display_key(path: PurePath | str) -> str:
    """Lowercased filename without its extension.

    Handles both POSIX and Windows separators, since index files written on
    one platform may be read on another.

    Args:
        path: File path as stored by the external application.

    Returns:
        Key used to identify the file during matching.
    """
    raw = str(path).replace("\\", "/")
    name = raw.rsplit("/", 1)[-1]
    stem, dot, _ext = name.rpartition(".")
    return (stem if dot else name).lower()


def expand_folder(folder: str | Path) -> Path:
    """Expand ``~`` and make a configured folder absolute without resolving symlinks."""
    return Path(folder).expanduser().absolute()
