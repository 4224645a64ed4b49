"""Locator parsing -- decodes a local-track locator into a TrackDescriptor."""

from __future__ import annotations

from urllib.parse import unquote_plus

from trackfinder.models.track import TrackDescriptor
from trackfinder.utils.constants import (
    LOCAL_TRACK_PREFIXES,
    LOCATOR_SEPARATOR,
    MIN_LOCATOR_FIELDS,
)
from trackfinder.utils.logger import get_logger

logger = get_logger("core.locator")


def is_local_locator(locator: object) -> bool:
    """Check if a locator names a locally-stored track."""
    return isinstance(locator, str) and locator.startswith(LOCAL_TRACK_PREFIXES)


def _decode_field(value: str) -> str:
    # Form decoding: "+" is a space, then percent escapes (lenient on bad escapes)
    return unquote_plus(value, encoding="utf-8", errors="replace")


def _parse_duration(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def parse_locator(locator: object) -> TrackDescriptor | None:
    """Decode ``<prefix><artist>:<album>:<title>:<seconds>`` into a descriptor.

    Streaming-track locators, unknown prefixes, and locators with fewer than
    three fields all yield None. Empty fields are allowed.

    Args:
        locator: Opaque track locator reported by the player.

    Returns:
        The decoded TrackDescriptor, or None if the locator is not a
        well-formed local-track locator.
    """
    if not is_local_locator(locator):
        return None

    prefix = next(p for p in LOCAL_TRACK_PREFIXES if locator.startswith(p))
    parts = locator[len(prefix):].split(LOCATOR_SEPARATOR)
    if len(parts) < MIN_LOCATOR_FIELDS:
        logger.debug("Locator has too few fields: %r", locator)
        return None

    artist, album, title = (_decode_field(p) for p in parts[:MIN_LOCATOR_FIELDS])
    duration = _parse_duration(parts[MIN_LOCATOR_FIELDS]) if len(parts) > MIN_LOCATOR_FIELDS else None

    return TrackDescriptor(
        artist=artist,
        album=album,
        title=title,
        duration_seconds=duration,
    )
