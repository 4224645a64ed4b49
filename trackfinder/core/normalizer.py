"""Text normalization -- reduces display strings to comparison keys."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from unidecode import unidecode

_QUALIFIER_RE = re.compile(r"\s*[\(\[].*?[\)\]]")
# Runs on the finished key, where separators are already single spaces
_LEADING_ORDINAL_RE = re.compile(r"^(?:\d+ ?)+")
_SEPARATOR_RE = re.compile(r"[/._\-&]")
_WS_RE = re.compile(r"\s+")


@lru_cache(maxsize=4096)
def _transliterate_char(char: str) -> str:
    if char.isascii():
        return char
    ascii_form = unidecode(char)
    if ascii_form.strip():
        return ascii_form
    # No transliteration entry: keep letters and digits so non-Latin titles
    # stay comparable, drop everything else.
    return char if char.isalnum() else " "


def _transliterate(text: str) -> str:
    return "".join(_transliterate_char(char) for char in text)


def _to_key(text: str) -> str:
    lowered = _transliterate(text).lower()
    cleaned = "".join(char if char.isalnum() else " " for char in lowered)
    return _WS_RE.sub(" ", cleaned).strip()


def normalize(
    text: str | None,
    strip_qualifiers: bool = False,
    strip_leading_ordinal: bool = False,
) -> str:
    """Reduce a raw string to its canonical comparison key.

    The key is lowercase, transliterated to ASCII where an equivalent exists,
    and contains only letters, digits, and single spaces.

    Args:
        text: Raw title, artist, album, or filename stem.
        strip_qualifiers: Remove parenthesized/bracketed spans such as
            "(Live)", "(feat. X)" or "[Remix]".
        strip_leading_ordinal: Remove leading track numbers such as "01. ",
            repeatedly, so the key never starts with a digit.

    Returns:
        The normalized key. Empty for empty or punctuation-only input.
    """
    if not text:
        return ""

    s = text
    if strip_qualifiers:
        s = _QUALIFIER_RE.sub("", s)
    s = s.replace("%", "")
    s = _SEPARATOR_RE.sub(" ", s)
    key = _to_key(s)
    if strip_leading_ordinal:
        key = _LEADING_ORDINAL_RE.sub("", key).lstrip()
    return key


def space_blind(key: str) -> str:
    """Remove all whitespace, for detecting "Whole Lotta Red" vs "WholeLottaRed"."""
    return _WS_RE.sub("", key)


@dataclass(frozen=True)
class TitleKeys:
    """All key variants derived from one display string.

    Attributes:
        full: Plain normalized key.
        no_qualifiers: Key with bracketed spans removed.
        no_ordinal: Key with the leading track number removed.
        no_qualifiers_no_ordinal: Key with both removed.
        space_blind: ``full`` with all whitespace removed.
    """

    full: str
    no_qualifiers: str
    no_ordinal: str
    no_qualifiers_no_ordinal: str
    space_blind: str


def title_keys(text: str | None) -> TitleKeys:
    """Derive every comparison variant of ``text`` in one pass."""
    full = normalize(text)
    return TitleKeys(
        full=full,
        no_qualifiers=normalize(text, strip_qualifiers=True),
        no_ordinal=normalize(text, strip_leading_ordinal=True),
        no_qualifiers_no_ordinal=normalize(
            text, strip_qualifiers=True, strip_leading_ordinal=True
        ),
        space_blind=space_blind(full),
    )
