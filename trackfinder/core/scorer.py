"""Match scoring -- picks the file that best fits a track descriptor."""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Iterable

from trackfinder.core.normalizer import TitleKeys, normalize, title_keys
from trackfinder.models.track import Candidate, TrackDescriptor
from trackfinder.utils.constants import (
    BONUS_ALBUM_IN_PATH,
    BONUS_LOSSLESS,
    DEFAULT_MIN_SCORE,
    MIN_CONTAINMENT_TITLE_LENGTH,
    MIN_SPACE_BLIND_TITLE_LENGTH,
    SCORE_ARTIST_ASSISTED,
    SCORE_CONTAINS_BOTH_STRIPPED,
    SCORE_CONTAINS_ORDINAL_STRIPPED,
    SCORE_CONTAINS_QUALIFIER_STRIPPED,
    SCORE_EXACT,
    SCORE_ORDINAL_STRIPPED,
    SCORE_QUALIFIER_AND_ORDINAL_STRIPPED,
    SCORE_QUALIFIER_STRIPPED,
    SCORE_SPACE_BLIND,
)
from trackfinder.utils.file_utils import is_lossless
from trackfinder.utils.logger import get_logger

logger = get_logger("core.scorer")


def _eq(a: str, b: str) -> bool:
    return bool(a) and a == b


def _within(needle: str, haystack: str) -> bool:
    return bool(needle) and bool(haystack) and needle in haystack


def _overlaps(a: str, b: str) -> bool:
    return _within(a, b) or _within(b, a)


class DescriptorKeys:
    """Normalized keys of one descriptor, computed once per resolution.

    Attributes:
        title: All variants of the title.
        artist: Normalized artist key ("" if unknown).
        album: Normalized album key ("" if unknown).
    """

    __slots__ = ("title", "artist", "album")

    def __init__(self, descriptor: TrackDescriptor) -> None:
        self.title: TitleKeys = title_keys(descriptor.title)
        self.artist = normalize(descriptor.artist)
        self.album = normalize(descriptor.album)


class MatchScorer:
    """Scores candidate files against a descriptor with a fixed rule ladder.

    Exactly one rule is awarded per candidate: the first that fires, in
    this order:

    - exact: 100
    - qualifiers stripped from both sides: 75
    - leading ordinal stripped from the candidate: 80
    - both stripped: 70
    - title contained in candidate, or candidate in title (title >= 4 chars):
      50 / 45 / 40
    - space-blind containment (title >= 5 chars): 30
    - candidate contains both artist and title: 85

    Then bonuses: +20 when the album appears in the containing directory (or
    anywhere in the path, for index entries),
    +5 for lossless formats. A candidate that fires no rule is dropped.
    """

    def __init__(self, min_score: float = DEFAULT_MIN_SCORE) -> None:
        """Initialize the scorer.

        Args:
            min_score: Candidates whose total falls below this are discarded.
        """
        self._min_score = min_score

    def base_score(self, keys: DescriptorKeys, name: str) -> tuple[int, str] | None:
        """Award the first rule that fires for a candidate name.

        Args:
            keys: Precomputed descriptor keys.
            name: Candidate filename stem (or index display key).

        Returns:
            ``(score, rule_name)``, or None if no rule fires.
        """
        title = keys.title
        cand = title_keys(name)

        if _eq(cand.full, title.full):
            return SCORE_EXACT, "exact"
        if _eq(cand.no_qualifiers, title.no_qualifiers):
            return SCORE_QUALIFIER_STRIPPED, "qualifiers_stripped"
        if _eq(cand.no_ordinal, title.full):
            return SCORE_ORDINAL_STRIPPED, "ordinal_stripped"
        if _eq(cand.no_qualifiers_no_ordinal, title.no_qualifiers):
            return SCORE_QUALIFIER_AND_ORDINAL_STRIPPED, "qualifiers_and_ordinal_stripped"

        if len(title.no_qualifiers) >= MIN_CONTAINMENT_TITLE_LENGTH:
            if _overlaps(title.no_qualifiers, cand.no_qualifiers):
                return SCORE_CONTAINS_QUALIFIER_STRIPPED, "contains"
            if _overlaps(title.no_qualifiers, cand.no_ordinal):
                return SCORE_CONTAINS_ORDINAL_STRIPPED, "contains_ordinal_stripped"
            if _overlaps(title.no_qualifiers, cand.no_qualifiers_no_ordinal):
                return SCORE_CONTAINS_BOTH_STRIPPED, "contains_both_stripped"

        if len(title.space_blind) >= MIN_SPACE_BLIND_TITLE_LENGTH and cand.space_blind:
            if title.space_blind in cand.space_blind or cand.space_blind in title.space_blind:
                return SCORE_SPACE_BLIND, "space_blind"

        if _within(keys.artist, cand.full) and (
            _within(title.full, cand.full) or _within(title.no_qualifiers, cand.full)
        ):
            return SCORE_ARTIST_ASSISTED, "artist_assisted"

        return None

    def score(
        self,
        keys: DescriptorKeys,
        name: str,
        file_path: Path | str,
        album_in_full_path: bool = False,
    ) -> Candidate | None:
        """Score one candidate file, including bonuses.

        Args:
            keys: Precomputed descriptor keys.
            name: Candidate filename stem (or index display key).
            file_path: Where the candidate lives.
            album_in_full_path: Look for the album anywhere in the path rather
                than only in the containing directory (index entries).

        Returns:
            A Candidate, or None if no rule fired or the total is below min_score.
        """
        awarded = self.base_score(keys, name)
        if awarded is None:
            return None

        total, rule = awarded
        album_scope = file_path if album_in_full_path else PurePath(file_path).parent
        if keys.album and keys.album in normalize(str(album_scope)):
            total += BONUS_ALBUM_IN_PATH
        if is_lossless(file_path):
            total += BONUS_LOSSLESS

        if total < self._min_score:
            return None
        return Candidate(file_path=Path(file_path), score=total, rule=rule)

    def match(
        self,
        descriptor: TrackDescriptor,
        pool: Iterable[tuple[str, Path | str]],
        album_in_full_path: bool = False,
    ) -> Candidate | None:
        """Pick the best candidate from a pool.

        Args:
            descriptor: The track being resolved.
            pool: ``(name, file_path)`` pairs in discovery order.
            album_in_full_path: Passed through to ``score()``.

        Returns:
            The highest-scoring Candidate (earliest wins ties), or None.
        """
        keys = DescriptorKeys(descriptor)
        best: Candidate | None = None
        considered = 0

        for name, file_path in pool:
            considered += 1
            candidate = self.score(keys, name, file_path, album_in_full_path)
            if candidate is None:
                continue
            logger.debug(
                "Candidate '%s' -> %s (+bonuses) = %.0f",
                file_path,
                candidate.rule,
                candidate.score,
            )
            if best is None or candidate.score > best.score:
                best = candidate

        logger.debug(
            "Matched '%s' against %d candidates: %s",
            descriptor.display_label,
            considered,
            best.file_path if best else "no match",
        )
        return best
