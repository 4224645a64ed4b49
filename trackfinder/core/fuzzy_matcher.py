"""Fuzzy similarity for near-miss suggestions when no scoring rule fires."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from rapidfuzz import fuzz, process

from trackfinder.core.normalizer import normalize
from trackfinder.utils.constants import DEFAULT_SUGGESTION_LIMIT, SUGGESTION_SCORE_CUTOFF
from trackfinder.utils.logger import get_logger

logger = get_logger("core.fuzzy_matcher")


class FuzzyMatcher:
    """Ranks filenames by fuzzy similarity to a title.

    Never used to pick a resolution result: exact-rule matching decides
    that. Suggestions only help a user see why a track was not found
    (a typo in a filename, a missing word, a different transliteration).
    """

    def __init__(self, threshold: float = SUGGESTION_SCORE_CUTOFF) -> None:
        """Initialize the fuzzy matcher.

        Args:
            threshold: Minimum score (0-100) for a suggestion to be returned.
        """
        self._threshold = threshold

    def closest(
        self,
        title: str,
        pool: Iterable[tuple[str, Path | str]],
        limit: int = DEFAULT_SUGGESTION_LIMIT,
    ) -> list[tuple[Path, float]]:
        """Find the files whose names are most similar to ``title``.

        Args:
            title: Track title being looked for.
            pool: ``(name, file_path)`` pairs.
            limit: Maximum number of results to return.

        Returns:
            List of (file_path, score) tuples, sorted by score descending.
        """
        query = normalize(title)
        if not query or limit <= 0:
            return []

        names: list[str] = []
        paths: list[Path | str] = []
        for name, file_path in pool:
            names.append(normalize(name))
            paths.append(file_path)
        if not names:
            return []

        results = process.extract(
            query,
            names,
            scorer=fuzz.token_sort_ratio,
            limit=limit,
            score_cutoff=self._threshold,
        )
        logger.debug("%d suggestions for '%s' among %d files", len(results), query, len(names))
        return [(Path(paths[idx]), float(score)) for _name, score, idx in results]
