"""Recommendation, trending and search ranking over a catalog snapshot.

:class:`RelevanceScorer` is stateless apart from its injected random source;
every method takes the :class:`CatalogIndex` snapshot to read from, so a
caller ranks against one consistent catalog even while a refresh is being
published.

Recommendation Score
--------------------
For each candidate entry ``E`` (every entry except the current one):

=====  ==========================================================
+3     ``E`` is popular (popularity >= ``popular_threshold``)
+2     ``E`` shares the current entry's category
+n     one point per tag shared with the current entry
+n     one point per tag matching the user's preference tags
+1     ``E`` has the current entry's difficulty level
-2     ``E`` was used recently
+j     jitter, uniform in [0, ``jitter_max``)
=====  ==========================================================

The current-entry terms only apply when a current entry is given.  Jitter
varies the order of near-ties between requests; ``jitter_max`` is kept below
1 so it can never overturn a whole-point difference.  Candidates are sorted
by descending score with a stable sort, so equal scores keep catalog order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from artcatalog.core.catalog_index import CatalogIndex
from artcatalog.core.models import CatalogEntry, ScoredEntry
from artcatalog.core.randomness import RandomSource, default_random_source, uniform
from artcatalog.core.validation import (
    ValidationError,
    normalize_ids,
    normalize_tags,
    validate_limit,
)

logger = logging.getLogger(__name__)

POPULAR_BONUS = 3.0
CATEGORY_AFFINITY_BONUS = 2.0
TAG_OVERLAP_POINTS = 1.0
PREFERENCE_TAG_POINTS = 1.0
DIFFICULTY_MATCH_BONUS = 1.0
RECENTLY_USED_PENALTY = 2.0

# preference_relevance() bonus for popular entries
PREFERENCE_POPULARITY_BONUS = 0.2


class RelevanceScorer:
    """Ranks catalog entries for recommendation, trending and search views.

    Attributes:
        _rng (RandomSource): Source of recommendation jitter.
        _popular_threshold (float): Popularity at which the popular bonus applies.
        _jitter_max (float): Exclusive upper bound of the jitter.
    """

    def __init__(
        self,
        rng: RandomSource | None = None,
        popular_threshold: float = 70.0,
        jitter_max: float = 0.5,
    ) -> None:
        """Initialise the scorer.

        Args:
            rng: Random source for jitter.  Defaults to an unseeded generator.
            popular_threshold: Popularity (0-100) that earns the popular bonus.
            jitter_max: Upper bound of the jitter, in [0, 1).

        Raises:
            ValueError: If ``jitter_max`` is outside [0, 1).
        """
        if not 0.0 <= jitter_max < 1.0:
            raise ValueError(f"jitter_max must be in [0, 1), got {jitter_max}")

        self._rng = rng if rng is not None else default_random_source()
        self._popular_threshold = popular_threshold
        self._jitter_max = jitter_max

    @property
    def popular_threshold(self) -> float:
        return self._popular_threshold

    # -- Recommendations ----------------------------------------------------

    def score_candidate(
        self,
        entry: CatalogEntry,
        current: CatalogEntry | None = None,
        preference_tags: frozenset[str] = frozenset(),
        recently_used_ids: frozenset[str] = frozenset(),
    ) -> float:
        """Return the structural score of ``entry`` (no jitter)."""
        score = 0.0

        if entry.is_popular(self._popular_threshold):
            score += POPULAR_BONUS

        if current is not None:
            if entry.category_id == current.category_id:
                score += CATEGORY_AFFINITY_BONUS
            score += TAG_OVERLAP_POINTS * len(entry.tags & current.tags)
            if entry.difficulty_level == current.difficulty_level:
                score += DIFFICULTY_MATCH_BONUS

        if preference_tags:
            score += PREFERENCE_TAG_POINTS * len(entry.tags & preference_tags)

        if entry.id in recently_used_ids:
            score -= RECENTLY_USED_PENALTY

        return score

    def recommend(
        self,
        index: CatalogIndex,
        current_entry_id: str | None = None,
        user_preference_tags: Iterable[str] | None = None,
        recently_used_ids: Iterable[str] | None = None,
        limit: int = 6,
    ) -> list[ScoredEntry]:
        """Recommend entries related to the current selection.

        Args:
            index: Catalog snapshot to rank.
            current_entry_id: Currently selected entry, excluded from results.
                An id that is not in the catalog is treated as no selection.
            user_preference_tags: Tags the user prefers.
            recently_used_ids: Entries the user used recently (penalised).
            limit: Maximum number of results.

        Returns:
            At most ``limit`` scored entries, best first.  Fewer when the
            catalog has fewer candidates; empty when it has none.

        Raises:
            ValidationError: If ``limit`` is not a positive integer.
        """
        validate_limit(limit)
        preferences = normalize_tags(user_preference_tags)
        recent = normalize_ids(recently_used_ids)

        current = index.get_entry_by_id(current_entry_id) if current_entry_id else None
        if current_entry_id and current is None:
            logger.debug("Current entry %r not in catalog; ranking without it", current_entry_id)

        scored: list[ScoredEntry] = []
        for entry in index.all_entries():
            if entry.id == current_entry_id:
                continue
            score = self.score_candidate(entry, current, preferences, recent)
            score += self._jitter()
            scored.append(ScoredEntry(entry=entry, score=score))

        # sort() is stable: ties keep catalog order
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:limit]

    def _jitter(self) -> float:
        if self._jitter_max == 0.0:
            return 0.0
        return uniform(self._rng, 0.0, self._jitter_max)

    # -- Popularity views ---------------------------------------------------

    def trending(self, index: CatalogIndex, limit: int | None = None) -> list[ScoredEntry]:
        """Return entries by descending popularity.

        Raises:
            ValidationError: If ``limit`` is given and not a positive integer.
        """
        if limit is not None:
            validate_limit(limit)

        ranked = sorted(index.all_entries(), key=lambda entry: entry.popularity, reverse=True)
        if limit is not None:
            ranked = ranked[:limit]
        return [ScoredEntry(entry=entry, score=entry.popularity) for entry in ranked]

    def search(
        self, index: CatalogIndex, query: str, limit: int | None = None
    ) -> list[ScoredEntry]:
        """Search the catalog and order matches by popularity.

        Matching is :meth:`CatalogIndex.search_entries`; equal popularity
        keeps catalog order.

        Raises:
            ValidationError: If ``query`` is not a string or ``limit`` is
                given and not a positive integer.
        """
        if not isinstance(query, str):
            raise ValidationError("Search query must be a string")
        if limit is not None:
            validate_limit(limit)

        matches = sorted(
            index.search_entries(query), key=lambda entry: entry.popularity, reverse=True
        )
        if limit is not None:
            matches = matches[:limit]
        return [ScoredEntry(entry=entry, score=entry.popularity) for entry in matches]

    # -- Preference relevance -----------------------------------------------

    def preference_relevance(self, entry: CatalogEntry, preference_tags: Iterable[str]) -> float:
        """Return how well ``entry`` matches a preference set, in [0, 1].

        The fraction of preference tags the entry carries, plus a small
        bonus for popular entries, capped at 1.0.
        """
        preferences = normalize_tags(preference_tags)
        matched = len(entry.tags & preferences)
        score = matched / max(len(preferences), 1)
        if entry.is_popular(self._popular_threshold):
            score += PREFERENCE_POPULARITY_BONUS
        return min(score, 1.0)

    def recommend_for_preferences(
        self, index: CatalogIndex, preference_tags: Iterable[str], limit: int = 10
    ) -> list[ScoredEntry]:
        """Rank the whole catalog by :meth:`preference_relevance`.

        Raises:
            ValidationError: If ``limit`` is not a positive integer.
        """
        validate_limit(limit)
        preferences = normalize_tags(preference_tags)

        scored = [
            ScoredEntry(entry=entry, score=self.preference_relevance(entry, preferences))
            for entry in index.all_entries()
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:limit]
