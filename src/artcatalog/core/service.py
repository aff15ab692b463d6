"""Catalog service: the engine's single entry point for request handlers.

:class:`CatalogService` wires together the catalog snapshot holder, the
relevance scorer, the scoring cache and the rarity drawer.  It is an
ordinary object built once at startup and handed to whatever needs it;
there is no module-level service instance.

Key Responsibilities
--------------------
- **Cached ranking** — ``recommend``, ``trending``, ``search`` and
  ``recommend_for_preferences`` are served from :class:`ScoringCache` when a
  fresh result exists.  Keys include the catalog generation, so a reload
  never serves results computed against an older snapshot.
- **Fail-open caching** — a cache failure is logged and the result is
  recomputed; callers never see cache errors.
- **Catalog refresh** — ``reload()`` builds a new snapshot, swaps it in and
  clears the cache.
- **Rarity** — ``draw()`` delegates to :class:`RarityDrawer`.

Usage
-----
::

    from artcatalog.core.config import config
    from artcatalog.core.service import CatalogService

    service = CatalogService.from_config(config)
    picks = service.recommend(current_entry_id="wizard", limit=6)
    rarity = service.draw("masterpiece epic dragon, 8k")
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from artcatalog.core.catalog_index import CatalogIndex, CatalogIndexHolder
from artcatalog.core.catalog_loader import load_catalog
from artcatalog.core.config import CatalogConfig
from artcatalog.core.models import Category, RarityResult, ScoredEntry
from artcatalog.core.randomness import RandomSource
from artcatalog.core.rarity import RarityDrawer
from artcatalog.core.scorer import RelevanceScorer
from artcatalog.core.scoring_cache import (
    MISS,
    CacheStats,
    ScoringCache,
    keys_mentioning,
    keys_with_param,
    make_cache_key,
)
from artcatalog.core.validation import normalize_ids, normalize_tags, validate_limit

logger = logging.getLogger(__name__)


class CatalogService:
    """Facade over the catalog engine components.

    Attributes:
        _config (CatalogConfig): TTLs and defaults.
        _holder (CatalogIndexHolder): Active catalog snapshot.
        _scorer (RelevanceScorer): Ranking logic.
        _cache (ScoringCache): Cached ranking results.
        _drawer (RarityDrawer): Rarity assignment.
    """

    def __init__(
        self,
        config: CatalogConfig,
        holder: CatalogIndexHolder | None = None,
        scorer: RelevanceScorer | None = None,
        cache: ScoringCache[list[ScoredEntry]] | None = None,
        drawer: RarityDrawer | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        """Initialise the service.

        Args:
            config: Engine configuration.
            holder: Snapshot holder.  Defaults to an empty catalog.
            scorer: Relevance scorer.  Defaults to one built from ``config``.
            cache: Result cache.  Defaults to one built from ``config``.
            drawer: Rarity drawer.
            rng: Random source shared by the default scorer and drawer.
        """
        self._config = config
        self._holder = holder if holder is not None else CatalogIndexHolder()
        # Explicit None checks: an empty ScoringCache is falsy (it defines __len__)
        if scorer is None:
            scorer = RelevanceScorer(
                rng=rng,
                popular_threshold=config.popular_threshold,
                jitter_max=config.jitter_max,
            )
        if cache is None:
            cache = ScoringCache(
                default_ttl_ms=config.recommend_cache_ttl_ms,
                stripes=config.cache_lock_stripes,
            )
        self._scorer = scorer
        self._cache: ScoringCache[list[ScoredEntry]] = cache
        self._drawer = drawer if drawer is not None else RarityDrawer(rng=rng)

    @classmethod
    def from_config(cls, config: CatalogConfig, rng: RandomSource | None = None) -> CatalogService:
        """Build a service and load the catalog named by ``config.catalog_path``.

        Raises:
            CatalogError: If the catalog file cannot be loaded.
        """
        service = cls(config, rng=rng)
        service.reload(load_catalog(config.catalog_path))
        return service

    @property
    def index(self) -> CatalogIndex:
        return self._holder.current

    @property
    def cache(self) -> ScoringCache[list[ScoredEntry]]:
        return self._cache

    # -- Catalog lifecycle --------------------------------------------------

    def reload(self, categories: Iterable[Category]) -> CatalogIndex:
        """Replace the active catalog and drop every cached result.

        Raises:
            CatalogError: If the categories are inconsistent.  The previous
                catalog and cache stay in place.
        """
        index = self._holder.rebuild(categories)
        self._cache.clear()
        logger.info("Catalog reloaded: generation %d", self._holder.generation)
        return index

    def invalidate_entry(self, entry_id: str) -> int:
        """Drop cached results whose query references ``entry_id``."""
        return self._cache.invalidate(keys_mentioning(entry_id))

    # -- Ranking ------------------------------------------------------------

    def recommend(
        self,
        current_entry_id: str | None = None,
        user_preference_tags: Iterable[str] | None = None,
        recently_used_ids: Iterable[str] | None = None,
        limit: int | None = None,
        user_id: str | None = None,
    ) -> list[ScoredEntry]:
        """Cached :meth:`RelevanceScorer.recommend`.

        ``user_id`` only scopes the cache key so per-user results can be
        invalidated with :meth:`invalidate_user`.

        Raises:
            ValidationError: If ``limit`` is not a positive integer.
        """
        limit = self._config.default_recommend_limit if limit is None else validate_limit(limit)
        preferences = normalize_tags(user_preference_tags)
        recent = normalize_ids(recently_used_ids)

        index, generation = self._holder.snapshot()
        key = make_cache_key(
            "recommend",
            gen=generation,
            user=user_id,
            current=current_entry_id,
            prefs=preferences,
            recent=recent,
            limit=limit,
        )
        return self._cached(
            key,
            lambda: self._scorer.recommend(index, current_entry_id, preferences, recent, limit),
            self._config.recommend_cache_ttl_ms,
        )

    def trending(self, limit: int | None = None) -> list[ScoredEntry]:
        """Cached :meth:`RelevanceScorer.trending`."""
        if limit is not None:
            validate_limit(limit)

        index, generation = self._holder.snapshot()
        key = make_cache_key("trending", gen=generation, limit=limit)
        return self._cached(
            key,
            lambda: self._scorer.trending(index, limit),
            self._config.trending_cache_ttl_ms,
        )

    def search(self, query: str, limit: int | None = None) -> list[ScoredEntry]:
        """Cached :meth:`RelevanceScorer.search`.

        Queries differing only in case or surrounding whitespace share a
        cache slot.
        """
        if limit is not None:
            validate_limit(limit)

        index, generation = self._holder.snapshot()
        normalized = query.strip().lower() if isinstance(query, str) else query
        key = make_cache_key("search", gen=generation, query=normalized, limit=limit)
        return self._cached(
            key,
            lambda: self._scorer.search(index, query, limit),
            self._config.search_cache_ttl_ms,
        )

    def recommend_for_preferences(
        self,
        preference_tags: Iterable[str],
        limit: int | None = None,
        user_id: str | None = None,
    ) -> list[ScoredEntry]:
        """Cached :meth:`RelevanceScorer.recommend_for_preferences`."""
        limit = self._config.default_recommend_limit if limit is None else validate_limit(limit)
        preferences = normalize_tags(preference_tags)

        index, generation = self._holder.snapshot()
        key = make_cache_key(
            "preferences", gen=generation, user=user_id, prefs=preferences, limit=limit
        )
        return self._cached(
            key,
            lambda: self._scorer.recommend_for_preferences(index, preferences, limit),
            self._config.recommend_cache_ttl_ms,
        )

    def invalidate_user(self, user_id: str) -> int:
        """Drop cached results scoped to ``user_id``."""
        return self._cache.invalidate(keys_with_param("user", user_id))

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    # -- Rarity -------------------------------------------------------------

    def draw(self, source_text: str) -> RarityResult:
        return self._drawer.draw(source_text)

    # -- Internals ----------------------------------------------------------

    def _cached(
        self, key: str, compute: Callable[[], list[ScoredEntry]], ttl_ms: int
    ) -> list[ScoredEntry]:
        try:
            cached = self._cache.lookup(key)
        except Exception:
            logger.exception("Cache read failed for %s; recomputing", key)
            cached = MISS

        if cached is not MISS:
            return list(cached)

        result = compute()
        try:
            self._cache.set(key, result, ttl_ms)
        except Exception:
            logger.exception("Cache write failed for %s", key)
        # Each caller gets its own list; the cached one is never handed out
        return list(result)
