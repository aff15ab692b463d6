"""Read-optimised catalog snapshot and its atomic-swap holder.

A :class:`CatalogIndex` is built once from the categories supplied by the
catalog loader and never mutated afterwards.  Refreshing the catalog means
building a new index and publishing it through :class:`CatalogIndexHolder`;
readers that grabbed the previous snapshot keep using it until they finish.

Usage
-----
::

    from artcatalog.core.catalog_index import CatalogIndexHolder
    from artcatalog.core.catalog_loader import load_catalog

    holder = CatalogIndexHolder()
    holder.rebuild(load_catalog(path))

    index = holder.current
    entry = index.get_entry_by_id("marvel-hero")
    matches = index.search_entries("dragon")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from artcatalog.core.models import CatalogEntry, CatalogStats, Category, Difficulty

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when catalog data cannot form a consistent index."""

    pass


class CatalogIndex:
    """Immutable, in-memory view over categories and their entries.

    Attributes:
        _categories (tuple[Category, ...]):
            Categories in ascending ``sort_order`` (stable for equal keys).
        _entries (tuple[CatalogEntry, ...]):
            All entries flattened in catalog order.
        _entries_by_id (dict[str, CatalogEntry]):
            Identity map for O(1) lookups.
        _categories_by_id (dict[str, Category]):
            Category identity map.
    """

    def __init__(self, categories: Iterable[Category] = ()) -> None:
        """Build the index.

        Args:
            categories: Categories with their entries, in insertion order.

        Raises:
            CatalogError: If a category id repeats, an entry id repeats
                anywhere in the catalog, or an entry's ``category_id`` does
                not name the category that contains it.
        """
        # sorted() is stable, so equal sort_order keeps insertion order.
        ordered = tuple(sorted(categories, key=lambda category: category.sort_order))

        categories_by_id: dict[str, Category] = {}
        entries_by_id: dict[str, CatalogEntry] = {}
        entries: list[CatalogEntry] = []

        for category in ordered:
            if category.id in categories_by_id:
                raise CatalogError(f"Duplicate category id: {category.id!r}")
            categories_by_id[category.id] = category

            for entry in category.entries:
                if entry.id in entries_by_id:
                    raise CatalogError(
                        f"Duplicate entry id {entry.id!r} "
                        f"(in {entries_by_id[entry.id].category_id!r} and {category.id!r})"
                    )
                if entry.category_id != category.id:
                    raise CatalogError(
                        f"Entry {entry.id!r} declares category {entry.category_id!r} "
                        f"but is listed under {category.id!r}"
                    )
                entries_by_id[entry.id] = entry
                entries.append(entry)

        self._categories = ordered
        self._categories_by_id = categories_by_id
        self._entries_by_id = entries_by_id
        self._entries = tuple(entries)

        logger.info(
            "Built catalog index: %d categories, %d entries", len(ordered), len(entries)
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries_by_id

    # -- Lookups ------------------------------------------------------------

    def get_entry_by_id(self, entry_id: str) -> CatalogEntry | None:
        return self._entries_by_id.get(entry_id)

    def get_category_by_id(self, category_id: str) -> Category | None:
        return self._categories_by_id.get(category_id)

    def category_of(self, entry_id: str) -> Category | None:
        """Return the category containing ``entry_id``, or None."""
        entry = self._entries_by_id.get(entry_id)
        if entry is None:
            return None
        return self._categories_by_id.get(entry.category_id)

    # -- Listings -----------------------------------------------------------

    def categories(self) -> list[Category]:
        return list(self._categories)

    def featured_categories(self) -> list[Category]:
        return [category for category in self._categories if category.featured]

    def all_entries(self) -> list[CatalogEntry]:
        """Return every entry, categories visited in ascending sort order."""
        return list(self._entries)

    def entries_by_category(self, category_id: str) -> list[CatalogEntry]:
        category = self._categories_by_id.get(category_id)
        return list(category.entries) if category else []

    def category_preview(self, category_id: str, limit: int = 4) -> list[CatalogEntry]:
        """Return the first ``limit`` entries of a category."""
        return self.entries_by_category(category_id)[: max(limit, 0)]

    def entries_by_difficulty(self, level: Difficulty | str) -> list[CatalogEntry]:
        """Return entries at the given difficulty.

        Both vocabularies are accepted and compared by canonical level, so
        ``"easy"`` also matches entries tagged ``"beginner"``.

        Raises:
            ValueError: If ``level`` is not a known difficulty
        """
        wanted = Difficulty(level).level
        return [entry for entry in self._entries if entry.difficulty_level == wanted]

    def popular_entries(self, threshold: float = 70.0) -> list[CatalogEntry]:
        return [entry for entry in self._entries if entry.is_popular(threshold)]

    def accessible_entries(self) -> list[CatalogEntry]:
        return [entry for entry in self._entries if entry.is_accessible]

    def entries_with_tag(self, tag: str) -> list[CatalogEntry]:
        return [entry for entry in self._entries if entry.has_tag(tag)]

    # -- Search -------------------------------------------------------------

    def search_entries(self, query: str) -> list[CatalogEntry]:
        """Case-insensitive substring search over name, description and tags.

        A match on any field is enough.  No ranking is applied: results keep
        catalog order.  A blank query matches every entry.

        Args:
            query: Text to look for.

        Returns:
            Matching entries in catalog order.
        """
        needle = query.strip().lower()
        if not needle:
            return list(self._entries)

        return [
            entry
            for entry in self._entries
            if needle in entry.name.lower()
            or needle in entry.description.lower()
            or any(needle in tag for tag in entry.tags)
        ]

    def stats(self, popular_threshold: float = 70.0) -> CatalogStats:
        free = sum(1 for entry in self._entries if entry.is_accessible)
        return CatalogStats(
            total_entries=len(self._entries),
            total_categories=len(self._categories),
            popular_entries=len(self.popular_entries(popular_threshold)),
            free_entries=free,
            premium_entries=len(self._entries) - free,
        )


class CatalogIndexHolder:
    """Publishes the active :class:`CatalogIndex` by atomic reference swap.

    Readers call :attr:`current` (or :meth:`snapshot`) once per request and
    work against that snapshot.  :meth:`publish` replaces the reference in a
    single assignment, so a reader sees either the old index or the new one,
    never a mix.
    """

    def __init__(self, index: CatalogIndex | None = None) -> None:
        # (index, generation) travel together so readers never pair an
        # index with another snapshot's generation number.
        self._state: tuple[CatalogIndex, int] = (
            index if index is not None else CatalogIndex(),
            0,
        )
        self._publish_lock = threading.Lock()

    @property
    def current(self) -> CatalogIndex:
        return self._state[0]

    @property
    def generation(self) -> int:
        """Number of snapshots published since construction."""
        return self._state[1]

    def snapshot(self) -> tuple[CatalogIndex, int]:
        """Return the active index together with its generation number."""
        return self._state

    def publish(self, index: CatalogIndex) -> CatalogIndex:
        """Swap in ``index`` and return the snapshot it replaced."""
        with self._publish_lock:
            previous, generation = self._state
            self._state = (index, generation + 1)

        logger.info(
            "Published catalog index generation %d (%d entries)", generation + 1, len(index)
        )
        return previous

    def rebuild(self, categories: Iterable[Category]) -> CatalogIndex:
        """Build a new index from ``categories`` and publish it.

        The new index is fully built before the swap; if building fails the
        current snapshot stays active.

        Returns:
            The newly published index.

        Raises:
            CatalogError: If the categories do not form a consistent catalog
        """
        index = CatalogIndex(categories)
        self.publish(index)
        return index
