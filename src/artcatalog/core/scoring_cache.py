"""In-memory TTL cache for scoring results.

:class:`ScoringCache` maps a string key to a previously computed value for a
limited time.  Expiry is lazy: a stale entry is treated as a miss on read
and stays in memory until it is overwritten, swept, invalidated or cleared.
There is no capacity limit and no LRU eviction.

Concurrency
-----------
Writes take one of ``stripes`` locks chosen by the key's hash, so two writes
to the same key are serialised (last write wins) while writes to different
keys rarely contend.  Reads never lock.  Hit/miss counters have their own
lock so :meth:`ScoringCache.stats` reports measured values.

Key Derivation
--------------
Callers build keys with :func:`make_cache_key`, which is a pure function of
the query parameters: the same logical query always produces the same key.

Usage
-----
::

    cache: ScoringCache[list[ScoredEntry]] = ScoringCache(default_ttl_ms=60_000)
    key = make_cache_key("trending", limit=10)
    result = cache.get_or_compute(key, lambda: scorer.trending(index, 10))
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from urllib.parse import quote

logger = logging.getLogger(__name__)

V = TypeVar("V")


class _Miss:
    """Sentinel type for cache misses."""

    _instance: _Miss | None = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


def monotonic_ms() -> float:
    """Default cache clock, in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value with its creation time and lifetime."""

    value: V
    created_ms: float
    ttl_ms: float

    def is_fresh(self, now_ms: float) -> bool:
        return now_ms - self.created_ms < self.ttl_ms


@dataclass(frozen=True)
class CacheStats:
    """Measured cache counters."""

    hits: int
    misses: int
    size: int

    @property
    def requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups that hit, 0.0 when nothing was looked up."""
        return self.hits / self.requests if self.requests else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "hit_rate": round(self.hit_rate, 4),
        }


class ScoringCache(Generic[V]):
    """Thread-safe TTL cache keyed by query signature.

    Attributes:
        _entries (dict[str, CacheEntry]): Live and stale entries.
        _default_ttl_ms (float): TTL used when ``set`` is called without one.
        _clock (Callable[[], float]): Millisecond clock.
        _locks (tuple[threading.Lock, ...]): Write lock stripes.
    """

    def __init__(
        self,
        default_ttl_ms: float = 300_000,
        stripes: int = 16,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        """Initialise an empty cache.

        Args:
            default_ttl_ms: Lifetime of entries stored without an explicit TTL.
            stripes: Number of write lock stripes.
            clock: Millisecond clock, injectable for tests.

        Raises:
            ValueError: If ``default_ttl_ms`` or ``stripes`` is not positive.
        """
        if default_ttl_ms <= 0:
            raise ValueError(f"default_ttl_ms must be positive, got {default_ttl_ms}")
        if stripes < 1:
            raise ValueError(f"stripes must be at least 1, got {stripes}")

        self._entries: dict[str, CacheEntry[V]] = {}
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._locks = tuple(threading.Lock() for _ in range(stripes))
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        """Number of stored entries, stale ones included."""
        return len(self._entries)

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def _record(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    # -- Reads --------------------------------------------------------------

    def lookup(self, key: str) -> V | _Miss:
        """Return the fresh value for ``key`` or :data:`MISS`.

        Use this instead of :meth:`get` when ``None`` is a legitimate value.
        """
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            self._record(hit=False)
            logger.debug("Cache miss: %s", key)
            return MISS

        self._record(hit=True)
        logger.debug("Cache hit: %s", key)
        return entry.value

    def get(self, key: str) -> V | None:
        """Return the fresh value for ``key``, or None on a miss."""
        value = self.lookup(key)
        return None if value is MISS else value

    # -- Writes -------------------------------------------------------------

    def set(self, key: str, value: V, ttl_ms: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.

        Raises:
            ValueError: If ``ttl_ms`` is given and not positive.
        """
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl}")

        with self._lock_for(key):
            self._entries[key] = CacheEntry(value=value, created_ms=self._clock(), ttl_ms=ttl)

    def get_or_compute(
        self, key: str, compute: Callable[[], V], ttl_ms: float | None = None
    ) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss.

        ``compute`` runs outside any lock; if two callers miss at once both
        compute and the last write wins.
        """
        value = self.lookup(key)
        if value is not MISS:
            return value

        result = compute()
        self.set(key, result, ttl_ms)
        return result

    # -- Invalidation -------------------------------------------------------

    def invalidate(self, predicate: Callable[[str], bool]) -> int:
        """Remove every entry whose key satisfies ``predicate``.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for key in list(self._entries):
            if not predicate(key):
                continue
            with self._lock_for(key):
                if self._entries.pop(key, None) is not None:
                    removed += 1

        if removed:
            logger.debug("Invalidated %d cache entries", removed)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        return self.invalidate(lambda key: key.startswith(prefix))

    def sweep(self) -> int:
        """Remove stale entries.  Returns the number removed."""
        now = self._clock()
        removed = 0
        for key in list(self._entries):
            with self._lock_for(key):
                entry = self._entries.get(key)
                if entry is not None and not entry.is_fresh(now):
                    del self._entries[key]
                    removed += 1
        return removed

    def clear(self) -> None:
        """Remove every entry.  Counters are kept."""
        for lock in self._locks:
            lock.acquire()
        try:
            self._entries.clear()
        finally:
            for lock in reversed(self._locks):
                lock.release()
        logger.info("Cleared scoring cache")

    def reset_stats(self) -> None:
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._stats_lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))


# Rendered for None.  quote() always escapes "*", so no value renders to it.
NONE_TOKEN = "*"
# Rendered for an empty collection; "(" and ")" are always escaped too.
EMPTY_TOKEN = "()"


def _quote(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return quote(str(value), safe="")


def _render(value: Any) -> str:
    if value is None:
        return NONE_TOKEN
    if isinstance(value, (set, frozenset)):
        items = sorted(_quote(item) for item in value)
    elif isinstance(value, (list, tuple)):
        items = [_quote(item) for item in value]
    else:
        return _quote(value)
    return ",".join(items) if items else EMPTY_TOKEN


def make_cache_key(namespace: str, **params: Any) -> str:
    """Build a deterministic cache key from query parameters.

    Parameters are ordered by name and sets are sorted, so identical logical
    queries map to the same key::

        >>> make_cache_key("recommend", recent={"b", "a"}, limit=6, current=None)
        'recommend:current=*:limit=6:recent=a,b'

    Every value is percent-encoded before joining, so ``:``, ``=`` and ``,``
    inside a value cannot merge two different queries into one key.  ``None``
    renders as ``*`` and an empty collection as ``()``; neither can be
    produced by an encoded value.

    Normalising free text (e.g. lower-casing a search query) is up to the
    caller.
    """
    parts = [quote(namespace, safe="")]
    parts.extend(f"{name}={_render(params[name])}" for name in sorted(params))
    return ":".join(parts)


def _key_params(key: str) -> list[tuple[str, list[str]]]:
    params = []
    for part in key.split(":")[1:]:
        name, _, value = part.partition("=")
        params.append((name, value.split(",")))
    return params


def keys_mentioning(entry_id: str) -> Callable[[str], bool]:
    """Predicate matching keys whose parameters reference ``entry_id``."""
    encoded = _quote(entry_id)

    def predicate(key: str) -> bool:
        return any(encoded in values for _, values in _key_params(key))

    return predicate


def keys_with_param(name: str, value: Any) -> Callable[[str], bool]:
    """Predicate matching keys whose ``name`` parameter equals ``value``."""
    rendered = _render(value)

    def predicate(key: str) -> bool:
        return any(
            param == name and ",".join(values) == rendered for param, values in _key_params(key)
        )

    return predicate
