"""Shared pytest fixtures for Art Catalog tests."""

import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Generator

import pytest

from artcatalog.core.catalog_index import CatalogIndex
from artcatalog.core.config import CatalogConfig
from artcatalog.core.models import Accessibility, CatalogEntry, Category


class ConstantRandom:
    """Random source that always returns the same value."""

    def __init__(self, value: float = 0.0):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


class SequenceRandom:
    """Random source that replays a fixed sequence, cycling when exhausted."""

    def __init__(self, values: Iterable[float]):
        self.values = list(values)
        self.position = 0

    def random(self) -> float:
        value = self.values[self.position % len(self.values)]
        self.position += 1
        return value


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 1_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


def make_entry(entry_id: str, category_id: str = "general", **fields) -> CatalogEntry:
    """Build a catalog entry with sensible defaults."""
    fields.setdefault("name", entry_id.replace("-", " ").title())
    return CatalogEntry(id=entry_id, category_id=category_id, **fields)


def make_category(category_id: str, entries: Iterable[CatalogEntry] = (), **fields) -> Category:
    """Build a category with sensible defaults."""
    fields.setdefault("name", category_id.title())
    return Category(id=category_id, entries=tuple(entries), **fields)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> CatalogConfig:
    """Create a test configuration that ignores any local .env file.

    Returns:
        CatalogConfig instance for testing
    """
    return CatalogConfig(
        _env_file=None,
        popular_threshold=70,
        jitter_max=0.5,
        default_recommend_limit=6,
        recommend_cache_ttl_ms=300_000,
        trending_cache_ttl_ms=60_000,
        search_cache_ttl_ms=60_000,
        cache_lock_stripes=4,
    )


@pytest.fixture
def zero_random() -> ConstantRandom:
    """Random source pinned at 0.0 (no jitter, lowest base draw)."""
    return ConstantRandom(0.0)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_categories() -> list[Category]:
    """A small two-category catalog covering every scoring term.

    Returns:
        Categories "fantasy" (sort_order 1) and "scifi" (sort_order 0)
    """
    fantasy = make_category(
        "fantasy",
        [
            make_entry(
                "wizard",
                "fantasy",
                description="Powerful spellcaster with robes and staff",
                tags=["magic", "fantasy", "medieval"],
                popularity=90,
                difficulty="medium",
            ),
            make_entry(
                "knight",
                "fantasy",
                description="Noble warrior in shining armor",
                tags=["Armor", "Medieval", "warrior"],
                popularity=85,
                difficulty="hard",
            ),
            make_entry(
                "dragon-rider",
                "fantasy",
                description="Rider bonded to a fire-breathing DRAGON",
                tags=["dragon", "fantasy", "fire"],
                popularity=60,
                difficulty="hard",
                accessibility=Accessibility(is_premium=True, minimum_tier="premium"),
            ),
        ],
        featured=True,
        sort_order=1,
    )
    scifi = make_category(
        "scifi",
        [
            make_entry(
                "cyberpunk",
                "scifi",
                description="Neon-lit futuristic street style",
                tags=["cyberpunk", "neon", "futuristic"],
                popularity=75,
                difficulty="advanced",
            ),
            make_entry(
                "robot",
                "scifi",
                name="Android",
                description="Humanoid robot with metallic features",
                tags=["robot", "metallic"],
                popularity=40,
                difficulty="beginner",
            ),
        ],
        sort_order=0,
    )
    return [fantasy, scifi]


@pytest.fixture
def sample_index(sample_categories: list[Category]) -> CatalogIndex:
    return CatalogIndex(sample_categories)


@pytest.fixture
def catalog_file(temp_dir: Path) -> Path:
    """Write a small catalog JSON file mixing legacy and current fields."""
    path = temp_dir / "catalog.json"
    path.write_text(
        """
        {
          "categories": [
            {
              "id": "heroes",
              "name": "Superheroes",
              "icon": "crown",
              "featured": true,
              "styles": [
                {"id": "marvel-hero", "name": "Marvel Hero", "popular": true,
                 "difficulty": "medium", "tags": ["superhero", "comic"]},
                {"id": "anti-hero", "name": "Anti-Hero", "premium": true,
                 "difficulty": "hard", "tags": ["dark"]}
              ]
            },
            {
              "id": "models",
              "name": "Base Models",
              "sort_order": 5,
              "models": [
                {"id": "flux-dev", "name": "FLUX Dev", "popularity": 88,
                 "difficulty": "intermediate", "tags": ["flux"],
                 "accessibility": {"is_premium": true, "minimum_tier": "pro"}}
              ]
            }
          ]
        }
        """,
        encoding="utf-8",
    )
    return path


@pytest.fixture(name="make_entry")
def make_entry_fixture():
    """Factory fixture for catalog entries."""
    return make_entry


@pytest.fixture(name="make_category")
def make_category_fixture():
    """Factory fixture for categories."""
    return make_category


@pytest.fixture(name="sequence_random")
def sequence_random_fixture():
    """Factory fixture for replayed random sequences."""
    return SequenceRandom


@pytest.fixture(name="constant_random")
def constant_random_fixture():
    """Factory fixture for constant random sources."""
    return ConstantRandom
