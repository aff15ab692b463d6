"""Immutable domain records for the catalog engine.

Every record here is a frozen Pydantic model.  "Updating" a record means
building a new one (see :meth:`CatalogEntry.with_popularity`), so a catalog
snapshot can be shared across threads without copying.

Models
------
CatalogEntry
    A style or model that users can pick for generation.
Category
    Ordered group of entries with display metadata.
Accessibility
    Premium flag and minimum subscription tier for an entry.
ScoredEntry
    An entry paired with the score that ranked it.
RarityResult
    Outcome of a rarity draw, attached to a generated artifact.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    """Difficulty vocabulary.

    Two vocabularies exist in catalog data (easy/medium/hard for styles,
    beginner/intermediate/advanced for models).  They map onto the same
    three canonical levels, see :attr:`level`.
    """

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def level(self) -> int:
        """Canonical level: 1 (easy), 2 (medium) or 3 (hard)."""
        return _DIFFICULTY_LEVELS[self]


_DIFFICULTY_LEVELS = {
    Difficulty.EASY: 1,
    Difficulty.BEGINNER: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.INTERMEDIATE: 2,
    Difficulty.HARD: 3,
    Difficulty.ADVANCED: 3,
}


class AccessTier(str, Enum):
    """Subscription tier required to use an entry."""

    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"


class IconName(str, Enum):
    """Symbolic icon identifiers.

    Presentation layers resolve these to actual assets; the engine only
    carries the name.
    """

    CROWN = "crown"
    STAR = "star"
    WAND = "wand"
    SPARKLES = "sparkles"
    SWORD = "sword"
    SHIELD = "shield"
    ZAP = "zap"
    HEART = "heart"
    MUSIC = "music"
    PALETTE = "palette"
    CAMERA = "camera"
    GAMEPAD = "gamepad"
    HEADPHONES = "headphones"
    ROCKET = "rocket"
    ATOM = "atom"
    MICROSCOPE = "microscope"
    STETHOSCOPE = "stethoscope"
    BRIEFCASE = "briefcase"
    TREE = "tree"
    MOUNTAIN = "mountain"
    WAVES = "waves"
    SUN = "sun"
    MOON = "moon"
    CLOUD_RAIN = "cloud-rain"


class Accessibility(BaseModel):
    """Access restrictions for a catalog entry."""

    model_config = ConfigDict(frozen=True)

    is_premium: bool = False
    minimum_tier: AccessTier = AccessTier.FREE
    required_credits: int = Field(default=0, ge=0)


class CatalogEntry(BaseModel):
    """A style or model available for selection.

    Attributes:
        id: Stable unique identifier, never reused.
        name: Display name.
        description: Short description shown in listings.
        tags: Lower-cased tag set.  Input tags are stripped and lower-cased,
            so tag comparisons are case-insensitive everywhere.
        difficulty: Difficulty in either vocabulary.
        popularity: Popularity score in [0, 100].
        category_id: Identifier of the owning category.
        accessibility: Premium flag and minimum tier.
        icon: Symbolic icon name.
        prompt: Positive prompt fragment used for generation.
        negative_prompt: Optional negative prompt fragment.
        estimated_minutes: Rough generation/setup time hint.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    tags: frozenset[str] = frozenset()
    difficulty: Difficulty = Difficulty.MEDIUM
    popularity: float = Field(default=50.0, ge=0, le=100)
    category_id: str
    accessibility: Accessibility = Accessibility()
    icon: IconName = IconName.STAR
    prompt: str = ""
    negative_prompt: str | None = None
    estimated_minutes: int | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> frozenset[str]:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = [value]
        return frozenset(tag.strip().lower() for tag in value if tag and tag.strip())

    @property
    def difficulty_level(self) -> int:
        return self.difficulty.level

    @property
    def is_accessible(self) -> bool:
        """True when a free user can use this entry."""
        return (
            not self.accessibility.is_premium
            or self.accessibility.minimum_tier == AccessTier.FREE
        )

    def is_popular(self, threshold: float = 70.0) -> bool:
        return self.popularity >= threshold

    def has_tag(self, tag: str) -> bool:
        return tag.strip().lower() in self.tags

    def with_popularity(self, popularity: float) -> CatalogEntry:
        """Return a copy of this entry with a new popularity.

        The value is validated like any constructor argument.
        """
        return CatalogEntry.model_validate({**self.model_dump(), "popularity": popularity})


class Category(BaseModel):
    """An ordered group of catalog entries.

    Attributes:
        id: Category identifier.
        name: Display name.
        short_name: Compact name for tabs.
        description: Category description.
        icon: Symbolic icon name.
        color: Theme color name.
        featured: Whether the category is featured on landing views.
        sort_order: Ordering key; categories with equal keys keep their
            insertion order.
        entries: Entries in insertion order.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    short_name: str = ""
    description: str = ""
    icon: IconName = IconName.STAR
    color: str | None = None
    featured: bool = False
    sort_order: int = 0
    entries: tuple[CatalogEntry, ...] = ()

    @property
    def entry_count(self) -> int:
        return len(self.entries)


class CatalogStats(BaseModel):
    """Aggregate counts over a catalog snapshot."""

    model_config = ConfigDict(frozen=True)

    total_entries: int
    total_categories: int
    popular_entries: int
    free_entries: int
    premium_entries: int


class ScoredEntry(BaseModel):
    """An entry together with the score that ranked it."""

    model_config = ConfigDict(frozen=True)

    entry: CatalogEntry
    score: float

    @property
    def entry_id(self) -> str:
        return self.entry.id

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.entry.id, "name": self.entry.name, "score": round(self.score, 4)}


class RarityResult(BaseModel):
    """Rarity tier and quality score assigned to a generated artifact.

    Attributes:
        tier: Tier key (``"common"`` ... ``"mythic"``).
        name: Tier display name.
        quality_score: Quality score in [0, 100], one decimal place.
        stars: Star count (1-6).
        code: Single-letter tier code.
        boost: Keyword/length boost that was applied to the draw.
    """

    model_config = ConfigDict(frozen=True)

    tier: str
    name: str
    quality_score: float = Field(..., ge=0, le=100)
    stars: int = Field(..., ge=1, le=6)
    code: str = Field(..., min_length=1, max_length=1)
    boost: float = 0.0

    @property
    def display_name(self) -> str:
        return f"{self.code}{self.stars}★"

    @property
    def is_special(self) -> bool:
        return self.stars >= 4

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "name": self.name,
            "quality_score": self.quality_score,
            "stars": self.stars,
            "code": self.code,
        }
