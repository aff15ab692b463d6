"""Rarity tiers and the prompt-boosted rarity draw.

Every generated artifact gets a rarity tier (Common through Mythic) and a
quality score.  The draw is a weighted random pick over a fixed tier table,
nudged towards rarer tiers by features of the generation prompt.

Draw Algorithm
--------------
1. **Boost** — each premium keyword present in the prompt adds 0.12, each
   thematic keyword adds 0.08.  Matching is case-insensitive substring
   presence and each keyword counts once.
2. **Length bonus** — +0.05 for prompts longer than 100 characters, and a
   further +0.08 above 200 characters.
3. **Adjusted draw** — ``min(0.99, uniform + boost)``.  The clamp keeps the
   adjusted value below 1.0 so the walk always selects a tier.  With the
   default table the Mythic band starts above 0.99, so a draw never lands
   there; Mythic exists for display and for custom tier tables.
4. **Tier walk** — tiers are visited in declared order, accumulating their
   probability mass; the first tier whose cumulative mass reaches the
   adjusted value is selected.  A larger boost can only move the pick
   towards later (rarer) tiers.
5. **Quality score** — the tier's base score plus uniform noise in
   [-5, +5), clamped to [0, 100] and rounded to one decimal.

If the walk ever fails to select a tier the draw degrades to Common with a
quality score of 50.0.  :meth:`RarityDrawer.draw` never raises: rarity is
assigned while an artifact is being created and must not block it.

Probability Normalisation
-------------------------
The declared tier masses total 0.999.  :func:`normalize_masses` rescales
them to sum to exactly 1.0, and the last cumulative bound is pinned to 1.0,
so the bands partition [0, 1) with no residue.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from artcatalog.core.models import RarityResult
from artcatalog.core.randomness import RandomSource, default_random_source, uniform

logger = logging.getLogger(__name__)

PREMIUM_KEYWORDS: tuple[str, ...] = (
    "masterpiece",
    "photorealistic",
    "8k",
    "4k",
    "ultra detailed",
    "cinematic",
    "dramatic lighting",
    "ethereal",
    "mystical",
    "epic",
    "legendary",
    "divine",
    "celestial",
    "otherworldly",
    "surreal",
)
THEMATIC_KEYWORDS: tuple[str, ...] = (
    "dragon",
    "phoenix",
    "unicorn",
    "magic",
    "fantasy",
    "mythical",
    "enchanted",
    "cosmic",
    "galactic",
    "dimensional",
    "arcane",
)

PREMIUM_KEYWORD_BOOST = 0.12
THEMATIC_KEYWORD_BOOST = 0.08
LENGTH_BONUS_THRESHOLD = 100
LENGTH_BONUS = 0.05
LONG_LENGTH_BONUS_THRESHOLD = 200
LONG_LENGTH_BONUS = 0.08
# Below the Mythic band (~0.996) of the default table: Mythic is never drawn
MAX_ADJUSTED_DRAW = 0.99
QUALITY_VARIANCE = 5.0

FALLBACK_QUALITY_SCORE = 50.0

MASS_TOLERANCE = 1e-9


@dataclass(frozen=True)
class RarityTier:
    """One row of the tier table.

    Attributes:
        key: Stable tier identifier.
        name: Display name.
        stars: Star count, 1 (Common) to 6 (Mythic).
        code: Single-letter code.
        probability: Probability mass after normalisation.
        base_score: Midpoint quality score for the tier.
        lower: Inclusive lower bound of the cumulative band.
        upper: Exclusive upper bound of the cumulative band.
    """

    key: str
    name: str
    stars: int
    code: str
    probability: float
    base_score: float
    lower: float
    upper: float

    @property
    def is_special(self) -> bool:
        return self.stars >= 4

    @property
    def display_name(self) -> str:
        return f"{self.code}{self.stars}★"


# (key, name, stars, code, declared mass, base score)
_DECLARED_TIERS: tuple[tuple[str, str, int, str, float, float], ...] = (
    ("common", "Common", 1, "C", 0.45, 25.0),
    ("uncommon", "Uncommon", 2, "U", 0.28, 45.0),
    ("rare", "Rare", 3, "R", 0.18, 65.0),
    ("epic", "Epic", 4, "E", 0.06, 80.0),
    ("legendary", "Legendary", 5, "L", 0.025, 92.0),
    ("mythic", "Mythic", 6, "M", 0.004, 98.0),
)


def normalize_masses(masses: Sequence[float]) -> list[float]:
    """Rescale probability masses so they sum to 1.0.

    Raises:
        ValueError: If any mass is negative or the total is not positive
    """
    if any(mass < 0 for mass in masses):
        raise ValueError("Probability masses must be non-negative")
    total = math.fsum(masses)
    if total <= 0:
        raise ValueError("Probability masses must have a positive total")
    return [mass / total for mass in masses]


def build_tier_table(
    declared: Sequence[tuple[str, str, int, str, float, float]] = _DECLARED_TIERS,
) -> tuple[RarityTier, ...]:
    """Normalise declared masses and compute cumulative bands.

    The final band's upper bound is pinned to exactly 1.0 so rounding in
    the running sum cannot leave a gap at the top of [0, 1).
    """
    masses = normalize_masses([row[4] for row in declared])

    tiers: list[RarityTier] = []
    cumulative = 0.0
    for position, ((key, name, stars, code, _, base_score), mass) in enumerate(
        zip(declared, masses)
    ):
        lower = cumulative
        cumulative = 1.0 if position == len(declared) - 1 else cumulative + mass
        tiers.append(
            RarityTier(
                key=key,
                name=name,
                stars=stars,
                code=code,
                probability=mass,
                base_score=base_score,
                lower=lower,
                upper=cumulative,
            )
        )
    return tuple(tiers)


RARITY_TIERS: tuple[RarityTier, ...] = build_tier_table()
TIERS_BY_KEY: dict[str, RarityTier] = {tier.key: tier for tier in RARITY_TIERS}
COMMON_TIER = RARITY_TIERS[0]


def compute_boost(source_text: str) -> float:
    """Return the rarity boost earned by a prompt's text features."""
    text = source_text.lower()

    boost = 0.0
    boost += PREMIUM_KEYWORD_BOOST * sum(1 for keyword in PREMIUM_KEYWORDS if keyword in text)
    boost += THEMATIC_KEYWORD_BOOST * sum(1 for keyword in THEMATIC_KEYWORDS if keyword in text)

    # Length bonuses are cumulative
    if len(source_text) > LENGTH_BONUS_THRESHOLD:
        boost += LENGTH_BONUS
    if len(source_text) > LONG_LENGTH_BONUS_THRESHOLD:
        boost += LONG_LENGTH_BONUS

    return boost


def select_tier(
    adjusted: float, tiers: Sequence[RarityTier] = RARITY_TIERS
) -> RarityTier | None:
    """Return the first tier whose cumulative mass reaches ``adjusted``."""
    cumulative = 0.0
    for tier in tiers:
        cumulative += tier.probability
        if cumulative >= adjusted:
            return tier
    # Floating-point residue can leave the running sum a hair under 1.0
    if tiers and adjusted <= tiers[-1].upper:
        return tiers[-1]
    return None


class RarityDrawer:
    """Assigns rarity tiers to generated artifacts.

    The drawer holds no state besides its random source; pass a seeded
    ``random.Random`` for reproducible draws.

    Attributes:
        _rng (RandomSource): Source for the base draw and the score variance.
        _tiers (tuple[RarityTier, ...]): Tier table, Common first.
    """

    def __init__(
        self,
        rng: RandomSource | None = None,
        tiers: Sequence[RarityTier] = RARITY_TIERS,
    ) -> None:
        self._rng = rng if rng is not None else default_random_source()
        self._tiers = tuple(tiers)

    @property
    def tiers(self) -> tuple[RarityTier, ...]:
        return self._tiers

    def draw(self, source_text: str) -> RarityResult:
        """Draw a rarity tier for an artifact generated from ``source_text``.

        Args:
            source_text: Generation prompt.

        Returns:
            The selected tier with its quality score.  Never raises.
        """
        try:
            boost = compute_boost(source_text or "")
            return self._draw_with_boost(boost)
        except Exception:
            logger.exception("Rarity draw failed; assigning fallback tier")
            return self._fallback()

    def draw_unboosted(self) -> RarityResult:
        """Draw a tier with no text features applied."""
        try:
            return self._draw_with_boost(0.0)
        except Exception:
            logger.exception("Rarity draw failed; assigning fallback tier")
            return self._fallback()

    def _draw_with_boost(self, boost: float) -> RarityResult:
        base = self._rng.random()
        adjusted = min(MAX_ADJUSTED_DRAW, base + boost)

        tier = select_tier(adjusted, self._tiers)
        if tier is None:
            logger.warning("No rarity tier matched adjusted draw %.6f", adjusted)
            return self._fallback()

        variance = uniform(self._rng, -QUALITY_VARIANCE, QUALITY_VARIANCE)
        score = max(0.0, min(100.0, tier.base_score + variance))

        logger.debug(
            "Rarity draw: base=%.4f boost=%.2f adjusted=%.4f -> %s", base, boost, adjusted, tier.key
        )
        return RarityResult(
            tier=tier.key,
            name=tier.name,
            quality_score=round(score, 1),
            stars=tier.stars,
            code=tier.code,
            boost=boost,
        )

    def _fallback(self) -> RarityResult:
        return RarityResult(
            tier=COMMON_TIER.key,
            name=COMMON_TIER.name,
            quality_score=FALLBACK_QUALITY_SCORE,
            stars=COMMON_TIER.stars,
            code=COMMON_TIER.code,
        )
