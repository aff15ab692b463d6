"""Tests for artcatalog.core.rarity — tier table and boosted draws.

Tests cover:
- Probability mass conservation and band partitioning.
- Boost computation from keywords and prompt length.
- Tier selection order and the 0.99 clamp.
- Quality score bounds and rounding.
- Fallback behaviour when the draw cannot complete.
- Statistical distribution of boosted and plain draws (slow).
"""

from __future__ import annotations

import math
import random

import pytest

from artcatalog.core.rarity import (
    FALLBACK_QUALITY_SCORE,
    RARITY_TIERS,
    TIERS_BY_KEY,
    RarityDrawer,
    build_tier_table,
    compute_boost,
    normalize_masses,
    select_tier,
)

TIER_ORDER = [tier.key for tier in RARITY_TIERS]


class TestTierTable:
    """Test the normalised tier table."""

    def test_six_tiers_in_order(self):
        assert TIER_ORDER == ["common", "uncommon", "rare", "epic", "legendary", "mythic"]
        assert [tier.stars for tier in RARITY_TIERS] == [1, 2, 3, 4, 5, 6]
        assert [tier.code for tier in RARITY_TIERS] == ["C", "U", "R", "E", "L", "M"]

    def test_masses_sum_to_one(self):
        total = math.fsum(tier.probability for tier in RARITY_TIERS)
        assert abs(total - 1.0) < 1e-9

    def test_bands_partition_unit_interval(self):
        assert RARITY_TIERS[0].lower == 0.0
        assert RARITY_TIERS[-1].upper == 1.0
        for current, following in zip(RARITY_TIERS, RARITY_TIERS[1:]):
            assert current.upper == following.lower
            assert current.lower < current.upper

    def test_relative_masses_preserved(self):
        common = TIERS_BY_KEY["common"].probability
        uncommon = TIERS_BY_KEY["uncommon"].probability
        assert common / uncommon == pytest.approx(0.45 / 0.28)

    def test_special_tiers(self):
        assert [tier.is_special for tier in RARITY_TIERS] == [False] * 3 + [True] * 3
        assert TIERS_BY_KEY["legendary"].display_name == "L5★"

    def test_normalize_rejects_negative_mass(self):
        with pytest.raises(ValueError):
            normalize_masses([0.5, -0.1])

    def test_normalize_rejects_zero_total(self):
        with pytest.raises(ValueError):
            normalize_masses([0.0, 0.0])

    def test_custom_table_pins_last_bound(self):
        tiers = build_tier_table(
            [
                ("low", "Low", 1, "L", 1.0, 10.0),
                ("mid", "Mid", 2, "M", 1.0, 50.0),
                ("top", "Top", 3, "T", 1.0, 90.0),
            ]
        )
        assert tiers[-1].upper == 1.0
        assert tiers[0].probability == pytest.approx(1 / 3)


class TestComputeBoost:
    """Test keyword and length boosts."""

    def test_no_features(self):
        assert compute_boost("a plain cat") == 0.0

    def test_premium_keyword_case_insensitive(self):
        assert compute_boost("A MASTERPIECE") == pytest.approx(0.12)

    def test_thematic_keyword(self):
        assert compute_boost("a small dragon") == pytest.approx(0.08)

    def test_each_keyword_counts_once(self):
        assert compute_boost("dragon dragon dragon") == pytest.approx(0.08)

    def test_mixed_keywords(self):
        assert compute_boost("masterpiece epic dragon, 8k") == pytest.approx(0.44)

    def test_length_bonus(self):
        assert compute_boost("x" * 100) == 0.0
        assert compute_boost("x" * 101) == pytest.approx(0.05)

    def test_long_length_bonus_is_cumulative(self):
        assert compute_boost("x" * 201) == pytest.approx(0.13)


class TestSelectTier:
    """Test the cumulative tier walk."""

    @pytest.mark.parametrize(
        "adjusted,expected",
        [
            (0.0, "common"),
            (0.3, "common"),
            (0.5, "uncommon"),
            (0.8, "rare"),
            (0.95, "epic"),
            (0.99, "legendary"),
            (0.999, "mythic"),
        ],
    )
    def test_bands(self, adjusted, expected):
        assert select_tier(adjusted).key == expected

    def test_higher_draw_never_selects_earlier_tier(self):
        previous = 0
        for step in range(1001):
            position = TIER_ORDER.index(select_tier(step / 1000).key)
            assert position >= previous
            previous = position

    def test_empty_table_selects_nothing(self):
        assert select_tier(0.5, ()) is None


class TestRarityDrawer:
    """Test RarityDrawer.draw."""

    def test_lowest_draw_is_common(self, sequence_random):
        result = RarityDrawer(rng=sequence_random([0.0, 0.5])).draw("a plain cat")

        assert result.tier == "common"
        assert result.quality_score == 25.0
        assert result.code == "C"
        assert result.stars == 1

    def test_epic_draw(self, sequence_random):
        result = RarityDrawer(rng=sequence_random([0.95, 0.5])).draw("")

        assert result.tier == "epic"
        assert result.quality_score == 80.0
        assert result.is_special

    def test_boost_moves_draw_up(self, sequence_random):
        plain = RarityDrawer(rng=sequence_random([0.4, 0.5])).draw("a plain cat")
        boosted = RarityDrawer(rng=sequence_random([0.4, 0.5])).draw(
            "masterpiece epic dragon, 8k"
        )

        assert plain.tier == "common"
        assert boosted.tier == "rare"
        assert boosted.boost == pytest.approx(0.44)

    def test_boost_is_monotonic_for_same_base(self, sequence_random):
        texts = ["cat", "dragon", "epic dragon", "masterpiece epic dragon, 8k"]
        for base in (0.1, 0.4, 0.6, 0.85, 0.95):
            positions = [
                TIER_ORDER.index(RarityDrawer(rng=sequence_random([base, 0.5])).draw(text).tier)
                for text in texts
            ]
            assert positions == sorted(positions)

    def test_adjusted_draw_is_clamped(self, sequence_random):
        text = "masterpiece epic legendary divine celestial"
        result = RarityDrawer(rng=sequence_random([0.9, 0.5])).draw(text)

        assert result.tier == "legendary"

    def test_quality_score_variance_bounds(self, sequence_random):
        low = RarityDrawer(rng=sequence_random([0.0, 0.0])).draw("")
        high = RarityDrawer(rng=sequence_random([0.0, 0.999999])).draw("")

        assert low.quality_score == 20.0
        assert high.quality_score == 30.0

    def test_quality_scores_in_range(self):
        drawer = RarityDrawer(rng=random.Random(3))
        for _ in range(2000):
            result = drawer.draw("masterpiece epic dragon, 8k")
            assert 0.0 <= result.quality_score <= 100.0
            assert round(result.quality_score, 1) == result.quality_score

    def test_failing_random_source_falls_back(self):
        class BrokenRandom:
            def random(self) -> float:
                raise RuntimeError("entropy pool empty")

        result = RarityDrawer(rng=BrokenRandom()).draw("masterpiece")

        assert result.tier == "common"
        assert result.quality_score == FALLBACK_QUALITY_SCORE

    def test_empty_tier_table_falls_back(self, zero_random):
        result = RarityDrawer(rng=zero_random, tiers=()).draw("anything")

        assert result.tier == "common"
        assert result.quality_score == FALLBACK_QUALITY_SCORE

    def test_none_text_is_treated_as_empty(self, sequence_random):
        result = RarityDrawer(rng=sequence_random([0.0, 0.5])).draw(None)

        assert result.tier == "common"
        assert result.boost == 0.0

    def test_draw_unboosted(self, sequence_random):
        result = RarityDrawer(rng=sequence_random([0.5, 0.5])).draw_unboosted()

        assert result.tier == "uncommon"
        assert result.boost == 0.0

    def test_seeded_draws_reproducible(self):
        first = RarityDrawer(rng=random.Random(9))
        second = RarityDrawer(rng=random.Random(9))

        for _ in range(20):
            assert first.draw("dragon") == second.draw("dragon")


@pytest.mark.slow
class TestDistribution:
    """Statistical checks over many draws."""

    DRAWS = 100_000

    def _rare_or_better(self, text: str, seed: int) -> float:
        drawer = RarityDrawer(rng=random.Random(seed))
        rare_index = TIER_ORDER.index("rare")
        hits = sum(
            1 for _ in range(self.DRAWS) if TIER_ORDER.index(drawer.draw(text).tier) >= rare_index
        )
        return hits / self.DRAWS

    def test_boosted_prompt_distribution(self):
        """Boost 0.44: P(Rare or better) = 1 - (0.7307 - 0.44) ~= 0.709."""
        assert 0.69 <= self._rare_or_better("masterpiece epic dragon, 8k", seed=1) <= 0.73

    def test_plain_prompt_distribution(self):
        """No boost: P(Rare or better) ~= 0.269."""
        assert 0.25 <= self._rare_or_better("a plain cat", seed=2) <= 0.29

    def test_unboosted_tier_frequencies_match_masses(self):
        drawer = RarityDrawer(rng=random.Random(5))
        counts = dict.fromkeys(TIER_ORDER, 0)
        for _ in range(self.DRAWS):
            counts[drawer.draw_unboosted().tier] += 1

        for key in ("common", "uncommon", "rare", "epic"):
            expected = TIERS_BY_KEY[key].probability
            assert counts[key] / self.DRAWS == pytest.approx(expected, abs=0.01)
