"""
Tests for signal fusion and score combination
=============================================

Covers rounding, clamping, the point-sum variant, the weighted vote
with its deterministic tie-break, and the fishability blend.
"""

import pytest

from spotscore.domain import Signal, Tier
from spotscore.scoring.access import ACCESS_PRIORITY
from spotscore.scoring.combiner import compute_fishability_score
from spotscore.scoring.fusion import clamp_score, fuse_signals, round_half_up, sum_points


class TestRounding:
    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (3.5, 4), (2.49, 2), (-2.5, -2), (0.0, 0), (89.999, 90)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    @pytest.mark.parametrize("value,expected", [(-20, 0), (120, 100), (57.5, 58), (0.4, 0)])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected


class TestPointSum:
    def test_sums_signed_points_and_ignores_votes(self):
        signals = [
            Signal.points("bdtopo", "plan_d_eau_found", 30),
            Signal.points("georisques", "livestock_nearby", -40),
            Signal.vote("osm", "access=private", "PRIVATE", Tier.HIGH),
        ]
        assert sum_points(signals) == -10

    def test_empty_sum_is_zero(self):
        assert sum_points([]) == 0


class TestWeightedVote:
    def test_nine_against_one(self):
        signals = [
            Signal.vote("osm", "access=public", "FREE", Tier.HIGH),
            Signal.vote("osm", "access=yes", "FREE", Tier.HIGH),
            Signal.vote("osm", "fee=no", "FREE", Tier.HIGH),
            Signal.vote("rpg", "parcelle_agricole", "PRIVATE", Tier.LOW),
        ]
        result = fuse_signals(signals, priority=ACCESS_PRIORITY)

        assert result.outcome == "FREE"
        assert result.confidence == 90
        assert result.totals == {"FREE": 9, "PRIVATE": 1}
        assert result.total_weight == 10

    def test_no_votes(self):
        result = fuse_signals([Signal.points("osm", "fishing_tagged", 10)])
        assert result.outcome is None
        assert result.confidence == 0

    def test_tie_goes_to_priority_regardless_of_order(self):
        free = Signal.vote("cadastre", "terrain_public", "FREE", Tier.MEDIUM)
        private = Signal.vote("cadastre", "terrain_prive", "PRIVATE", Tier.MEDIUM)

        forward = fuse_signals([free, private], priority=ACCESS_PRIORITY)
        backward = fuse_signals([private, free], priority=ACCESS_PRIORITY)

        assert forward.outcome == backward.outcome == "PRIVATE"
        assert forward.confidence == 50

    def test_tie_outside_priority_is_alphabetical(self):
        signals = [
            Signal.vote("a", "x", "ZULU", Tier.LOW),
            Signal.vote("b", "y", "ALPHA", Tier.LOW),
        ]
        assert fuse_signals(signals).outcome == "ALPHA"

    def test_single_vote_is_fully_confident(self):
        result = fuse_signals([Signal.vote("dpf", "domaine_public_fluvial", "FISHING_CARD", Tier.HIGH)])
        assert result.outcome == "FISHING_CARD"
        assert result.confidence == 100


class TestFishabilityScore:
    @pytest.mark.parametrize(
        "static,dynamic,expected",
        [(80, 40, 58), (0, 0, 0), (100, 100, 100), (10, 50, 32), (50, 75, 64)],
    )
    def test_weighted_blend(self, static, dynamic, expected):
        assert compute_fishability_score(static, dynamic) == expected

    def test_always_an_integer_score(self):
        for static in range(0, 101, 5):
            for dynamic in range(0, 101, 5):
                score = compute_fishability_score(static, dynamic)
                assert isinstance(score, int)
                assert 0 <= score <= 100
