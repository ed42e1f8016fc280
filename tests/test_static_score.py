"""
Tests for the static fishability score
======================================

Sub-score rules are tested on the pure helpers; the calculator tests
use the in-memory repository and the stub gateway from conftest.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from spotscore.core.exceptions import SpotNotFoundException
from spotscore.domain import (
    BiologicalReading,
    LinkedSpecies,
    Observation,
    QualitySnapshot,
    Regulation,
    RegulationType,
    Review,
    SpeciesCategory,
    WaterCategory,
)
from spotscore.gateway.results import BiologicalIndexResult, FishIndex
from spotscore.scoring.static import (
    StaticScoreCalculator,
    compute_static_score,
    diversity_score,
    fish_density_score,
    fish_index_bonus,
    rating_score,
    recency_score,
    regulation_penalty,
    trophy_score,
    water_quality_score,
)

NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


def observation(code, name, days_ago=30):
    return Observation(species_code=code, species_name=name, observed_at=NOW - timedelta(days=days_ago))


def snapshot(parameter, value, days_ago=10):
    return QualitySnapshot(parameter=parameter, value=value, measured_at=NOW - timedelta(days=days_ago))


# =============================================================================
# SUB-SCORES
# =============================================================================

class TestDiversity:
    @pytest.mark.parametrize("count,expected", [(0, 0), (1, 20), (2, 40), (4, 60), (7, 80), (12, 100)])
    def test_buckets_by_distinct_species(self, count, expected):
        observations = [observation(f"S{i}", f"Espèce {i}") for i in range(count)]
        assert diversity_score(observations, [], None) == expected

    def test_repeated_species_count_once(self):
        observations = [observation("BRO", "Brochet"), observation("BRO", "Brochet")]
        assert diversity_score(observations, [], None) == 20

    def test_category_match_bonus(self):
        observations = [observation("TRF", "Truite fario"), observation("CHA", "Chabot")]
        linked = [
            LinkedSpecies("Truite fario", category=SpeciesCategory.SALMONID),
            LinkedSpecies("Ombre", category=SpeciesCategory.SALMONID),
            LinkedSpecies("Gardon", category=SpeciesCategory.CYPRINID),
        ]
        assert diversity_score(observations, linked, WaterCategory.FIRST) == 50
        assert diversity_score(observations, linked, WaterCategory.SECOND) == 45


class TestTrophyAndRecency:
    def test_trophy_points_per_observation(self):
        observations = [
            observation("BRO", "Brochet"),
            observation("BRO", "Brochet"),
            observation("SAN", "Sandre"),
            observation("GAR", "Gardon"),
        ]
        assert trophy_score(observations) == 60

    def test_trophy_capped(self):
        assert trophy_score([observation("CCO", "Carpe commune")] * 8) == 100

    @pytest.mark.parametrize("years,expected", [(1, 100), (4, 70), (8, 40), (15, 20)])
    def test_recency_buckets(self, years, expected):
        observations = [observation("GAR", "Gardon", days_ago=int(years * 365.25))]
        assert recency_score(observations, NOW) == expected

    def test_recency_without_observations(self):
        assert recency_score([], NOW) == 0


class TestWaterQuality:
    def test_defaults_to_fifty_without_data(self):
        assert water_quality_score([], []) == 50

    def test_uses_latest_value_per_parameter(self):
        snapshots = [
            snapshot("nitrates", 60, days_ago=400),
            snapshot("nitrates", 5, days_ago=5),
        ]
        assert water_quality_score(snapshots, []) == 100

    def test_averages_measured_parameters(self):
        snapshots = [
            snapshot("dissolved_oxygen", 8.5),  # 100
            snapshot("ph", 8.7),  # 60
            snapshot("nitrates", 30),  # 40
            snapshot("ammonium", 0.7),  # 60
        ]
        assert water_quality_score(snapshots, []) == 65

    def test_warm_water_species_tolerate_less_oxygen(self):
        snapshots = [snapshot("dissolved_oxygen", 6.0)]
        warm = [LinkedSpecies("Carpe", optimal_temp_min=18, optimal_temp_max=28)]
        assert water_quality_score(snapshots, []) == 60
        assert water_quality_score(snapshots, warm) == 100

    def test_salmonids_need_tighter_ph(self):
        snapshots = [snapshot("ph", 8.3)]
        salmonid = [LinkedSpecies("Truite fario", category=SpeciesCategory.SALMONID)]
        assert water_quality_score(snapshots, []) == 100
        assert water_quality_score(snapshots, salmonid) == 60


class TestReviewsAndBonuses:
    def test_rating_and_density_rescaled(self):
        reviews = [Review(rating=4, fish_density=3), Review(rating=5, fish_density=5), Review()]
        assert rating_score(reviews) == pytest.approx(90)
        assert fish_density_score(reviews) == pytest.approx(75)

    def test_no_reviews_score_zero(self):
        assert rating_score([]) == 0
        assert fish_density_score([]) == 0

    @pytest.mark.parametrize(
        "note,class_code,expected",
        [(None, "1", 20), (40.0, "2", 10), (5.0, None, 20), (12.0, None, 10), (30.0, None, -10), (50.0, None, -20), (None, None, 0)],
    )
    def test_fish_index_bonus(self, note, class_code, expected):
        assert fish_index_bonus(note, class_code) == expected


class TestRegulationPenalty:
    def test_takes_most_severe_not_sum(self):
        regulations = [
            Regulation(RegulationType.SEASONAL_BAN),
            Regulation(RegulationType.POLLUTION_ALERT),
        ]
        assert regulation_penalty(regulations, NOW.date()) == -40

    def test_ignores_inactive_and_out_of_range(self):
        regulations = [
            Regulation(RegulationType.PERMANENT_BAN, is_active=False),
            Regulation(RegulationType.FLOOD_ALERT, end_date=date(2024, 6, 1)),
            Regulation(RegulationType.DROUGHT_ALERT, start_date=date(2024, 7, 1)),
            Regulation(RegulationType.SIZE_LIMIT),
        ]
        assert regulation_penalty(regulations, NOW.date()) == 0


# =============================================================================
# CALCULATOR
# =============================================================================

class TestStaticScoreCalculator:
    async def test_spot_without_data_scores_ten(self, repository, gateway, make_spot):
        spot = repository.add(make_spot())
        assert await compute_static_score(spot.id, repository, gateway, now=NOW) == 10

    async def test_combines_sub_scores_bonuses_and_penalty(self, repository, gateway, make_spot):
        spot = repository.add(
            make_spot(external_id="hubeau_poisson_06580001"),
            observations=[
                observation("BRO", "Brochet"),
                observation("BRO", "Brochet", days_ago=90),
                observation("TRF", "Truite fario"),
                observation("GAR", "Gardon"),
                observation("PER", "Perche"),
            ],
            reviews=[Review(rating=4, fish_density=3), Review(rating=5, fish_density=5)],
            regulations=[Regulation(RegulationType.SEASONAL_BAN)],
        )
        gateway.fetch_fish_index.return_value = FishIndex(station_code="06580001", note=10.0, class_code="2")

        breakdown = await StaticScoreCalculator(repository, gateway).compute_breakdown(spot.id, now=NOW)

        # 0.3*60 + 0.2*60 + 0.15*100 + 0.2*50 + 0.05*90 + 0.05*75 = 63.25
        assert breakdown.diversity == 60
        assert breakdown.trophy == 60
        assert breakdown.recency == 100
        assert breakdown.quality == 50
        assert breakdown.fish_index_bonus == 10
        assert breakdown.regulation_penalty == -30
        assert breakdown.score == 43
        gateway.fetch_fish_index.assert_awaited_once_with("06580001")

    async def test_persisted_ibgn_preferred_over_live_lookup(self, repository, gateway, make_spot):
        spot = repository.add(make_spot(hydrobio_station_code="06000123"))
        repository.biological[spot.id] = BiologicalReading("IBGN", 14, "Bon")

        breakdown = await StaticScoreCalculator(repository, gateway).compute_breakdown(spot.id, now=NOW)

        assert breakdown.ibgn_bonus == 10
        gateway.fetch_biological_indices.assert_not_awaited()

    async def test_live_ibgn_when_nothing_persisted(self, repository, gateway, make_spot):
        spot = repository.add(make_spot(hydrobio_station_code="06000123"))
        gateway.fetch_biological_indices.return_value = [
            BiologicalIndexResult("IBD", 12, "Moyen"),
            BiologicalIndexResult("IBGN", 18, "Très bon"),
        ]

        breakdown = await StaticScoreCalculator(repository, gateway).compute_breakdown(spot.id, now=NOW)

        assert breakdown.ibgn_bonus == 15
        assert breakdown.score == 25

    async def test_failing_lookups_fall_back_to_neutral(self, repository, failing_gateway, make_spot):
        spot = repository.add(make_spot(external_id="hubeau_poisson_1", hydrobio_station_code="2"))
        assert await compute_static_score(spot.id, repository, failing_gateway, now=NOW) == 10

    async def test_score_is_clamped(self, repository, gateway, make_spot):
        spot = repository.add(
            make_spot(),
            regulations=[Regulation(RegulationType.PERMANENT_BAN)],
        )
        assert await compute_static_score(spot.id, repository, gateway, now=NOW) == 0

    async def test_missing_spot_is_fatal(self, repository, gateway):
        with pytest.raises(SpotNotFoundException):
            await compute_static_score("missing", repository, gateway, now=NOW)
