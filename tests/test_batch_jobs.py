"""
Tests for the batch refresh jobs
================================

The jobs run against the in-memory repository and the stub gateway, so
every assertion is on what was persisted and on how often each upstream
was called.
"""

import pytest

from spotscore.core.exceptions import DatabaseException
from spotscore.domain import AccessType, DataOrigin, ModerationStatus, WaterCategory
from spotscore.gateway.results import Installation, NearbyInstallations, WaterBody, WaterLevel, WaterTemperature
from spotscore.gateway.solunar import SolunarReading
from spotscore.jobs import refresh_dynamic_scores, refresh_static_scores, validate_spots_batch
from spotscore.jobs.batch import chunked, prefetch_batch_conditions

# Dynamic score with every signal unavailable at the fixed ``now``
BASELINE_AT_NOON = 75


def fail_for(spot_id, method):
    """Wrap a repository coroutine so it raises for one spot only."""

    async def wrapper(target_id, *args, **kwargs):
        if target_id == spot_id:
            raise RuntimeError(f"corrupt row {spot_id}")
        return await method(target_id, *args, **kwargs)

    return wrapper


def test_chunked():
    assert [list(c) for c in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 3)) == []


# =============================================================================
# STATIC
# =============================================================================

class TestRefreshStaticScores:
    async def test_updates_every_approved_spot(self, repository, gateway, make_spot, now):
        first = repository.add(make_spot())
        second = repository.add(make_spot(dynamic_score=70))
        repository.add(make_spot(), status=ModerationStatus.PENDING)

        summary = await refresh_static_scores(repository, gateway, now=now)

        assert summary == {"updated": 2, "errors": 0}
        # missing dynamic score counts as neutral 50
        assert repository.static_saves[first.id] == (10, 32, now)
        assert repository.static_saves[second.id] == (10, 43, now)

    async def test_explicit_spot_ids(self, repository, gateway, make_spot, now):
        first = repository.add(make_spot())
        repository.add(make_spot())

        summary = await refresh_static_scores(repository, gateway, spot_ids=[first.id], now=now)

        assert summary["updated"] == 1
        assert list(repository.static_saves) == [first.id]

    async def test_failing_spot_keeps_previous_score(self, repository, gateway, make_spot, now):
        broken = repository.add(make_spot())
        healthy = repository.add(make_spot())
        repository.list_observations = fail_for(broken.id, repository.list_observations)

        summary = await refresh_static_scores(repository, gateway, now=now)

        assert summary == {"updated": 1, "errors": 1}
        assert broken.id not in repository.static_saves
        assert healthy.id in repository.static_saves

    async def test_database_failure_aborts(self, repository, gateway, make_spot, now):
        repository.add(make_spot())
        repository.add(make_spot())

        async def broken_save(*args, **kwargs):
            raise DatabaseException("connection lost")

        repository.save_static_score = broken_save

        with pytest.raises(DatabaseException):
            await refresh_static_scores(repository, gateway, now=now)


# =============================================================================
# DYNAMIC
# =============================================================================

class TestRefreshDynamicScores:
    async def test_conditions_shared_per_cell_and_station(self, repository, gateway, make_spot, now):
        a = repository.add(make_spot(hydro_station_code="H1", static_score=10))
        b = repository.add(make_spot(latitude=45.78, longitude=4.83, hydro_station_code="H1"))
        c = repository.add(make_spot(latitude=43.60, longitude=1.44))
        gateway.fetch_water_level.return_value = WaterLevel(station_code="H1", current_level=1.2, trend="stable")

        summary = await refresh_dynamic_scores(repository, gateway, now=now)

        assert summary == {"updated": 3, "errors": 0}
        assert gateway.fetch_weather.await_count == 2
        gateway.fetch_water_level.assert_awaited_once_with("H1")
        gateway.fetch_water_temperature.assert_not_awaited()

        # stable water level +10 for the two spots on H1
        assert repository.dynamic_saves[a.id] == (BASELINE_AT_NOON + 10, 51, now)
        assert repository.dynamic_saves[b.id] == (BASELINE_AT_NOON + 10, 69, now)
        assert repository.dynamic_saves[c.id] == (BASELINE_AT_NOON, 64, now)

    async def test_prefetch_is_per_batch(self, repository, gateway, make_spot, now):
        for _ in range(3):
            repository.add(make_spot())

        await refresh_dynamic_scores(repository, gateway, batch_size=1, now=now)

        assert gateway.fetch_weather.await_count == 3

    async def test_solunar_computed_once_per_cell(self, repository, gateway, make_spot, now):
        a = repository.add(make_spot())
        b = repository.add(make_spot(latitude=45.78, longitude=4.83))
        c = repository.add(make_spot(latitude=43.60, longitude=1.44))
        gateway.compute_solunar.return_value = SolunarReading(0.25, "Premier quartier", "minor", 6)

        await refresh_dynamic_scores(repository, gateway, now=now)

        assert gateway.compute_solunar.await_count == 2
        for spot in (a, b, c):
            assert repository.dynamic_saves[spot.id][0] == BASELINE_AT_NOON + 6

    async def test_unavailable_solunar_is_not_searched_again(self, repository, gateway, make_spot, now):
        repository.add(make_spot())
        repository.add(make_spot())

        await refresh_dynamic_scores(repository, gateway, now=now)

        gateway.compute_solunar.assert_awaited_once()

    async def test_department_filter(self, repository, gateway, make_spot, now):
        lyon = repository.add(make_spot(department="69"))
        repository.add(make_spot(department="38"))

        summary = await refresh_dynamic_scores(repository, gateway, department="69", now=now)

        assert summary["updated"] == 1
        assert list(repository.dynamic_saves) == [lyon.id]

    async def test_unavailable_sources_are_not_errors(self, repository, failing_gateway, make_spot, now):
        spot = repository.add(make_spot(hydro_station_code="H1", temp_station_code="T1"))

        summary = await refresh_dynamic_scores(repository, failing_gateway, now=now)

        assert summary == {"updated": 1, "errors": 0}
        assert repository.dynamic_saves[spot.id][0] == BASELINE_AT_NOON

    async def test_failing_spot_is_counted(self, repository, gateway, make_spot, now):
        broken = repository.add(make_spot())
        repository.add(make_spot())
        repository.list_linked_species = fail_for(broken.id, repository.list_linked_species)

        summary = await refresh_dynamic_scores(repository, gateway, now=now)

        assert summary == {"updated": 1, "errors": 1}

    async def test_prefetch_conditions(self, gateway, make_spot):
        spot = make_spot(hydro_station_code="H1", temp_station_code="T1")
        gateway.fetch_water_level.return_value = WaterLevel(station_code="H1", current_level=0.8, trend="falling")
        gateway.fetch_water_temperature.return_value = WaterTemperature(temperature=14.5)

        conditions = await prefetch_batch_conditions([spot], gateway)

        assert conditions.weather_for(spot) is None
        assert conditions.water_level_trend_for(spot) == "falling"
        assert conditions.water_temperature_for(spot) == 14.5
        assert conditions.water_level_trend_for(make_spot()) is None


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidateSpotsBatch:
    @pytest.fixture
    def spots(self, repository, gateway, make_spot):
        gateway.find_water_body.return_value = WaterBody(found=True, nature="Étang", layer="plan_d_eau")
        approved = repository.add(
            make_spot(
                data_origin=DataOrigin.AUTO_OSM,
                water_category=WaterCategory.SECOND,
                osm_tags={"access": "public"},
            ),
            status=ModerationStatus.PENDING,
        )
        flagged = repository.add(make_spot(data_origin=DataOrigin.AUTO_OSM), status=ModerationStatus.PENDING)
        rejected = repository.add(
            make_spot(data_origin=DataOrigin.AUTO_OSM, osm_tags={"water": "wastewater"}),
            status=ModerationStatus.PENDING,
        )
        repository.add(make_spot(), status=ModerationStatus.PENDING)  # user-created, never validated
        return approved, flagged, rejected

    async def test_auto_decide(self, repository, gateway, spots, now):
        approved, flagged, rejected = spots

        summary = await validate_spots_batch(repository, gateway, auto_decide=True, now=now)

        assert summary == {"processed": 3, "approved": 1, "rejected": 1, "flagged": 1, "errors": 0}

        update = repository.validations[approved.id]
        assert update.confidence_score == 65
        assert update.status == ModerationStatus.APPROVED
        assert update.is_verified is True
        assert update.validated_at == now
        assert update.access_type == AccessType.FREE
        assert update.access_details == {
            "signals": [{"source": "osm", "signal": "access=public", "accessType": "FREE", "confidence": "high"}],
            "confidence": 100,
            "lastCheckedAt": now.isoformat(),
        }

        assert repository.validations[flagged.id].status == ModerationStatus.PENDING
        assert repository.validations[flagged.id].is_verified is None
        assert repository.validations[rejected.id].status == ModerationStatus.REJECTED

    async def test_unresolved_access_is_not_persisted(self, repository, gateway, spots, now):
        _, flagged, _ = spots

        await validate_spots_batch(repository, gateway, now=now)

        update = repository.validations[flagged.id]
        assert update.access_type is None
        assert update.access_details is None
        assert update.confidence_details == {
            "signals": [
                {"source": "bdtopo", "signal": "plan_d_eau_found", "score": 30, "details": "Sans nom (Étang)"},
                {"source": "bdtopo", "signal": "nature_fishing_friendly", "score": 10, "details": "Étang"},
            ]
        }

    async def test_without_auto_decide_status_is_untouched(self, repository, gateway, spots, now):
        summary = await validate_spots_batch(repository, gateway, now=now)

        assert summary == {"processed": 3, "approved": 0, "rejected": 0, "flagged": 0, "errors": 0}
        assert all(update.status is None for update in repository.validations.values())

    async def test_fresh_livestock_signal_feeds_access_detection(self, repository, gateway, make_spot, now):
        spot = repository.add(make_spot(data_origin=DataOrigin.AUTO_HUBEAU), status=ModerationStatus.PENDING)
        gateway.find_nearby_livestock.return_value = NearbyInstallations(
            has_livestock=True, installations=[Installation("EARL Bovins du Lac", "Enregistrement", True)]
        )

        await validate_spots_batch(repository, gateway, now=now)

        assert repository.validations[spot.id].access_type == AccessType.PRIVATE

    async def test_batch_size_and_department(self, repository, gateway, make_spot, now):
        for department in ("69", "69", "69", "38"):
            repository.add(make_spot(data_origin=DataOrigin.AUTO_OSM, department=department))

        summary = await validate_spots_batch(repository, gateway, department="69", batch_size=2, now=now)

        assert summary["processed"] == 2
        assert all(repository.spots[i].department == "69" for i in repository.validations)

    async def test_failing_spot_is_not_counted_as_decided(self, repository, gateway, spots, now):
        approved, _, _ = spots
        repository.save_validation = fail_for(approved.id, repository.save_validation)

        summary = await validate_spots_batch(repository, gateway, auto_decide=True, now=now)

        assert summary == {"processed": 2, "approved": 0, "rejected": 1, "flagged": 1, "errors": 1}
