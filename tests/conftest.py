"""
Pytest conftest.py - Shared fixtures

=============================================================================
FIXTURES
=============================================================================

- FakeSpotRepository: in-memory SpotRepository that records every write
- gateway: SignalGateway stub built from AsyncMocks; every lookup
  answers "unavailable" / "not found" unless a test overrides it
- make_spot: SpotRecord factory
- now: fixed aware reference time (10:00 UTC = noon in Paris, June)
=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from spotscore.core.exceptions import SpotNotFoundException
from spotscore.domain import (
    BiologicalReading,
    DataOrigin,
    LinkedSpecies,
    ModerationStatus,
    Observation,
    QualitySnapshot,
    Regulation,
    Review,
    SpotRecord,
)
from spotscore.gateway.results import (
    AgriculturalParcel,
    LandOwnership,
    NearbyInstallations,
    RiverPublicDomain,
    WaterBody,
)
from spotscore.repositories import ValidationUpdate


# =============================================================================
# REPOSITORY
# =============================================================================

class FakeSpotRepository:
    """In-memory SpotRepository.

    Writes are recorded in ``static_saves``, ``dynamic_saves`` and
    ``validations`` so tests can assert on what a job persisted.
    """

    def __init__(self) -> None:
        self.spots: Dict[str, SpotRecord] = {}
        self.statuses: Dict[str, ModerationStatus] = {}
        self.validated: set = set()
        self.observations: Dict[str, List[Observation]] = {}
        self.snapshots: Dict[str, List[QualitySnapshot]] = {}
        self.linked_species: Dict[str, List[LinkedSpecies]] = {}
        self.reviews: Dict[str, List[Review]] = {}
        self.regulations: Dict[str, List[Regulation]] = {}
        self.biological: Dict[str, BiologicalReading] = {}

        self.static_saves: Dict[str, tuple] = {}
        self.dynamic_saves: Dict[str, tuple] = {}
        self.validations: Dict[str, ValidationUpdate] = {}

    def add(
        self,
        spot: SpotRecord,
        status: ModerationStatus = ModerationStatus.APPROVED,
        observations: Sequence[Observation] = (),
        snapshots: Sequence[QualitySnapshot] = (),
        linked_species: Sequence[LinkedSpecies] = (),
        reviews: Sequence[Review] = (),
        regulations: Sequence[Regulation] = (),
    ) -> SpotRecord:
        self.spots[spot.id] = spot
        self.statuses[spot.id] = status
        self.observations[spot.id] = list(observations)
        self.snapshots[spot.id] = list(snapshots)
        self.linked_species[spot.id] = list(linked_species)
        self.reviews[spot.id] = list(reviews)
        self.regulations[spot.id] = list(regulations)
        return spot

    def _require(self, spot_id: str) -> SpotRecord:
        if spot_id not in self.spots:
            raise SpotNotFoundException(spot_id)
        return self.spots[spot_id]

    async def get_spot(self, spot_id: str) -> SpotRecord:
        return self._require(spot_id)

    async def list_observations(self, spot_id: str) -> List[Observation]:
        return list(self.observations.get(spot_id, []))

    async def list_quality_snapshots(self, spot_id: str) -> List[QualitySnapshot]:
        return list(self.snapshots.get(spot_id, []))

    async def list_linked_species(self, spot_id: str) -> List[LinkedSpecies]:
        return list(self.linked_species.get(spot_id, []))

    async def list_reviews(self, spot_id: str) -> List[Review]:
        return list(self.reviews.get(spot_id, []))

    async def list_regulations(self, spot_id: str) -> List[Regulation]:
        return list(self.regulations.get(spot_id, []))

    async def latest_biological_index(self, spot_id: str, index_type: str) -> Optional[BiologicalReading]:
        reading = self.biological.get(spot_id)
        if reading is not None and reading.index_type == index_type:
            return reading
        return None

    async def list_approved_spots(
        self, department: Optional[str] = None, spot_ids: Optional[Sequence[str]] = None
    ) -> List[SpotRecord]:
        if spot_ids is not None:
            spots = [self.spots[i] for i in spot_ids if i in self.spots]
        else:
            spots = [s for s in self.spots.values() if self.statuses[s.id] == ModerationStatus.APPROVED]
        if department:
            spots = [s for s in spots if s.department == department]
        return spots

    async def list_unvalidated_spots(self, department: Optional[str] = None, limit: int = 50) -> List[SpotRecord]:
        spots = [
            s
            for s in self.spots.values()
            if s.id not in self.validated and s.data_origin != DataOrigin.USER
        ]
        if department:
            spots = [s for s in spots if s.department == department]
        return spots[:limit]

    async def save_static_score(self, spot_id, static_score, fishability_score, updated_at) -> None:
        self._require(spot_id)
        self.static_saves[spot_id] = (static_score, fishability_score, updated_at)

    async def save_dynamic_score(self, spot_id, dynamic_score, fishability_score, updated_at) -> None:
        self._require(spot_id)
        self.dynamic_saves[spot_id] = (dynamic_score, fishability_score, updated_at)

    async def save_validation(self, spot_id: str, update: ValidationUpdate) -> None:
        self._require(spot_id)
        self.validations[spot_id] = update
        self.validated.add(spot_id)


@pytest.fixture
def repository() -> FakeSpotRepository:
    return FakeSpotRepository()


# =============================================================================
# GATEWAY
# =============================================================================

OPTIONAL_LOOKUPS = (
    "fetch_weather",
    "fetch_pressure_delta",
    "fetch_water_level",
    "fetch_water_temperature",
    "fetch_flow_status",
    "fetch_groundwater_level",
    "fetch_drought_restriction",
    "fetch_flood_forecast",
    "fetch_flood_vigilance",
    "compute_solunar",
    "fetch_fish_index",
)

GATEWAY_LOOKUPS = OPTIONAL_LOOKUPS + (
    "fetch_biological_indices",
    "find_water_body",
    "check_land_ownership",
    "check_agricultural_parcel",
    "check_river_public_domain",
    "find_nearby_livestock",
)


def make_gateway() -> MagicMock:
    """Gateway stub where every upstream is unavailable or finds nothing."""
    gateway = MagicMock(name="gateway")
    for name in OPTIONAL_LOOKUPS:
        setattr(gateway, name, AsyncMock(return_value=None))

    gateway.fetch_biological_indices = AsyncMock(return_value=[])
    gateway.find_water_body = AsyncMock(return_value=WaterBody(found=False))
    gateway.check_land_ownership = AsyncMock(return_value=LandOwnership())
    gateway.check_agricultural_parcel = AsyncMock(return_value=AgriculturalParcel())
    gateway.check_river_public_domain = AsyncMock(return_value=RiverPublicDomain())
    gateway.find_nearby_livestock = AsyncMock(return_value=NearbyInstallations())
    return gateway


@pytest.fixture
def gateway() -> MagicMock:
    return make_gateway()


@pytest.fixture
def failing_gateway() -> MagicMock:
    """Every lookup raises, as if every upstream and the cache were down."""
    gateway = make_gateway()
    for name in GATEWAY_LOOKUPS:
        getattr(gateway, name).side_effect = RuntimeError(f"{name} down")
    return gateway


# =============================================================================
# DATA
# =============================================================================

@pytest.fixture
def make_spot():
    counter = {"n": 0}

    def factory(**overrides) -> SpotRecord:
        counter["n"] += 1
        values = {
            "id": f"spot-{counter['n']}",
            "latitude": 45.76,
            "longitude": 4.84,
            "department": "69",
        }
        values.update(overrides)
        return SpotRecord(**values)

    return factory


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)
