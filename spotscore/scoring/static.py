"""
Static Fishability Score
========================

Ecological / historical estimate of how good a spot is, independent of
current conditions. Six weighted sub-scores (each 0-100):

    0.30 diversity + 0.20 trophy + 0.15 recency
    + 0.20 water quality + 0.05 rating + 0.05 fish density

plus three bonus terms added after weighting: river-fish index (IPR,
-20..+20), invertebrate index (IBGN, -10..+15) and the most severe
active regulation penalty (-50..0). The sum is clamped to [0, 100].

Every missing input falls back to a neutral value, so a spot with no
data at all scores 10 (water quality defaults to 50).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from spotscore.domain import (
    LinkedSpecies,
    Observation,
    QualitySnapshot,
    Regulation,
    RegulationType,
    Review,
    SpeciesCategory,
    SpotRecord,
    WaterCategory,
)
from spotscore.gateway.base import optional_signal
from spotscore.gateway.open_data import SignalGateway
from spotscore.repositories import SpotRepository
from spotscore.scoring.fusion import clamp_score, round_half_up

logger = logging.getLogger(__name__)

WEIGHTS = {
    "diversity": 0.30,
    "trophy": 0.20,
    "recency": 0.15,
    "quality": 0.20,
    "rating": 0.05,
    "fish_density": 0.05,
}

DIVERSITY_BUCKETS = [(10, 100), (7, 80), (4, 60), (2, 40), (1, 20)]
CATEGORY_MATCH_BONUS = 5

# Species anglers target, matched as substrings of the observed name
TROPHY_SPECIES = [
    "brochet",
    "sandre",
    "truite",
    "carpe",
    "black bass",
    "silure",
    "bar",
    "loup",
    "dorade",
    "saumon",
    "ombre",
]
TROPHY_POINTS = 20

DEFAULT_QUALITY_SCORE = 50

FISH_INDEX_CLASS_BONUS = {"1": 20, "2": 10, "3": 0, "4": -10, "5": -20}

IBGN_CLASS_BONUS = {
    "Très bon": 15,
    "Bon": 10,
    "Moyen": 5,
    "Médiocre": -5,
    "Mauvais": -10,
}

REGULATION_PENALTIES = {
    RegulationType.PERMANENT_BAN: -50,
    RegulationType.POLLUTION_ALERT: -40,
    RegulationType.FLOOD_ALERT: -30,
    RegulationType.SEASONAL_BAN: -30,
    RegulationType.DROUGHT_ALERT: -20,
}

DAYS_PER_YEAR = 365.25


def diversity_score(
    observations: Sequence[Observation],
    linked_species: Sequence[LinkedSpecies],
    water_category: Optional[WaterCategory],
) -> int:
    """
    Bucketed count of distinct observed species.

    +5 per linked species whose category matches the legal water
    category (salmonids in first-category waters, cyprinids in second).
    """
    count = len({obs.species_code for obs in observations})
    score = next((points for floor, points in DIVERSITY_BUCKETS if count >= floor), 0)

    matching = {
        WaterCategory.FIRST: SpeciesCategory.SALMONID,
        WaterCategory.SECOND: SpeciesCategory.CYPRINID,
    }.get(water_category)
    if matching is not None:
        matches = sum(1 for species in linked_species if species.category == matching)
        if matches:
            score = min(100, score + matches * CATEGORY_MATCH_BONUS)
    return score


def is_trophy_species(name: str) -> bool:
    lowered = name.lower()
    return any(trophy in lowered for trophy in TROPHY_SPECIES)


def trophy_score(observations: Sequence[Observation]) -> int:
    """+20 per observation of a trophy species, capped at 100."""
    hits = sum(1 for obs in observations if is_trophy_species(obs.species_name))
    return min(100, hits * TROPHY_POINTS)


def recency_score(observations: Sequence[Observation], now: datetime) -> int:
    if not observations:
        return 0
    latest = max(obs.observed_at for obs in observations)
    years_ago = (now - latest).total_seconds() / (DAYS_PER_YEAR * 86400)
    if years_ago <= 2:
        return 100
    if years_ago <= 5:
        return 70
    if years_ago <= 10:
        return 40
    return 20


def latest_by_parameter(snapshots: Sequence[QualitySnapshot]) -> Dict[str, float]:
    latest: Dict[str, QualitySnapshot] = {}
    for snapshot in snapshots:
        current = latest.get(snapshot.parameter)
        if current is None or snapshot.measured_at > current.measured_at:
            latest[snapshot.parameter] = snapshot
    return {parameter: snapshot.value for parameter, snapshot in latest.items()}


def water_quality_score(
    snapshots: Sequence[QualitySnapshot], linked_species: Sequence[LinkedSpecies]
) -> int:
    """
    Average quality points over the parameters that were measured.

    Oxygen and pH thresholds follow the linked species: warm-water
    communities (mean optimal max above 22 C) tolerate 5.5 mg/L oxygen
    instead of 7, and salmonids need the tighter 6.8-8.0 pH band.
    """
    values = latest_by_parameter(snapshots)
    points: List[int] = []

    max_temps = [s.optimal_temp_max for s in linked_species if s.optimal_temp_max is not None]
    warm_water = bool(max_temps) and sum(max_temps) / len(max_temps) > 22
    has_salmonid = any(s.category == SpeciesCategory.SALMONID for s in linked_species)

    oxygen = values.get("dissolved_oxygen")
    if oxygen is not None:
        threshold = 5.5 if warm_water else 7.0
        if threshold <= oxygen <= 12:
            points.append(100)
        elif oxygen >= threshold - 1.5:
            points.append(60)
        else:
            points.append(20)

    ph = values.get("ph")
    if ph is not None:
        low, high = (6.8, 8.0) if has_salmonid else (6.5, 8.5)
        if low <= ph <= high:
            points.append(100)
        elif 6 <= ph <= 9:
            points.append(60)
        else:
            points.append(20)

    nitrates = values.get("nitrates")
    if nitrates is not None:
        if nitrates < 10:
            points.append(100)
        elif nitrates < 25:
            points.append(70)
        elif nitrates < 50:
            points.append(40)
        else:
            points.append(10)

    ammonium = values.get("ammonium")
    if ammonium is not None:
        if ammonium < 0.5:
            points.append(100)
        elif ammonium < 1.0:
            points.append(60)
        else:
            points.append(10)

    phosphates = values.get("phosphates")
    if phosphates is not None:
        if phosphates < 0.1:
            points.append(100)
        elif phosphates < 0.3:
            points.append(60)
        else:
            points.append(20)

    if not points:
        return DEFAULT_QUALITY_SCORE
    return round_half_up(sum(points) / len(points))


def rating_score(reviews: Sequence[Review]) -> float:
    """Average 0-5 star rating rescaled to 0-100."""
    ratings = [r.rating for r in reviews if r.rating is not None]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings) / 5 * 100


def fish_density_score(reviews: Sequence[Review]) -> float:
    """Average 1-5 fish-density rating rescaled to 0-100."""
    densities = [r.fish_density for r in reviews if r.fish_density is not None]
    if not densities:
        return 0.0
    return (sum(densities) / len(densities) - 1) / 4 * 100


def fish_index_bonus(note: Optional[float], class_code: Optional[str]) -> int:
    """IPR bonus; lower IPR means a healthier fish community."""
    if class_code and class_code in FISH_INDEX_CLASS_BONUS:
        return FISH_INDEX_CLASS_BONUS[class_code]
    if note is None:
        return 0
    if note < 7:
        return 20
    if note < 16:
        return 10
    if note < 25:
        return 0
    if note < 36:
        return -10
    return -20


def ibgn_bonus(quality_class: Optional[str]) -> int:
    return IBGN_CLASS_BONUS.get(quality_class or "", 0)


def regulation_penalty(regulations: Sequence[Regulation], today: date) -> int:
    """Most severe penalty among regulations in force; penalties never stack."""
    penalty = 0
    for regulation in regulations:
        if regulation.applies_on(today):
            penalty = min(penalty, REGULATION_PENALTIES.get(regulation.type, 0))
    return penalty


@dataclass
class StaticScoreBreakdown:
    score: int
    diversity: int
    trophy: int
    recency: int
    quality: int
    rating: float
    fish_density: float
    fish_index_bonus: int
    ibgn_bonus: int
    regulation_penalty: int


class StaticScoreCalculator:
    """
    Computes static scores from the repository plus the IPR and IBGN
    lookups.

    Args:
        repository: Spot data access.
        gateway: External signal lookups.
    """

    def __init__(self, repository: SpotRepository, gateway: SignalGateway):
        self.repository = repository
        self.gateway = gateway

    async def compute(self, spot_id: str, now: Optional[datetime] = None) -> int:
        breakdown = await self.compute_breakdown(spot_id, now=now)
        return breakdown.score

    async def compute_breakdown(self, spot_id: str, now: Optional[datetime] = None) -> StaticScoreBreakdown:
        now = now or datetime.now(timezone.utc)

        spot = await self.repository.get_spot(spot_id)
        observations = await self.repository.list_observations(spot_id)
        snapshots = await self.repository.list_quality_snapshots(spot_id)
        linked_species = await self.repository.list_linked_species(spot_id)
        reviews = await self.repository.list_reviews(spot_id)
        regulations = await self.repository.list_regulations(spot_id)

        parts = {
            "diversity": diversity_score(observations, linked_species, spot.water_category),
            "trophy": trophy_score(observations),
            "recency": recency_score(observations, now),
            "quality": water_quality_score(snapshots, linked_species),
            "rating": rating_score(reviews),
            "fish_density": fish_density_score(reviews),
        }
        weighted = sum(WEIGHTS[name] * value for name, value in parts.items())

        ipr = await self._fish_index_bonus(spot)
        ibgn = await self._ibgn_bonus(spot)
        penalty = regulation_penalty(regulations, now.date())

        score = clamp_score(weighted + ipr + ibgn + penalty)
        logger.debug(f"Static score for spot {spot_id}: {score} ({parts}, ipr={ipr}, ibgn={ibgn}, regulation={penalty})")

        return StaticScoreBreakdown(
            score=score,
            fish_index_bonus=ipr,
            ibgn_bonus=ibgn,
            regulation_penalty=penalty,
            **parts,
        )

    async def _fish_index_bonus(self, spot: SpotRecord) -> int:
        station = spot.fish_station_code
        if not station:
            return 0
        fish_index = await optional_signal(self.gateway.fetch_fish_index(station), "fish_index")
        if fish_index is None:
            return 0
        return fish_index_bonus(fish_index.note, fish_index.class_code)

    async def _ibgn_bonus(self, spot: SpotRecord) -> int:
        """Latest persisted IBGN, else the live reading of the linked station."""
        reading = await self.repository.latest_biological_index(spot.id, "IBGN")
        if reading is not None:
            return ibgn_bonus(reading.quality_class)

        if not spot.hydrobio_station_code:
            return 0
        indices = await optional_signal(
            self.gateway.fetch_biological_indices(spot.hydrobio_station_code), "biological_indices"
        )
        live = next((i for i in indices or [] if i.index_type == "IBGN"), None)
        return ibgn_bonus(live.quality_class) if live else 0


async def compute_static_score(
    spot_id: str,
    repository: SpotRepository,
    gateway: SignalGateway,
    now: Optional[datetime] = None,
) -> int:
    """Static score of one spot, an integer in [0, 100]."""
    return await StaticScoreCalculator(repository, gateway).compute(spot_id, now=now)
