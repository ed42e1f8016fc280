"""Domain types shared by the calculators, the repository and the jobs.

Calculators never see ORM rows: the repository maps them to the frozen
dataclasses below so every score is a pure function of these values
plus the gateway results.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional


class AccessType(str, enum.Enum):
    """Who may fish at a spot and under what precondition."""

    FREE = "FREE"
    PAID = "PAID"
    FISHING_CARD = "FISHING_CARD"
    MEMBERS_ONLY = "MEMBERS_ONLY"
    PRIVATE = "PRIVATE"
    RESTRICTED = "RESTRICTED"


class ModerationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WaterCategory(str, enum.Enum):
    """French legal water category (salmonid vs cyprinid waters)."""

    FIRST = "FIRST"
    SECOND = "SECOND"


class SpeciesCategory(str, enum.Enum):
    SALMONID = "SALMONID"
    CYPRINID = "CYPRINID"
    PERCID = "PERCID"
    CARNIVORE = "CARNIVORE"
    OTHER = "OTHER"


class FeedingType(str, enum.Enum):
    CARNIVORE = "carnivore"
    OMNIVORE = "omnivore"
    HERBIVORE = "herbivore"


class RegulationType(str, enum.Enum):
    PERMANENT_BAN = "PERMANENT_BAN"
    POLLUTION_ALERT = "POLLUTION_ALERT"
    FLOOD_ALERT = "FLOOD_ALERT"
    SEASONAL_BAN = "SEASONAL_BAN"
    DROUGHT_ALERT = "DROUGHT_ALERT"
    SIZE_LIMIT = "SIZE_LIMIT"
    CATCH_LIMIT = "CATCH_LIMIT"


class DataOrigin(str, enum.Enum):
    USER = "USER"
    AUTO_HUBEAU = "AUTO_HUBEAU"
    AUTO_OSM = "AUTO_OSM"


class Tier(str, enum.Enum):
    """Confidence tier of a voting signal."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


TIER_WEIGHTS: Dict[Tier, int] = {Tier.HIGH: 3, Tier.MEDIUM: 2, Tier.LOW: 1}


class Impact(str, enum.Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Signal:
    """One atomic piece of evidence from one data source.

    Point signals (confidence engine) carry a signed ``weight`` and no
    outcome. Vote signals (access detector) propose an ``outcome`` with
    a confidence ``tier`` and weigh ``TIER_WEIGHTS[tier]``.
    """

    source: str
    code: str
    weight: int
    outcome: Optional[str] = None
    tier: Optional[Tier] = None
    details: Optional[str] = None

    @classmethod
    def points(cls, source: str, code: str, points: int, details: Optional[str] = None) -> "Signal":
        return cls(source=source, code=code, weight=points, details=details)

    @classmethod
    def vote(
        cls,
        source: str,
        code: str,
        outcome: str,
        tier: Tier,
        details: Optional[str] = None,
    ) -> "Signal":
        return cls(
            source=source,
            code=code,
            weight=TIER_WEIGHTS[tier],
            outcome=outcome,
            tier=tier,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON snapshot persisted on the spot for explainability."""
        data: Dict[str, Any] = {"source": self.source, "signal": self.code}
        if self.tier is None:
            data["score"] = self.weight
        else:
            data["accessType"] = self.outcome
            data["confidence"] = self.tier.value
        if self.details:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class FishabilityFactor:
    """Display-oriented signal emitted by the dynamic calculator."""

    name: str
    impact: Impact
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "impact": self.impact.value, "description": self.description}


@dataclass(frozen=True)
class SpotRecord:
    """The slice of a spot the engine reads."""

    id: str
    latitude: float
    longitude: float
    water_category: Optional[WaterCategory] = None
    data_origin: DataOrigin = DataOrigin.USER
    department: Optional[str] = None
    external_id: Optional[str] = None
    hydro_station_code: Optional[str] = None
    temp_station_code: Optional[str] = None
    piezo_station_code: Optional[str] = None
    hydrobio_station_code: Optional[str] = None
    osm_tags: Mapping[str, str] = field(default_factory=dict)
    static_score: Optional[int] = None
    dynamic_score: Optional[int] = None
    observation_count: int = 0
    quality_snapshot_count: int = 0
    confidence_details: Optional[Dict[str, Any]] = None

    @property
    def fish_station_code(self) -> Optional[str]:
        """Fish-monitoring station reference carried in the external id."""
        if not self.external_id:
            return None
        return self.external_id.replace("hubeau_poisson_", "")


@dataclass(frozen=True)
class LinkedSpecies:
    """A species linked to a spot, with the traits the calculators use."""

    name: str
    category: Optional[SpeciesCategory] = None
    feeding_type: Optional[FeedingType] = None
    optimal_temp_min: Optional[float] = None
    optimal_temp_max: Optional[float] = None
    spawn_month_start: Optional[int] = None
    spawn_month_end: Optional[int] = None
    abundance: Optional[str] = None


@dataclass(frozen=True)
class Observation:
    species_code: str
    species_name: str
    observed_at: datetime
    count: int = 1


@dataclass(frozen=True)
class QualitySnapshot:
    parameter: str
    value: float
    measured_at: datetime


@dataclass(frozen=True)
class Review:
    rating: Optional[float] = None
    fish_density: Optional[float] = None


@dataclass(frozen=True)
class Regulation:
    type: RegulationType
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def applies_on(self, day: date) -> bool:
        if not self.is_active:
            return False
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class BiologicalReading:
    index_type: str
    value: float
    quality_class: str
    measured_at: Optional[datetime] = None


@dataclass
class ConfidenceResult:
    confidence_score: int
    signals: List[Signal]


@dataclass
class AccessResult:
    access_type: Optional[AccessType]
    confidence: int
    signals: List[Signal]
