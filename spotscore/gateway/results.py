"""Typed results returned by the external signal gateway.

Each result round-trips through the signal cache as a plain dict, so
timestamps are kept as ISO strings.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Type, TypeVar

R = TypeVar("R", bound="Payload")


class Payload:
    """Dict conversion for cacheable results."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls: Type[R], data: Dict[str, Any]) -> R:
        names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class WeatherSnapshot(Payload):
    temperature: float
    humidity: Optional[float]
    pressure: float
    wind_speed: float
    cloud_cover: float
    weather_code: Optional[int] = None
    uv_index: Optional[float] = None
    precipitation: Optional[float] = None


@dataclass(frozen=True)
class PressureDelta(Payload):
    """Barometric change over the last 48 hours.

    ``trend`` is one of chute_rapide, chute_lente, stable, hausse_lente,
    hausse_rapide.
    """

    current: float
    past_48h: float
    delta: float
    trend: str
    label: str


@dataclass(frozen=True)
class WaterLevel(Payload):
    station_code: str
    current_level: float
    trend: str  # rising | stable | falling
    measured_at: Optional[str] = None
    unit: str = "m"


@dataclass(frozen=True)
class WaterTemperature(Payload):
    temperature: float
    measured_at: Optional[str] = None


@dataclass(frozen=True)
class FlowStatus(Payload):
    status: str  # flowing | weak_flow | stagnant | dry | unknown
    label: str = ""
    observed_at: Optional[str] = None
    station_code: Optional[str] = None


@dataclass(frozen=True)
class GroundwaterLevel(Payload):
    station_code: str
    level: float
    trend: str
    label: str
    measured_at: Optional[str] = None


@dataclass(frozen=True)
class DroughtRestriction(Payload):
    level: str  # vigilance | alerte | alerte_renforcee | crise
    label: str
    fishing_impacted: bool


@dataclass(frozen=True)
class FloodForecast(Payload):
    current_discharge: float
    max_discharge: float
    mean_discharge: float
    peak_date: str
    risk_level: str  # low | moderate | high | extreme
    label: str


@dataclass(frozen=True)
class FloodVigilance(Payload):
    level: str  # green | yellow | orange | red
    level_number: int
    section_code: Optional[str] = None
    section_name: Optional[str] = None


@dataclass(frozen=True)
class FishIndex(Payload):
    """Latest river-fish index (IPR) for a fish-monitoring station."""

    station_code: str
    note: Optional[float] = None
    class_code: Optional[str] = None
    class_label: Optional[str] = None
    operation_date: Optional[str] = None


@dataclass(frozen=True)
class BiologicalIndexResult(Payload):
    index_type: str  # IBGN | IBD
    value: float
    quality_class: str
    measured_at: Optional[str] = None


@dataclass(frozen=True)
class WaterBody(Payload):
    found: bool
    nature: Optional[str] = None
    name: Optional[str] = None
    layer: Optional[str] = None  # plan_d_eau | surface_hydrographique


@dataclass(frozen=True)
class LandOwnership(Payload):
    owner_type: str = "unknown"  # public | private | unknown
    is_public: bool = False
    owner_group_code: Optional[str] = None
    owner_name: Optional[str] = None
    parcel_code: Optional[str] = None


@dataclass(frozen=True)
class AgriculturalParcel(Payload):
    is_in_parcel: bool = False
    culture_code: Optional[str] = None
    culture_label: Optional[str] = None


@dataclass(frozen=True)
class RiverPublicDomain(Payload):
    is_public_domain: bool = False
    manager: Optional[str] = None
    name: Optional[str] = None
    navigability: Optional[str] = None


@dataclass(frozen=True)
class Installation:
    name: str
    regime: str
    is_livestock: bool


@dataclass(frozen=True)
class NearbyInstallations(Payload):
    has_livestock: bool = False
    installations: List[Installation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NearbyInstallations":
        return cls(
            has_livestock=data.get("has_livestock", False),
            installations=[Installation(**item) for item in data.get("installations", [])],
        )
