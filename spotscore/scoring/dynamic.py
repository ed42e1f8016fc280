"""
Dynamic Fishability Score
=========================

Real-time conditions estimate. The fish activity index is the baseline;
the calculator then adds the signals the baseline does not model:

1. 48 h barometric pressure delta (replaces the weather-code guess)
2. Solunar period (major +12, minor +6)
3. UV index and precipitation
4. Drought restriction level
5. Water temperature against the linked species' optimal ranges
6. Flow status, weighted by the dominant feeding type
7. Spawning season
8. Flood vigilance and the 7-day discharge forecast

Each external lookup goes through ``optional_signal``; an unavailable
signal contributes 0 and never aborts the others, so with every source
down the score equals the baseline.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from spotscore.core.config import settings
from spotscore.domain import FeedingType, FishabilityFactor, Impact, LinkedSpecies
from spotscore.gateway.base import optional_signal
from spotscore.gateway.open_data import SignalGateway
from spotscore.gateway.results import WeatherSnapshot
from spotscore.gateway.solunar import SolunarReading
from spotscore.repositories import SpotRepository
from spotscore.scoring.activity_index import (
    DEFAULT_CLOUD_COVER,
    DEFAULT_PRESSURE,
    DEFAULT_TEMPERATURE,
    DEFAULT_WIND_SPEED,
    ActivityConditions,
    calculate_activity_index,
    moon_phase_category,
    score_color,
    score_label,
)
from spotscore.scoring.fusion import clamp_score, round_half_up

logger = logging.getLogger(__name__)

PRESSURE_DELTA_IMPACT = {
    "chute_rapide": 15,
    "chute_lente": 10,
    "stable": 5,
    "hausse_lente": 0,
    "hausse_rapide": -5,
}

DROUGHT_IMPACT = {"vigilance": -5, "alerte": -15, "alerte_renforcee": -30, "crise": -50}

FLOW_IMPACT = {"flowing": 10, "weak_flow": 0, "stagnant": -15, "dry": -50}

FLOOD_VIGILANCE_IMPACT = {"green": 0, "yellow": -5, "orange": -20, "red": -40}

FLOOD_FORECAST_IMPACT = {"low": 0, "moderate": -5, "high": -15, "extreme": -30}

MAX_SPAWN_BONUS = 8


def pressure_trend_from_weather_code(weather_code: Optional[int]) -> str:
    """Crude trend guess: rain and showers mean a front, clear sky a high."""
    if weather_code is None:
        return "stable"
    if 51 <= weather_code <= 82:
        return "falling"
    if weather_code <= 3:
        return "rising"
    return "stable"


def pressure_trend_from_delta(delta: float) -> str:
    if delta < -2:
        return "falling"
    if delta > 2:
        return "rising"
    return "stable"


def uv_impact(uv_index: Optional[float]) -> int:
    if uv_index is None:
        return 0
    if uv_index < 3:
        return 5
    if uv_index > 6:
        return -5
    return 0


def precipitation_impact(precipitation: Optional[float]) -> int:
    if precipitation is None:
        return 0
    if 0.1 <= precipitation <= 2:
        return 8
    if precipitation > 5:
        return -5
    return 0


def generic_water_temperature_impact(water_temperature: float) -> int:
    if 12 <= water_temperature <= 22:
        return 10
    if 8 <= water_temperature <= 26:
        return 5
    if water_temperature < 4 or water_temperature > 30:
        return -10
    return 0


def species_temperature_score(
    linked_species: Sequence[LinkedSpecies], water_temperature: float
) -> Optional[float]:
    """
    Mean temperature match over species with a known optimal range.

    Per species: +10 inside [min, max], +5 within half a range width of
    it, -10 below 4 C or above 32 C. None when no species has a range.
    """
    ranged = [
        s for s in linked_species if s.optimal_temp_min is not None and s.optimal_temp_max is not None
    ]
    if not ranged:
        return None

    total = 0
    for species in ranged:
        low, high = species.optimal_temp_min, species.optimal_temp_max
        margin = (high - low) * 0.5
        if low <= water_temperature <= high:
            total += 10
        elif low - margin <= water_temperature <= high + margin:
            total += 5
        elif water_temperature < 4 or water_temperature > 32:
            total -= 10
    return total / len(ranged)


def species_aware_flow_impact(status: str, linked_species: Sequence[LinkedSpecies]) -> int:
    """
    Flow impact modulated by the dominant feeding type.

    Carnivores need oxygenated moving water: a carnivore-dominant spot
    loses 25 on stagnant water and gains 15 on flowing water, whereas
    cyprinid/herbivore communities only lose 5 on stagnant water.
    """
    base = FLOW_IMPACT.get(status, 0)
    typed = [s for s in linked_species if s.feeding_type is not None]
    if not typed:
        return base

    carnivore_ratio = sum(1 for s in typed if s.feeding_type == FeedingType.CARNIVORE) / len(typed)
    if status == "stagnant":
        return -25 if carnivore_ratio > 0.5 else -5
    if status == "flowing":
        return 15 if carnivore_ratio > 0.5 else base
    return base


def is_in_spawn_range(month: int, start: int, end: int) -> bool:
    """Month inside [start, end], with ranges such as Oct-Mar wrapping the year."""
    if end >= start:
        return start <= month <= end
    return month >= start or month <= end


def spawn_season_bonus(linked_species: Sequence[LinkedSpecies], month: int) -> int:
    timed = [
        s for s in linked_species if s.spawn_month_start is not None and s.spawn_month_end is not None
    ]
    if not timed:
        return 0
    spawning = sum(1 for s in timed if is_in_spawn_range(month, s.spawn_month_start, s.spawn_month_end))
    return round_half_up(spawning / len(timed) * MAX_SPAWN_BONUS)


def _impact_of(points: float) -> Impact:
    if points > 0:
        return Impact.POSITIVE
    if points < 0:
        return Impact.NEGATIVE
    return Impact.NEUTRAL


@dataclass
class DynamicScoreBreakdown:
    score: int
    label: str
    color: str
    baseline: int
    factors: List[FishabilityFactor] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "label": self.label,
            "color": self.color,
            "baseline": self.baseline,
            "factors": [f.to_dict() for f in self.factors],
        }


# Marks a lookup the caller did not prefetch
NOT_FETCHED: Any = object()


async def _ready(value: Any = None) -> Any:
    return value


class DynamicScoreCalculator:
    """
    Computes dynamic scores.

    Args:
        repository: Spot data access (linked species).
        gateway: External signal lookups.
        tz_name: Zone for hour-of-day and month rules.
    """

    def __init__(self, repository: SpotRepository, gateway: SignalGateway, tz_name: Optional[str] = None):
        self.repository = repository
        self.gateway = gateway
        self.tz = ZoneInfo(tz_name or settings.TIMEZONE)

    async def compute(self, spot_id: str, latitude: float, longitude: float, **kwargs: Any) -> int:
        breakdown = await self.compute_breakdown(spot_id, latitude, longitude, **kwargs)
        return breakdown.score

    async def compute_breakdown(
        self,
        spot_id: str,
        latitude: float,
        longitude: float,
        weather: Optional[WeatherSnapshot] = None,
        water_level_trend: Optional[str] = None,
        water_temperature: Optional[float] = None,
        hydro_station_code: Optional[str] = None,
        piezo_station_code: Optional[str] = None,
        now: Optional[datetime] = None,
        solunar: Optional[SolunarReading] = NOT_FETCHED,
    ) -> DynamicScoreBreakdown:
        """
        Baseline index plus every live adjustment.

        ``solunar`` may be passed in when the caller already computed it
        for the spot's grid cell; ``None`` then means unavailable and no
        new search is run.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(self.tz)

        linked_species = await self.repository.list_linked_species(spot_id)

        lookups: List[Awaitable[Any]] = [
            optional_signal(self.gateway.compute_solunar(now, latitude, longitude), "solunar")
            if solunar is NOT_FETCHED
            else _ready(solunar),
            optional_signal(self.gateway.fetch_pressure_delta(latitude, longitude), "pressure_delta"),
            optional_signal(self.gateway.fetch_drought_restriction(latitude, longitude), "drought"),
            optional_signal(self.gateway.fetch_flow_status(latitude, longitude), "flow_status"),
            optional_signal(self.gateway.fetch_flood_forecast(latitude, longitude), "flood_forecast"),
            optional_signal(self.gateway.fetch_flood_vigilance(hydro_station_code), "flood_vigilance")
            if hydro_station_code
            else _ready(),
            optional_signal(self.gateway.fetch_groundwater_level(piezo_station_code), "groundwater")
            if piezo_station_code
            else _ready(),
        ]
        solunar, pressure, drought, flow, flood, vigilance, groundwater = await asyncio.gather(*lookups)

        if pressure is not None:
            pressure_trend = pressure_trend_from_delta(pressure.delta)
        else:
            pressure_trend = pressure_trend_from_weather_code(weather.weather_code if weather else None)

        baseline = calculate_activity_index(
            ActivityConditions(
                hour_of_day=local.hour,
                month=local.month,
                pressure=weather.pressure if weather else DEFAULT_PRESSURE,
                pressure_trend=pressure_trend,
                temperature=weather.temperature if weather else DEFAULT_TEMPERATURE,
                wind_speed=weather.wind_speed if weather else DEFAULT_WIND_SPEED,
                cloud_cover=weather.cloud_cover if weather else DEFAULT_CLOUD_COVER,
                moon_phase=moon_phase_category(solunar.moon_phase) if solunar else "other",
                water_level_trend=water_level_trend,
            )
        )

        score: float = baseline.score
        factors = list(baseline.factors)

        def add(points: float, name: str, description: str, impact: Optional[Impact] = None) -> None:
            nonlocal score
            score += points
            factors.append(FishabilityFactor(name, impact or _impact_of(points), description))

        if pressure is not None:
            add(PRESSURE_DELTA_IMPACT.get(pressure.trend, 0), "Pression 48h", pressure.label)

        if solunar is not None and solunar.current_activity != "none":
            kind = "majeure" if solunar.current_activity == "major" else "mineure"
            add(solunar.score_impact, "Solunaire", f"Période {kind} en cours")

        if weather is not None:
            if weather.uv_index is not None:
                add(uv_impact(weather.uv_index), "UV", f"Indice UV {weather.uv_index:g}")
            if weather.precipitation is not None:
                add(
                    precipitation_impact(weather.precipitation),
                    "Précipitations",
                    f"{weather.precipitation:g} mm",
                )

        if drought is not None:
            add(DROUGHT_IMPACT.get(drought.level, 0), "Sécheresse", f"Restriction sécheresse : {drought.label}")

        if water_temperature is not None:
            species_score = species_temperature_score(linked_species, water_temperature)
            if species_score is not None:
                add(species_score, "Température espèces", f"Eau à {water_temperature:g}°C pour les espèces présentes")
            else:
                add(
                    generic_water_temperature_impact(water_temperature),
                    "Température eau",
                    f"Eau à {water_temperature:g}°C",
                )

        if groundwater is not None:
            add(0, "Nappe", f"Niveau de nappe : {groundwater.label}", Impact.NEUTRAL)

        if flow is not None:
            add(
                species_aware_flow_impact(flow.status, linked_species),
                "Écoulement",
                flow.label or flow.status,
            )

        spawn = spawn_season_bonus(linked_species, local.month)
        if spawn:
            add(spawn, "Frai", "Période de frai pour une partie des espèces")

        if vigilance is not None:
            add(FLOOD_VIGILANCE_IMPACT.get(vigilance.level, 0), "Vigicrues", f"Vigilance crues {vigilance.level}")

        if flood is not None:
            add(FLOOD_FORECAST_IMPACT.get(flood.risk_level, 0), "Crue prévue", flood.label)

        final = clamp_score(score)
        return DynamicScoreBreakdown(
            score=final,
            label=score_label(final),
            color=score_color(final),
            baseline=baseline.score,
            factors=factors,
        )


async def compute_dynamic_score(
    spot_id: str,
    latitude: float,
    longitude: float,
    repository: SpotRepository,
    gateway: SignalGateway,
    weather: Optional[WeatherSnapshot] = None,
    water_level_trend: Optional[str] = None,
    water_temperature: Optional[float] = None,
    **kwargs: Any,
) -> int:
    """Dynamic score of one spot, an integer in [0, 100]."""
    calculator = DynamicScoreCalculator(repository, gateway)
    return await calculator.compute(
        spot_id,
        latitude,
        longitude,
        weather=weather,
        water_level_trend=water_level_trend,
        water_temperature=water_temperature,
        **kwargs,
    )
