"""
Fish activity index: the baseline of the dynamic score.

Starts at 50 and applies fixed deltas for pressure, wind, cloud cover,
moon phase, hour of day, water temperature and water-level trend. The
result is clamped to [0, 100] and labelled for display.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from spotscore.domain import FishabilityFactor, Impact
from spotscore.scoring.fusion import clamp_score

BASELINE = 50

# Fallbacks when no weather snapshot is available
DEFAULT_PRESSURE = 1013.0
DEFAULT_TEMPERATURE = 15.0
DEFAULT_WIND_SPEED = 10.0
DEFAULT_CLOUD_COVER = 50.0

SCORE_BANDS: List[Tuple[int, str, str]] = [
    (80, "Excellente", "#22c55e"),
    (60, "Bonne", "#84cc16"),
    (40, "Moyenne", "#eab308"),
    (20, "Faible", "#f97316"),
    (0, "Très faible", "#ef4444"),
]


@dataclass(frozen=True)
class ActivityConditions:
    """Inputs of the activity index.

    ``moon_phase`` is "new", "full" or "other"; trends are "rising",
    "stable" or "falling".
    """

    hour_of_day: int
    month: int
    pressure: float = DEFAULT_PRESSURE
    pressure_trend: str = "stable"
    temperature: float = DEFAULT_TEMPERATURE
    wind_speed: float = DEFAULT_WIND_SPEED
    cloud_cover: float = DEFAULT_CLOUD_COVER
    moon_phase: str = "other"
    water_temperature: Optional[float] = None
    water_level_trend: Optional[str] = None


@dataclass
class ActivityIndex:
    score: int
    label: str
    color: str
    factors: List[FishabilityFactor] = field(default_factory=list)


def score_label(score: int) -> str:
    return next(label for floor, label, _ in SCORE_BANDS if score >= floor)


def score_color(score: int) -> str:
    return next(color for floor, _, color in SCORE_BANDS if score >= floor)


def moon_phase_category(phase: float) -> str:
    """Bucket a phase fraction (0 new, 0.5 full) into new / full / other."""
    if phase < 0.05 or phase > 0.95:
        return "new"
    if 0.45 < phase < 0.55:
        return "full"
    return "other"


def calculate_activity_index(conditions: ActivityConditions) -> ActivityIndex:
    score = BASELINE
    factors: List[FishabilityFactor] = []

    def fire(name: str, impact: Impact, description: str) -> None:
        factors.append(FishabilityFactor(name, impact, description))

    if conditions.pressure_trend == "falling":
        score += 15
        fire("Pression", Impact.POSITIVE, "Pression en baisse - haute activité")
    elif conditions.pressure_trend == "stable":
        score += 5
        fire("Pression", Impact.NEUTRAL, "Pression stable")
    else:
        fire("Pression", Impact.NEGATIVE, "Pression en hausse - activité réduite")

    if 1010 <= conditions.pressure <= 1020:
        score += 10

    if 5 <= conditions.wind_speed <= 20:
        score += 10
        fire("Vent", Impact.POSITIVE, "Vent léger favorable")
    elif conditions.wind_speed > 40:
        score -= 20
        fire("Vent", Impact.NEGATIVE, "Vent trop fort")
    else:
        fire("Vent", Impact.NEUTRAL, "Conditions de vent neutres")

    if 50 <= conditions.cloud_cover <= 80:
        score += 10
        fire("Nuages", Impact.POSITIVE, "Ciel couvert favorable")
    else:
        fire("Nuages", Impact.NEUTRAL, "Couverture nuageuse neutre")

    if conditions.moon_phase in ("new", "full"):
        score += 10
        fire("Lune", Impact.POSITIVE, "Phase lunaire favorable")
    else:
        fire("Lune", Impact.NEUTRAL, "Phase lunaire neutre")

    hour = conditions.hour_of_day
    if 5 <= hour <= 9 or 17 <= hour <= 21:
        score += 15
        fire("Heure", Impact.POSITIVE, "Créneau horaire optimal")
    elif 11 <= hour <= 14:
        score -= 10
        fire("Heure", Impact.NEGATIVE, "Créneau horaire défavorable")
    else:
        fire("Heure", Impact.NEUTRAL, "Créneau horaire neutre")

    water_temperature = conditions.water_temperature
    if water_temperature is not None:
        if 12 <= water_temperature <= 20:
            score += 10
            fire("Eau", Impact.POSITIVE, "Température eau idéale")
        elif water_temperature < 5 or water_temperature > 25:
            score -= 15
            fire("Eau", Impact.NEGATIVE, "Température eau extrême")
        else:
            fire("Eau", Impact.NEUTRAL, "Température eau acceptable")

    if conditions.water_level_trend == "stable":
        score += 10
        fire("Niveau eau", Impact.POSITIVE, "Niveau d'eau stable - favorable")
    elif conditions.water_level_trend == "rising":
        score += 5
        fire("Niveau eau", Impact.NEUTRAL, "Niveau d'eau en hausse")
    elif conditions.water_level_trend == "falling":
        score -= 5
        fire("Niveau eau", Impact.NEGATIVE, "Niveau d'eau en baisse")

    score = clamp_score(score)
    return ActivityIndex(score=score, label=score_label(score), color=score_color(score), factors=factors)
