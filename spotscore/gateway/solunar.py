"""
Solunar Almanac
===============

Solunar periods for a date and location, computed locally with
skyfield and a local JPL ephemeris file. Nothing is downloaded: a
missing file makes the reading unavailable.

- Major periods: moon upper transit +/- 1 h, and the opposite transit
  (12 h later) +/- 1 h
- Minor periods: moonrise +/- 30 min, moonset +/- 30 min

A moment inside a major period scores +12, inside only a minor period
+6, otherwise 0.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from skyfield import almanac
from skyfield.api import load, load_file, wgs84

from spotscore.core.config import settings

logger = logging.getLogger(__name__)

MAJOR_HALF_WIDTH = timedelta(hours=1)
MINOR_HALF_WIDTH = timedelta(minutes=30)

ACTIVITY_SCORES = {"major": 12, "minor": 6, "none": 0}


@dataclass(frozen=True)
class SolunarPeriod:
    kind: str  # major | minor
    label: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class SolunarReading:
    moon_phase: float
    moon_phase_name: str
    current_activity: str  # major | minor | none
    score_impact: int
    periods: List[SolunarPeriod] = field(default_factory=list)
    moon_rise: Optional[datetime] = None
    moon_set: Optional[datetime] = None


def moon_phase_name(phase: float) -> str:
    """French display name for a lunar phase fraction (0 new, 0.5 full)."""
    if phase < 0.05 or phase > 0.95:
        return "Nouvelle lune"
    if phase < 0.2:
        return "Premier croissant"
    if phase < 0.3:
        return "Premier quartier"
    if phase < 0.45:
        return "Gibbeuse croissante"
    if phase < 0.55:
        return "Pleine lune"
    if phase < 0.7:
        return "Gibbeuse décroissante"
    if phase < 0.8:
        return "Dernier quartier"
    return "Dernier croissant"


def build_periods(
    transit: Optional[datetime],
    moon_rise: Optional[datetime],
    moon_set: Optional[datetime],
) -> List[SolunarPeriod]:
    periods = []
    if transit is not None:
        periods.append(
            SolunarPeriod("major", "Transit lunaire", transit - MAJOR_HALF_WIDTH, transit + MAJOR_HALF_WIDTH)
        )
        opposite = transit + timedelta(hours=12)
        periods.append(
            SolunarPeriod("major", "Transit opposé", opposite - MAJOR_HALF_WIDTH, opposite + MAJOR_HALF_WIDTH)
        )
    if moon_rise is not None:
        periods.append(
            SolunarPeriod("minor", "Lever de lune", moon_rise - MINOR_HALF_WIDTH, moon_rise + MINOR_HALF_WIDTH)
        )
    if moon_set is not None:
        periods.append(
            SolunarPeriod("minor", "Coucher de lune", moon_set - MINOR_HALF_WIDTH, moon_set + MINOR_HALF_WIDTH)
        )
    return sorted(periods, key=lambda p: p.start)


def current_activity(periods: List[SolunarPeriod], moment: datetime) -> str:
    """Major wins over minor when periods overlap."""
    activity = "none"
    for period in periods:
        if period.contains(moment):
            if period.kind == "major":
                return "major"
            activity = "minor"
    return activity


class SolunarAlmanac:
    """
    Loads the ephemeris lazily and computes solunar readings.

    The ephemeris is read once per almanac instance from
    ``EPHEMERIS_PATH``. The timescale uses skyfield's bundled data.

    Raises:
        FileNotFoundError: From ``compute`` when the ephemeris is missing.
    """

    def __init__(self, ephemeris_path: Optional[str] = None, tz_name: Optional[str] = None):
        self.ephemeris_path = ephemeris_path or settings.EPHEMERIS_PATH
        self.tz = ZoneInfo(tz_name or settings.TIMEZONE)
        self._timescale = None
        self._ephemeris = None

    def _load(self):
        if self._ephemeris is None:
            logger.info(f"Loading ephemeris {self.ephemeris_path}")
            self._timescale = load.timescale(builtin=True)
            self._ephemeris = load_file(self.ephemeris_path)
        return self._timescale, self._ephemeris

    def _local_day(self, moment: datetime) -> Tuple[datetime, datetime]:
        local = moment.astimezone(self.tz)
        start = local.replace(hour=0, minute=0, second=0, microsecond=0)
        return start, start + timedelta(days=1)

    def compute(self, moment: datetime, latitude: float, longitude: float) -> SolunarReading:
        """
        Solunar reading for ``moment`` at a location.

        Transit, rise and set are searched within the local calendar day
        containing ``moment``.
        """
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)

        ts, eph = self._load()
        observer = wgs84.latlon(latitude, longitude)
        day_start, day_end = self._local_day(moment)
        t0, t1 = ts.from_datetime(day_start), ts.from_datetime(day_end)

        times, events = almanac.find_discrete(t0, t1, almanac.meridian_transits(eph, eph["moon"], observer))
        transits = [t.utc_datetime() for t, e in zip(times, events) if e == 1]
        transit = transits[0] if transits else None

        times, events = almanac.find_discrete(t0, t1, almanac.risings_and_settings(eph, eph["moon"], observer))
        rises = [t.utc_datetime() for t, e in zip(times, events) if e == 1]
        sets = [t.utc_datetime() for t, e in zip(times, events) if e == 0]
        moon_rise = rises[0] if rises else None
        moon_set = sets[0] if sets else None

        phase = almanac.moon_phase(eph, ts.from_datetime(moment)).degrees / 360.0

        periods = build_periods(transit, moon_rise, moon_set)
        activity = current_activity(periods, moment)
        return SolunarReading(
            moon_phase=phase,
            moon_phase_name=moon_phase_name(phase),
            current_activity=activity,
            score_impact=ACTIVITY_SCORES[activity],
            periods=periods,
            moon_rise=moon_rise,
            moon_set=moon_set,
        )
