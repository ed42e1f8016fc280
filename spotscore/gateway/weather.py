"""
Weather Sources
===============

Open-Meteo lookups: current weather (AROME France model), 48 h
barometric pressure delta (archive API) and the 7-day river discharge
forecast (GloFAS flood API).

Current weather is cached per ~10 km grid cell so every spot in the
same cell shares one upstream call.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from spotscore.core.config import settings
from spotscore.gateway.base import SourceClient, degrade_to
from spotscore.gateway.cache import KEY_PREFIX, location_key
from spotscore.gateway.results import FloodForecast, PressureDelta, WeatherSnapshot

logger = logging.getLogger(__name__)

FLOOD_RISK_LABELS = {
    "extreme": "Crue majeure prévue",
    "high": "Risque de crue élevé",
    "moderate": "Débit en hausse",
    "low": "Débit normal",
}


def grid_cell(latitude: float, longitude: float, resolution: Optional[float] = None) -> Tuple[float, float]:
    """Snap a coordinate to the centre of its weather grid cell."""
    resolution = resolution or settings.WEATHER_GRID_RESOLUTION
    return (
        math.floor(latitude / resolution + 0.5) * resolution,
        math.floor(longitude / resolution + 0.5) * resolution,
    )


def grid_cell_key(latitude: float, longitude: float) -> str:
    """
    Key of the weather grid cell a coordinate falls in.

    Returns:
        String key like "signals:weather:grid:45.8:4.8"
    """
    cell_lat, cell_lon = grid_cell(latitude, longitude)
    return f"{KEY_PREFIX}:weather:grid:{cell_lat:.1f}:{cell_lon:.1f}"


def classify_pressure_delta(delta: float) -> Tuple[str, str]:
    """Map a 48 h pressure change (hPa) to its trend code and label."""
    if delta < -5:
        return "chute_rapide", f"Chute rapide ({delta:.1f} hPa/48h)"
    if delta < -2:
        return "chute_lente", f"En baisse ({delta:.1f} hPa/48h)"
    if delta <= 2:
        return "stable", f"Stable ({delta:.1f} hPa/48h)"
    if delta <= 5:
        return "hausse_lente", f"En hausse ({delta:.1f} hPa/48h)"
    return "hausse_rapide", f"Hausse rapide (+{delta:.1f} hPa/48h)"


def summarize_pressure_series(
    times: Sequence[str],
    pressures: Sequence[Optional[float]],
    past: datetime,
) -> Optional[PressureDelta]:
    """
    Compute the pressure delta from an hourly series.

    The reference value is the reading at the hour 48 h ago, or the
    first available reading when that hour is missing.
    """
    if not pressures or len(pressures) < 2:
        return None

    current = next((p for p in reversed(pressures) if p is not None), None)

    target_hour = past.strftime("%Y-%m-%dT%H")
    previous = next(
        (p for t, p in zip(times, pressures) if t.startswith(target_hour) and p is not None),
        None,
    )
    if previous is None:
        previous = next((p for p in pressures if p is not None), None)

    if current is None or previous is None:
        return None

    delta = current - previous
    trend, label = classify_pressure_delta(delta)
    return PressureDelta(current=current, past_48h=previous, delta=delta, trend=trend, label=label)


def classify_flood_risk(max_discharge: float, mean_discharge: float) -> str:
    """Flood risk from the ratio of peak to mean forecast discharge."""
    if mean_discharge <= 0:
        return "low"
    ratio = max_discharge / mean_discharge
    if ratio >= 5:
        return "extreme"
    if ratio >= 3:
        return "high"
    if ratio >= 1.5:
        return "moderate"
    return "low"


def summarize_discharge_forecast(
    dates: Sequence[str], discharges: Sequence[Optional[float]]
) -> Optional[FloodForecast]:
    values: List[float] = [d for d in discharges if d is not None]
    if not values:
        return None

    peak = max(values)
    mean = sum(values) / len(values)
    peak_index = values.index(peak)
    if peak_index < len(dates):
        peak_date = dates[peak_index]
    elif dates:
        peak_date = dates[0]
    else:
        peak_date = datetime.now(timezone.utc).date().isoformat()

    risk = classify_flood_risk(peak, mean)
    return FloodForecast(
        current_discharge=round(values[0], 1),
        max_discharge=round(peak, 1),
        mean_discharge=round(mean, 1),
        peak_date=peak_date,
        risk_level=risk,
        label=FLOOD_RISK_LABELS[risk],
    )


class WeatherSources(SourceClient):
    """Open-Meteo weather, pressure and flood forecast lookups."""

    @degrade_to(None)
    async def fetch_weather(self, latitude: float, longitude: float) -> Optional[WeatherSnapshot]:
        cell_lat, cell_lon = grid_cell(latitude, longitude)

        async def fetch() -> Dict[str, Any]:
            raw = await self.get_json(
                "open_meteo",
                settings.OPEN_METEO_URL,
                params={
                    "latitude": f"{cell_lat:.2f}",
                    "longitude": f"{cell_lon:.2f}",
                    "current": (
                        "temperature_2m,relative_humidity_2m,surface_pressure,"
                        "wind_speed_10m,cloud_cover,weather_code,uv_index,precipitation"
                    ),
                    "timezone": settings.TIMEZONE,
                },
            )
            current = raw["current"]
            return WeatherSnapshot(
                temperature=current["temperature_2m"],
                humidity=current.get("relative_humidity_2m"),
                pressure=current["surface_pressure"],
                wind_speed=current["wind_speed_10m"],
                cloud_cover=current["cloud_cover"],
                weather_code=current.get("weather_code"),
                uv_index=current.get("uv_index"),
                precipitation=current.get("precipitation"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            grid_cell_key(latitude, longitude), fetch, settings.TTL_WEATHER
        )
        return WeatherSnapshot.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_pressure_delta(self, latitude: float, longitude: float) -> Optional[PressureDelta]:
        async def fetch() -> Optional[Dict[str, Any]]:
            now = datetime.now(timezone.utc)
            past = now - timedelta(hours=48)
            raw = await self.get_json(
                "open_meteo_archive",
                settings.OPEN_METEO_ARCHIVE_URL,
                params={
                    "latitude": f"{latitude:.2f}",
                    "longitude": f"{longitude:.2f}",
                    "start_date": past.date().isoformat(),
                    "end_date": now.date().isoformat(),
                    "hourly": "surface_pressure",
                    "timezone": "GMT",
                },
            )
            hourly = raw["hourly"]
            result = summarize_pressure_series(
                hourly.get("time") or [], hourly.get("surface_pressure") or [], past
            )
            return result.to_dict() if result else None

        payload = await self.cache.get_or_fetch(
            location_key("pressure_delta", latitude, longitude, 1), fetch, settings.TTL_PRESSURE_DELTA
        )
        return PressureDelta.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_flood_forecast(self, latitude: float, longitude: float) -> Optional[FloodForecast]:
        async def fetch() -> Optional[Dict[str, Any]]:
            raw = await self.get_json(
                "open_meteo_flood",
                settings.OPEN_METEO_FLOOD_URL,
                params={
                    "latitude": f"{latitude:.2f}",
                    "longitude": f"{longitude:.2f}",
                    "daily": "river_discharge",
                    "forecast_days": 7,
                },
            )
            daily = raw.get("daily") or {}
            result = summarize_discharge_forecast(
                daily.get("time") or [], daily.get("river_discharge") or []
            )
            return result.to_dict() if result else None

        payload = await self.cache.get_or_fetch(
            location_key("flood_forecast", latitude, longitude, 2), fetch, settings.TTL_FLOOD_FORECAST
        )
        return FloodForecast.from_dict(payload) if payload else None
