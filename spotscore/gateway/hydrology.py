"""
Hydrology Sources
=================

Hub'Eau, VigiEau and Vigicrues lookups:

- water level and trend at a hydrometric station
- latest water temperature at a temperature station
- flow status from the ONDE low-flow observation network
- groundwater (piezometric) level and trend
- drought restriction level (VigiEau)
- flood vigilance level of the Vigicrues section holding a station
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from spotscore.core.config import settings
from spotscore.gateway.base import SourceClient, degrade_to
from spotscore.gateway.cache import location_key, station_key
from spotscore.gateway.results import (
    DroughtRestriction,
    FlowStatus,
    FloodVigilance,
    GroundwaterLevel,
    WaterLevel,
    WaterTemperature,
)

logger = logging.getLogger(__name__)

# Most severe first
DROUGHT_LEVELS = ["crise", "alerte_renforcee", "alerte", "vigilance"]

DROUGHT_LABELS = {
    "vigilance": "Vigilance",
    "alerte": "Alerte",
    "alerte_renforcee": "Alerte renforcée",
    "crise": "Crise",
}

GROUNDWATER_TREND_LABELS = {"rising": "En hausse", "stable": "Stable", "falling": "En baisse"}

VIGILANCE_LEVELS = {4: "red", 3: "orange", 2: "yellow"}


def level_trend(latest: float, previous: Optional[float], threshold: float) -> str:
    """Rising / stable / falling from two consecutive readings."""
    if previous is None:
        return "stable"
    diff = latest - previous
    if diff > threshold:
        return "rising"
    if diff < -threshold:
        return "falling"
    return "stable"


def parse_flow_code(code: Optional[str]) -> str:
    """
    Map an ONDE observation code to a flow status.

    1 / 1a: visible flow, 1f: weak visible flow, 2: water without
    visible flow, 3: dry bed.
    """
    if code in ("1", "1a"):
        return "flowing"
    if code == "1f":
        return "weak_flow"
    if code == "2":
        return "stagnant"
    if code == "3":
        return "dry"
    return "unknown"


def normalize_drought_level(raw: Optional[str]) -> Optional[str]:
    """Normalize a VigiEau severity label ("Alerte renforcée", ...)."""
    value = (raw or "").lower().replace("é", "e")
    value = "_".join(value.split())
    for level in DROUGHT_LEVELS:
        if level in value or level.replace("_", "") in value:
            return level
    return None


def worst_drought_level(raw_levels: Iterable[Optional[str]]) -> Optional[str]:
    worst: Optional[str] = None
    for raw in raw_levels:
        level = normalize_drought_level(raw)
        if level is None:
            continue
        if worst is None or DROUGHT_LEVELS.index(level) < DROUGHT_LEVELS.index(worst):
            worst = level
    return worst


def parse_vigilance_level(level_number: Optional[int]) -> str:
    return VIGILANCE_LEVELS.get(level_number or 1, "green")


def hubeau_records(body: Any) -> List[Dict[str, Any]]:
    """Hub'Eau wraps results in ``data``; some endpoints return a bare list."""
    if body is None:
        return []
    data = body.get("data", body) if isinstance(body, dict) else body
    return data if isinstance(data, list) else []


class HydrologySources(SourceClient):
    """Hub'Eau hydrology, VigiEau drought and Vigicrues vigilance lookups."""

    @degrade_to(None)
    async def fetch_water_level(self, station_code: str) -> Optional[WaterLevel]:
        async def fetch() -> Optional[Dict[str, Any]]:
            body = await self.get_json(
                "hubeau_hydrometrie",
                f"{settings.HUBEAU_URL}/v1/hydrometrie/observations_tr",
                params={
                    "code_entite": station_code,
                    "size": 2,
                    "sort": "desc",
                    "fields": "date_obs,resultat_obs",
                },
            )
            records = hubeau_records(body)
            if not records:
                return None
            latest = records[0]
            previous = records[1]["resultat_obs"] if len(records) > 1 else None
            return WaterLevel(
                station_code=station_code,
                current_level=latest["resultat_obs"],
                trend=level_trend(latest["resultat_obs"], previous, 0.05),
                measured_at=latest.get("date_obs"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("water_level", station_code), fetch, settings.TTL_WATER_LEVEL
        )
        return WaterLevel.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_water_temperature(self, station_code: str) -> Optional[WaterTemperature]:
        async def fetch() -> Optional[Dict[str, Any]]:
            body = await self.get_json(
                "hubeau_temperature",
                f"{settings.HUBEAU_URL}/v1/temperature/chronique",
                params={
                    "code_station": station_code,
                    "size": 1,
                    "sort": "desc",
                    "fields": "code_station,date_mesure_temp,resultat",
                },
            )
            records = hubeau_records(body)
            if not records:
                return None
            return WaterTemperature(
                temperature=records[0]["resultat"],
                measured_at=records[0].get("date_mesure_temp"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("water_temperature", station_code), fetch, settings.TTL_WATER_TEMPERATURE
        )
        return WaterTemperature.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_flow_status(self, latitude: float, longitude: float) -> Optional[FlowStatus]:
        """Latest ONDE observation at the nearest station within 15 km."""

        async def fetch() -> Optional[Dict[str, Any]]:
            stations = hubeau_records(
                await self.get_json(
                    "hubeau_ecoulement",
                    f"{settings.HUBEAU_URL}/v1/ecoulement/stations",
                    params={
                        "latitude": f"{latitude:.6f}",
                        "longitude": f"{longitude:.6f}",
                        "distance": 15,
                        "size": 1,
                        "fields": "code_station,libelle_station",
                    },
                    missing_ok=True,
                )
            )
            if not stations:
                return None
            code = stations[0]["code_station"]

            observations = hubeau_records(
                await self.get_json(
                    "hubeau_ecoulement",
                    f"{settings.HUBEAU_URL}/v1/ecoulement/observations",
                    params={
                        "code_station": code,
                        "size": 1,
                        "sort": "desc",
                        "fields": "code_station,date_observation,code_ecoulement,libelle_ecoulement",
                    },
                    missing_ok=True,
                )
            )
            if not observations:
                return None
            obs = observations[0]
            return FlowStatus(
                status=parse_flow_code(obs.get("code_ecoulement")),
                label=obs.get("libelle_ecoulement") or "",
                observed_at=obs.get("date_observation"),
                station_code=code,
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            location_key("flow_status", latitude, longitude, 2), fetch, settings.TTL_FLOW_STATUS
        )
        return FlowStatus.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_groundwater_level(self, station_code: str) -> Optional[GroundwaterLevel]:
        async def fetch() -> Optional[Dict[str, Any]]:
            records = hubeau_records(
                await self.get_json(
                    "hubeau_piezometrie",
                    f"{settings.HUBEAU_URL}/v1/niveaux_nappes/chroniques_tr",
                    params={"code_bss": station_code, "size": 5, "sort": "desc"},
                    missing_ok=True,
                )
            )
            if not records:
                return None

            def reading(record: Dict[str, Any]) -> Optional[float]:
                value = record.get("niveau_nappe_eau")
                return value if value is not None else record.get("profondeur_nappe")

            level = reading(records[0])
            if level is None:
                return None
            previous = reading(records[1]) if len(records) > 1 else None
            trend = level_trend(level, previous, 0.1)
            return GroundwaterLevel(
                station_code=station_code,
                level=level,
                trend=trend,
                label=GROUNDWATER_TREND_LABELS[trend],
                measured_at=records[0].get("date_mesure"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("groundwater", station_code), fetch, settings.TTL_GROUNDWATER
        )
        return GroundwaterLevel.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_drought_restriction(
        self, latitude: float, longitude: float
    ) -> Optional[DroughtRestriction]:
        """Most restrictive VigiEau level among the zones covering the point."""

        async def fetch() -> Optional[Dict[str, Any]]:
            zones = await self.get_json(
                "vigieau",
                f"{settings.VIGIEAU_URL}/zones",
                params={"lat": latitude, "lon": longitude},
                missing_ok=True,
            )
            if not zones:
                return None
            level = worst_drought_level(zone.get("niveauGravite") for zone in zones)
            if level is None:
                return None
            return DroughtRestriction(
                level=level,
                label=DROUGHT_LABELS[level],
                fishing_impacted=level in ("alerte_renforcee", "crise"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            location_key("drought", latitude, longitude, 2), fetch, settings.TTL_DROUGHT
        )
        return DroughtRestriction.from_dict(payload) if payload else None

    @degrade_to(None)
    async def fetch_flood_vigilance(self, station_code: str) -> Optional[FloodVigilance]:
        """Vigilance level of the Vigicrues section monitored by a hydro station."""

        async def fetch() -> Optional[Dict[str, Any]]:
            body = await self.get_json(
                "vigicrues",
                f"{settings.VIGICRUES_URL}/StaEntVigiCru.json",
                params={"CdStationHydro": station_code},
            )
            entries = body.get("ListEntVigiCru") or []
            if not entries or not entries[0].get("CdEntVigiCru"):
                return None

            body = await self.get_json(
                "vigicrues",
                f"{settings.VIGICRUES_URL}/TronEntVigiCru.json",
                params={"CdEntVigiCru": entries[0]["CdEntVigiCru"], "TypEntVigiCru": 8},
            )
            sections = body.get("ListEntVigiCru") or []
            if not sections:
                return None
            section = sections[0]
            level_number = section.get("NivSituVigiCruEntVigiCru") or 1
            return FloodVigilance(
                level=parse_vigilance_level(level_number),
                level_number=level_number,
                section_code=section.get("CdEntVigiCru"),
                section_name=section.get("LbEntVigiCru"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("flood_vigilance", station_code), fetch, settings.TTL_FLOOD_VIGILANCE
        )
        return FloodVigilance.from_dict(payload) if payload else None
