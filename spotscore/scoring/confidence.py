"""
Spot Confidence Score
=====================

How likely an auto-discovered location is a genuine, legal fishing
spot. Signals carry signed points and are summed, then clamped:

External (looked up concurrently):
- BD TOPO water body: standing water +30, other hydro surface +20,
  fishing-friendly nature +10, known-bad nature -30, nothing found -20
- Classified livestock installation within 500 m: -40
- Point inside a declared agricultural parcel: -20

Internal:
- Legal water category +25, species observations +25
- Linked stations +5 each, water-quality data +5
- Discovered from Hub'Eau fish surveys +15
- OSM fishing tag +10, OSM wastewater/basin/drain tag -50
"""

import asyncio
import logging
from typing import List, Mapping, Tuple

from spotscore.domain import ConfidenceResult, DataOrigin, ModerationStatus, Signal, SpotRecord
from spotscore.gateway.base import optional_signal
from spotscore.gateway.land import INSTALLATION_RADIUS_METERS, is_fishing_friendly_nature, is_negative_nature
from spotscore.gateway.open_data import SignalGateway
from spotscore.gateway.results import AgriculturalParcel, NearbyInstallations, WaterBody
from spotscore.repositories import SpotRepository
from spotscore.scoring.fusion import clamp_score, sum_points

logger = logging.getLogger(__name__)

NEGATIVE_OSM_WATER = {"wastewater", "basin", "drain"}

# Moderation thresholds applied when auto-deciding
REJECT_BELOW = 15
APPROVE_ABOVE = 60


def water_body_signals(water_body: WaterBody) -> List[Signal]:
    if not water_body.found:
        return [Signal.points("bdtopo", "no_water_body_found", -20)]

    described = f"{water_body.name or 'Sans nom'} ({water_body.nature})"
    if water_body.layer == "plan_d_eau":
        signals = [Signal.points("bdtopo", "plan_d_eau_found", 30, described)]
    else:
        signals = [Signal.points("bdtopo", "surface_hydro_found", 20, described)]

    if water_body.nature and is_fishing_friendly_nature(water_body.nature):
        signals.append(Signal.points("bdtopo", "nature_fishing_friendly", 10, water_body.nature))
    if water_body.nature and is_negative_nature(water_body.nature):
        signals.append(Signal.points("bdtopo", "nature_negative", -30, water_body.nature))
    return signals


def livestock_signals(nearby: NearbyInstallations) -> List[Signal]:
    if not nearby.has_livestock:
        return []
    names = ", ".join([i.name for i in nearby.installations if i.is_livestock][:3])
    return [Signal.points("georisques", "livestock_nearby", -40, names)]


def agricultural_signals(parcel: AgriculturalParcel) -> List[Signal]:
    if not parcel.is_in_parcel:
        return []
    return [Signal.points("rpg", "inside_agricultural_parcel", -20, parcel.culture_label)]


def internal_signals(spot: SpotRecord) -> List[Signal]:
    signals = []
    if spot.water_category:
        signals.append(Signal.points("sandre", "categorie_piscicole", 25, spot.water_category.value))
    if spot.observation_count > 0:
        signals.append(
            Signal.points("hubeau", "species_observations", 25, f"{spot.observation_count} observations")
        )
    if spot.hydro_station_code:
        signals.append(Signal.points("internal", "hydro_station_linked", 5))
    if spot.temp_station_code or spot.hydrobio_station_code:
        signals.append(Signal.points("internal", "monitoring_station_linked", 5))
    if spot.quality_snapshot_count > 0:
        signals.append(Signal.points("internal", "water_quality_data", 5))
    if spot.data_origin == DataOrigin.AUTO_HUBEAU:
        signals.append(Signal.points("internal", "origin_hubeau", 15))
    return signals


def osm_signals(tags: Mapping[str, str]) -> List[Signal]:
    signals = []
    if tags.get("fishing") == "yes" or tags.get("leisure") == "fishing":
        signals.append(Signal.points("osm", "fishing_tagged", 10))
    water = tags.get("water")
    if water in NEGATIVE_OSM_WATER:
        signals.append(Signal.points("osm", "wastewater_tag", -50, f"water={water}"))
    return signals


def moderation_decision(confidence_score: int) -> Tuple[ModerationStatus, bool]:
    """Moderation status and verified flag an auto-decided run assigns."""
    if confidence_score < REJECT_BELOW:
        return ModerationStatus.REJECTED, False
    if confidence_score > APPROVE_ABOVE:
        return ModerationStatus.APPROVED, True
    return ModerationStatus.PENDING, False


async def gather_confidence_signals(spot: SpotRecord, gateway: SignalGateway) -> List[Signal]:
    """
    Collect every fired signal for a spot, in a stable order.

    The three external lookups run concurrently; an unavailable one is
    treated as "nothing found" and never cancels the others.
    """
    lat, lon = spot.latitude, spot.longitude
    water_body, nearby, parcel = await asyncio.gather(
        optional_signal(gateway.find_water_body(lat, lon), "water_body"),
        optional_signal(gateway.find_nearby_livestock(lat, lon, INSTALLATION_RADIUS_METERS), "installations"),
        optional_signal(gateway.check_agricultural_parcel(lat, lon), "agricultural_parcel"),
    )

    signals: List[Signal] = []
    signals.extend(water_body_signals(water_body or WaterBody(found=False)))
    signals.extend(livestock_signals(nearby or NearbyInstallations()))
    signals.extend(agricultural_signals(parcel or AgriculturalParcel()))
    signals.extend(internal_signals(spot))
    signals.extend(osm_signals(spot.osm_tags or {}))
    return signals


async def compute_confidence_score(
    spot_id: str, repository: SpotRepository, gateway: SignalGateway
) -> ConfidenceResult:
    """
    Confidence score of one spot.

    Raises:
        SpotNotFoundException: If the spot does not exist.
    """
    spot = await repository.get_spot(spot_id)
    signals = await gather_confidence_signals(spot, gateway)
    raw = sum_points(signals)
    score = clamp_score(raw)
    logger.debug(f"Confidence for spot {spot_id}: raw={raw} score={score} signals={len(signals)}")
    return ConfidenceResult(confidence_score=score, signals=signals)
