"""
Access-Type Detection
=====================

Classifies who may fish at a spot (free, paid, fishing card, members
only, private, restricted) by weighted vote. Every signal proposes one
access type with a confidence tier:

1. OSM tags (high, except ``fee=no`` alone which is medium)
2. River public domain, Sandre DPF (high, fishing card)
3. Cadastre owner type (medium)
4. RPG agricultural parcel (low, private)
5. Livestock proximity from a prior validation run (low, private)

The access type with the largest summed weight wins; confidence is its
share of the total weight. Exact ties go to the most restrictive type.
"""

import asyncio
import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from spotscore.domain import AccessResult, AccessType, Signal, SpotRecord, Tier
from spotscore.gateway.base import optional_signal
from spotscore.gateway.open_data import SignalGateway
from spotscore.gateway.results import AgriculturalParcel, LandOwnership, RiverPublicDomain
from spotscore.scoring.fusion import fuse_signals

logger = logging.getLogger(__name__)

# Tie-break precedence, most restrictive first
ACCESS_PRIORITY = [
    AccessType.PRIVATE.value,
    AccessType.RESTRICTED.value,
    AccessType.MEMBERS_ONLY.value,
    AccessType.FISHING_CARD.value,
    AccessType.PAID.value,
    AccessType.FREE.value,
]

OSM_ACCESS_VALUES = {
    "private": AccessType.PRIVATE,
    "customers": AccessType.PAID,
    "destination": AccessType.PAID,
    "permit": AccessType.FISHING_CARD,
    "restricted": AccessType.RESTRICTED,
    "members": AccessType.MEMBERS_ONLY,
}

ANGLING_OPERATORS = ("aappma", "federation", "fédération")

PriorSignal = Union[Signal, Mapping[str, Any]]


def _vote(source: str, code: str, access_type: AccessType, tier: Tier, details: Optional[str] = None) -> Signal:
    return Signal.vote(source, code, access_type.value, tier, details)


def osm_access_signals(tags: Mapping[str, str]) -> List[Signal]:
    signals: List[Signal] = []
    access = tags.get("access")
    fee = tags.get("fee")

    if access in OSM_ACCESS_VALUES:
        signals.append(_vote("osm", f"access={access}", OSM_ACCESS_VALUES[access], Tier.HIGH))
    elif access in ("public", "yes"):
        if fee == "yes":
            signals.append(_vote("osm", "access=public+fee=yes", AccessType.PAID, Tier.HIGH))
        else:
            signals.append(_vote("osm", f"access={access}", AccessType.FREE, Tier.HIGH))

    if not access:
        if fee == "yes":
            signals.append(_vote("osm", "fee=yes", AccessType.PAID, Tier.HIGH))
        elif fee == "no":
            signals.append(_vote("osm", "fee=no", AccessType.FREE, Tier.MEDIUM))
        if tags.get("permission") == "private":
            signals.append(_vote("osm", "permission=private", AccessType.PRIVATE, Tier.HIGH))

    operator = tags.get("operator")
    if operator and any(name in operator.lower() for name in ANGLING_OPERATORS):
        signals.append(_vote("osm", "operator_aappma", AccessType.FISHING_CARD, Tier.HIGH, operator))
    return signals


def river_domain_signals(domain: RiverPublicDomain) -> List[Signal]:
    if not domain.is_public_domain:
        return []
    return [
        _vote(
            "dpf",
            "domaine_public_fluvial",
            AccessType.FISHING_CARD,
            Tier.HIGH,
            domain.name or domain.manager,
        )
    ]


def land_ownership_signals(ownership: LandOwnership) -> List[Signal]:
    if not ownership.parcel_code:
        return []
    if ownership.owner_type == "public":
        details = ownership.owner_name or f"groupe {ownership.owner_group_code}"
        return [_vote("cadastre", "terrain_public", AccessType.FREE, Tier.MEDIUM, details)]
    if ownership.owner_type == "private":
        return [_vote("cadastre", "terrain_prive", AccessType.PRIVATE, Tier.MEDIUM, ownership.owner_name)]
    return []


def agricultural_access_signals(parcel: AgriculturalParcel) -> List[Signal]:
    if not parcel.is_in_parcel:
        return []
    return [_vote("rpg", "parcelle_agricole", AccessType.PRIVATE, Tier.LOW, parcel.culture_label)]


def _source_and_code(signal: PriorSignal) -> Tuple[Optional[str], Optional[str]]:
    if isinstance(signal, Signal):
        return signal.source, signal.code
    return signal.get("source"), signal.get("signal")


def prior_validation_signals(prior: Iterable[PriorSignal]) -> List[Signal]:
    """Livestock near the spot hints at a farm pond, hence private land."""
    signals = []
    for item in prior:
        if _source_and_code(item) == ("georisques", "livestock_nearby"):
            signals.append(_vote("georisques", "livestock_nearby", AccessType.PRIVATE, Tier.LOW))
    return signals


def resolve_access_type(signals: List[Signal]) -> AccessResult:
    fused = fuse_signals(signals, priority=ACCESS_PRIORITY)
    access_type = AccessType(fused.outcome) if fused.outcome else None
    return AccessResult(access_type=access_type, confidence=fused.confidence, signals=signals)


async def detect_access_type(
    spot: SpotRecord,
    gateway: SignalGateway,
    prior_signals: Optional[Iterable[PriorSignal]] = None,
) -> AccessResult:
    """
    Detect the access type of a spot.

    Args:
        spot: Coordinates and OSM tags of the spot.
        gateway: External signal lookups.
        prior_signals: Validation signals from a confidence run; defaults
            to those persisted in ``spot.confidence_details``.

    Returns:
        AccessResult with ``access_type=None, confidence=0`` when no
        signal fired.
    """
    signals = osm_access_signals(spot.osm_tags or {})

    lat, lon = spot.latitude, spot.longitude
    domain, ownership, parcel = await asyncio.gather(
        optional_signal(gateway.check_river_public_domain(lat, lon), "river_domain"),
        optional_signal(gateway.check_land_ownership(lat, lon), "cadastre"),
        optional_signal(gateway.check_agricultural_parcel(lat, lon), "agricultural_parcel"),
    )
    signals.extend(river_domain_signals(domain or RiverPublicDomain()))
    signals.extend(land_ownership_signals(ownership or LandOwnership()))
    signals.extend(agricultural_access_signals(parcel or AgriculturalParcel()))

    if prior_signals is None:
        prior_signals = (spot.confidence_details or {}).get("signals") or []
    signals.extend(prior_validation_signals(prior_signals))

    result = resolve_access_type(signals)
    logger.debug(
        f"Access for spot {spot.id}: {result.access_type} ({result.confidence}%, {len(signals)} signals)"
    )
    return result
