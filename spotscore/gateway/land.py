"""
Land Sources
============

Topographic and land-registry lookups used by spot validation and
access detection:

1. IGN BD TOPO water bodies (WFS)
2. Cadastre parcel + MAJIC legal-person owners (public vs private land)
3. RPG declared agricultural parcels (WFS)
4. Sandre river public domain (DPF) segments (WFS)
5. Géorisques classified installations (ICPE), flagged for livestock

All coordinate keys use 4 decimals (~10 m) since these datasets are
parcel-scale.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from spotscore.core.config import settings
from spotscore.core.exceptions import GatewayException
from spotscore.gateway.base import SourceClient, bbox_around, degrade_to
from spotscore.gateway.cache import location_key, station_key
from spotscore.gateway.results import (
    AgriculturalParcel,
    Installation,
    LandOwnership,
    NearbyInstallations,
    RiverPublicDomain,
    WaterBody,
)

logger = logging.getLogger(__name__)

# Bounding-box half widths (degrees)
WATER_BODY_DELTA = 0.003  # ~300m
AGRICULTURAL_PARCEL_DELTA = 0.0005  # ~50m, the point must sit inside the parcel
RIVER_DOMAIN_DELTA = 0.002  # ~200m

INSTALLATION_RADIUS_METERS = 500

FISHING_FRIENDLY_NATURES = [
    "Lac",
    "Retenue",
    "Retenue-barrage",
    "Réservoir-bassin piscicole",
    "Étang",
    "Gravière",
    "Lac naturel",
]

NEGATIVE_NATURES = [
    "Réservoir-bassin d'orage",
    "Plan d'eau de mine",
    "Bassin portuaire",
    "Réservoir industriel",
    "Station de traitement",
]

LIVESTOCK_KEYWORDS = [
    "élevage",
    "elevage",
    "bovins",
    "porcins",
    "volailles",
    "porcherie",
    "poulailler",
    "lisier",
    "fumier",
    "engrais organique",
    "méthanisation",
    "methanisation",
]

# MAJIC "groupe_personne": State, region, department, commune, other public bodies
PUBLIC_OWNER_GROUPS = {"1", "2", "3", "4", "9"}

WATER_BODY_LAYERS = [
    ("BDTOPO_V3:plan_d_eau", "plan_d_eau"),
    ("BDTOPO_V3:surface_hydrographique", "surface_hydrographique"),
]


def is_fishing_friendly_nature(nature: Optional[str]) -> bool:
    text = (nature or "").lower()
    return any(n.lower() in text for n in FISHING_FRIENDLY_NATURES)


def is_negative_nature(nature: Optional[str]) -> bool:
    text = (nature or "").lower()
    return any(n.lower() in text for n in NEGATIVE_NATURES)


def is_livestock_installation(name: str, activities: str) -> bool:
    text = f"{name} {activities}".lower()
    return any(keyword in text for keyword in LIVESTOCK_KEYWORDS)


def _text(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    if value is None:
        return None
    return str(value) or None


def wfs_params(type_name: str, bbox: str) -> Dict[str, Any]:
    return {
        "service": "WFS",
        "version": "2.0.0",
        "request": "GetFeature",
        "typeName": type_name,
        "outputFormat": "application/json",
        "srsName": "EPSG:4326",
        "bbox": bbox,
        "count": 1,
    }


def first_feature_properties(body: Any) -> Optional[Dict[str, Any]]:
    features = (body or {}).get("features") or []
    if not features:
        return None
    return features[0].get("properties") or None


class LandSources(SourceClient):
    """Topography, cadastre, agriculture, river domain and ICPE lookups."""

    async def _wfs_feature(
        self, source: str, url: str, type_name: str, latitude: float, longitude: float, delta: float
    ) -> Optional[Dict[str, Any]]:
        body = await self.get_json(
            source, url, params=wfs_params(type_name, bbox_around(latitude, longitude, delta))
        )
        return first_feature_properties(body)

    @degrade_to(WaterBody(found=False))
    async def find_water_body(self, latitude: float, longitude: float) -> WaterBody:
        """Standing water (plan_d_eau) first, then any hydrographic surface."""

        async def fetch() -> Dict[str, Any]:
            for type_name, layer in WATER_BODY_LAYERS:
                properties = await self._wfs_feature(
                    "bdtopo", settings.GEOPF_WFS_URL, type_name, latitude, longitude, WATER_BODY_DELTA
                )
                if properties:
                    return WaterBody(
                        found=True,
                        nature=str(properties.get("nature") or ""),
                        name=_text(properties.get("nom")),
                        layer=layer,
                    ).to_dict()
            return WaterBody(found=False).to_dict()

        payload = await self.cache.get_or_fetch(
            location_key("water_body", latitude, longitude, 4), fetch, settings.TTL_WATER_BODY
        )
        return WaterBody.from_dict(payload)

    @degrade_to(LandOwnership())
    async def check_land_ownership(self, latitude: float, longitude: float) -> LandOwnership:
        """
        Public or private land at a point.

        Step 1: API Carto cadastre gives the parcel code.
        Step 2: MAJIC legal-person owners give the owner group. A parcel
        with no legal-person owner belongs to a private individual.

        Each step is cached on its own. A failed owner lookup keeps the
        parcel code with an unknown owner and is retried next time.
        """

        async def fetch_parcel() -> Dict[str, Any]:
            geom = json.dumps({"type": "Point", "coordinates": [longitude, latitude]})
            properties = first_feature_properties(
                await self.get_json("cadastre", settings.CADASTRE_URL, params={"geom": geom})
            )
            if not properties:
                return {"parcel_code": None}
            return {
                "parcel_code": "".join(
                    [
                        str(properties.get("code_dep") or ""),
                        str(properties.get("code_com") or ""),
                        str(properties.get("com_abs") or "000"),
                        str(properties.get("section") or ""),
                        str(properties.get("numero") or ""),
                    ]
                )
            }

        parcel = await self.cache.get_or_fetch(
            location_key("cadastre", latitude, longitude, 4), fetch_parcel, settings.TTL_CADASTRE
        )
        parcel_code = parcel.get("parcel_code")
        if not parcel_code:
            return LandOwnership()

        async def fetch_owner() -> Optional[Dict[str, Any]]:
            try:
                body = await self.get_json(
                    "majic", settings.MAJIC_URL, params={"code_parcelle": parcel_code, "size": 1}
                )
                owners = (body or {}).get("results") or []
            except (httpx.HTTPError, GatewayException, ValueError, AttributeError) as e:
                logger.warning(f"MAJIC owner lookup failed for parcel {parcel_code}: {e}")
                return None

            if not owners:
                return LandOwnership(owner_type="private", parcel_code=parcel_code).to_dict()

            owner = owners[0]
            group_code = str(owner.get("groupe_personne") or "")
            is_public = group_code in PUBLIC_OWNER_GROUPS
            return LandOwnership(
                owner_type="public" if is_public else "private",
                is_public=is_public,
                owner_group_code=group_code or None,
                owner_name=_text(owner.get("denomination")),
                parcel_code=parcel_code,
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("majic", parcel_code), fetch_owner, settings.TTL_CADASTRE
        )
        if payload is None:
            return LandOwnership(parcel_code=parcel_code)
        return LandOwnership.from_dict(payload)

    @degrade_to(AgriculturalParcel())
    async def check_agricultural_parcel(self, latitude: float, longitude: float) -> AgriculturalParcel:
        async def fetch() -> Dict[str, Any]:
            properties = await self._wfs_feature(
                "rpg",
                settings.GEOPF_WFS_URL,
                "RPG.LATEST:parcelles_graphiques",
                latitude,
                longitude,
                AGRICULTURAL_PARCEL_DELTA,
            )
            if not properties:
                return AgriculturalParcel().to_dict()
            return AgriculturalParcel(
                is_in_parcel=True,
                culture_code=_text(properties.get("code_groupe_culture")),
                culture_label=_text(properties.get("libelle_groupe_culture")),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            location_key("agricultural_parcel", latitude, longitude, 4),
            fetch,
            settings.TTL_AGRICULTURAL_PARCEL,
        )
        return AgriculturalParcel.from_dict(payload)

    @degrade_to(RiverPublicDomain())
    async def check_river_public_domain(self, latitude: float, longitude: float) -> RiverPublicDomain:
        async def fetch() -> Dict[str, Any]:
            properties = await self._wfs_feature(
                "sandre_dpf", settings.SANDRE_DPF_URL, "SegDPF", latitude, longitude, RIVER_DOMAIN_DELTA
            )
            if not properties:
                return RiverPublicDomain().to_dict()
            return RiverPublicDomain(
                is_public_domain=True,
                manager=_text(properties.get("Gestionnaire")),
                name=_text(properties.get("Toponyme1")),
                navigability=_text(properties.get("Navigabilite")),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            location_key("river_domain", latitude, longitude, 4), fetch, settings.TTL_RIVER_DOMAIN
        )
        return RiverPublicDomain.from_dict(payload)

    @degrade_to(NearbyInstallations())
    async def find_nearby_livestock(
        self, latitude: float, longitude: float, radius: int = INSTALLATION_RADIUS_METERS
    ) -> NearbyInstallations:
        async def fetch() -> Dict[str, Any]:
            body = await self.get_json(
                "georisques",
                settings.GEORISQUES_URL,
                params={
                    "latlon": f"{latitude},{longitude}",
                    "rayon": radius,
                    "page": 1,
                    "page_size": 20,
                },
            )
            installations = []
            for item in (body or {}).get("data") or []:
                name = str(item.get("raisonSociale") or item.get("nomInst") or "")
                activities = " ".join(
                    str(a.get("nomActivite") or "") for a in item.get("activites") or []
                )
                installations.append(
                    Installation(
                        name=name,
                        regime=str(item.get("regime") or ""),
                        is_livestock=is_livestock_installation(name, activities),
                    )
                )
            return NearbyInstallations(
                has_livestock=any(i.is_livestock for i in installations),
                installations=installations,
            ).to_dict()

        key = f"{location_key('installations', latitude, longitude, 4)}:{radius}"
        payload = await self.cache.get_or_fetch(key, fetch, settings.TTL_INSTALLATIONS)
        return NearbyInstallations.from_dict(payload)
