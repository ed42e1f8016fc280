"""
External Signal Gateway
=======================

``SignalGateway`` is the contract the calculators and jobs consume.
Every lookup is awaitable and never raises past its own boundary: it
returns a typed result, or ``None`` / a "not found" result when the
upstream is unavailable.

``OpenDataGateway`` implements it over the French open-data APIs, with
one shared HTTP client and one Redis signal cache.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Protocol

import httpx

from spotscore.gateway.base import build_http_client, degrade_to
from spotscore.gateway.biology import BiologySources
from spotscore.gateway.cache import SignalCache
from spotscore.gateway.hydrology import HydrologySources
from spotscore.gateway.land import INSTALLATION_RADIUS_METERS, LandSources
from spotscore.gateway.results import (
    AgriculturalParcel,
    BiologicalIndexResult,
    DroughtRestriction,
    FishIndex,
    FloodForecast,
    FloodVigilance,
    FlowStatus,
    GroundwaterLevel,
    LandOwnership,
    NearbyInstallations,
    PressureDelta,
    RiverPublicDomain,
    WaterBody,
    WaterLevel,
    WaterTemperature,
    WeatherSnapshot,
)
from spotscore.gateway.solunar import SolunarAlmanac, SolunarReading
from spotscore.gateway.weather import WeatherSources

logger = logging.getLogger(__name__)


class SignalGateway(Protocol):
    """External lookups consumed by the scoring engine."""

    async def fetch_weather(self, latitude: float, longitude: float) -> Optional[WeatherSnapshot]: ...

    async def fetch_pressure_delta(self, latitude: float, longitude: float) -> Optional[PressureDelta]: ...

    async def fetch_water_level(self, station_code: str) -> Optional[WaterLevel]: ...

    async def fetch_water_temperature(self, station_code: str) -> Optional[WaterTemperature]: ...

    async def fetch_flow_status(self, latitude: float, longitude: float) -> Optional[FlowStatus]: ...

    async def fetch_groundwater_level(self, station_code: str) -> Optional[GroundwaterLevel]: ...

    async def fetch_drought_restriction(
        self, latitude: float, longitude: float
    ) -> Optional[DroughtRestriction]: ...

    async def fetch_flood_forecast(self, latitude: float, longitude: float) -> Optional[FloodForecast]: ...

    async def fetch_flood_vigilance(self, station_code: str) -> Optional[FloodVigilance]: ...

    async def compute_solunar(
        self, moment: datetime, latitude: float, longitude: float
    ) -> Optional[SolunarReading]: ...

    async def find_water_body(self, latitude: float, longitude: float) -> WaterBody: ...

    async def check_land_ownership(self, latitude: float, longitude: float) -> LandOwnership: ...

    async def check_agricultural_parcel(self, latitude: float, longitude: float) -> AgriculturalParcel: ...

    async def check_river_public_domain(self, latitude: float, longitude: float) -> RiverPublicDomain: ...

    async def find_nearby_livestock(
        self, latitude: float, longitude: float, radius: int = INSTALLATION_RADIUS_METERS
    ) -> NearbyInstallations: ...

    async def fetch_biological_indices(self, station_code: str) -> List[BiologicalIndexResult]: ...

    async def fetch_fish_index(self, station_code: str) -> Optional[FishIndex]: ...


class OpenDataGateway(WeatherSources, HydrologySources, BiologySources, LandSources):
    """
    ``SignalGateway`` over Open-Meteo, Hub'Eau, VigiEau, Vigicrues, IGN,
    Sandre and Géorisques.

    Use as an async context manager so the cache connects and the HTTP
    client closes:

        async with OpenDataGateway() as gateway:
            weather = await gateway.fetch_weather(45.76, 4.84)
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        cache: Optional[SignalCache] = None,
        almanac: Optional[SolunarAlmanac] = None,
    ):
        self._owns_http = http is None
        self._owns_cache = cache is None
        super().__init__(
            http=http or build_http_client(),
            cache=cache or SignalCache.from_settings(),
        )
        self.almanac = almanac or SolunarAlmanac()

    async def __aenter__(self) -> "OpenDataGateway":
        await self.cache.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_http:
            await self.http.aclose()
        if self._owns_cache:
            await self.cache.close()

    @degrade_to(None)
    async def compute_solunar(
        self, moment: datetime, latitude: float, longitude: float
    ) -> Optional[SolunarReading]:
        # Ephemeris search is CPU bound
        return await asyncio.to_thread(self.almanac.compute, moment, latitude, longitude)
