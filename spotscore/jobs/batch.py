"""
Batch Refresh Jobs
==================

Scheduled drivers over many spots:

- ``refresh_static_scores``: recompute static + fishability scores.
- ``refresh_dynamic_scores``: recompute dynamic + fishability scores in
  fixed-size batches, sharing weather and solunar per grid cell and
  water readings per monitoring station within a batch.
- ``validate_spots_batch``: confidence and access classification of
  auto-discovered spots not yet validated.

Spots are processed sequentially. A spot that fails is logged, counted
in ``errors`` and keeps its previous scores; missing spots and database
failures abort the job.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence

from spotscore.core.config import settings
from spotscore.core.exceptions import FatalException
from spotscore.domain import ModerationStatus, SpotRecord
from spotscore.gateway.base import optional_signal
from spotscore.gateway.open_data import SignalGateway
from spotscore.gateway.results import WaterLevel, WaterTemperature, WeatherSnapshot
from spotscore.gateway.solunar import SolunarReading
from spotscore.gateway.weather import grid_cell, grid_cell_key
from spotscore.repositories import SpotRepository, ValidationUpdate
from spotscore.scoring.access import detect_access_type
from spotscore.scoring.combiner import NEUTRAL_SCORE, compute_fishability_score
from spotscore.scoring.confidence import compute_confidence_score, moderation_decision
from spotscore.scoring.dynamic import DynamicScoreCalculator
from spotscore.scoring.static import compute_static_score

logger = logging.getLogger(__name__)

DECISION_COUNTERS = {
    ModerationStatus.APPROVED: "approved",
    ModerationStatus.REJECTED: "rejected",
    ModerationStatus.PENDING: "flagged",
}


def chunked(spots: Sequence[SpotRecord], size: int) -> Iterator[Sequence[SpotRecord]]:
    for start in range(0, len(spots), size):
        yield spots[start:start + size]


@dataclass
class BatchConditions:
    """Conditions fetched once per batch and fanned out to its spots.

    Attributes:
        weather: Current weather keyed by grid cell key.
        water_levels: Latest water level keyed by hydrometric station.
        water_temperatures: Latest water temperature keyed by station.
        solunar: Solunar reading keyed by grid cell key.
    """

    weather: Dict[str, Optional[WeatherSnapshot]] = field(default_factory=dict)
    water_levels: Dict[str, Optional[WaterLevel]] = field(default_factory=dict)
    water_temperatures: Dict[str, Optional[WaterTemperature]] = field(default_factory=dict)
    solunar: Dict[str, Optional[SolunarReading]] = field(default_factory=dict)

    def weather_for(self, spot: SpotRecord) -> Optional[WeatherSnapshot]:
        return self.weather.get(grid_cell_key(spot.latitude, spot.longitude))

    def solunar_for(self, spot: SpotRecord) -> Optional[SolunarReading]:
        return self.solunar.get(grid_cell_key(spot.latitude, spot.longitude))

    def water_level_trend_for(self, spot: SpotRecord) -> Optional[str]:
        if not spot.hydro_station_code:
            return None
        level = self.water_levels.get(spot.hydro_station_code)
        return level.trend if level else None

    def water_temperature_for(self, spot: SpotRecord) -> Optional[float]:
        if not spot.temp_station_code:
            return None
        reading = self.water_temperatures.get(spot.temp_station_code)
        return reading.temperature if reading else None


async def prefetch_batch_conditions(
    spots: Sequence[SpotRecord], gateway: SignalGateway, now: Optional[datetime] = None
) -> BatchConditions:
    """
    Fetch weather and solunar once per distinct grid cell and water
    readings once per distinct station code.

    Args:
        spots: One batch of spots.
        gateway: External signal lookups.
        now: Reference time of the solunar reading.

    Returns:
        BatchConditions; unavailable lookups are stored as None.
    """
    now = now or datetime.now(timezone.utc)
    cells: Dict[str, tuple] = {}
    for spot in spots:
        cells.setdefault(grid_cell_key(spot.latitude, spot.longitude), grid_cell(spot.latitude, spot.longitude))
    hydro_codes = sorted({s.hydro_station_code for s in spots if s.hydro_station_code})
    temp_codes = sorted({s.temp_station_code for s in spots if s.temp_station_code})

    weather = await asyncio.gather(
        *(optional_signal(gateway.fetch_weather(lat, lon), "weather") for lat, lon in cells.values())
    )
    levels = await asyncio.gather(
        *(optional_signal(gateway.fetch_water_level(code), "water_level") for code in hydro_codes)
    )
    temperatures = await asyncio.gather(
        *(optional_signal(gateway.fetch_water_temperature(code), "water_temperature") for code in temp_codes)
    )
    solunar = await asyncio.gather(
        *(optional_signal(gateway.compute_solunar(now, lat, lon), "solunar") for lat, lon in cells.values())
    )

    conditions = BatchConditions(
        weather=dict(zip(cells.keys(), weather)),
        water_levels=dict(zip(hydro_codes, levels)),
        water_temperatures=dict(zip(temp_codes, temperatures)),
        solunar=dict(zip(cells.keys(), solunar)),
    )
    logger.debug(
        f"Prefetched {len(cells)} weather cells, {len(hydro_codes)} hydro and "
        f"{len(temp_codes)} temperature stations for {len(spots)} spots"
    )
    return conditions


async def refresh_static_scores(
    repository: SpotRepository,
    gateway: SignalGateway,
    spot_ids: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Recompute static scores of the given spots, or of every approved spot.

    Returns:
        ``{"updated": n, "errors": n}``
    """
    spots = await repository.list_approved_spots(spot_ids=spot_ids)
    logger.info(f"Refreshing static scores for {len(spots)} spots")

    updated = 0
    errors = 0
    for spot in spots:
        try:
            static_score = await compute_static_score(spot.id, repository, gateway, now=now)
            dynamic_score = spot.dynamic_score if spot.dynamic_score is not None else NEUTRAL_SCORE
            await repository.save_static_score(
                spot.id,
                static_score,
                compute_fishability_score(static_score, dynamic_score),
                now or datetime.now(timezone.utc),
            )
            updated += 1
        except FatalException:
            raise
        except Exception:
            logger.exception(f"Static score refresh failed for spot {spot.id}")
            errors += 1

    logger.info(f"Static refresh complete. Updated: {updated}, Failed: {errors}")
    return {"updated": updated, "errors": errors}


async def refresh_dynamic_scores(
    repository: SpotRepository,
    gateway: SignalGateway,
    department: Optional[str] = None,
    batch_size: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Recompute dynamic scores of approved spots, batch by batch.

    Args:
        repository: Spot data access.
        gateway: External signal lookups.
        department: Restrict to one department code.
        batch_size: Spots per batch (defaults to ``settings.BATCH_SIZE``).
        now: Reference time (defaults to the current UTC time).

    Returns:
        ``{"updated": n, "errors": n}``
    """
    batch_size = batch_size or settings.BATCH_SIZE
    spots = await repository.list_approved_spots(department=department)
    calculator = DynamicScoreCalculator(repository, gateway)
    logger.info(f"Refreshing dynamic scores for {len(spots)} spots in batches of {batch_size}")

    updated = 0
    errors = 0
    for batch in chunked(spots, batch_size):
        conditions = await prefetch_batch_conditions(batch, gateway, now=now)

        for spot in batch:
            try:
                dynamic_score = await calculator.compute(
                    spot.id,
                    spot.latitude,
                    spot.longitude,
                    weather=conditions.weather_for(spot),
                    water_level_trend=conditions.water_level_trend_for(spot),
                    water_temperature=conditions.water_temperature_for(spot),
                    hydro_station_code=spot.hydro_station_code,
                    piezo_station_code=spot.piezo_station_code,
                    now=now,
                    solunar=conditions.solunar_for(spot),
                )
                static_score = spot.static_score if spot.static_score is not None else NEUTRAL_SCORE
                await repository.save_dynamic_score(
                    spot.id,
                    dynamic_score,
                    compute_fishability_score(static_score, dynamic_score),
                    now or datetime.now(timezone.utc),
                )
                updated += 1
            except FatalException:
                raise
            except Exception:
                logger.exception(f"Dynamic score refresh failed for spot {spot.id}")
                errors += 1

    logger.info(f"Dynamic refresh complete. Updated: {updated}, Failed: {errors}")
    return {"updated": updated, "errors": errors}


def _access_details(signals: List[dict], confidence: int, checked_at: datetime) -> dict:
    return {
        "signals": signals,
        "confidence": confidence,
        "lastCheckedAt": checked_at.isoformat(),
    }


async def validate_spots_batch(
    repository: SpotRepository,
    gateway: SignalGateway,
    department: Optional[str] = None,
    batch_size: int = 50,
    auto_decide: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Validate the oldest unvalidated auto-discovered spots.

    Each spot gets a confidence score and an access type. With
    ``auto_decide`` the confidence score also sets the moderation
    status: below 15 rejected, above 60 approved and verified,
    otherwise pending manual review.

    Returns:
        ``{"processed", "approved", "rejected", "flagged", "errors"}``
    """
    spots = await repository.list_unvalidated_spots(department=department, limit=batch_size)
    logger.info(f"Validating {len(spots)} spots (auto_decide={auto_decide})")

    counts = {"processed": 0, "approved": 0, "rejected": 0, "flagged": 0, "errors": 0}
    for spot in spots:
        try:
            confidence = await compute_confidence_score(spot.id, repository, gateway)
            access = await detect_access_type(spot, gateway, prior_signals=confidence.signals)
            checked_at = now or datetime.now(timezone.utc)

            status = None
            is_verified = None
            if auto_decide:
                status, verified = moderation_decision(confidence.confidence_score)
                is_verified = True if verified else None

            await repository.save_validation(
                spot.id,
                ValidationUpdate(
                    confidence_score=confidence.confidence_score,
                    confidence_details={"signals": [s.to_dict() for s in confidence.signals]},
                    validated_at=checked_at,
                    access_type=access.access_type,
                    access_details=(
                        _access_details([s.to_dict() for s in access.signals], access.confidence, checked_at)
                        if access.access_type
                        else None
                    ),
                    status=status,
                    is_verified=is_verified,
                ),
            )
            counts["processed"] += 1
            if status is not None:
                counts[DECISION_COUNTERS[status]] += 1
        except FatalException:
            raise
        except Exception:
            logger.exception(f"Validation failed for spot {spot.id}")
            counts["errors"] += 1

    logger.info(
        f"Validation complete. Processed: {counts['processed']}, approved: {counts['approved']}, "
        f"rejected: {counts['rejected']}, flagged: {counts['flagged']}, failed: {counts['errors']}"
    )
    return counts
