"""Spot repository: the engine's only view of persistence.

``SpotRepository`` is the protocol the calculators and jobs depend on.
``SqlAlchemySpotRepository`` implements it on an ``AsyncSession`` and
maps ORM rows to the frozen domain dataclasses.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spotscore.core.exceptions import DatabaseException, SpotNotFoundException
from spotscore.domain import (
    AccessType,
    BiologicalReading,
    DataOrigin,
    LinkedSpecies,
    ModerationStatus,
    Observation,
    QualitySnapshot,
    Regulation,
    Review,
    SpotRecord,
)
from spotscore import models

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationUpdate:
    """Fields written by one validation run."""

    confidence_score: int
    confidence_details: Dict[str, Any]
    validated_at: datetime
    access_type: Optional[AccessType] = None
    access_details: Optional[Dict[str, Any]] = None
    status: Optional[ModerationStatus] = None
    is_verified: Optional[bool] = None


class SpotRepository(Protocol):
    """Read and write access to spots and their related data."""

    async def get_spot(self, spot_id: str) -> SpotRecord: ...

    async def list_observations(self, spot_id: str) -> List[Observation]: ...

    async def list_quality_snapshots(self, spot_id: str) -> List[QualitySnapshot]: ...

    async def list_linked_species(self, spot_id: str) -> List[LinkedSpecies]: ...

    async def list_reviews(self, spot_id: str) -> List[Review]: ...

    async def list_regulations(self, spot_id: str) -> List[Regulation]: ...

    async def latest_biological_index(
        self, spot_id: str, index_type: str
    ) -> Optional[BiologicalReading]: ...

    async def list_approved_spots(
        self,
        department: Optional[str] = None,
        spot_ids: Optional[Sequence[str]] = None,
    ) -> List[SpotRecord]: ...

    async def list_unvalidated_spots(
        self, department: Optional[str] = None, limit: int = 50
    ) -> List[SpotRecord]: ...

    async def save_static_score(
        self, spot_id: str, static_score: int, fishability_score: int, updated_at: datetime
    ) -> None: ...

    async def save_dynamic_score(
        self, spot_id: str, dynamic_score: int, fishability_score: int, updated_at: datetime
    ) -> None: ...

    async def save_validation(self, spot_id: str, update: ValidationUpdate) -> None: ...


def _wrap_db_errors(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Translate SQLAlchemy failures into the fatal ``DatabaseException``."""

    @functools.wraps(method)
    async def wrapper(self: "SqlAlchemySpotRepository", *args: Any, **kwargs: Any) -> T:
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error(f"Database error in {method.__name__}: {exc}")
            raise DatabaseException(
                message=f"{method.__name__} failed", details={"error": str(exc)}
            ) from exc

    return wrapper


def _to_record(spot: models.Spot, observation_count: int = 0, quality_count: int = 0) -> SpotRecord:
    return SpotRecord(
        id=spot.id,
        latitude=spot.latitude,
        longitude=spot.longitude,
        water_category=spot.water_category,
        data_origin=spot.data_origin or DataOrigin.USER,
        department=spot.department,
        external_id=spot.external_id,
        hydro_station_code=spot.hydro_station_code,
        temp_station_code=spot.temp_station_code,
        piezo_station_code=spot.piezo_station_code,
        hydrobio_station_code=spot.hydrobio_station_code,
        osm_tags=dict(spot.osm_tags or {}),
        static_score=spot.static_score,
        dynamic_score=spot.dynamic_score,
        observation_count=observation_count,
        quality_snapshot_count=quality_count,
        confidence_details=spot.confidence_details,
    )


class SqlAlchemySpotRepository:
    """``SpotRepository`` backed by an async SQLAlchemy session.

    Every write is a single-spot UPDATE followed by a commit; there is
    no cross-spot transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @_wrap_db_errors
    async def get_spot(self, spot_id: str) -> SpotRecord:
        spot = await self.session.get(models.Spot, spot_id)
        if spot is None:
            raise SpotNotFoundException(spot_id)

        observation_count = await self.session.scalar(
            select(func.count())
            .select_from(models.SpeciesObservation)
            .where(models.SpeciesObservation.spot_id == spot_id)
        )
        quality_count = await self.session.scalar(
            select(func.count())
            .select_from(models.WaterQualitySnapshot)
            .where(models.WaterQualitySnapshot.spot_id == spot_id)
        )
        return _to_record(spot, observation_count or 0, quality_count or 0)

    @_wrap_db_errors
    async def list_observations(self, spot_id: str) -> List[Observation]:
        result = await self.session.scalars(
            select(models.SpeciesObservation)
            .where(models.SpeciesObservation.spot_id == spot_id)
            .order_by(models.SpeciesObservation.observation_date.desc())
        )
        return [
            Observation(
                species_code=row.species_code,
                species_name=row.species_name,
                observed_at=row.observation_date,
                count=row.count,
            )
            for row in result
        ]

    @_wrap_db_errors
    async def list_quality_snapshots(self, spot_id: str) -> List[QualitySnapshot]:
        result = await self.session.scalars(
            select(models.WaterQualitySnapshot)
            .where(models.WaterQualitySnapshot.spot_id == spot_id)
            .order_by(models.WaterQualitySnapshot.measurement_date.desc())
        )
        return [
            QualitySnapshot(parameter=row.parameter, value=row.value, measured_at=row.measurement_date)
            for row in result
        ]

    @_wrap_db_errors
    async def list_linked_species(self, spot_id: str) -> List[LinkedSpecies]:
        result = await self.session.scalars(
            select(models.SpotSpecies).where(models.SpotSpecies.spot_id == spot_id)
        )
        linked = []
        for link in result.unique():
            species = link.species
            linked.append(
                LinkedSpecies(
                    name=species.name,
                    category=species.category,
                    feeding_type=species.feeding_type,
                    optimal_temp_min=species.optimal_temp_min,
                    optimal_temp_max=species.optimal_temp_max,
                    spawn_month_start=species.spawn_month_start,
                    spawn_month_end=species.spawn_month_end,
                    abundance=link.abundance,
                )
            )
        return linked

    @_wrap_db_errors
    async def list_reviews(self, spot_id: str) -> List[Review]:
        result = await self.session.scalars(
            select(models.Review).where(models.Review.spot_id == spot_id)
        )
        return [Review(rating=row.rating, fish_density=row.fish_density) for row in result]

    @_wrap_db_errors
    async def list_regulations(self, spot_id: str) -> List[Regulation]:
        result = await self.session.scalars(
            select(models.SpotRegulation).where(models.SpotRegulation.spot_id == spot_id)
        )
        return [
            Regulation(
                type=row.type,
                is_active=row.is_active,
                start_date=row.start_date,
                end_date=row.end_date,
            )
            for row in result
        ]

    @_wrap_db_errors
    async def latest_biological_index(
        self, spot_id: str, index_type: str
    ) -> Optional[BiologicalReading]:
        row = await self.session.scalar(
            select(models.BiologicalIndex)
            .where(
                models.BiologicalIndex.spot_id == spot_id,
                models.BiologicalIndex.index_type == index_type,
            )
            .order_by(models.BiologicalIndex.measurement_date.desc())
            .limit(1)
        )
        if row is None:
            return None
        return BiologicalReading(
            index_type=row.index_type,
            value=row.value,
            quality_class=row.quality_class,
            measured_at=row.measurement_date,
        )

    @_wrap_db_errors
    async def list_approved_spots(
        self,
        department: Optional[str] = None,
        spot_ids: Optional[Sequence[str]] = None,
    ) -> List[SpotRecord]:
        query = select(models.Spot)
        if spot_ids is not None:
            query = query.where(models.Spot.id.in_(list(spot_ids)))
        else:
            query = query.where(models.Spot.status == ModerationStatus.APPROVED)
        if department:
            query = query.where(models.Spot.department == department)
        result = await self.session.scalars(query.order_by(models.Spot.id))
        return [_to_record(spot) for spot in result]

    @_wrap_db_errors
    async def list_unvalidated_spots(
        self, department: Optional[str] = None, limit: int = 50
    ) -> List[SpotRecord]:
        query = select(models.Spot).where(
            models.Spot.validated_at.is_(None),
            models.Spot.data_origin != DataOrigin.USER,
        )
        if department:
            query = query.where(models.Spot.department == department)
        result = await self.session.scalars(
            query.order_by(models.Spot.created_at.asc()).limit(limit)
        )
        return [_to_record(spot) for spot in result]

    @_wrap_db_errors
    async def save_static_score(
        self, spot_id: str, static_score: int, fishability_score: int, updated_at: datetime
    ) -> None:
        await self._update(
            spot_id,
            static_score=static_score,
            fishability_score=fishability_score,
            score_updated_at=updated_at,
        )

    @_wrap_db_errors
    async def save_dynamic_score(
        self, spot_id: str, dynamic_score: int, fishability_score: int, updated_at: datetime
    ) -> None:
        await self._update(
            spot_id,
            dynamic_score=dynamic_score,
            fishability_score=fishability_score,
            score_updated_at=updated_at,
        )

    @_wrap_db_errors
    async def save_validation(self, spot_id: str, update: ValidationUpdate) -> None:
        values: Dict[str, Any] = {
            "confidence_score": update.confidence_score,
            "confidence_details": update.confidence_details,
            "validated_at": update.validated_at,
            "access_type": update.access_type,
        }
        if update.access_details is not None:
            values["access_details"] = update.access_details
        if update.status is not None:
            values["status"] = update.status
        if update.is_verified is not None:
            values["is_verified"] = update.is_verified
        await self._update(spot_id, **values)

    async def _update(self, spot_id: str, **values: Any) -> None:
        result = await self.session.execute(
            update(models.Spot).where(models.Spot.id == spot_id).values(**values)
        )
        if result.rowcount == 0:
            raise SpotNotFoundException(spot_id)
        await self.session.commit()
