"""Spot model with the scoring engine's output fields.

A spot is a fishing location. Besides its coordinates and links to
monitoring stations, it stores the static, dynamic and combined
fishability scores, the confidence/validation outcome and the
detected access type.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotscore.domain import AccessType, DataOrigin, ModerationStatus, WaterCategory
from spotscore.models.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from spotscore.models.regulation import SpotRegulation
    from spotscore.models.review import Review
    from spotscore.models.species import SpeciesObservation, SpotSpecies
    from spotscore.models.water import BiologicalIndex, WaterQualitySnapshot


class Spot(Base, IdMixin, TimestampMixin):
    """Represents a fishing spot.

    Attributes:
        name: Display name.
        latitude: WGS 84 latitude.
        longitude: WGS 84 longitude.
        department: French department code, used to scope batch jobs.
        water_category: Legal water category (first/second).
        data_origin: User-submitted or auto-discovered source.
        external_id: Upstream reference, e.g. ``hubeau_poisson_<station>``.
        hydro_station_code: Hydrometric station (water level, flood vigilance).
        temp_station_code: Water temperature station.
        piezo_station_code: Groundwater (piezometric) station.
        hydrobio_station_code: Biological-index station.
        osm_tags: Free-form OpenStreetMap tags.
        status: Moderation status.
        is_verified: Set when auto-approved by validation.
        static_score: Ecological/historical score (0-100).
        dynamic_score: Real-time conditions score (0-100).
        fishability_score: Derived blend of static and dynamic scores.
        score_updated_at: Last successful score refresh.
        confidence_score: Likelihood the spot is genuine (0-100).
        confidence_details: JSON snapshot of the validation signals.
        validated_at: Set once validation ran; NULL means unvalidated.
        access_type: Detected access classification.
        access_details: JSON snapshot of access signals and confidence.
    """

    __tablename__ = "spots"

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(3), nullable=True, index=True)

    water_category: Mapped[Optional[WaterCategory]] = mapped_column(
        Enum(WaterCategory, name="water_category"), nullable=True
    )
    data_origin: Mapped[DataOrigin] = mapped_column(
        Enum(DataOrigin, name="data_origin"), nullable=False, default=DataOrigin.USER
    )
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Monitoring stations
    hydro_station_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    temp_station_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    piezo_station_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    hydrobio_station_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    osm_tags: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Moderation
    status: Mapped[ModerationStatus] = mapped_column(
        Enum(ModerationStatus, name="moderation_status"),
        nullable=False,
        default=ModerationStatus.PENDING,
        index=True,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Fishability scores
    static_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dynamic_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fishability_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Validation
    confidence_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    confidence_details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Access
    access_type: Mapped[Optional[AccessType]] = mapped_column(
        Enum(AccessType, name="access_type"), nullable=True
    )
    access_details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Relationships
    species_links: Mapped[list["SpotSpecies"]] = relationship(
        "SpotSpecies", back_populates="spot", cascade="all, delete-orphan"
    )
    observations: Mapped[list["SpeciesObservation"]] = relationship(
        "SpeciesObservation", back_populates="spot", cascade="all, delete-orphan"
    )
    quality_snapshots: Mapped[list["WaterQualitySnapshot"]] = relationship(
        "WaterQualitySnapshot", back_populates="spot", cascade="all, delete-orphan"
    )
    biological_indices: Mapped[list["BiologicalIndex"]] = relationship(
        "BiologicalIndex", back_populates="spot", cascade="all, delete-orphan"
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="spot", cascade="all, delete-orphan"
    )
    regulations: Mapped[list["SpotRegulation"]] = relationship(
        "SpotRegulation", back_populates="spot", cascade="all, delete-orphan"
    )
