"""Species catalogue, spot-species links and species observations."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotscore.domain import FeedingType, SpeciesCategory
from spotscore.models.base import Base, IdMixin

if TYPE_CHECKING:
    from spotscore.models.spot import Spot


class Species(Base, IdMixin):
    """A fish species with the traits used by the calculators.

    Attributes:
        code: Upstream taxon code.
        name: Common (French) name.
        category: Salmonid, cyprinid, ...
        feeding_type: Carnivore, omnivore or herbivore.
        optimal_temp_min: Lower bound of the preferred water temperature (C).
        optimal_temp_max: Upper bound of the preferred water temperature (C).
        spawn_month_start: First spawning month (1-12).
        spawn_month_end: Last spawning month (1-12); may wrap the year.
    """

    __tablename__ = "species"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[Optional[SpeciesCategory]] = mapped_column(
        Enum(SpeciesCategory, name="species_category"), nullable=True
    )
    feeding_type: Mapped[Optional[FeedingType]] = mapped_column(
        Enum(FeedingType, name="feeding_type"), nullable=True
    )
    optimal_temp_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    optimal_temp_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    spawn_month_start: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    spawn_month_end: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class SpotSpecies(Base):
    """Many-to-many link between spots and species, with abundance."""

    __tablename__ = "spot_species"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), primary_key=True
    )
    species_id: Mapped[str] = mapped_column(
        ForeignKey("species.id", ondelete="CASCADE"), primary_key=True
    )
    abundance: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="species_links")
    species: Mapped[Species] = relationship("Species", lazy="joined")


class SpeciesObservation(Base, IdMixin):
    """A time-stamped species sighting at a spot."""

    __tablename__ = "species_observations"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    species_code: Mapped[str] = mapped_column(String(20), nullable=False)
    species_name: Mapped[str] = mapped_column(String(100), nullable=False)
    observation_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="observations")
