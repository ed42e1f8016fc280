"""Water-quality snapshots and biological index readings."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotscore.models.base import Base, IdMixin

if TYPE_CHECKING:
    from spotscore.models.spot import Spot


class WaterQualitySnapshot(Base, IdMixin):
    """One physico-chemical measurement (dissolved_oxygen, ph, nitrates, ...)."""

    __tablename__ = "water_quality_snapshots"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parameter: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    measurement_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="quality_snapshots")


class BiologicalIndex(Base, IdMixin):
    """A persisted IBGN / IBD reading with its quality class."""

    __tablename__ = "biological_indices"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    index_type: Mapped[str] = mapped_column(String(10), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    quality_class: Mapped[str] = mapped_column(String(30), nullable=False)
    measurement_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="biological_indices")
