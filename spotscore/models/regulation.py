"""Regulations attached to a spot (bans, alerts, limits)."""

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotscore.domain import RegulationType
from spotscore.models.base import Base, IdMixin

if TYPE_CHECKING:
    from spotscore.models.spot import Spot


class SpotRegulation(Base, IdMixin):
    """A regulation with an active flag and an optional date range."""

    __tablename__ = "spot_regulations"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[RegulationType] = mapped_column(
        Enum(RegulationType, name="regulation_type"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="regulations")
