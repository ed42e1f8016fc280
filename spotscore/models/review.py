"""User reviews: overall rating and perceived fish density."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Float, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotscore.models.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from spotscore.models.spot import Spot


class Review(Base, IdMixin, TimestampMixin):
    """A user review. Both ratings are on a 1-5 scale."""

    __tablename__ = "reviews"

    spot_id: Mapped[str] = mapped_column(
        ForeignKey("spots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    fish_density: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    spot: Mapped["Spot"] = relationship("Spot", back_populates="reviews")
