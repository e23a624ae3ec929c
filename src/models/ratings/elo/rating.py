"""elo_ratings table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.ratings.mixins import RatedEntityMixin


class EloRating(RatedEntityMixin, Base):
    """Current rating per entity and rating type (one row per pair of keys)."""

    __tablename__ = "elo_ratings"
    __table_args__ = (
        UniqueConstraint("rating_type", "entity_key", name="uq_elo_ratings_type_entity"),
        CheckConstraint("current_rating >= 0", name="ck_elo_ratings_current_rating"),
        Index("idx_elo_ratings_type_rating", "rating_type", "current_rating"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    current_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
