"""elo_history table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.ratings.mixins import RatedEntityMixin


class EloHistory(RatedEntityMixin, Base):
    """Historical rating changes (one row per match, entity and rating type)."""

    __tablename__ = "elo_history"
    __table_args__ = (
        UniqueConstraint("match_id", "rating_type", "entity_key", name="uq_elo_history_match_type_entity"),
        CheckConstraint("penalty_result IN (-1, 0, 1)", name="ck_elo_history_penalty_result"),
        CheckConstraint(
            "expected_score >= 0.0 AND expected_score <= 1.0",
            name="ck_elo_history_expected_score",
        ),
        CheckConstraint("rating_after - rating_before = rating_change", name="ck_elo_history_change"),
        Index("idx_elo_history_match", "match_id"),
        Index("idx_elo_history_type_entity_match", "rating_type", "entity_key", "match_id"),
        Index("idx_elo_history_type_entity_event", "rating_type", "entity_key", "event_time"),
        Index("idx_elo_history_type_event", "rating_type", "event_time"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(Integer, nullable=False)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    rating_before: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_after: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_change: Mapped[int] = mapped_column(Integer, nullable=False)
    result: Mapped[str] = mapped_column(
        Enum("win", "loss", "draw", name="elo_match_result", native_enum=False),
        nullable=False,
    )
    penalty_result: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goal_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    k_factor: Mapped[int] = mapped_column(Integer, nullable=False)
    expected_score: Mapped[float] = mapped_column(Float, nullable=False)
    actual_score: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
