"""SQLAlchemy mixins for columns shared by rating and history tables."""

from __future__ import annotations

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

RATING_TYPE_VALUES = ("global", "1v1", "2v2", "pair")


class RatedEntityMixin:
    """Identifies the rated player or pair plus the rating dimension.

    ``entity_key`` is ``player:<id>`` or ``pair:<low>-<high>``; ``player2_id``
    is only set for pairs.
    """

    rating_type: Mapped[str] = mapped_column(
        Enum(*RATING_TYPE_VALUES, name="elo_rating_type", native_enum=False),
        nullable=False,
    )
    entity_key: Mapped[str] = mapped_column(String(64), nullable=False)
    player1_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player2_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
