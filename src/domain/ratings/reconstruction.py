"""Rating of an entity as of a past moment, read back from the history ledger."""

from __future__ import annotations

from datetime import datetime

from domain.ratings.common import Entity, RatingType, check_entity_type
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.protocol import HistoryLedger, UnitOfWorkFactory


class HistoricalRatingReconstructor:
    def __init__(self, uow_factory: UnitOfWorkFactory, params: EloParameters | None = None) -> None:
        self.uow_factory = uow_factory
        self.params = params or EloParameters()

    def rating_at(self, entity: Entity, rating_type: RatingType | str, cutoff: datetime) -> int:
        """``rating_after`` of the last entry at or before ``cutoff``; the default rating if none."""
        with self.uow_factory() as uow:
            return self.rating_from_ledger(uow.ledger, entity, rating_type, cutoff)

    def rating_from_ledger(
        self,
        ledger: HistoryLedger,
        entity: Entity,
        rating_type: RatingType | str,
        cutoff: datetime,
    ) -> int:
        rating_type = RatingType.parse(rating_type)
        check_entity_type(entity, rating_type)
        entry = ledger.latest_at(entity, rating_type, cutoff)
        return self.params.default_rating if entry is None else entry.rating_after


__all__ = ["HistoricalRatingReconstructor"]
