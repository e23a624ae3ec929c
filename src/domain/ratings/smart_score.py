"""Composite "smart" ranking over a time window."""

from __future__ import annotations

import statistics
from collections.abc import Sequence
from dataclasses import dataclass

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    PairIdentity,
    RatingType,
    TimeWindow,
    check_entity_type,
    entity_sort_key,
)
from domain.ratings.protocol import HistoryLedger, UnitOfWorkFactory
from domain.ratings.reconstruction import HistoricalRatingReconstructor


@dataclass(frozen=True)
class SmartScoreParameters:
    rating_weight: float = 0.35
    consistency_weight: float = 0.20
    winrate_weight: float = 0.35
    activity_weight: float = 0.10
    consistency_floor: float = 30.0
    consistency_ceiling: float = 100.0
    consistency_default: float = 50.0
    consistency_stddev_multiplier: float = 2.0
    player_activity_cap: int = 20
    pair_activity_cap: int = 15


@dataclass(frozen=True)
class SmartScore:
    entity: Entity
    rating_type: RatingType
    matches_count: int
    outright_wins: int
    winrate: float
    consistency: float
    activity: float
    historical_rating: int
    smart_score: float


def consistency_score(changes: Sequence[int], params: SmartScoreParameters | None = None) -> float:
    """Clamp ``100 - 2 * pstdev(non-zero changes)``; too few changes give the neutral default."""
    params = params or SmartScoreParameters()
    nonzero = [change for change in changes if change != 0]
    if len(nonzero) < 2:
        return params.consistency_default
    spread = statistics.pstdev(nonzero)
    raw = 100.0 - params.consistency_stddev_multiplier * spread
    return max(params.consistency_floor, min(params.consistency_ceiling, raw))


def activity_score(matches_count: int, cap: int) -> float:
    return min(100.0, 100.0 * matches_count / cap)


class SmartScoreEngine:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        reconstructor: HistoricalRatingReconstructor,
        params: SmartScoreParameters | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.reconstructor = reconstructor
        self.params = params or SmartScoreParameters()

    def score(self, entity: Entity, rating_type: RatingType | str, window: TimeWindow) -> SmartScore | None:
        """Smart score of one entity, or None when it played no match in the window."""
        rating_type = RatingType.parse(rating_type)
        check_entity_type(entity, rating_type)
        with self.uow_factory() as uow:
            return self._score(uow.ledger, entity, rating_type, window)

    def rank(self, rating_type: RatingType | str, window: TimeWindow) -> list[SmartScore]:
        """Every entity active in the window, best score first, ties by entity id."""
        rating_type = RatingType.parse(rating_type)
        with self.uow_factory() as uow:
            scores = [
                self._score(uow.ledger, entity, rating_type, window)
                for entity in uow.ledger.entities_in_window(rating_type, window)
            ]
        ranked = [score for score in scores if score is not None]
        ranked.sort(key=lambda score: (-score.smart_score, entity_sort_key(score.entity)))
        return ranked

    def _score(
        self,
        ledger: HistoryLedger,
        entity: Entity,
        rating_type: RatingType,
        window: TimeWindow,
    ) -> SmartScore | None:
        entries: list[HistoryEntry] = ledger.entries_for(entity, rating_type, window=window)
        matches_count = len(entries)
        if matches_count == 0:
            return None

        outright_wins = sum(1 for entry in entries if entry.won_outright)
        winrate = 100.0 * outright_wins / matches_count
        consistency = consistency_score([entry.rating_change for entry in entries], self.params)
        cap = self.params.pair_activity_cap if isinstance(entity, PairIdentity) else self.params.player_activity_cap
        activity = activity_score(matches_count, cap)
        historical_rating = self.reconstructor.rating_from_ledger(ledger, entity, rating_type, window.end)

        smart_score = (
            historical_rating * self.params.rating_weight
            + consistency * self.params.consistency_weight
            + winrate * self.params.winrate_weight
            + activity * self.params.activity_weight
        )
        return SmartScore(
            entity=entity,
            rating_type=rating_type,
            matches_count=matches_count,
            outright_wins=outright_wins,
            winrate=winrate,
            consistency=consistency,
            activity=activity,
            historical_rating=historical_rating,
            smart_score=smart_score,
        )


__all__ = [
    "SmartScore",
    "SmartScoreEngine",
    "SmartScoreParameters",
    "activity_score",
    "consistency_score",
]
