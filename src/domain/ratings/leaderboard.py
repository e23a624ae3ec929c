"""Paginated leaderboard and history reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from domain.ratings.common import (
    Entity,
    Page,
    RatingType,
    TimeWindow,
    check_entity_type,
    page_offset,
)
from domain.ratings.errors import InvalidRatingTypeError
from domain.ratings.protocol import UnitOfWorkFactory
from domain.ratings.smart_score import SmartScoreEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    entity: Entity
    rating_type: RatingType
    rating: int
    matches_played: int
    wins: int
    winrate: float
    last_updated: datetime | None = None


def _winrate(wins: int, matches_played: int) -> float:
    if matches_played == 0:
        return 0.0
    return round(100.0 * wins / matches_played, 2)


class LeaderboardQueries:
    """Read-only views over the rating store and ledger.

    An unknown rating type, or one that does not fit the entity, yields an
    empty page. Invalid paging arguments raise ``ValueError``.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, smart_scores: SmartScoreEngine) -> None:
        self.uow_factory = uow_factory
        self.smart_scores = smart_scores

    def leaderboard(self, rating_type: RatingType | str, page: int = 1, page_size: int = 20) -> Page:
        offset = page_offset(page, page_size)
        parsed = self._parse(rating_type)
        if parsed is None:
            return Page.empty(page, page_size)

        with self.uow_factory() as uow:
            total = uow.ratings.count(parsed)
            records = uow.ratings.ranked(parsed, offset=offset, limit=page_size)
            rows = []
            for index, record in enumerate(records, start=offset + 1):
                matches_played = uow.ledger.count_for(record.entity, parsed)
                wins = uow.ledger.win_count(record.entity, parsed)
                rows.append(
                    LeaderboardRow(
                        rank=index,
                        entity=record.entity,
                        rating_type=parsed,
                        rating=record.rating,
                        matches_played=matches_played,
                        wins=wins,
                        winrate=_winrate(wins, matches_played),
                        last_updated=record.last_updated,
                    )
                )
        return Page(items=tuple(rows), total=total, page=page, page_size=page_size)

    def smart_leaderboard(
        self,
        rating_type: RatingType | str,
        window: TimeWindow,
        page: int = 1,
        page_size: int = 20,
    ) -> Page:
        offset = page_offset(page, page_size)
        parsed = self._parse(rating_type)
        if parsed is None:
            return Page.empty(page, page_size)

        ranked = self.smart_scores.rank(parsed, window)
        return Page(
            items=tuple(ranked[offset : offset + page_size]),
            total=len(ranked),
            page=page,
            page_size=page_size,
        )

    def history(
        self,
        entity: Entity,
        rating_type: RatingType | str,
        page: int = 1,
        page_size: int = 20,
        window: TimeWindow | None = None,
    ) -> Page:
        """History entries of one entity, newest match first."""
        offset = page_offset(page, page_size)
        parsed = self._parse(rating_type)
        if parsed is None:
            return Page.empty(page, page_size)
        try:
            check_entity_type(entity, parsed)
        except InvalidRatingTypeError as exc:
            logger.info("Empty history: %s", exc)
            return Page.empty(page, page_size)

        with self.uow_factory() as uow:
            total = uow.ledger.count_for(entity, parsed, window=window)
            entries = uow.ledger.entries_for(entity, parsed, window=window, offset=offset, limit=page_size)
        return Page(items=tuple(entries), total=total, page=page, page_size=page_size)

    @staticmethod
    def _parse(rating_type: RatingType | str) -> RatingType | None:
        try:
            return RatingType.parse(rating_type)
        except InvalidRatingTypeError as exc:
            logger.info("Empty result for invalid rating type: %s", exc)
            return None


__all__ = ["LeaderboardQueries", "LeaderboardRow"]
