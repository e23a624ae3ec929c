"""Facade wiring the rating engine components behind one object."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from domain.ratings.common import Entity, Page, PairIdentity, RatingType, TimeWindow, page_offset
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.elo.config import EloSystemConfig
from domain.ratings.errors import RatingError
from domain.ratings.leaderboard import LeaderboardQueries
from domain.ratings.processor import MatchProcessor, ProcessedMatch
from domain.ratings.protocol import IdentityStore, MatchStore, UnitOfWorkFactory
from domain.ratings.recalculation import (
    MatchCorrectionSummary,
    RecalculationCoordinator,
    RecalculationSummary,
    RevertResult,
)
from domain.ratings.reconstruction import HistoricalRatingReconstructor
from domain.ratings.smart_score import SmartScoreEngine, SmartScoreParameters

logger = logging.getLogger(__name__)


class RatingService:
    """Operations exposed to callers: processing, corrections and reads."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        match_store: MatchStore,
        identity_store: IdentityStore,
        *,
        params: EloParameters | None = None,
        smart_score_params: SmartScoreParameters | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.match_store = match_store
        self.identity_store = identity_store
        self.params = params or EloParameters()

        self.processor = MatchProcessor(uow_factory, self.params)
        self.coordinator = RecalculationCoordinator(uow_factory, match_store, self.processor)
        self.reconstructor = HistoricalRatingReconstructor(uow_factory, self.params)
        self.smart_scores = SmartScoreEngine(uow_factory, self.reconstructor, smart_score_params)
        self.queries = LeaderboardQueries(uow_factory, self.smart_scores)

    @classmethod
    def from_config(
        cls,
        config: EloSystemConfig,
        uow_factory: UnitOfWorkFactory,
        match_store: MatchStore,
        identity_store: IdentityStore,
    ) -> RatingService:
        return cls(
            uow_factory,
            match_store,
            identity_store,
            params=config.parameters,
            smart_score_params=config.smart_score,
        )

    def process_match(self, match_id: int) -> ProcessedMatch:
        """Apply one stored match. Processing it again without a revert double-counts."""
        return self.processor.process(self.match_store.get_match(match_id))

    def revert_match(self, match_id: int) -> RevertResult:
        return self.coordinator.revert(match_id)

    def recalculate_subsequent(
        self,
        entity_ids: Iterable[Entity],
        rating_type: RatingType | str,
        after_match_id: int,
    ) -> RecalculationSummary:
        return self.coordinator.recalculate_subsequent(entity_ids, rating_type, after_match_id)

    def on_match_created(self, match_id: int) -> RatingError | None:
        """Rate a newly stored match.

        The match stays stored when rating fails; the failure is logged and
        returned so it can be reconciled later with a rebuild or an edit.
        """
        try:
            self.process_match(match_id)
        except RatingError as exc:
            logger.error("Ratings for new match_id=%s were not applied: %s", match_id, exc)
            return exc
        return None

    def on_match_edited(
        self,
        match_id: int,
        players: Iterable[int],
        apply_edit: Callable[[], None] | None = None,
    ) -> MatchCorrectionSummary:
        return self.coordinator.edit_match(match_id, players, apply_edit)

    def on_match_deleted(
        self,
        match_id: int,
        players: Iterable[int],
        apply_delete: Callable[[], None] | None = None,
    ) -> MatchCorrectionSummary:
        return self.coordinator.delete_match(match_id, players, apply_delete)

    def rebuild_all(self) -> RecalculationSummary:
        return self.coordinator.rebuild_all()

    def rating_at(self, entity: Entity, rating_type: RatingType | str, cutoff: datetime) -> int:
        return self.reconstructor.rating_at(entity, rating_type, cutoff)

    def get_leaderboard(self, rating_type: RatingType | str, page: int = 1, page_size: int = 20) -> Page:
        return self.queries.leaderboard(rating_type, page, page_size)

    def get_smart_leaderboard(
        self,
        rating_type: RatingType | str,
        window: TimeWindow,
        page: int = 1,
        page_size: int = 20,
    ) -> Page:
        return self.queries.smart_leaderboard(rating_type, window, page, page_size)

    def get_history(
        self,
        entity: Entity,
        rating_type: RatingType | str,
        page: int = 1,
        page_size: int = 20,
        window: TimeWindow | None = None,
    ) -> Page:
        return self.queries.history(entity, rating_type, page, page_size, window)

    def get_history_for_username(
        self,
        username: str,
        rating_type: RatingType | str = RatingType.GLOBAL,
        page: int = 1,
        page_size: int = 20,
        window: TimeWindow | None = None,
    ) -> Page:
        page_offset(page, page_size)
        player_id = self.identity_store.resolve(username)
        if player_id is None:
            logger.info("Empty history: unknown username %r", username)
            return Page.empty(page, page_size)
        return self.get_history(player_id, rating_type, page, page_size, window)

    def get_pair_history_for_usernames(
        self,
        first_username: str,
        second_username: str,
        page: int = 1,
        page_size: int = 20,
        window: TimeWindow | None = None,
    ) -> Page:
        page_offset(page, page_size)
        if first_username == second_username:
            return Page.empty(page, page_size)
        player_ids = self.identity_store.resolve_many([first_username, second_username])
        if len(player_ids) != 2:
            logger.info("Empty pair history: unknown username among %r, %r", first_username, second_username)
            return Page.empty(page, page_size)
        first_id, second_id = player_ids[first_username], player_ids[second_username]
        if first_id == second_id:
            return Page.empty(page, page_size)
        pair = PairIdentity.of(first_id, second_id)
        return self.get_history(pair, RatingType.PAIR, page, page_size, window)


__all__ = ["RatingService"]
