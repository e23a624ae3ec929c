"""Apply one match to every rating dimension it affects."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    MatchKind,
    MatchOutcomeInput,
    PairIdentity,
    RatingType,
    Side,
    entity_key,
)
from domain.ratings.elo.calculator import EloParameters, RatingUpdateEngine
from domain.ratings.elo.outcome import (
    GoalBonus,
    MatchOutcome,
    OutcomeEvaluator,
    classify_result,
    validate_match_shape,
)
from domain.ratings.errors import MatchProcessingError, RatingError
from domain.ratings.protocol import HistoryLedger, UnitOfWorkFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingPass:
    """One rating dimension of a match: who is rated and which side they are on."""

    rating_type: RatingType
    team_a: tuple[Entity, ...]
    team_b: tuple[Entity, ...]

    def sides(self) -> list[tuple[Side, Entity]]:
        return [(Side.A, entity) for entity in self.team_a] + [(Side.B, entity) for entity in self.team_b]


@dataclass(frozen=True)
class ProcessedMatch:
    match_id: int
    entries: tuple[HistoryEntry, ...]


def rating_passes(match: MatchOutcomeInput) -> list[RatingPass]:
    """Global, kind-specific and (2v2 only) pair passes, in processing order."""
    passes = [
        RatingPass(RatingType.GLOBAL, match.team_a, match.team_b),
        RatingPass(match.kind.rating_type, match.team_a, match.team_b),
    ]
    if match.kind is MatchKind.V2 and len(match.team_a) == 2 and len(match.team_b) == 2:
        passes.append(
            RatingPass(
                RatingType.PAIR,
                (PairIdentity.of(*match.team_a),),
                (PairIdentity.of(*match.team_b),),
            )
        )
    return passes


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class MatchProcessor:
    """Turns a match snapshot into rating updates and ledger entries.

    The rating an entity enters a match with is the ``rating_after`` of its
    latest ledger entry from an earlier match id, falling back to the default
    rating. In normal append order this equals the stored record; during a
    replay it ignores entries of later matches that have not been redone yet.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        params: EloParameters | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.params = params or EloParameters()
        self.engine = RatingUpdateEngine(self.params)
        self.evaluator = OutcomeEvaluator(self.params)

    def process(self, match: MatchOutcomeInput) -> ProcessedMatch:
        validate_match_shape(match)
        outcome = self.evaluator.evaluate(match)
        bonus = self.evaluator.goal_bonus(match, outcome)

        entries: list[HistoryEntry] = []
        failures: list[tuple[str, Exception]] = []
        for rating_pass in rating_passes(match):
            pass_entries, pass_failures = self._apply_pass(match, rating_pass, outcome, bonus)
            entries.extend(pass_entries)
            failures.extend(pass_failures)

        if failures:
            raise MatchProcessingError(match.match_id, failures)

        logger.debug("Processed match_id=%s into %s history entries", match.match_id, len(entries))
        return ProcessedMatch(match_id=match.match_id, entries=tuple(entries))

    def rating_before(self, ledger: HistoryLedger, entity: Entity, rating_type: RatingType, match_id: int) -> int:
        prior = ledger.latest_before_match(entity, rating_type, match_id)
        return self.params.default_rating if prior is None else prior.rating_after

    def _apply_pass(
        self,
        match: MatchOutcomeInput,
        rating_pass: RatingPass,
        outcome: MatchOutcome,
        bonus: GoalBonus,
    ) -> tuple[list[HistoryEntry], list[tuple[str, Exception]]]:
        try:
            team_ratings = self._team_ratings(match, rating_pass)
        except RatingError as exc:
            logger.warning(
                "Could not read %s ratings for match_id=%s: %s",
                rating_pass.rating_type.value,
                match.match_id,
                exc,
            )
            return [], [(entity_key(entity), exc) for _, entity in rating_pass.sides()]

        entries: list[HistoryEntry] = []
        failures: list[tuple[str, Exception]] = []
        for side, entity in rating_pass.sides():
            try:
                entries.append(
                    self._apply_entity(
                        match,
                        entity,
                        rating_pass.rating_type,
                        side,
                        team_rating=team_ratings[side],
                        opponent_rating=team_ratings[side.opponent],
                        outcome=outcome,
                        bonus=bonus.for_side(side),
                    )
                )
            except RatingError as exc:
                logger.warning(
                    "Rating update failed for %s (%s) in match_id=%s: %s",
                    entity_key(entity),
                    rating_pass.rating_type.value,
                    match.match_id,
                    exc,
                )
                failures.append((entity_key(entity), exc))
        return entries, failures

    def _team_ratings(self, match: MatchOutcomeInput, rating_pass: RatingPass) -> dict[Side, int]:
        # Both sides are read before any update so teammates do not see each other's new rating.
        with self.uow_factory() as uow:
            return {
                side: self.engine.team_rating(self._ratings(uow.ledger, team, rating_pass.rating_type, match.match_id))
                for side, team in ((Side.A, rating_pass.team_a), (Side.B, rating_pass.team_b))
            }

    def _ratings(
        self,
        ledger: HistoryLedger,
        team: Sequence[Entity],
        rating_type: RatingType,
        match_id: int,
    ) -> list[int]:
        return [self.rating_before(ledger, entity, rating_type, match_id) for entity in team]

    def _apply_entity(
        self,
        match: MatchOutcomeInput,
        entity: Entity,
        rating_type: RatingType,
        side: Side,
        *,
        team_rating: int,
        opponent_rating: int,
        outcome: MatchOutcome,
        bonus: int,
    ) -> HistoryEntry:
        with self.uow_factory() as uow:
            uow.ratings.get(entity, rating_type, for_update=True)
            current = self.rating_before(uow.ledger, entity, rating_type, match.match_id)
            prior_entries = uow.ledger.count_before_match(entity, rating_type, match.match_id)

            k_factor = self.engine.k_factor(prior_entries=prior_entries, current_rating=current)
            expected = self.engine.expected_score(team_rating, opponent_rating)
            actual = outcome.score_for(side)
            update = self.engine.new_rating(current, expected, actual, k_factor, bonus)
            result, penalty_result = classify_result(outcome, side)

            uow.ratings.upsert(entity, rating_type, update.new_rating, _utcnow())
            return uow.ledger.append(
                HistoryEntry(
                    match_id=match.match_id,
                    entity=entity,
                    rating_type=rating_type,
                    rating_before=current,
                    rating_after=update.new_rating,
                    rating_change=update.change,
                    result=result,
                    penalty_result=penalty_result,
                    goal_bonus=bonus,
                    event_time=match.event_time,
                    k_factor=int(k_factor),
                    expected_score=expected,
                    actual_score=actual,
                )
            )


__all__ = ["MatchProcessor", "ProcessedMatch", "RatingPass", "rating_passes"]
