"""Scoreline to actual-score translation and goal bonus rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from domain.ratings.common import MatchOutcomeInput, MatchResult, Side
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.errors import InvalidMatchShapeError


class OutcomeKind(str, Enum):
    WIN = "win"
    DRAW = "draw"
    PENALTY = "penalty"


@dataclass(frozen=True)
class MatchOutcome:
    team_a_score: float
    team_b_score: float
    kind: OutcomeKind
    penalty_winner: Side | None = None

    def score_for(self, side: Side) -> float:
        return self.team_a_score if side is Side.A else self.team_b_score


@dataclass(frozen=True)
class GoalBonus:
    team_a: int = 0
    team_b: int = 0

    def for_side(self, side: Side) -> int:
        return self.team_a if side is Side.A else self.team_b


def validate_match_shape(match: MatchOutcomeInput) -> None:
    """Reject matches whose teams or penalty fields do not fit the match kind."""
    size = match.kind.team_size
    if len(match.team_a) != size or len(match.team_b) != size:
        raise InvalidMatchShapeError(
            f"match_id={match.match_id} is {match.kind.value} but has "
            f"{len(match.team_a)} vs {len(match.team_b)} players"
        )
    if len(set(match.players)) != len(match.players):
        raise InvalidMatchShapeError(f"match_id={match.match_id} lists a player more than once")
    if match.team_a_goals < 0 or match.team_b_goals < 0:
        raise InvalidMatchShapeError(f"match_id={match.match_id} has negative goals")
    if match.went_to_penalties:
        if match.team_a_goals != match.team_b_goals:
            raise InvalidMatchShapeError(
                f"match_id={match.match_id} went to penalties without a tied scoreline"
            )
        if match.penalty_winner not in (Side.A, Side.B):
            raise InvalidMatchShapeError(
                f"match_id={match.match_id} went to penalties but penalty_winner is {match.penalty_winner!r}"
            )


class OutcomeEvaluator:
    """Pure function of the match snapshot; holds only its parameters."""

    def __init__(self, params: EloParameters | None = None) -> None:
        self.params = params or EloParameters()

    def evaluate(self, match: MatchOutcomeInput) -> MatchOutcome:
        if match.went_to_penalties and match.penalty_winner is not None:
            winner_score = self.params.win_penalty_multiplier
            loser_score = 1.0 - winner_score
            if match.penalty_winner is Side.A:
                return MatchOutcome(winner_score, loser_score, OutcomeKind.PENALTY, Side.A)
            return MatchOutcome(loser_score, winner_score, OutcomeKind.PENALTY, Side.B)

        if match.team_a_goals > match.team_b_goals:
            return MatchOutcome(self.params.win_multiplier, 0.0, OutcomeKind.WIN)
        if match.team_b_goals > match.team_a_goals:
            return MatchOutcome(0.0, self.params.win_multiplier, OutcomeKind.WIN)

        draw = self.params.draw_multiplier
        return MatchOutcome(draw, draw, OutcomeKind.DRAW)

    def goal_bonus(self, match: MatchOutcomeInput, outcome: MatchOutcome) -> GoalBonus:
        if outcome.kind is not OutcomeKind.WIN:
            return GoalBonus()
        if match.goal_difference() < self.params.goal_bonus_threshold:
            return GoalBonus()
        if match.team_a_goals > match.team_b_goals:
            return GoalBonus(team_a=self.params.goal_bonus)
        return GoalBonus(team_b=self.params.goal_bonus)


def classify_result(outcome: MatchOutcome, side: Side) -> tuple[MatchResult, int]:
    """Ledger result and penalty flag for one side.

    Shoot-out decided matches are stored as win/loss with penalty_result +1/-1.
    """
    if outcome.kind is OutcomeKind.PENALTY:
        if outcome.penalty_winner is side:
            return MatchResult.WIN, 1
        return MatchResult.LOSS, -1

    if outcome.kind is OutcomeKind.DRAW:
        return MatchResult.DRAW, 0
    if outcome.score_for(side) > outcome.score_for(side.opponent):
        return MatchResult.WIN, 0
    return MatchResult.LOSS, 0


__all__ = [
    "GoalBonus",
    "MatchOutcome",
    "OutcomeEvaluator",
    "OutcomeKind",
    "classify_result",
    "validate_match_shape",
]
