"""Unit tests for scoreline evaluation and match shape checks."""

from __future__ import annotations

from datetime import datetime

import pytest

from domain.ratings.common import MatchKind, MatchOutcomeInput, MatchResult, Side
from domain.ratings.elo.outcome import (
    OutcomeEvaluator,
    OutcomeKind,
    classify_result,
    validate_match_shape,
)
from domain.ratings.errors import InvalidMatchShapeError


def _match(
    team_a_goals: int,
    team_b_goals: int,
    *,
    kind: MatchKind = MatchKind.V1,
    team_a: tuple[int, ...] = (1,),
    team_b: tuple[int, ...] = (2,),
    went_to_penalties: bool = False,
    penalty_winner: Side | None = None,
) -> MatchOutcomeInput:
    return MatchOutcomeInput(
        match_id=1,
        kind=kind,
        team_a_goals=team_a_goals,
        team_b_goals=team_b_goals,
        team_a=team_a,
        team_b=team_b,
        event_time=datetime(2026, 1, 1, 12, 0, 0),
        went_to_penalties=went_to_penalties,
        penalty_winner=penalty_winner,
    )


def test_penalty_shootout_scores_winner_point_seven() -> None:
    evaluator = OutcomeEvaluator()
    match = _match(2, 2, went_to_penalties=True, penalty_winner=Side.B)
    outcome = evaluator.evaluate(match)

    assert outcome.kind is OutcomeKind.PENALTY
    assert outcome.team_a_score == pytest.approx(0.3)
    assert outcome.team_b_score == pytest.approx(0.7)
    assert classify_result(outcome, Side.B) == (MatchResult.WIN, 1)
    assert classify_result(outcome, Side.A) == (MatchResult.LOSS, -1)
    assert evaluator.goal_bonus(match, outcome).for_side(Side.B) == 0


def test_regular_win_and_goal_bonus_threshold() -> None:
    evaluator = OutcomeEvaluator()

    big_win = _match(5, 2)
    outcome = evaluator.evaluate(big_win)
    assert outcome.kind is OutcomeKind.WIN
    assert (outcome.team_a_score, outcome.team_b_score) == (1.0, 0.0)
    bonus = evaluator.goal_bonus(big_win, outcome)
    assert (bonus.team_a, bonus.team_b) == (5, 0)

    narrow_win = _match(3, 1)
    assert evaluator.goal_bonus(narrow_win, evaluator.evaluate(narrow_win)).team_a == 0

    away_rout = _match(0, 4)
    away_outcome = evaluator.evaluate(away_rout)
    assert classify_result(away_outcome, Side.B) == (MatchResult.WIN, 0)
    assert classify_result(away_outcome, Side.A) == (MatchResult.LOSS, 0)
    assert evaluator.goal_bonus(away_rout, away_outcome).team_b == 5


def test_draw_scores_half_each_without_bonus() -> None:
    evaluator = OutcomeEvaluator()
    match = _match(1, 1)
    outcome = evaluator.evaluate(match)

    assert outcome.kind is OutcomeKind.DRAW
    assert outcome.team_a_score == pytest.approx(0.5)
    assert outcome.team_b_score == pytest.approx(0.5)
    assert classify_result(outcome, Side.A) == (MatchResult.DRAW, 0)
    assert evaluator.goal_bonus(match, outcome).team_a == 0


def test_valid_shapes_pass_validation() -> None:
    validate_match_shape(_match(1, 0))
    validate_match_shape(_match(1, 1, kind=MatchKind.V2, team_a=(1, 2), team_b=(3, 4)))
    validate_match_shape(_match(0, 0, went_to_penalties=True, penalty_winner=Side.A))


@pytest.mark.parametrize(
    "match",
    [
        _match(1, 0, team_a=(1, 3)),
        _match(1, 0, kind=MatchKind.V2, team_a=(1, 2), team_b=(3,)),
        _match(1, 0, kind=MatchKind.V2, team_a=(1, 2), team_b=(2, 3)),
        _match(-1, 0),
        _match(3, 2, went_to_penalties=True, penalty_winner=Side.A),
        _match(2, 2, went_to_penalties=True),
    ],
)
def test_invalid_shapes_raise(match: MatchOutcomeInput) -> None:
    with pytest.raises(InvalidMatchShapeError):
        validate_match_shape(match)
