"""Elo rating modules."""

from domain.ratings.elo.calculator import (
    EloParameters,
    RatingUpdate,
    RatingUpdateEngine,
    calculate_expected_score,
    round_half_up,
)
from domain.ratings.elo.outcome import (
    GoalBonus,
    MatchOutcome,
    OutcomeEvaluator,
    OutcomeKind,
    classify_result,
    validate_match_shape,
)

__all__ = [
    "EloParameters",
    "GoalBonus",
    "MatchOutcome",
    "OutcomeEvaluator",
    "OutcomeKind",
    "RatingUpdate",
    "RatingUpdateEngine",
    "calculate_expected_score",
    "classify_result",
    "round_half_up",
    "validate_match_shape",
]
