"""Elo expected-score, K-factor and rating update rules."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from math import floor


@dataclass(frozen=True)
class EloParameters:
    default_rating: int = 1200
    rating_floor: int = 100
    scale_factor: float = 400.0
    k_factor: float = 32.0
    k_factor_new: float = 40.0
    k_factor_high: float = 24.0
    new_entity_match_threshold: int = 10
    high_rating_threshold: int = 2000
    win_multiplier: float = 1.0
    win_penalty_multiplier: float = 0.7
    draw_multiplier: float = 0.5
    goal_bonus_threshold: int = 3
    goal_bonus: int = 5


@dataclass(frozen=True)
class RatingUpdate:
    new_rating: int
    change: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, independent of parity."""
    return int(floor(value + 0.5))


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float = 400.0) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


class RatingUpdateEngine:
    """Stateless Elo arithmetic bound to one immutable parameter set."""

    def __init__(self, params: EloParameters | None = None) -> None:
        self.params = params or EloParameters()

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        return calculate_expected_score(rating, opponent_rating, self.params.scale_factor)

    def k_factor(self, *, prior_entries: int, current_rating: int) -> float:
        if prior_entries < self.params.new_entity_match_threshold:
            return self.params.k_factor_new
        if current_rating > self.params.high_rating_threshold:
            return self.params.k_factor_high
        return self.params.k_factor

    def new_rating(
        self,
        current_rating: int,
        expected_score: float,
        actual_score: float,
        k_factor: float,
        bonus: int = 0,
    ) -> RatingUpdate:
        raw_change = round_half_up(k_factor * (actual_score - expected_score) + bonus)
        new_rating = max(self.params.rating_floor, current_rating + raw_change)
        return RatingUpdate(new_rating=new_rating, change=new_rating - current_rating)

    def team_rating(self, ratings: Sequence[int]) -> int:
        """Arithmetic mean of member ratings, rounded to the nearest integer."""
        if not ratings:
            return self.params.default_rating
        return round_half_up(sum(ratings) / len(ratings))


__all__ = [
    "EloParameters",
    "RatingUpdate",
    "RatingUpdateEngine",
    "calculate_expected_score",
    "round_half_up",
]
