"""Unit tests for the Elo update arithmetic."""

from __future__ import annotations

import pytest

from domain.ratings.elo.calculator import (
    EloParameters,
    RatingUpdateEngine,
    calculate_expected_score,
    round_half_up,
)


def test_elo_parameters_defaults_are_expected_constants() -> None:
    params = EloParameters()
    assert params.default_rating == 1200
    assert params.rating_floor == 100
    assert params.scale_factor == pytest.approx(400.0)
    assert params.k_factor == pytest.approx(32.0)
    assert params.k_factor_new == pytest.approx(40.0)
    assert params.k_factor_high == pytest.approx(24.0)
    assert params.new_entity_match_threshold == 10
    assert params.high_rating_threshold == 2000
    assert params.win_penalty_multiplier == pytest.approx(0.7)
    assert params.goal_bonus_threshold == 3
    assert params.goal_bonus == 5


def test_expected_score_equal_ratings_is_half() -> None:
    assert calculate_expected_score(1200, 1200) == pytest.approx(0.5)


def test_expected_scores_sum_to_one() -> None:
    expected_a = calculate_expected_score(1350, 1200)
    expected_b = calculate_expected_score(1200, 1350)
    assert expected_a + expected_b == pytest.approx(1.0)
    assert expected_a > 0.5


def test_expected_score_for_400_point_gap() -> None:
    assert calculate_expected_score(1600, 1200) == pytest.approx(10.0 / 11.0)


def test_round_half_up_rounds_halves_towards_positive_infinity() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2
    assert round_half_up(-2.6) == -3
    assert round_half_up(0.49) == 0


def test_k_factor_selection() -> None:
    engine = RatingUpdateEngine()
    assert engine.k_factor(prior_entries=0, current_rating=2500) == pytest.approx(40.0)
    assert engine.k_factor(prior_entries=9, current_rating=1200) == pytest.approx(40.0)
    assert engine.k_factor(prior_entries=10, current_rating=1200) == pytest.approx(32.0)
    assert engine.k_factor(prior_entries=10, current_rating=2000) == pytest.approx(32.0)
    assert engine.k_factor(prior_entries=10, current_rating=2001) == pytest.approx(24.0)


def test_new_rating_adds_goal_bonus() -> None:
    update = RatingUpdateEngine().new_rating(1200, 0.5, 1.0, 32.0, bonus=5)
    assert update.new_rating == 1221
    assert update.change == 21


def test_new_rating_is_clamped_to_floor_and_change_is_applied_delta() -> None:
    update = RatingUpdateEngine().new_rating(110, 0.5, 0.0, 40.0)
    assert update.new_rating == 100
    assert update.change == -10


def test_team_rating_is_rounded_mean_or_default() -> None:
    engine = RatingUpdateEngine()
    assert engine.team_rating([1200, 1201]) == 1201
    assert engine.team_rating([1180]) == 1180
    assert engine.team_rating([]) == 1200
    assert RatingUpdateEngine(EloParameters(default_rating=1500)).team_rating([]) == 1500
