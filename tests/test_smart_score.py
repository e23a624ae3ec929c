"""Tests for smart score components and window ranking."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from domain.ratings.common import PairIdentity, RatingType, Side, TimeWindow
from domain.ratings.processor import MatchProcessor
from domain.ratings.reconstruction import HistoricalRatingReconstructor
from domain.ratings.smart_score import SmartScoreEngine, activity_score, consistency_score


def _engine(uow_factory) -> SmartScoreEngine:
    return SmartScoreEngine(uow_factory, HistoricalRatingReconstructor(uow_factory))


def _play_two_days(uow_factory, make_match) -> None:
    processor = MatchProcessor(uow_factory)
    processor.process(make_match(1, (1,), (2,), 1, 0, event_time=datetime(2026, 1, 1, 18, 0)))
    processor.process(
        make_match(
            2,
            (1,),
            (2,),
            1,
            1,
            event_time=datetime(2026, 1, 2, 10, 0),
            went_to_penalties=True,
            penalty_winner=Side.A,
        )
    )


def test_consistency_score_rules() -> None:
    assert consistency_score([]) == pytest.approx(50.0)
    assert consistency_score([12]) == pytest.approx(50.0)
    assert consistency_score([0, 0, 12]) == pytest.approx(50.0)
    assert consistency_score([10, -10]) == pytest.approx(80.0)
    assert consistency_score([5, 5, 0]) == pytest.approx(100.0)
    assert consistency_score([40, -40]) == pytest.approx(30.0)


def test_activity_score_is_capped() -> None:
    assert activity_score(10, 20) == pytest.approx(50.0)
    assert activity_score(5, 15) == pytest.approx(100.0 / 3.0)
    assert activity_score(30, 20) == pytest.approx(100.0)


def test_window_score_excludes_penalty_wins_from_winrate(uow_factory, make_match) -> None:
    _play_two_days(uow_factory, make_match)
    window = TimeWindow.from_dates(date(2026, 1, 1), date(2026, 1, 2))

    score = _engine(uow_factory).score(1, RatingType.GLOBAL, window)

    assert score is not None
    assert score.matches_count == 2
    assert score.outright_wins == 1
    assert score.winrate == pytest.approx(50.0)
    assert score.consistency == pytest.approx(86.0)
    assert score.activity == pytest.approx(10.0)
    assert score.historical_rating == 1226
    assert score.smart_score == pytest.approx(1226 * 0.35 + 86.0 * 0.20 + 50.0 * 0.35 + 10.0 * 0.10)


def test_window_end_date_is_inclusive_and_reconstructs_rating(uow_factory, make_match) -> None:
    _play_two_days(uow_factory, make_match)
    window = TimeWindow.from_dates(date(2026, 1, 1), date(2026, 1, 1))

    score = _engine(uow_factory).score(1, RatingType.GLOBAL, window)

    assert score is not None
    assert score.matches_count == 1
    assert score.winrate == pytest.approx(100.0)
    assert score.consistency == pytest.approx(50.0)
    assert score.historical_rating == 1220
    assert score.smart_score == pytest.approx(472.5)


def test_rank_orders_by_score_then_entity(uow_factory, make_match) -> None:
    _play_two_days(uow_factory, make_match)
    processor = MatchProcessor(uow_factory)
    processor.process(make_match(3, (4,), (3,), 0, 0, event_time=datetime(2026, 1, 5, 9, 0)))
    engine = _engine(uow_factory)

    ranked = engine.rank(RatingType.GLOBAL, TimeWindow.from_dates(date(2026, 1, 1), date(2026, 1, 2)))
    assert [score.entity for score in ranked] == [1, 2]
    assert ranked[1].winrate == pytest.approx(0.0)

    tied = engine.rank("global", TimeWindow.from_dates(date(2026, 1, 5), date(2026, 1, 5)))
    assert [score.entity for score in tied] == [3, 4]
    assert tied[0].smart_score == pytest.approx(tied[1].smart_score)


def test_inactive_entities_are_excluded(uow_factory, make_match) -> None:
    _play_two_days(uow_factory, make_match)
    engine = _engine(uow_factory)
    empty_window = TimeWindow.from_dates(date(2026, 3, 1), date(2026, 3, 31))

    assert engine.rank(RatingType.GLOBAL, empty_window) == []
    assert engine.score(1, RatingType.GLOBAL, empty_window) is None


def test_pair_activity_uses_pair_cap(uow_factory, make_match) -> None:
    MatchProcessor(uow_factory).process(make_match(1, (1, 2), (3, 4), 2, 0, event_time=datetime(2026, 1, 1, 9, 0)))
    window = TimeWindow.from_dates(date(2026, 1, 1), date(2026, 1, 1))

    ranked = _engine(uow_factory).rank(RatingType.PAIR, window)

    assert [score.entity for score in ranked] == [PairIdentity(1, 2), PairIdentity(3, 4)]
    assert ranked[0].activity == pytest.approx(100.0 / 15.0)
