"""SQLite-backed tests for the SQLAlchemy stores and unit of work."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import inspect, select

from domain.ratings.common import (
    HistoryEntry,
    MatchKind,
    MatchOutcomeInput,
    MatchResult,
    PairIdentity,
    RatingType,
    Side,
)
from domain.ratings.errors import MatchNotFoundError, TransientStoreError
from domain.ratings.service import RatingService
from models.ratings.elo import EloHistory, EloRating
from repositories.matches import SqlIdentityStore, SqlMatchStore
from repositories.ratings.sql import SqlUnitOfWork, sql_unit_of_work


def _entry(match_id: int, entity, rating_before: int, rating_after: int, **overrides) -> HistoryEntry:
    values = dict(
        match_id=match_id,
        entity=entity,
        rating_type=RatingType.PAIR if isinstance(entity, PairIdentity) else RatingType.GLOBAL,
        rating_before=rating_before,
        rating_after=rating_after,
        rating_change=rating_after - rating_before,
        result=MatchResult.WIN if rating_after >= rating_before else MatchResult.LOSS,
        penalty_result=0,
        goal_bonus=0,
        event_time=datetime(2026, 1, match_id, 12, 0),
        k_factor=40,
        expected_score=0.5,
        actual_score=1.0,
    )
    values.update(overrides)
    return HistoryEntry(**values)


def test_schema_creates_rating_tables(sqlite_engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"elo_ratings", "elo_history", "matches", "match_players", "users"} <= tables


def test_rating_store_upsert_and_ranking(sqlite_session_factory) -> None:
    moment = datetime(2026, 1, 1, 12, 0)
    with SqlUnitOfWork(sqlite_session_factory) as uow:
        uow.ratings.upsert(2, RatingType.GLOBAL, 1250, moment)
        uow.ratings.upsert(1, RatingType.GLOBAL, 1250, moment)
        uow.ratings.upsert(3, RatingType.GLOBAL, 1300, moment)
        uow.ratings.upsert(PairIdentity.of(4, 3), RatingType.PAIR, 1210, moment)
        uow.ratings.upsert(3, RatingType.GLOBAL, 1310, moment)

    with SqlUnitOfWork(sqlite_session_factory) as uow:
        ranked = uow.ratings.ranked(RatingType.GLOBAL, offset=0, limit=10)
        assert [(record.entity, record.rating) for record in ranked] == [(3, 1310), (1, 1250), (2, 1250)]
        assert uow.ratings.count(RatingType.GLOBAL) == 3
        pair = uow.ratings.get(PairIdentity(3, 4), RatingType.PAIR, for_update=True)
        assert pair is not None
        assert pair.rating == 1210
        assert uow.ratings.get(9, RatingType.V1) is None


def test_unit_of_work_rolls_back_on_error(sqlite_session_factory) -> None:
    with pytest.raises(RuntimeError):
        with SqlUnitOfWork(sqlite_session_factory) as uow:
            uow.ratings.upsert(1, RatingType.GLOBAL, 1300, datetime(2026, 1, 1))
            uow.ledger.append(_entry(1, 1, 1200, 1300))
            raise RuntimeError("boom")

    with sqlite_session_factory() as session:
        assert session.scalars(select(EloRating)).all() == []
        assert session.scalars(select(EloHistory)).all() == []


def test_constraint_violation_surfaces_as_transient_store_error(sqlite_session_factory) -> None:
    with pytest.raises(TransientStoreError):
        with SqlUnitOfWork(sqlite_session_factory) as uow:
            uow.ledger.append(_entry(1, 1, 1200, 1220))
            uow.ledger.append(_entry(1, 1, 1200, 1220))


def test_ledger_queries(sqlite_session_factory) -> None:
    with SqlUnitOfWork(sqlite_session_factory) as uow:
        first = uow.ledger.append(_entry(1, 1, 1200, 1220))
        uow.ledger.append(_entry(2, 1, 1220, 1210, penalty_result=-1))
        uow.ledger.append(_entry(3, 1, 1210, 1230, penalty_result=1))
        uow.ledger.append(_entry(3, 2, 1200, 1180))
        assert first.id is not None

    with SqlUnitOfWork(sqlite_session_factory) as uow:
        ledger = uow.ledger
        assert ledger.latest_before_match(1, RatingType.GLOBAL, 3).rating_after == 1210
        assert ledger.latest_before_match(1, RatingType.GLOBAL, 1) is None
        assert ledger.count_before_match(1, RatingType.GLOBAL, 3) == 2
        assert ledger.latest_at(1, RatingType.GLOBAL, datetime(2026, 1, 2, 23, 0)).match_id == 2
        assert [entry.match_id for entry in ledger.entries_for(1, RatingType.GLOBAL)] == [3, 2, 1]
        assert [entry.match_id for entry in ledger.entries_for(1, RatingType.GLOBAL, offset=1, limit=1)] == [2]
        assert ledger.count_for(1, RatingType.GLOBAL) == 3
        assert ledger.win_count(1, RatingType.GLOBAL) == 2
        assert [entry.entity for entry in ledger.entries_for_match(3)] == [1, 2]

        assert ledger.delete(first.id) is True
        assert ledger.delete(first.id) is False


def test_match_store_round_trip_and_neighbours(sqlite_session_factory) -> None:
    store = SqlMatchStore(sqlite_session_factory)
    store.add(
        _match(1, (2, 1), (3, 4), 1, 1, went_to_penalties=True, penalty_winner=Side.B),
    )
    store.add(_match(2, (5,), (6,), 2, 0))
    store.add(_match(3, (3,), (5,), 0, 1))

    loaded = store.get_match(1)
    assert loaded.kind is MatchKind.V2
    assert loaded.team_a == (1, 2)
    assert loaded.team_b == (3, 4)
    assert loaded.penalty_winner is Side.B
    assert loaded.event_time == datetime(2026, 1, 1, 12, 0)

    assert store.all_match_ids() == [1, 2, 3]
    assert store.match_ids_after(1, [3]) == [3]
    assert store.match_ids_after(0, [5, 1]) == [1, 2, 3]
    assert store.match_ids_after(0, []) == []

    store.remove(2)
    with pytest.raises(MatchNotFoundError):
        store.get_match(2)


def test_identity_store_resolution(sqlite_session_factory) -> None:
    identities = SqlIdentityStore(sqlite_session_factory)
    identities.add("alice", 1)
    identities.add("bob", 2)

    assert identities.resolve("alice") == 1
    assert identities.resolve("nobody") is None
    assert identities.resolve_many(["bob", "alice", "nobody"]) == {"alice": 1, "bob": 2}


def test_service_over_sql_stores(sqlite_session_factory) -> None:
    match_store = SqlMatchStore(sqlite_session_factory)
    identities = SqlIdentityStore(sqlite_session_factory)
    service = RatingService(sql_unit_of_work(sqlite_session_factory), match_store, identities)
    match_store.add(_match(1, (1,), (2,), 3, 0))
    match_store.add(_match(2, (1, 2), (3, 4), 0, 1))

    assert service.on_match_created(1) is None
    assert service.on_match_created(2) is None
    assert service.get_leaderboard(RatingType.V1).items[0].rating == 1225
    assert service.get_leaderboard(RatingType.PAIR).total == 2

    corrected = _match(1, (1,), (2,), 0, 3)
    summary = service.on_match_edited(1, [1, 2], apply_edit=lambda: match_store.replace(corrected))
    assert summary.failed == 0
    assert summary.recalculations[RatingType.GLOBAL].replayed_match_ids == [2]

    leaderboard = service.get_leaderboard(RatingType.V1)
    assert [(row.entity, row.rating) for row in leaderboard.items] == [(2, 1225), (1, 1180)]


def _match(match_id: int, team_a, team_b, team_a_goals: int, team_b_goals: int, **kwargs) -> MatchOutcomeInput:
    return MatchOutcomeInput(
        match_id=match_id,
        kind=MatchKind.V2 if len(team_a) == 2 else MatchKind.V1,
        team_a_goals=team_a_goals,
        team_b_goals=team_b_goals,
        team_a=tuple(team_a),
        team_b=tuple(team_b),
        event_time=datetime(2026, 1, match_id, 12, 0),
        **kwargs,
    )
