"""Shared fixtures: in-memory stores, a match builder and a SQLite engine."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta

import pytest
from sqlalchemy.engine import Engine

from db import create_db_engine, create_session_factory
from domain.ratings.common import MatchKind, MatchOutcomeInput, Side
from domain.ratings.service import RatingService
from repositories.matches import create_match_store_tables
from repositories.ratings.memory import (
    InMemoryIdentityStore,
    InMemoryMatchStore,
    InMemoryRatingDatabase,
    in_memory_unit_of_work,
)
from repositories.ratings.sql import ensure_rating_schema

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)

MatchFactory = Callable[..., MatchOutcomeInput]


def build_match(
    match_id: int,
    team_a: tuple[int, ...],
    team_b: tuple[int, ...],
    team_a_goals: int,
    team_b_goals: int,
    *,
    event_time: datetime | None = None,
    went_to_penalties: bool = False,
    penalty_winner: Side | None = None,
) -> MatchOutcomeInput:
    """Match snapshot; the kind follows the team size and the time defaults to one hour per id."""
    return MatchOutcomeInput(
        match_id=match_id,
        kind=MatchKind.V2 if len(team_a) == 2 else MatchKind.V1,
        team_a_goals=team_a_goals,
        team_b_goals=team_b_goals,
        team_a=team_a,
        team_b=team_b,
        event_time=event_time or BASE_TIME + timedelta(hours=match_id),
        went_to_penalties=went_to_penalties,
        penalty_winner=penalty_winner,
    )


@pytest.fixture
def make_match() -> MatchFactory:
    return build_match


@pytest.fixture
def rating_db() -> InMemoryRatingDatabase:
    return InMemoryRatingDatabase()


@pytest.fixture
def uow_factory(rating_db: InMemoryRatingDatabase):
    return in_memory_unit_of_work(rating_db)


@pytest.fixture
def match_store() -> InMemoryMatchStore:
    return InMemoryMatchStore()


@pytest.fixture
def identity_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore({"alice": 1, "bob": 2, "carol": 3, "dave": 4})


@pytest.fixture
def service(uow_factory, match_store: InMemoryMatchStore, identity_store: InMemoryIdentityStore) -> RatingService:
    return RatingService(uow_factory, match_store, identity_store)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_db_engine("sqlite://")
    ensure_rating_schema(engine)
    create_match_store_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine):
    return create_session_factory(sqlite_engine)
