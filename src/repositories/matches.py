"""Readers for the externally owned match and user tables."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from domain.ratings.common import MatchKind, MatchOutcomeInput, Side
from domain.ratings.errors import InvalidMatchShapeError, MatchNotFoundError
from repositories.ratings.sql import store_errors

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True),
    Column("username", String(64), unique=True, nullable=False),
)

_matches = Table(
    "matches",
    _metadata,
    Column("id", Integer, primary_key=True),
    Column("teama_goals", Integer, nullable=False),
    Column("teamb_goals", Integer, nullable=False),
    Column("match_type", String(8), nullable=False),
    Column("went_to_penalties", Boolean, nullable=False, default=False),
    Column("penalty_winner", String(1)),
    Column("created_by", Integer),
    Column("created_at", DateTime(timezone=False), nullable=False),
)

_match_players = Table(
    "match_players",
    _metadata,
    Column("match_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("team", String(1), nullable=False),
)

_MATCH_KINDS = {
    "1v1": MatchKind.V1,
    "v1": MatchKind.V1,
    "2v2": MatchKind.V2,
    "v2": MatchKind.V2,
}


def create_match_store_tables(engine: Engine) -> None:
    """Create users/matches/match_players when missing (local and test databases)."""
    with store_errors("creating match tables"):
        _metadata.create_all(bind=engine, checkfirst=True)


def _parse_match_kind(value: str, match_id: int) -> MatchKind:
    kind = _MATCH_KINDS.get(str(value).strip().lower())
    if kind is None:
        raise InvalidMatchShapeError(f"match_id={match_id} has unknown match_type {value!r}")
    return kind


def _parse_side(value: str | None) -> Side | None:
    if value is None:
        return None
    normalized = str(value).strip().upper()
    return Side(normalized) if normalized in ("A", "B") else None


class SqlMatchStore:
    """Match snapshots read from matches + match_players."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def get_match(self, match_id: int) -> MatchOutcomeInput:
        with store_errors(f"loading match_id={match_id}"), self.session_factory() as session:
            match_row = session.execute(select(_matches).where(_matches.c.id == match_id)).mappings().first()
            if match_row is None:
                raise MatchNotFoundError(match_id)
            player_rows = session.execute(
                select(_match_players.c.user_id, _match_players.c.team)
                .where(_match_players.c.match_id == match_id)
                .order_by(_match_players.c.team.asc(), _match_players.c.user_id.asc())
            ).all()

        team_a = tuple(int(user_id) for user_id, team in player_rows if str(team).upper() == Side.A.value)
        team_b = tuple(int(user_id) for user_id, team in player_rows if str(team).upper() == Side.B.value)
        went_to_penalties = bool(match_row["went_to_penalties"])
        return MatchOutcomeInput(
            match_id=int(match_row["id"]),
            kind=_parse_match_kind(match_row["match_type"], match_id),
            team_a_goals=int(match_row["teama_goals"]),
            team_b_goals=int(match_row["teamb_goals"]),
            team_a=team_a,
            team_b=team_b,
            event_time=match_row["created_at"],
            went_to_penalties=went_to_penalties,
            penalty_winner=_parse_side(match_row["penalty_winner"]) if went_to_penalties else None,
            created_by=match_row["created_by"],
        )

    def match_ids_after(self, after_match_id: int, player_ids: Iterable[int]) -> list[int]:
        wanted = sorted(set(player_ids))
        if not wanted:
            return []
        statement = (
            select(_match_players.c.match_id)
            .where(
                _match_players.c.match_id > after_match_id,
                _match_players.c.user_id.in_(wanted),
            )
            .distinct()
            .order_by(_match_players.c.match_id.asc())
        )
        with store_errors("listing subsequent matches"), self.session_factory() as session:
            return [int(match_id) for match_id in session.scalars(statement)]

    def all_match_ids(self) -> list[int]:
        with store_errors("listing matches"), self.session_factory() as session:
            return [int(match_id) for match_id in session.scalars(select(_matches.c.id).order_by(_matches.c.id.asc()))]

    def add(self, match: MatchOutcomeInput) -> None:
        """Insert a match and its players (used by local tooling and tests)."""
        with store_errors(f"inserting match_id={match.match_id}"), self.session_factory() as session:
            with session.begin():
                session.execute(insert(_matches).values(_match_row(match)))
                session.execute(insert(_match_players), _player_rows(match))

    def replace(self, match: MatchOutcomeInput) -> None:
        with store_errors(f"updating match_id={match.match_id}"), self.session_factory() as session:
            with session.begin():
                result = session.execute(
                    update(_matches).where(_matches.c.id == match.match_id).values(_match_row(match))
                )
                if not result.rowcount:
                    raise MatchNotFoundError(match.match_id)
                session.execute(delete(_match_players).where(_match_players.c.match_id == match.match_id))
                session.execute(insert(_match_players), _player_rows(match))

    def remove(self, match_id: int) -> None:
        with store_errors(f"deleting match_id={match_id}"), self.session_factory() as session:
            with session.begin():
                session.execute(delete(_match_players).where(_match_players.c.match_id == match_id))
                result = session.execute(delete(_matches).where(_matches.c.id == match_id))
                if not result.rowcount:
                    raise MatchNotFoundError(match_id)


def _match_row(match: MatchOutcomeInput) -> dict:
    return {
        "id": match.match_id,
        "teama_goals": match.team_a_goals,
        "teamb_goals": match.team_b_goals,
        "match_type": match.kind.value,
        "went_to_penalties": match.went_to_penalties,
        "penalty_winner": None if match.penalty_winner is None else match.penalty_winner.value,
        "created_by": match.created_by,
        "created_at": match.event_time,
    }


def _player_rows(match: MatchOutcomeInput) -> list[dict]:
    return [
        {"match_id": match.match_id, "user_id": player_id, "team": side.value}
        for side in (Side.A, Side.B)
        for player_id in match.team(side)
    ]


class SqlIdentityStore:
    """Username lookups against the users table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def resolve(self, username: str) -> int | None:
        statement = select(_users.c.id).where(_users.c.username == username)
        with store_errors("resolving username"), self.session_factory() as session:
            player_id = session.scalar(statement)
        return None if player_id is None else int(player_id)

    def resolve_many(self, usernames: Sequence[str]) -> dict[str, int]:
        if not usernames:
            return {}
        statement = select(_users.c.username, _users.c.id).where(_users.c.username.in_(list(usernames)))
        with store_errors("resolving usernames"), self.session_factory() as session:
            return {str(username): int(player_id) for username, player_id in session.execute(statement)}

    def add(self, username: str, player_id: int) -> None:
        with store_errors("inserting user"), self.session_factory() as session:
            with session.begin():
                session.execute(insert(_users).values(id=player_id, username=username))


__all__ = [
    "SqlIdentityStore",
    "SqlMatchStore",
    "create_match_store_tables",
]
