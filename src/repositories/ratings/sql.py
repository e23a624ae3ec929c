"""SQLAlchemy-backed rating store, history ledger and unit of work."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from functools import partial

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    MatchResult,
    RatingRecord,
    RatingType,
    TimeWindow,
    entity_from_players,
    entity_key,
    entity_players,
    entity_sort_key,
)
from domain.ratings.errors import TransientStoreError
from domain.ratings.protocol import UnitOfWorkFactory
from models.ratings.elo import EloHistory, EloRating


def ensure_rating_schema(engine: Engine) -> None:
    """Create the elo_ratings and elo_history tables if they do not exist."""
    with store_errors("creating rating schema"):
        with engine.begin() as connection:
            EloRating.__table__.create(bind=connection, checkfirst=True)
            EloHistory.__table__.create(bind=connection, checkfirst=True)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise driver and ORM failures as TransientStoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise TransientStoreError(f"{action} failed: {exc}") from exc


def _rating_to_record(row: EloRating) -> RatingRecord:
    return RatingRecord(
        entity=entity_from_players(row.player1_id, row.player2_id),
        rating_type=RatingType.parse(row.rating_type),
        rating=int(row.current_rating),
        last_updated=row.last_updated,
    )


def _history_to_entry(row: EloHistory) -> HistoryEntry:
    return HistoryEntry(
        id=int(row.id),
        match_id=int(row.match_id),
        entity=entity_from_players(row.player1_id, row.player2_id),
        rating_type=RatingType.parse(row.rating_type),
        rating_before=int(row.rating_before),
        rating_after=int(row.rating_after),
        rating_change=int(row.rating_change),
        result=MatchResult(row.result),
        penalty_result=int(row.penalty_result),
        goal_bonus=int(row.goal_bonus),
        event_time=row.event_time,
        k_factor=int(row.k_factor),
        expected_score=float(row.expected_score),
        actual_score=float(row.actual_score),
    )


def _window_conditions(window: TimeWindow | None) -> list:
    if window is None:
        return []
    return [EloHistory.event_time >= window.start, EloHistory.event_time <= window.end]


class SqlRatingStore:
    """Current ratings stored in elo_ratings."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _select(self, entity: Entity, rating_type: RatingType):
        return select(EloRating).where(
            EloRating.rating_type == rating_type.value,
            EloRating.entity_key == entity_key(entity),
        )

    def get(self, entity: Entity, rating_type: RatingType, *, for_update: bool = False) -> RatingRecord | None:
        statement = self._select(entity, rating_type)
        if for_update:
            statement = statement.with_for_update()
        row = self.session.execute(statement).scalar_one_or_none()
        return None if row is None else _rating_to_record(row)

    def upsert(self, entity: Entity, rating_type: RatingType, rating: int, updated_at: datetime) -> RatingRecord:
        row = self.session.execute(self._select(entity, rating_type).with_for_update()).scalar_one_or_none()
        if row is None:
            player1_id, player2_id = entity_players(entity)
            row = EloRating(
                rating_type=rating_type.value,
                entity_key=entity_key(entity),
                player1_id=player1_id,
                player2_id=player2_id,
                current_rating=int(rating),
                last_updated=updated_at,
            )
            self.session.add(row)
        else:
            row.current_rating = int(rating)
            row.last_updated = updated_at
        self.session.flush()
        return _rating_to_record(row)

    def ranked(self, rating_type: RatingType, *, offset: int, limit: int) -> list[RatingRecord]:
        statement = (
            select(EloRating)
            .where(EloRating.rating_type == rating_type.value)
            .order_by(
                EloRating.current_rating.desc(),
                EloRating.player1_id.asc(),
                func.coalesce(EloRating.player2_id, -1).asc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return [_rating_to_record(row) for row in self.session.execute(statement).scalars()]

    def count(self, rating_type: RatingType) -> int:
        statement = select(func.count(EloRating.id)).where(EloRating.rating_type == rating_type.value)
        return int(self.session.scalar(statement) or 0)

    def clear(self) -> None:
        self.session.execute(delete(EloRating))


class SqlHistoryLedger:
    """Rating change events stored in elo_history."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @staticmethod
    def _entity_conditions(entity: Entity, rating_type: RatingType) -> list:
        return [
            EloHistory.rating_type == rating_type.value,
            EloHistory.entity_key == entity_key(entity),
        ]

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        player1_id, player2_id = entity_players(entry.entity)
        row = EloHistory(
            match_id=entry.match_id,
            rating_type=entry.rating_type.value,
            entity_key=entity_key(entry.entity),
            player1_id=player1_id,
            player2_id=player2_id,
            event_time=entry.event_time,
            rating_before=entry.rating_before,
            rating_after=entry.rating_after,
            rating_change=entry.rating_change,
            result=entry.result.value,
            penalty_result=entry.penalty_result,
            goal_bonus=entry.goal_bonus,
            k_factor=entry.k_factor,
            expected_score=entry.expected_score,
            actual_score=entry.actual_score,
        )
        self.session.add(row)
        self.session.flush()
        return replace(entry, id=int(row.id))

    def entries_for_match(self, match_id: int) -> list[HistoryEntry]:
        statement = select(EloHistory).where(EloHistory.match_id == match_id).order_by(EloHistory.id.asc())
        return [_history_to_entry(row) for row in self.session.execute(statement).scalars()]

    def delete(self, entry_id: int) -> bool:
        result = self.session.execute(delete(EloHistory).where(EloHistory.id == entry_id))
        return bool(result.rowcount)

    def latest_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> HistoryEntry | None:
        statement = (
            select(EloHistory)
            .where(*self._entity_conditions(entity, rating_type), EloHistory.match_id < match_id)
            .order_by(EloHistory.match_id.desc(), EloHistory.id.desc())
            .limit(1)
        )
        row = self.session.execute(statement).scalar_one_or_none()
        return None if row is None else _history_to_entry(row)

    def count_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> int:
        statement = select(func.count(EloHistory.id)).where(
            *self._entity_conditions(entity, rating_type),
            EloHistory.match_id < match_id,
        )
        return int(self.session.scalar(statement) or 0)

    def latest_at(self, entity: Entity, rating_type: RatingType, cutoff: datetime) -> HistoryEntry | None:
        statement = (
            select(EloHistory)
            .where(*self._entity_conditions(entity, rating_type), EloHistory.event_time <= cutoff)
            .order_by(EloHistory.event_time.desc(), EloHistory.match_id.desc())
            .limit(1)
        )
        row = self.session.execute(statement).scalar_one_or_none()
        return None if row is None else _history_to_entry(row)

    def entries_for(
        self,
        entity: Entity,
        rating_type: RatingType,
        *,
        window: TimeWindow | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HistoryEntry]:
        statement = (
            select(EloHistory)
            .where(*self._entity_conditions(entity, rating_type), *_window_conditions(window))
            .order_by(EloHistory.match_id.desc(), EloHistory.id.desc())
            .offset(offset)
        )
        if limit is not None:
            statement = statement.limit(limit)
        return [_history_to_entry(row) for row in self.session.execute(statement).scalars()]

    def count_for(self, entity: Entity, rating_type: RatingType, *, window: TimeWindow | None = None) -> int:
        statement = select(func.count(EloHistory.id)).where(
            *self._entity_conditions(entity, rating_type),
            *_window_conditions(window),
        )
        return int(self.session.scalar(statement) or 0)

    def win_count(self, entity: Entity, rating_type: RatingType) -> int:
        statement = select(func.count(EloHistory.id)).where(
            *self._entity_conditions(entity, rating_type),
            EloHistory.result == MatchResult.WIN.value,
        )
        return int(self.session.scalar(statement) or 0)

    def entities_in_window(self, rating_type: RatingType, window: TimeWindow) -> list[Entity]:
        statement = (
            select(EloHistory.player1_id, EloHistory.player2_id)
            .where(EloHistory.rating_type == rating_type.value, *_window_conditions(window))
            .distinct()
        )
        entities = {
            entity_from_players(player1_id, player2_id)
            for player1_id, player2_id in self.session.execute(statement)
        }
        return sorted(entities, key=entity_sort_key)

    def clear(self) -> None:
        self.session.execute(delete(EloHistory))


class SqlUnitOfWork:
    """One session and transaction shared by the rating store and ledger."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> SqlUnitOfWork:
        self.session = self.session_factory()
        self.ratings = SqlRatingStore(self.session)
        self.ledger = SqlHistoryLedger(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        session = self.session
        self.session = None
        if session is None:
            return
        try:
            if exc_type is None:
                with store_errors("commit"):
                    try:
                        session.commit()
                    except SQLAlchemyError:
                        session.rollback()
                        raise
            else:
                session.rollback()
        finally:
            session.close()

        if isinstance(exc, SQLAlchemyError):
            raise TransientStoreError(f"rating store operation failed: {exc}") from exc


def sql_unit_of_work(session_factory: sessionmaker[Session]) -> UnitOfWorkFactory:
    """Factory producing a fresh SqlUnitOfWork per call."""
    return partial(SqlUnitOfWork, session_factory)


__all__ = [
    "SqlHistoryLedger",
    "SqlRatingStore",
    "SqlUnitOfWork",
    "ensure_rating_schema",
    "sql_unit_of_work",
    "store_errors",
]
