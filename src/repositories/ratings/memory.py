"""In-memory rating, ledger, match and identity stores.

Used by tests and by callers that do not need durable persistence. A single
re-entrant lock is held for the whole unit of work; rollback replays an undo
journal.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    MatchOutcomeInput,
    MatchResult,
    RatingRecord,
    RatingType,
    TimeWindow,
    entity_key,
    entity_sort_key,
)
from domain.ratings.errors import MatchNotFoundError
from domain.ratings.protocol import UnitOfWorkFactory

RatingKey = tuple[RatingType, str]


@dataclass
class InMemoryRatingDatabase:
    """Shared state behind every in-memory unit of work."""

    ratings: dict[RatingKey, RatingRecord] = field(default_factory=dict)
    history: dict[int, HistoryEntry] = field(default_factory=dict)
    next_history_id: int = 1
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class _Journal:
    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()


class InMemoryRatingStore:
    def __init__(self, db: InMemoryRatingDatabase, journal: _Journal) -> None:
        self.db = db
        self.journal = journal

    def get(self, entity: Entity, rating_type: RatingType, *, for_update: bool = False) -> RatingRecord | None:
        return self.db.ratings.get((rating_type, entity_key(entity)))

    def upsert(self, entity: Entity, rating_type: RatingType, rating: int, updated_at: datetime) -> RatingRecord:
        key = (rating_type, entity_key(entity))
        previous = self.db.ratings.get(key)
        record = RatingRecord(entity=entity, rating_type=rating_type, rating=int(rating), last_updated=updated_at)
        self.db.ratings[key] = record
        if previous is None:
            self.journal.record(lambda: self.db.ratings.pop(key, None))
        else:
            self.journal.record(lambda: self.db.ratings.__setitem__(key, previous))
        return record

    def ranked(self, rating_type: RatingType, *, offset: int, limit: int) -> list[RatingRecord]:
        records = [record for (kind, _), record in self.db.ratings.items() if kind is rating_type]
        records.sort(key=lambda record: (-record.rating, entity_sort_key(record.entity)))
        return records[offset : offset + limit]

    def count(self, rating_type: RatingType) -> int:
        return sum(1 for kind, _ in self.db.ratings if kind is rating_type)

    def clear(self) -> None:
        snapshot = dict(self.db.ratings)
        self.db.ratings.clear()
        self.journal.record(lambda: self.db.ratings.update(snapshot))


class InMemoryHistoryLedger:
    def __init__(self, db: InMemoryRatingDatabase, journal: _Journal) -> None:
        self.db = db
        self.journal = journal

    def _entries(
        self,
        entity: Entity,
        rating_type: RatingType,
        window: TimeWindow | None = None,
    ) -> list[HistoryEntry]:
        key = entity_key(entity)
        return [
            entry
            for entry in self.db.history.values()
            if entry.rating_type is rating_type
            and entity_key(entry.entity) == key
            and (window is None or window.contains(entry.event_time))
        ]

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        entry_id = self.db.next_history_id
        self.db.next_history_id += 1
        stored = replace(entry, id=entry_id)
        self.db.history[entry_id] = stored
        self.journal.record(lambda: self.db.history.pop(entry_id, None))
        return stored

    def entries_for_match(self, match_id: int) -> list[HistoryEntry]:
        return sorted(
            (entry for entry in self.db.history.values() if entry.match_id == match_id),
            key=lambda entry: entry.id,
        )

    def delete(self, entry_id: int) -> bool:
        removed = self.db.history.pop(entry_id, None)
        if removed is None:
            return False
        self.journal.record(lambda: self.db.history.__setitem__(entry_id, removed))
        return True

    def latest_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> HistoryEntry | None:
        prior = [entry for entry in self._entries(entity, rating_type) if entry.match_id < match_id]
        if not prior:
            return None
        return max(prior, key=lambda entry: (entry.match_id, entry.id))

    def count_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> int:
        return sum(1 for entry in self._entries(entity, rating_type) if entry.match_id < match_id)

    def latest_at(self, entity: Entity, rating_type: RatingType, cutoff: datetime) -> HistoryEntry | None:
        eligible = [entry for entry in self._entries(entity, rating_type) if entry.event_time <= cutoff]
        if not eligible:
            return None
        return max(eligible, key=lambda entry: (entry.event_time, entry.match_id))

    def entries_for(
        self,
        entity: Entity,
        rating_type: RatingType,
        *,
        window: TimeWindow | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HistoryEntry]:
        entries = sorted(
            self._entries(entity, rating_type, window),
            key=lambda entry: (entry.match_id, entry.id),
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return entries[offset:end]

    def count_for(self, entity: Entity, rating_type: RatingType, *, window: TimeWindow | None = None) -> int:
        return len(self._entries(entity, rating_type, window))

    def win_count(self, entity: Entity, rating_type: RatingType) -> int:
        return sum(1 for entry in self._entries(entity, rating_type) if entry.result is MatchResult.WIN)

    def entities_in_window(self, rating_type: RatingType, window: TimeWindow) -> list[Entity]:
        entities = {
            entry.entity
            for entry in self.db.history.values()
            if entry.rating_type is rating_type and window.contains(entry.event_time)
        }
        return sorted(entities, key=entity_sort_key)

    def clear(self) -> None:
        snapshot = dict(self.db.history)
        self.db.history.clear()
        self.journal.record(lambda: self.db.history.update(snapshot))


class InMemoryUnitOfWork:
    def __init__(self, db: InMemoryRatingDatabase) -> None:
        self.db = db
        self._journal = _Journal()
        self.ratings = InMemoryRatingStore(db, self._journal)
        self.ledger = InMemoryHistoryLedger(db, self._journal)

    def __enter__(self) -> InMemoryUnitOfWork:
        self.db.lock.acquire()
        self._journal = _Journal()
        self.ratings.journal = self._journal
        self.ledger.journal = self._journal
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                self._journal.rollback()
        finally:
            self.db.lock.release()


def in_memory_unit_of_work(db: InMemoryRatingDatabase | None = None) -> UnitOfWorkFactory:
    """Factory producing units of work over one shared in-memory database."""
    database = db if db is not None else InMemoryRatingDatabase()
    return lambda: InMemoryUnitOfWork(database)


class InMemoryMatchStore:
    """Match records keyed by id; mutations stand in for the external owner."""

    def __init__(self, matches: Iterable[MatchOutcomeInput] = ()) -> None:
        self._matches: dict[int, MatchOutcomeInput] = {}
        for match in matches:
            self.add(match)

    def add(self, match: MatchOutcomeInput) -> None:
        if match.match_id in self._matches:
            raise ValueError(f"match_id={match.match_id} already exists")
        self._matches[match.match_id] = match

    def replace(self, match: MatchOutcomeInput) -> None:
        if match.match_id not in self._matches:
            raise MatchNotFoundError(match.match_id)
        self._matches[match.match_id] = match

    def remove(self, match_id: int) -> None:
        if self._matches.pop(match_id, None) is None:
            raise MatchNotFoundError(match_id)

    def get_match(self, match_id: int) -> MatchOutcomeInput:
        match = self._matches.get(match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def match_ids_after(self, after_match_id: int, player_ids: Iterable[int]) -> list[int]:
        wanted = set(player_ids)
        return sorted(
            match_id
            for match_id, match in self._matches.items()
            if match_id > after_match_id and wanted.intersection(match.players)
        )

    def all_match_ids(self) -> list[int]:
        return sorted(self._matches)


class InMemoryIdentityStore:
    def __init__(self, users: dict[str, int] | None = None) -> None:
        self._users = dict(users or {})

    def add(self, username: str, player_id: int) -> None:
        self._users[username] = player_id

    def resolve(self, username: str) -> int | None:
        return self._users.get(username)

    def resolve_many(self, usernames: Sequence[str]) -> dict[str, int]:
        return {name: self._users[name] for name in usernames if name in self._users}


__all__ = [
    "InMemoryHistoryLedger",
    "InMemoryIdentityStore",
    "InMemoryMatchStore",
    "InMemoryRatingDatabase",
    "InMemoryRatingStore",
    "InMemoryUnitOfWork",
    "in_memory_unit_of_work",
]
