"""Repository contracts the rating engine depends on."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    MatchOutcomeInput,
    RatingRecord,
    RatingType,
    TimeWindow,
)


@runtime_checkable
class RatingStore(Protocol):
    """Current rating per (entity, rating type)."""

    def get(self, entity: Entity, rating_type: RatingType, *, for_update: bool = False) -> RatingRecord | None: ...

    def upsert(self, entity: Entity, rating_type: RatingType, rating: int, updated_at: datetime) -> RatingRecord: ...

    def ranked(self, rating_type: RatingType, *, offset: int, limit: int) -> list[RatingRecord]: ...

    def count(self, rating_type: RatingType) -> int: ...

    def clear(self) -> None: ...


@runtime_checkable
class HistoryLedger(Protocol):
    """Append-only rating change events."""

    def append(self, entry: HistoryEntry) -> HistoryEntry: ...

    def entries_for_match(self, match_id: int) -> list[HistoryEntry]: ...

    def delete(self, entry_id: int) -> bool: ...

    def latest_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> HistoryEntry | None: ...

    def count_before_match(self, entity: Entity, rating_type: RatingType, match_id: int) -> int: ...

    def latest_at(self, entity: Entity, rating_type: RatingType, cutoff: datetime) -> HistoryEntry | None: ...

    def entries_for(
        self,
        entity: Entity,
        rating_type: RatingType,
        *,
        window: TimeWindow | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HistoryEntry]: ...

    def count_for(self, entity: Entity, rating_type: RatingType, *, window: TimeWindow | None = None) -> int: ...

    def win_count(self, entity: Entity, rating_type: RatingType) -> int: ...

    def entities_in_window(self, rating_type: RatingType, window: TimeWindow) -> list[Entity]: ...

    def clear(self) -> None: ...


class UnitOfWork(Protocol):
    """Transaction boundary spanning both stores.

    Entering begins a transaction; leaving without an exception commits, an
    exception rolls back and propagates.
    """

    ratings: RatingStore
    ledger: HistoryLedger

    def __enter__(self) -> UnitOfWork: ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]


@runtime_checkable
class MatchStore(Protocol):
    """Read side of the externally-owned match records."""

    def get_match(self, match_id: int) -> MatchOutcomeInput: ...

    def match_ids_after(self, after_match_id: int, player_ids: Iterable[int]) -> list[int]: ...

    def all_match_ids(self) -> list[int]: ...


@runtime_checkable
class IdentityStore(Protocol):
    """Username to player id resolution."""

    def resolve(self, username: str) -> int | None: ...

    def resolve_many(self, usernames: Sequence[str]) -> dict[str, int]: ...


__all__ = [
    "HistoryLedger",
    "IdentityStore",
    "MatchStore",
    "RatingStore",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
