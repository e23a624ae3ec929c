"""Shared types for the match rating engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Union

from domain.ratings.errors import InvalidMatchShapeError, InvalidRatingTypeError


class RatingType(str, Enum):
    """Rating dimension tracked per entity."""

    GLOBAL = "global"
    V1 = "1v1"
    V2 = "2v2"
    PAIR = "pair"

    @classmethod
    def parse(cls, value: RatingType | str) -> RatingType:
        """Map user or storage input onto the enum, accepting legacy v1/v2 tags."""
        if isinstance(value, RatingType):
            return value
        normalized = str(value).strip().lower()
        mapped = _RATING_TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(mapped)
        except ValueError as exc:
            raise InvalidRatingTypeError(
                f"Invalid rating type {value!r}; expected one of "
                f"{', '.join(member.value for member in cls)}"
            ) from exc

    @property
    def is_pair(self) -> bool:
        return self is RatingType.PAIR


_RATING_TYPE_ALIASES = {
    "v1": "1v1",
    "v2": "2v2",
}


class MatchKind(str, Enum):
    """Match format as recorded by the match store."""

    V1 = "1v1"
    V2 = "2v2"

    @property
    def rating_type(self) -> RatingType:
        return RatingType.V1 if self is MatchKind.V1 else RatingType.V2

    @property
    def team_size(self) -> int:
        return 1 if self is MatchKind.V1 else 2


class Side(str, Enum):
    A = "A"
    B = "B"

    @property
    def opponent(self) -> Side:
        return Side.B if self is Side.A else Side.A


class MatchResult(str, Enum):
    """Result classification stored on each history entry."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


@dataclass(frozen=True, order=True)
class PairIdentity:
    """Order-independent identity of two players rated together."""

    player1_id: int
    player2_id: int

    def __post_init__(self) -> None:
        if self.player1_id == self.player2_id:
            raise InvalidMatchShapeError(f"pair needs two distinct players, got {self.player1_id} twice")
        if self.player1_id > self.player2_id:
            raise InvalidMatchShapeError(
                f"pair ({self.player1_id}, {self.player2_id}) is not canonical; use PairIdentity.of()"
            )

    @classmethod
    def of(cls, first_id: int, second_id: int) -> PairIdentity:
        low, high = sorted((int(first_id), int(second_id)))
        return cls(low, high)

    @property
    def players(self) -> tuple[int, int]:
        return (self.player1_id, self.player2_id)


Entity = Union[int, PairIdentity]


def entity_key(entity: Entity) -> str:
    """Stable storage key for a player or a pair."""
    if isinstance(entity, PairIdentity):
        return f"pair:{entity.player1_id}-{entity.player2_id}"
    return f"player:{int(entity)}"


def entity_players(entity: Entity) -> tuple[int, int | None]:
    """Return (player1_id, player2_id) columns for an entity."""
    if isinstance(entity, PairIdentity):
        return entity.player1_id, entity.player2_id
    return int(entity), None


def entity_from_players(player1_id: int, player2_id: int | None) -> Entity:
    if player2_id is None:
        return int(player1_id)
    return PairIdentity.of(player1_id, player2_id)


def entity_sort_key(entity: Entity) -> tuple[int, int]:
    if isinstance(entity, PairIdentity):
        return entity.players
    return (int(entity), -1)


def check_entity_type(entity: Entity, rating_type: RatingType) -> None:
    """Reject pair entities on player dimensions and vice versa."""
    if rating_type.is_pair != isinstance(entity, PairIdentity):
        raise InvalidRatingTypeError(
            f"rating type {rating_type.value!r} does not apply to {entity_key(entity)}"
        )


@dataclass(frozen=True)
class MatchOutcomeInput:
    """Read-only match snapshot supplied by the match store."""

    match_id: int
    kind: MatchKind
    team_a_goals: int
    team_b_goals: int
    team_a: tuple[int, ...]
    team_b: tuple[int, ...]
    event_time: datetime
    went_to_penalties: bool = False
    penalty_winner: Side | None = None
    created_by: int | None = None

    @property
    def players(self) -> tuple[int, ...]:
        return self.team_a + self.team_b

    def team(self, side: Side) -> tuple[int, ...]:
        return self.team_a if side is Side.A else self.team_b

    def side_of(self, player_id: int) -> Side:
        if player_id in self.team_a:
            return Side.A
        if player_id in self.team_b:
            return Side.B
        raise InvalidMatchShapeError(f"player_id={player_id} did not play match_id={self.match_id}")

    def goal_difference(self) -> int:
        return abs(self.team_a_goals - self.team_b_goals)


@dataclass(frozen=True)
class RatingRecord:
    entity: Entity
    rating_type: RatingType
    rating: int
    last_updated: datetime | None = None


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one rating change caused by one match."""

    match_id: int
    entity: Entity
    rating_type: RatingType
    rating_before: int
    rating_after: int
    rating_change: int
    result: MatchResult
    penalty_result: int
    goal_bonus: int
    event_time: datetime
    k_factor: int
    expected_score: float
    actual_score: float
    id: int | None = None

    @property
    def won_outright(self) -> bool:
        return self.result is MatchResult.WIN and self.penalty_result == 0

    @property
    def display_result(self) -> str:
        if self.penalty_result == 0:
            return self.result.value
        return "win (pen)" if self.penalty_result > 0 else "loss (pen)"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive [start, end] interval used by windowed queries."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"window end {self.end} is before start {self.start}")

    @classmethod
    def from_dates(cls, start: date, end: date) -> TimeWindow:
        """Whole-day window; the end date is included up to its last microsecond."""
        start_dt = start if isinstance(start, datetime) else datetime.combine(start, time.min)
        end_dt = end if isinstance(end, datetime) else datetime.combine(end, time.max)
        return cls(start=start_dt, end=end_dt)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class Page:
    """One page of a paginated read."""

    items: tuple
    total: int
    page: int
    page_size: int

    @classmethod
    def empty(cls, page: int, page_size: int) -> Page:
        return cls(items=(), total=0, page=page, page_size=page_size)


def page_offset(page: int, page_size: int) -> int:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    return (page - 1) * page_size


__all__ = [
    "Entity",
    "HistoryEntry",
    "MatchKind",
    "MatchOutcomeInput",
    "MatchResult",
    "Page",
    "PairIdentity",
    "RatingRecord",
    "RatingType",
    "Side",
    "TimeWindow",
    "check_entity_type",
    "entity_from_players",
    "entity_key",
    "entity_players",
    "entity_sort_key",
    "page_offset",
]
