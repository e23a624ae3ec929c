"""Match rating domain modules."""

from domain.ratings.common import (
    Entity,
    HistoryEntry,
    MatchKind,
    MatchOutcomeInput,
    MatchResult,
    Page,
    PairIdentity,
    RatingRecord,
    RatingType,
    Side,
    TimeWindow,
)
from domain.ratings.errors import (
    InvalidMatchShapeError,
    InvalidRatingTypeError,
    MatchNotFoundError,
    MatchProcessingError,
    NotFoundError,
    RatingError,
    TransientStoreError,
)

__all__ = [
    "Entity",
    "HistoryEntry",
    "InvalidMatchShapeError",
    "InvalidRatingTypeError",
    "MatchKind",
    "MatchNotFoundError",
    "MatchOutcomeInput",
    "MatchProcessingError",
    "MatchResult",
    "NotFoundError",
    "Page",
    "PairIdentity",
    "RatingError",
    "RatingRecord",
    "RatingType",
    "Side",
    "TimeWindow",
    "TransientStoreError",
]
