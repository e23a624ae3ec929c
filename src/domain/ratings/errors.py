"""Exception hierarchy for the rating engine."""

from __future__ import annotations


class RatingError(Exception):
    """Base class for rating engine failures."""


class NotFoundError(RatingError):
    """A requested match or entity does not exist."""


class MatchNotFoundError(NotFoundError):
    def __init__(self, match_id: int) -> None:
        super().__init__(f"match_id={match_id} not found")
        self.match_id = match_id


class InvalidRatingTypeError(RatingError, ValueError):
    """Unknown rating type, or a rating type applied to the wrong kind of entity."""


class InvalidMatchShapeError(RatingError, ValueError):
    """Team sizes, duplicate players or penalty fields do not fit the match kind."""


class TransientStoreError(RatingError):
    """The underlying persistence layer failed; the operation may be retried."""


class MatchProcessingError(RatingError):
    """Some per-entity updates of one match failed; the others were committed."""

    def __init__(self, match_id: int, failures: list[tuple[str, Exception]]) -> None:
        keys = ", ".join(key for key, _ in failures)
        super().__init__(f"match_id={match_id} failed to update {len(failures)} rating(s): {keys}")
        self.match_id = match_id
        self.failures = failures


__all__ = [
    "InvalidMatchShapeError",
    "InvalidRatingTypeError",
    "MatchNotFoundError",
    "MatchProcessingError",
    "NotFoundError",
    "RatingError",
    "TransientStoreError",
]
