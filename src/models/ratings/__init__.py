"""Rating-system ORM models."""

from models.ratings.elo import EloHistory, EloRating

__all__ = [
    "EloHistory",
    "EloRating",
]
