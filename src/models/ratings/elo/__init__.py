"""Elo ORM models."""

from models.ratings.elo.history import EloHistory
from models.ratings.elo.rating import EloRating

__all__ = [
    "EloHistory",
    "EloRating",
]
