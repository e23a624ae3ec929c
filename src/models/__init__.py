"""ORM models."""

from models.base import Base
from models.ratings import EloHistory, EloRating

__all__ = [
    "Base",
    "EloHistory",
    "EloRating",
]
