"""Persistence adapters for the rating engine."""

from repositories.matches import SqlIdentityStore, SqlMatchStore, create_match_store_tables
from repositories.ratings.memory import (
    InMemoryIdentityStore,
    InMemoryMatchStore,
    InMemoryRatingDatabase,
    in_memory_unit_of_work,
)
from repositories.ratings.sql import SqlUnitOfWork, ensure_rating_schema, sql_unit_of_work

__all__ = [
    "InMemoryIdentityStore",
    "InMemoryMatchStore",
    "InMemoryRatingDatabase",
    "SqlIdentityStore",
    "SqlMatchStore",
    "SqlUnitOfWork",
    "create_match_store_tables",
    "ensure_rating_schema",
    "in_memory_unit_of_work",
    "sql_unit_of_work",
]
