"""Repositories package for the match engine."""

from matchengine.repositories.base import MatchRepository
from matchengine.repositories.memory import InMemoryMatchRepository
from matchengine.repositories.sql import SQLAlchemyMatchRepository

__all__ = [
    "InMemoryMatchRepository",
    "MatchRepository",
    "SQLAlchemyMatchRepository",
]
