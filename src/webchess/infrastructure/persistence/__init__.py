"""Persistence adapters for game sessions."""

from .game_session_repository import GameSessionRecord, SqlAlchemyGameSessionRepository
from .memory_repository import InMemoryGameSessionRepository

__all__ = [
    "GameSessionRecord",
    "InMemoryGameSessionRepository",
    "SqlAlchemyGameSessionRepository",
]
