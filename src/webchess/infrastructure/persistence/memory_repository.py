from __future__ import annotations

import copy
import threading
from typing import Dict
from uuid import UUID

from webchess.domain.chess import GameSession, GameSessionRepository, SessionNotFoundError


class InMemoryGameSessionRepository(GameSessionRepository):
    """Process-local repository; entities are copied in and out like a real store."""

    def __init__(self) -> None:
        self._sessions: Dict[UUID, GameSession] = {}
        self._lock = threading.Lock()

    def create(self, session: GameSession) -> GameSession:
        with self._lock:
            self._sessions[session.id] = copy.deepcopy(session)
            return copy.deepcopy(session)

    def get(self, session_id: UUID) -> GameSession | None:
        with self._lock:
            stored = self._sessions.get(session_id)
            return copy.deepcopy(stored) if stored else None

    def save(self, session: GameSession) -> GameSession:
        with self._lock:
            if session.id not in self._sessions:
                raise SessionNotFoundError(f"Session {session.id} not found.")
            self._sessions[session.id] = copy.deepcopy(session)
            return copy.deepcopy(session)


__all__ = ["InMemoryGameSessionRepository"]
