from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict
from uuid import UUID

import structlog

from .session_manager import AiTurnTicket, GameSession, SessionManager

logger = structlog.get_logger(__name__)


class AiMoveScheduler:
    """Run automated turns in the background after a short "thinking" delay.

    At most one selection is in flight per session. A result whose session
    moved on in the meantime (human move, undo, reset) is discarded by
    ``SessionManager.complete_ai_turn``, so callers only need to schedule again
    once the returned future settles.
    """

    def __init__(
        self,
        manager: SessionManager,
        *,
        delay_seconds: float = 0.45,
        max_workers: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._manager = manager
        self._delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="webchess-ai")
        self._inflight: Dict[UUID, Future] = {}
        self._lock = threading.RLock()

    def schedule(self, session_id: UUID) -> Future | None:
        with self._lock:
            existing = self._inflight.get(session_id)
            if existing is not None and not existing.done():
                return existing

            ticket = self._manager.begin_ai_turn(session_id)
            if ticket is None:
                return None

            future = self._executor.submit(self._run, ticket)
            self._inflight[session_id] = future
            future.add_done_callback(lambda done, sid=session_id: self._forget(sid, done))
            logger.debug("ai_turn_scheduled", session_id=str(session_id), generation=ticket.generation)
            return future

    def pending(self, session_id: UUID) -> bool:
        with self._lock:
            future = self._inflight.get(session_id)
            return future is not None and not future.done()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, ticket: AiTurnTicket) -> GameSession | None:
        if self._delay_seconds:
            self._sleep(self._delay_seconds)
        suggestion = self._manager.suggest(ticket)
        return self._manager.complete_ai_turn(ticket, suggestion)

    def _forget(self, session_id: UUID, future: Future) -> None:
        with self._lock:
            if self._inflight.get(session_id) is future:
                del self._inflight[session_id]
        if not future.cancelled() and future.exception() is not None:
            logger.error("ai_turn_failed", session_id=str(session_id), error=str(future.exception()))


__all__ = ["AiMoveScheduler"]
