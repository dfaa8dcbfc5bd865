from __future__ import annotations

import random
import threading

from webchess.domain.chess import AiMoveScheduler, MoveActor, SessionManager
from webchess.domain.engine.selector import MoveSelector, SearchInferenceService
from webchess.infrastructure.persistence.memory_repository import InMemoryGameSessionRepository


def _manager() -> SessionManager:
    inference = SearchInferenceService(MoveSelector(rng=random.Random(5)))
    return SessionManager(InMemoryGameSessionRepository(), inference, auto_reply=False)


def test_scheduled_turn_commits_after_delay() -> None:
    manager = _manager()
    delays: list[float] = []
    scheduler = AiMoveScheduler(manager, delay_seconds=0.25, sleep=delays.append)
    try:
        session = manager.create_session(difficulty="easy")
        assert scheduler.schedule(session.id) is None

        manager.submit_move(session.id, "e2", "e4")
        future = scheduler.schedule(session.id)
        updated = future.result(timeout=10)

        assert delays == [0.25]
        assert [record.actor for record in updated.moves] == [MoveActor.human, MoveActor.ai]
        assert not scheduler.pending(session.id)
    finally:
        scheduler.shutdown()


def test_one_selection_in_flight_and_stale_result_discarded() -> None:
    manager = _manager()
    gate = threading.Event()
    scheduler = AiMoveScheduler(manager, delay_seconds=0.01, sleep=lambda _: gate.wait(timeout=10))
    try:
        session = manager.create_session(difficulty="easy")
        manager.submit_move(session.id, "d2", "d4")

        future = scheduler.schedule(session.id)
        assert scheduler.schedule(session.id) is future
        assert scheduler.pending(session.id)

        manager.undo(session.id)
        gate.set()

        assert future.result(timeout=10) is None
        assert manager.get_session(session.id).moves == []
    finally:
        gate.set()
        scheduler.shutdown()
