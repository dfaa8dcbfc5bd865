from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Session

from webchess.domain.chess import (
    GameMode,
    GameSession,
    GameSessionRepository,
    MoveActor,
    MoveRecord,
    PendingPromotion,
    SessionNotFoundError,
    SessionStatus,
)
from webchess.domain.engine.oracle import Color
from webchess.infrastructure.persistence.base import Base


class GameSessionRecord(Base):  # type: ignore[misc]
    __tablename__ = "game_sessions"

    id = Column(String(36), primary_key=True)
    status = Column(String(32), nullable=False)
    mode = Column(String(8), nullable=False)
    ai_color = Column(String(8), nullable=False)
    difficulty = Column(String(16), nullable=False)
    initial_fen = Column(Text, nullable=False)
    current_fen = Column(Text, nullable=False)
    moves = Column(JSON, nullable=False, default=list)
    pending_promotion = Column(JSON, nullable=True)
    generation = Column(Integer, nullable=False, default=0)
    undo_count = Column(Integer, nullable=False, default=0)
    evaluation = Column(Float, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    ended_at = Column(DateTime(timezone=True), nullable=True)


def _serialize_moves(moves: Iterable[MoveRecord]) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = []
    for move in moves:
        payload.append(
            {
                "san": move.san,
                "uci": move.uci,
                "actor": move.actor.value,
                "timestamp": move.timestamp.isoformat(),
                "evaluation": move.evaluation,
                "rationale": list(move.rationale),
            }
        )
    return payload


def _deserialize_moves(items: Optional[Iterable[dict[str, Any]]]) -> List[MoveRecord]:
    if not items:
        return []
    records: List[MoveRecord] = []
    for item in items:
        records.append(
            MoveRecord(
                san=item["san"],
                uci=item["uci"],
                actor=MoveActor(item["actor"]),
                timestamp=datetime.fromisoformat(item["timestamp"]),
                evaluation=item.get("evaluation"),
                rationale=list(item.get("rationale") or []),
            )
        )
    return records


def _serialize_pending(pending: PendingPromotion | None) -> dict[str, str] | None:
    if pending is None:
        return None
    return {"from": pending.from_square, "to": pending.to_square}


def _deserialize_pending(payload: Optional[dict[str, str]]) -> PendingPromotion | None:
    if not payload:
        return None
    return PendingPromotion(from_square=payload["from"], to_square=payload["to"])


def _as_aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back out.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyGameSessionRepository(GameSessionRepository):
    """SQLAlchemy-backed repository for chess sessions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, session_entity: GameSession) -> GameSession:
        record = GameSessionRecord(id=str(session_entity.id))
        self._apply(record, session_entity)
        self._session.add(record)
        self._session.commit()
        self._session.refresh(record)
        return self._to_entity(record)

    def get(self, session_id: UUID) -> GameSession | None:
        record = self._session.get(GameSessionRecord, str(session_id))
        return self._to_entity(record) if record else None

    def save(self, session_entity: GameSession) -> GameSession:
        record = self._session.get(GameSessionRecord, str(session_entity.id))
        if record is None:
            raise SessionNotFoundError(f"Session {session_entity.id} not found.")

        self._apply(record, session_entity)
        self._session.commit()
        self._session.refresh(record)
        return self._to_entity(record)

    @staticmethod
    def _apply(record: GameSessionRecord, session_entity: GameSession) -> None:
        record.status = session_entity.status.value
        record.mode = session_entity.mode.value
        record.ai_color = session_entity.ai_color.value
        record.difficulty = session_entity.difficulty
        record.initial_fen = session_entity.initial_fen
        record.current_fen = session_entity.current_fen
        record.moves = _serialize_moves(session_entity.moves)
        record.pending_promotion = _serialize_pending(session_entity.pending_promotion)
        record.generation = session_entity.generation
        record.undo_count = session_entity.undo_count
        record.evaluation = session_entity.evaluation
        record.started_at = session_entity.started_at
        record.updated_at = session_entity.updated_at
        record.ended_at = session_entity.ended_at

    @staticmethod
    def _to_entity(record: GameSessionRecord) -> GameSession:
        return GameSession(
            id=UUID(record.id),
            status=SessionStatus(record.status),
            mode=GameMode(record.mode),
            ai_color=Color(record.ai_color),
            difficulty=record.difficulty,
            initial_fen=record.initial_fen,
            current_fen=record.current_fen,
            moves=_deserialize_moves(record.moves),
            pending_promotion=_deserialize_pending(record.pending_promotion),
            generation=record.generation or 0,
            undo_count=record.undo_count or 0,
            evaluation=record.evaluation if record.evaluation is None else float(record.evaluation),
            started_at=_as_aware(record.started_at) or datetime.now(timezone.utc),
            updated_at=_as_aware(record.updated_at) or datetime.now(timezone.utc),
            ended_at=_as_aware(record.ended_at),
        )


__all__ = ["GameSessionRecord", "SqlAlchemyGameSessionRepository"]
