from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, DefaultDict, List, Protocol, Tuple
from uuid import UUID, uuid4

import structlog

from webchess.domain.engine.inference_service import InferenceService, MoveSuggestion
from webchess.domain.engine.oracle import (
    ChessBoardOracle,
    Color,
    Move,
    PieceKind,
    PositionOracle,
    normalize_square,
)
from webchess.domain.engine.selector import resolve_difficulty

logger = structlog.get_logger(__name__)

OracleFactory = Callable[[str | None], PositionOracle]


class SessionStatus(str, Enum):
    in_progress = "in_progress"
    white_won = "white_won"
    black_won = "black_won"
    drawn = "drawn"


class GameMode(str, Enum):
    human = "human"
    ai = "ai"


class MoveActor(str, Enum):
    human = "human"
    ai = "ai"


class MoveResult(str, Enum):
    applied = "applied"
    pending_promotion = "pending_promotion"
    rejected = "rejected"


@dataclass
class MoveRecord:
    san: str
    uci: str
    actor: MoveActor
    timestamp: datetime
    evaluation: float | None = None
    rationale: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PendingPromotion:
    from_square: str
    to_square: str


@dataclass
class GameSession:
    id: UUID
    status: SessionStatus
    mode: GameMode
    ai_color: Color
    difficulty: str
    initial_fen: str
    current_fen: str
    moves: List[MoveRecord] = field(default_factory=list)
    pending_promotion: PendingPromotion | None = None
    generation: int = 0
    undo_count: int = 0
    evaluation: float | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime | None = None

    @property
    def ai_enabled(self) -> bool:
        return self.mode is GameMode.ai


@dataclass(frozen=True)
class MoveAttempt:
    """Outcome of a human move request; rejected attempts leave the session untouched."""

    result: MoveResult
    session: GameSession
    reason: str | None = None
    record: MoveRecord | None = None

    @property
    def applied(self) -> bool:
        return self.result is MoveResult.applied


@dataclass(frozen=True)
class AiTurnTicket:
    """Snapshot of the state an automated selection was started from."""

    session_id: UUID
    generation: int
    initial_fen: str
    history: Tuple[str, ...]
    difficulty: str


class GameSessionRepository(Protocol):
    """Persistence contract for session entities."""

    def create(self, session: GameSession) -> GameSession:
        ...

    def get(self, session_id: UUID) -> GameSession | None:
        ...

    def save(self, session: GameSession) -> GameSession:
        ...


class SessionError(RuntimeError):
    """Base class for session-related domain errors."""

    code: str = "session_error"


class SessionNotFoundError(SessionError):
    code = "session_not_found"


class InvalidPositionError(SessionError):
    code = "invalid_position"


class CorruptHistoryError(SessionError):
    code = "corrupt_history"


class SessionLocks:
    """One re-entrant lock per session id, so work on one game never waits on another."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: DefaultDict[UUID, threading.RLock] = defaultdict(threading.RLock)

    def for_session(self, session_id: UUID) -> threading.RLock:
        with self._guard:
            return self._locks[session_id]


class SessionManager:
    """Apply human moves, automated replies, undo and reset to game sessions.

    Positions are never edited in place: every change rebuilds an oracle from
    the initial FEN plus the recorded history, so the current position is
    always a replay of some prefix of that history.
    """

    def __init__(
        self,
        repository: GameSessionRepository,
        inference: InferenceService,
        *,
        oracle_factory: OracleFactory = ChessBoardOracle.from_fen,
        auto_reply: bool = True,
        locks: SessionLocks | None = None,
    ) -> None:
        self._repository = repository
        self._inference = inference
        self._oracle_factory = oracle_factory
        self._auto_reply = auto_reply
        self._locks = locks or SessionLocks()

    def create_session(
        self,
        *,
        mode: GameMode = GameMode.ai,
        ai_color: Color = Color.black,
        difficulty: str | None = None,
        initial_fen: str | None = None,
    ) -> GameSession:
        try:
            oracle = self._oracle_factory(initial_fen)
        except ValueError as exc:
            raise InvalidPositionError(f"Invalid FEN: {initial_fen}") from exc

        now = datetime.now(timezone.utc)
        session = GameSession(
            id=uuid4(),
            status=SessionStatus.in_progress,
            mode=mode,
            ai_color=ai_color,
            difficulty=resolve_difficulty(difficulty),
            initial_fen=oracle.fen(),
            current_fen=oracle.fen(),
            started_at=now,
            updated_at=now,
        )
        self._sync_from_oracle(session, oracle)
        self._maybe_reply(session, oracle)
        return self._repository.create(session)

    def get_session(self, session_id: UUID) -> GameSession:
        session = self._repository.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        return session

    def position(self, session: GameSession) -> PositionOracle:
        """Rebuild the current position of ``session`` by replaying its history."""
        return self._build_oracle(session)

    def legal_moves(self, session_id: UUID, from_square: str | None = None) -> List[Move]:
        return self.position(self.get_session(session_id)).legal_moves(from_square)

    def export_record(self, session_id: UUID) -> str:
        return self.position(self.get_session(session_id)).export_record()

    def submit_move(
        self,
        session_id: UUID,
        from_square: str,
        to_square: str,
        promotion: PieceKind | None = None,
    ) -> MoveAttempt:
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            if session.pending_promotion is not None:
                return self._reject(session, "promotion_pending")
            return self._attempt_human_move(
                session,
                normalize_square(from_square),
                normalize_square(to_square),
                promotion,
            )

    def choose_promotion(self, session_id: UUID, piece: PieceKind) -> MoveAttempt:
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            pending = session.pending_promotion
            if pending is None:
                return self._reject(session, "no_pending_promotion")
            return self._attempt_human_move(session, pending.from_square, pending.to_square, piece)

    def undo(self, session_id: UUID) -> GameSession:
        """Take back one ply, or in AI mode two ply so the human is to move again."""
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            plies = 2 if session.ai_enabled else 1
            removed = min(plies, len(session.moves))
            if removed:
                del session.moves[-removed:]
                session.undo_count += 1
            if removed or session.pending_promotion is not None:
                session.generation += 1
            session.pending_promotion = None
            session.ended_at = None
            session.updated_at = datetime.now(timezone.utc)

            oracle = self._build_oracle(session)
            self._sync_from_oracle(session, oracle)
            logger.info("undo_applied", session_id=str(session.id), removed=removed, remaining=len(session.moves))
            self._maybe_reply(session, oracle)
            return self._repository.save(session)

    def reset(self, session_id: UUID) -> GameSession:
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            session.moves.clear()
            session.pending_promotion = None
            session.generation += 1
            session.evaluation = None
            session.ended_at = None
            session.updated_at = datetime.now(timezone.utc)

            oracle = self._build_oracle(session)
            self._sync_from_oracle(session, oracle)
            logger.info("session_reset", session_id=str(session.id))
            self._maybe_reply(session, oracle)
            return self._repository.save(session)

    def update_settings(
        self,
        session_id: UUID,
        *,
        mode: GameMode | None = None,
        ai_color: Color | None = None,
        difficulty: str | None = None,
    ) -> GameSession:
        """Switch mode, automated side or difficulty mid-game.

        Any change drops an outstanding promotion choice and invalidates
        in-flight automated selections; if the automated side is now to move
        it replies straight away.
        """
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            changed = session.pending_promotion is not None
            if mode is not None and mode is not session.mode:
                session.mode = mode
                changed = True
            if ai_color is not None and ai_color is not session.ai_color:
                session.ai_color = ai_color
                changed = True
            if difficulty is not None:
                resolved = resolve_difficulty(difficulty)
                if resolved != session.difficulty:
                    session.difficulty = resolved
                    changed = True
            if not changed:
                return session

            session.pending_promotion = None
            session.generation += 1
            session.updated_at = datetime.now(timezone.utc)
            logger.info(
                "settings_updated",
                session_id=str(session.id),
                mode=session.mode.value,
                ai_color=session.ai_color.value,
                difficulty=session.difficulty,
            )
            self._maybe_reply(session, self._build_oracle(session))
            return self._repository.save(session)

    def begin_ai_turn(self, session_id: UUID) -> AiTurnTicket | None:
        """Snapshot the session if the automated side is due to move."""
        with self._locks.for_session(session_id):
            session = self.get_session(session_id)
            if not self._is_ai_turn(session):
                return None
            return AiTurnTicket(
                session_id=session.id,
                generation=session.generation,
                initial_fen=session.initial_fen,
                history=tuple(record.uci for record in session.moves),
                difficulty=session.difficulty,
            )

    def suggest(self, ticket: AiTurnTicket) -> MoveSuggestion | None:
        """Run the engine on the ticket's position; touches no session state."""
        oracle = self._oracle_factory(ticket.initial_fen)
        for uci in ticket.history:
            if oracle.apply_move(Move.from_uci(uci)) is None:
                raise CorruptHistoryError(f"Recorded move {uci} is not legal.")
        return self._inference.select_move(oracle, difficulty=ticket.difficulty)

    def complete_ai_turn(
        self,
        ticket: AiTurnTicket,
        suggestion: MoveSuggestion | None,
    ) -> GameSession | None:
        """Commit an automated move unless the session changed since the ticket was issued."""
        with self._locks.for_session(ticket.session_id):
            session = self.get_session(ticket.session_id)
            log = logger.bind(session_id=str(session.id))
            if session.generation != ticket.generation or not self._is_ai_turn(session):
                log.info(
                    "ai_move_discarded",
                    ticket_generation=ticket.generation,
                    session_generation=session.generation,
                )
                return None
            if suggestion is None:
                return session

            oracle = self._build_oracle(session)
            record = self._commit(session, oracle, suggestion.move, MoveActor.ai, suggestion)
            if record is None:
                log.warning("ai_move_rejected", uci=suggestion.move.uci())
                return None
            return self._repository.save(session)

    def play_ai_turn(self, session_id: UUID) -> GameSession | None:
        ticket = self.begin_ai_turn(session_id)
        if ticket is None:
            return None
        return self.complete_ai_turn(ticket, self.suggest(ticket))

    def _attempt_human_move(
        self,
        session: GameSession,
        from_square: str,
        to_square: str,
        promotion: PieceKind | None,
    ) -> MoveAttempt:
        if session.status is not SessionStatus.in_progress:
            return self._reject(session, "game_over")
        if self._is_ai_turn(session):
            return self._reject(session, "not_your_turn")

        oracle = self._build_oracle(session)
        candidates = [move for move in oracle.legal_moves(from_square) if move.to_square == to_square]
        if not candidates:
            return self._reject(session, "illegal_move")

        if promotion is None and (len(candidates) > 1 or candidates[0].promotion is not None):
            session.pending_promotion = PendingPromotion(from_square=from_square, to_square=to_square)
            session.generation += 1
            session.updated_at = datetime.now(timezone.utc)
            logger.info("promotion_pending", session_id=str(session.id), from_square=from_square, to_square=to_square)
            return MoveAttempt(
                result=MoveResult.pending_promotion,
                session=self._repository.save(session),
            )

        chosen = next((move for move in candidates if move.promotion == promotion), None)
        if chosen is None:
            return self._reject(session, "illegal_promotion")

        record = self._commit(session, oracle, chosen, MoveActor.human)
        if record is None:
            return self._reject(session, "illegal_move")
        logger.info("move_accepted", session_id=str(session.id), uci=record.uci, total_moves=len(session.moves))

        self._maybe_reply(session, oracle)
        return MoveAttempt(
            result=MoveResult.applied,
            session=self._repository.save(session),
            record=record,
        )

    def _reject(self, session: GameSession, reason: str) -> MoveAttempt:
        logger.info("move_rejected", session_id=str(session.id), reason=reason)
        return MoveAttempt(result=MoveResult.rejected, session=session, reason=reason)

    def _maybe_reply(self, session: GameSession, oracle: PositionOracle) -> None:
        if self._auto_reply and self._is_ai_turn(session):
            self._perform_ai_move(session, oracle)

    def _perform_ai_move(self, session: GameSession, oracle: PositionOracle) -> None:
        suggestion = self._safe_select_move(oracle, session.difficulty)
        if suggestion is None:
            self._sync_from_oracle(session, oracle)
            return
        self._commit(session, oracle, suggestion.move, MoveActor.ai, suggestion)

    def _safe_select_move(self, oracle: PositionOracle, difficulty: str) -> MoveSuggestion | None:
        try:
            return self._inference.select_move(oracle.copy(), difficulty=difficulty)
        except Exception:  # pragma: no cover - engine failure fallback
            logger.exception("ai_selection_failed", engine=self._inference.engine_name)
            legal_moves = oracle.legal_moves()
            if not legal_moves:
                raise
            return MoveSuggestion(move=legal_moves[0], score=0.0, difficulty=difficulty, rationale=["fallback"])

    def _commit(
        self,
        session: GameSession,
        oracle: PositionOracle,
        move: Move,
        actor: MoveActor,
        suggestion: MoveSuggestion | None = None,
    ) -> MoveRecord | None:
        try:
            annotated = oracle.annotate(move)
        except ValueError:
            return None
        if oracle.apply_move(annotated) is None:
            return None

        now = datetime.now(timezone.utc)
        record = MoveRecord(
            san=annotated.notation or annotated.uci(),
            uci=annotated.uci(),
            actor=actor,
            timestamp=now,
            evaluation=suggestion.score if suggestion else None,
            rationale=list(suggestion.rationale or []) if suggestion else [],
        )
        session.moves.append(record)
        session.pending_promotion = None
        session.generation += 1
        if suggestion is not None:
            session.evaluation = suggestion.score
        session.updated_at = now
        self._sync_from_oracle(session, oracle)
        return record

    def _sync_from_oracle(self, session: GameSession, oracle: PositionOracle) -> None:
        session.current_fen = oracle.fen()
        if oracle.is_checkmate():
            loser = oracle.side_to_move()
            session.status = SessionStatus.black_won if loser is Color.white else SessionStatus.white_won
        elif oracle.is_draw():
            session.status = SessionStatus.drawn
        else:
            session.status = SessionStatus.in_progress
            session.ended_at = None
            return
        session.ended_at = session.ended_at or datetime.now(timezone.utc)

    def _build_oracle(self, session: GameSession) -> PositionOracle:
        oracle = self._oracle_factory(session.initial_fen)
        for record in session.moves:
            if oracle.apply_move(Move.from_uci(record.uci)) is None:
                raise CorruptHistoryError(f"Recorded move {record.uci} is not legal.")
        return oracle

    def _is_ai_turn(self, session: GameSession) -> bool:
        if not session.ai_enabled or session.status is not SessionStatus.in_progress:
            return False
        return self._side_to_move(session) is session.ai_color

    @staticmethod
    def _side_to_move(session: GameSession) -> Color:
        # FEN field 2 is the active color.
        return Color.white if session.current_fen.split()[1] == "w" else Color.black


__all__ = [
    "AiTurnTicket",
    "CorruptHistoryError",
    "GameMode",
    "GameSession",
    "GameSessionRepository",
    "InvalidPositionError",
    "MoveActor",
    "MoveAttempt",
    "MoveRecord",
    "MoveResult",
    "PendingPromotion",
    "SessionError",
    "SessionLocks",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStatus",
]
