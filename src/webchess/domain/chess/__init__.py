from .ai_scheduler import AiMoveScheduler
from .session_manager import (
    AiTurnTicket,
    CorruptHistoryError,
    GameMode,
    GameSession,
    GameSessionRepository,
    InvalidPositionError,
    MoveActor,
    MoveAttempt,
    MoveRecord,
    MoveResult,
    PendingPromotion,
    SessionError,
    SessionLocks,
    SessionManager,
    SessionNotFoundError,
    SessionStatus,
)

__all__ = [
    "AiMoveScheduler",
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
