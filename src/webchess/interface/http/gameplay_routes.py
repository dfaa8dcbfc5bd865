from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator
from uuid import UUID, uuid4

from flask import Blueprint, current_app, jsonify, request

from webchess.domain.chess import (
    GameMode,
    GameSession,
    InvalidPositionError,
    MoveAttempt,
    MoveResult,
    SessionManager,
    SessionNotFoundError,
)
from webchess.domain.chess.board_views import (
    captured_pieces,
    checked_king_square,
    last_move,
    legal_moves_by_origin,
    move_table,
    status_text,
)
from webchess.domain.engine.oracle import Color, Move, PieceKind
from webchess.domain.engine.selector import DIFFICULTY_PRESETS
from webchess.infrastructure.persistence.game_session_repository import (
    SqlAlchemyGameSessionRepository,
)
from webchess.interface.telemetry.logging import bind_trace, get_logger

gameplay_bp = Blueprint("gameplay", __name__)
logger = get_logger("webchess.api.sessions")


@contextmanager
def _session_manager() -> Iterator[SessionManager]:
    factory = current_app.config["SESSION_FACTORY"]
    session = factory()
    try:
        repository = SqlAlchemyGameSessionRepository(session)
        manager = SessionManager(
            repository,
            current_app.extensions["inference_service"],
            locks=current_app.extensions["session_locks"],
        )
        yield manager
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _serialize_move(move: Move) -> dict[str, Any]:
    return {
        "from": move.from_square,
        "to": move.to_square,
        "promotion": move.promotion.value if move.promotion else None,
        "uci": move.uci(),
    }


def _serialize_session(
    session: GameSession,
    manager: SessionManager,
    trace_id: str | None = None,
) -> dict[str, Any]:
    position = manager.position(session)
    captured = captured_pieces(position)
    pending = session.pending_promotion
    return {
        "id": str(session.id),
        "status": session.status.value,
        "statusText": status_text(position),
        "mode": session.mode.value,
        "aiColor": session.ai_color.value,
        "difficulty": session.difficulty,
        "currentFen": session.current_fen,
        "turn": position.side_to_move().value,
        "checkSquare": checked_king_square(position),
        "moves": [
            {
                "san": move.san,
                "uci": move.uci,
                "actor": move.actor.value,
                "timestamp": move.timestamp.isoformat(),
                "evaluation": move.evaluation,
                "rationale": move.rationale,
            }
            for move in session.moves
        ],
        "moveTable": move_table([move.san for move in session.moves]),
        "captured": {color.value: [kind.value for kind in kinds] for color, kinds in captured.items()},
        "lastMove": last_move(session),
        "legalMoves": {
            origin: sorted({move.to_square for move in moves})
            for origin, moves in legal_moves_by_origin(position).items()
        },
        "pendingPromotion": {"from": pending.from_square, "to": pending.to_square} if pending else None,
        "undoCount": session.undo_count,
        "generation": session.generation,
        "evaluation": session.evaluation,
        "startedAt": session.started_at.isoformat(),
        "updatedAt": session.updated_at.isoformat(),
        "endedAt": session.ended_at.isoformat() if session.ended_at else None,
        "traceId": trace_id,
    }


def _domain_error(code: str, message: str, status: int = 400, detail: Any | None = None):
    payload: dict[str, Any] = {"code": code, "message": message}
    if detail is not None:
        payload["detail"] = detail
    return jsonify(payload), status


def _trace_id() -> str:
    return request.headers.get("X-Trace-Id") or uuid4().hex


def _parse_session_id(session_id: str) -> UUID | None:
    try:
        return UUID(session_id)
    except ValueError:
        return None


def _attempt_response(attempt: MoveAttempt, manager: SessionManager, trace_id: str, log):
    if attempt.result is MoveResult.rejected:
        log.warning("move_rejected", reason=attempt.reason)
        return _domain_error(
            attempt.reason or "illegal_move",
            "Move was not applied.",
            status=409,
            detail=_serialize_session(attempt.session, manager, trace_id=trace_id),
        )
    status = 202 if attempt.result is MoveResult.pending_promotion else 200
    log.info("move_attempt", result=attempt.result.value, total_moves=len(attempt.session.moves))
    return jsonify(_serialize_session(attempt.session, manager, trace_id=trace_id)), status


@gameplay_bp.post("")
def create_session():
    payload = request.get_json(silent=True) or {}
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id)

    try:
        mode = GameMode(payload.get("mode", "ai"))
    except ValueError:
        return _domain_error("invalid_mode", "mode must be 'ai' or 'human'.")

    try:
        ai_color = Color(payload.get("aiColor", "black"))
    except ValueError:
        return _domain_error("invalid_color", "aiColor must be 'white' or 'black'.")

    difficulty = payload.get("difficulty") or current_app.config.get("DEFAULT_DIFFICULTY")

    try:
        with _session_manager() as manager:
            session = manager.create_session(
                mode=mode,
                ai_color=ai_color,
                difficulty=difficulty,
                initial_fen=payload.get("fen"),
            )
            body = _serialize_session(session, manager, trace_id=trace_id)
    except InvalidPositionError as exc:
        log.warning("invalid_position", detail=str(exc))
        return _domain_error("invalid_position", str(exc))

    log.info(
        "session_created",
        session_id=str(session.id),
        mode=mode.value,
        ai_color=ai_color.value,
        difficulty=session.difficulty,
    )
    return jsonify(body), 201


@gameplay_bp.get("/<session_id>")
def get_session(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.get_session(session_uuid)
            body = _serialize_session(session, manager, trace_id=trace_id)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    return jsonify(body), 200


@gameplay_bp.patch("/<session_id>")
def update_settings(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        mode = GameMode(payload["mode"]) if "mode" in payload else None
    except ValueError:
        return _domain_error("invalid_mode", "mode must be 'ai' or 'human'.")

    try:
        ai_color = Color(payload["aiColor"]) if "aiColor" in payload else None
    except ValueError:
        return _domain_error("invalid_color", "aiColor must be 'white' or 'black'.")

    difficulty = payload.get("difficulty")
    known = isinstance(difficulty, str) and difficulty in DIFFICULTY_PRESETS
    if difficulty is not None and not known:
        return _domain_error(
            "invalid_difficulty",
            f"difficulty must be one of {', '.join(DIFFICULTY_PRESETS)}.",
        )

    try:
        with _session_manager() as manager:
            session = manager.update_settings(
                session_uuid,
                mode=mode,
                ai_color=ai_color,
                difficulty=difficulty,
            )
            body = _serialize_session(session, manager, trace_id=trace_id)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    log.info("settings_updated", mode=session.mode.value, ai_color=session.ai_color.value)
    return jsonify(body), 200


@gameplay_bp.get("/<session_id>/legal-moves")
def list_legal_moves(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    origin = request.args.get("from") or None
    try:
        with _session_manager() as manager:
            moves = manager.legal_moves(session_uuid, origin)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    return jsonify({"from": origin, "moves": [_serialize_move(move) for move in moves]}), 200


@gameplay_bp.post("/<session_id>/moves")
def submit_move(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        if isinstance(payload.get("uci"), str):
            move = Move.from_uci(payload["uci"])
        else:
            origin, target = payload.get("from"), payload.get("to")
            if not isinstance(origin, str) or not isinstance(target, str):
                return _domain_error("invalid_move", "Provide 'uci' or both 'from' and 'to'.")
            promotion = PieceKind.parse(payload["promotion"]) if payload.get("promotion") else None
            move = Move(from_square=origin, to_square=target, promotion=promotion)
    except ValueError as exc:
        return _domain_error("invalid_move", str(exc))

    try:
        with _session_manager() as manager:
            attempt = manager.submit_move(session_uuid, move.from_square, move.to_square, move.promotion)
            return _attempt_response(attempt, manager, trace_id, log)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)


@gameplay_bp.post("/<session_id>/promotion")
def choose_promotion(session_id: str):
    payload = request.get_json(silent=True) or {}
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        piece = PieceKind.parse(payload.get("piece", ""))
    except ValueError as exc:
        return _domain_error("invalid_promotion", str(exc))

    try:
        with _session_manager() as manager:
            attempt = manager.choose_promotion(session_uuid, piece)
            return _attempt_response(attempt, manager, trace_id, log)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)


@gameplay_bp.post("/<session_id>/undo")
def undo_move(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.undo(session_uuid)
            body = _serialize_session(session, manager, trace_id=trace_id)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    log.info("undo_applied", remaining_moves=len(session.moves))
    return jsonify(body), 200


@gameplay_bp.post("/<session_id>/reset")
def reset_session(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.reset(session_uuid)
            body = _serialize_session(session, manager, trace_id=trace_id)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    log.info("session_reset", total_moves=len(session.moves))
    return jsonify(body), 200


@gameplay_bp.post("/<session_id>/ai-move")
def play_ai_move(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        with _session_manager() as manager:
            session = manager.play_ai_turn(session_uuid)
            if session is None:
                log.info("ai_move_unavailable")
                return _domain_error("not_ai_turn", "The automated side is not due to move.", status=409)
            body = _serialize_session(session, manager, trace_id=trace_id)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    log.info("ai_move_applied", total_moves=len(session.moves))
    return jsonify(body), 200


@gameplay_bp.get("/<session_id>/pgn")
def export_pgn(session_id: str):
    trace_id = _trace_id()
    log = bind_trace(logger, trace_id, session_id=session_id)
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return _domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)

    try:
        with _session_manager() as manager:
            record = manager.export_record(session_uuid)
    except SessionNotFoundError:
        log.warning("session_not_found")
        return _domain_error("session_not_found", "Session not found.", status=404)

    return jsonify({"pgn": record, "traceId": trace_id}), 200


__all__ = ["gameplay_bp"]
