from __future__ import annotations

import random
from typing import Any
from uuid import uuid4

from flask import Blueprint, current_app, jsonify, request

from webchess.domain.engine.oracle import ChessBoardOracle
from webchess.domain.engine.selector import (
    DEFAULT_DIFFICULTY,
    DIFFICULTY_PRESETS,
    MoveSelector,
    SearchInferenceService,
)
from webchess.interface.telemetry.logging import bind_trace, get_logger

engine_bp = Blueprint("engine", __name__)
logger = get_logger("webchess.api.engine")


@engine_bp.get("/difficulties")
def list_difficulties():
    """Expose the preset table so clients can build a difficulty picker."""
    presets = [
        {
            "key": key,
            "label": preset.label,
            "depth": preset.depth,
            "randomness": preset.randomness,
        }
        for key, preset in DIFFICULTY_PRESETS.items()
    ]
    default = current_app.config.get("DEFAULT_DIFFICULTY", DEFAULT_DIFFICULTY)
    return jsonify({"default": default, "presets": presets}), 200


@engine_bp.post("/select")
def select():
    """Stateless move selection for a FEN or PGN position."""
    payload: dict[str, Any] = request.get_json(silent=True) or {}
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex
    log = bind_trace(logger, trace_id)

    try:
        if payload.get("pgn"):
            oracle = ChessBoardOracle()
            oracle.import_record(str(payload["pgn"]))
        else:
            oracle = ChessBoardOracle.from_fen(payload.get("fen"))
    except ValueError as exc:
        log.warning("invalid_position", detail=str(exc))
        return jsonify({"code": "invalid_position", "message": str(exc)}), 400

    seed = payload.get("seed")
    if seed is not None and not isinstance(seed, int):
        return jsonify({"code": "invalid_seed", "message": "seed must be an integer."}), 400

    if seed is None:
        service = current_app.extensions["inference_service"]
    else:
        service = SearchInferenceService(MoveSelector(rng=random.Random(seed)))

    difficulty = payload.get("difficulty") or current_app.config.get("DEFAULT_DIFFICULTY")
    suggestion = service.select_move(oracle, difficulty=difficulty)
    if suggestion is None:
        log.info("no_legal_moves", fen=oracle.fen())
        return jsonify({"move": None, "fen": oracle.fen(), "traceId": trace_id}), 200

    log.info(
        "engine_selection",
        move=suggestion.move.uci(),
        difficulty=suggestion.difficulty,
        nodes=suggestion.nodes,
    )
    body = {
        "move": {
            "uci": suggestion.move.uci(),
            "san": suggestion.move.notation,
            "from": suggestion.move.from_square,
            "to": suggestion.move.to_square,
            "promotion": suggestion.move.promotion.value if suggestion.move.promotion else None,
        },
        "score": suggestion.score,
        "difficulty": suggestion.difficulty,
        "randomized": suggestion.randomized,
        "nodes": suggestion.nodes,
        "rationale": suggestion.rationale or [],
        "engine": service.engine_name,
        "fen": oracle.fen(),
        "traceId": trace_id,
    }
    return jsonify(body), 200


__all__ = ["engine_bp"]
