"""Static scoring: material balance and terminal-position sentinels.

Scores are expressed in centipawns. ``material_score`` is color-agnostic
(white positive), while ``terminal_score`` and ``perspective_material`` are
relative to the color whose move is being searched.
"""

from __future__ import annotations

from typing import Mapping

from webchess.domain.engine.oracle import Color, PieceKind, PositionOracle

PIECE_VALUES: Mapping[PieceKind, int] = {
    PieceKind.pawn: 100,
    PieceKind.knight: 320,
    PieceKind.bishop: 330,
    PieceKind.rook: 500,
    PieceKind.queen: 900,
    PieceKind.king: 0,
}

# Nine queens, two rooks, two bishops and two knights against a bare king.
MAX_MATERIAL_SWING: int = (
    9 * PIECE_VALUES[PieceKind.queen]
    + 2 * PIECE_VALUES[PieceKind.rook]
    + 2 * PIECE_VALUES[PieceKind.bishop]
    + 2 * PIECE_VALUES[PieceKind.knight]
)

CHECKMATE_SCORE: float = 1_000_000.0
DRAW_SCORE: float = 0.0


def material_score(oracle: PositionOracle) -> float:
    """Sum piece values over the board, positive for white and negative for black."""
    total = 0
    for piece in oracle.pieces():
        value = PIECE_VALUES[piece.kind]
        total += value if piece.color is Color.white else -value
    return float(total)


def perspective_material(oracle: PositionOracle, perspective: Color) -> float:
    score = material_score(oracle)
    return score if perspective is Color.white else -score


def terminal_score(oracle: PositionOracle, perspective: Color) -> float | None:
    """Score a finished game for ``perspective``, or return None if play continues.

    A checkmated side is always the side to move, so the sentinel is negative
    exactly when the perspective color is the one to move.
    """
    if oracle.is_checkmate():
        mated = oracle.side_to_move()
        return -CHECKMATE_SCORE if mated is perspective else CHECKMATE_SCORE
    if (
        oracle.is_stalemate()
        or oracle.is_insufficient_material()
        or oracle.is_threefold_repetition()
        or oracle.is_draw()
    ):
        return DRAW_SCORE
    return None


__all__ = [
    "CHECKMATE_SCORE",
    "DRAW_SCORE",
    "MAX_MATERIAL_SWING",
    "PIECE_VALUES",
    "material_score",
    "perspective_material",
    "terminal_score",
]
