"""Read-only projections of a position used by the HTTP and CLI surfaces."""

from __future__ import annotations

from collections import Counter
from typing import Dict, List

from webchess.domain.engine.oracle import Color, Move, Piece, PieceKind, PositionOracle

FILES = "abcdefgh"
SQUARES = [f"{file}{rank}" for rank in range(1, 9) for file in FILES]

STARTING_COUNTS: Dict[PieceKind, int] = {
    PieceKind.pawn: 8,
    PieceKind.knight: 2,
    PieceKind.bishop: 2,
    PieceKind.rook: 2,
    PieceKind.queen: 1,
    PieceKind.king: 1,
}
CAPTURE_ORDER = (
    PieceKind.queen,
    PieceKind.rook,
    PieceKind.bishop,
    PieceKind.knight,
    PieceKind.pawn,
    PieceKind.king,
)

GLYPHS: Dict[Color, Dict[PieceKind, str]] = {
    Color.white: {
        PieceKind.king: "♔",
        PieceKind.queen: "♕",
        PieceKind.rook: "♖",
        PieceKind.bishop: "♗",
        PieceKind.knight: "♘",
        PieceKind.pawn: "♙",
    },
    Color.black: {
        PieceKind.king: "♚",
        PieceKind.queen: "♛",
        PieceKind.rook: "♜",
        PieceKind.bishop: "♝",
        PieceKind.knight: "♞",
        PieceKind.pawn: "♟",
    },
}


def piece_glyph(piece: Piece | None) -> str:
    if piece is None:
        return ""
    return GLYPHS[piece.color][piece.kind]


def _side_name(color: Color) -> str:
    return color.value.capitalize()


def status_text(oracle: PositionOracle) -> str:
    to_move = oracle.side_to_move()
    if oracle.is_checkmate():
        return f"Checkmate — {_side_name(to_move.opponent)} wins"
    if oracle.is_stalemate():
        return "Stalemate — draw"
    if oracle.is_threefold_repetition():
        return "Threefold repetition — draw"
    if oracle.is_insufficient_material():
        return "Insufficient material — draw"
    if oracle.is_draw():
        return "Draw"
    if oracle.is_in_check():
        return f"{_side_name(to_move)} to move — Check"
    return f"{_side_name(to_move)} to move"


def move_table(history: List[str]) -> List[dict]:
    """Pair SAN history into numbered rows of white and black moves."""
    rows: List[dict] = []
    for index in range(0, len(history), 2):
        rows.append(
            {
                "moveNumber": index // 2 + 1,
                "white": history[index],
                "black": history[index + 1] if index + 1 < len(history) else "",
            }
        )
    return rows


def captured_pieces(oracle: PositionOracle) -> Dict[Color, List[PieceKind]]:
    """Pieces missing from each side compared with the standard starting set."""
    counts = Counter((piece.color, piece.kind) for piece in oracle.pieces())
    captured: Dict[Color, List[PieceKind]] = {Color.white: [], Color.black: []}
    for color in (Color.white, Color.black):
        for kind in CAPTURE_ORDER:
            missing = STARTING_COUNTS[kind] - counts[(color, kind)]
            captured[color].extend([kind] * max(0, missing))
    return captured


def legal_moves_by_origin(oracle: PositionOracle) -> Dict[str, List[Move]]:
    grouped: Dict[str, List[Move]] = {}
    for move in oracle.legal_moves():
        grouped.setdefault(move.from_square, []).append(move)
    return grouped


def last_move(session) -> dict | None:
    """Origin and target of the most recent ply of a session, for highlighting."""
    if not session.moves:
        return None
    uci = session.moves[-1].uci
    return {"from": uci[:2], "to": uci[2:4]}


def checked_king_square(oracle: PositionOracle) -> str | None:
    if not oracle.is_in_check():
        return None
    king = Piece(kind=PieceKind.king, color=oracle.side_to_move())
    for square in SQUARES:
        if oracle.piece_at(square) == king:
            return square
    return None


__all__ = [
    "SQUARES",
    "captured_pieces",
    "checked_king_square",
    "last_move",
    "legal_moves_by_origin",
    "move_table",
    "piece_glyph",
    "status_text",
]
