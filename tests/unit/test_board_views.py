from __future__ import annotations

from types import SimpleNamespace

from webchess.domain.chess.board_views import (
    captured_pieces,
    checked_king_square,
    last_move,
    legal_moves_by_origin,
    move_table,
    piece_glyph,
    status_text,
)
from webchess.domain.engine.oracle import ChessBoardOracle, Color, Move, Piece, PieceKind


def _play(*ucis: str) -> ChessBoardOracle:
    oracle = ChessBoardOracle()
    for uci in ucis:
        oracle.apply_move(Move.from_uci(uci))
    return oracle


def test_status_text_variants() -> None:
    assert status_text(ChessBoardOracle()) == "White to move"
    assert status_text(_play("e2e4", "f7f6", "d1h5")) == "Black to move — Check"
    assert status_text(_play("f2f3", "e7e5", "g2g4", "d8h4")) == "Checkmate — Black wins"
    assert status_text(ChessBoardOracle.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")) == "Stalemate — draw"
    assert (
        status_text(ChessBoardOracle.from_fen("8/8/8/4k3/8/8/8/4K3 w - - 0 1"))
        == "Insufficient material — draw"
    )


def test_move_table_pairs_plies() -> None:
    assert move_table([]) == []
    assert move_table(["e4", "e5", "Nf3"]) == [
        {"moveNumber": 1, "white": "e4", "black": "e5"},
        {"moveNumber": 2, "white": "Nf3", "black": ""},
    ]


def test_captured_pieces_tracks_missing_material() -> None:
    oracle = _play("e2e4", "d7d5", "e4d5", "d8d5")
    captured = captured_pieces(oracle)
    assert captured[Color.white] == [PieceKind.pawn]
    assert captured[Color.black] == [PieceKind.pawn]
    assert captured_pieces(ChessBoardOracle()) == {Color.white: [], Color.black: []}


def test_checked_king_square() -> None:
    assert checked_king_square(ChessBoardOracle()) is None
    assert checked_king_square(_play("f2f3", "e7e5", "g2g4", "d8h4")) == "e1"


def test_legal_moves_grouped_by_origin() -> None:
    grouped = legal_moves_by_origin(ChessBoardOracle())
    assert len(grouped) == 10
    assert {move.to_square for move in grouped["g1"]} == {"f3", "h3"}


def test_last_move_and_glyphs() -> None:
    assert last_move(SimpleNamespace(moves=[])) is None
    session = SimpleNamespace(moves=[SimpleNamespace(uci="e7e8q")])
    assert last_move(session) == {"from": "e7", "to": "e8"}

    assert piece_glyph(None) == ""
    assert piece_glyph(Piece(kind=PieceKind.king, color=Color.white)) == "♔"
    assert piece_glyph(Piece(kind=PieceKind.knight, color=Color.black)) == "♞"
