from __future__ import annotations

from webchess.domain.engine.evaluation import (
    CHECKMATE_SCORE,
    MAX_MATERIAL_SWING,
    material_score,
    perspective_material,
    terminal_score,
)
from webchess.domain.engine.oracle import ChessBoardOracle, Color


def test_material_is_balanced_at_start() -> None:
    oracle = ChessBoardOracle()
    assert material_score(oracle) == 0.0
    assert perspective_material(oracle, Color.black) == 0.0


def test_material_is_signed_by_color() -> None:
    oracle = ChessBoardOracle.from_fen("rnb1kbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1")
    assert material_score(oracle) == 900.0
    assert perspective_material(oracle, Color.white) == 900.0
    assert perspective_material(oracle, Color.black) == -900.0


def test_checkmate_scores_by_perspective() -> None:
    # White is mated.
    oracle = ChessBoardOracle.from_fen("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
    assert terminal_score(oracle, Color.white) == -CHECKMATE_SCORE
    assert terminal_score(oracle, Color.black) == CHECKMATE_SCORE


def test_draws_score_zero() -> None:
    stalemate = ChessBoardOracle.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert terminal_score(stalemate, Color.white) == 0.0
    assert terminal_score(stalemate, Color.black) == 0.0

    bare = ChessBoardOracle.from_fen("8/8/8/4k3/8/8/8/4K3 w - - 0 1")
    assert terminal_score(bare, Color.white) == 0.0


def test_ongoing_game_has_no_terminal_score() -> None:
    assert terminal_score(ChessBoardOracle(), Color.white) is None


def test_checkmate_dominates_any_material_swing() -> None:
    assert CHECKMATE_SCORE > MAX_MATERIAL_SWING

    # Nine queens plus every minor and rook against a bare king.
    heavy = ChessBoardOracle.from_fen("QQQQ1k2/QQQQQ3/8/8/8/8/8/RRBBNNK1 b - - 0 1")
    assert abs(perspective_material(heavy, Color.white)) <= MAX_MATERIAL_SWING

    fools_mate = ChessBoardOracle.from_fen("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
    assert abs(terminal_score(fools_mate, Color.white)) > abs(perspective_material(heavy, Color.white))
