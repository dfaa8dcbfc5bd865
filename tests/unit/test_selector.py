from __future__ import annotations

import random

import chess
import pytest

from webchess.domain.engine.evaluation import CHECKMATE_SCORE
from webchess.domain.engine.oracle import ChessBoardOracle, Move, PieceKind
from webchess.domain.engine.selector import (
    DIFFICULTY_PRESETS,
    TIE_BREAK_WEIGHT,
    MoveSelector,
    SearchInferenceService,
    heuristic_bonus,
    per_selection_rng,
    resolve_difficulty,
    select_move,
)

FREE_QUEEN = "4k3/8/8/3q4/8/8/8/3RK3 w - - 0 1"
BACK_RANK = "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"


class ScriptedRandom(random.Random):
    """Random source with a fixed roll and a fixed pick index."""

    def __init__(self, roll: float, pick: int = 0) -> None:
        super().__init__(0)
        self._roll = roll
        self._pick = pick

    def random(self) -> float:
        return self._roll

    def randrange(self, start, stop=None, step=1):
        limit = start if stop is None else stop
        return min(self._pick, limit - 1)


def _never_random() -> ScriptedRandom:
    return ScriptedRandom(roll=0.999)


def test_start_position_every_first_move_scores_zero() -> None:
    oracle = ChessBoardOracle()
    ranked = MoveSelector(rng=_never_random()).rank(oracle, "easy")

    assert len(ranked) == 20
    assert {item.search_score for item in ranked} == {0.0}

    move = select_move(oracle, difficulty="easy", rng=random.Random(3))
    assert move is not None
    assert chess.Move.from_uci(move.uci()) in chess.Board().legal_moves


@pytest.mark.parametrize("difficulty", sorted(DIFFICULTY_PRESETS))
def test_free_queen_is_captured_at_every_difficulty(difficulty: str) -> None:
    oracle = ChessBoardOracle.from_fen(FREE_QUEEN)
    move = select_move(oracle, difficulty=difficulty, rng=_never_random())
    assert move is not None
    assert move.uci() == "d1d5"
    assert move.captured is PieceKind.queen


def test_mate_in_one_found_at_every_difficulty_with_non_decreasing_score() -> None:
    scores = []
    for difficulty in ("easy", "medium", "hard"):
        selector = MoveSelector(rng=_never_random())
        suggestion = selector.select(ChessBoardOracle.from_fen(BACK_RANK), difficulty=difficulty)
        assert suggestion is not None
        assert suggestion.move.notation == "Ra8#"
        assert suggestion.randomized is False
        scores.append(suggestion.score)

    assert scores[0] >= CHECKMATE_SCORE
    assert scores == sorted(scores)


def test_seeded_selection_is_deterministic() -> None:
    def run(seed: int) -> list[str]:
        selector = MoveSelector(rng=random.Random(seed))
        picks = []
        for _ in range(6):
            suggestion = selector.select(ChessBoardOracle(), difficulty="easy")
            picks.append(suggestion.move.uci())
        return picks

    assert run(42) == run(42)


def test_randomness_picks_from_the_top_four() -> None:
    oracle = ChessBoardOracle()
    ranked = MoveSelector(rng=_never_random()).rank(oracle, "easy")

    selector = MoveSelector(rng=ScriptedRandom(roll=0.0, pick=7))
    suggestion = selector.select(oracle, difficulty="easy")
    assert suggestion.randomized is True
    assert suggestion.move == ranked[3].move


def test_ranking_is_stable_and_prefers_tie_breaks() -> None:
    ranked = MoveSelector(rng=_never_random()).rank(ChessBoardOracle(), "easy")
    # Knight moves carry the non-pawn bonus and lead an otherwise level field.
    assert {item.move.piece for item in ranked[:4]} == {PieceKind.knight}
    assert [item.move.uci() for item in ranked[:4]] == ["g1h3", "g1f3", "b1c3", "b1a3"]


def test_unknown_difficulty_falls_back_to_medium() -> None:
    assert resolve_difficulty("grandmaster") == "medium"
    assert resolve_difficulty(None) == "medium"
    assert resolve_difficulty("hard") == "hard"

    suggestion = MoveSelector(rng=_never_random()).select(ChessBoardOracle.from_fen(FREE_QUEEN), difficulty="nope")
    assert suggestion.difficulty == "medium"


def test_selection_leaves_caller_position_untouched() -> None:
    oracle = ChessBoardOracle.from_fen(FREE_QUEEN)
    before = oracle.fen()
    select_move(oracle, difficulty="hard", rng=random.Random(1))
    assert oracle.fen() == before
    assert oracle.board.move_stack == []


def test_no_legal_moves_returns_none() -> None:
    stalemate = ChessBoardOracle.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert select_move(stalemate) is None
    assert SearchInferenceService().select_move(stalemate) is None


def test_heuristic_bonus_components() -> None:
    quiet_pawn = Move(from_square="e2", to_square="e4", piece=PieceKind.pawn, notation="e4")
    assert heuristic_bonus(quiet_pawn) == 0.0

    capture_check = Move(
        from_square="d1",
        to_square="d5",
        piece=PieceKind.rook,
        captured=PieceKind.queen,
        notation="Rxd5+",
    )
    assert heuristic_bonus(capture_check) == 13.5

    mate = Move(from_square="a1", to_square="a8", piece=PieceKind.rook, notation="Ra8#")
    assert heuristic_bonus(mate) == 103.5


def test_tie_break_never_outweighs_a_pawn() -> None:
    everything = Move(
        from_square="a1",
        to_square="a8",
        piece=PieceKind.rook,
        captured=PieceKind.rook,
        notation="Rxa8#",
    )
    assert heuristic_bonus(everything) * TIE_BREAK_WEIGHT < 100


def test_inference_service_reports_nodes() -> None:
    service = SearchInferenceService(MoveSelector(rng=_never_random()))
    suggestion = service.select_move(ChessBoardOracle.from_fen(FREE_QUEEN), difficulty="medium")
    assert service.engine_name == "minimax-alphabeta"
    assert suggestion.nodes > 0
    assert suggestion.rationale and suggestion.rationale[0].startswith("Rxd5")


def test_service_builds_a_generator_per_selection() -> None:
    seen = []

    def factory(oracle, difficulty):
        rng = random.Random(0)
        seen.append((oracle.fen(), difficulty, rng))
        return rng

    service = SearchInferenceService(rng_factory=factory)
    service.select_move(ChessBoardOracle(), difficulty="easy")
    service.select_move(ChessBoardOracle(), difficulty="nonsense")

    assert [difficulty for _, difficulty, _ in seen] == ["easy", "medium"]
    assert seen[0][2] is not seen[1][2]


def test_seeded_generators_are_reproducible_per_position() -> None:
    factory = per_selection_rng(42)
    start = ChessBoardOracle()
    first = factory(start, "easy")
    second = factory(start, "easy")
    assert first is not second
    assert [first.random() for _ in range(3)] == [second.random() for _ in range(3)]

    service = SearchInferenceService(rng_factory=per_selection_rng(42))
    picks = {service.select_move(ChessBoardOracle(), difficulty="easy").move.uci() for _ in range(5)}
    assert len(picks) == 1
