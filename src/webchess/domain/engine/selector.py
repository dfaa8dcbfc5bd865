from __future__ import annotations

import math
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

import structlog

from webchess.domain.engine.inference_service import InferenceService, MoveSuggestion
from webchess.domain.engine.oracle import Move, PieceKind, PositionOracle
from webchess.domain.engine.search import MoveOrdering, SearchStats, alphabeta

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DifficultyPreset:
    label: str
    depth: int
    randomness: float


DIFFICULTY_PRESETS: Mapping[str, DifficultyPreset] = MappingProxyType(
    {
        "easy": DifficultyPreset(label="Easy", depth=1, randomness=0.35),
        "medium": DifficultyPreset(label="Medium", depth=2, randomness=0.18),
        "hard": DifficultyPreset(label="Hard", depth=3, randomness=0.07),
    }
)
DEFAULT_DIFFICULTY = "medium"

# Largest raw bonus is 113.5, so the scaled tie-break never exceeds ~40cp.
TIE_BREAK_WEIGHT = 0.35
CAPTURE_BONUS = 10.0
CHECK_BONUS = 3.0
CHECKMATE_BONUS = 100.0
PIECE_MOVE_BONUS = 0.5

RANDOM_POOL_SIZE = 4


def resolve_difficulty(key: str | None) -> str:
    """Normalize a difficulty key, falling back to the default preset."""
    if key and key in DIFFICULTY_PRESETS:
        return key
    if key:
        logger.debug("difficulty_defaulted", requested=key, resolved=DEFAULT_DIFFICULTY)
    return DEFAULT_DIFFICULTY


def heuristic_bonus(move: Move) -> float:
    """Unscaled preference for captures, checks, mates and piece development."""
    bonus = 0.0
    notation = move.notation or ""
    if move.captured is not None:
        bonus += CAPTURE_BONUS
    if "+" in notation:
        bonus += CHECK_BONUS
    if "#" in notation:
        bonus += CHECKMATE_BONUS
    if move.piece is not None and move.piece is not PieceKind.pawn:
        bonus += PIECE_MOVE_BONUS
    return bonus


@dataclass(frozen=True)
class RankedMove:
    move: Move
    search_score: float
    bonus: float

    @property
    def score(self) -> float:
        return self.search_score + self.bonus


class MoveSelector:
    """Rank root moves by bounded minimax and pick one according to a difficulty preset.

    Randomness comes only from the injected ``rng`` so a seeded generator
    reproduces the same choices.
    """

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        order: Optional[MoveOrdering] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._order = order

    def rank(
        self,
        oracle: PositionOracle,
        difficulty: str | None = DEFAULT_DIFFICULTY,
        *,
        stats: Optional[SearchStats] = None,
    ) -> List[RankedMove]:
        preset = DIFFICULTY_PRESETS[resolve_difficulty(difficulty)]
        working = oracle.copy()
        perspective = working.side_to_move()

        ranked: List[RankedMove] = []
        for move in working.legal_moves():
            annotated = working.annotate(move)
            if working.apply_move(annotated) is None:
                continue
            score = alphabeta(
                working,
                preset.depth - 1,
                -math.inf,
                math.inf,
                perspective,
                order=self._order,
                stats=stats,
            )
            working.undo_last_move()
            ranked.append(
                RankedMove(
                    move=annotated,
                    search_score=score,
                    bonus=heuristic_bonus(annotated) * TIE_BREAK_WEIGHT,
                )
            )

        ranked.sort(key=lambda item: item.score, reverse=True)
        return ranked

    def choose(self, ranked: List[RankedMove], preset: DifficultyPreset) -> Tuple[RankedMove, bool]:
        """Return the top move, or with ``preset.randomness`` a random one of the top few."""
        if self._rng.random() < preset.randomness:
            pool = min(RANDOM_POOL_SIZE, len(ranked))
            return ranked[self._rng.randrange(pool)], True
        return ranked[0], False

    def select(
        self,
        oracle: PositionOracle,
        *,
        difficulty: str | None = DEFAULT_DIFFICULTY,
    ) -> MoveSuggestion | None:
        key = resolve_difficulty(difficulty)
        stats = SearchStats()
        ranked = self.rank(oracle, key, stats=stats)
        if not ranked:
            return None

        picked, randomized = self.choose(ranked, DIFFICULTY_PRESETS[key])
        rationale = [
            f"{item.move.notation or item.move.uci()} ({item.score:.1f})"
            for item in ranked[:RANDOM_POOL_SIZE]
        ]
        logger.debug(
            "move_selected",
            difficulty=key,
            move=picked.move.uci(),
            score=picked.score,
            candidates=len(ranked),
            randomized=randomized,
            nodes=stats.nodes,
        )
        return MoveSuggestion(
            move=picked.move,
            score=picked.score,
            difficulty=key,
            randomized=randomized,
            nodes=stats.nodes,
            rationale=rationale,
        )


def select_move(
    oracle: PositionOracle,
    *,
    difficulty: str | None = DEFAULT_DIFFICULTY,
    rng: random.Random | None = None,
) -> Move | None:
    """Pick a move for the side to move without touching ``oracle``."""
    suggestion = MoveSelector(rng=rng).select(oracle, difficulty=difficulty)
    return suggestion.move if suggestion else None


RngFactory = Callable[[PositionOracle, str], random.Random]


def per_selection_rng(seed: int | None = None) -> RngFactory:
    """Build a fresh generator for every selection.

    With a seed each generator is derived from the seed, difficulty and FEN,
    so a position always gets the same choice without any shared stream.
    """

    def factory(oracle: PositionOracle, difficulty: str) -> random.Random:
        if seed is None:
            return random.Random()
        return random.Random(f"{seed}:{difficulty}:{oracle.fen()}")

    return factory


class SearchInferenceService(InferenceService):
    """InferenceService over MoveSelector.

    A fixed ``selector`` is reused for every call; otherwise each selection
    gets its own selector and generator from ``rng_factory`` so concurrent
    selections share nothing.
    """

    def __init__(
        self,
        selector: MoveSelector | None = None,
        *,
        rng_factory: RngFactory | None = None,
        order: Optional[MoveOrdering] = None,
    ) -> None:
        self._selector = selector
        self._rng_factory = rng_factory or per_selection_rng()
        self._order = order

    @property
    def engine_name(self) -> str:
        return "minimax-alphabeta"

    def select_move(
        self,
        oracle: PositionOracle,
        *,
        difficulty: str = DEFAULT_DIFFICULTY,
    ) -> MoveSuggestion | None:
        selector = self._selector
        if selector is None:
            key = resolve_difficulty(difficulty)
            selector = MoveSelector(rng=self._rng_factory(oracle, key), order=self._order)
        return selector.select(oracle, difficulty=difficulty)


__all__ = [
    "DEFAULT_DIFFICULTY",
    "DIFFICULTY_PRESETS",
    "DifficultyPreset",
    "MoveSelector",
    "RankedMove",
    "SearchInferenceService",
    "TIE_BREAK_WEIGHT",
    "heuristic_bonus",
    "per_selection_rng",
    "resolve_difficulty",
    "select_move",
]
