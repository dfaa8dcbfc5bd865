"""Move-selection engine: oracle contract, scoring, search and difficulty presets."""

from .evaluation import (
    CHECKMATE_SCORE,
    MAX_MATERIAL_SWING,
    PIECE_VALUES,
    material_score,
    terminal_score,
)
from .inference_service import InferenceService, MoveSuggestion
from .oracle import ChessBoardOracle, Color, Move, Piece, PieceKind, PositionOracle
from .search import SearchStats, alphabeta
from .selector import (
    DEFAULT_DIFFICULTY,
    DIFFICULTY_PRESETS,
    DifficultyPreset,
    MoveSelector,
    RankedMove,
    SearchInferenceService,
    resolve_difficulty,
    select_move,
)

__all__ = [
    "CHECKMATE_SCORE",
    "ChessBoardOracle",
    "Color",
    "DEFAULT_DIFFICULTY",
    "DIFFICULTY_PRESETS",
    "DifficultyPreset",
    "InferenceService",
    "MAX_MATERIAL_SWING",
    "Move",
    "MoveSelector",
    "MoveSuggestion",
    "PIECE_VALUES",
    "Piece",
    "PieceKind",
    "PositionOracle",
    "RankedMove",
    "SearchInferenceService",
    "SearchStats",
    "alphabeta",
    "material_score",
    "resolve_difficulty",
    "select_move",
    "terminal_score",
]
