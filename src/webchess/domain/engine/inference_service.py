from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from webchess.domain.engine.oracle import Move, PositionOracle


@dataclass(frozen=True)
class MoveSuggestion:
    """Engine result describing the chosen move and how it was reached."""

    move: Move
    score: float
    difficulty: str
    randomized: bool = False
    nodes: int = 0
    rationale: Sequence[str] | None = None


class InferenceService(Protocol):
    """Contract for picking the automated side's move."""

    @property
    def engine_name(self) -> str:
        """Return a short identifier for the move source."""

    def select_move(
        self,
        oracle: PositionOracle,
        *,
        difficulty: str = "medium",
    ) -> MoveSuggestion | None:
        """Pick a legal move for the side to move, or None if there is none."""


__all__ = ["InferenceService", "MoveSuggestion"]
