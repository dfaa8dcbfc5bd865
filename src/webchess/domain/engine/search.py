from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from webchess.domain.engine.evaluation import perspective_material, terminal_score
from webchess.domain.engine.oracle import Color, Move, PositionOracle

MoveOrdering = Callable[[PositionOracle, List[Move]], List[Move]]


@dataclass
class SearchStats:
    """Counters collected while a search runs."""

    nodes: int = 0
    cutoffs: int = 0


def alphabeta(
    oracle: PositionOracle,
    depth: int,
    alpha: float,
    beta: float,
    perspective: Color,
    *,
    order: Optional[MoveOrdering] = None,
    stats: Optional[SearchStats] = None,
) -> float:
    """Depth-bounded minimax with alpha-beta pruning, scored for ``perspective``.

    The oracle is mutated through apply/undo pairs and is back in its starting
    position when this returns. Nodes where ``perspective`` is to move
    maximize; the others minimize. ``order`` may reorder the moves at every
    node without changing the returned value.
    """
    if stats is not None:
        stats.nodes += 1

    terminal = terminal_score(oracle, perspective)
    if terminal is not None:
        return terminal

    if depth <= 0:
        return perspective_material(oracle, perspective)

    moves = oracle.legal_moves()
    if not moves:
        return 0.0
    if order is not None:
        moves = order(oracle, moves)

    maximizing = oracle.side_to_move() is perspective

    if maximizing:
        best = -math.inf
        for move in moves:
            if oracle.apply_move(move) is None:
                continue
            child = alphabeta(oracle, depth - 1, alpha, beta, perspective, order=order, stats=stats)
            oracle.undo_last_move()

            best = max(best, child)
            alpha = max(alpha, best)
            if alpha >= beta:
                if stats is not None:
                    stats.cutoffs += 1
                break
        return best

    best = math.inf
    for move in moves:
        if oracle.apply_move(move) is None:
            continue
        child = alphabeta(oracle, depth - 1, alpha, beta, perspective, order=order, stats=stats)
        oracle.undo_last_move()

        best = min(best, child)
        beta = min(beta, best)
        if alpha >= beta:
            if stats is not None:
                stats.cutoffs += 1
            break
    return best


__all__ = ["MoveOrdering", "SearchStats", "alphabeta"]
