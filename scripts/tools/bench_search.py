#!/usr/bin/env python
from __future__ import annotations

import argparse
import math
import random
import time

from webchess.domain.engine.oracle import ChessBoardOracle, Move, PositionOracle
from webchess.domain.engine.search import SearchStats, alphabeta


def _shuffled(seed: int):
    rng = random.Random(seed)

    def order(_: PositionOracle, moves: list[Move]) -> list[Move]:
        shuffled = list(moves)
        rng.shuffle(shuffled)
        return shuffled

    return order


def _captures_first(oracle: PositionOracle, moves: list[Move]) -> list[Move]:
    return sorted(moves, key=lambda move: move.captured is None)


def benchmark(*, fen: str | None, depth: int, ordering: str, seed: int) -> tuple[float, SearchStats, float]:
    oracle = ChessBoardOracle.from_fen(fen)
    order = _captures_first if ordering == "captures" else _shuffled(seed) if ordering == "shuffled" else None
    stats = SearchStats()

    t0 = time.time()
    score = alphabeta(oracle, depth, -math.inf, math.inf, oracle.side_to_move(), order=order, stats=stats)
    elapsed = max(time.time() - t0, 1e-9)
    return score, stats, elapsed


def main() -> None:
    parser = argparse.ArgumentParser(description="Measure alpha-beta node counts and throughput per depth.")
    parser.add_argument("--fen", default=None, help="Position to search (defaults to the start position).")
    parser.add_argument("--max-depth", type=int, default=3)
    parser.add_argument("--ordering", choices=("natural", "captures", "shuffled"), default="natural")
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    for depth in range(1, args.max_depth + 1):
        score, stats, elapsed = benchmark(fen=args.fen, depth=depth, ordering=args.ordering, seed=args.seed)
        print(
            f"depth={depth} score={score:.1f} nodes={stats.nodes} cutoffs={stats.cutoffs} "
            f"nodes/s={stats.nodes / elapsed:.0f}"
        )


if __name__ == "__main__":
    main()
