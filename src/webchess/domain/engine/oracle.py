from __future__ import annotations

import io
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator, List, Protocol

import chess
import chess.pgn


class Color(str, Enum):
    white = "white"
    black = "black"

    @property
    def opponent(self) -> "Color":
        return Color.black if self is Color.white else Color.white


class PieceKind(str, Enum):
    pawn = "p"
    knight = "n"
    bishop = "b"
    rook = "r"
    queen = "q"
    king = "k"

    @classmethod
    def parse(cls, raw: str) -> "PieceKind":
        """Accept either the one-letter symbol (``q``) or the name (``queen``)."""
        text = str(raw or "").strip().lower()
        for kind in cls:
            if text in (kind.value, kind.name):
                return kind
        raise ValueError(f"Unknown piece kind: {raw!r}")


_TO_PIECE_TYPE = {
    PieceKind.pawn: chess.PAWN,
    PieceKind.knight: chess.KNIGHT,
    PieceKind.bishop: chess.BISHOP,
    PieceKind.rook: chess.ROOK,
    PieceKind.queen: chess.QUEEN,
    PieceKind.king: chess.KING,
}
_FROM_PIECE_TYPE = {value: key for key, value in _TO_PIECE_TYPE.items()}


@dataclass(frozen=True)
class Piece:
    kind: PieceKind
    color: Color


@dataclass(frozen=True)
class Move:
    """A move as produced by an oracle; squares are opaque names such as ``e2``."""

    from_square: str
    to_square: str
    promotion: PieceKind | None = None
    captured: PieceKind | None = None
    piece: PieceKind | None = None
    notation: str | None = None

    def uci(self) -> str:
        suffix = self.promotion.value if self.promotion else ""
        return f"{self.from_square}{self.to_square}{suffix}"

    @classmethod
    def from_uci(cls, text: str) -> "Move":
        raw = (text or "").strip().lower()
        if len(raw) not in (4, 5):
            raise ValueError(f"Invalid UCI string: {text!r}")
        promotion = PieceKind.parse(raw[4]) if len(raw) == 5 else None
        return cls(from_square=raw[:2], to_square=raw[2:4], promotion=promotion)


class PositionOracle(Protocol):
    """Capability set the engine and session manager need from a rules engine."""

    def legal_moves(self, from_square: str | None = None) -> List[Move]:
        ...

    def apply_move(self, move: Move) -> Move | None:
        """Apply ``move``; return the resolved move, or None when it is rejected."""

    def undo_last_move(self) -> Move | None:
        ...

    def side_to_move(self) -> Color:
        ...

    def is_checkmate(self) -> bool:
        ...

    def is_stalemate(self) -> bool:
        ...

    def is_draw(self) -> bool:
        ...

    def is_insufficient_material(self) -> bool:
        ...

    def is_threefold_repetition(self) -> bool:
        ...

    def is_in_check(self) -> bool:
        ...

    def is_game_over(self) -> bool:
        ...

    def piece_at(self, square: str) -> Piece | None:
        ...

    def pieces(self) -> Iterable[Piece]:
        ...

    def annotate(self, move: Move) -> Move:
        """Return ``move`` with notation, mover and captured kinds filled in."""

    def export_record(self) -> str:
        ...

    def import_record(self, record: str) -> None:
        ...

    def move_history(self) -> List[str]:
        ...

    def fen(self) -> str:
        ...

    def copy(self) -> "PositionOracle":
        ...


class ChessBoardOracle(PositionOracle):
    """PositionOracle backed by a ``chess.Board`` mutated in place via push/pop."""

    def __init__(self, board: chess.Board | None = None) -> None:
        self._board = board if board is not None else chess.Board()

    @classmethod
    def from_fen(cls, fen: str | None = None) -> "ChessBoardOracle":
        """Parse ``fen``; positions that cannot arise in a legal game raise ValueError."""
        board = chess.Board(fen) if fen else chess.Board()
        _require_valid(board)
        return cls(board)

    @property
    def board(self) -> chess.Board:
        return self._board

    def legal_moves(self, from_square: str | None = None) -> List[Move]:
        if from_square is None:
            return [self._wrap(move) for move in self._board.legal_moves]
        try:
            origin = chess.parse_square(normalize_square(from_square))
        except ValueError:
            return []
        mask = chess.BB_SQUARES[origin]
        return [self._wrap(move) for move in self._board.generate_legal_moves(from_mask=mask)]

    def apply_move(self, move: Move) -> Move | None:
        try:
            native = self._native(move)
        except ValueError:
            return None
        if not self._board.is_legal(native):
            return None
        resolved = self._wrap(native)
        self._board.push(native)
        return resolved

    def undo_last_move(self) -> Move | None:
        if not self._board.move_stack:
            return None
        native = self._board.pop()
        return self._wrap(native)

    def side_to_move(self) -> Color:
        return Color.white if self._board.turn == chess.WHITE else Color.black

    def is_checkmate(self) -> bool:
        return self._board.is_checkmate()

    def is_stalemate(self) -> bool:
        return self._board.is_stalemate()

    def is_insufficient_material(self) -> bool:
        return self._board.is_insufficient_material()

    def is_threefold_repetition(self) -> bool:
        return self._board.is_repetition(3)

    def is_draw(self) -> bool:
        return (
            self.is_stalemate()
            or self.is_insufficient_material()
            or self._board.is_fifty_moves()
            or self.is_threefold_repetition()
        )

    def is_in_check(self) -> bool:
        return self._board.is_check()

    def is_game_over(self) -> bool:
        return self.is_checkmate() or self.is_draw()

    def piece_at(self, square: str) -> Piece | None:
        try:
            native = self._board.piece_at(chess.parse_square(normalize_square(square)))
        except ValueError:
            return None
        return _to_piece(native) if native else None

    def pieces(self) -> Iterator[Piece]:
        for native in self._board.piece_map().values():
            yield _to_piece(native)

    def annotate(self, move: Move) -> Move:
        native = self._native(move)
        if not self._board.is_legal(native):
            raise ValueError(f"Move {move.uci()} is not legal in {self._board.fen()}")
        return replace(self._wrap(native), notation=self._board.san(native))

    def export_record(self) -> str:
        game = chess.pgn.Game.from_board(self._board)
        return str(game)

    def import_record(self, record: str) -> None:
        game = chess.pgn.read_game(io.StringIO(record))
        if game is None or game.errors:
            raise ValueError("Unreadable game record.")
        board = game.board()
        _require_valid(board)
        for native in game.mainline_moves():
            board.push(native)
        self._board = board

    def move_history(self) -> List[str]:
        replay = self._board.root()
        history: List[str] = []
        for native in self._board.move_stack:
            history.append(replay.san(native))
            replay.push(native)
        return history

    def fen(self) -> str:
        return self._board.fen()

    def copy(self) -> "ChessBoardOracle":
        return ChessBoardOracle(self._board.copy())

    def _native(self, move: Move) -> chess.Move:
        promotion = _TO_PIECE_TYPE[move.promotion] if move.promotion else None
        return chess.Move(
            chess.parse_square(normalize_square(move.from_square)),
            chess.parse_square(normalize_square(move.to_square)),
            promotion=promotion,
        )

    def _wrap(self, native: chess.Move) -> Move:
        board = self._board
        mover = board.piece_type_at(native.from_square)
        captured: PieceKind | None = None
        if board.is_en_passant(native):
            captured = PieceKind.pawn
        elif board.color_at(native.to_square) == (not board.turn):
            captured = _FROM_PIECE_TYPE[board.piece_type_at(native.to_square)]
        return Move(
            from_square=chess.square_name(native.from_square),
            to_square=chess.square_name(native.to_square),
            promotion=_FROM_PIECE_TYPE[native.promotion] if native.promotion else None,
            captured=captured,
            piece=_FROM_PIECE_TYPE[mover] if mover else None,
        )


def normalize_square(square: str) -> str:
    return (square or "").strip().lower()


def _require_valid(board: chess.Board) -> None:
    status = board.status()
    if status != chess.STATUS_VALID:
        raise ValueError(f"Illegal position {board.fen()} ({status!r})")


def _to_piece(native: chess.Piece) -> Piece:
    return Piece(
        kind=_FROM_PIECE_TYPE[native.piece_type],
        color=Color.white if native.color == chess.WHITE else Color.black,
    )


__all__ = [
    "ChessBoardOracle",
    "Color",
    "Move",
    "Piece",
    "PieceKind",
    "PositionOracle",
    "normalize_square",
]
