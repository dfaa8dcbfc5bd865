from __future__ import annotations

import random
from uuid import UUID

import click

from webchess.domain.chess import AiMoveScheduler, GameMode, MoveResult, SessionManager
from webchess.domain.chess.board_views import FILES, piece_glyph, status_text
from webchess.domain.engine.oracle import ChessBoardOracle, Color, Move, PieceKind, PositionOracle
from webchess.domain.engine.selector import DIFFICULTY_PRESETS, MoveSelector, SearchInferenceService
from webchess.infrastructure.config import load_config
from webchess.infrastructure.persistence.memory_repository import InMemoryGameSessionRepository
from webchess.interface.telemetry.logging import setup_logging

DIFFICULTY_CHOICE = click.Choice(sorted(DIFFICULTY_PRESETS))


def _render_board(oracle: PositionOracle, flip: bool = False) -> str:
    ranks = range(1, 9) if flip else range(8, 0, -1)
    files = FILES[::-1] if flip else FILES
    lines = []
    for rank in ranks:
        cells = [piece_glyph(oracle.piece_at(f"{file}{rank}")) or "·" for file in files]
        lines.append(f"{rank} " + " ".join(cells))
    lines.append("  " + " ".join(files))
    return "\n".join(lines)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """Play chess against a minimax engine or query it for moves."""


@main.command()
@click.option("--fen", type=str, default=None, help="Position to analyse (defaults to the start position).")
@click.option("--difficulty", type=DIFFICULTY_CHOICE, default="medium", show_default=True)
@click.option("--seed", type=int, default=None, help="Seed for reproducible choices.")
def suggest(fen: str | None, difficulty: str, seed: int | None) -> None:
    """Print the engine's move for a position."""
    try:
        oracle = ChessBoardOracle.from_fen(fen)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--fen") from exc

    selector = MoveSelector(rng=random.Random(seed))
    suggestion = selector.select(oracle, difficulty=difficulty)
    if suggestion is None:
        click.echo(status_text(oracle))
        return
    click.echo(f"{suggestion.move.uci()} {suggestion.move.notation} ({suggestion.score:.1f})")


@main.command()
@click.option("--difficulty", type=DIFFICULTY_CHOICE, default="medium", show_default=True)
@click.option(
    "--ai-color",
    type=click.Choice([color.value for color in Color]),
    default=Color.black.value,
    show_default=True,
)
@click.option("--seed", type=int, default=None, help="Seed for reproducible engine choices.")
def play(difficulty: str, ai_color: str, seed: int | None) -> None:
    """Play a game in the terminal. Enter moves as UCI (e2e4), or undo, reset, swap, quit."""
    config = load_config()
    setup_logging("WARNING", renderer="console")
    manager = SessionManager(
        InMemoryGameSessionRepository(),
        SearchInferenceService(MoveSelector(rng=random.Random(seed))),
        auto_reply=False,
    )
    scheduler = AiMoveScheduler(manager, delay_seconds=config.ai_think_delay_ms / 1000)
    session = manager.create_session(mode=GameMode.ai, ai_color=Color(ai_color), difficulty=difficulty)

    try:
        _play_loop(manager, scheduler, session.id)
    finally:
        scheduler.shutdown()


def _play_loop(manager: SessionManager, scheduler: AiMoveScheduler, session_id: UUID) -> None:
    while True:
        future = scheduler.schedule(session_id)
        if future is not None:
            click.echo("thinking...")
            future.result()
        session = manager.get_session(session_id)
        position = manager.position(session)
        click.echo(_render_board(position, flip=session.ai_color is Color.white))
        if session.moves:
            click.echo(f"Last move: {session.moves[-1].san}")
        click.echo(status_text(position))
        if position.is_game_over():
            break

        command = click.prompt("move", type=str).strip().lower()
        if command in ("quit", "exit", "q"):
            break
        if command == "undo":
            manager.undo(session_id)
            continue
        if command == "reset":
            manager.reset(session_id)
            continue
        if command == "swap":
            manager.update_settings(session_id, ai_color=session.ai_color.opponent)
            continue

        try:
            move = Move.from_uci(command)
        except ValueError:
            click.echo("Enter a move like e2e4, or undo, reset, swap, quit.", err=True)
            continue

        attempt = manager.submit_move(session_id, move.from_square, move.to_square, move.promotion)
        if attempt.result is MoveResult.pending_promotion:
            piece = click.prompt(
                "promote to",
                type=click.Choice(["q", "r", "b", "n"]),
                default="q",
            )
            attempt = manager.choose_promotion(session_id, PieceKind.parse(piece))
        if attempt.result is MoveResult.rejected:
            click.echo(f"Move rejected: {attempt.reason}", err=True)


@main.command()
@click.option("--host", type=str, default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=5000, show_default=True)
def serve(host: str, port: int) -> None:
    """Run the HTTP API with the Flask development server."""
    from webchess.interface.http.app import create_app

    config = load_config()
    app = create_app(config)
    app.run(host=host, port=port, debug=config.flask_env == "development")


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
