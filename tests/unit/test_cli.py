from __future__ import annotations

from click.testing import CliRunner

from webchess.interface.cli.main import main

STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"


def test_suggest_is_reproducible_with_a_seed() -> None:
    runner = CliRunner()
    first = runner.invoke(main, ["suggest", "--difficulty", "easy", "--seed", "9"])
    second = runner.invoke(main, ["suggest", "--difficulty", "easy", "--seed", "9"])

    assert first.exit_code == 0, first.output
    assert first.output == second.output
    assert len(first.output.split()[0]) == 4


def test_suggest_reports_finished_positions() -> None:
    result = CliRunner().invoke(main, ["suggest", "--fen", STALEMATE])
    assert result.exit_code == 0
    assert "Stalemate" in result.output


def test_suggest_rejects_bad_fen() -> None:
    result = CliRunner().invoke(main, ["suggest", "--fen", "garbage"])
    assert result.exit_code == 2

    unreachable = CliRunner().invoke(main, ["suggest", "--fen", "k7/8/8/8/8/8/8/R3K3 w - - 0 1"])
    assert unreachable.exit_code == 2


def test_play_round_trip() -> None:
    result = CliRunner().invoke(
        main,
        ["play", "--difficulty", "easy", "--seed", "1"],
        input="e2e4\nundo\nzz\nquit\n",
        env={"AI_THINK_DELAY_MS": "0"},
    )
    assert result.exit_code == 0, result.output
    assert "thinking..." in result.output
    assert "Last move:" in result.output
    assert "White to move" in result.output


def test_play_swap_hands_white_to_the_engine() -> None:
    result = CliRunner().invoke(
        main,
        ["play", "--difficulty", "easy", "--seed", "3"],
        input="swap\nquit\n",
        env={"AI_THINK_DELAY_MS": "0"},
    )
    assert result.exit_code == 0, result.output
    assert "thinking..." in result.output
    assert "Black to move" in result.output
