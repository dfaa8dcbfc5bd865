from __future__ import annotations

import chess
import pytest


@pytest.fixture()
def gameplay_client(app):
    return app.test_client()


def test_gameplay_flow(gameplay_client):
    create_response = gameplay_client.post(
        "/api/v1/sessions",
        json={"mode": "ai", "aiColor": "black", "difficulty": "medium"},
    )
    assert create_response.status_code == 201
    session = create_response.get_json()
    session_id = session["id"]

    board = chess.Board(session["currentFen"])
    assert board.turn == chess.WHITE

    for _ in range(2):
        human_move = next(iter(board.legal_moves))
        move_response = gameplay_client.post(
            f"/api/v1/sessions/{session_id}/moves",
            json={"uci": human_move.uci()},
        )
        assert move_response.status_code == 200
        payload = move_response.get_json()
        board = chess.Board(payload["currentFen"])
        assert board.turn == chess.WHITE
        assert payload["status"] == "in_progress"

    final_state = gameplay_client.get(f"/api/v1/sessions/{session_id}")
    assert final_state.status_code == 200
    state_payload = final_state.get_json()
    assert len(state_payload["moves"]) == 4
    assert len(state_payload["moveTable"]) == 2

    undo = gameplay_client.post(f"/api/v1/sessions/{session_id}/undo").get_json()
    assert len(undo["moves"]) == 2
    replay = chess.Board()
    for move in undo["moves"]:
        replay.push_uci(move["uci"])
    assert replay.fen() == undo["currentFen"]

    pgn = gameplay_client.get(f"/api/v1/sessions/{session_id}/pgn").get_json()["pgn"]
    assert pgn.startswith("[Event")

    reset = gameplay_client.post(f"/api/v1/sessions/{session_id}/reset").get_json()
    assert reset["moves"] == []
    assert reset["generation"] > undo["generation"]


def test_two_player_game_reaches_checkmate(gameplay_client):
    session_id = gameplay_client.post("/api/v1/sessions", json={"mode": "human"}).get_json()["id"]

    payload = None
    for uci in ("f2f3", "e7e5", "g2g4", "d8h4"):
        response = gameplay_client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": uci})
        assert response.status_code == 200
        payload = response.get_json()

    assert payload["status"] == "black_won"
    assert payload["statusText"] == "Checkmate — Black wins"
    assert payload["checkSquare"] == "e1"
    assert payload["endedAt"] is not None

    late = gameplay_client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": "a2a3"})
    assert late.status_code == 409
    assert late.get_json()["code"] == "game_over"
