import os

import chess
import pytest

# Keep the API tests off the filesystem
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["HASH_LENGTH"] = "400"

from fastapi.testclient import TestClient
from learner.main import app, learner

AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


@pytest.fixture()
def client():
    learner.reset()
    with TestClient(app) as c:
        yield c


def _play(client, result="white"):
    client.post("/api/game/start", json={})
    first = client.post("/api/game/position", json={"fen": chess.STARTING_FEN, "move": "e4"})
    client.post("/api/game/position", json={"fen": AFTER_E4_FEN, "move": "e5"})
    client.post("/api/game/end", json={"result": result})
    return first.json()["hash"]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_start_game(client):
    response = client.post("/api/game/start", json={"players": {"white": "computer", "black": "human"}})
    assert response.status_code == 200
    game = response.json()["game"]
    assert game["players"] == {"white": "computer", "black": "human"}
    assert game["result"] is None


def test_record_position_from_grid(client):
    board = [[None] * 8 for _ in range(8)]
    board[0][4] = {"color": "white", "pieceType": "king"}
    board[7][4] = {"color": "black", "pieceType": "king"}
    response = client.post("/api/game/position", json={"board": board, "side_to_move": "black"})
    assert response.status_code == 200
    key = response.json()["hash"]
    stats = client.get(f"/api/positions/{key}").json()
    assert stats["boardSummary"].endswith(" b")
    assert stats["popularity"] == 1


def test_record_position_requires_board(client):
    response = client.post("/api/game/position", json={"move": "e4"})
    assert response.status_code == 400


def test_record_position_invalid_fen(client):
    response = client.post("/api/game/position", json={"fen": "not valid"})
    assert response.status_code == 400


def test_full_game(client):
    key = _play(client)
    stats = client.get(f"/api/positions/{key}").json()
    assert stats["totalGames"] == 1
    assert stats["outcomes"]["white"] == 1
    assert stats["moves"]["e4"]["wins"] == 1
    assert client.get("/api/status").json()["total_games"] == 1


def test_end_without_game(client):
    response = client.post("/api/game/end", json={"result": "white"})
    assert response.status_code == 200
    assert response.json()["game"] is None


def test_end_invalid_result(client):
    client.post("/api/game/position", json={"fen": chess.STARTING_FEN})
    response = client.post("/api/game/end", json={"result": "purple"})
    assert response.status_code == 400


def test_unknown_position(client):
    assert client.get("/api/positions/nope").status_code == 404


def test_suggestions(client):
    key = _play(client)
    suggestions = client.get(f"/api/positions/{key}/suggestions", params={"side": "white"}).json()
    assert suggestions[0]["move"] == "e4"
    assert suggestions[0]["stats"]["played"] == 1
    assert client.get("/api/positions/nope/suggestions").json() == []


def test_inconsistencies_openings_patterns(client):
    for _ in range(5):
        _play(client, "black")
    assert len(client.get("/api/inconsistencies").json()) >= 1
    openings = client.get("/api/openings", params={"depth": 2}).json()
    assert openings[0]["moves"] == ["e4", "e5"]
    assert openings[0]["losses"] == 5
    patterns = client.get("/api/patterns").json()
    assert patterns[0]["games"] > 0


def test_openings_invalid_depth(client):
    response = client.get("/api/openings", params={"depth": 0})
    assert response.status_code == 400


def test_export_import(client):
    _play(client)
    exported = client.get("/api/export")
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    assert ".db.json" in exported.headers["content-disposition"]

    client.post("/api/reset")
    assert client.get("/api/status").json()["positions"] == 0

    response = client.post("/api/import", content=exported.content,
                           headers={"content-type": "application/json"})
    assert response.status_code == 200
    assert response.json()["total_games"] == 1


def test_import_malformed(client):
    _play(client)
    response = client.post("/api/import", content=b"{nope",
                           headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert client.get("/api/status").json()["total_games"] == 1


def test_reset(client):
    _play(client)
    response = client.post("/api/reset")
    assert response.status_code == 200
    assert response.json()["total_games"] == 0
    assert response.json()["positions"] == 0
