import pytest
from fastapi.testclient import TestClient

from klondike.cards import KING, Card, Suit
from server import play_service
from server.play_service import app, reset_ledger
from wager.economy import PlayerWallet


class FakeClock:
    def __init__(self, now_ms: int = 1_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(play_service, "clock", fake)
    return fake


@pytest.fixture
def client(clock):
    reset_ledger()
    play_service.sessions.clear()
    with TestClient(app) as test_client:
        yield test_client


def start(client, **payload):
    response = client.post("/session/start", json=payload)
    assert response.status_code == 200, response.text
    body = response.json()
    return body["session_id"], body["state"]


def test_practice_session_flow(client):
    session_id, state = start(client, seed="api", turn_count=1)
    assert state["game"]["phase"] == "dealt"
    assert state["game"]["stock_count"] == 24
    assert state["wager"] is None

    state = client.post(f"/session/{session_id}/draw").json()
    assert state["game"]["move_count"] == 1
    assert state["game"]["stock_count"] == 23

    state = client.get(f"/session/{session_id}").json()
    assert state["game"]["seed"] == "api"

    state = client.post(f"/session/{session_id}/finish").json()
    assert state["game"]["phase"] == "finished"
    assert state["settlement"] is None

    response = client.post(f"/session/{session_id}/draw")
    assert response.status_code == 409


def test_illegal_and_malformed_moves(client):
    session_id, _ = start(client, seed="moves")
    response = client.post(
        f"/session/{session_id}/move",
        json={"from": {"pile": "waste"}, "to": {"pile": "tableau", "index": 0}},
    )
    assert response.status_code == 400

    response = client.post(
        f"/session/{session_id}/move",
        json={"from": {"pile": "nowhere"}, "to": {"pile": "tableau", "index": 0}},
    )
    assert response.status_code == 422

    response = client.post(
        f"/session/{session_id}/move",
        json={"from": {"pile": "tableau", "index": 1}, "to": {"pile": "foundation"}},
    )
    assert response.status_code == 422


def test_unknown_session_and_bad_turn_count(client):
    assert client.get("/session/missing").status_code == 404
    assert client.post("/session/missing/draw").status_code == 404
    assert client.post("/session/start", json={"turn_count": 2}).status_code == 422


def test_hint_reports_suggestion(client):
    session_id, _ = start(client, seed="hint")
    body = client.post(f"/session/{session_id}/hint").json()
    assert "hint" in body
    assert body["game"]["hint_count"] == 1

    body = client.post(f"/session/{session_id}/auto-move").json()
    assert body["game"]["phase"] == "dealt"


def test_wager_settles_once_on_finish(client):
    session_id, state = start(client, seed="wager", contract_id="classic-clear-5", stake=10)
    assert state["wager"] == {"contractId": "classic-clear-5", "stake": 10}
    assert state["ledger"]["coins"] == 990

    state = client.post(f"/session/{session_id}/finish").json()
    settlement = state["settlement"]
    assert settlement["outcome"] == "fail"
    assert settlement["totalPayout"] == 0
    assert settlement["piBreakdown"]["efficiency_bonus"] == 1000
    assert state["ledger"]["coins"] == 990
    assert state["ledger"]["xp"] == 5

    state = client.get(f"/session/{session_id}").json()
    assert state["ledger"]["xp"] == 5
    assert state["settlement"] == settlement


def test_wager_start_rejections(client):
    response = client.post("/session/start", json={"contract_id": "nope", "stake": 10})
    assert response.status_code == 404

    response = client.post("/session/start", json={"contract_id": "classic-clear-5", "stake": 15})
    assert response.status_code == 400

    response = client.post("/session/start", json={"contract_id": "classic-clear-5", "stake": 100})
    assert response.status_code == 400

    reset_ledger(wallet=PlayerWallet(coins=5))
    response = client.post("/session/start", json={"contract_id": "classic-clear-5", "stake": 10})
    assert response.status_code == 400
    assert play_service.sessions == {}


def test_daily_grant_once(client):
    body = client.post("/ledger/daily").json()
    assert body["granted"] is True
    assert body["bailedOut"] is False
    assert body["ledger"]["coins"] == 1200

    body = client.post("/ledger/daily").json()
    assert body["granted"] is False
    assert body["ledger"]["coins"] == 1200


def test_actions_after_expiry_are_rejected_and_settle_the_wager(client, clock):
    session_id, _ = start(client, seed="late", contract_id="score-target-5", stake=10)
    clock.now_ms += 400_000

    response = client.post(f"/session/{session_id}/draw")
    assert response.status_code == 409

    state = client.get(f"/session/{session_id}").json()
    assert state["game"]["phase"] == "finished"
    assert state["game"]["move_count"] == 0
    assert state["game"]["time_remaining_seconds"] == 0
    assert state["settlement"]["piBreakdown"]["time_bonus"] == 0
    assert state["settlement"]["piBreakdown"]["base_score"] == 0


def test_hint_after_expiry_is_not_counted(client, clock):
    session_id, _ = start(client, seed="late-hint", contract_id="classic-clear-5", stake=10)
    clock.now_ms += 301_000

    response = client.post(f"/session/{session_id}/hint")
    assert response.status_code == 409

    state = client.get(f"/session/{session_id}").json()
    assert state["game"]["phase"] == "finished"
    assert state["game"]["hint_count"] == 0
    assert state["settlement"]["piBreakdown"]["hint_penalty"] == 0


def test_finish_after_expiry_returns_settled_state(client, clock):
    session_id, _ = start(client, seed="late-finish", contract_id="classic-clear-5", stake=10)
    clock.now_ms += 301_000

    response = client.post(f"/session/{session_id}/finish")
    assert response.status_code == 200
    assert response.json()["settlement"]["outcome"] == "fail"
    assert response.json()["ledger"]["xp"] == 5


def test_solved_practice_game_credits_coins_once(client):
    session_id, _ = start(client, seed="practice-win")
    game = play_service.sessions[session_id].service.game
    for suit in Suit:
        game._foundations[suit] = [Card(suit, rank, True) for rank in range(1, 14)]
    game._foundations[Suit.SPADES].pop()
    game._tableau[0] = [Card(Suit.SPADES, KING, True)]

    state = client.post(
        f"/session/{session_id}/move",
        json={"from": {"pile": "tableau", "index": 0}, "to": {"pile": "foundation", "suit": "S"}},
    ).json()
    assert state["game"]["phase"] == "finished"
    assert state["practiceReward"] == 10
    assert state["ledger"]["coins"] == 1010

    state = client.post(f"/session/{session_id}/finish").json()
    assert state["ledger"]["coins"] == 1010
