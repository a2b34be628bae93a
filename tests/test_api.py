"""HTTP and WebSocket API over a temporary database."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from predbets.api.auth import sign_caller
from predbets.api.main import create_app
from predbets.config import Settings

SECRET = "test-secret"
ADMIN_KEY = "test-admin"


def _headers(caller: str) -> dict[str, str]:
    return {"X-Caller-Id": caller, "X-Caller-Signature": sign_caller(SECRET, caller)}


@pytest.fixture
def client(db_path):
    settings = Settings(
        storage={"db_path": str(db_path)},
        auth={"secret": SECRET, "admin_key": ADMIN_KEY},
    )
    with TestClient(create_app(settings)) as c:
        yield c


def _deposit(client, user, amount=1000):
    r = client.post(f"/accounts/{user}/deposit", json={"amount": amount}, headers={"X-Admin-Key": ADMIN_KEY})
    assert r.status_code == 200, r.text
    return r.json()


def _market_with_bets(client):
    _deposit(client, "alice")
    _deposit(client, "bob")
    assert client.post("/markets", json={"market_id": "m1"}, headers=_headers("admin")).status_code == 201
    assert client.post("/markets/m1/bets", json={"vote": "yes", "amount": 700}, headers=_headers("alice")).status_code == 201
    assert client.post("/markets/m1/bets", json={"vote": "no", "amount": 300}, headers=_headers("bob")).status_code == 201


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_create_and_get_market(client):
    r = client.post("/markets", json={"market_id": "m1", "fee_basis_points": 100}, headers=_headers("admin"))
    assert r.status_code == 201
    body = r.json()
    assert body["admin"] == "admin"
    assert body["state"] == "open"
    assert body["fee_basis_points"] == 100
    r = client.get("/markets/m1")
    assert r.status_code == 200
    assert r.json()["market_id"] == "m1"
    listing = client.get("/markets").json()
    assert listing["total"] == 1


def test_mutations_require_signature(client):
    r = client.post("/markets", json={"market_id": "m1"})
    assert r.status_code == 401
    bad = {"X-Caller-Id": "admin", "X-Caller-Signature": "deadbeef"}
    r = client.post("/markets", json={"market_id": "m1"}, headers=bad)
    assert r.status_code == 401
    assert client.get("/markets/m1").status_code == 404


def test_deposit_requires_admin_key(client):
    r = client.post("/accounts/alice/deposit", json={"amount": 10}, headers={"X-Admin-Key": "wrong"})
    assert r.status_code == 401


def test_error_codes(client):
    r = client.get("/markets/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "market_not_found"
    client.post("/markets", json={"market_id": "m1"}, headers=_headers("admin"))
    r = client.post("/markets", json={"market_id": "m1"}, headers=_headers("admin"))
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_market"
    r = client.post("/markets/m1/bets", json={"vote": "yes", "amount": 0}, headers=_headers("alice"))
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_amount"
    r = client.post("/markets/m1/bets", json={"vote": "yes", "amount": 10}, headers=_headers("alice"))
    assert r.status_code == 409
    assert r.json()["code"] == "insufficient_funds"


def test_bet_resolve_claim_flow(client):
    _market_with_bets(client)
    r = client.post("/markets/m1/bets", json={"vote": "no", "amount": 1}, headers=_headers("alice"))
    assert r.json()["code"] == "duplicate_bet"

    r = client.post("/markets/m1/resolve", json={"winner": "yes"}, headers=_headers("alice"))
    assert r.status_code == 403
    assert r.json()["code"] == "unauthorized"
    r = client.post("/markets/m1/claim", headers=_headers("alice"))
    assert r.json()["code"] == "market_not_resolved"

    r = client.post("/markets/m1/resolve", json={"winner": "yes"}, headers=_headers("admin"))
    assert r.status_code == 200
    assert r.json()["winner"] == "yes"

    r = client.post("/markets/m1/claim", headers=_headers("alice"))
    assert r.status_code == 200
    body = r.json()
    assert body["payout"] == 980
    assert body["fee"] == 20

    assert client.post("/markets/m1/claim", headers=_headers("alice")).json()["code"] == "already_claimed"
    assert client.post("/markets/m1/claim", headers=_headers("bob")).json()["code"] == "you_lost"

    r = client.get("/accounts/alice", headers=_headers("alice"))
    assert r.json() == {"user": "alice", "balance": 1000 - 700 + 980}
    assert client.get("/accounts/alice", headers=_headers("bob")).status_code == 403


def test_claim_for_another_user_is_unauthorized(client):
    _market_with_bets(client)
    client.post("/markets/m1/resolve", json={"winner": "yes"}, headers=_headers("admin"))
    r = client.post("/markets/m1/claim", json={"user": "alice"}, headers=_headers("bob"))
    assert r.status_code == 403


def test_read_routes(client):
    _market_with_bets(client)
    odds = client.get("/markets/m1/odds").json()
    assert odds["yes_probability_pct"] == pytest.approx(70.0)
    quote = client.get("/markets/m1/quote", params={"vote": "no", "amount": 100}).json()
    assert quote["total_pool"] == 1100
    assert quote["payout"] == 100 * 1078 // 400
    bets = client.get("/markets/m1/bets").json()
    assert bets["total"] == 2
    assert client.get("/users/alice/bets").json()["total"] == 1
    events = client.get("/markets/m1/events").json()["events"]
    assert [(e["new_total_yes"], e["new_total_no"]) for e in events] == [(700, 0), (700, 300)]
    since = client.get("/markets/m1/events", params={"since_id": events[0]["event_id"]}).json()["events"]
    assert len(since) == 1
    audit = client.get("/markets/m1/audit").json()
    assert audit["ok"] is True


def test_feed_unknown_market_closes(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/markets/nope/feed") as ws:
            ws.receive_json()


def test_feed_pushes_snapshot_then_bets(client):
    _deposit(client, "alice")
    client.post("/markets", json={"market_id": "m1"}, headers=_headers("admin"))
    with client.websocket_connect("/markets/m1/feed") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert snapshot["total_pool"] == 0
        assert client.app.state.feed.listener_count("m1") == 1
        client.post("/markets/m1/bets", json={"vote": "yes", "amount": 50}, headers=_headers("alice"))
        event = ws.receive_json()
        assert event["type"] == "bet_placed"
        assert event["user"] == "alice"
        assert event["new_total_yes"] == 50
