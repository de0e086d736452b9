from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app

from conftest import ADMIN, first_balls_by_team
from lottery.types import Combination

ADMIN_HEADERS = {"X-Actor-Id": ADMIN, "X-Actor-Name": "Commissioner"}


def _witness(n):
    return {"X-Actor-Id": f"witness-{n}", "X-Actor-Name": f"Witness {n}", "X-Actor-Email": f"w{n}@league.io"}


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("LOTTERY_DB_PATH", str(tmp_path / "api.sqlite3"))
    monkeypatch.delenv("LOTTERY_API_TOKEN", raising=False)
    monkeypatch.delenv("LOTTERY_DRAW_PACING_SEC", raising=False)
    with TestClient(app) as c:
        yield c


def _create(client, **body):
    payload = {"name": "Keeper League", "team_count": 6, "required_verifier_count": 1}
    payload.update(body)
    r = client.post("/api/lotteries", json=payload, headers=ADMIN_HEADERS)
    assert r.status_code == 200, r.text
    return r.json()["lottery"]


def test_full_lottery_over_http(client):
    lot = _create(client)
    lid = lot["id"]
    assert lot["status"] == "setup"
    assert len(lot["teams"]) == 6

    r = client.patch(
        f"/api/lotteries/{lid}/teams/team-1",
        json={"name": "Sharks", "emails": ["gm@sharks.io"]},
        headers=ADMIN_HEADERS,
    )
    assert r.status_code == 200
    assert r.json()["team"]["name"] == "Sharks"

    r = client.post(f"/api/lotteries/{lid}/setup/finish", headers=ADMIN_HEADERS)
    assert r.json()["lottery"]["status"] == "verification"

    r = client.post(f"/api/lotteries/{lid}/drawing/start", headers=ADMIN_HEADERS)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "VERIFICATION_INCOMPLETE"

    r = client.post(f"/api/lotteries/{lid}/verifiers", json={}, headers=_witness(1))
    assert r.json()["may_start_drawing"] is True

    r = client.post(f"/api/lotteries/{lid}/drawing/start", headers=ADMIN_HEADERS)
    assert r.status_code == 200
    assert r.json()["lottery"]["status"] == "drawing"

    r = client.get(f"/api/lotteries/{lid}")
    state = r.json()["lottery"]
    assert state["verifiers"][0]["email"] == "w1@league.io"
    assert state["next_pick"] == 1
    combos = [Combination.from_dict(c) for c in state["combinations"]]
    balls = first_balls_by_team(combos)

    r = client.post(f"/api/lotteries/{lid}/draw", json={"balls": balls["team-5"]}, headers=ADMIN_HEADERS)
    body = r.json()
    assert body["result"] == "accepted"
    assert body["pick"]["team_id"] == "team-5"
    assert body["next_pick"] == 2

    r = client.post(f"/api/lotteries/{lid}/draw", json={"balls": balls["team-5"]}, headers=ADMIN_HEADERS)
    body = r.json()
    assert body["result"] == "retry"
    assert body["retry"]["reason"] == "already_selected"
    assert body["drawing_status_message"].endswith("Drawing again...")

    while True:
        r = client.post(
            f"/api/lotteries/{lid}/draw",
            json={"until_resolved": True, "rng_seed": 3},
            headers=ADMIN_HEADERS,
        )
        assert r.status_code == 200, r.text
        if r.json()["draw_complete"]:
            break

    r = client.post(f"/api/lotteries/{lid}/draw", json={"rng_seed": 1}, headers=ADMIN_HEADERS)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "DRAW_COMPLETE"

    r = client.post(f"/api/lotteries/{lid}/draft-order", headers=ADMIN_HEADERS)
    order = r.json()["draft_order"]
    assert [p["pick"] for p in order] == [1, 2, 3, 4, 5, 6]
    assert order[0]["team_id"] == "team-5"
    assert len({p["team_id"] for p in order}) == 6

    r = client.get(f"/api/lotteries/{lid}/export/draft-order.csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="Keeper_League_lottery_results.csv"' in r.headers["content-disposition"]
    assert r.text.splitlines()[0] == "Pick,Team Name,Combination"

    r = client.get(f"/api/lotteries/{lid}/draw-log")
    outcomes = [e["outcome"] for e in r.json()["attempts"]]
    assert outcomes[:2] == ["accepted", "already_selected"]
    assert outcomes.count("accepted") == 4

    r = client.post(f"/api/lotteries/{lid}/complete", headers=ADMIN_HEADERS)
    assert r.json()["status"] == "complete"


def test_observer_cannot_drive_the_draw(client):
    lid = _create(client, required_verifier_count=0)["id"]
    r = client.post(f"/api/lotteries/{lid}/setup/finish", headers=_witness(1))
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "NOT_ADMIN"


def test_actor_header_is_required(client):
    r = client.post("/api/lotteries", json={"name": "x"})
    assert r.status_code == 401


def test_unknown_lottery_is_404(client):
    r = client.get("/api/lotteries/lot_missing")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "LOTTERY_NOT_FOUND"


def test_bad_team_count_is_400(client):
    r = client.post("/api/lotteries", json={"name": "x", "team_count": 20}, headers=ADMIN_HEADERS)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_TEAM_COUNT"


def test_explicit_balls_must_be_four(client):
    lid = _create(client, required_verifier_count=0)["id"]
    client.post(f"/api/lotteries/{lid}/setup/finish", headers=ADMIN_HEADERS)
    r = client.post(f"/api/lotteries/{lid}/draw", json={"balls": [1, 2, 3]}, headers=ADMIN_HEADERS)
    assert r.status_code == 422
    r = client.post(f"/api/lotteries/{lid}/draw", json={"balls": [1, 1, 2, 3]}, headers=ADMIN_HEADERS)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_BALLS"


def test_rejected_draw_leaves_no_draw_in_progress(client):
    lid = _create(client, required_verifier_count=0)["id"]
    client.post(f"/api/lotteries/{lid}/setup/finish", headers=ADMIN_HEADERS)

    r = client.post(f"/api/lotteries/{lid}/draw", json={"balls": [1, 1, 2, 3]}, headers=ADMIN_HEADERS)
    assert r.status_code == 400
    state = client.get(f"/api/lotteries/{lid}", params={"include_combinations": False}).json()["lottery"]
    assert state["is_drawing"] is False
    assert state["drawing_status_message"] == ""
    assert state["drawn_picks"] == []

    r = client.post(
        f"/api/lotteries/{lid}/draw",
        json={"balls": [1, 2, 3, 4], "until_resolved": True},
        headers=ADMIN_HEADERS,
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_BALLS"
    state = client.get(f"/api/lotteries/{lid}", params={"include_combinations": False}).json()["lottery"]
    assert state["is_drawing"] is False
    assert state["drawn_picks"] == []
    assert client.get(f"/api/lotteries/{lid}/draw-log").json()["attempts"] == []


def test_listing_and_summary(client):
    _create(client, name="First")
    _create(client, name="Second")
    r = client.get("/api/lotteries", params={"admin_id": ADMIN})
    names = sorted(item["name"] for item in r.json()["lotteries"])
    assert names == ["First", "Second"]
    assert all("combinations" not in item for item in r.json()["lotteries"])


def test_token_guard(tmp_path, monkeypatch):
    monkeypatch.setenv("LOTTERY_DB_PATH", str(tmp_path / "guard.sqlite3"))
    monkeypatch.setenv("LOTTERY_API_TOKEN", "s3cret")
    with TestClient(app) as c:
        r = c.post("/api/lotteries", json={"name": "x"}, headers=ADMIN_HEADERS)
        assert r.status_code == 401
        r = c.post("/api/lotteries", json={"name": "x"}, headers={**ADMIN_HEADERS, "X-Admin-Token": "s3cret"})
        assert r.status_code == 200
        assert c.get("/api/lotteries").status_code == 200


def test_server_module_exposes_app():
    import server

    assert server.app is app
