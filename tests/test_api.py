from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from investigation.cache import set_cache_value
from investigation.core.scheduler import MonotonicScheduler
from investigation.core.session import InvestigationSession
from investigation.main import app

REQUIRED = ["alice", "bob", "carol", "dave", "emma"]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_session(bundle, store, clock) -> InvestigationSession:
    session = InvestigationSession(bundle, store=store, scheduler=MonotonicScheduler(clock=clock))
    return set_cache_value("api_session", session)


@pytest.fixture
def client(api_session) -> TestClient:
    return TestClient(app)


def _investigate(client: TestClient, clock: FakeClock) -> None:
    for cid in REQUIRED:
        assert client.post("/session/introduce", json={"character_id": cid}).status_code == 200
    clock.now += 2.5


def test_health() -> None:
    res = TestClient(app).get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_state_snapshot(client) -> None:
    res = client.get("/session/state")
    assert res.status_code == 200
    body = res.json()
    assert body["case_id"] == "test_case"
    assert body["progress"]["phase"] == "introduction"
    assert body["clues"]["crumbs"] == "unlocked"


def test_incident_lands_after_wall_clock_delay(client, clock) -> None:
    for cid in REQUIRED:
        client.post("/session/introduce", json={"character_id": cid})
    assert client.get("/session/state").json()["progress"]["phase"] == "introduction"
    clock.now += 2.5
    body = client.get("/session/state").json()
    assert body["progress"]["phase"] == "investigation"
    assert body["progress"]["incident_triggered"]

    events = client.get("/session/events", params={"since": 0}).json()
    types = [e["event"]["event_type"] for e in events["events"]]
    assert "incident-triggered" in types
    assert events["last_seq"] == len(events["events"])


def test_unknown_character_is_404(client) -> None:
    res = client.post("/session/introduce", json={"character_id": "zed"})
    assert res.status_code == 404
    body = res.json()
    assert body["error_code"] == "INTRODUCE_HTTP_404"
    assert "zed" in body["message"]


def test_conversation_flow_unlocks_clue(client, clock) -> None:
    _investigate(client, clock)
    assert client.post("/session/clues/crumbs/discover").status_code == 200

    locked = client.post("/session/clues/C1/discover")
    assert locked.status_code == 409
    assert locked.json()["component"] == "clues"

    opened = client.post("/session/conversation/open", json={"character_id": "emma"})
    assert opened.status_code == 200
    assert opened.json()["tier"] == 1
    assert client.post("/session/conversation/open", json={"character_id": "bob"}).status_code == 409

    closed = client.post("/session/conversation/close")
    assert closed.json()["unlock_requests"] == ["C1"]
    assert client.post("/session/conversation/close").status_code == 409

    res = client.post("/session/clues/C1/discover")
    assert res.status_code == 200
    assert res.json()["state"] == "discovered"


def test_clue_discovery_disabled_before_incident(client) -> None:
    res = client.post("/session/clues/crumbs/discover")
    assert res.status_code == 409
    assert client.post("/session/clues/nothing/discover").status_code == 404


def test_accusation_flow(client, clock, api_session) -> None:
    _investigate(client, clock)
    eligibility = client.get("/session/accusation/eligibility").json()
    assert not eligibility["can_initiate"]
    assert eligibility["suspects"] == ["dave", "alice"]

    for cid in ("crumbs", "plate"):
        client.post(f"/session/clues/{cid}/discover")
    api_session.clues.unlock("C1")
    api_session.clues.unlock("papers")
    for cid in ("C1", "papers"):
        client.post(f"/session/clues/{cid}/discover")

    started = client.post("/session/accusation/start", json={"suspect_id": "dave"})
    assert started.status_code == 200
    assert started.json()["statement"]["id"] == "s1"

    assert client.post("/session/accusation/advance").status_code == 409
    for clue in ("crumbs", "C1", None, "papers"):
        if clue:
            res = client.post("/session/accusation/evidence", json={"clue_id": clue})
            assert res.json()["result"]["correct"]
        client.post("/session/accusation/advance")

    verdict = client.post("/session/accusation/verdict")
    assert verdict.status_code == 200
    body = verdict.json()
    assert body["outcome"] == "success"
    assert body["summary"]["key_evidence"] == ["crumbs", "C1", "papers"]
    assert not body["summary"]["all_clues_discovered"]


def test_accusation_rejected_without_clues(client, clock) -> None:
    _investigate(client, clock)
    res = client.post("/session/accusation/start", json={"suspect_id": "dave"})
    assert res.status_code == 409
    assert "more clues" in res.json()["message"]
    assert client.post("/session/accusation/start", json={"suspect_id": "zed"}).status_code == 404


def test_cancel_and_reset(client, clock, api_session) -> None:
    _investigate(client, clock)
    for cid in ("crumbs", "plate"):
        client.post(f"/session/clues/{cid}/discover")
    client.post("/session/accusation/start", json={"suspect_id": "dave"})
    assert client.post("/session/accusation/cancel").json()["stage"] == "idle"
    assert client.post("/session/accusation/cancel").status_code == 409

    res = client.post("/session/reset")
    assert res.status_code == 200
    assert res.json()["progress"]["phase"] == "introduction"
    assert api_session.state.discovered_clues == set()
