"""Tests for the HTTP layer in void_radio/api.py, using FastAPI's TestClient."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from void_radio.api import create_app, progress_stream
from void_radio.providers.base import ProviderError
from void_radio.service import CollaborationService
from tests.conftest import MockProvider


@pytest.fixture
def client(service) -> TestClient:
    return TestClient(create_app(service))


def _round_payload(number: int) -> dict:
    return {
        "index": number,
        "responses": [
            {"providerName": "Claude", "content": f"Claude in round {number}"},
            {"providerName": "Gemini", "content": f"Gemini in round {number}"},
        ],
    }


def test_health_lists_providers_and_modes(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["modes"] == ["standard", "deep", "quick", "meta"]
    assert data["availableProviders"] == ["Claude", "Gemini"]
    assert data["providers"] == {"claude": True, "gemini": True}
    assert data["synthesizer"] == "gemini"


def test_health_reports_unconfigured_provider(sample_app_config):
    service = CollaborationService(sample_app_config, {"claude": MockProvider("claude", label="Claude")})
    data = TestClient(create_app(service)).get("/health").json()
    assert data["providers"] == {"claude": True, "gemini": False}
    assert data["synthesizer"] == "claude"


def test_collaborate_requires_seed(client):
    assert client.post("/collaborate", json={}).status_code == 400
    assert client.post("/collaborate", json={"seed": "  "}).status_code == 400


def test_collaborate_returns_transmission(client):
    resp = client.post("/collaborate", json={"seed": "What is silence?", "mode": "quick"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["seed"] == "What is silence?"
    assert data["mode"] == "quick"
    assert len(data["rounds"]) == 2
    assert [r["providerName"] for r in data["rounds"][0]["responses"]] == ["Claude", "Gemini"]
    assert data["synthesis"]["authorLabel"] == "Collective Intelligence"
    assert data["synthesis"]["content"]
    assert 0 <= data["resonance"] <= 100
    assert data["sessionId"]


def test_collaborate_with_failing_provider_still_succeeds(sample_app_config):
    gemini = MockProvider("gemini", label="Gemini")
    gemini.generate = AsyncMock(side_effect=ProviderError("gemini", "Request timed out after 30s"))
    service = CollaborationService(sample_app_config, {"gemini": gemini})
    resp = TestClient(create_app(service)).post("/collaborate", json={"seed": "X", "mode": "standard"})

    assert resp.status_code == 200
    rounds = resp.json()["rounds"]
    assert all(len(r["responses"]) == 1 for r in rounds)
    assert all(r["responses"][0]["outcome"] == "error" for r in rounds)


def test_collaborate_without_synthesizer_is_503(sample_app_config):
    sample_app_config.defaults.synthesizer_preference = ["deepseek"]
    service = CollaborationService(sample_app_config, {"claude": MockProvider("claude")})
    resp = TestClient(create_app(service)).post("/collaborate", json={"seed": "X"})
    assert resp.status_code == 503
    assert "synthesis" in resp.json()["details"]


def test_progress_snapshot_after_collaboration(client):
    client.post("/collaborate", json={"seed": "seed", "sessionId": "abc123"})
    resp = client.get("/progress/abc123")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == "abc123"
    assert data["overallPercent"] == 100
    assert set(data["steps"]) == {"initialize", "aiProcessing", "synthesis", "complete"}
    assert data["providerStates"]["claude"]["status"] == "complete"


def test_progress_unknown_session_is_404(client):
    resp = client.get("/progress/nope")
    assert resp.status_code == 404
    assert client.get("/progress/nope/stream").status_code == 404


def test_progress_expired_session_is_404(service, client):
    clock = {"now": 0.0}
    service.progress.clock = lambda: clock["now"]
    tracker = service.open_session("old")
    tracker.complete()
    service.progress.finish("old")
    clock["now"] = service.progress.retention_sec + 1
    assert client.get("/progress/old").status_code == 404


def test_progress_stream_sends_snapshot_of_finished_session(service, client):
    tracker = service.open_session("done")
    tracker.update_step("initialize", "complete", 100)
    tracker.complete()

    with client.stream("GET", "/progress/done/stream") as resp:
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        body = "".join(resp.iter_text())

    events = [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]
    assert len(events) == 1
    assert events[0]["overallPercent"] == 100
    assert events[0]["finished"] is True
    assert tracker.subscriber_count == 0


def test_extend_requires_fields(client):
    assert client.post("/extend", json={"seed": "s", "previousRounds": []}).status_code == 400
    assert client.post("/extend", json={"transmissionId": "t", "seed": "s"}).status_code == 400
    assert client.post("/extend", json={"transmissionId": "t", "previousRounds": []}).status_code == 400


@pytest.mark.parametrize("responses", ["oops", ["oops"], [42], [{"content": "no provider"}]])
def test_extend_rejects_malformed_rounds(client, responses):
    resp = client.post(
        "/extend",
        json={"transmissionId": "t", "seed": "s", "previousRounds": [{"index": 1, "responses": responses}]},
    )
    assert resp.status_code == 400
    assert "Invalid previousRounds" in resp.json()["detail"]


def test_extend_rejects_wrong_types(client):
    resp = client.post("/extend", json={"transmissionId": "t", "seed": "s", "previousRounds": "oops"})
    assert resp.status_code == 400


def test_extend_appends_round(client):
    resp = client.post(
        "/extend",
        json={
            "transmissionId": "t-42",
            "seed": "What is silence?",
            "mode": "deep",
            "previousRounds": [_round_payload(1), _round_payload(2)],
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == "t-42"
    assert len(data["rounds"]) == 3
    assert data["rounds"][2]["index"] == 3
    assert data["synthesis"]["content"]


def test_extend_after_collaborate_keeps_id(client):
    first = client.post("/collaborate", json={"seed": "seed"}).json()
    resp = client.post(
        "/extend",
        json={"transmissionId": first["id"], "seed": "seed", "previousRounds": first["rounds"]},
    )
    data = resp.json()
    assert data["id"] == first["id"]
    assert data["createdAt"] == first["createdAt"]
    assert len(data["rounds"]) == 3


def test_analyze_emergence(service, client):
    service.providers["gemini"].generate = AsyncMock(
        return_value='Here you go: [{"text": "silence", "type": "flight", "intensity": "high", '
        '"significance": "escapes"}]'
    )
    resp = client.post(
        "/analyze-emergence",
        json={"seed": "s", "rounds": [_round_payload(1)], "synthesis": {"content": "together"}},
    )
    assert resp.status_code == 200
    assert resp.json() == [{"text": "silence", "type": "flight", "intensity": "high", "significance": "escapes"}]


def test_analyze_emergence_without_rounds_is_empty(client):
    assert client.post("/analyze-emergence", json={"seed": "s", "rounds": []}).json() == []


def _stream_request(service, disconnected: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(service=service)),
        is_disconnected=AsyncMock(return_value=disconnected),
    )


def _event(chunk: str) -> dict:
    assert chunk.startswith("data: ")
    return json.loads(chunk[len("data: "):])


async def test_progress_stream_emits_each_mutation_then_ends(service):
    tracker = service.open_session("live")
    resp = await progress_stream("live", _stream_request(service))
    events = resp.body_iterator

    first = _event(await anext(events))
    assert first["overallPercent"] == 0
    assert first["finished"] is False
    assert tracker.subscriber_count == 1

    tracker.update_step("initialize", "active", 50)
    tracker.update_step("initialize", "complete", 100)
    assert [_event(await anext(events))["overallPercent"] for _ in range(2)] == [5, 10]

    tracker.complete()
    final = _event(await anext(events))
    assert final["overallPercent"] == 100
    assert final["finished"] is True

    with pytest.raises(StopAsyncIteration):
        await anext(events)
    assert tracker.subscriber_count == 0


async def test_progress_stream_stops_on_disconnect(service):
    tracker = service.open_session("gone")
    resp = await progress_stream("gone", _stream_request(service, disconnected=True))
    events = resp.body_iterator

    assert _event(await anext(events))["finished"] is False
    with pytest.raises(StopAsyncIteration):
        await anext(events)
    assert tracker.subscriber_count == 0
    assert not tracker.finished
