from __future__ import annotations

import importlib
import json
import sys

import pytest
from fastapi.testclient import TestClient

from tests.conftest import FakeAssessmentApi, build_questions


def _reload_app(tmp_path, monkeypatch) -> tuple[object, object]:
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    for key in ("OPENAI_API_KEY", "AZURE_OPENAI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    if "api.storage" in sys.modules:
        importlib.reload(sys.modules["api.storage"])
    else:
        import api.storage  # noqa: F401
    storage = sys.modules["api.storage"]
    if "api.app" in sys.modules:
        importlib.reload(sys.modules["api.app"])
    else:
        import api.app  # noqa: F401
    app_module = sys.modules["api.app"]
    return storage, app_module


@pytest.fixture
def backend() -> FakeAssessmentApi:
    return FakeAssessmentApi(questions=build_questions(2), confidences={"javascript": 0.4, "sql": 0.9})


@pytest.fixture
def app_env(tmp_path, monkeypatch, backend):
    storage, app_module = _reload_app(tmp_path, monkeypatch)
    monkeypatch.setattr(app_module, "API_FACTORY", lambda token, user_id: backend)
    return storage, app_module, TestClient(app_module.app)


def test_progress_levels(app_env):
    _, _, client = app_env
    resp = client.post("/progress/levels", json={"confidences": {"problem_solving": 0.79}})
    assert resp.status_code == 200
    assert resp.json()["skills"] == [{"name": "problem solving", "level": 4, "confidence": 0.79}]


def test_gaps_and_no_gaps_message(app_env):
    _, _, client = app_env
    body = client.post("/analysis/gaps", json={"confidences": {"javascript": 0.4}}).json()
    assert body["hasGaps"] is True
    assert body["opportunities"][0]["skill"] == "javascript"
    assert body["opportunities"][0]["growth"] == 2.0

    body = client.post("/analysis/gaps", json={"skills": [{"name": "sql", "level": 5}]}).json()
    assert body["status"] == "no_gaps"
    assert body["message"].startswith("Your skills are well-developed")


def test_resource_match_default_slice(app_env):
    _, _, client = app_env
    body = client.post("/resources/match", json={"gaps": []}).json()
    assert body["path"] == "default"
    assert [r["resource"]["id"] for r in body["items"]] == [1, 2, 3, 4]


def test_report_combines_levels_gaps_resources(app_env):
    _, _, client = app_env
    body = client.post("/analysis/report", json={
        "confidences": {"javascript": 0.4, "sql": 0.95}, "target_role": "Frontend Developer",
    }).json()
    assert [s["name"] for s in body["skills"]] == ["javascript", "sql"]
    assert body["gaps"]["total_opportunities"] == 1
    assert body["resources"]["path"] == "relevant"
    assert body["resources"]["items"][0]["resource"]["title"] == "JavaScript Fundamentals"


def test_session_loop(app_env, backend):
    storage, _, client = app_env
    start = client.post("/session/start", json={"session_token": "tok", "user_id": "u1"}).json()
    assert start["state"] == "awaiting_answer"
    assert start["question"]["id"] == "q1"
    assert start["skills"][0] == {"name": "javascript", "level": 2, "confidence": 0.4}

    rejected = client.post("/session/tok/answer", json={"text": ""}).json()
    assert rejected["accepted"] is False
    assert rejected["question"]["id"] == "q1"

    ok = client.post("/session/tok/answer", json={"text": "uses a closure", "edit_count": 5}).json()
    assert ok["accepted"] is True
    assert ok["question"]["id"] == "q2"
    assert backend.submissions[0].metrics.edit_count == 5

    done = client.post("/session/tok/answer", json={"text": "final answer", "paste_detected": True}).json()
    assert done["state"] == "stopped"
    assert backend.submissions[1].metrics.paste_detected is True

    active = client.get("/users/u1/sessions/active").json()["sessions"]
    assert [s["sessionId"] for s in active] == ["tok"]
    assert json.loads(storage.ACTIVE_SESSIONS_PATH.read_text())["tok"]["state"] == "stopped"

    fin = client.delete("/session/tok").json()
    assert fin == {"ok": True, "state": "stopped", "stopped": True}
    assert backend.closed is True
    assert client.get("/users/u1/sessions/active").json()["sessions"] == []
    assert client.get("/session/tok").status_code == 404


def test_batch_session(tmp_path, monkeypatch):
    backend = FakeAssessmentApi(pages=[build_questions(2, "scale")])
    _, app_module = _reload_app(tmp_path, monkeypatch)
    monkeypatch.setattr(app_module, "API_FACTORY", lambda token, user_id: backend)
    client = TestClient(app_module.app)

    start = client.post("/session/start", json={"session_token": "b1", "mode": "batch"}).json()
    assert [q["id"] for q in start["questions"]] == ["q1", "q2"]
    body = client.post("/session/b1/batch", json={"answers": {"q1": {"scale": 4}, "q2": {}}}).json()
    assert body["submitted"] == ["q1", "q2"]
    assert body["state"] == "stopped"
    assert [s.response_scale for s in backend.submissions] == [4, 3]


def test_bad_mode_rejected(app_env):
    _, _, client = app_env
    assert client.post("/session/start", json={"session_token": "x", "mode": "paged"}).status_code == 422


def test_suggestions_cached_on_disk(app_env, backend):
    storage, _, client = app_env
    backend.live_text = "1. Practice SQL\n2. Build a React app"
    client.post("/session/start", json={"session_token": "tok"})

    body = client.get("/sessions/tok/suggestions").json()
    assert body["suggestions"] == backend.live_text
    assert [p["text"] for p in body["points"]] == ["Practice SQL", "Build a React app"]
    assert "ai_suggestions_tok" in json.loads(storage.CACHE_PATH.read_text())

    client.get("/sessions/tok/suggestions")
    assert backend.calls["live_feedback"] == 1
    client.get("/sessions/tok/suggestions", params={"refresh": True})
    assert backend.calls["live_feedback"] == 2


def test_suggestions_unavailable_is_503(app_env, backend):
    _, _, client = app_env
    resp = client.get("/sessions/unknown/suggestions")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Unable to load AI suggestions at this time. Please try again later."
    assert backend.closed is True


def test_health_reports_llm_unconfigured(app_env):
    _, _, client = app_env
    body = client.get("/health").json()
    assert body["llm_configured"] is False
    assert body["active_sessions"] == 0


def test_progress_refresh(app_env, backend):
    _, _, client = app_env
    client.post("/session/start", json={"session_token": "tok"})
    backend.confidences = {"sql": 1.0}
    body = client.get("/session/tok/progress").json()
    assert body["progress"]["skill_confidences"] == {"sql": 1.0}
    assert body["skills"] == [{"name": "sql", "level": 5, "confidence": 1.0}]


def test_health_with_incomplete_azure_config(app_env, tmp_path, monkeypatch):
    _, _, client = app_env
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "az-key")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.delenv("AZURE_OPENAI_API_VERSION", raising=False)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["llm_configured"] is False

    client.post("/session/start", json={"session_token": "tok"})
    assert client.get("/sessions/tok/suggestions").status_code == 503


def test_session_info_keeps_no_credentials(app_env):
    _, app_module, client = app_env
    client.post("/session/start", json={"session_token": "tok", "user_id": "u1", "auth_token": "jwt"})
    assert "auth_token" not in app_module.SESSION_INFO["tok"]
    assert app_module.SESSION_INFO["tok"]["user_id"] == "u1"
