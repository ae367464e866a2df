from __future__ import annotations

import asyncio
import json

import app_cli.run_assessment as run_assessment
from skillmap_core.types import Question
from tests.conftest import FakeAssessmentApi, build_questions


def _script_input(monkeypatch, *lines: str) -> None:
    it = iter(lines)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(it))


def test_single_mode_runs_to_completion(monkeypatch, capsys):
    api = FakeAssessmentApi(questions=build_questions(1), confidences={"javascript": 0.3})
    monkeypatch.setattr(run_assessment, "RemoteAssessmentApi", lambda base_url, token: api)
    _script_input(monkeypatch, "closures capture scope", "80")

    code = asyncio.run(run_assessment.run("tok", "http://backend.test", False, "Frontend Developer", None))

    assert code == 0
    assert api.submissions[0].response_text == "closures capture scope"
    assert api.submissions[0].metrics.confidence == 0.8
    assert api.closed is True
    out = capsys.readouterr().out
    assert "Assessment finished (ASSESSMENT_COMPLETE)." in out
    report = json.loads(out[out.index("{"):])
    assert report["gaps"]["opportunities"][0]["skill"] == "javascript"


def test_batch_mode_and_invalid_choice(monkeypatch, capsys):
    api = FakeAssessmentApi(pages=[build_questions(1, "mcq")])
    monkeypatch.setattr(run_assessment, "RemoteAssessmentApi", lambda base_url, token: api)
    _script_input(monkeypatch, "9", "0", "")

    code = asyncio.run(run_assessment.run("tok", "http://backend.test", True, None, None))

    assert code == 0
    assert [s.response_choice for s in api.submissions] == ["A"]
    assert api.submissions[0].is_correct is True
    out = capsys.readouterr().out
    assert "Not submitted: q1: a choice must be selected" in out
    assert "NO_MORE_QUESTIONS" in out


def test_unreachable_backend_exits_nonzero(monkeypatch, capsys):
    from skillmap_core.errors import TransportError

    api = FakeAssessmentApi()
    api.script = [TransportError("GET /questions/next/tok failed")]
    monkeypatch.setattr(run_assessment, "RemoteAssessmentApi", lambda base_url, token: api)

    assert asyncio.run(run_assessment.run("tok", "http://backend.test", False, None, None)) == 1
    assert "Backend unavailable" in capsys.readouterr().out


def test_batch_page_without_options_ends_the_loop(monkeypatch, capsys):
    page = build_questions(1, "mcq") + [Question("q2", "Pick a framework", "mcq")]
    api = FakeAssessmentApi(pages=[page, page])
    monkeypatch.setattr(run_assessment, "RemoteAssessmentApi", lambda base_url, token: api)
    _script_input(monkeypatch, "0", "")

    code = asyncio.run(run_assessment.run("tok", "http://backend.test", True, None, None))

    assert code == 0
    assert api.submissions == []
    out = capsys.readouterr().out
    assert "(no options available)" in out
    assert "This page cannot be answered; stopping." in out
