from __future__ import annotations

import asyncio
from typing import Any

import pytest

from skillmap_core.errors import TransportError
from skillmap_core.types import AssessmentProgress, Question, ResponseSubmission, StopSignal


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_questions(n: int = 3, qtype: str = "text", prefix: str = "q") -> list[Question]:
    """Deterministic question list; choice questions get four options with 'A' correct."""

    out: list[Question] = []
    for i in range(1, n + 1):
        options = ["A", "B", "C", "D"] if qtype in ("mcq", "choice") else []
        out.append(
            Question(
                id=f"{prefix}{i}",
                text=f"{qtype} question #{i}",
                type=qtype,  # type: ignore[arg-type]
                options=options,
                topic="javascript",
                correct_answer="A" if options else None,
            )
        )
    return out


class FakeAssessmentApi:
    """In-memory backend.

    ``next_question`` serves ``script`` entries first (an exception entry is
    raised), then the question at index ``len(submissions)``; past the end
    it returns a stop signal. ``pages`` feeds ``recommended_questions`` one
    page per call.
    """

    def __init__(
        self,
        questions: list[Question] | None = None,
        pages: list[list[Question]] | None = None,
        confidences: dict[str, float] | None = None,
        total: int = 10,
    ):
        self.questions = list(questions or [])
        self.pages = list(pages or [])
        self.script: list[Any] = []
        self.progress_errors: list[Exception] = []
        self.confidences = dict(confidences or {"javascript": 0.4})
        self.total = total
        self.fail_submit: dict[str, int] = {}
        self.submissions: list[ResponseSubmission] = []
        self.feedback_records: list[dict[str, Any]] = []
        self.live_text: str | None = None
        self.feedback_error: Exception | None = None
        self.live_error: Exception | None = None
        self.submit_gate: asyncio.Event | None = None
        self.fetch_delay = 0
        self.calls: dict[str, int] = {}
        self.closed = False

    def _hit(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    async def next_question(self, session_token: str):
        self._hit("next_question")
        if self.script:
            entry = self.script.pop(0)
        else:
            idx = len(self.submissions)
            entry = self.questions[idx] if idx < len(self.questions) else StopSignal(reason="ASSESSMENT_COMPLETE")
        for _ in range(self.fetch_delay):
            await asyncio.sleep(0)
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def recommended_questions(self, session_token: str, count: int) -> list[Question]:
        self._hit("recommended_questions")
        page_no = self.calls["recommended_questions"] - 1
        return list(self.pages[page_no][:count]) if page_no < len(self.pages) else []

    async def submit_response(self, submission: ResponseSubmission, session_token: str) -> dict[str, Any]:
        self._hit("submit_response")
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        remaining = self.fail_submit.get(submission.question_id, 0)
        if remaining:
            self.fail_submit[submission.question_id] = remaining - 1
            raise TransportError("POST /responses returned 500", status=500)
        self.submissions.append(submission)
        return {"ok": True}

    async def progress(self, session_token: str) -> AssessmentProgress:
        self._hit("progress")
        if self.progress_errors:
            raise self.progress_errors.pop(0)
        answered = len(self.submissions)
        return AssessmentProgress(
            questions_answered=answered,
            total_questions=self.total,
            overall_progress=answered / self.total if self.total else 0.0,
            skill_confidences=dict(self.confidences),
        )

    async def session_feedback(self, session_id: str) -> list[dict[str, Any]]:
        self._hit("session_feedback")
        if self.feedback_error is not None:
            raise self.feedback_error
        return list(self.feedback_records)

    async def live_feedback(self, session_id: str) -> str | None:
        self._hit("live_feedback")
        if self.live_error is not None:
            raise self.live_error
        return self.live_text

    async def resume_data(self, session_token: str):
        return None

    async def session_responses(self, session_id: str):
        return []

    async def cognitive_analysis(self, session_id: str):
        return []

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "FakeAssessmentApi":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_api() -> FakeAssessmentApi:
    return FakeAssessmentApi(questions=build_questions(3))
