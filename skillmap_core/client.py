# skillmap_core/client.py
"""Async transport to the assessment backend.

The orchestrator and suggestion chain only depend on the ``AssessmentApi``
protocol; ``RemoteAssessmentApi`` is the httpx implementation used in
production, tests substitute an in-memory fake.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

import httpx

from .config import API_BASE, API_TIMEOUT_SEC
from .errors import TransportError
from .options import question_options
from .types import AssessmentProgress, Question, ResponseSubmission, StopSignal

log = logging.getLogger(__name__)

_QUESTION_TYPES = ("text", "typing", "mcq", "choice", "scale")

NextQuestion = Union[Question, StopSignal]


class AssessmentApi(Protocol):
    async def next_question(self, session_token: str) -> NextQuestion: ...
    async def recommended_questions(self, session_token: str, count: int) -> List[Question]: ...
    async def submit_response(self, submission: ResponseSubmission, session_token: str) -> Dict[str, Any]: ...
    async def progress(self, session_token: str) -> AssessmentProgress: ...
    async def session_feedback(self, session_id: str) -> List[Dict[str, Any]]: ...
    async def live_feedback(self, session_id: str) -> Optional[str]: ...


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def question_from_payload(data: Mapping[str, Any]) -> Question:
    qtype = str(data.get("questionType") or data.get("type") or "text").strip().lower()
    if qtype not in _QUESTION_TYPES:
        log.debug("unknown question type %r; treating as text", qtype)
        qtype = "text"
    text = data.get("questionText") or data.get("text") or data.get("question") or ""
    correct = data.get("correctAnswer")
    return Question(
        id=str(data.get("id", "")),
        text=str(text),
        type=qtype,  # type: ignore[arg-type]
        options=question_options(data),
        topic=data.get("topic") or data.get("skillCategory"),
        difficulty=data.get("difficulty") or data.get("difficultyLevel"),
        suggested_length=_int_or_none(data.get("suggestedAnswerLength")),
        correct_answer=str(correct) if correct is not None else None,
        context_hint=data.get("contextHint"),
    )


def progress_from_payload(data: Optional[Mapping[str, Any]]) -> AssessmentProgress:
    data = data or {}
    levels = data.get("skillConfidenceLevels") or data.get("skillConfidences") or {}
    confidences: Dict[str, float] = {}
    if isinstance(levels, Mapping):
        for code, conf in levels.items():
            try:
                confidences[str(code)] = float(conf)
            except (TypeError, ValueError):
                continue
    return AssessmentProgress(
        questions_answered=_int_or_none(data.get("questionsAnswered")) or 0,
        total_questions=_int_or_none(data.get("totalQuestions")) or 0,
        overall_progress=float(data.get("overallProgress") or 0.0),
        skill_confidences=confidences,
    )


class RemoteAssessmentApi:
    def __init__(
        self,
        base_url: str = API_BASE,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = API_TIMEOUT_SEC,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_id = user_id
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteAssessmentApi":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        h: Dict[str, str] = {}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        if self.user_id:
            h["X-User-Id"] = str(self.user_id)
        return h

    async def _request(self, method: str, path: str, *, allow_missing: bool = False, **kw: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kw)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e
        if allow_missing and resp.status_code in (204, 404):
            return None
        if resp.status_code >= 400:
            log.warning("%s %s returned %d", method, path, resp.status_code)
            raise TransportError(f"{method} {path} returned {resp.status_code}", status=resp.status_code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    @staticmethod
    def _decode(what: str, build: Callable[[Any], Any], data: Any) -> Any:
        """Malformed bodies are reported like any other failed call."""
        try:
            return build(data)
        except (AttributeError, TypeError, ValueError) as e:
            log.warning("%s returned a malformed payload: %s", what, e)
            raise TransportError(f"{what} returned a malformed payload: {e}") from e

    # ---- question loop ----
    async def next_question(self, session_token: str) -> NextQuestion:
        path = f"/questions/next/{session_token}"
        data = await self._request("GET", path) or {}
        if self._decode(f"GET {path}", lambda d: d.get("shouldStop"), data):
            return StopSignal(reason=data.get("reason"))
        return self._decode(f"GET {path}", question_from_payload, data)

    async def recommended_questions(self, session_token: str, count: int) -> List[Question]:
        path = f"/questions/recommended/{session_token}"
        data = await self._request("GET", path, params={"count": count})
        if data is not None and not isinstance(data, list):
            raise TransportError(f"GET {path} returned a malformed payload: expected a list")
        return [self._decode(f"GET {path}", question_from_payload, q) for q in (data or []) if isinstance(q, Mapping)]

    async def submit_response(self, submission: ResponseSubmission, session_token: str) -> Dict[str, Any]:
        data = await self._request(
            "POST", "/responses", params={"sessionToken": session_token}, json=submission.to_payload()
        )
        return data if isinstance(data, dict) else {"ok": True}

    async def progress(self, session_token: str) -> AssessmentProgress:
        path = f"/questions/progress/{session_token}"
        return self._decode(f"GET {path}", progress_from_payload, await self._request("GET", path))

    # ---- read-only lookups; missing records are a normal outcome ----
    async def session_feedback(self, session_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/user-data/session/{session_id}/feedback", allow_missing=True)
        return [f for f in (data or []) if isinstance(f, dict)]

    async def live_feedback(self, session_id: str) -> Optional[str]:
        data = await self._request("GET", f"/feedback/{session_id}")
        if isinstance(data, Mapping):
            data = data.get("content") or data.get("suggestions")
        return str(data) if data else None

    async def resume_data(self, session_token: str) -> Optional[Dict[str, Any]]:
        data = await self._request("GET", f"/resume/session/token/{session_token}", allow_missing=True)
        return data if isinstance(data, dict) else None

    async def session_responses(self, session_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/responses/session/{session_id}", allow_missing=True)
        return [r for r in (data or []) if isinstance(r, dict)]

    async def cognitive_analysis(self, session_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/cognitive/bias-analysis/session/{session_id}", allow_missing=True)
        if data is None:
            data = await self._request(
                "GET", f"/user-data/session/{session_id}/cognitive-analysis", allow_missing=True
            )
        if isinstance(data, Mapping):
            data = data.get("biases") or []
        return [b for b in (data or []) if isinstance(b, dict)]
