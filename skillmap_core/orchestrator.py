# skillmap_core/orchestrator.py
"""Per-session question/answer loop.

One ``SessionOrchestrator`` drives one assessment session through
fetch -> answer -> submit -> refresh until the backend signals a stop.
The state is an explicit enum; ``loading`` is derived from it so it can
never be left set after a failed call.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Set

from .client import AssessmentApi, NextQuestion
from .config import BATCH_SIZE, DEFAULT_CONFIDENCE, DEFAULT_SCALE, DEBUG_TRANSITIONS, STOP_REASON_EMPTY_PAGE
from .errors import TransportError
from .instrumentation import AnswerTracker
from .types import AssessmentProgress, CHOICE_TYPES, TEXT_TYPES, Question, ResponseSubmission, StopSignal

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    FETCHING_QUESTION = "fetching_question"
    AWAITING_ANSWER = "awaiting_answer"
    SUBMITTING = "submitting"
    STOPPED = "stopped"
    ERROR = "error"


_ALLOWED: Dict[SessionState, frozenset] = {
    SessionState.IDLE: frozenset({SessionState.FETCHING_QUESTION}),
    SessionState.FETCHING_QUESTION: frozenset(
        {SessionState.AWAITING_ANSWER, SessionState.STOPPED, SessionState.ERROR}
    ),
    SessionState.AWAITING_ANSWER: frozenset({SessionState.SUBMITTING, SessionState.FETCHING_QUESTION}),
    SessionState.SUBMITTING: frozenset({SessionState.FETCHING_QUESTION, SessionState.AWAITING_ANSWER}),
    SessionState.STOPPED: frozenset(),
    SessionState.ERROR: frozenset({SessionState.FETCHING_QUESTION}),
}


@dataclass
class Answer:
    text: Optional[str] = None
    choice: Optional[str] = None
    scale: Optional[int] = None
    confidence: float = DEFAULT_CONFIDENCE


@dataclass
class SubmitOutcome:
    accepted: bool
    state: SessionState
    error: Optional[str] = None


@dataclass
class BatchOutcome:
    accepted: bool
    state: SessionState
    submitted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


def validate_answer(question: Question, answer: Optional[Answer]) -> Optional[str]:
    """Return the reason an answer cannot be submitted, or ``None``."""

    if answer is None:
        return "no answer supplied"
    if question.type in TEXT_TYPES:
        if not (answer.text or "").strip():
            return "answer text is required"
    elif question.type in CHOICE_TYPES:
        if answer.choice is None or answer.choice == "":
            return "a choice must be selected"
    elif question.type == "scale":
        scale = DEFAULT_SCALE if answer.scale is None else answer.scale
        if not 1 <= int(scale) <= 5:
            return "scale value must be between 1 and 5"
    return None


class SessionOrchestrator:
    def __init__(
        self,
        api: AssessmentApi,
        session_id: Optional[str],
        mode: str = "single",
        batch_size: int = BATCH_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        if mode not in ("single", "batch"):
            raise ValueError(f"unknown mode {mode!r}")
        self.api = api
        self.session_id = session_id
        self.mode = mode
        self.batch_size = max(1, int(batch_size))
        self._clock = clock
        self.state = SessionState.IDLE
        self.current_question: Optional[Question] = None
        self.questions: List[Question] = []
        self.progress: Optional[AssessmentProgress] = None
        self.stop_reason: Optional[str] = None
        self.last_error: Optional[str] = None
        self.tracker = AnswerTracker(clock)
        self._trackers: Dict[str, AnswerTracker] = {}
        # question id whose answer the backend already accepted but whose refresh failed
        self._refresh_pending: Optional[str] = None
        # ids on the current page the backend already accepted
        self._batch_submitted: Set[str] = set()

    # ---- state ----
    @property
    def loading(self) -> bool:
        return self.state in (SessionState.FETCHING_QUESTION, SessionState.SUBMITTING)

    def _transition(self, new: SessionState) -> None:
        if new == self.state:
            return
        if new not in _ALLOWED[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {new.value}")
        if DEBUG_TRANSITIONS:
            log.info("session %s: %s -> %s", self.session_id, self.state.value, new.value)
        else:
            log.debug("session %s: %s -> %s", self.session_id, self.state.value, new.value)
        self.state = new

    def _anchor(self) -> Optional[str]:
        if self.mode == "batch":
            return ",".join(q.id for q in self.questions) or None
        return self.current_question.id if self.current_question else None

    def _has_question(self) -> bool:
        return bool(self.questions) if self.mode == "batch" else self.current_question is not None

    def tracker_for(self, question_id: str) -> AnswerTracker:
        if self.mode == "single":
            return self.tracker
        if question_id not in self._trackers:
            self._trackers[question_id] = AnswerTracker(self._clock)
        return self._trackers[question_id]

    # ---- fetching ----
    async def _fetch(self) -> NextQuestion | List[Question]:
        if not self.session_id:
            raise RuntimeError("session id is not set")
        if self.mode == "batch":
            return await self.api.recommended_questions(self.session_id, self.batch_size)
        return await self.api.next_question(self.session_id)

    def _apply(self, result: NextQuestion | List[Question]) -> None:
        if isinstance(result, StopSignal):
            self.current_question = None
            self.stop_reason = result.reason
            self._transition(SessionState.STOPPED)
            return
        if isinstance(result, list):
            if not result:
                self.questions = []
                self.stop_reason = STOP_REASON_EMPTY_PAGE
                self._transition(SessionState.STOPPED)
                return
            self.questions = list(result)
            now = self._clock()
            self._trackers = {q.id: AnswerTracker(self._clock) for q in self.questions}
            for t in self._trackers.values():
                t.reset(now)
        else:
            self.current_question = result
            self.tracker.reset()
        self.stop_reason = None
        self._transition(SessionState.AWAITING_ANSWER)

    def _log_failure(self, what: str, err: Exception) -> None:
        if isinstance(err, TransportError):
            log.warning("%s failed for session %s: %s", what, self.session_id, err)
        else:
            log.error("%s failed for session %s: %r", what, self.session_id, err, exc_info=err)

    def _fail_fetch(self, err: Exception) -> None:
        self.last_error = str(err)
        if self._has_question():
            self._transition(SessionState.AWAITING_ANSWER)
        else:
            self._transition(SessionState.ERROR)

    async def start(self) -> SessionState:
        """Load the first question (or page) together with the progress snapshot."""

        if not self.session_id or self.state not in (SessionState.IDLE, SessionState.ERROR):
            return self.state
        self._transition(SessionState.FETCHING_QUESTION)
        self.last_error = None
        result, progress = await asyncio.gather(self._fetch(), self.api.progress(self.session_id),
                                                return_exceptions=True)
        if isinstance(progress, AssessmentProgress):
            self.progress = progress
        elif isinstance(progress, Exception):
            self._log_failure("progress load", progress)
        if isinstance(result, Exception):
            self._log_failure("question fetch", result)
            self._fail_fetch(result)
        else:
            self._apply(result)
        return self.state

    async def reload(self) -> SessionState:
        """Fetch the next question again; a result for a superseded question is discarded."""

        if self.state in (SessionState.IDLE, SessionState.SUBMITTING, SessionState.STOPPED):
            return self.state
        anchor = self._anchor()
        self._transition(SessionState.FETCHING_QUESTION)
        try:
            result = await self._fetch()
        except Exception as e:
            self._log_failure("question fetch", e)
            if self._anchor() != anchor:
                return self.state
            self._fail_fetch(e)
            return self.state
        if self._anchor() != anchor or self.state != SessionState.FETCHING_QUESTION:
            log.debug("discarding stale question fetch for session %s", self.session_id)
            return self.state
        self._apply(result)
        return self.state

    async def load_progress(self) -> Optional[AssessmentProgress]:
        if not self.session_id:
            return None
        try:
            self.progress = await self.api.progress(self.session_id)
        except Exception as e:
            self._log_failure("progress load", e)
        return self.progress

    async def _refresh(self) -> Optional[str]:
        """Next question and progress, issued together; both must succeed."""

        anchor = self._anchor()
        self._transition(SessionState.FETCHING_QUESTION)
        result, progress = await asyncio.gather(self._fetch(), self.api.progress(self.session_id),
                                                return_exceptions=True)
        failure = next((o for o in (result, progress) if isinstance(o, Exception)), None)
        if failure is not None:
            self._log_failure("refresh", failure)
            if self._anchor() != anchor:
                return None
            self.last_error = str(failure)
            self._transition(SessionState.AWAITING_ANSWER)
            return str(failure)
        if self._anchor() != anchor:
            log.debug("discarding stale refresh for session %s", self.session_id)
            return None
        self.progress = progress
        self._refresh_pending = None
        self._batch_submitted.clear()
        self._apply(result)
        return None

    # ---- submitting ----
    def _build_submission(self, question: Question, answer: Answer, tracker: AnswerTracker) -> ResponseSubmission:
        is_text = question.type in TEXT_TYPES
        is_choice = question.type in CHOICE_TYPES
        metrics = tracker.snapshot(
            question.type,
            text=(answer.text or "") if is_text else "",
            confidence=answer.confidence,
        )
        is_correct = None
        if is_choice and question.correct_answer is not None:
            is_correct = answer.choice == question.correct_answer
        return ResponseSubmission(
            question_id=question.id,
            session_id=str(self.session_id),
            metrics=metrics,
            response_text=answer.text if is_text else None,
            response_choice=answer.choice if is_choice else None,
            response_scale=(DEFAULT_SCALE if answer.scale is None else int(answer.scale))
            if question.type == "scale" else None,
            is_correct=is_correct,
        )

    def _reject(self, reason: str) -> SubmitOutcome:
        log.debug("session %s: submission rejected: %s", self.session_id, reason)
        return SubmitOutcome(accepted=False, state=self.state, error=reason)

    async def submit(self, answer: Answer) -> SubmitOutcome:
        if self.mode != "single":
            return self._reject("use submit_batch in batch mode")
        if self.loading:
            return self._reject("a request is already in flight")
        if self.state != SessionState.AWAITING_ANSWER or self.current_question is None:
            return self._reject(f"not awaiting an answer (state={self.state.value})")
        question = self.current_question
        reason = validate_answer(question, answer)
        if reason:
            return self._reject(reason)

        self._transition(SessionState.SUBMITTING)
        self.last_error = None
        if self._refresh_pending != question.id:
            submission = self._build_submission(question, answer, self.tracker)
            try:
                await self.api.submit_response(submission, str(self.session_id))
            except Exception as e:
                self._log_failure("submission of " + question.id, e)
                self.last_error = str(e)
                self._transition(SessionState.AWAITING_ANSWER)
                return SubmitOutcome(accepted=False, state=self.state, error=str(e))
            self._refresh_pending = question.id

        err = await self._refresh()
        return SubmitOutcome(accepted=err is None, state=self.state, error=err)

    async def submit_batch(self, answers: Mapping[str, Answer]) -> BatchOutcome:
        if self.mode != "batch":
            return BatchOutcome(accepted=False, state=self.state, error="use submit in single mode")
        if self.loading:
            return BatchOutcome(accepted=False, state=self.state, error="a request is already in flight")
        if self.state != SessionState.AWAITING_ANSWER or not self.questions:
            return BatchOutcome(accepted=False, state=self.state,
                                error=f"not awaiting an answer (state={self.state.value})")
        for q in self.questions:
            reason = validate_answer(q, answers.get(q.id))
            if reason:
                return BatchOutcome(accepted=False, state=self.state, error=f"{q.id}: {reason}")

        self._transition(SessionState.SUBMITTING)
        self.last_error = None
        submitted: List[str] = []
        failed: Dict[str, str] = {}
        for q in self.questions:
            if q.id in self._batch_submitted:
                submitted.append(q.id)
                continue
            submission = self._build_submission(q, answers[q.id], self.tracker_for(q.id))
            try:
                await self.api.submit_response(submission, str(self.session_id))
            except Exception as e:
                self._log_failure("batch submission of " + q.id, e)
                failed[q.id] = str(e)
                continue
            self._batch_submitted.add(q.id)
            submitted.append(q.id)

        err = await self._refresh()
        return BatchOutcome(
            accepted=err is None and not failed,
            state=self.state,
            submitted=submitted,
            failed=failed,
            error=err,
        )


__all__ = [
    "Answer",
    "BatchOutcome",
    "SessionOrchestrator",
    "SessionState",
    "SubmitOutcome",
    "validate_answer",
]
