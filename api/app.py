from __future__ import annotations
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import logging, os, typing as t

from skillmap_core.client import AssessmentApi, RemoteAssessmentApi
from skillmap_core.config import API_BASE, BATCH_SIZE, CACHE_TTL_HOURS, AnalyzerSettings, load_config
from skillmap_core.errors import SuggestionsUnavailable, TransportError
from skillmap_core.gaps import analyze
from skillmap_core.llm_cfg import settings as llm_settings
from skillmap_core.orchestrator import Answer, SessionOrchestrator, SessionState
from skillmap_core.progress import skill_levels
from skillmap_core.reporting import build_report, gap_payload, to_basic
from skillmap_core.resources import load_catalog, match
from skillmap_core.store import TTLCache
from skillmap_core.suggestions import (
    BackendFeedbackProvider,
    GenerativeProvider,
    HistoricalFeedbackProvider,
    SuggestionContext,
    SuggestionService,
    format_suggestions,
)
from .storage import (
    JsonFileStore,
    active_sessions_for_user,
    clear_active_session,
    record_active_session,
    update_active_session,
    utcnow_iso,
)

log = logging.getLogger(__name__)


def _default_api(token: str | None, user_id: str | None) -> AssessmentApi:
    return RemoteAssessmentApi(base_url=os.getenv("API_BASE", API_BASE), token=token, user_id=user_id)


# swapped out in tests
API_FACTORY: t.Callable[[str | None, str | None], AssessmentApi] = _default_api

SESS: dict[str, SessionOrchestrator] = {}
SESSION_INFO: dict[str, dict[str, t.Any]] = {}
CACHE = TTLCache(JsonFileStore(), ttl_seconds=CACHE_TTL_HOURS * 3600)

app = FastAPI(title="SkillMap Assessment API")

ALLOWED_ORIGINS = [
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.exception_handler(TransportError)
async def _transport_error(_req: Request, exc: TransportError):
    return JSONResponse(status_code=502, content={"detail": str(exc), "upstream_status": exc.status})


@app.exception_handler(SuggestionsUnavailable)
async def _suggestions_unavailable(_req: Request, exc: SuggestionsUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ---- Schemas ----
class LevelsReq(BaseModel):
    confidences: dict[str, float] | None = None

class GapsReq(BaseModel):
    skills: list[dict[str, t.Any]] | None = None
    confidences: dict[str, float] | None = None
    target_role: str | None = None
    resume: dict[str, t.Any] | None = None
    responses: list[dict[str, t.Any]] | None = None

class MatchReq(BaseModel):
    gaps: list[t.Union[str, dict[str, t.Any]]] = Field(default_factory=list)

class StartReq(BaseModel):
    session_token: str
    mode: str = "single"        # "single" | "batch"
    batch_size: int = BATCH_SIZE
    user_id: str | None = None
    auth_token: str | None = None

class AnswerReq(BaseModel):
    text: str | None = None
    choice: str | None = None
    scale: int | None = None
    confidence: float = 0.5
    edit_count: int | None = None
    paste_detected: bool = False

class BatchReq(BaseModel):
    answers: dict[str, AnswerReq]


# ---- Helpers ----
def _session_or_404(sid: str) -> SessionOrchestrator:
    orch = SESS.get(sid)
    if not orch:
        raise HTTPException(404, "session not found")
    return orch


def _serialize_session(orch: SessionOrchestrator) -> dict[str, t.Any]:
    return {
        "session_id": orch.session_id,
        "mode": orch.mode,
        "state": orch.state.value,
        "loading": orch.loading,
        "question": to_basic(orch.current_question),
        "questions": to_basic(orch.questions),
        "progress": to_basic(orch.progress),
        "skills": to_basic(skill_levels(orch.progress.skill_confidences if orch.progress else None)),
        "stop_reason": orch.stop_reason,
        "error": orch.last_error,
    }


def _to_answer(orch: SessionOrchestrator, question_id: str | None, req: AnswerReq) -> Answer:
    if question_id is not None:
        tracker = orch.tracker_for(question_id)
        if req.edit_count is not None:
            tracker.edit_count = max(0, req.edit_count)
        if req.paste_detected:
            tracker.on_paste()
    return Answer(text=req.text, choice=req.choice, scale=req.scale, confidence=req.confidence)


def _suggestion_service(sid: str, api: AssessmentApi) -> SuggestionService:
    orch = SESS.get(sid)

    async def _context(session_id: str) -> SuggestionContext:
        resume = await api.resume_data(session_id) if hasattr(api, "resume_data") else None
        biases = await api.cognitive_analysis(session_id) if hasattr(api, "cognitive_analysis") else None
        summary = to_basic(orch.progress) if orch and orch.progress else None
        return SuggestionContext(resume_data=resume, cognitive_biases=biases, session_summary=summary)

    cfg = load_config()
    return SuggestionService(
        CACHE,
        [
            HistoricalFeedbackProvider(api.session_feedback),
            BackendFeedbackProvider(api.live_feedback),
            GenerativeProvider(llm_settings(cfg), _context),
        ],
    )


# ---- Health ----
@app.get("/")
def root():
    return {"status": "ok", "service": "skillmap-assessment-api"}


@app.get("/health")
def health():
    return {
        "api_base": os.getenv("API_BASE", API_BASE),
        "active_sessions": len(SESS),
        "llm_configured": llm_settings(load_config()) is not None,
    }


# ---- Analysis ----
@app.post("/progress/levels")
def progress_levels(req: LevelsReq):
    return {"skills": to_basic(skill_levels(req.confidences))}


@app.post("/analysis/gaps")
def analysis_gaps(req: GapsReq):
    skills: list[t.Any] = list(req.skills or [])
    if not skills and req.confidences:
        skills = skill_levels(req.confidences)
    res = analyze(skills, req.target_role, req.resume, req.responses, AnalyzerSettings.from_cfg(load_config()))
    return gap_payload(res)


@app.post("/resources/match")
def resources_match(req: MatchReq):
    settings = AnalyzerSettings.from_cfg(load_config())
    res = match(load_catalog(), req.gaps, top_n=settings.resource_top_n, threshold=settings.resource_min_relevance)
    return {"path": res.path, "items": to_basic(res.resources)}


@app.post("/analysis/report")
def analysis_report(req: GapsReq):
    return build_report(req.confidences, req.target_role, req.resume, req.responses, load_config())


# ---- Session loop ----
@app.post("/session/start")
async def start(req: StartReq):
    if req.mode not in ("single", "batch"):
        raise HTTPException(422, "mode must be 'single' or 'batch'")
    sid = req.session_token
    orch = SESS.get(sid)
    if orch is None:
        api = API_FACTORY(req.auth_token, req.user_id)
        orch = SessionOrchestrator(api, sid, mode=req.mode, batch_size=req.batch_size)
        SESS[sid] = orch
        SESSION_INFO[sid] = {"user_id": req.user_id, "started_at": utcnow_iso()}
        if req.user_id:
            record_active_session(
                sid,
                {"sessionId": sid, "userId": req.user_id, "mode": req.mode,
                 "startedAt": SESSION_INFO[sid]["started_at"], "lastUpdated": SESSION_INFO[sid]["started_at"]},
            )
    await orch.start()
    return _serialize_session(orch)


@app.get("/session/{sid}")
def session_state(sid: str):
    return _serialize_session(_session_or_404(sid))


@app.post("/session/{sid}/reload")
async def session_reload(sid: str):
    orch = _session_or_404(sid)
    await orch.reload()
    return _serialize_session(orch)


@app.get("/session/{sid}/progress")
async def session_progress(sid: str):
    orch = _session_or_404(sid)
    progress = await orch.load_progress()
    return {
        "progress": to_basic(progress),
        "skills": to_basic(skill_levels(progress.skill_confidences if progress else None)),
    }


@app.post("/session/{sid}/answer")
async def session_answer(sid: str, req: AnswerReq):
    orch = _session_or_404(sid)
    qid = orch.current_question.id if orch.current_question else None
    outcome = await orch.submit(_to_answer(orch, qid, req))
    if outcome.accepted and SESSION_INFO.get(sid, {}).get("user_id"):
        update_active_session(sid, {"lastUpdated": utcnow_iso(), "state": orch.state.value})
    return {"accepted": outcome.accepted, "error": outcome.error, **_serialize_session(orch)}


@app.post("/session/{sid}/batch")
async def session_batch(sid: str, req: BatchReq):
    orch = _session_or_404(sid)
    answers = {qid: _to_answer(orch, qid, a) for qid, a in req.answers.items()}
    outcome = await orch.submit_batch(answers)
    return {
        "accepted": outcome.accepted,
        "error": outcome.error,
        "submitted": outcome.submitted,
        "failed": outcome.failed,
        **_serialize_session(orch),
    }


@app.delete("/session/{sid}")
async def session_finish(sid: str):
    orch = _session_or_404(sid)
    SESS.pop(sid, None)
    info = SESSION_INFO.pop(sid, {})
    if info.get("user_id"):
        clear_active_session(sid)
    if hasattr(orch.api, "aclose"):
        await orch.api.aclose()
    return {"ok": True, "state": orch.state.value, "stopped": orch.state == SessionState.STOPPED}


@app.get("/users/{user_id}/sessions/active")
def list_active_sessions(user_id: str):
    return {"sessions": active_sessions_for_user(user_id)}


# ---- Suggestions ----
@app.get("/sessions/{sid}/suggestions")
async def session_suggestions(sid: str, refresh: bool = Query(False, description="Bypass the local cache")):
    orch = SESS.get(sid)
    api = orch.api if orch else API_FACTORY(None, None)
    try:
        text = await _suggestion_service(sid, api).get_suggestions(sid, refresh=refresh)
    finally:
        if orch is None and hasattr(api, "aclose"):
            await api.aclose()
    return {"session_id": sid, "suggestions": text, "points": format_suggestions(text)}
