# app_cli/run_assessment.py
from __future__ import annotations
import argparse, asyncio, json, logging, os
from typing import Optional
from skillmap_core.client import RemoteAssessmentApi
from skillmap_core.config import API_BASE, BATCH_SIZE
from skillmap_core.orchestrator import Answer, SessionOrchestrator, SessionState
from skillmap_core.progress import skill_levels
from skillmap_core.reporting import build_report
from skillmap_core.types import Question, TEXT_TYPES, CHOICE_TYPES

def _ask_confidence() -> float:
    raw = input("Confidence 0-100 [50]: ").strip()
    try: return max(0.0, min(1.0, int(raw) / 100.0)) if raw else 0.5
    except ValueError: return 0.5

def ask(q: Question, tracker) -> Optional[Answer]:
    hint = f" (~{q.suggested_length} words)" if q.suggested_length else ""
    print(f"\n--- {q.type.upper()} | {q.topic or ''} | id={q.id} ---\n{q.text}{hint}")
    if q.type in TEXT_TYPES:
        text = input("Your answer: ")
        tracker.on_text_change(text)
        return Answer(text=text, confidence=_ask_confidence())
    if q.type in CHOICE_TYPES:
        if not q.options:
            print("  (no options available)")
            return None
        for i, opt in enumerate(q.options): print(f"  [{i}] {opt}")
        raw = input("Your choice (index): ").strip()
        if not raw.isdigit() or int(raw) >= len(q.options): return Answer(choice=None)
        return Answer(choice=q.options[int(raw)], confidence=_ask_confidence())
    raw = input("Scale 1-5 [3]: ").strip()
    return Answer(scale=int(raw) if raw.isdigit() else None, confidence=_ask_confidence())

def _show_progress(orch: SessionOrchestrator) -> None:
    p = orch.progress
    if not p: return
    print(f"Progress: {p.questions_answered}/{p.total_questions or '?'} ({round(p.overall_progress*100)}%)")
    for s in skill_levels(p.skill_confidences):
        print(f"  {s.name:<24} level {s.level}  ({round((s.confidence or 0)*100)}%)")

async def run(token: str, api_base: str, batch: bool, role: Optional[str], auth: Optional[str]) -> int:
    async with RemoteAssessmentApi(base_url=api_base, token=auth) as api:
        orch = SessionOrchestrator(api, token, mode="batch" if batch else "single", batch_size=BATCH_SIZE)
        await orch.start()
        while orch.state == SessionState.AWAITING_ANSWER:
            if batch:
                answers = {}
                for q in orch.questions:
                    a = ask(q, orch.tracker_for(q.id))
                    if a is None: break
                    answers[q.id] = a
                if len(answers) < len(orch.questions):
                    print("This page cannot be answered; stopping."); break
                out = await orch.submit_batch(answers)
                if out.failed: print(f"Failed submissions: {', '.join(out.failed)}")
            else:
                a = ask(orch.current_question, orch.tracker)
                if a is None: break
                out = await orch.submit(a)
            if not out.accepted and out.error: print(f"Not submitted: {out.error}")
            _show_progress(orch)
        if orch.state == SessionState.ERROR:
            print(f"Backend unavailable: {orch.last_error}"); return 1
        print(f"\nAssessment finished ({orch.stop_reason or orch.state.value}).")
        if orch.progress:
            resume = await api.resume_data(token)
            responses = await api.session_responses(token)
            report = build_report(orch.progress.skill_confidences, role, resume, responses)
            print(json.dumps(report, indent=2))
    return 0

def main():
    ap = argparse.ArgumentParser(description="Run an adaptive assessment session in the terminal.")
    ap.add_argument("--token", required=True, help="assessment session token")
    ap.add_argument("--api", default=os.getenv("API_BASE", API_BASE))
    ap.add_argument("--batch", action="store_true", help="answer questions in pages")
    ap.add_argument("--role", default=None, help="target role for the gap report")
    ap.add_argument("--auth", default=os.getenv("SKILLMAP_TOKEN"), help="bearer token")
    ap.add_argument("-v", "--verbose", action="store_true")
    a = ap.parse_args()
    logging.basicConfig(level=logging.DEBUG if a.verbose else logging.WARNING)
    try:
        raise SystemExit(asyncio.run(run(a.token, a.api, a.batch, a.role, a.auth)))
    except KeyboardInterrupt:
        print("\nStopped by user.")
if __name__ == "__main__": main()
