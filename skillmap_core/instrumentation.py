# skillmap_core/instrumentation.py
"""Behavioral metrics captured alongside a single answer.

Everything here is pure arithmetic over timestamps and counters; the
tracker only accumulates input events and never talks to the backend.
"""
from __future__ import annotations
import time
from typing import Callable, Optional

from .types import InstrumentationMetrics, TEXT_TYPES
from .config import DEFAULT_CONFIDENCE


def word_count(text: Optional[str]) -> int:
    t = (text or "").strip()
    if not t:
        return 0
    return len(t.split())


def typing_speed(words: int, elapsed_sec: float) -> float:
    minutes = max(max(0.0, elapsed_sec) / 60.0, 0.001)
    return round((words / minutes) * 100) / 100


def _clamp01(x: float) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, v))


def compute_metrics(
    question_type: str,
    started_at: float,
    now: float,
    text: Optional[str] = None,
    edit_count: int = 0,
    paste_detected: bool = False,
    confidence: float = DEFAULT_CONFIDENCE,
) -> InstrumentationMetrics:
    elapsed = max(0.0, now - started_at)
    seconds = int(elapsed)
    words = word_count(text)
    wpm = typing_speed(words, seconds) if question_type in TEXT_TYPES else None
    return InstrumentationMetrics(
        think_time_sec=seconds,
        total_time_sec=seconds,
        char_count=len(text or ""),
        word_count=words,
        typing_speed_wpm=wpm,
        edit_count=max(0, int(edit_count)),
        paste_detected=bool(paste_detected),
        confidence=_clamp01(confidence),
    )


class AnswerTracker:
    """Per-question input counters; reset whenever a new question arrives."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.reset()

    def reset(self, now: Optional[float] = None) -> None:
        self.started_at = self._clock() if now is None else now
        self.edit_count = 0
        self.paste_detected = False
        self.text = ""
        self.confidence = DEFAULT_CONFIDENCE

    def on_text_change(self, value: str) -> None:
        self.edit_count += 1
        self.text = value or ""

    def on_paste(self) -> None:
        self.paste_detected = True

    def set_confidence(self, value: float) -> None:
        self.confidence = _clamp01(value)

    def snapshot(self, question_type: str, text: Optional[str] = None,
                 confidence: Optional[float] = None, now: Optional[float] = None) -> InstrumentationMetrics:
        return compute_metrics(
            question_type,
            self.started_at,
            self._clock() if now is None else now,
            text=self.text if text is None else text,
            edit_count=self.edit_count,
            paste_detected=self.paste_detected,
            confidence=self.confidence if confidence is None else confidence,
        )
