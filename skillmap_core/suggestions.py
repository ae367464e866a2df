# skillmap_core/suggestions.py
"""AI suggestion lookup fronted by a 24h per-session cache.

Sources are tried in order (historical record, live backend feedback,
generative fallback) and the first non-empty text wins. Nothing is cached
unless a source succeeds.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from .errors import SuggestionsUnavailable, TransportError
from .llm_bridge import build_suggestions_prompt, generate_suggestions
from .llm_cfg import LLMSettings
from .store import TTLCache

log = logging.getLogger(__name__)

FEEDBACK_KIND = "AI_SUGGESTIONS"


class SuggestionProvider(Protocol):
    name: str

    async def __call__(self, session_id: str) -> Optional[str]: ...


class HistoricalFeedbackProvider:
    """Previously persisted suggestions for the session, if the backend kept any."""

    name = "historical"

    def __init__(self, lookup: Callable[[str], Awaitable[List[Dict[str, Any]]]]):
        self._lookup = lookup

    async def __call__(self, session_id: str) -> Optional[str]:
        records = await self._lookup(session_id)
        for rec in records or []:
            if rec.get("feedbackType") == FEEDBACK_KIND and rec.get("content"):
                return str(rec["content"])
        return None


class BackendFeedbackProvider:
    name = "backend"

    def __init__(self, fetch: Callable[[str], Awaitable[Optional[str]]]):
        self._fetch = fetch

    async def __call__(self, session_id: str) -> Optional[str]:
        return await self._fetch(session_id)


@dataclass
class SuggestionContext:
    resume_data: Any = None
    cognitive_biases: Optional[List[Dict[str, Any]]] = None
    session_summary: Any = None


class GenerativeProvider:
    """Client-side fallback; skipped entirely when no credential is configured."""

    name = "generative"

    def __init__(
        self,
        settings: Optional[LLMSettings],
        context: Callable[[str], Awaitable[SuggestionContext]] | None = None,
        generate: Callable[[LLMSettings, str], Awaitable[str]] = generate_suggestions,
    ):
        self.settings = settings
        self._context = context
        self._generate = generate

    @property
    def available(self) -> bool:
        return self.settings is not None

    async def __call__(self, session_id: str) -> Optional[str]:
        if self.settings is None:
            return None
        ctx = await self._context(session_id) if self._context else SuggestionContext()
        prompt = build_suggestions_prompt(ctx.resume_data, ctx.cognitive_biases, ctx.session_summary)
        return await self._generate(self.settings, prompt)


class SuggestionService:
    def __init__(self, cache: TTLCache, providers: Sequence[SuggestionProvider]):
        self.cache = cache
        self.providers = list(providers)

    async def get_suggestions(self, session_id: str, refresh: bool = False) -> str:
        if not session_id:
            raise SuggestionsUnavailable()
        if not refresh:
            hit = self.cache.get(session_id)
            if hit is not None:
                return hit.value

        last_error: Optional[Exception] = None
        for provider in self.providers:
            name = getattr(provider, "name", type(provider).__name__)
            try:
                text = await provider(session_id)
            except (TransportError, SuggestionsUnavailable) as e:
                log.warning("suggestion source %s failed for %s: %s", name, session_id, e)
                last_error = e
                continue
            except Exception as e:  # openai SDK errors
                log.warning("suggestion source %s raised %s for %s", name, type(e).__name__, session_id)
                last_error = e
                continue
            if text and text.strip():
                log.info("suggestions for %s served by %s", session_id, name)
                self.cache.put(session_id, text)
                return text
        log.error("all suggestion sources exhausted for %s", session_id)
        raise SuggestionsUnavailable() from last_error


_POINT_SPLIT = re.compile(r"\d+\.\s+|•\s+")


def format_suggestions(text: Optional[str]) -> List[Dict[str, Any]]:
    if not text:
        return []
    points = [p.strip() for p in _POINT_SPLIT.split(text) if p.strip()]
    return [{"id": i, "text": p} for i, p in enumerate(points)]


__all__ = [
    "BackendFeedbackProvider",
    "FEEDBACK_KIND",
    "GenerativeProvider",
    "HistoricalFeedbackProvider",
    "SuggestionContext",
    "SuggestionService",
    "format_suggestions",
]
