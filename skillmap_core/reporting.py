# skillmap_core/reporting.py
from __future__ import annotations
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from .config import AnalyzerSettings
from .gaps import NO_GAPS_MESSAGE, analyze
from .progress import skill_levels
from .resources import load_catalog, match
from .types import GapAnalysisResult

# -------- utils: make any object JSON-safe ----------
def to_basic(x: Any) -> Any:
    if x is None or isinstance(x, (bool, int, float, str)):
        return x
    if isinstance(x, Enum):
        return x.value
    if is_dataclass(x) and not isinstance(x, type):
        return to_basic(asdict(x))
    if isinstance(x, Mapping):
        return {str(k): to_basic(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set)):
        return [to_basic(v) for v in x]
    if hasattr(x, "__dict__"):
        return to_basic(vars(x))
    return str(x)


def gap_payload(result: GapAnalysisResult) -> Dict[str, Any]:
    out = to_basic(result)
    out["hasGaps"] = result.has_gaps
    if not result.has_gaps:
        out["message"] = NO_GAPS_MESSAGE
    return out


def build_report(
    confidences: Optional[Mapping[str, float]],
    target_role: Optional[str] = None,
    resume_data: Any = None,
    past_responses: Optional[Iterable[Any]] = None,
    cfg: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Levels -> gap analysis -> matched resources, as one JSON-safe payload."""

    settings = AnalyzerSettings.from_cfg(cfg)
    levels = skill_levels(confidences)
    gaps = analyze(levels, target_role, resume_data, past_responses, settings)
    matched = match(
        load_catalog(),
        gaps.opportunities,
        top_n=settings.resource_top_n,
        threshold=settings.resource_min_relevance,
    )
    return {
        "targetRole": target_role,
        "skills": to_basic(levels),
        "gaps": gap_payload(gaps),
        "resources": {"path": matched.path, "items": to_basic(matched.resources)},
    }
