# skillmap_core/resources.py
"""Rank the bundled learning-resource catalog against computed skill gaps."""
from __future__ import annotations

import importlib.resources as ir
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence

from . import config as cfg_defaults
from .types import LearningResource, RankedResource, SkillGapOpportunity

log = logging.getLogger(__name__)

SKILL_SYNONYMS: Dict[str, Sequence[str]] = {
    "javascript": ("js", "ecmascript", "frontend scripting", "client-side scripting"),
    "python": ("py", "python programming", "data science scripting"),
    "react": ("reactjs", "react.js", "facebook react", "frontend framework"),
    "sql": ("database queries", "relational databases", "structured query language"),
    "machine learning": ("ml", "artificial intelligence", "ai", "predictive modeling"),
    "data analysis": ("data analytics", "data science", "business intelligence"),
    "cloud computing": ("aws", "azure", "gcp", "cloud services"),
    "docker": ("containerization", "containers", "docker containers"),
    "git": ("version control", "source control", "github", "gitlab"),
    "system design": ("architecture", "scalability", "distributed systems"),
    "cybersecurity": ("security", "information security", "cyber defense"),
}

MatchPath = Literal["relevant", "fallback", "default"]

_CATALOG_CACHE: Optional[List[LearningResource]] = None


@dataclass
class MatchResult:
    path: MatchPath
    resources: List[RankedResource] = field(default_factory=list)


def load_catalog(path: Path | None = None) -> List[LearningResource]:
    """Load the bundled catalog once; an explicit path bypasses the cache."""

    global _CATALOG_CACHE
    if path is None and _CATALOG_CACHE is not None:
        return list(_CATALOG_CACHE)
    src = path or ir.files(__package__).joinpath("data/resources.json")
    raw = json.loads(src.read_text(encoding="utf-8"))
    catalog = [LearningResource(**r) for r in raw]
    if path is None:
        _CATALOG_CACHE = catalog
    return list(catalog)


def _gap_name(gap: Any) -> str:
    if isinstance(gap, SkillGapOpportunity):
        return gap.skill
    if isinstance(gap, Mapping):
        return str(gap.get("skill") or gap.get("name") or "")
    return str(gap or "")


def _mutual_substring(a: str, b: str) -> bool:
    return a in b or b in a


def _synonym_match(gap: str, tag: str) -> bool:
    for syn in SKILL_SYNONYMS.get(tag, ()):
        if _mutual_substring(gap, syn):
            return True
    for syn in SKILL_SYNONYMS.get(gap, ()):
        if _mutual_substring(tag, syn):
            return True
    return False


def _word_overlap(gap: str, tag: str) -> float:
    gap_words = gap.split()
    tag_words = tag.split()
    if not gap_words or not tag_words:
        return 0.0
    common = [w for w in gap_words if w in tag_words]
    return len(common) / max(len(gap_words), len(tag_words))


def skill_relevance(resource_skills: Iterable[str], gap_skill: str) -> float:
    gap = (gap_skill or "").strip().lower()
    if not gap:
        return 0.0
    best = 0.0
    for raw_tag in resource_skills:
        tag = (raw_tag or "").strip().lower()
        if not tag:
            continue
        if _mutual_substring(gap, tag):
            return 1.0
        if _synonym_match(gap, tag):
            best = max(best, 0.9)
        else:
            best = max(best, _word_overlap(gap, tag))
    return best


def match(
    catalog: Sequence[LearningResource],
    skill_gaps: Optional[Iterable[Any]],
    top_n: int = cfg_defaults.RESOURCE_TOP_N,
    threshold: float = cfg_defaults.RESOURCE_MIN_RELEVANCE,
) -> MatchResult:
    gaps = [g for g in (_gap_name(x) for x in (skill_gaps or [])) if g.strip()]
    if not gaps:
        return MatchResult(
            path="default",
            resources=[RankedResource(r, 0.0, 0.0) for r in list(catalog)[:top_n]],
        )

    scored: List[RankedResource] = []
    for res in catalog:
        scores = [skill_relevance(res.skills, g) for g in gaps]
        scored.append(RankedResource(res, max(scores), sum(scores) / len(scores)))

    relevant = sorted(
        (r for r in scored if r.relevance > threshold), key=lambda r: r.relevance, reverse=True
    )
    if relevant:
        return MatchResult(path="relevant", resources=relevant[:top_n])

    log.info("no resource above %.2f relevance for %d gaps; ranking by average", threshold, len(gaps))
    fallback = sorted(scored, key=lambda r: r.average_relevance, reverse=True)
    return MatchResult(path="fallback", resources=fallback[:top_n])


__all__ = ["SKILL_SYNONYMS", "MatchResult", "load_catalog", "match", "skill_relevance"]
