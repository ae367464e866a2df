# skillmap_core/gaps.py
"""Skill-gap analysis.

Current levels are adjusted by resume experience, compared against a
role-specific target and turned into ranked growth opportunities with
evidence lines and a phased learning roadmap.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from . import config as cfg_defaults
from .config import AnalyzerSettings
from .types import (
    GapAnalysisResult,
    PastResponse,
    ResumeSkill,
    RoadmapPhase,
    SkillGapOpportunity,
    SkillLevel,
)

log = logging.getLogger(__name__)


NO_GAPS_MESSAGE = (
    "Your skills are well-developed. Consider exploring advanced specializations, "
    "leadership opportunities, or emerging technologies to continue growing in your career."
)

_PROGRAMMING_MARKERS: Sequence[str] = ("programming", "coding")
_BASICS_MARKERS: Sequence[str] = ("foundations", "basics")

_EVIDENCE_LOW_CONFIDENCE = "Multiple responses showed uncertainty - indicates knowledge gaps"
_EVIDENCE_SHORT = "Brief responses suggest areas needing deeper understanding"
_EVIDENCE_QUICK = "Quick responses may indicate surface-level knowledge"
_EVIDENCE_ASSESSED_CONFIDENCE = "Assessment confidence indicates room for improvement"
_EVIDENCE_FOUNDATION = "Current proficiency level suggests foundational gaps"
_EVIDENCE_RESUME = "Resume shows related experience - build on existing foundation"
_EVIDENCE_NO_RESUME = "Limited direct experience in this area"
_EVIDENCE_ROLE = "Highly relevant to target career path"

_PHASE_FOUNDATION = RoadmapPhase(
    phase="Foundation Building",
    duration="2-4 weeks",
    activities=[
        "Complete introductory tutorials and courses",
        "Practice basic concepts through exercises",
        "Build simple projects to reinforce learning",
    ],
)
_PHASE_DEVELOPMENT = RoadmapPhase(
    phase="Skill Development",
    duration="4-6 weeks",
    activities=[
        "Work on intermediate-level projects",
        "Study real-world applications and use cases",
        "Participate in coding challenges or exercises",
    ],
)
_PHASE_ADVANCED = RoadmapPhase(
    phase="Advanced Practice",
    duration="6-8 weeks",
    activities=[
        "Build complex, portfolio-worthy projects",
        "Contribute to open-source or team projects",
        "Prepare for technical interviews and assessments",
    ],
)
_PHASE_MASTERY = RoadmapPhase(
    phase="Mastery & Specialization",
    duration="Ongoing",
    activities=[
        "Stay updated with latest trends and technologies",
        "Mentor others and share knowledge",
        "Pursue advanced certifications or specializations",
    ],
)


def _safe_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _field(obj: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(obj, Mapping) and name in obj:
            return obj[name]
        if not isinstance(obj, Mapping) and hasattr(obj, name):
            return getattr(obj, name)
    return default


def _as_skill(raw: Any) -> Optional[SkillLevel]:
    if isinstance(raw, SkillLevel):
        return raw
    name = _field(raw, "name", "skill")
    if not isinstance(name, str) or not name.strip():
        return None
    level = _safe_float(_field(raw, "level"), 1.0)
    conf = _field(raw, "confidence")
    return SkillLevel(
        name=name.strip(),
        level=int(level) if level.is_integer() else level,
        confidence=_safe_float(conf, 0.5) if conf is not None else None,
    )


def _clamp_level(level: float) -> float:
    return max(1.0, min(5.0, float(level)))


def _role_match(name: str, role: Optional[str]) -> bool:
    if not role or not role.strip():
        return False
    return role.strip().lower() in name.lower()


# ---------------------------------------------------------------------------
# resume & response signals
# ---------------------------------------------------------------------------

def _resume_entries(resume_data: Any) -> List[Any]:
    if resume_data is None:
        return []
    if isinstance(resume_data, (list, tuple)):
        return list(resume_data)
    raw = _field(resume_data, "extractedSkills", "extracted_skills", "skills")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            log.debug("resume skills payload is not JSON; ignoring")
            return []
    return list(raw) if isinstance(raw, (list, tuple)) else []


def resume_skill_boosts(resume_data: Any, min_years: float = cfg_defaults.RESUME_BOOST_YEARS) -> Dict[str, float]:
    """Lowercase skill name -> additive level boost from resume experience."""

    boosts: Dict[str, float] = {}
    for item in _resume_entries(resume_data):
        if isinstance(item, ResumeSkill):
            name, years = item.name, item.years_experience
        else:
            name = _field(item, "skillName", "skill_name", "name")
            years = _field(item, "yearsExperience", "years_experience", "years")
        key = str(name or "").strip().lower()
        if not key:
            continue
        boost = cfg_defaults.RESUME_BOOST_HIGH if _safe_float(years) >= min_years else cfg_defaults.RESUME_BOOST_LOW
        boosts[key] = max(boosts.get(key, 0.0), boost)
    return boosts


def response_evidence(past_responses: Optional[Iterable[Any]]) -> Dict[str, int]:
    counts = {"short_responses": 0, "low_confidence": 0, "quick_responses": 0}
    for resp in past_responses or []:
        if isinstance(resp, PastResponse):
            qtype, text, conf, think = resp.question_type, resp.response_text, resp.confidence, resp.think_time_sec
        else:
            question = _field(resp, "question", default={}) or {}
            qtype = _field(resp, "question_type", "questionType", default=None) or _field(question, "questionType", default="text")
            text = _field(resp, "response_text", "responseText", default="") or ""
            conf = _field(resp, "confidence", "confidenceLevel", default=None)
            think = _field(resp, "think_time_sec", "thinkTimeSeconds", default=None)
        if (qtype or "text") == "text" and len(text or "") < 50:
            counts["short_responses"] += 1
        if _safe_float(conf if conf is not None else 0.5, 0.5) < 0.6:
            counts["low_confidence"] += 1
        if think and _safe_float(think) < 30:
            counts["quick_responses"] += 1
    return counts


# ---------------------------------------------------------------------------
# per-skill rules
# ---------------------------------------------------------------------------

def infer_target_level(skill_name: str, target_role: Optional[str]) -> int:
    if not target_role:
        return cfg_defaults.GAP_DEFAULT_TARGET
    name = skill_name.lower()
    if _role_match(name, target_role):
        return cfg_defaults.GAP_ROLE_TARGET
    if any(m in name for m in _BASICS_MARKERS):
        return cfg_defaults.GAP_BASICS_TARGET
    return cfg_defaults.GAP_DEFAULT_TARGET


def calculate_priority(skill_name: str, raw_level: float, target_role: Optional[str]) -> float:
    ceiling = cfg_defaults.GAP_LEVEL_CEILING
    base_gap = ceiling - min(ceiling, raw_level)
    name = skill_name.lower()
    multiplier = 1.5 if any(m in name for m in _PROGRAMMING_MARKERS) else 1.0
    role_boost = 0.5 if _role_match(name, target_role) else 0.0
    return base_gap * multiplier + role_boost


def generate_evidence(
    skill: SkillLevel,
    boost: float,
    signals: Mapping[str, int],
    target_role: Optional[str],
) -> List[str]:
    evidence: List[str] = []
    if signals.get("low_confidence", 0) > 2:
        evidence.append(_EVIDENCE_LOW_CONFIDENCE)
    if signals.get("short_responses", 0) > 3:
        evidence.append(_EVIDENCE_SHORT)
    if signals.get("quick_responses", 0) > 2:
        evidence.append(_EVIDENCE_QUICK)

    if skill.confidence is not None and skill.confidence < 0.4:
        evidence.append(_EVIDENCE_ASSESSED_CONFIDENCE)
    if skill.level < 2.5:
        evidence.append(_EVIDENCE_FOUNDATION)

    evidence.append(_EVIDENCE_RESUME if boost > 0 else _EVIDENCE_NO_RESUME)

    if _role_match(skill.name, target_role):
        evidence.append(_EVIDENCE_ROLE)
    return evidence


def generate_roadmap(level: float) -> List[RoadmapPhase]:
    roadmap: List[RoadmapPhase] = []
    if level < 2.5:
        roadmap.append(_PHASE_FOUNDATION)
    roadmap.append(_PHASE_DEVELOPMENT)
    if level < 4:
        roadmap.append(_PHASE_ADVANCED)
    roadmap.append(_PHASE_MASTERY)
    return roadmap


# ---------------------------------------------------------------------------
# public entry point
# ---------------------------------------------------------------------------

def analyze(
    skills: Iterable[Any],
    target_role: Optional[str] = None,
    resume_data: Any = None,
    past_responses: Optional[Iterable[Any]] = None,
    settings: AnalyzerSettings | None = None,
) -> GapAnalysisResult:
    """Rank growth opportunities for every skill below the level ceiling.

    The result is recomputed in full on each call. An empty outcome is
    reported as status ``no_gaps`` rather than an empty ``gaps`` result.
    """

    settings = settings or AnalyzerSettings.from_cfg(None)
    boosts = resume_skill_boosts(resume_data, settings.resume_boost_years)
    signals = response_evidence(past_responses)

    opportunities: List[SkillGapOpportunity] = []
    for raw in skills or []:
        skill = _as_skill(raw)
        if skill is None or skill.level >= cfg_defaults.GAP_LEVEL_CEILING:
            continue
        boost = boosts.get(skill.name.lower(), 0.0)
        adjusted = _clamp_level(skill.level + boost)
        target = infer_target_level(skill.name, target_role)
        growth = max(0.0, target - adjusted)
        if growth <= 0:
            continue
        opportunities.append(
            SkillGapOpportunity(
                skill=skill.name,
                current_level=adjusted,
                target_level=target,
                growth=growth,
                priority=calculate_priority(skill.name, skill.level, target_role),
                evidence=generate_evidence(skill, boost, signals, target_role),
                roadmap=generate_roadmap(adjusted),
            )
        )

    opportunities.sort(key=lambda o: o.priority, reverse=True)
    high = sum(1 for o in opportunities if o.priority > cfg_defaults.GAP_HIGH_IMPACT)
    moderate = sum(
        1 for o in opportunities
        if cfg_defaults.GAP_MODERATE_IMPACT < o.priority <= cfg_defaults.GAP_HIGH_IMPACT
    )
    log.debug("gap analysis: %d opportunities (%d high impact)", len(opportunities), high)
    return GapAnalysisResult(
        status="gaps" if opportunities else "no_gaps",
        total_opportunities=len(opportunities),
        high_impact=high,
        moderate_impact=moderate,
        opportunities=opportunities[: max(0, settings.gap_top_n)],
    )


__all__ = [
    "NO_GAPS_MESSAGE",
    "analyze",
    "calculate_priority",
    "generate_evidence",
    "generate_roadmap",
    "infer_target_level",
    "resume_skill_boosts",
    "response_evidence",
]
