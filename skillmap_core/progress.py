from __future__ import annotations
import math
from typing import List, Mapping, Optional

from .types import SkillLevel


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def level_from_confidence(confidence: Optional[float]) -> int:
    """Map a 0..1 confidence to a 1..5 level; zero rounds up to level 1."""

    try:
        c = float(confidence or 0.0)
    except (TypeError, ValueError):
        c = 0.0
    return max(1, min(5, _round_half_up(c * 5) or 1))


def skill_levels(confidences: Optional[Mapping[str, float]]) -> List[SkillLevel]:
    if not confidences:
        return []
    return [
        SkillLevel(name=str(code).replace("_", " "), level=level_from_confidence(conf), confidence=conf)
        for code, conf in confidences.items()
    ]
