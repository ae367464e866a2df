from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Literal

QuestionType = Literal["text", "typing", "mcq", "choice", "scale"]
TEXT_TYPES = ("text", "typing")
CHOICE_TYPES = ("mcq", "choice")


@dataclass(frozen=True)
class Question:
    id: str; text: str; type: QuestionType
    options: List[str] = field(default_factory=list)
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    suggested_length: Optional[int] = None
    correct_answer: Optional[str] = None
    context_hint: Optional[str] = None


@dataclass(frozen=True)
class InstrumentationMetrics:
    think_time_sec: int
    total_time_sec: int
    char_count: int
    word_count: int
    typing_speed_wpm: Optional[float]
    edit_count: int
    paste_detected: bool
    confidence: float


@dataclass(frozen=True)
class ResponseSubmission:
    question_id: str
    session_id: str
    metrics: InstrumentationMetrics
    response_text: Optional[str] = None
    response_choice: Optional[str] = None
    response_scale: Optional[int] = None
    is_correct: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        m = self.metrics
        out: Dict[str, Any] = {
            "questionId": self.question_id,
            "sessionId": self.session_id,
            "thinkTimeSeconds": m.think_time_sec,
            "totalTimeSeconds": m.total_time_sec,
            "charCount": m.char_count,
            "wordCount": m.word_count,
            "editCount": m.edit_count,
            "pasteDetected": m.paste_detected,
            "confidenceLevel": m.confidence,
        }
        if self.response_text is not None: out["responseText"] = self.response_text
        if self.response_choice is not None: out["responseChoice"] = self.response_choice
        if self.response_scale is not None: out["responseScale"] = self.response_scale
        if m.typing_speed_wpm is not None: out["typingSpeedWpm"] = m.typing_speed_wpm
        if self.is_correct is not None: out["isCorrect"] = self.is_correct
        return out


@dataclass
class AssessmentProgress:
    questions_answered: int = 0
    total_questions: int = 0
    overall_progress: float = 0.0
    skill_confidences: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SkillLevel:
    name: str; level: int
    confidence: Optional[float] = None


@dataclass(frozen=True)
class RoadmapPhase:
    phase: str; duration: str
    activities: List[str] = field(default_factory=list)


@dataclass
class SkillGapOpportunity:
    skill: str
    current_level: float
    target_level: int
    growth: float
    priority: float
    evidence: List[str] = field(default_factory=list)
    roadmap: List[RoadmapPhase] = field(default_factory=list)


@dataclass
class GapAnalysisResult:
    status: Literal["gaps", "no_gaps"]
    total_opportunities: int
    high_impact: int
    moderate_impact: int
    opportunities: List[SkillGapOpportunity] = field(default_factory=list)

    @property
    def has_gaps(self) -> bool:
        return self.status == "gaps"


@dataclass(frozen=True)
class LearningResource:
    id: int; title: str; platform: str; type: str
    duration: str; rating: float; students: str; url: str
    skills: List[str] = field(default_factory=list)
    difficulty: str = "All Levels"
    description: str = ""


@dataclass(frozen=True)
class RankedResource:
    resource: LearningResource
    relevance: float
    average_relevance: float


@dataclass(frozen=True)
class CacheEntry:
    key: str; value: str; captured_at: float


@dataclass(frozen=True)
class PastResponse:
    question_type: str = "text"
    response_text: str = ""
    confidence: float = 0.5
    think_time_sec: Optional[float] = None


@dataclass(frozen=True)
class ResumeSkill:
    name: str; years_experience: float = 0.0


@dataclass(frozen=True)
class StopSignal:
    reason: Optional[str] = None
