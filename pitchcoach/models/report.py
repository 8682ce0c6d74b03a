"""Agent payloads and the final evaluation report."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from pitchcoach.models.request import CamelModel, EvaluationTarget

Severity = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high"]
TranscriptSource = Literal["user", "elevenlabs", "openai"]

REPORT_VERSION = "1.0"
FALLBACK_HEADLINE = "Evaluation pending"


class AgentPayload(CamelModel):
    """Base for JSON objects returned by an agent.

    Extra keys from the model are kept so nothing the provider returned is
    silently dropped from the report.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class CategoryScore(AgentPayload):
    score: float
    rationale: str = ""
    evidence: Optional[list[str]] = None


class SlideNote(AgentPayload):
    slide_number: Optional[int] = None
    title: Optional[str] = None
    feedback: str


class PitchDeckCritique(AgentPayload):
    """Deck agent output."""

    overall_score: float
    narrative: Optional[CategoryScore] = None
    structure: Optional[CategoryScore] = None
    visuals: Optional[CategoryScore] = None
    clarity: Optional[CategoryScore] = None
    persuasiveness: Optional[CategoryScore] = None
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    slide_notes: Optional[list[SlideNote]] = None


class DeliveryEvaluation(AgentPayload):
    """Text/delivery agent output."""

    overall_score: float
    clarity: Optional[CategoryScore] = None
    pacing: Optional[CategoryScore] = None
    confidence: Optional[CategoryScore] = None
    engagement: Optional[CategoryScore] = None
    vocal_delivery: Optional[CategoryScore] = None
    body_language: Optional[CategoryScore] = None


class MediaIssue(AgentPayload):
    timestamp_sec: Optional[float] = None
    type: str
    description: str
    severity: Severity = "medium"


class AudioMetrics(AgentPayload):
    pace_wpm: Optional[float] = None
    filler_words_per_min: Optional[float] = None
    silence_ratio: Optional[float] = None
    avg_volume_db: Optional[float] = None


class AudioEvaluation(AgentPayload):
    """Audio agent output."""

    overall_score: float
    issues: list[MediaIssue] = Field(default_factory=list)
    metrics: Optional[AudioMetrics] = None


class VideoMetrics(AgentPayload):
    eye_contact_pct: Optional[float] = None
    on_screen_presence_pct: Optional[float] = None
    gesture_variety_score: Optional[float] = None


class VideoEvaluation(AgentPayload):
    overall_score: float
    issues: list[MediaIssue] = Field(default_factory=list)
    metrics: Optional[VideoMetrics] = None


class TimelineEvent(AgentPayload):
    start_sec: float
    end_sec: float
    category: str
    note: str
    severity: Severity = "medium"


class Recommendation(AgentPayload):
    title: str
    priority: Priority = "medium"
    rationale: str = ""
    action_items: Optional[list[str]] = None


class ReportSummary(AgentPayload):
    overall_score: float = 0
    headline: str
    highlights: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


class CombineOutput(AgentPayload):
    """Combiner agent output."""

    summary: ReportSummary
    timeline: list[TimelineEvent] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)


class TranscriptSegment(CamelModel):
    start_ms: Optional[float] = None
    end_ms: Optional[float] = None
    text: str = ""


class TranscriptInfo(CamelModel):
    """Where the transcript came from and what it said."""

    source: TranscriptSource
    text: str
    segments: Optional[list[TranscriptSegment]] = None


class ReportMeta(CamelModel):
    model: str
    generated_at: datetime
    target: EvaluationTarget


class EvaluationReport(CamelModel):
    """Terminal artifact of an evaluation.

    ``summary``, ``meta`` and ``recommendations`` are always present, even on
    a fallback report. ``warnings`` is None when there is nothing to report.
    """

    version: Literal["1.0"] = REPORT_VERSION
    summary: ReportSummary
    pitch_deck: Optional[PitchDeckCritique] = None
    delivery: Optional[DeliveryEvaluation] = None
    audio: Optional[AudioEvaluation] = None
    video: Optional[VideoEvaluation] = None
    transcript: Optional[TranscriptInfo] = None
    timeline: Optional[list[TimelineEvent]] = None
    recommendations: list[Recommendation] = Field(default_factory=list)
    warnings: Optional[list[str]] = None
    meta: ReportMeta

    @property
    def is_fallback(self) -> bool:
        return (
            self.summary.headline == FALLBACK_HEADLINE
            and self.summary.overall_score == 0
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape stored and served to clients."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
