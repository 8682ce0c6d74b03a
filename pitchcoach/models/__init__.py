"""Models package exports."""

from pitchcoach.models.job import JOB_STATUS_ORDER, AgentResult, EvaluationJob, JobStatus
from pitchcoach.models.report import (
    AudioEvaluation,
    CategoryScore,
    CombineOutput,
    DeliveryEvaluation,
    EvaluationReport,
    PitchDeckCritique,
    Recommendation,
    ReportMeta,
    ReportSummary,
    TimelineEvent,
    TranscriptInfo,
    TranscriptSegment,
    VideoEvaluation,
)
from pitchcoach.models.request import (
    EvaluationRequest,
    EvaluationTarget,
    UploadedMedia,
    media_kind_for,
    normalize_target,
)

__all__ = [
    "AgentResult",
    "AudioEvaluation",
    "CategoryScore",
    "CombineOutput",
    "DeliveryEvaluation",
    "EvaluationJob",
    "EvaluationReport",
    "EvaluationRequest",
    "EvaluationTarget",
    "JOB_STATUS_ORDER",
    "JobStatus",
    "PitchDeckCritique",
    "Recommendation",
    "ReportMeta",
    "ReportSummary",
    "TimelineEvent",
    "TranscriptInfo",
    "TranscriptSegment",
    "UploadedMedia",
    "VideoEvaluation",
    "media_kind_for",
    "normalize_target",
]
