"""Evaluation request and uploaded media models."""

from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EvaluationTarget = Literal["full", "pitch_deck", "delivery", "audio", "video"]
MediaKind = Literal["video", "audio", "other"]

EVALUATION_TARGETS: tuple[str, ...] = get_args(EvaluationTarget)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def normalize_target(value: Optional[str]) -> EvaluationTarget:
    """Map free-form input to a known target, defaulting to 'full'."""
    if value in EVALUATION_TARGETS:
        return value  # type: ignore[return-value]
    return "full"


def media_kind_for(mime_type: str) -> MediaKind:
    """Classify an upload by MIME prefix."""
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    return "other"


class EvaluationRequest(CamelModel):
    """What the caller asked us to evaluate.

    Attributes:
        target: Which part of the presentation the caller cares about
        context: Free-text context (audience, stage, goals)
        deck_text: Plain text of the slide deck
        transcript: Caller-supplied transcript of the talk
        audio_summary: Prose description of the recording (filled by audio analysis)
        metadata: Arbitrary string metadata from the caller

    Instances are frozen; use ``model_copy(update=...)`` to derive a
    resolved request.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    target: EvaluationTarget = "full"
    context: Optional[str] = None
    deck_text: Optional[str] = None
    transcript: Optional[str] = None
    audio_summary: Optional[str] = None
    metadata: Optional[dict[str, str]] = None

    @field_validator("target", mode="before")
    @classmethod
    def target_known(cls, v: Optional[str]) -> str:
        """Unknown targets fall back to 'full' rather than failing the request."""
        return normalize_target(v)


class UploadedMedia(CamelModel):
    """A file stored for a job."""

    kind: MediaKind
    path: str
    mime_type: str = "application/octet-stream"
    original_name: str
    size_bytes: int = Field(default=0, ge=0)
