"""Speech-to-text for recordings submitted without a transcript."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog

from pitchcoach.config import Settings, get_settings
from pitchcoach.errors import ProviderError
from pitchcoach.models.report import TranscriptInfo, TranscriptSegment
from pitchcoach.models.request import EvaluationRequest
from pitchcoach.services.llm_gateway import LLMGateway
from pitchcoach.services.retry import retry_async

logger = structlog.get_logger(__name__)

AUDIO_MIME_TYPES = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".webm": "audio/webm",
}


def guess_mime_type(path: str) -> str:
    return AUDIO_MIME_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


def _parse_elevenlabs_payload(data: Any) -> tuple[str, Optional[list[TranscriptSegment]]]:
    """Pull text and segments out of an ElevenLabs response body.

    Raises:
        TypeError: If the body or a segment is not a JSON object
        ValueError: If a field has the wrong type (pydantic ValidationError)
    """
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")

    text = data.get("text") or data.get("transcript") or ""
    if not isinstance(text, str):
        raise TypeError(f"expected text to be a string, got {type(text).__name__}")

    raw_segments = data.get("segments")
    if not raw_segments:
        return text, None
    if not isinstance(raw_segments, list):
        raise TypeError("expected segments to be a list")

    segments = []
    for segment in raw_segments:
        if not isinstance(segment, dict):
            raise TypeError(f"expected segment to be an object, got {type(segment).__name__}")
        segments.append(
            TranscriptSegment(
                start_ms=segment.get("start"),
                end_ms=segment.get("end"),
                text=segment.get("text") or "",
            )
        )
    return text, segments


@dataclass
class TranscriptionResult:
    ok: bool
    text: Optional[str] = None
    segments: Optional[list[TranscriptSegment]] = None
    error: Optional[str] = None


@dataclass
class TranscriptResolution:
    """Transcript chosen for a job and the warnings collected on the way."""

    text: Optional[str] = None
    info: Optional[TranscriptInfo] = None
    warnings: list[str] = field(default_factory=list)


class TranscriptionService:
    """ElevenLabs speech-to-text with an OpenAI transcription fallback."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[LLMGateway] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.gateway = gateway or LLMGateway(self.settings)
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.stt_timeout_seconds)
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def transcribe_with_elevenlabs(
        self, audio_path: str, language: Optional[str] = None
    ) -> TranscriptionResult:
        """Send the audio file to ElevenLabs and parse text plus segments."""
        if not self.settings.elevenlabs_api_key:
            return TranscriptionResult(ok=False, error="ELEVENLABS_API_KEY is not set.")

        try:
            audio_bytes = await asyncio.to_thread(Path(audio_path).read_bytes)
            form = {"model_id": self.settings.elevenlabs_stt_model}
            if language:
                form["language"] = language
            files = {
                "file": (Path(audio_path).name, audio_bytes, guess_mime_type(audio_path))
            }
            client = await self._get_client()

            async def _post() -> httpx.Response:
                response = await client.post(
                    self.settings.elevenlabs_stt_endpoint,
                    headers={"xi-api-key": self.settings.elevenlabs_api_key},
                    data=form,
                    files=files,
                )
                # Server errors are transient; let the retry loop see them
                if response.status_code >= 500:
                    raise ProviderError(
                        f"ElevenLabs STT error: {response.status_code} {response.text}",
                        status_code=response.status_code,
                    )
                return response

            response = await retry_async(
                _post,
                label="elevenlabs-stt",
                attempts=self.settings.retry_attempts,
                base_delay=self.settings.retry_base_delay_seconds,
            )
        except Exception as e:
            logger.warning("elevenlabs_stt_failed", error=str(e))
            return TranscriptionResult(ok=False, error=f"ElevenLabs STT failed: {e}")

        if response.status_code >= 400:
            return TranscriptionResult(
                ok=False,
                error=f"ElevenLabs STT error: {response.status_code} {response.text}",
            )

        try:
            data = response.json()
        except ValueError:
            return TranscriptionResult(ok=False, error="ElevenLabs STT returned invalid JSON.")

        try:
            text, segments = _parse_elevenlabs_payload(data)
        except (TypeError, ValueError) as e:
            logger.warning("elevenlabs_stt_unexpected_payload", error=str(e))
            return TranscriptionResult(
                ok=False, error="ElevenLabs STT returned an unexpected payload."
            )
        if not text:
            return TranscriptionResult(ok=False, error="ElevenLabs STT returned empty text.")

        logger.info(
            "elevenlabs_stt_complete",
            transcript_chars=len(text),
            segment_count=len(segments or []),
        )
        return TranscriptionResult(ok=True, text=text, segments=segments)

    async def transcribe_with_openai(self, audio_path: str) -> TranscriptionResult:
        """Fallback transcription through the OpenAI audio API."""
        if not self.gateway.configured:
            return TranscriptionResult(ok=False, error="OPENAI_API_KEY is not set.")

        try:
            audio_bytes = await asyncio.to_thread(Path(audio_path).read_bytes)
            upload = (Path(audio_path).name, audio_bytes, guess_mime_type(audio_path))

            async def _transcribe():
                return await self.gateway.client.audio.transcriptions.create(
                    model=self.settings.openai_transcription_model,
                    file=upload,
                    response_format="verbose_json",
                )

            response = await retry_async(
                _transcribe,
                label="openai-transcription",
                attempts=self.settings.retry_attempts,
                base_delay=self.settings.retry_base_delay_seconds,
            )
        except Exception as e:
            logger.warning("openai_transcription_failed", error=str(e))
            return TranscriptionResult(ok=False, error=f"OpenAI transcription failed: {e}")

        text = (getattr(response, "text", "") or "").strip()
        if not text:
            return TranscriptionResult(ok=False, error="OpenAI transcription returned empty text.")

        segments = None
        raw_segments = getattr(response, "segments", None)
        if raw_segments:
            # OpenAI reports seconds; segments are stored in milliseconds
            segments = [
                TranscriptSegment(
                    start_ms=segment.start * 1000,
                    end_ms=segment.end * 1000,
                    text=segment.text.strip(),
                )
                for segment in raw_segments
            ]
        return TranscriptionResult(ok=True, text=text, segments=segments)

    async def resolve(
        self, request: EvaluationRequest, audio_path: Optional[str]
    ) -> TranscriptResolution:
        """Pick the transcript for a job.

        A caller-supplied transcript is used verbatim. Otherwise the prepared
        audio is transcribed; every failure becomes a warning and the job
        continues without a transcript.
        """
        user_text = (request.transcript or "").strip()
        if user_text:
            return TranscriptResolution(
                text=user_text, info=TranscriptInfo(source="user", text=user_text)
            )

        resolution = TranscriptResolution()
        if not audio_path:
            return resolution

        result = await self.transcribe_with_elevenlabs(
            audio_path, language=self.settings.stt_language
        )
        if result.ok:
            resolution.text = result.text
            resolution.info = TranscriptInfo(
                source="elevenlabs", text=result.text, segments=result.segments
            )
            return resolution
        resolution.warnings.append(result.error)

        if self.gateway.configured:
            fallback = await self.transcribe_with_openai(audio_path)
            if fallback.ok:
                resolution.text = fallback.text
                resolution.info = TranscriptInfo(
                    source="openai", text=fallback.text, segments=fallback.segments
                )
                return resolution
            resolution.warnings.append(fallback.error)

        return resolution
