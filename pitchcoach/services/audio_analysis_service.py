"""Prose summary of a recording from an audio-capable model."""

import asyncio
import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from pitchcoach.config import Settings, get_settings
from pitchcoach.services.llm_gateway import LLMGateway
from pitchcoach.services.prompt_service import render_prompt

logger = structlog.get_logger(__name__)

# input_audio accepts only these encodings
INPUT_AUDIO_FORMATS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}


@dataclass
class AudioAnalysisResult:
    ok: bool
    summary: Optional[str] = None
    error: Optional[str] = None


class AudioAnalysisService:
    """Sends the prepared audio inline to the audio model within a max wait window."""

    def __init__(
        self,
        gateway: Optional[LLMGateway] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.gateway = gateway or LLMGateway(self.settings)

    async def analyze(
        self,
        audio_path: str,
        audio_meta: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> AudioAnalysisResult:
        if not self.gateway.configured:
            return AudioAnalysisResult(ok=False, error="OPENAI_API_KEY is not set.")

        audio_format = INPUT_AUDIO_FORMATS.get((mime_type or "").lower())
        if audio_format is None:
            audio_format = {".wav": "wav", ".mp3": "mp3"}.get(Path(audio_path).suffix.lower())
        if audio_format is None:
            return AudioAnalysisResult(
                ok=False,
                error=f"Audio analysis needs wav or mp3 audio, got {mime_type or 'unknown'}.",
            )

        try:
            audio_bytes = await asyncio.to_thread(Path(audio_path).read_bytes)
            prompt = render_prompt(
                "audio-analysis",
                {"audioMeta": audio_meta or "No metadata provided."},
                self.settings.prompt_dir,
            )
        except Exception as e:
            return AudioAnalysisResult(ok=False, error=f"Audio analysis failed: {e}")

        encoded = base64.b64encode(audio_bytes).decode("ascii")
        try:
            async with asyncio.timeout(self.settings.audio_analysis_max_wait_seconds):
                result = await self.gateway.generate_text(
                    prompt,
                    model=self.settings.openai_audio_model,
                    parts=[
                        {
                            "type": "input_audio",
                            "input_audio": {"data": encoded, "format": audio_format},
                        }
                    ],
                    label="audio-analysis",
                )
        except asyncio.TimeoutError:
            logger.warning(
                "audio_analysis_timeout",
                max_wait_seconds=self.settings.audio_analysis_max_wait_seconds,
            )
            return AudioAnalysisResult(ok=False, error="Audio analysis timed out.")

        if not result.ok:
            return AudioAnalysisResult(ok=False, error=f"Audio analysis failed: {result.error}")

        logger.info("audio_analysis_complete", summary_chars=len(result.text))
        return AudioAnalysisResult(ok=True, summary=result.text)
