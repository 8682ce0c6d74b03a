"""Resolve one analyzable audio track from a job's uploads."""

import asyncio
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import structlog

from pitchcoach.config import Settings, get_settings
from pitchcoach.models.request import UploadedMedia

logger = structlog.get_logger(__name__)

NO_AUDIO_META = "No audio provided."
NO_MEDIA_WARNING = "No audio or video media provided."
EXTRACTION_FAILED_WARNING = "Failed to extract audio from video. Ensure ffmpeg is installed."


@dataclass
class AudioPreparation:
    """Audio resolved for a job, with a one-line description for prompts."""

    audio_path: Optional[str] = None
    audio_meta: str = NO_AUDIO_META
    mime_type: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.audio_path is not None


def _duration_text(duration: Optional[float]) -> str:
    return f"durationSec={duration:.1f}" if duration is not None else "durationSec=unknown"


def _first_of_kind(media: Sequence[UploadedMedia], kind: str) -> Optional[UploadedMedia]:
    """First item of a kind in upload order; later duplicates are ignored."""
    matches = [item for item in media if item.kind == kind]
    if len(matches) > 1:
        logger.info(
            "duplicate_media_kind_ignored",
            kind=kind,
            used=matches[0].original_name,
            ignored=[item.original_name for item in matches[1:]],
        )
    return matches[0] if matches else None


async def _run_tool(*args: str) -> tuple[int, bytes, bytes]:
    """Run an external binary. Raises OSError if it cannot be started."""
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return process.returncode, stdout, stderr


class MediaService:
    """Wraps ffprobe/ffmpeg. Never raises; problems become warnings."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def probe_duration(self, path: str) -> Optional[float]:
        """Media duration in seconds, or None if ffprobe is missing or fails."""
        try:
            returncode, stdout, _ = await _run_tool(
                self.settings.ffprobe_path,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                path,
            )
        except OSError as e:
            logger.warning("ffprobe_unavailable", error=str(e))
            return None

        if returncode != 0:
            return None
        try:
            value = float(stdout.decode().strip())
        except ValueError:
            return None
        return value if math.isfinite(value) else None

    async def extract_audio(self, video_path: str, output_path: str) -> bool:
        """Extract a mono 16 kHz track from a video. Returns False on failure."""
        try:
            returncode, _, stderr = await _run_tool(
                self.settings.ffmpeg_path,
                "-y",
                "-i",
                video_path,
                "-vn",
                "-ac",
                "1",
                "-ar",
                "16000",
                output_path,
            )
        except OSError as e:
            logger.warning("ffmpeg_unavailable", error=str(e))
            return False

        if returncode != 0:
            logger.warning(
                "audio_extraction_failed",
                video_path=video_path,
                returncode=returncode,
                stderr=stderr.decode(errors="replace")[-500:],
            )
            return False
        return True

    async def prepare_audio(
        self, job_id: str, media: Sequence[UploadedMedia]
    ) -> AudioPreparation:
        """Pick the job's audio source.

        An uploaded audio file is used directly; otherwise audio is extracted
        from the first uploaded video.
        """
        audio = _first_of_kind(media, "audio")
        if audio is not None:
            duration = await self.probe_duration(audio.path)
            return AudioPreparation(
                audio_path=audio.path,
                audio_meta=(
                    f"source=audio file={Path(audio.path).name} "
                    f"sizeBytes={audio.size_bytes} {_duration_text(duration)}"
                ),
                mime_type=audio.mime_type or "audio/mpeg",
            )

        video = _first_of_kind(media, "video")
        if video is None:
            return AudioPreparation(warnings=[NO_MEDIA_WARNING])

        video_name = Path(video.path).name
        output_path = self.settings.uploads_dir / f"{job_id}-audio.wav"
        failed = AudioPreparation(
            audio_meta=f"source=video file={video_name} audioExtraction=failed",
            warnings=[EXTRACTION_FAILED_WARNING],
        )
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("uploads_dir_unavailable", error=str(e))
            return failed
        if not await self.extract_audio(video.path, str(output_path)):
            return failed

        try:
            size_bytes = (await asyncio.to_thread(output_path.stat)).st_size
        except OSError:
            return failed
        duration = await self.probe_duration(str(output_path))
        logger.info("audio_extracted", job_id=job_id, size_bytes=size_bytes)
        return AudioPreparation(
            audio_path=str(output_path),
            audio_meta=(
                f"source=video file={video_name} extractedAudio=wav "
                f"sizeBytes={size_bytes} {_duration_text(duration)}"
            ),
            mime_type="audio/wav",
        )
