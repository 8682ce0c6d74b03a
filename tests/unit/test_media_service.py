"""Unit tests for audio preparation."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from pitchcoach.models.request import UploadedMedia
from pitchcoach.services.media_service import (
    EXTRACTION_FAILED_WARNING,
    NO_AUDIO_META,
    NO_MEDIA_WARNING,
    MediaService,
)


def _media(kind: str, name: str, mime_type: str, size: int = 100) -> UploadedMedia:
    return UploadedMedia(
        kind=kind,
        path=f"/uploads/job-1-{name}",
        mime_type=mime_type,
        original_name=name,
        size_bytes=size,
    )


@pytest.fixture
def media_service(test_settings):
    return MediaService(test_settings)


class TestProbeDuration:
    """Tests for ffprobe duration parsing."""

    @pytest.mark.asyncio
    async def test_parses_seconds(self, media_service):
        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(return_value=(0, b"93.418000\n", b"")),
        ):
            assert await media_service.probe_duration("a.wav") == pytest.approx(93.418)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stdout", [b"N/A\n", b"", b"inf"])
    async def test_unparseable_output(self, media_service, stdout):
        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(return_value=(0, stdout, b"")),
        ):
            assert await media_service.probe_duration("a.wav") is None

    @pytest.mark.asyncio
    async def test_missing_binary(self, media_service):
        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(side_effect=FileNotFoundError("ffprobe")),
        ):
            assert await media_service.probe_duration("a.wav") is None


class TestPrepareAudio:
    """Tests for MediaService.prepare_audio."""

    @pytest.mark.asyncio
    async def test_no_media(self, media_service):
        prep = await media_service.prepare_audio("job-1", [])

        assert not prep.available
        assert prep.audio_meta == NO_AUDIO_META
        assert prep.warnings == [NO_MEDIA_WARNING]

    @pytest.mark.asyncio
    async def test_other_files_only(self, media_service):
        prep = await media_service.prepare_audio(
            "job-1", [_media("other", "deck.pdf", "application/pdf")]
        )

        assert prep.warnings == [NO_MEDIA_WARNING]

    @pytest.mark.asyncio
    async def test_audio_upload_used_directly(self, media_service):
        media = [
            _media("video", "talk.mp4", "video/mp4"),
            _media("audio", "talk.mp3", "audio/mpeg", size=2048),
        ]
        run_tool = AsyncMock(return_value=(0, b"61.0\n", b""))

        with patch("pitchcoach.services.media_service._run_tool", new=run_tool):
            prep = await media_service.prepare_audio("job-1", media)

        assert prep.audio_path == "/uploads/job-1-talk.mp3"
        assert prep.mime_type == "audio/mpeg"
        assert prep.audio_meta == (
            "source=audio file=job-1-talk.mp3 sizeBytes=2048 durationSec=61.0"
        )
        assert prep.warnings == []
        assert run_tool.await_count == 1
        assert run_tool.await_args.args[0] == "ffprobe"

    @pytest.mark.asyncio
    async def test_first_audio_wins(self, media_service):
        media = [
            _media("audio", "first.wav", "audio/wav"),
            _media("audio", "second.wav", "audio/wav"),
        ]

        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(return_value=(1, b"", b"")),
        ):
            prep = await media_service.prepare_audio("job-1", media)

        assert prep.audio_path == "/uploads/job-1-first.wav"
        assert prep.audio_meta.endswith("durationSec=unknown")

    @pytest.mark.asyncio
    async def test_audio_extracted_from_video(self, media_service, test_settings):
        async def _fake_tool(*args):
            if args[0] == "ffmpeg":
                Path(args[-1]).write_bytes(b"x" * 320)
                return 0, b"", b""
            return 0, b"12.5\n", b""

        run_tool = AsyncMock(side_effect=_fake_tool)
        with patch("pitchcoach.services.media_service._run_tool", new=run_tool):
            prep = await media_service.prepare_audio(
                "job-1", [_media("video", "talk.mp4", "video/mp4")]
            )

        expected_path = test_settings.uploads_dir / "job-1-audio.wav"
        assert prep.audio_path == str(expected_path)
        assert prep.mime_type == "audio/wav"
        assert prep.audio_meta == (
            "source=video file=job-1-talk.mp4 extractedAudio=wav "
            "sizeBytes=320 durationSec=12.5"
        )
        ffmpeg_args = run_tool.await_args_list[0].args
        assert ffmpeg_args == (
            "ffmpeg", "-y", "-i", "/uploads/job-1-talk.mp4",
            "-vn", "-ac", "1", "-ar", "16000", str(expected_path),
        )

    @pytest.mark.asyncio
    async def test_extraction_failure_is_a_warning(self, media_service):
        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(return_value=(1, b"", b"Invalid data found")),
        ):
            prep = await media_service.prepare_audio(
                "job-1", [_media("video", "talk.mp4", "video/mp4")]
            )

        assert not prep.available
        assert prep.audio_meta == "source=video file=job-1-talk.mp4 audioExtraction=failed"
        assert prep.warnings == [EXTRACTION_FAILED_WARNING]

    @pytest.mark.asyncio
    async def test_missing_ffmpeg_is_a_warning(self, media_service):
        with patch(
            "pitchcoach.services.media_service._run_tool",
            new=AsyncMock(side_effect=FileNotFoundError("ffmpeg")),
        ):
            prep = await media_service.prepare_audio(
                "job-1", [_media("video", "talk.mp4", "video/mp4")]
            )

        assert prep.warnings == [EXTRACTION_FAILED_WARNING]
