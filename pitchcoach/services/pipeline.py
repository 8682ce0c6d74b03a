"""End-to-end evaluation of one job's input: media, transcript, agents."""

from typing import Optional, Sequence

import structlog

from pitchcoach.config import Settings, get_settings
from pitchcoach.models.report import EvaluationReport
from pitchcoach.models.request import EvaluationRequest, UploadedMedia
from pitchcoach.services.audio_analysis_service import AudioAnalysisService
from pitchcoach.services.llm_gateway import LLMGateway
from pitchcoach.services.media_service import MediaService
from pitchcoach.services.orchestrator import EvaluationOrchestrator
from pitchcoach.services.transcription_service import TranscriptionService

logger = structlog.get_logger(__name__)


class EvaluationPipeline:
    """Prepares audio, resolves the transcript, then runs the orchestrator.

    Warnings from every stage are threaded through to the final report.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[LLMGateway] = None,
        media_service: Optional[MediaService] = None,
        transcription_service: Optional[TranscriptionService] = None,
        audio_analysis_service: Optional[AudioAnalysisService] = None,
        orchestrator: Optional[EvaluationOrchestrator] = None,
    ):
        self.settings = settings or get_settings()
        self.gateway = gateway or LLMGateway(self.settings)
        self.media_service = media_service or MediaService(self.settings)
        self.transcription_service = transcription_service or TranscriptionService(
            self.settings, gateway=self.gateway
        )
        self.audio_analysis_service = audio_analysis_service or AudioAnalysisService(
            self.gateway, self.settings
        )
        self.orchestrator = orchestrator or EvaluationOrchestrator(self.gateway)

    async def run(
        self,
        job_id: str,
        request: EvaluationRequest,
        media: Sequence[UploadedMedia],
    ) -> EvaluationReport:
        warnings: list[str] = []

        preparation = await self.media_service.prepare_audio(job_id, media)
        warnings.extend(preparation.warnings)

        resolution = await self.transcription_service.resolve(
            request, preparation.audio_path
        )
        warnings.extend(resolution.warnings)

        audio_summary = request.audio_summary
        if preparation.available:
            analysis = await self.audio_analysis_service.analyze(
                preparation.audio_path,
                audio_meta=preparation.audio_meta,
                mime_type=preparation.mime_type,
            )
            if analysis.ok:
                audio_summary = analysis.summary
            elif analysis.error:
                warnings.append(analysis.error)

        resolved = request.model_copy(
            update={"transcript": resolution.text, "audio_summary": audio_summary}
        )
        logger.info(
            "evaluation_inputs_resolved",
            job_id=job_id,
            audio_available=preparation.available,
            transcript_source=resolution.info.source if resolution.info else None,
            warning_count=len(warnings),
        )

        return await self.orchestrator.evaluate(
            resolved,
            audio_meta=preparation.audio_meta,
            transcript_info=resolution.info,
            warnings=warnings,
        )
