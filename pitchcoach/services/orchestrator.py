"""Multi-agent evaluation: three critique agents in parallel, then a combiner.

The deck, delivery and audio agents run concurrently against the same
request. The combiner waits for all three, whatever their outcome, and merges
their payloads into one summary. When the combiner cannot produce a result
the caller still gets a fallback report carrying whatever did succeed plus a
warning for everything that did not.
"""

import asyncio
import json
from pathlib import Path
from typing import Mapping, Optional, Type, TypeVar

import structlog
from pydantic import ValidationError

from pitchcoach.models.job import AgentResult, utc_now
from pitchcoach.models.report import (
    FALLBACK_HEADLINE,
    AgentPayload,
    AudioEvaluation,
    CombineOutput,
    DeliveryEvaluation,
    EvaluationReport,
    PitchDeckCritique,
    ReportMeta,
    ReportSummary,
    TranscriptInfo,
)
from pitchcoach.models.request import EvaluationRequest
from pitchcoach.services.llm_gateway import LLMGateway
from pitchcoach.services.prompt_service import render_prompt

logger = structlog.get_logger(__name__)

P = TypeVar("P", bound=AgentPayload)

DECK_TEXT_MISSING = "Deck text is missing."
TRANSCRIPT_MISSING = "Transcript is missing."
NO_AGENT_OUTPUT = "No agent produced usable output."
NO_AUDIO_META = "No audio metadata."


def _payload_json(result: AgentResult) -> str:
    """Serialize an agent payload for prompt inclusion; failed agents give null."""
    data = None
    if result.ok and result.data is not None:
        data = result.data.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2)


class EvaluationOrchestrator:
    """Fans out to the critique agents and fans in to the combiner."""

    def __init__(
        self,
        gateway: Optional[LLMGateway] = None,
        prompt_dir: Optional[Path] = None,
    ):
        self.gateway = gateway or LLMGateway()
        self.prompt_dir = prompt_dir if prompt_dir is not None else self.gateway.settings.prompt_dir

    async def _run_agent(
        self,
        name: str,
        variables: Mapping[str, Optional[str]],
        schema: Type[P],
    ) -> AgentResult[P]:
        """Render the agent's prompt, call the gateway and validate the payload.

        Any failure, expected or not, comes back as an error result so one
        agent can never take down its siblings.
        """
        try:
            prompt = render_prompt(name, variables, self.prompt_dir)
            result = await self.gateway.generate_json(prompt, label=name)
            if not result.ok:
                logger.warning("agent_failed", agent=name, error=result.error)
                return AgentResult.failure(result.error)

            try:
                payload = schema.model_validate(result.data)
            except ValidationError as e:
                logger.warning("agent_schema_mismatch", agent=name, errors=e.error_count())
                return AgentResult.failure(
                    f"Response did not match the {schema.__name__} schema "
                    f"({e.error_count()} validation errors)."
                )

            logger.info("agent_completed", agent=name)
            return AgentResult.success(payload)
        except Exception as e:
            logger.error(
                "agent_crashed",
                agent=name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return AgentResult.failure(f"{type(e).__name__}: {e}")

    async def deck_agent(self, request: EvaluationRequest) -> AgentResult[PitchDeckCritique]:
        deck_text = (request.deck_text or "").strip()
        if not deck_text:
            return AgentResult.failure(DECK_TEXT_MISSING)
        return await self._run_agent(
            "deck-agent",
            {"context": request.context, "deckText": deck_text},
            PitchDeckCritique,
        )

    async def text_agent(self, request: EvaluationRequest) -> AgentResult[DeliveryEvaluation]:
        transcript = (request.transcript or "").strip()
        if not transcript:
            return AgentResult.failure(TRANSCRIPT_MISSING)
        return await self._run_agent(
            "text-agent",
            {"context": request.context, "transcript": transcript},
            DeliveryEvaluation,
        )

    async def audio_agent(
        self, request: EvaluationRequest, audio_meta: Optional[str]
    ) -> AgentResult[AudioEvaluation]:
        # The transcript stands in for the audio signal alongside its metadata
        transcript = (request.transcript or "").strip()
        if not transcript:
            return AgentResult.failure(TRANSCRIPT_MISSING)
        return await self._run_agent(
            "audio-agent",
            {
                "audioMeta": audio_meta or NO_AUDIO_META,
                "transcript": transcript,
                "audioSummary": request.audio_summary,
            },
            AudioEvaluation,
        )

    async def combine_agent(
        self,
        deck: AgentResult[PitchDeckCritique],
        text: AgentResult[DeliveryEvaluation],
        audio: AgentResult[AudioEvaluation],
    ) -> AgentResult[CombineOutput]:
        if not (deck.ok or text.ok or audio.ok):
            return AgentResult.failure(NO_AGENT_OUTPUT)
        return await self._run_agent(
            "combine-agent",
            {
                "deckAgent": _payload_json(deck),
                "textAgent": _payload_json(text),
                "audioAgent": _payload_json(audio),
            },
            CombineOutput,
        )

    def _meta(self, request: EvaluationRequest) -> ReportMeta:
        return ReportMeta(
            model=self.gateway.default_model,
            generated_at=utc_now(),
            target=request.target,
        )

    def build_fallback_report(
        self,
        request: EvaluationRequest,
        warnings: list[str],
        pitch_deck: Optional[PitchDeckCritique] = None,
        delivery: Optional[DeliveryEvaluation] = None,
        audio: Optional[AudioEvaluation] = None,
        transcript: Optional[TranscriptInfo] = None,
    ) -> EvaluationReport:
        """Minimal valid report used when the combiner produced nothing."""
        return EvaluationReport(
            summary=ReportSummary(overall_score=0, headline=FALLBACK_HEADLINE),
            pitch_deck=pitch_deck,
            delivery=delivery,
            audio=audio,
            transcript=transcript,
            recommendations=[],
            warnings=list(warnings),
            meta=self._meta(request),
        )

    async def evaluate(
        self,
        request: EvaluationRequest,
        audio_meta: Optional[str] = None,
        transcript_info: Optional[TranscriptInfo] = None,
        warnings: Optional[list[str]] = None,
    ) -> EvaluationReport:
        """Produce a report for a transcript-resolved request. Never raises.

        Args:
            request: Request with the transcript already resolved
            audio_meta: One-line description of the prepared audio
            transcript_info: Where the transcript came from, for the report
            warnings: Warnings from earlier pipeline stages, kept first

        Returns:
            A full report, or a fallback report if the combiner failed
        """
        collected = list(warnings or [])

        deck, text, audio = await asyncio.gather(
            self.deck_agent(request),
            self.text_agent(request),
            self.audio_agent(request, audio_meta),
        )

        for label, result in (
            ("Deck agent", deck),
            ("Delivery agent", text),
            ("Audio agent", audio),
        ):
            collected.extend(result.warnings)
            if not result.ok and result.error:
                collected.append(f"{label} failed: {result.error}")

        combined = await self.combine_agent(deck, text, audio)
        collected.extend(combined.warnings)

        pitch_deck = deck.data if deck.ok else None
        delivery = text.data if text.ok else None
        audio_payload = audio.data if audio.ok else None

        if not combined.ok or combined.data is None:
            if combined.error:
                collected.append(f"Combiner failed: {combined.error}")
            logger.warning(
                "evaluation_fallback",
                target=request.target,
                warning_count=len(collected),
            )
            return self.build_fallback_report(
                request,
                collected,
                pitch_deck=pitch_deck,
                delivery=delivery,
                audio=audio_payload,
                transcript=transcript_info,
            )

        output: CombineOutput = combined.data
        logger.info(
            "evaluation_complete",
            target=request.target,
            overall_score=output.summary.overall_score,
            warning_count=len(collected),
        )
        return EvaluationReport(
            summary=output.summary,
            pitch_deck=pitch_deck,
            delivery=delivery,
            audio=audio_payload,
            transcript=transcript_info,
            timeline=output.timeline,
            recommendations=output.recommendations,
            warnings=collected or None,
            meta=self._meta(request),
        )
