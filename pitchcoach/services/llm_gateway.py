"""Gateway to the generative-AI provider with JSON extraction."""

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from openai import AsyncOpenAI

from pitchcoach.config import Settings, get_settings
from pitchcoach.errors import ConfigurationError, QuotaExceededError, RetryExhaustedError
from pitchcoach.services.retry import retry_async

logger = structlog.get_logger(__name__)

FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def extract_json(text: str) -> Optional[str]:
    """Locate a JSON object inside free-form model output.

    Tries, in order: the whole string, the first fenced code block, and the
    span from the first ``{`` to the last ``}``.

    Returns:
        The candidate JSON text, or None if nothing object-shaped was found
    """
    trimmed = text.strip()
    if trimmed.startswith("{") and trimmed.endswith("}"):
        return trimmed

    fence_match = FENCE_PATTERN.search(trimmed)
    if fence_match and fence_match.group(1).strip():
        return fence_match.group(1).strip()

    first = trimmed.find("{")
    last = trimmed.rfind("}")
    if first >= 0 and last > first:
        return trimmed[first : last + 1]

    return None


def describe_provider_error(error: BaseException) -> str:
    """Normalize any provider failure into one descriptive string."""
    cause = error
    if isinstance(error, (RetryExhaustedError, QuotaExceededError)):
        cause = error.cause
    status = getattr(cause, "status_code", None)
    detail = f" (status {status})" if status is not None else ""
    return f"LLM error{detail}: {error}"


@dataclass
class LLMResult:
    """Uniform success/failure envelope for a gateway call."""

    ok: bool
    data: Optional[dict[str, Any]] = None
    text: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "LLMResult":
        return cls(ok=False, error=error)


class LLMGateway:
    """Calls OpenAI chat completions and reports success/failure uniformly.

    The default model is fixed at construction from settings and reported in
    every evaluation's metadata.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self.default_model = self.settings.openai_model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load OpenAI client."""
        if self._client is None:
            if not self.configured:
                raise ConfigurationError("OPENAI_API_KEY is not set.")
            self._client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        return self._client

    @property
    def configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    async def _complete(
        self,
        prompt: str,
        model: str,
        parts: Optional[list[dict[str, Any]]],
        json_mode: bool,
        label: str,
    ) -> str:
        content: Any = prompt
        if parts:
            content = [{"type": "text", "text": prompt}, *parts]

        request: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        async def _call() -> str:
            response = await self.client.chat.completions.create(**request)
            return response.choices[0].message.content or ""

        start_time = time.perf_counter()
        text = await retry_async(
            _call,
            label=label,
            attempts=self.settings.retry_attempts,
            base_delay=self.settings.retry_base_delay_seconds,
        )
        logger.info(
            "llm_call_complete",
            label=label,
            model=model,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
            response_chars=len(text),
        )
        return text

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        parts: Optional[list[dict[str, Any]]] = None,
        label: str = "llm",
    ) -> LLMResult:
        """Request free text from the provider."""
        if not self.configured:
            return LLMResult.failure("OPENAI_API_KEY is not set.")

        try:
            text = await self._complete(
                prompt, model or self.default_model, parts, False, label
            )
        except Exception as e:
            logger.warning("llm_call_failed", label=label, error=str(e))
            return LLMResult.failure(describe_provider_error(e))

        text = text.strip()
        if not text:
            return LLMResult.failure("LLM response was empty.")
        return LLMResult(ok=True, text=text)

    async def generate_json(
        self,
        prompt: str,
        model: Optional[str] = None,
        parts: Optional[list[dict[str, Any]]] = None,
        label: str = "llm",
    ) -> LLMResult:
        """Request a JSON object from the provider.

        Returns:
            LLMResult with ``data`` holding the parsed object on success
        """
        if not self.configured:
            return LLMResult.failure("OPENAI_API_KEY is not set.")

        try:
            text = await self._complete(
                prompt, model or self.default_model, parts, True, label
            )
        except Exception as e:
            logger.warning("llm_call_failed", label=label, error=str(e))
            return LLMResult.failure(describe_provider_error(e))

        payload = extract_json(text)
        if payload is None:
            return LLMResult.failure("LLM response did not include JSON.")

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            return LLMResult.failure(f"LLM response contained invalid JSON: {e}")

        if not isinstance(data, dict):
            return LLMResult.failure("LLM response JSON was not an object.")

        return LLMResult(ok=True, data=data, text=text)
