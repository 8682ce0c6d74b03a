"""Pytest configuration and fixtures."""

import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pitchcoach.config import Settings
from pitchcoach.services.job_store import FileJobStore
from pitchcoach.services.llm_gateway import LLMGateway, LLMResult

DECK_PAYLOAD: dict[str, Any] = {
    "overallScore": 72,
    "narrative": {"score": 70, "rationale": "Clear problem, thin market sizing."},
    "clarity": {"score": 80, "rationale": "Short slides.", "evidence": ["Problem: X."]},
    "strengths": ["Crisp problem statement"],
    "gaps": ["No traction slide"],
}

DELIVERY_PAYLOAD: dict[str, Any] = {
    "overallScore": 65,
    "clarity": {"score": 70, "rationale": "Mostly easy to follow."},
    "pacing": {"score": 60, "rationale": "Rushed ending."},
}

AUDIO_PAYLOAD: dict[str, Any] = {
    "overallScore": 58,
    "issues": [
        {
            "timestampSec": 12.5,
            "type": "filler",
            "description": "Repeated 'um' while introducing the team.",
            "severity": "low",
        }
    ],
    "metrics": {"paceWpm": 168, "fillerWordsPerMin": 4.2},
}

COMBINE_PAYLOAD: dict[str, Any] = {
    "summary": {
        "overallScore": 68,
        "headline": "Solid story, delivery needs polish",
        "highlights": ["Crisp problem statement"],
        "risks": ["Traction unproven"],
    },
    "timeline": [
        {
            "startSec": 0,
            "endSec": 30,
            "category": "opening",
            "note": "Strong hook",
            "severity": "low",
        }
    ],
    "recommendations": [
        {
            "title": "Add a traction slide",
            "priority": "high",
            "rationale": "Investors will ask first.",
            "actionItems": ["Show monthly active users"],
        }
    ],
}


@pytest.fixture
def agent_payloads() -> dict[str, dict[str, Any]]:
    """Canned gateway payloads keyed by agent label."""
    return {
        "deck-agent": copy.deepcopy(DECK_PAYLOAD),
        "text-agent": copy.deepcopy(DELIVERY_PAYLOAD),
        "audio-agent": copy.deepcopy(AUDIO_PAYLOAD),
        "combine-agent": copy.deepcopy(COMBINE_PAYLOAD),
    }


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the environment, with no retry delays."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test-key-for-testing",
        openai_model="gpt-test",
        elevenlabs_api_key="xi-test-key",
        data_dir=tmp_path / ".data",
        retry_attempts=3,
        retry_base_delay_seconds=0,
        job_store_backend="file",
        prompt_dir=None,
        evaluation_timeout_seconds=0,
    )


@pytest.fixture
def file_store(test_settings) -> FileJobStore:
    return FileJobStore(test_settings)


@pytest.fixture
def mock_gateway(test_settings, agent_payloads) -> MagicMock:
    """Gateway double answering every agent with its canned payload.

    Individual tests replace ``generate_json.side_effect`` to inject failures.
    """
    gateway = MagicMock(spec=LLMGateway)
    gateway.settings = test_settings
    gateway.default_model = "gpt-test"
    gateway.configured = True

    async def _generate_json(prompt, model=None, parts=None, label="llm"):
        return LLMResult(ok=True, data=copy.deepcopy(agent_payloads[label]))

    gateway.generate_json = AsyncMock(side_effect=_generate_json)
    gateway.generate_text = AsyncMock(
        return_value=LLMResult(ok=True, text="Calm tone, steady pace.")
    )
    return gateway


def gateway_labels(gateway: MagicMock) -> list[str]:
    """Agent labels the gateway double was called with, in call order."""
    return [call.kwargs.get("label") for call in gateway.generate_json.call_args_list]


@pytest.fixture
def called_labels():
    return gateway_labels
