"""Integration tests: submit over HTTP, run in the background, poll for the report."""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from pitchcoach.main import app
from pitchcoach.services.job_runner import await_pending_jobs
from pitchcoach.services.job_store import get_job_store
from pitchcoach.services.llm_gateway import LLMResult
from pitchcoach.services.pipeline import EvaluationPipeline


@pytest.fixture
def wired_app(file_store, test_settings, mock_gateway):
    """App backed by a temp file store and the gateway double."""
    app.dependency_overrides[get_job_store] = lambda: file_store

    def _pipeline(settings):
        return EvaluationPipeline(settings, gateway=mock_gateway)

    with patch("pitchcoach.services.job_runner.get_settings", return_value=test_settings), patch(
        "pitchcoach.services.job_runner.EvaluationPipeline", side_effect=_pipeline
    ):
        yield app
    app.dependency_overrides.clear()


async def _submit_and_wait(client: AsyncClient, **kwargs) -> dict:
    response = await client.post("/api/evaluate/start", **kwargs)
    assert response.status_code == 200
    status_url = response.json()["statusUrl"]

    await await_pending_jobs(timeout=5)

    status = await client.get(status_url)
    assert status.status_code == 200
    return status.json()


class TestEvaluationFlow:
    """End-to-end job lifecycle through the API."""

    @pytest.mark.asyncio
    async def test_deck_and_transcript_produce_full_report(self, wired_app, called_labels, mock_gateway):
        async with AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test") as client:
            body = await _submit_and_wait(
                client,
                json={
                    "target": "full",
                    "deckText": "Problem: X. Solution: Y.",
                    "transcript": "Hi, we are building Y for X.",
                },
            )

        assert body["job"]["status"] == "completed"
        report = body["result"]
        assert report["summary"]["headline"] == "Solid story, delivery needs polish"
        assert report["pitchDeck"]["overallScore"] == 72
        assert report["delivery"]["overallScore"] == 65
        assert report["audio"]["metrics"]["paceWpm"] == 168
        assert report["transcript"]["source"] == "user"
        # No media was uploaded, so only the audio stage complains
        assert report["warnings"] == ["No audio or video media provided."]
        assert report["meta"]["model"] == "gpt-test"
        assert sorted(called_labels(mock_gateway)[:3]) == ["audio-agent", "deck-agent", "text-agent"]
        assert called_labels(mock_gateway)[3] == "combine-agent"

    @pytest.mark.asyncio
    async def test_deck_only_request(self, wired_app):
        async with AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test") as client:
            body = await _submit_and_wait(
                client,
                json={"target": "pitch_deck", "deckText": "Problem: X. Solution: Y."},
            )

        report = body["result"]
        assert body["job"]["status"] == "completed"
        assert "pitchDeck" in report
        assert "delivery" not in report
        assert "audio" not in report
        assert report["summary"]["overallScore"] == 68
        assert sum("Transcript is missing." in w for w in report["warnings"]) == 2

    @pytest.mark.asyncio
    async def test_empty_request_completes_with_fallback(self, wired_app, mock_gateway):
        async with AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test") as client:
            body = await _submit_and_wait(client, json={})

        report = body["result"]
        assert body["job"]["status"] == "completed"
        assert report["summary"] == {
            "overallScore": 0,
            "headline": "Evaluation pending",
            "highlights": [],
            "risks": [],
        }
        assert report["recommendations"] == []
        assert report["warnings"][-1] == "Combiner failed: No agent produced usable output."
        mock_gateway.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_outage_still_completes(self, wired_app, mock_gateway):
        mock_gateway.generate_json.side_effect = None
        mock_gateway.generate_json.return_value = LLMResult.failure(
            "LLM error (status 503): deck-agent failed after 3 attempts: unavailable"
        )

        async with AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test") as client:
            body = await _submit_and_wait(client, json={"deckText": "Deck", "transcript": "Talk"})

        report = body["result"]
        assert body["job"]["status"] == "completed"
        assert report["summary"]["headline"] == "Evaluation pending"
        assert report["warnings"][1].startswith("Deck agent failed: LLM error (status 503)")
        assert report["warnings"][-1].startswith("Combiner failed:")

    @pytest.mark.asyncio
    async def test_crashing_pipeline_marks_job_failed(self, wired_app):
        with patch.object(EvaluationPipeline, "run", side_effect=RuntimeError("disk on fire")):
            async with AsyncClient(transport=ASGITransport(app=wired_app), base_url="http://test") as client:
                body = await _submit_and_wait(client, json={"deckText": "Deck"})

        assert body["job"]["status"] == "failed"
        assert body["job"]["error"] == "disk on fire"
        assert body["result"] is None
