"""Unit tests for the click CLI."""

import asyncio
import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pitchcoach.cli import cli
from pitchcoach.models.request import EvaluationRequest
from pitchcoach.services.pipeline import EvaluationPipeline


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_env(file_store, test_settings, mock_gateway):
    """Point the CLI at a temp store and run jobs against the gateway double."""

    def _pipeline(settings):
        return EvaluationPipeline(settings, gateway=mock_gateway)

    with patch("pitchcoach.cli.get_job_store", return_value=file_store), patch(
        "pitchcoach.services.job_runner.get_settings", return_value=test_settings
    ), patch("pitchcoach.services.job_runner.EvaluationPipeline", side_effect=_pipeline):
        yield file_store


class TestEvaluateCommand:
    """Tests for `pitchcoach evaluate`."""

    def test_deck_text_evaluation(self, runner, cli_env):
        result = runner.invoke(cli, ["evaluate", "--target", "pitch_deck", "--deck-text", "Problem: X."])

        assert result.exit_code == 0, result.output
        outcome = json.loads(result.stdout)
        assert outcome["job"]["status"] == "completed"
        assert outcome["job"]["target"] == "pitch_deck"
        assert outcome["result"]["summary"]["overallScore"] == 68

    def test_reads_files_and_stores_media(self, runner, cli_env, tmp_path, test_settings):
        deck = tmp_path / "deck.txt"
        deck.write_text("Problem: X.", encoding="utf-8")
        transcript = tmp_path / "talk.txt"
        transcript.write_text("Hello investors.", encoding="utf-8")
        notes = tmp_path / "notes.pdf"
        notes.write_bytes(b"%PDF")

        result = runner.invoke(
            cli,
            [
                "evaluate",
                "--deck-file", str(deck),
                "--transcript-file", str(transcript),
                "--media", str(notes),
            ],
        )

        assert result.exit_code == 0, result.output
        outcome = json.loads(result.stdout)
        job = outcome["job"]
        assert job["input"]["deckText"] == "Problem: X."
        assert job["input"]["transcript"] == "Hello investors."
        assert job["media"][0]["kind"] == "other"
        assert job["media"][0]["mimeType"] == "application/pdf"
        assert job["media"][0]["path"].startswith(str(test_settings.uploads_dir))

    def test_failed_job_exits_nonzero(self, runner, cli_env):
        with patch.object(EvaluationPipeline, "run", side_effect=RuntimeError("boom")):
            result = runner.invoke(cli, ["evaluate", "--deck-text", "Deck"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["job"]["error"] == "boom"

    def test_rejects_unknown_target(self, runner, cli_env):
        result = runner.invoke(cli, ["evaluate", "--target", "everything"])

        assert result.exit_code == 2


class TestStatusCommand:
    """Tests for `pitchcoach status`."""

    def test_unknown_job(self, runner, cli_env):
        result = runner.invoke(cli, ["status", "missing"])

        assert result.exit_code == 2
        assert "Job not found: missing" in result.output

    def test_queued_job(self, runner, cli_env):
        asyncio.run(cli_env.create_job("job-1", EvaluationRequest(deck_text="Deck")))

        result = runner.invoke(cli, ["status", "job-1"])

        assert result.exit_code == 0
        outcome = json.loads(result.stdout)
        assert outcome["job"]["status"] == "queued"
        assert outcome["result"] is None
