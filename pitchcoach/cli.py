"""Click CLI: run evaluations inline, inspect stored jobs, serve the API."""

from __future__ import annotations

import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from uuid import uuid4

import click

from pitchcoach.config import get_settings
from pitchcoach.models.request import EVALUATION_TARGETS, EvaluationRequest, UploadedMedia, media_kind_for
from pitchcoach.services.job_runner import run_evaluation
from pitchcoach.services.job_store import JobStore, get_job_store
from pitchcoach.services.logging_service import configure_logging


def _read_optional(text: str | None, path: Path | None) -> str | None:
    if path is not None:
        return path.read_text(encoding="utf-8")
    return text


async def _submit_and_run(
    store: JobStore, request: EvaluationRequest, media_paths: tuple[Path, ...]
) -> str:
    job_id = str(uuid4())
    media: list[UploadedMedia] = []
    for path in media_paths:
        data = path.read_bytes()
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        stored = await store.persist_upload(job_id, path.name, data)
        media.append(
            UploadedMedia(
                kind=media_kind_for(mime_type),
                path=stored,
                mime_type=mime_type,
                original_name=path.name,
                size_bytes=len(data),
            )
        )
    await store.create_job(job_id, request, media or None)
    await run_evaluation(job_id, store=store)
    return job_id


async def _load(store: JobStore, job_id: str) -> dict | None:
    job = await store.get_job(job_id)
    if job is None:
        return None
    result = await store.get_result(job_id) if job.status == "completed" else None
    return {"job": job.to_payload(), "result": result}


@click.group()
def cli() -> None:
    """Pitch Coach: AI feedback on pitch decks and recorded talks."""
    # Reports go to stdout, so logs go to stderr
    configure_logging(get_settings().log_level, stream=sys.stderr)


@cli.command()
@click.option(
    "--target",
    default="full",
    type=click.Choice(list(EVALUATION_TARGETS)),
    help="Which part of the presentation to focus on.",
)
@click.option("--context", default=None, help="Audience, stage or goals of the talk.")
@click.option("--deck-text", default=None, help="Slide deck text.")
@click.option(
    "--deck-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Plain-text file with the slide deck text.",
)
@click.option("--transcript", default=None, help="Transcript of the talk.")
@click.option(
    "--transcript-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Plain-text file with the transcript.",
)
@click.option(
    "--media",
    "media_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Audio or video recording (repeatable; first of each kind is used).",
)
def evaluate(
    target: str,
    context: str | None,
    deck_text: str | None,
    deck_file: Path | None,
    transcript: str | None,
    transcript_file: Path | None,
    media_paths: tuple[Path, ...],
) -> None:
    """Run one evaluation in the foreground and print the job and report as JSON."""
    request = EvaluationRequest(
        target=target,
        context=context,
        deck_text=_read_optional(deck_text, deck_file),
        transcript=_read_optional(transcript, transcript_file),
    )
    store = get_job_store()

    async def _run() -> dict | None:
        job_id = await _submit_and_run(store, request, media_paths)
        return await _load(store, job_id)

    outcome = asyncio.run(_run())
    click.echo(json.dumps(outcome, indent=2))
    if outcome is None or outcome["job"]["status"] != "completed":
        sys.exit(1)


@cli.command()
@click.argument("job_id")
def status(job_id: str) -> None:
    """Print a stored job and, once completed, its report."""
    outcome = asyncio.run(_load(get_job_store(), job_id))
    if outcome is None:
        click.echo(f"Job not found: {job_id}", err=True)
        sys.exit(2)
    click.echo(json.dumps(outcome, indent=2))


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", default=8000, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("pitchcoach.main:app", host=host, port=port)
