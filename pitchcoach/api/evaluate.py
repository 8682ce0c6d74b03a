"""Evaluation submission and status endpoints."""

import json
from typing import Any, Optional
from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from pitchcoach.models.request import EvaluationRequest, UploadedMedia, media_kind_for
from pitchcoach.services.job_runner import schedule_job
from pitchcoach.services.job_store import JobStore, get_job_store

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/evaluate", tags=["Evaluation"])

DEFAULT_MIME_TYPE = "application/octet-stream"


def _parse_metadata(raw: Optional[str]) -> Optional[dict[str, str]]:
    """Decode the metadata form field. Anything but a JSON object is ignored."""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(value, dict):
        return None
    return {str(k): str(v) for k, v in value.items()}


def _form_text(form: Any, key: str) -> Optional[str]:
    value = form.get(key)
    return value if isinstance(value, str) else None


async def _parse_form(request: Request) -> tuple[dict[str, Any], list[UploadFile]]:
    form = await request.form()
    fields = {
        "target": _form_text(form, "target"),
        "context": _form_text(form, "context"),
        "deck_text": _form_text(form, "deckText"),
        "transcript": _form_text(form, "transcript"),
        "metadata": _parse_metadata(_form_text(form, "metadata")),
    }
    files = [entry for entry in form.getlist("media") if isinstance(entry, UploadFile)]
    if not files:
        single = form.get("file")
        if isinstance(single, UploadFile):
            files.append(single)
    return fields, files


async def _parse_json(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


async def _store_uploads(
    store: JobStore, job_id: str, files: list[UploadFile]
) -> list[UploadedMedia]:
    media: list[UploadedMedia] = []
    for upload in files:
        data = await upload.read()
        file_name = upload.filename or "upload"
        mime_type = upload.content_type or DEFAULT_MIME_TYPE
        stored_path = await store.persist_upload(job_id, file_name, data)
        media.append(
            UploadedMedia(
                kind=media_kind_for(mime_type),
                path=stored_path,
                mime_type=mime_type,
                original_name=file_name,
                size_bytes=len(data),
            )
        )
    return media


@router.post("/start")
async def start_evaluation(
    request: Request,
    store: JobStore = Depends(get_job_store),
) -> dict:
    """Create a job, start it in the background and return its tracking id.

    Accepts either a JSON body or multipart form data with files under
    ``media``.
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        fields, files = await _parse_form(request)
    else:
        fields, files = await _parse_json(request), []

    try:
        evaluation_request = EvaluationRequest.model_validate(fields)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first.get("loc", ["unknown"]))
        raise HTTPException(status_code=400, detail=f"Field '{field}': {first.get('msg')}")

    job_id = str(uuid4())
    media = await _store_uploads(store, job_id, files)
    await store.create_job(job_id, evaluation_request, media or None)
    schedule_job(job_id, store=store)

    logger.info(
        "evaluation_submitted",
        job_id=job_id,
        target=evaluation_request.target,
        media_count=len(media),
        has_deck_text=bool(evaluation_request.deck_text),
        has_transcript=bool(evaluation_request.transcript),
    )
    return {"jobId": job_id, "statusUrl": f"/api/evaluate/status/{job_id}"}


@router.get("/status/{job_id}")
async def evaluation_status(
    job_id: str,
    store: JobStore = Depends(get_job_store),
):
    """Current job record plus the report once the job has completed."""
    job = await store.get_job(job_id)
    if job is None:
        return JSONResponse(status_code=404, content={"error": "Job not found."})

    result = await store.get_result(job_id) if job.status == "completed" else None
    return {"job": job.to_payload(), "result": result}
