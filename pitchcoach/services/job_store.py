"""Persistence for evaluation jobs, results and uploads.

Records are keyed by job id and only ever replaced whole (load, modify,
store). There is no locking: concurrent updates to one job id are last
write wins, which is fine while each job has a single runner.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from pitchcoach.config import Settings, get_settings
from pitchcoach.errors import JobStoreError
from pitchcoach.models.job import (
    JOB_STATUS_ORDER,
    EvaluationJob,
    JobStatus,
    utc_now,
)
from pitchcoach.models.report import EvaluationReport
from pitchcoach.models.request import EvaluationRequest, UploadedMedia
from pitchcoach.services.redis_service import get_redis

logger = structlog.get_logger(__name__)

JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(file_name: str) -> str:
    """Replace anything outside [a-zA-Z0-9._-] with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub("_", file_name)


def is_valid_job_id(job_id: str) -> bool:
    return bool(JOB_ID_PATTERN.match(job_id))


class JobStore(ABC):
    """Key-value store for job records, result blobs and uploaded files."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def uploads_dir(self) -> Path:
        return self.settings.uploads_dir

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[EvaluationJob]:
        """Load a job record, or None if it does not exist."""

    @abstractmethod
    async def _write_job(self, job: EvaluationJob) -> None:
        """Replace the stored record for ``job.id``."""

    @abstractmethod
    async def save_result(self, job_id: str, report: EvaluationReport) -> str:
        """Persist a report and return a reference to it."""

    @abstractmethod
    async def get_result(self, job_id: str) -> Optional[dict[str, Any]]:
        """Load a stored report as JSON data, or None."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the backend is reachable."""

    async def create_job(
        self,
        job_id: str,
        request: EvaluationRequest,
        media: Optional[list[UploadedMedia]] = None,
    ) -> EvaluationJob:
        """Store a new job in the queued state."""
        if not is_valid_job_id(job_id):
            raise ValueError(f"Invalid job id: {job_id!r}")
        now = utc_now()
        job = EvaluationJob(
            id=job_id,
            status="queued",
            created_at=now,
            updated_at=now,
            target=request.target,
            input=request,
            media=media,
        )
        await self._write_job(job)
        logger.info(
            "job_created",
            job_id=job_id,
            target=request.target,
            media_count=len(media or []),
        )
        return job

    async def update_job(self, job_id: str, **changes: Any) -> Optional[EvaluationJob]:
        """Read-modify-write a job record.

        Always refreshes ``updated_at``. A status change that would move the
        job backwards in its lifecycle is ignored.

        Returns:
            The updated job, or None if no such job exists
        """
        job = await self.get_job(job_id)
        if job is None:
            return None

        new_status = changes.get("status")
        if new_status is not None and JOB_STATUS_ORDER[new_status] < JOB_STATUS_ORDER[job.status]:
            logger.warning(
                "job_status_regression_ignored",
                job_id=job_id,
                current_status=job.status,
                requested_status=new_status,
            )
            changes.pop("status")

        updated = job.model_copy(update={**changes, "updated_at": utc_now()})
        await self._write_job(updated)
        return updated

    async def update_job_status(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> Optional[EvaluationJob]:
        return await self.update_job(job_id, status=status, error=error)

    async def persist_upload(self, job_id: str, file_name: str, data: bytes) -> str:
        """Write an uploaded file to ``<uploads>/<job_id>-<safe name>``."""
        path = self.uploads_dir / f"{job_id}-{sanitize_filename(file_name)}"

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise JobStoreError(f"Failed to store upload {file_name}: {e}") from e
        return str(path)


class FileJobStore(JobStore):
    """JSON files under ``data_dir``: jobs/<id>.json and results/<id>.json."""

    def _job_path(self, job_id: str) -> Path:
        return self.settings.jobs_dir / f"{job_id}.json"

    def _result_path(self, job_id: str) -> Path:
        return self.settings.results_dir / f"{job_id}.json"

    @staticmethod
    async def _write_text(path: Path, text: str) -> None:
        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise JobStoreError(f"Failed to write {path}: {e}") from e

    @staticmethod
    async def _read_text(path: Path) -> Optional[str]:
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise JobStoreError(f"Failed to read {path}: {e}") from e

    async def get_job(self, job_id: str) -> Optional[EvaluationJob]:
        if not is_valid_job_id(job_id):
            return None
        raw = await self._read_text(self._job_path(job_id))
        if raw is None:
            return None
        try:
            return EvaluationJob.model_validate_json(raw)
        except ValidationError as e:
            raise JobStoreError(f"Corrupt job record {job_id}: {e}") from e

    async def _write_job(self, job: EvaluationJob) -> None:
        await self._write_text(
            self._job_path(job.id),
            job.model_dump_json(by_alias=True, exclude_none=True, indent=2),
        )

    async def save_result(self, job_id: str, report: EvaluationReport) -> str:
        path = self._result_path(job_id)
        await self._write_text(path, json.dumps(report.to_payload(), indent=2))
        return str(path)

    async def get_result(self, job_id: str) -> Optional[dict[str, Any]]:
        if not is_valid_job_id(job_id):
            return None
        raw = await self._read_text(self._result_path(job_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise JobStoreError(f"Corrupt result for {job_id}: {e}") from e

    async def health_check(self) -> bool:
        return True


class RedisJobStore(JobStore):
    """Job and result JSON under ``job:<id>`` and ``result:<id>`` keys.

    Uploads still go to the local uploads directory since ffmpeg needs a path.
    """

    async def _client(self):
        client = await get_redis()
        if client is None:
            raise JobStoreError("Redis is unavailable")
        return client

    async def _set(self, key: str, value: str) -> None:
        client = await self._client()
        try:
            if self.settings.result_ttl_seconds > 0:
                await client.setex(key, self.settings.result_ttl_seconds, value)
            else:
                await client.set(key, value)
        except Exception as e:
            raise JobStoreError(f"Redis write failed for {key}: {e}") from e

    async def _get(self, key: str) -> Optional[str]:
        client = await self._client()
        try:
            return await client.get(key)
        except Exception as e:
            raise JobStoreError(f"Redis read failed for {key}: {e}") from e

    async def get_job(self, job_id: str) -> Optional[EvaluationJob]:
        if not is_valid_job_id(job_id):
            return None
        raw = await self._get(f"job:{job_id}")
        if raw is None:
            return None
        try:
            return EvaluationJob.model_validate_json(raw)
        except ValidationError as e:
            raise JobStoreError(f"Corrupt job record {job_id}: {e}") from e

    async def _write_job(self, job: EvaluationJob) -> None:
        await self._set(
            f"job:{job.id}", job.model_dump_json(by_alias=True, exclude_none=True)
        )

    async def save_result(self, job_id: str, report: EvaluationReport) -> str:
        key = f"result:{job_id}"
        await self._set(key, json.dumps(report.to_payload()))
        return key

    async def get_result(self, job_id: str) -> Optional[dict[str, Any]]:
        if not is_valid_job_id(job_id):
            return None
        raw = await self._get(f"result:{job_id}")
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise JobStoreError(f"Corrupt result for {job_id}: {e}") from e

    async def health_check(self) -> bool:
        return await get_redis() is not None


_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """Get the process-wide job store for the configured backend."""
    global _store
    if _store is None:
        settings = get_settings()
        if settings.job_store_backend == "redis":
            _store = RedisJobStore(settings)
        else:
            _store = FileJobStore(settings)
    return _store


def reset_job_store() -> None:
    """Forget the cached store (tests and settings reloads)."""
    global _store
    _store = None
