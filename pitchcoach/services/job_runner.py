"""Drive evaluation jobs through queued -> running -> completed | failed."""

import asyncio
import time
from typing import Optional

import structlog

from pitchcoach.config import get_settings
from pitchcoach.services.job_store import JobStore, get_job_store
from pitchcoach.services.pipeline import EvaluationPipeline

logger = structlog.get_logger(__name__)

# Module-level background task tracking
_pending_jobs: set[asyncio.Task] = set()

CANCELLED_ERROR = "Evaluation cancelled during shutdown"


async def run_evaluation(
    job_id: str,
    store: Optional[JobStore] = None,
    pipeline: Optional[EvaluationPipeline] = None,
) -> None:
    """Run one job to a terminal state.

    A job that no longer exists is skipped without writing anything. AI
    provider problems end up as warnings in a completed report; only errors
    that escape the pipeline (store I/O, bugs, the optional per-job timeout)
    mark the job failed. Never raises, except to pass on cancellation after
    the job is recorded as failed.
    """
    store = store or get_job_store()
    settings = get_settings()
    start_time = time.perf_counter()

    with structlog.contextvars.bound_contextvars(job_id=job_id):
        try:
            job = await store.update_job_status(job_id, "running")
            if job is None:
                logger.warning("job_not_found", job_id=job_id)
                return

            logger.info("job_started", job_id=job_id, target=job.target)
            pipeline = pipeline or EvaluationPipeline(settings)

            timeout = settings.evaluation_timeout_seconds or None
            async with asyncio.timeout(timeout):
                report = await pipeline.run(job_id, job.input, job.media or [])

            result_path = await store.save_result(job_id, report)
            await store.update_job(job_id, status="completed", result_path=result_path)
            logger.info(
                "job_completed",
                job_id=job_id,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                overall_score=report.summary.overall_score,
                fallback=report.is_fallback,
            )
        except asyncio.CancelledError:
            logger.warning("job_cancelled", job_id=job_id)
            await _record_failure(store, job_id, CANCELLED_ERROR)
            raise
        except Exception as e:
            error = str(e) or repr(e)
            logger.error(
                "job_failed",
                job_id=job_id,
                error_type=type(e).__name__,
                error=error,
            )
            await _record_failure(store, job_id, error)


async def _record_failure(store: JobStore, job_id: str, error: str) -> None:
    try:
        await store.update_job(job_id, status="failed", error=error)
    except Exception as store_error:
        logger.error(
            "job_failure_not_recorded",
            job_id=job_id,
            error=str(store_error),
        )


def schedule_job(job_id: str, store: Optional[JobStore] = None) -> asyncio.Task:
    """Start a job in the background and return immediately.

    The task is tracked so shutdown can drain it; ``run_evaluation`` is the
    error boundary, so a finished task never carries an exception other than
    cancellation.

    Args:
        job_id: Job to run
        store: Store override (defaults to the configured store)

    Returns:
        The created asyncio Task
    """
    task = asyncio.create_task(run_evaluation(job_id, store=store), name=f"evaluation-{job_id}")
    _pending_jobs.add(task)
    task.add_done_callback(_pending_jobs.discard)
    logger.info("job_scheduled", job_id=job_id, pending=len(_pending_jobs))
    return task


def pending_job_count() -> int:
    return len(_pending_jobs)


async def await_pending_jobs(timeout: float = 10.0) -> None:
    """Wait for running background jobs during shutdown.

    Args:
        timeout: Maximum seconds to wait for pending jobs
    """
    if not _pending_jobs:
        return

    logger.info("draining_pending_jobs", count=len(_pending_jobs))
    try:
        await asyncio.wait_for(
            asyncio.gather(*_pending_jobs, return_exceptions=True),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "pending_jobs_timeout",
            remaining=len(_pending_jobs),
            timeout=timeout,
        )
