"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pitchcoach.api.evaluate import router as evaluate_router
from pitchcoach.api.middleware import CorrelationIdMiddleware
from pitchcoach.api.routes import router
from pitchcoach.config import get_settings
from pitchcoach.errors import JobStoreError
from pitchcoach.services.logging_service import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    if settings.job_store_backend == "redis":
        from pitchcoach.services.redis_service import get_redis

        if await get_redis() is None:
            logger.warning(
                "redis_initialization_failed",
                note="Job submission will fail until Redis is reachable",
            )
        else:
            logger.info("redis_initialized")

    logger.info(
        "application_started",
        model=settings.openai_model,
        job_store=settings.job_store_backend,
        llm_configured=bool(settings.openai_api_key),
        stt_configured=bool(settings.elevenlabs_api_key),
        log_level=settings.log_level,
    )

    yield

    # Let in-flight evaluations finish writing their results
    from pitchcoach.services.job_runner import await_pending_jobs

    await await_pending_jobs(timeout=settings.shutdown_drain_seconds)

    if settings.job_store_backend == "redis":
        from pitchcoach.services.redis_service import close_redis

        await close_redis()

    logger.info("application_shutdown")


app = FastAPI(
    title="Pitch Coach - Evaluation API",
    description="Asynchronous multi-agent feedback on pitch decks and recorded talks",
    version="0.1.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with the first validation problem spelled out."""
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = first_error.get("msg", "Validation failed")
        detail = f"Field '{field}': {message}"
    else:
        detail = "Request validation failed"

    logger.warning(
        "validation_error",
        correlation_id=correlation_id,
        detail=detail,
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation error",
            "detail": detail,
            "correlation_id": correlation_id,
        },
        headers={"X-Correlation-Id": correlation_id},
    )


@app.exception_handler(JobStoreError)
async def job_store_exception_handler(request: Request, exc: JobStoreError) -> JSONResponse:
    """Storage outages are reported as 503 so clients can retry."""
    correlation_id = _correlation_id(request)
    structlog.get_logger().error(
        "job_store_error", correlation_id=correlation_id, error=str(exc)
    )
    return JSONResponse(
        status_code=503,
        content={
            "error": "Storage unavailable",
            "detail": "Job storage could not be reached. Please try again shortly.",
            "correlation_id": correlation_id,
        },
        headers={"X-Correlation-Id": correlation_id},
    )


# CORS middleware for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(evaluate_router)
app.include_router(router)
