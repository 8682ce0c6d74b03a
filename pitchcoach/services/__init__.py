"""Services package exports."""

from pitchcoach.services.job_runner import run_evaluation, schedule_job
from pitchcoach.services.logging_service import configure_logging, get_logger
from pitchcoach.services.orchestrator import EvaluationOrchestrator
from pitchcoach.services.pipeline import EvaluationPipeline

__all__ = [
    "EvaluationOrchestrator",
    "EvaluationPipeline",
    "configure_logging",
    "get_logger",
    "run_evaluation",
    "schedule_job",
]
