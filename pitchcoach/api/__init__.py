"""API package exports."""

from pitchcoach.api.evaluate import router as evaluate_router
from pitchcoach.api.middleware import CorrelationIdMiddleware
from pitchcoach.api.routes import router

__all__ = ["router", "evaluate_router", "CorrelationIdMiddleware"]
