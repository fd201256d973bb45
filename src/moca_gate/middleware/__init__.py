"""Middleware registration."""

from fastapi import FastAPI

from moca_gate.config import Settings
from moca_gate.middleware.cors import setup_cors
from moca_gate.middleware.error_handler import setup_error_handlers
from moca_gate.middleware.logging import setup_logging
from moca_gate.middleware.rate_limit import RateLimitMiddleware
from moca_gate.middleware.request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS is added last so it also wraps 429 responses from the throttle.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestContextMiddleware)
    setup_cors(app, settings)
