"""Middleware registration."""

from fastapi import FastAPI

from learnstack.config import Settings
from learnstack.middleware.cors import setup_cors
from learnstack.middleware.error_handler import setup_error_handlers
from learnstack.middleware.logging import setup_logging
from learnstack.middleware.rate_limit import RateLimitMiddleware
from learnstack.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order. CORS is added last so it
    is outermost and also wraps 429 responses; the request id is bound before
    the rate limiter so its warnings carry it. A zero request budget disables
    rate limiting.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
