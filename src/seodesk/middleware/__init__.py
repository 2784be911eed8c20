"""Middleware registration."""

from fastapi import FastAPI

from seodesk.config import Settings
from seodesk.middleware.cors import setup_cors
from seodesk.middleware.error_handler import setup_error_handlers
from seodesk.middleware.logging import setup_logging
from seodesk.middleware.rate_limit import RateLimitMiddleware
from seodesk.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order. CORS is added last so it
    wraps every response, including 429s from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
