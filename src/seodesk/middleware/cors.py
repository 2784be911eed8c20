"""CORS for the dashboard frontend."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from seodesk.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured frontend origins, exposing the download and tracing headers."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["Content-Disposition", "X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
