"""CORS for the learner and admin front ends."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnstack.config import Settings

# Every endpoint is GET, POST or PATCH
_METHODS = ["GET", "POST", "PATCH", "OPTIONS"]
_EXPOSED = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=_METHODS,
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=_EXPOSED,
    )
