"""Global error handler: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnstack.errors import LearnStackError

logger = structlog.get_logger()

ERROR_STATUS_CODES: dict[str, int] = {
    "not_found": 404,
    "access_denied": 403,
    "invalid_state": 409,
    "concurrency_conflict": 503,
    "collaborator_unavailable": 503,
}

# Validator contexts can carry exception instances
_ENCODERS = {Exception: str}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(LearnStackError)
    async def engine_exception_handler(request: Request, exc: LearnStackError) -> JSONResponse:
        """Map engine error kinds to HTTP status codes."""
        status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
        if status_code >= 500:
            logger.warning("engine_error", path=request.url.path, kind=exc.kind, error=str(exc))
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "kind": exc.kind, "context": jsonable_encoder(exc.context, custom_encoder=_ENCODERS)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle validation errors with consistent JSON format."""
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors(), custom_encoder=_ENCODERS)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
