"""Global error handlers. Every error response is ``{"error": ..., "message"?: ...}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from moca_gate.errors import DependencyError, GatingError

logger = structlog.get_logger()

_GENERIC_500 = {
    "error": DependencyError.error,
    "message": DependencyError.public_message,
}


def _summarize_validation(exc: RequestValidationError) -> str:
    """One line per violated constraint, e.g. ``body.email: value is not a valid email address``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(GatingError)
    async def gating_error_handler(request: Request, exc: GatingError) -> JSONResponse:
        """Domain errors carry their own status and body."""
        if isinstance(exc, DependencyError):
            logger.error(
                "dependency_failure",
                path=request.url.path,
                method=request.method,
                error=str(exc),
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Schema violations are client errors: 400 with the violated constraints."""
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "message": _summarize_validation(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Datastore failures never leak driver messages to the client."""
        logger.error(
            "database_failure",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=_GENERIC_500)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, always JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=_GENERIC_500)
