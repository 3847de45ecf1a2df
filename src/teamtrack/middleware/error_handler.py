"""Global error handlers. Every error reaches the device as ``{"detail": ...}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from teamtrack.teams.service import TeamNotFoundError

logger = structlog.get_logger()


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _invalid_payload(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": exc.errors()},
    )


async def _team_not_found(_request: Request, exc: TeamNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc), "team_id": exc.team_id})


async def _store_unavailable(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """A write that reached the store and failed; the device retries on its next action."""
    logger.warning("storage_error", path=request.url.path, method=request.method, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Game store unavailable"})


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _invalid_payload)
    app.add_exception_handler(TeamNotFoundError, _team_not_found)
    app.add_exception_handler(SQLAlchemyError, _store_unavailable)
    app.add_exception_handler(Exception, _unhandled)
