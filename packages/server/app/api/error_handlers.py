"""
Global exception handlers.

- OrgTasksError → its own status and error envelope
- RequestValidationError → InvalidInput (400) with field details
- IntegrityError → Conflict (409); store details are logged, not returned
- Any other exception → InternalError (500)
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.errors import Conflict, InternalError, InvalidInput, OrgTasksError

log = structlog.get_logger()


def _respond(exc: OrgTasksError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(OrgTasksError)
    async def core_error_handler(request: Request, exc: OrgTasksError):
        log.info(
            "request.rejected",
            code=exc.code,
            status=exc.http_status,
            path=request.url.path,
        )
        return _respond(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        log.info("request.invalid", path=request.url.path, fields=[d["field"] for d in details])
        return _respond(InvalidInput("Invalid request data", details=details))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        log.warning("store.integrity_error", path=request.url.path, error=str(exc.orig))
        return _respond(Conflict())

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        log.error("store.error", path=request.url.path, exc_info=exc)
        return _respond(InternalError())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error("request.unhandled_exception", path=request.url.path, exc_info=exc)
        return _respond(InternalError())
