"""
Hookups — global exception handlers.

Every failure leaves the API as ``{"status": "fail" | "error", "message": ...}``
with the status code carried by the error:

    - HttpException → its own message and status code
    - RequestValidationError → 400 with per-field details
    - Starlette HTTPException (404 for unknown routes, 405, ...) → same shape
    - Exception (catch-all) → 500; never leaks internal details
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.utils.exceptions import HttpException

logger = structlog.get_logger("hookups.api.errors")

GENERIC_MESSAGE = "Something went wrong"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_http_exception_handler(app)
    _register_validation_error_handler(app)
    _register_starlette_error_handler(app)
    _register_generic_error_handler(app)


def _register_http_exception_handler(app: FastAPI) -> None:

    @app.exception_handler(HttpException)
    async def http_exception_handler(request: Request, exc: HttpException):
        log = logger.bind(path=request.url.path, status_code=exc.status_code)
        if exc.status_code >= 500:
            log.error("http_exception", message=exc.message)
        else:
            log.info("http_exception", message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.info(
            "validation_error", path=request.url.path, errors=len(exc.errors()),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_starlette_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def starlette_error_handler(
        request: Request, exc: StarletteHTTPException,
    ):
        error = HttpException(str(exc.detail), exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=error.to_response(),
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.exception("unhandled_exception", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": GENERIC_MESSAGE},
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build the 400 body listing each invalid field."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
            "message": e["msg"],
        }
        for e in exc.errors()
    ]
    message = "; ".join(
        f"{err['field']}: {err['message']}" if err["field"] else err["message"]
        for err in errors
    )
    return {"status": "fail", "message": f"Invalid input data. {message}", "errors": errors}
