"""API middleware: CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``CorpusError`` subclasses into JSON ``ErrorResponse`` bodies.

# ─── MIDDLEWARE EXECUTION ORDER ────────────────────────────────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st → inner
#     app.add_middleware(RequestLoggingMiddleware)  # added 2nd → outermost
#
#   Request flow:
#     Client → RequestLogging → ErrorHandling → route handler
#   Response flow:
#     Client ← RequestLogging ← ErrorHandling ← route handler
#
# So RequestLoggingMiddleware sees the *final* response status code
# (after ErrorHandling turned an exception into a structured JSON error).
#
# Request-body shape errors never reach the middleware: FastAPI turns them
# into a response itself, so configure_error_handlers() registers a
# handler that reports them in the same ErrorResponse format.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from rightsdesk.api.schemas import ErrorResponse
from rightsdesk.utils.errors import CorpusError, ErrorKind
from rightsdesk.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# HTTP status for each error category.
STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONTENT_TOO_SHORT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNSUPPORTED_FORMAT: 415,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.INTERNAL: 500,
    ErrorKind.PROVIDER: 502,
    ErrorKind.FETCH_FAILED: 502,
    ErrorKind.STORAGE: 503,
}


def error_response(exc: CorpusError) -> JSONResponse:
    """Build the JSON response for *exc*."""
    body = ErrorResponse(
        error=type(exc).__name__,
        kind=exc.kind.value,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 500),
        content=body.model_dump(),
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def configure_error_handlers(app: FastAPI) -> None:
    """Report malformed request bodies as ``ErrorResponse`` with status 400."""

    async def _request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        fields = ", ".join(
            ".".join(str(part) for part in err.get("loc", ()) if part != "body") or "body"
            for err in errors
        )
        _logger.warning(
            "request_validation_failed",
            path=str(request.url.path),
            errors=len(errors),
        )
        body = ErrorResponse(
            error="ValidationError",
            kind=ErrorKind.VALIDATION.value,
            detail=f"Invalid request body: {fields}",
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    app.add_exception_handler(RequestValidationError, _request_validation_handler)


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``CorpusError`` subclasses and return structured JSON errors.

    The status code comes from the error's :class:`ErrorKind`.  Stack traces
    are logged server-side only and never leaked to the client.  Any other
    exception is logged with its traceback and answered with a 500
    ``ErrorResponse`` of kind ``internal`` whose detail is fixed text.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except CorpusError as exc:
            status = STATUS_BY_KIND.get(exc.kind, 500)
            log = _logger.error if status >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                kind=exc.kind.value,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status,
            )
            return error_response(exc)
        except Exception as exc:
            _logger.exception(
                "unhandled_error",
                error_type=type(exc).__name__,
                path=str(request.url.path),
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                kind=ErrorKind.INTERNAL.value,
                detail="Internal server error",
            )
            return JSONResponse(status_code=500, content=body.model_dump())
