"""
Tourbook Backend — Centralized Error Handling
==============================================

What:  Turns every exception that escapes a route or middleware into one
       consistent JSON error response.
How:   `error_response()` renders a TourbookError; `register_exception_handlers()`
       maps framework and driver exceptions onto the same shape.
Who:   Handlers are registered by create_app(); middleware that short-circuits
       a request (rate limit, body limit, malformed JSON) calls error_response()
       directly because exceptions raised in middleware never reach
       FastAPI's exception handlers.

Payload shape:
    {
        "status": "fail",              # "fail" for 4xx, "error" for 5xx
        "error": "not_found",          # machine-readable code
        "message": "Can't find /nope on this server!",
        "details": {...},              # optional, 4xx only
        "request_id": "a1b2c3d4"
    }

Development vs production:
    With NODE_ENV=development the payload also carries "exception" (class name)
    and "stack" (formatted traceback). In production an unexpected error only
    ever says "Something went very wrong!"; the traceback goes to the log.
"""

import logging
import traceback
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourbook.config import Settings
from tourbook.exceptions import ConflictError, TourbookError, ValidationError
from tourbook.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went very wrong!"

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    429: "rate_limit_exceeded",
}


def error_payload(exc: TourbookError, debug: bool = False) -> Dict[str, Any]:
    """Build the JSON body for a TourbookError."""
    payload: Dict[str, Any] = {
        "status": exc.status,
        "error": exc.error_code,
        "message": exc.message,
    }
    if exc.status_code < 500 and exc.context:
        payload["details"] = exc.context
    if not exc.is_operational and not debug:
        payload["message"] = GENERIC_ERROR_MESSAGE
    if debug:
        payload["exception"] = type(exc.__cause__ or exc).__name__
        payload["stack"] = traceback.format_exception(exc.__cause__ or exc)
    payload["request_id"] = request_id_var.get("")
    return payload


def error_response(
    exc: TourbookError,
    debug: bool = False,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Render a TourbookError as a JSONResponse with its status code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc, debug=debug),
        headers=dict(headers) if headers else None,
    )


def unexpected_error_response(exc: Exception, debug: bool = False) -> JSONResponse:
    """Log a non-operational error with its traceback and render it as a 500."""
    logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=exc)
    wrapped = TourbookError(message=str(exc) or GENERIC_ERROR_MESSAGE, is_operational=False)
    wrapped.__cause__ = exc
    return error_response(wrapped, debug=debug)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "Invalid input data. " + ". ".join(parts)


def register_exception_handlers(app: FastAPI, config: Settings) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        TourbookError            → its own status code (400/404/413/429/500)
        RequestValidationError   → 400 Invalid input data
        IntegrityError           → 400 Duplicate field value
        StarletteHTTPException   → its status code
        Exception (fallback)     → 500 Something went very wrong!

    Tracebacks are logged server-side and only returned in development.
    """
    debug = config.is_development

    @app.exception_handler(TourbookError)
    async def handle_tourbook_error(request: Request, exc: TourbookError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        headers = None
        retry_after = exc.context.get("retry_after")
        if retry_after:
            headers = {"Retry-After": str(retry_after)}
        return error_response(exc, debug=debug, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        wrapped = ValidationError(
            message=_describe_validation_errors(exc),
            context={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in exc.errors()
            ]},
        )
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), wrapped.message)
        return error_response(wrapped, debug=debug)

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        wrapped = ConflictError()
        wrapped.__cause__ = exc
        logger.warning("[%s] Integrity error: %s", request_id_var.get(""), exc.orig)
        return error_response(wrapped, debug=debug)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        wrapped = TourbookError(message=str(exc.detail), status_code=exc.status_code)
        wrapped.error_code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return error_response(wrapped, debug=debug, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Last resort for errors raised outside the middleware chain; route
        # errors are rendered earlier by UnhandledErrorMiddleware.
        return unexpected_error_response(exc, debug=debug)
