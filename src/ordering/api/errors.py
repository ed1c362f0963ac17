"""Error envelope for the HTTP API.

Every failure is answered as ``{"success": false, "message": ...}``.
Unexpected exceptions are logged and reported as a generic server error; the
traceback is attached only when the debug setting is on.
"""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ordering.config import get_settings
from ordering.errors import OrderingError

logger = structlog.get_logger(__name__)


def error_response(status_code: int, message: str, exc: Exception | None = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if exc is not None and get_settings().debug:
        content["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=status_code, content=content)


def flatten_messages(messages) -> str:
    """Collapse Protean's ``{field: [messages]}`` into a single sentence."""
    if isinstance(messages, dict):
        parts = []
        for field, errors in messages.items():
            errors = errors if isinstance(errors, list) else [errors]
            parts.extend(str(e) if field in ("_entity", "cart", "stock") else f"{field}: {e}" for e in errors)
        return "; ".join(parts) if parts else "Validation failed"
    return str(messages)


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
        return error_response(exc.status_code, exc.message, exc)
    return error_response(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(400, flatten_messages(exc.messages))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(404, "Resource not found")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return error_response(400, "; ".join(parts) or "Invalid request")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return error_response(500, "Server Error", exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
