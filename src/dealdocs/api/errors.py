"""Error envelope, request ids and exception handlers for the document API.

Every error response has the same body, built from DocumentEngineError.to_dict()
plus the request id:

    {"code": ..., "message": ..., "details": ... | null, "request_id": ...}

Engine errors keep their own code and status (400 validation, 403 cross-deal,
404 not found, 410 gone). Request validation is 422, routing errors keep
their status, and anything unhandled is a 500 without internals.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dealdocs.errors import DocumentEngineError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

# Statuses the router raises on its own; engine errors carry their own code.
ROUTING_ERROR_CODES: dict[int, str] = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def request_id_of(request: Request) -> str:
    """The request id assigned by assign_request_id, or a fresh one."""
    request_id: str | None = getattr(request.state, "request_id", None)
    if request_id is None:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        request_id = incoming or str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


async def assign_request_id(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """HTTP middleware: reuse a non-blank X-Request-Id or generate one, and echo it."""
    request_id = request_id_of(request)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def error_response(request: Request, http_status: int, envelope: dict[str, Any]) -> JSONResponse:
    """Render an error envelope with the request id in body and header."""
    request_id = request_id_of(request)
    body = {**envelope, "details": envelope.get("details") or None, "request_id": request_id}
    return JSONResponse(
        status_code=http_status, content=body, headers={REQUEST_ID_HEADER: request_id}
    )


async def document_engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, DocumentEngineError)
    return error_response(request, exc.http_status, exc.to_dict())


async def routing_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unknown paths and unsupported methods."""
    assert isinstance(exc, StarletteHTTPException)
    return error_response(
        request,
        exc.status_code,
        {
            "code": ROUTING_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            "message": str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        },
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """422 listing the offending fields, without raw validation internals."""
    assert isinstance(exc, RequestValidationError)

    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append(
            {
                "field": ".".join(loc) if loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return error_response(
        request,
        422,
        {
            "code": "REQUEST_VALIDATION_FAILED",
            "message": "Request validation failed",
            "details": {"errors": fields} if fields else None,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fail closed with a 500 and a generic message."""
    logger.exception(
        "Unhandled %s in %s %s (request_id=%s)",
        type(exc).__name__,
        request.method,
        request.url.path,
        request_id_of(request),
    )
    return error_response(
        request, 500, {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}
    )
