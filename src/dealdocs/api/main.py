"""FastAPI application factory for the document API."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from dealdocs import __version__
from dealdocs.api.errors import (
    assign_request_id,
    document_engine_error_handler,
    generic_exception_handler,
    request_validation_error_handler,
    routing_error_handler,
)
from dealdocs.api.routes.documents import router as documents_router
from dealdocs.api.routes.health import router as health_router
from dealdocs.engine import DocumentEngine
from dealdocs.errors import DocumentEngineError


def create_app(engine: DocumentEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Document engine to serve. If None, one is built from the
            environment (in-memory storage when no database is configured).

    Returns:
        Configured FastAPI application instance.
    """
    if engine is None:
        engine = DocumentEngine.from_env()

    app = FastAPI(
        title="dealdocs",
        description="Document storage & resolution engine",
        version=__version__,
    )
    app.state.document_engine = engine

    app.middleware("http")(assign_request_id)

    app.add_exception_handler(DocumentEngineError, document_engine_error_handler)
    app.add_exception_handler(StarletteHTTPException, routing_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(documents_router)

    return app
