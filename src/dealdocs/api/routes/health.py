"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from dealdocs import __version__
from dealdocs.persistence.unit_of_work import SqlUnitOfWork

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str
    storage: str


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns status, time (ISO-8601), version and the storage backend in use.
    """
    engine = request.app.state.document_engine
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=__version__,
        storage="sql" if isinstance(engine.uow, SqlUnitOfWork) else "memory",
    )
