"""Document routes.

Thin adapter over the document engine:
- POST   /v1/deals/{deal_id}/documents                          (upload, raw body)
- GET    /v1/deals/{deal_id}/documents                          (list)
- GET    /v1/deals/{deal_id}/documents/{document_id}            (storage diagnostics)
- PATCH  /v1/deals/{deal_id}/documents/{document_id}            (metadata patch)
- GET    /v1/deals/{deal_id}/documents/{document_id}/content    (download)
- DELETE /v1/deals/{deal_id}/documents/{document_id}
- POST   /v1/deals/{deal_id}/documents/{document_id}/move
- GET    /v1/deals/{deal_id}/documents/{document_id}/moves      (move history)

Every document-scoped route goes through the isolation guard with the deal
in the URL. Engine errors are mapped to status codes by the exception
handlers in dealdocs.api.errors.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any
from urllib.parse import quote

from fastapi import APIRouter, Header, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from dealdocs.config import PDF_MEDIA_TYPE
from dealdocs.engine import DocumentEngine
from dealdocs.models.document import DocumentType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/deals/{deal_id}/documents", tags=["Documents"])

NO_STORE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class DocumentListResponse(BaseModel):
    """Response for GET /v1/deals/{deal_id}/documents."""

    items: list[dict[str, Any]]


class MoveDocumentRequest(BaseModel):
    """Request body for POST .../{document_id}/move."""

    model_config = ConfigDict(extra="forbid")

    to_deal_id: int
    reason: Annotated[str, Field(min_length=1)]


def _engine(request: Request) -> DocumentEngine:
    engine: DocumentEngine = request.app.state.document_engine
    return engine


def content_disposition(file_name: str, file_type: str) -> str:
    """PDFs open inline in the browser; everything else downloads."""
    disposition = "inline" if file_type == PDF_MEDIA_TYPE else "attachment"
    return f"{disposition}; filename*=UTF-8''{quote(file_name)}"


@router.post("", status_code=201)
async def upload_document(
    deal_id: int,
    request: Request,
    file_name: Annotated[str, Query(min_length=1)],
    document_type: DocumentType = DocumentType.OTHER,
    description: str | None = None,
    content_type: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[int | None, Header()] = None,
) -> dict[str, Any]:
    """Upload raw bytes as a new blob-backed document."""
    data = await request.body()
    document = await run_in_threadpool(
        _engine(request).store.store,
        deal_id,
        file_name,
        content_type or "application/octet-stream",
        data,
        uploaded_by=x_user_id,
        document_type=document_type,
        description=description,
    )
    return document.to_dict()


@router.get("", response_model=DocumentListResponse)
def list_documents(deal_id: int, request: Request) -> DocumentListResponse:
    """List the documents owned by a deal."""
    documents = _engine(request).guard.list_for_deal(deal_id)
    return DocumentListResponse(items=[d.to_dict() for d in documents])


@router.get("/{document_id}")
def describe_document(deal_id: int, document_id: int, request: Request) -> dict[str, Any]:
    """Storage diagnostics for one document."""
    return _engine(request).store.describe(document_id, deal_id)


@router.patch("/{document_id}")
def update_document(
    deal_id: int, document_id: int, changes: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Patch mutable metadata; deal_id and uploaded_at are rejected."""
    return _engine(request).store.update_metadata(document_id, deal_id, changes).to_dict()


@router.get("/{document_id}/content")
def download_document(deal_id: int, document_id: int, request: Request) -> Response:
    """Serve document bytes from the blob or the resolved file."""
    retrieved = _engine(request).store.retrieve(document_id, deal_id)
    headers = {
        "Content-Disposition": content_disposition(retrieved.file_name, retrieved.file_type),
        "X-Document-Source": retrieved.source.value,
        **NO_STORE_HEADERS,
    }
    if retrieved.warnings:
        headers["X-Integrity-Warnings"] = ",".join(w.kind.value for w in retrieved.warnings)
    return Response(content=retrieved.data, media_type=retrieved.file_type, headers=headers)


@router.delete("/{document_id}", status_code=204)
def delete_document(deal_id: int, document_id: int, request: Request) -> Response:
    """Delete a document (metadata and blob; files on disk are kept)."""
    _engine(request).store.delete(document_id, deal_id)
    return Response(status_code=204)


@router.post("/{document_id}/move")
def move_document(
    deal_id: int, document_id: int, body: MoveDocumentRequest, request: Request
) -> dict[str, Any]:
    """Move a document from this deal to another."""
    move = _engine(request).guard.move(
        document_id, body.to_deal_id, body.reason, from_deal_id=deal_id
    )
    return move.model_dump(mode="json")


@router.get("/{document_id}/moves")
def list_moves(deal_id: int, document_id: int, request: Request) -> dict[str, Any]:
    """Move history of a document currently owned by this deal."""
    engine = _engine(request)
    engine.guard.assert_ownership(document_id, deal_id)
    return {"items": [m.model_dump(mode="json") for m in engine.guard.history(document_id)]}
