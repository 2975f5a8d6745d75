"""FastAPI API routes for the rightsdesk corpus.

Provides REST endpoints for document ingestion, lookup and deletion, hybrid
search, corpus statistics and health checks.  Service dependencies are
resolved from ``app.state`` via FastAPI's ``Depends`` using the
``Annotated`` pattern.

# ─── API ROUTE MAP ─────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/corpus/documents              POST    Ingest text or a data URI
# /api/v1/corpus/documents/from-url     POST    Fetch a page and ingest it
# /api/v1/corpus/documents/{id}         GET     Document + chunk count
# /api/v1/corpus/documents/{id}         DELETE  Delete document and chunks
# /api/v1/corpus/search                 POST    Hybrid semantic + keyword search
# /api/v1/corpus/stats                  GET     Corpus statistics
# /api/v1/health                        GET     Health check + provider status
#
# Errors are raised as CorpusError subclasses and turned into
# ErrorResponse bodies by ErrorHandlingMiddleware.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request, Response

from rightsdesk import __version__
from rightsdesk.api.schemas import (
    CorpusStatsResponse,
    DeleteDocumentResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
    IngestDocumentRequest,
    IngestResponse,
    IngestUrlRequest,
    SearchRequest,
    SearchResponse,
)
from rightsdesk.models.corpus import IngestionResult
from rightsdesk.services.ingestion.ingestion_service import IngestionService
from rightsdesk.services.search.search_service import SearchService
from rightsdesk.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# All routes in this file are prefixed with /api/v1.
router = APIRouter(prefix="/api/v1")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve services from app.state
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion service from application state."""
    return request.app.state.ingestion_service


def _get_search_service(request: Request) -> SearchService:
    """Return the search service from application state."""
    return request.app.state.search_service


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
SearchDep = Annotated[SearchService, Depends(_get_search_service)]


def _to_ingest_response(result: IngestionResult, response: Response) -> IngestResponse:
    response.status_code = 201 if result.created else 200
    return IngestResponse(**result.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Ingestion endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/corpus/documents",
    response_model=IngestResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
    summary="Ingest a document",
)
async def ingest_document(
    body: IngestDocumentRequest,
    response: Response,
    ingestion: IngestionDep,
) -> IngestResponse:
    """Add a document to the corpus.

    Returns 201 with a new id, or 200 with the existing id when identical
    content is already stored.
    """
    result = await ingestion.ingest(
        title=body.title,
        content=body.content,
        doc_type=body.doc_type,
        language=body.language,
        category=body.category,
        tags=body.tags,
        source_url=body.source_url,
        published_at=body.published_at,
    )
    return _to_ingest_response(result, response)


@router.post(
    "/corpus/documents/from-url",
    response_model=IngestResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
    summary="Fetch a web page and ingest it",
)
async def ingest_from_url(
    body: IngestUrlRequest,
    response: Response,
    ingestion: IngestionDep,
) -> IngestResponse:
    result = await ingestion.ingest_from_url(
        url=body.url,
        doc_type=body.doc_type,
        category=body.category,
        language=body.language,
        tags=body.tags,
    )
    return _to_ingest_response(result, response)


# ---------------------------------------------------------------------------
# Document endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/corpus/documents/{document_id}",
    response_model=DocumentResponse,
    responses=_ERROR_RESPONSES,
    summary="Get a stored document",
)
async def get_document(document_id: str, ingestion: IngestionDep) -> DocumentResponse:
    document = await ingestion.get_document(document_id)
    chunks = await ingestion.get_chunks(document_id)
    data = document.model_dump(mode="json", exclude={"content_html"})
    return DocumentResponse(**data, chunk_count=len(chunks))


@router.delete(
    "/corpus/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a document and its chunks",
)
async def delete_document(document_id: str, ingestion: IngestionDep) -> DeleteDocumentResponse:
    await ingestion.delete_document(document_id)
    return DeleteDocumentResponse(document_id=document_id, deleted=True)


# ---------------------------------------------------------------------------
# Search endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/corpus/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Hybrid semantic + keyword search",
)
async def search_corpus(body: SearchRequest, search: SearchDep) -> SearchResponse:
    """Search the corpus.

    A failing strategy does not fail the request; it is listed in
    ``degraded_strategies`` and contributes no results.
    """
    filters = body.filters.model_dump(exclude_none=True) if body.filters else None
    result = await search.search(
        query=body.query,
        filters=filters,
        limit=body.limit,
        threshold=body.threshold,
    )
    return SearchResponse(
        results=result.results,
        total=result.total,
        query=result.query,
        filters=result.filters.model_dump(mode="json", exclude_none=True),
        degraded_strategies=[s.value for s in result.degraded_strategies],
    )


@router.get(
    "/corpus/stats",
    response_model=CorpusStatsResponse,
    responses=_ERROR_RESPONSES,
    summary="Corpus statistics",
)
async def corpus_stats(ingestion: IngestionDep) -> CorpusStatsResponse:
    stats = await ingestion.get_corpus_stats()
    return CorpusStatsResponse(**stats.model_dump())


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request, ingestion: IngestionDep) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``healthy`` needs a readable store and an embedding provider;
    ``degraded`` means only keyword search can work; ``unhealthy`` means
    the store itself is unreachable.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    try:
        stats = await ingestion.get_corpus_stats()
        providers["store"] = True
        providers["documents"] = stats.total_documents
    except Exception as exc:  # noqa: BLE001
        _logger.warning("health_store_check_failed", error=str(exc))
        providers["store"] = False
        providers["documents"] = 0

    if providers["store"] and providers.get("embedding", False):
        status = "healthy"
    elif providers["store"]:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
