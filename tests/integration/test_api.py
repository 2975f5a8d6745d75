"""Integration tests for the corpus API endpoints using TestClient.

The app is built by ``create_app`` with injected components: a real SQLite
store in a temp directory, the deterministic mock embedding provider and a
mocked page fetcher.  ``with TestClient(app)`` runs the lifespan, so the
store is initialised exactly as in production.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from rightsdesk.config.settings import Settings
from rightsdesk.interfaces.page_fetcher import IPageFetcher, PageContent
from rightsdesk.main import create_app
from rightsdesk.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from rightsdesk.services.embedding_client import EmbeddingClient
from rightsdesk.services.ingestion.chunker import TextChunker
from rightsdesk.services.ingestion.ingestion_service import IngestionService
from rightsdesk.services.search.keyword_search import KeywordSearch
from rightsdesk.services.search.search_service import SearchService
from rightsdesk.services.search.semantic_search import SemanticSearch
from rightsdesk.utils.errors import EmbeddingError, FetchError

_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_components(
    db_path: Path, embedding_provider, page_fetcher: MagicMock
) -> dict[str, Any]:
    store = SQLiteDocumentStore(db_path=db_path)
    embedding_client = EmbeddingClient(embedding_provider, timeout_s=5.0)
    ingestion_service = IngestionService(
        store=store,
        chunker=TextChunker(max_tokens=40),
        embedding_client=embedding_client,
        page_fetcher=page_fetcher,
        min_content_length=50,
    )
    search_service = SearchService(
        semantic=SemanticSearch(embedding_client, store),
        keyword=KeywordSearch(store),
    )
    return {
        "store": store,
        "embedding_provider": embedding_provider,
        "page_fetcher": page_fetcher,
        "ingestion_service": ingestion_service,
        "search_service": search_service,
        "provider_registry": {
            "embedding": True,
            "embedding_provider": embedding_provider.get_provider_name(),
            "document_store": store.get_provider_name(),
        },
    }


@pytest.fixture
def page_fetcher() -> MagicMock:
    fetcher = MagicMock(spec=IPageFetcher)
    fetcher.fetch = AsyncMock()
    fetcher.get_provider_name.return_value = "mock-fetcher"
    return fetcher


@pytest.fixture
def client(
    db_path: Path,
    embedding_provider,
    page_fetcher: MagicMock,
    mock_config: dict[str, Any],
):
    """TestClient over a fully wired app; the lifespan runs inside the block."""
    components = _build_components(db_path, embedding_provider, page_fetcher)
    app = create_app(
        app_settings=Settings(_env_file=None, corpus_db_path=str(db_path)),
        config=mock_config,
        components=components,
    )
    with TestClient(app) as test_client:
        yield test_client


def _ingest(client: TestClient, content: str, **overrides: Any):
    body = {"title": "Patients' Rights Charter", "content": content, "doc_type": "medical"}
    body.update(overrides)
    return client.post("/api/v1/corpus/documents", json=body)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class TestIngestEndpoint:
    """Tests for POST /api/v1/corpus/documents."""

    def test_ingest_created(self, client: TestClient, charter_text: str) -> None:
        response = _ingest(client, charter_text, tags=["rights"], category="charter")

        assert response.status_code == 201
        data = response.json()
        assert data["created"] is True
        assert data["status"] == "created"
        assert data["document_id"]
        assert data["chunks_created"] > 1
        assert data["version"] == 1

    def test_duplicate_returns_existing_id(self, client: TestClient, charter_text: str) -> None:
        first = _ingest(client, charter_text)
        second = _ingest(client, charter_text, title="Another title", doc_type="legal")

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["status"] == "duplicate"
        assert second.json()["document_id"] == first.json()["document_id"]

    def test_data_uri_text(self, client: TestClient, refund_text: str) -> None:
        encoded = base64.b64encode(refund_text.encode("utf-8")).decode("ascii")
        response = _ingest(client, f"data:text/plain;base64,{encoded}", doc_type="policy")

        assert response.status_code == 201
        document_id = response.json()["document_id"]
        stored = client.get(f"/api/v1/corpus/documents/{document_id}").json()
        assert stored["content_text"] == refund_text

    def test_short_content_rejected(self, client: TestClient) -> None:
        response = _ingest(client, "Too short.")

        assert response.status_code == 400
        data = response.json()
        assert data["kind"] == "content_too_short"
        assert data["error"] == "ContentTooShortError"

    def test_unknown_doc_type_rejected(self, client: TestClient, charter_text: str) -> None:
        response = _ingest(client, charter_text, doc_type="recipe")

        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_missing_fields_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/corpus/documents", json={"title": "No content"})

        assert response.status_code == 400
        data = response.json()
        assert data["kind"] == "validation"
        assert "content" in data["detail"]

    def test_word_document_unsupported(self, client: TestClient) -> None:
        payload = base64.b64encode(b"PK\x03\x04fake-docx").decode("ascii")
        response = _ingest(client, f"data:{_DOCX_MIME};base64,{payload}")

        assert response.status_code == 415
        assert response.json()["kind"] == "unsupported_format"


class TestIngestFromUrlEndpoint:
    """Tests for POST /api/v1/corpus/documents/from-url."""

    def test_fetched_page_is_ingested(
        self, client: TestClient, page_fetcher: MagicMock, charter_text: str
    ) -> None:
        url = "https://example.org/charter"
        page_fetcher.fetch.return_value = PageContent(
            title="Charter of Patients' Rights", text=charter_text, url=url
        )

        response = client.post(
            "/api/v1/corpus/documents/from-url",
            json={"url": url, "doc_type": "medical"},
        )

        assert response.status_code == 201
        page_fetcher.fetch.assert_awaited_once_with(url)
        stored = client.get(f"/api/v1/corpus/documents/{response.json()['document_id']}").json()
        assert stored["title"] == "Charter of Patients' Rights"
        assert stored["source_url"] == url

    def test_fetch_failure_is_bad_gateway(
        self, client: TestClient, page_fetcher: MagicMock
    ) -> None:
        page_fetcher.fetch.side_effect = FetchError("Failed to fetch URL: HTTP 500")

        response = client.post(
            "/api/v1/corpus/documents/from-url",
            json={"url": "https://example.org/broken", "doc_type": "legal"},
        )

        assert response.status_code == 502
        assert response.json()["kind"] == "fetch_failed"

    def test_relative_url_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/corpus/documents/from-url",
            json={"url": "/charter", "doc_type": "legal"},
        )
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocumentEndpoints:
    """Tests for GET and DELETE /api/v1/corpus/documents/{id}."""

    def test_get_document(self, client: TestClient, charter_text: str) -> None:
        created = _ingest(client, charter_text, tags=["a", "b"]).json()

        response = client.get(f"/api/v1/corpus/documents/{created['document_id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "active"
        assert data["tags"] == ["a", "b"]
        assert data["chunk_count"] == created["chunks_created"]
        assert len(data["checksum"]) == 64

    def test_get_unknown_document(self, client: TestClient) -> None:
        response = client.get("/api/v1/corpus/documents/does-not-exist")

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_delete_document(self, client: TestClient, charter_text: str) -> None:
        document_id = _ingest(client, charter_text).json()["document_id"]

        response = client.delete(f"/api/v1/corpus/documents/{document_id}")

        assert response.status_code == 200
        assert response.json() == {"document_id": document_id, "deleted": True}
        assert client.get(f"/api/v1/corpus/documents/{document_id}").status_code == 404

    def test_delete_unknown_document(self, client: TestClient) -> None:
        assert client.delete("/api/v1/corpus/documents/nope").status_code == 404


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearchEndpoint:
    """Tests for POST /api/v1/corpus/search."""

    def test_search_response_shape(
        self, client: TestClient, charter_text: str, refund_text: str
    ) -> None:
        _ingest(client, charter_text)
        refund_id = _ingest(client, refund_text, title="Billing", doc_type="policy").json()[
            "document_id"
        ]

        response = client.post(
            "/api/v1/corpus/search",
            json={"query": "refund", "threshold": 0.99},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "refund"
        assert data["total"] == 1
        assert data["degraded_strategies"] == []
        hit = data["results"][0]
        assert hit["document_id"] == refund_id
        assert hit["search_type"] == "keyword"
        assert hit["rank_score"] > 0
        assert hit["document"]["title"] == "Billing"

    def test_filters_echoed(self, client: TestClient, refund_text: str) -> None:
        _ingest(client, refund_text, doc_type="policy")

        response = client.post(
            "/api/v1/corpus/search",
            json={"query": "deposit", "filters": {"doc_type": "policy"}},
        )

        assert response.status_code == 200
        assert response.json()["filters"] == {"doc_type": "policy"}

    def test_empty_query_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/corpus/search", json={"query": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Query is required"

    def test_limit_out_of_range(self, client: TestClient) -> None:
        response = client.post("/api/v1/corpus/search", json={"query": "consent", "limit": 0})
        assert response.status_code == 400

    def test_embedding_outage_degrades(
        self, client: TestClient, embedding_provider, refund_text: str
    ) -> None:
        _ingest(client, refund_text, doc_type="policy")
        embedding_provider.embed_single = AsyncMock(side_effect=EmbeddingError("down"))

        response = client.post("/api/v1/corpus/search", json={"query": "refund"})

        assert response.status_code == 200
        data = response.json()
        assert data["degraded_strategies"] == ["semantic"]
        assert data["total"] == 1

    def test_unexpected_error_returns_internal(self, client: TestClient) -> None:
        client.app.state.search_service.search = AsyncMock(
            side_effect=RuntimeError("sqlite cursor exploded")
        )

        response = client.post("/api/v1/corpus/search", json={"query": "refund"})

        assert response.status_code == 500
        body = response.json()
        assert body["kind"] == "internal"
        assert body["error"] == "RuntimeError"
        assert body["detail"] == "Internal server error"
        assert "exploded" not in response.text


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class TestSystemEndpoints:
    """Tests for GET /api/v1/corpus/stats and GET /api/v1/health."""

    def test_stats(self, client: TestClient, charter_text: str, refund_text: str) -> None:
        _ingest(client, charter_text)
        _ingest(client, refund_text, doc_type="policy", language="hi")

        response = client.get("/api/v1/corpus/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 2
        assert data["documents_by_type"] == {"medical": 1, "policy": 1}
        assert data["documents_by_language"] == {"en": 1, "hi": 1}
        assert data["pending_documents"] == 0

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["providers"]["store"] is True
        assert data["providers"]["embedding_provider"] == "mock-embedding"
