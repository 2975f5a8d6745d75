"""Integration tests for the ingestion pipeline against a real SQLite store.

Uses the deterministic hash-based embedding provider from conftest so the
whole validate -> normalize -> deduplicate -> chunk -> embed -> activate
path runs without network access.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from rightsdesk.models.corpus import DocType, Document, DocumentStatus, SearchFilters
from rightsdesk.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from rightsdesk.services.embedding_client import EmbeddingClient
from rightsdesk.services.ingestion.chunker import TextChunker
from rightsdesk.services.ingestion.ingestion_service import IngestionService
from rightsdesk.utils.errors import EmbeddingError


class TestIngestEndToEnd:
    @pytest.mark.asyncio
    async def test_three_sentences_make_one_chunk(
        self, store: SQLiteDocumentStore, embedding_client: EmbeddingClient
    ) -> None:
        service = IngestionService(
            store=store,
            chunker=TextChunker(max_tokens=500),
            embedding_client=embedding_client,
            min_content_length=10,
        )
        result = await service.ingest(
            title="Short note",
            content="A sentence. Another sentence. A third one.",
            doc_type="general",
        )

        chunks = await store.get_chunks(result.document_id)
        assert len(chunks) == 1
        assert chunks[0].content == "A sentence. Another sentence. A third one."

    @pytest.mark.asyncio
    async def test_document_stored_active_with_metadata(
        self, ingestion_service: IngestionService, store: SQLiteDocumentStore, charter_text: str
    ) -> None:
        result = await ingestion_service.ingest(
            title="Patients' Rights Charter",
            content=charter_text,
            doc_type="medical",
            language="en",
            category="rights",
            tags=["charter", "emergency", "charter"],
            source_url="https://example.org/charter",
        )

        document = await store.get_document(result.document_id)
        assert document is not None
        assert document.status == DocumentStatus.ACTIVE
        assert document.category == "rights"
        assert document.tags == ["charter", "emergency", "charter"]
        assert document.content_text == charter_text
        assert document.version == 1
        assert document.jurisdiction == "IN"

    @pytest.mark.asyncio
    async def test_chunk_indices_are_contiguous(
        self, ingestion_service: IngestionService, store: SQLiteDocumentStore, charter_text: str
    ) -> None:
        result = await ingestion_service.ingest(
            title="Charter", content=charter_text, doc_type="medical"
        )

        chunks = await store.get_chunks(result.document_id)
        assert result.chunks_created == len(chunks) > 1
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert result.total_tokens == sum(c.tokens for c in chunks)
        assert all(len(c.embedding) == 16 for c in chunks)

    @pytest.mark.asyncio
    async def test_embeddings_match_chunk_positions(
        self,
        ingestion_service: IngestionService,
        store: SQLiteDocumentStore,
        charter_text: str,
        hash_vector,
    ) -> None:
        result = await ingestion_service.ingest(
            title="Charter", content=charter_text, doc_type="medical"
        )

        for chunk in await store.get_chunks(result.document_id):
            assert chunk.embedding == pytest.approx(hash_vector(chunk.content), abs=1e-6)


class TestDeduplication:
    @pytest.mark.asyncio
    async def test_same_content_different_titles(
        self,
        ingestion_service: IngestionService,
        store: SQLiteDocumentStore,
        embedding_provider,
        charter_text: str,
    ) -> None:
        first = await ingestion_service.ingest(
            title="Doc A", content=charter_text, doc_type="legal"
        )
        calls_after_first = len(embedding_provider.calls)
        second = await ingestion_service.ingest(
            title="Doc B", content=charter_text, doc_type="medical"
        )

        assert first.created is True
        assert second.created is False
        assert second.document_id == first.document_id
        assert len(embedding_provider.calls) == calls_after_first

        stats = await store.get_stats()
        assert stats.total_documents == 1
        assert stats.total_chunks == first.chunks_created

    @pytest.mark.asyncio
    async def test_concurrent_identical_ingestions_store_one_copy(
        self, ingestion_service: IngestionService, store: SQLiteDocumentStore, charter_text: str
    ) -> None:
        results = await asyncio.gather(
            *(
                ingestion_service.ingest(title=f"Copy {i}", content=charter_text, doc_type="legal")
                for i in range(3)
            )
        )

        assert len({r.document_id for r in results}) == 1
        assert sum(r.created for r in results) == 1
        stats = await store.get_stats()
        assert stats.total_documents == 1
        assert stats.pending_documents == 0


class TestFailureLeavesNothing:
    @pytest.mark.asyncio
    async def test_embedding_failure_leaves_no_document(
        self, store: SQLiteDocumentStore, embedding_provider, charter_text: str
    ) -> None:
        calls = 0
        original = embedding_provider.embed_single

        async def _flaky(text: str) -> list[float]:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise EmbeddingError("provider unavailable", provider_name="mock-embedding")
            return await original(text)

        embedding_provider.embed_single = _flaky
        service = IngestionService(
            store=store,
            chunker=TextChunker(max_tokens=30),
            embedding_client=EmbeddingClient(embedding_provider, concurrency=1),
        )

        with pytest.raises(EmbeddingError):
            await service.ingest(title="Charter", content=charter_text, doc_type="medical")

        stats = await store.get_stats()
        assert stats.total_documents == 0
        assert stats.pending_documents == 0
        assert stats.total_chunks == 0

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(
        self, store: SQLiteDocumentStore, embedding_provider, charter_text: str
    ) -> None:
        original = embedding_provider.embed_single

        async def _down(text: str) -> list[float]:
            raise EmbeddingError("provider unavailable")

        embedding_provider.embed_single = _down
        service = IngestionService(
            store=store,
            chunker=TextChunker(max_tokens=30),
            embedding_client=EmbeddingClient(embedding_provider),
        )
        with pytest.raises(EmbeddingError):
            await service.ingest(title="Charter", content=charter_text, doc_type="medical")

        embedding_provider.embed_single = original
        result = await service.ingest(title="Charter", content=charter_text, doc_type="medical")
        assert result.created is True


class TestVersioning:
    @pytest.mark.asyncio
    async def test_changed_content_at_same_url_creates_new_version(
        self,
        ingestion_service: IngestionService,
        store: SQLiteDocumentStore,
        charter_text: str,
        refund_text: str,
    ) -> None:
        url = "https://example.org/policy"
        v1 = await ingestion_service.ingest(
            title="Policy", content=charter_text, doc_type="policy", source_url=url
        )
        v2 = await ingestion_service.ingest(
            title="Policy", content=refund_text, doc_type="policy", source_url=url
        )

        assert v2.created is True
        assert v2.version == 2
        old = await store.get_document(v1.document_id)
        new = await store.get_document(v2.document_id)
        assert old.status == DocumentStatus.INACTIVE
        assert new.status == DocumentStatus.ACTIVE

        current = await store.find_active_by_source_url(url)
        assert current.id == v2.document_id

        stats = await store.get_stats()
        assert stats.total_documents == 1
        assert stats.inactive_documents == 1

    @pytest.mark.asyncio
    async def test_old_version_hidden_from_keyword_search(
        self,
        ingestion_service: IngestionService,
        store: SQLiteDocumentStore,
        charter_text: str,
        refund_text: str,
    ) -> None:
        url = "https://example.org/policy"
        await ingestion_service.ingest(
            title="Policy", content=charter_text, doc_type="policy", source_url=url
        )
        await ingestion_service.ingest(
            title="Policy", content=refund_text, doc_type="policy", source_url=url
        )

        hits = await store.keyword_search("emergency", SearchFilters(), limit=10)
        assert hits == []
        hits = await store.keyword_search("refund", SearchFilters(), limit=10)
        assert len(hits) == 1


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_delete_removes_chunks(
        self, ingestion_service: IngestionService, store: SQLiteDocumentStore, charter_text: str
    ) -> None:
        result = await ingestion_service.ingest(
            title="Charter", content=charter_text, doc_type="medical"
        )

        await ingestion_service.delete_document(result.document_id)

        assert await store.get_document(result.document_id) is None
        assert await store.get_chunks(result.document_id) == []

    @pytest.mark.asyncio
    async def test_delete_allows_reingestion(
        self, ingestion_service: IngestionService, charter_text: str
    ) -> None:
        first = await ingestion_service.ingest(title="A", content=charter_text, doc_type="legal")
        await ingestion_service.delete_document(first.document_id)
        second = await ingestion_service.ingest(title="A", content=charter_text, doc_type="legal")

        assert second.created is True
        assert second.document_id != first.document_id

    @pytest.mark.asyncio
    async def test_sweep_removes_only_stale_pending(
        self, ingestion_service: IngestionService, store: SQLiteDocumentStore, charter_text: str
    ) -> None:
        active = await ingestion_service.ingest(
            title="Charter", content=charter_text, doc_type="medical"
        )
        stale_time = datetime.now(timezone.utc) - timedelta(hours=2)
        await store.create_pending_document(
            Document(
                id="stale-pending",
                title="Crashed",
                content_text="left behind",
                doc_type=DocType.GENERAL,
                checksum="deadbeef",
                fetched_at=stale_time,
                created_at=stale_time,
                updated_at=stale_time,
            )
        )

        removed = await ingestion_service.sweep_pending()

        assert removed == 1
        assert await store.get_document("stale-pending") is None
        assert await store.get_document(active.document_id) is not None
