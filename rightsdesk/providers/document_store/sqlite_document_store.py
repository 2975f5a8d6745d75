"""SQLite-backed corpus document store.

Persists documents and chunk embeddings to a local SQLite database at
``data/corpus.db``.  Uses ``aiosqlite`` for async I/O, an FTS5 virtual table
for keyword search and numpy for cosine similarity over stored vectors.

Tables
------
``documents``
    One row per ingested document.  A partial unique index on
    ``checksum WHERE status = 'active'`` keeps at most one active copy of
    any content body, even when two ingestions race.
``document_chunks``
    Chunk text plus its embedding as a float32 blob.  ``ON DELETE CASCADE``
    removes chunks with their document (``PRAGMA foreign_keys`` is switched
    on for every connection).
``documents_fts``
    FTS5 index over the content text of *active* documents only (titles
    are not indexed).  Rows are written on activation and removed on
    deletion or supersession.

Every connection runs in autocommit mode; multi-statement writes open an
explicit ``BEGIN IMMEDIATE`` transaction.  A connection that closes without
``COMMIT`` discards the transaction, so any exception between the two leaves
the database untouched.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from rightsdesk.interfaces.document_store import IDocumentStore
from rightsdesk.models.corpus import (
    Chunk,
    CorpusStats,
    Document,
    DocumentStatus,
    DocumentSummary,
    SearchFilters,
    SearchResult,
    SearchType,
)
from rightsdesk.providers.document_store.fts_query import build_match_expression
from rightsdesk.utils.errors import ChecksumConflictError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/corpus.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id            TEXT    PRIMARY KEY,
    title         TEXT    NOT NULL,
    content_text  TEXT    NOT NULL,
    content_html  TEXT,
    doc_type      TEXT    NOT NULL,
    category      TEXT,
    tags          TEXT    NOT NULL DEFAULT '[]',
    language      TEXT    NOT NULL DEFAULT 'en',
    source_url    TEXT,
    checksum      TEXT    NOT NULL,
    status        TEXT    NOT NULL DEFAULT 'pending',
    version       INTEGER NOT NULL DEFAULT 1,
    jurisdiction  TEXT    NOT NULL DEFAULT 'IN',
    published_at  TEXT,
    fetched_at    TEXT    NOT NULL,
    created_at    TEXT    NOT NULL,
    updated_at    TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id           TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index  INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    embedding    BLOB    NOT NULL,
    dimension    INTEGER NOT NULL,
    tokens       INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT    NOT NULL,
    UNIQUE(document_id, chunk_index)
);
""",
    """\
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    document_id UNINDEXED,
    content_text,
    tokenize = 'porter unicode61'
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_documents_active_checksum "
    "ON documents(checksum) WHERE status = 'active';",
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(status);",
    "CREATE INDEX IF NOT EXISTS idx_documents_source_url ON documents(source_url);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(document_id);",
]

_DOCUMENT_COLUMNS = (
    "id, title, content_text, content_html, doc_type, category, tags, language, "
    "source_url, checksum, status, version, jurisdiction, published_at, "
    "fetched_at, created_at, updated_at"
)

_SUMMARY_COLUMNS = (
    "d.title, d.doc_type, d.category, d.tags, d.language, d.source_url, d.published_at"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed corpus persistence with vector and full-text search."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with foreign keys on; sqlite errors become StorageError."""
        try:
            async with aiosqlite.connect(str(self._db_path), isolation_level=None) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON")
                yield db
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"SQLite error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create tables, the FTS5 index and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode = WAL")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
        logger.info("corpus_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find_active_by_checksum(self, checksum: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents "
                "WHERE checksum = ? AND status = 'active' LIMIT 1",
                (checksum,),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def find_active_by_source_url(self, source_url: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents "
                "WHERE source_url = ? AND status = 'active' "
                "ORDER BY version DESC LIMIT 1",
                (source_url,),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def get_document(self, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, document_id, chunk_index, content, embedding, tokens, created_at "
                "FROM document_chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [
            Chunk(
                id=r["id"],
                document_id=r["document_id"],
                chunk_index=r["chunk_index"],
                content=r["content"],
                embedding=np.frombuffer(r["embedding"], dtype=np.float32).tolist(),
                tokens=r["tokens"],
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_pending_document(self, document: Document) -> None:
        async with self._connect() as db:
            await db.execute(
                f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    document.id,
                    document.title,
                    document.content_text,
                    document.content_html,
                    document.doc_type.value,
                    document.category,
                    json.dumps(document.tags, ensure_ascii=False),
                    document.language.value,
                    document.source_url,
                    document.checksum,
                    DocumentStatus.PENDING.value,
                    document.version,
                    document.jurisdiction,
                    document.published_at.isoformat() if document.published_at else None,
                    document.fetched_at.isoformat(),
                    document.created_at.isoformat(),
                    document.updated_at.isoformat(),
                ),
            )
        logger.debug("pending_document_created", document_id=document.id)

    async def activate_document(
        self,
        document_id: str,
        chunks: list[Chunk],
        supersedes: str | None = None,
    ) -> None:
        now = _utcnow().isoformat()
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE")

            cursor = await db.execute(
                "SELECT status, content_text FROM documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
            if row is None or row["status"] != DocumentStatus.PENDING.value:
                raise StorageError(
                    message=f"Document {document_id} is not pending",
                    provider_name=self.get_provider_name(),
                )

            if supersedes:
                await db.execute(
                    "UPDATE documents SET status = 'inactive', updated_at = ? "
                    "WHERE id = ? AND status = 'active'",
                    (now, supersedes),
                )
                await db.execute(
                    "DELETE FROM documents_fts WHERE document_id = ?", (supersedes,)
                )

            await db.executemany(
                "INSERT INTO document_chunks "
                "(id, document_id, chunk_index, content, embedding, dimension, tokens, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        c.id,
                        document_id,
                        c.chunk_index,
                        c.content,
                        np.asarray(c.embedding, dtype=np.float32).tobytes(),
                        len(c.embedding),
                        c.tokens,
                        c.created_at.isoformat(),
                    )
                    for c in chunks
                ],
            )
            await db.execute(
                "INSERT INTO documents_fts (document_id, content_text) VALUES (?, ?)",
                (document_id, row["content_text"]),
            )

            try:
                await db.execute(
                    "UPDATE documents SET status = 'active', updated_at = ? WHERE id = ?",
                    (now, document_id),
                )
            except aiosqlite.IntegrityError as exc:
                if "checksum" not in str(exc):
                    raise
                raise ChecksumConflictError(
                    provider_name=self.get_provider_name(),
                ) from exc

            await db.execute("COMMIT")

        logger.info(
            "document_activated",
            document_id=document_id,
            chunks=len(chunks),
            superseded=supersedes,
        )

    async def delete_document(self, document_id: str) -> bool:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            await db.execute("DELETE FROM documents_fts WHERE document_id = ?", (document_id,))
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            deleted = cursor.rowcount > 0
            await db.execute("COMMIT")
        if deleted:
            logger.info("document_deleted", document_id=document_id)
        return deleted

    async def sweep_pending(self, older_than: datetime) -> int:
        cutoff = older_than.astimezone(timezone.utc).isoformat()
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM documents WHERE status = 'pending' AND created_at < ?",
                (cutoff,),
            )
            removed = cursor.rowcount
        if removed:
            logger.info("pending_documents_swept", removed=removed, cutoff=cutoff)
        return removed

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def semantic_search(
        self,
        query_embedding: list[float],
        filters: SearchFilters,
        limit: int,
        threshold: float,
    ) -> list[SearchResult]:
        """Exact cosine search over every active chunk matching *filters*.

        Similarity is clipped to ``[0, 1]`` so anti-correlated vectors score
        ``0`` rather than negative.
        """
        where, params = self._filter_clause(filters)
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT c.id, c.document_id, c.chunk_index, c.content, c.embedding, "
                f"c.dimension, {_SUMMARY_COLUMNS} "
                "FROM document_chunks c JOIN documents d ON d.id = c.document_id "
                f"WHERE d.status = 'active'{where} "
                "ORDER BY c.document_id, c.chunk_index",
                params,
            )
            rows = await cursor.fetchall()

        if not rows:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        stored_dims = {r["dimension"] for r in rows}
        if stored_dims != {query.shape[0]}:
            raise StorageError(
                message=(
                    f"Embedding dimension mismatch: query has {query.shape[0]}, "
                    f"stored chunks have {sorted(stored_dims)}"
                ),
                provider_name=self.get_provider_name(),
            )

        matrix = np.vstack([np.frombuffer(r["embedding"], dtype=np.float32) for r in rows])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)
        scores = np.clip(scores, 0.0, 1.0)

        order = np.argsort(-scores, kind="stable")
        results: list[SearchResult] = []
        for idx in order:
            similarity = float(scores[idx])
            if similarity < threshold:
                break
            row = rows[idx]
            results.append(
                SearchResult(
                    id=row["id"],
                    document_id=row["document_id"],
                    chunk_index=row["chunk_index"],
                    content=row["content"],
                    similarity=similarity,
                    search_type=SearchType.SEMANTIC,
                    document=self._row_to_summary(row),
                )
            )
            if len(results) >= limit:
                break

        logger.debug("semantic_search_scored", candidates=len(rows), returned=len(results))
        return results

    async def keyword_search(
        self,
        query_text: str,
        filters: SearchFilters,
        limit: int,
        snippet_chars: int = 500,
    ) -> list[SearchResult]:
        """BM25-ranked full-text search; ``keyword_score`` is ``-bm25`` (higher is better)."""
        expression = build_match_expression(query_text)
        if expression is None:
            return []

        where, params = self._filter_clause(filters)
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT d.id, d.content_text, bm25(documents_fts) AS score, "
                f"{_SUMMARY_COLUMNS} "
                "FROM documents_fts JOIN documents d ON d.id = documents_fts.document_id "
                f"WHERE documents_fts MATCH ? AND d.status = 'active'{where} "
                "ORDER BY score, d.id LIMIT ?",
                (expression, *params, limit),
            )
            rows = await cursor.fetchall()

        return [
            SearchResult(
                id=row["id"],
                document_id=row["id"],
                chunk_index=0,
                content=row["content_text"][:snippet_chars],
                keyword_score=max(0.0, -float(row["score"])),
                search_type=SearchType.KEYWORD,
                document=self._row_to_summary(row),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def get_stats(self) -> CorpusStats:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT status, COUNT(*) AS n FROM documents GROUP BY status"
            )
            by_status = {r["status"]: r["n"] for r in await cursor.fetchall()}

            cursor = await db.execute(
                "SELECT doc_type, COUNT(*) AS n FROM documents "
                "WHERE status = 'active' GROUP BY doc_type"
            )
            by_type = {r["doc_type"]: r["n"] for r in await cursor.fetchall()}

            cursor = await db.execute(
                "SELECT language, COUNT(*) AS n FROM documents "
                "WHERE status = 'active' GROUP BY language"
            )
            by_language = {r["language"]: r["n"] for r in await cursor.fetchall()}

            cursor = await db.execute(
                "SELECT COUNT(*) AS n, COALESCE(SUM(c.tokens), 0) AS tokens "
                "FROM document_chunks c JOIN documents d ON d.id = c.document_id "
                "WHERE d.status = 'active'"
            )
            chunk_row = await cursor.fetchone()

        return CorpusStats(
            total_documents=by_status.get(DocumentStatus.ACTIVE.value, 0),
            total_chunks=chunk_row["n"],
            total_tokens=chunk_row["tokens"],
            pending_documents=by_status.get(DocumentStatus.PENDING.value, 0),
            inactive_documents=by_status.get(DocumentStatus.INACTIVE.value, 0),
            documents_by_type=by_type,
            documents_by_language=by_language,
        )

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_document_store"

    def is_available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_clause(filters: SearchFilters) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if filters.doc_type is not None:
            clauses.append("d.doc_type = ?")
            params.append(filters.doc_type.value)
        if filters.category is not None:
            clauses.append("d.category = ?")
            params.append(filters.category)
        if filters.language is not None:
            clauses.append("d.language = ?")
            params.append(filters.language.value)
        where = "".join(f" AND {clause}" for clause in clauses)
        return where, params

    @staticmethod
    def _row_to_summary(row: aiosqlite.Row) -> DocumentSummary:
        return DocumentSummary(
            title=row["title"],
            doc_type=row["doc_type"],
            category=row["category"],
            tags=json.loads(row["tags"]),
            language=row["language"],
            source_url=row["source_url"],
            published_at=date.fromisoformat(row["published_at"]) if row["published_at"] else None,
        )

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        data = dict(row)
        data["tags"] = json.loads(data["tags"])
        return Document.model_validate(data)
