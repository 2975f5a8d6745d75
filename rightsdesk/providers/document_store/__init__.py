"""Document store implementations.

The store owns both halves of retrieval: chunk embeddings for semantic
search and a full-text index for keyword search.

    SQLiteDocumentStore: local SQLite file, FTS5 for keywords, numpy for
                          cosine similarity.  No server required.
"""

from rightsdesk.providers.document_store.fts_query import build_match_expression
from rightsdesk.providers.document_store.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore", "build_match_expression"]
