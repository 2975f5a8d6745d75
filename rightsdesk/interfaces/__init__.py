"""Public interface definitions for every external collaborator.

The corpus core reaches embedding APIs, the document store and the web only
through the abstract base classes in this package.  Concrete adapters live
in ``rightsdesk/providers/`` and are wired together in ``rightsdesk/main.py``
(or the CLI), so tests can inject fakes and backends can be swapped without
touching the services.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementations (in rightsdesk/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    IDocumentStore       →  SQLiteDocumentStore
    IPageFetcher         →  WebPageProvider
"""

from rightsdesk.interfaces.document_store import IDocumentStore
from rightsdesk.interfaces.embedding_provider import IEmbeddingProvider
from rightsdesk.interfaces.page_fetcher import IPageFetcher, PageContent

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IPageFetcher",
    "PageContent",
]
