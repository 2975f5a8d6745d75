"""rightsdesk FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

There is no module-level application or settings object: ``create_app``
receives (or builds) a :class:`Settings` and everything else is constructed
from it, so tests and the CLI can assemble their own instances.  Run with::

    uvicorn rightsdesk.main:create_app --factory
    python -m rightsdesk.main
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from rightsdesk import __version__
from rightsdesk.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    configure_error_handlers,
)
from rightsdesk.api.routes import router as api_router
from rightsdesk.config.loader import load_config
from rightsdesk.config.settings import Settings
from rightsdesk.interfaces.embedding_provider import IEmbeddingProvider
from rightsdesk.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from rightsdesk.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from rightsdesk.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from rightsdesk.providers.fetch.web_page_provider import WebPageProvider
from rightsdesk.services.embedding_client import EmbeddingClient
from rightsdesk.services.ingestion.chunker import TextChunker
from rightsdesk.services.ingestion.ingestion_service import IngestionService
from rightsdesk.services.search.keyword_search import KeywordSearch
from rightsdesk.services.search.search_service import SearchService
from rightsdesk.services.search.semantic_search import SemanticSearch
from rightsdesk.utils.errors import ConfigurationError
from rightsdesk.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Embedding provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(
    app_settings: Settings, candidates: list[str]
) -> IEmbeddingProvider:
    """Select the first available embedding provider.

    *candidates* comes from ``config["embedding"]["available_providers"]``,
    normally OpenAI/OpenAI-compatible (if API key set) then Nomic/Ollama.
    When nothing answers, the last candidate is used anyway so the app can
    start; semantic search then degrades until the provider comes up.

    Raises
    ------
    ConfigurationError
        If no embedding provider is configured at all.
    """
    if not candidates:
        raise ConfigurationError(
            "No embedding provider configured: set OPENAI_API_KEY or OLLAMA_BASE_URL"
        )

    provider: IEmbeddingProvider | None = None
    for name in candidates:
        if name == "openai":
            provider = OpenAIEmbeddingProvider(settings=app_settings)
        else:
            provider = NomicEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    _logger.warning(
        "embedding_provider_unavailable",
        candidates=candidates,
        using=provider.get_provider_name(),
    )
    return provider


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings, config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance.

    Shared by the FastAPI app and the CLI.  Returns a flat dict of named
    components; the app stores them on ``app.state``.
    """
    chunking = config["chunking"]
    ingestion_cfg = config["ingestion"]
    search_cfg = config["search"]
    store_cfg = config["store"]
    embedding_cfg = config["embedding"]

    store = SQLiteDocumentStore(db_path=store_cfg["db_path"])
    embedding_provider = _build_embedding_provider(
        app_settings, embedding_cfg["available_providers"]
    )
    embedding_client = EmbeddingClient(
        embedding_provider,
        timeout_s=embedding_cfg["timeout_seconds"],
        concurrency=embedding_cfg["concurrency"],
    )
    page_fetcher = WebPageProvider(
        timeout=config["fetch"]["timeout_seconds"],
        title_max_length=ingestion_cfg["title_max_length"],
    )

    ingestion_service = IngestionService(
        store=store,
        chunker=TextChunker(max_tokens=chunking["max_tokens"]),
        embedding_client=embedding_client,
        page_fetcher=page_fetcher,
        min_content_length=ingestion_cfg["min_content_length"],
        title_max_length=ingestion_cfg["title_max_length"],
        default_jurisdiction=app_settings.default_jurisdiction,
        pending_ttl_minutes=store_cfg["pending_ttl_minutes"],
    )
    search_service = SearchService(
        semantic=SemanticSearch(embedding_client, store),
        keyword=KeywordSearch(store, snippet_chars=search_cfg["keyword_snippet_chars"]),
        default_limit=search_cfg["default_limit"],
        max_limit=search_cfg["max_limit"],
        default_threshold=search_cfg["default_threshold"],
        semantic_weight=search_cfg["semantic_weight"],
    )

    provider_registry: dict[str, Any] = {
        "embedding": embedding_provider.is_available(),
        "embedding_provider": embedding_provider.get_provider_name(),
        "embedding_dimension": embedding_provider.get_dimension(),
        "document_store": store.get_provider_name(),
        "page_fetcher": page_fetcher.get_provider_name(),
    }

    return {
        "store": store,
        "embedding_provider": embedding_provider,
        "page_fetcher": page_fetcher,
        "ingestion_service": ingestion_service,
        "search_service": search_service,
        "provider_registry": provider_registry,
    }


async def close_components(components: dict[str, Any]) -> None:
    """Release HTTP clients owned by the providers."""
    for key in ("page_fetcher", "embedding_provider"):
        aclose = getattr(components.get(key), "aclose", None)
        if aclose is not None:
            await aclose()


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to use.  Read from the environment when omitted.
    config:
        Resolved configuration dict.  Loaded via :func:`load_config` when
        omitted.
    components:
        Pre-built components (tests inject fakes here).  Built with
        :func:`build_components` at startup when omitted.
    """
    app_settings = app_settings or Settings()
    config = config or load_config(settings=app_settings)
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        """Initialise the store on startup, sweep stale pending rows, clean up on shutdown."""
        built = components or build_components(app_settings, config)
        for key, value in built.items():
            setattr(application.state, key, value)

        await built["store"].initialize()
        await built["ingestion_service"].sweep_pending()

        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            embedding_provider=built["provider_registry"].get("embedding_provider"),
            db_path=app_settings.corpus_db_path,
        )

        yield

        await close_components(built)
        _logger.info("app_shutdown", message="HTTP clients closed")

    application = FastAPI(
        title="rightsdesk corpus API",
        version=__version__,
        description=(
            "Ingest legal, medical and policy reference documents and search "
            "them with hybrid semantic + keyword retrieval."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)
    configure_error_handlers(application)

    # -- API routes --
    application.include_router(api_router)

    return application


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _settings = Settings()
    uvicorn.run(
        "rightsdesk.main:create_app",
        factory=True,
        host=_settings.app_host,
        port=_settings.app_port,
        reload=(_settings.app_env == "development"),
    )
