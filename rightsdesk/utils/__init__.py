"""Utility modules for rightsdesk.

- **errors** -- Domain exception hierarchy rooted at CorpusError; every
  class carries an ErrorKind that the API maps to an HTTP status.
- **concurrency** -- Order-preserving, semaphore-bounded gather used for
  parallel chunk embedding.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from rightsdesk.utils.concurrency import first_exception, throttled_gather
from rightsdesk.utils.errors import (
    ChecksumConflictError,
    ConfigurationError,
    ContentTooShortError,
    CorpusError,
    DocumentNotFoundError,
    EmbeddingError,
    ErrorKind,
    FetchError,
    ProviderError,
    RateLimitError,
    StorageError,
    UnsupportedFormatError,
    ValidationError,
)
from rightsdesk.utils.logging import configure_logging, get_logger

__all__ = [
    "ChecksumConflictError",
    "ConfigurationError",
    "ContentTooShortError",
    "CorpusError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "ErrorKind",
    "FetchError",
    "ProviderError",
    "RateLimitError",
    "StorageError",
    "UnsupportedFormatError",
    "ValidationError",
    "configure_logging",
    "first_exception",
    "get_logger",
    "throttled_gather",
]
