"""Custom exception hierarchy for rightsdesk.

All application exceptions inherit from :class:`CorpusError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "openai_embedding", "sqlite_document_store", "web_page")
caused the failure, and a class-level :class:`ErrorKind` that the API layer
maps onto an HTTP status code.

The hierarchy is organized by who is at fault:

    CorpusError  (base -- catch-all for any rightsdesk error)
    +-- ValidationError          (bad input, rejected before any external call)
    |   +-- ContentTooShortError (document text under the minimum length)
    +-- UnsupportedFormatError   (Word documents, undecodable binary payloads)
    +-- ConfigurationError       (startup / missing config)
    +-- DocumentNotFoundError    (unknown document id)
    +-- ProviderError            (any external collaborator failed)
        +-- EmbeddingError       (embedding API failure or malformed response)
        |   +-- RateLimitError   (provider rate-limit exceeded)
        +-- FetchError           (URL fetch failed or returned non-2xx)
        +-- StorageError         (document store failure)
            +-- ChecksumConflictError (another copy of the body went active first)

Duplicate content is deliberately *not* an error: ingestion returns the
existing document id with ``created=False``.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error category returned in every error payload."""

    INTERNAL = "internal"
    VALIDATION = "validation"
    CONTENT_TOO_SHORT = "content_too_short"
    UNSUPPORTED_FORMAT = "unsupported_format"
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    PROVIDER = "provider"
    RATE_LIMITED = "rate_limited"
    FETCH_FAILED = "fetch_failed"
    STORAGE = "storage"


class CorpusError(Exception):
    """Base exception for all rightsdesk errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------

class ValidationError(CorpusError):
    """Raised when a request is rejected before any external call is made."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ContentTooShortError(ValidationError):
    """Raised when normalized document text is under the minimum length."""

    kind = ErrorKind.CONTENT_TOO_SHORT

    def __init__(
        self,
        message: str = "Content is too short",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFormatError(CorpusError):
    """Raised for payloads that cannot be turned into text (e.g. .docx)."""

    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(
        self,
        message: str = "Unsupported document format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(CorpusError):
    """Raised when configuration is invalid or missing at startup."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(CorpusError):
    """Raised when a document id does not exist in the store."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External collaborator errors
# ---------------------------------------------------------------------------

class ProviderError(CorpusError):
    """Raised when an external collaborator fails.

    Fatal during ingestion.  During search each strategy converts it into
    an empty result set for that strategy only.
    """

    kind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str = "External provider failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(ProviderError):
    """Raised when the embedding API fails or returns a malformed response."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(EmbeddingError):
    """Raised when an embedding API rate limit is exceeded."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FetchError(ProviderError):
    """Raised when fetching a URL for ingestion fails."""

    kind = ErrorKind.FETCH_FAILED

    def __init__(
        self,
        message: str = "Failed to fetch URL",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(ProviderError):
    """Raised when the document store fails a read or write."""

    kind = ErrorKind.STORAGE

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChecksumConflictError(StorageError):
    """Raised when activation collides with an already-active identical body.

    Only happens when two ingestions of the same content race; the
    ingestion service turns it into a duplicate outcome.
    """

    def __init__(
        self,
        message: str = "An active document with this checksum already exists",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
