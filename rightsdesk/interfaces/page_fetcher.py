"""Abstract base class for web page fetchers used by URL ingestion.

Implementations download a page and reduce it to a title and plain text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PageContent:
    """Cleaned content of a fetched web page.

    Attributes
    ----------
    title:
        Text of the ``<title>`` tag, or the URL when the page has none.
    text:
        Body text with markup removed and whitespace collapsed.
    url:
        The URL that was requested.
    html:
        The raw HTML as downloaded.
    """

    title: str
    text: str
    url: str
    html: str = ""


class IPageFetcher(ABC):
    """Contract for services that turn a URL into ingestible text."""

    @abstractmethod
    async def fetch(self, url: str) -> PageContent:
        """Download *url* and return its cleaned text.

        Raises
        ------
        rightsdesk.utils.errors.FetchError
            On a transport failure or a non-2xx response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this fetcher."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the fetcher can be used."""
