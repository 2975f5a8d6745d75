"""Web page fetcher for URL ingestion, using httpx and BeautifulSoup.

Downloads a page and reduces it to plain text the ingestion pipeline can
chunk:

1. ``<title>`` becomes the document title (the URL when there is none),
   truncated to ``title_max_length`` characters.
2. ``<script>``, ``<style>``, HTML comments and head-only tags
   (``<title>``, ``<meta>``, ``<link>``) are removed with their contents.
   The rest of ``<head>`` is kept: ``html.parser`` nests ``<body>`` inside
   an unclosed ``<head>``.
3. Block-level elements are turned into line breaks, every other tag is
   dropped and its text kept.
4. Runs of spaces/tabs collapse to one space and blank lines collapse to a
   single newline.
"""

from __future__ import annotations

import re

import httpx
import structlog
from bs4 import BeautifulSoup, Comment

from rightsdesk.interfaces.page_fetcher import IPageFetcher, PageContent
from rightsdesk.utils.errors import FetchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 15.0
_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 rightsdesk/0.1"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

_STRIPPED_TAGS = ["script", "style", "noscript", "title", "meta", "link", "base"]
_BLOCK_TAGS = [
    "p", "div", "br", "li", "tr", "section", "article", "header", "footer",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "table", "ul", "ol",
]

_INLINE_WS_RE = re.compile(r"[\t\r ]+")
_LINE_EDGE_RE = re.compile(r" *\n *")
_BLANK_LINES_RE = re.compile(r"\n{2,}")


class WebPageProvider(IPageFetcher):
    """Page fetcher backed by httpx + BeautifulSoup.

    Redirects are followed.  Timeouts, transport errors and non-2xx
    responses all surface as :class:`FetchError`.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        title_max_length: int = 200,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )
        self._title_max_length = title_max_length

    # ------------------------------------------------------------------
    # IPageFetcher implementation
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> PageContent:
        """Fetch *url* and return its title and cleaned body text."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                message=f"Failed to fetch URL: HTTP {exc.response.status_code}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        html = response.text
        title, text = self.clean_html(html, url)

        logger.info(
            "page_fetched",
            url=url,
            status=response.status_code,
            title=title,
            text_length=len(text),
        )
        return PageContent(title=title, text=text, url=url, html=html)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "web_page"

    def is_available(self) -> bool:
        """Always available; no external credentials required."""
        return True

    # ------------------------------------------------------------------
    # HTML cleaning
    # ------------------------------------------------------------------

    def clean_html(self, html: str, url: str) -> tuple[str, str]:
        """Return ``(title, text)`` extracted from *html*.

        Parameters
        ----------
        html:
            Raw page markup.
        url:
            Used as the title when the page has no non-empty ``<title>``.
        """
        soup = BeautifulSoup(html, "html.parser")

        title_tag = soup.find("title")
        title = title_tag.get_text(strip=True) if title_tag else ""
        title = (title or url)[: self._title_max_length]

        for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
            comment.extract()
        for tag in soup.find_all(_STRIPPED_TAGS):
            tag.extract()

        for tag in soup.find_all(_BLOCK_TAGS):
            tag.insert_before("\n")
            tag.insert_after("\n")

        text = soup.get_text()
        text = _INLINE_WS_RE.sub(" ", text)
        text = _LINE_EDGE_RE.sub("\n", text)
        text = _BLANK_LINES_RE.sub("\n", text)
        return title, text.strip()
