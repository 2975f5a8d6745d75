"""Unit tests for WebPageProvider: fetching and HTML cleaning."""

from __future__ import annotations

import httpx
import pytest

from rightsdesk.providers.fetch.web_page_provider import WebPageProvider
from rightsdesk.utils.errors import FetchError

_URL = "https://example.org/patient-rights"

_HTML = """\
<html>
  <head>
    <title>  Patients' Rights Charter  </title>
    <style>body { color: red; }</style>
    <script>var tracking = "do not index";</script>
  </head>
  <body>
    <!-- navigation removed -->
    <h1>Your rights</h1>
    <p>Every patient has the right to <b>emergency care</b>.</p>
    <p>Hospitals    must display   their rates.</p>
    <script>alert("hidden");</script>
    <ul><li>Second opinion</li><li>Medical records</li></ul>
  </body>
</html>
"""


def _provider(handler) -> WebPageProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebPageProvider(http_client=client)


class TestCleanHtml:
    def test_title_extracted_and_stripped(self) -> None:
        title, _ = WebPageProvider(http_client=httpx.AsyncClient()).clean_html(_HTML, _URL)
        assert title == "Patients' Rights Charter"

    def test_scripts_styles_and_comments_removed(self) -> None:
        _, text = WebPageProvider(http_client=httpx.AsyncClient()).clean_html(_HTML, _URL)
        assert "tracking" not in text
        assert "hidden" not in text
        assert "color: red" not in text
        assert "navigation removed" not in text

    def test_blocks_become_lines_and_inline_tags_dropped(self) -> None:
        _, text = WebPageProvider(http_client=httpx.AsyncClient()).clean_html(_HTML, _URL)
        assert text.split("\n") == [
            "Your rights",
            "Every patient has the right to emergency care.",
            "Hospitals must display their rates.",
            "Second opinion",
            "Medical records",
        ]

    def test_missing_title_falls_back_to_url(self) -> None:
        title, _ = WebPageProvider(http_client=httpx.AsyncClient()).clean_html(
            "<p>No head here.</p>", _URL
        )
        assert title == _URL

    def test_title_truncated(self) -> None:
        provider = WebPageProvider(http_client=httpx.AsyncClient(), title_max_length=10)
        title, _ = provider.clean_html(f"<title>{'x' * 50}</title><p>body</p>", _URL)
        assert title == "x" * 10

    def test_unclosed_head_keeps_body_text(self) -> None:
        html = (
            "<!doctype html><html><head><title>Patient Charter</title>"
            "<meta charset='utf-8'><link rel='stylesheet' href='/site.css'>"
            "<body><p>Every patient has the right to emergency care.</p>"
            "<p>Records must be shared on request.</p></body></html>"
        )
        title, text = WebPageProvider(http_client=httpx.AsyncClient()).clean_html(html, _URL)

        assert title == "Patient Charter"
        assert text.split("\n") == [
            "Every patient has the right to emergency care.",
            "Records must be shared on request.",
        ]


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == _URL
            return httpx.Response(200, html=_HTML)

        page = await _provider(handler).fetch(_URL)

        assert page.url == _URL
        assert page.title == "Patients' Rights Charter"
        assert "emergency care" in page.text
        assert page.html == _HTML

    @pytest.mark.asyncio
    async def test_non_2xx_raises_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="not found")

        with pytest.raises(FetchError, match="HTTP 404") as exc_info:
            await _provider(handler).fetch(_URL)
        assert exc_info.value.provider_name == "web_page"

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(FetchError, match="Timeout"):
            await _provider(handler).fetch(_URL)

    @pytest.mark.asyncio
    async def test_connection_error_raises_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FetchError):
            await _provider(handler).fetch(_URL)

    def test_provider_metadata(self) -> None:
        provider = WebPageProvider(http_client=httpx.AsyncClient())
        assert provider.get_provider_name() == "web_page"
        assert provider.is_available() is True
