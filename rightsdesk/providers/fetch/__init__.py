"""Web page fetchers used by URL ingestion."""

from rightsdesk.providers.fetch.web_page_provider import WebPageProvider

__all__ = ["WebPageProvider"]
