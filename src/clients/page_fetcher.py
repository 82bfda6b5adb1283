import logging

import httpx
from bs4 import BeautifulSoup, Tag

from src.clients.apple_music_helpers import UA

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class Document:
    """Parsed HTML page with the handful of lookups the extractors need."""

    def __init__(self, soup: BeautifulSoup):
        self._soup = soup

    @classmethod
    def parse(cls, html: str) -> "Document":
        return cls(BeautifulSoup(html, "html.parser"))

    def element_by_id(self, element_id: str) -> Tag | None:
        return self._soup.find(id=element_id)

    def elements_by_tag(self, name: str) -> list[Tag]:
        return self._soup.find_all(name)

    def select_one(self, selector: str) -> Tag | None:
        return self._soup.select_one(selector)

    def meta_content(self, *, name: str | None = None, property: str | None = None) -> str | None:
        """Content of the first <meta> with the given name or property, if any."""
        attrs = {"name": name} if name else {"property": property}
        tag = self._soup.find("meta", attrs=attrs)
        if tag is None:
            return None
        return tag.get("content")

    @staticmethod
    def text_of(element: Tag | None) -> str:
        return element.get_text() if element is not None else ""


class PageFetcher:
    """Fetches storefront pages. Returns None instead of raising on any failure."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> Document | None:
        try:
            async with httpx.AsyncClient(
                headers={"User-Agent": UA},
                follow_redirects=True,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Fetch failed for %s: %s", url, e)
            return None

        if response.status_code >= 400:
            logger.debug("Fetch for %s returned HTTP %s", url, response.status_code)
            return None

        try:
            return Document.parse(response.text)
        except Exception as e:  # bs4 parser errors have no common base class
            logger.debug("Could not parse %s: %s", url, e)
            return None
