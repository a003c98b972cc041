"""
Shared browser/session resource for the source site.

BrowserSession wraps a single httpx.AsyncClient for the whole run and turns
each response into a parsed Page. Transport failures are classified into
the pipeline's exception hierarchy so RetryManager can decide what to retry.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from core.config import settings
from core.exceptions import (
    AuthenticationError,
    NetworkError,
    PageLoadError,
    RateLimitError,
    ResourceNotFoundError,
    SessionLostError,
)

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """A loaded page: its URL and the parsed document."""
    url: str
    soup: BeautifulSoup
    
    @classmethod
    def from_html(cls, url: str, html: str) -> "Page":
        return cls(url=url, soup=BeautifulSoup(html, "html.parser"))
    
    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)
    
    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)


class BrowserSession:
    """
    One HTTP session shared by every scraper of a run.
    
    Use as an async context manager, or call open()/close() explicitly.
    Loading after close() raises SessionLostError, which aborts the run.
    """
    
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.GOMAFIA_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.user_agent = user_agent or settings.USER_AGENT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.pages_loaded = 0
    
    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed
    
    async def open(self) -> "BrowserSession":
        if not self.is_open:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.8",
                },
                follow_redirects=True,
                transport=self._transport,
            )
            logger.info(f"Browser session opened for {self.base_url}")
        return self
    
    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info(f"Browser session closed after {self.pages_loaded} pages")
    
    async def __aenter__(self) -> "BrowserSession":
        return await self.open()
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
    
    def absolute_url(self, path_or_url: str) -> str:
        return urljoin(self.base_url + "/", path_or_url)
    
    async def load(self, url: str) -> Page:
        """
        Fetch a URL and parse it.
        
        Raises:
            SessionLostError: The session is closed
            NetworkError: Timeouts, transport errors and 5xx (retryable)
            RateLimitError: HTTP 429 (retryable)
            AuthenticationError: HTTP 401/403
            ResourceNotFoundError: HTTP 404
            PageLoadError: Any other non-success status
        """
        if not self.is_open:
            raise SessionLostError("Browser session is not open", context={"url": url})
        
        url = self.absolute_url(url)
        
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Timeout loading {url}",
                context={"url": url, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network error loading {url}",
                context={"url": url},
                original_exception=e
            )
        except RuntimeError as e:
            # httpx raises RuntimeError when the client was closed underneath us
            raise SessionLostError(
                "Browser session was closed during a request",
                context={"url": url},
                original_exception=e
            )
        
        status = response.status_code
        
        if status in (401, 403):
            raise AuthenticationError(
                f"Access denied for {url}",
                context={"url": url, "status_code": status}
            )
        
        if status == 404:
            raise ResourceNotFoundError(
                f"Page not found: {url}",
                context={"url": url, "status_code": status}
            )
        
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limited by source for {url}",
                context={"url": url, "status_code": status},
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        
        if status >= 500:
            raise NetworkError(
                f"Server error {status} for {url}",
                context={"url": url, "status_code": status, "response_body": response.text[:500]}
            )
        
        if status >= 400:
            raise PageLoadError(
                f"Unexpected status {status} for {url}",
                context={"url": url, "status_code": status}
            )
        
        self.pages_loaded += 1
        logger.debug(f"Loaded {url} ({len(response.text)} bytes)")
        return Page.from_html(str(response.url), response.text)
