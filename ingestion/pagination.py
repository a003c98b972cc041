"""
Page-by-page traversal of paginated listings.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from core.exceptions import FatalImportError, PipelineError
from ingestion.browser import BrowserSession, Page
from ingestion.rate_limiter import RateLimiter
from ingestion.retry import RetryManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEXT_PAGE_SELECTOR = ".pagination .next"


def build_page_url(base_url: str, page_param: str, page_number: int) -> str:
    """
    Set page_param on base_url, keeping every other query parameter.
    
    An existing page_param is replaced, never duplicated.
    
    >>> build_page_url("https://x/list?year=2025", "page", 2)
    'https://x/list?year=2025&page=2'
    """
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != page_param]
    query.append((page_param, str(page_number)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def has_next_page(page: Page, selector: str = NEXT_PAGE_SELECTOR) -> bool:
    """True when the pager shows an enabled "next" control."""
    element = page.select_one(selector)
    if element is None:
        return False
    classes = element.get("class") or []
    if "disabled" in classes or element.has_attr("disabled"):
        return False
    return element.get("aria-disabled") != "true"


@dataclass
class PaginationConfig(Generic[T]):
    """
    Attributes:
        base_url: Listing URL, possibly with its own query parameters
        page_param: Name of the page number parameter
        extract_data: Page -> records; exceptions propagate
        has_next: Page -> whether another page follows
        max_pages: Hard cap on the page number fetched (None for no cap)
        max_consecutive_empty_pages: Stop after this many empty pages in a row
        start_page: First page number to fetch
        on_page: Awaited with (page_number, records) before the next page is
            loaded; records handed to it are not accumulated
        on_page_error: Awaited with (page_number, url, error) when a page
            cannot be loaded; traversal moves on to the next page unless it
            raises. Without it load errors propagate.
    """
    base_url: str
    page_param: str
    extract_data: Callable[[Page], List[T]]
    has_next: Callable[[Page], bool] = has_next_page
    max_pages: Optional[int] = None
    max_consecutive_empty_pages: int = 3
    start_page: int = 1
    on_page: Optional[Callable[[int, List[T]], Awaitable[None]]] = None
    on_page_error: Optional[Callable[[int, str, PipelineError], Awaitable[None]]] = None


class PaginationHandler:
    """
    Drive a paginated listing one page at a time.
    
    Each page: build URL, wait on the rate limiter, load (with retries),
    extract, append, then ask has_next. Pages are fetched strictly in
    order and records keep page order.
    """
    
    def __init__(
        self,
        session: BrowserSession,
        rate_limiter: RateLimiter,
        retry_manager: Optional[RetryManager] = None
    ):
        self.session = session
        self.rate_limiter = rate_limiter
        self.retry_manager = retry_manager
        self.pages_fetched = 0
    
    async def load_page(self, url: str) -> Page:
        """Load one URL behind the rate limiter, retrying if a manager is set."""
        async def attempt() -> Page:
            await self.rate_limiter.wait()
            return await self.session.load(url)
        
        if self.retry_manager is None:
            page = await attempt()
        else:
            page = await self.retry_manager.execute(attempt, description=f"load {url}")
        self.pages_fetched += 1
        return page
    
    async def scrape_all_pages(self, config: PaginationConfig[T]) -> List[T]:
        """
        Fetch pages until has_next is false, max_pages is hit or pages run dry.
        
        A page skipped through on_page_error counts as empty, since its
        pager cannot be read.
        """
        records: List[T] = []
        page_number = config.start_page
        empty_streak = 0
        
        while True:
            url = build_page_url(config.base_url, config.page_param, page_number)
            try:
                page = await self.load_page(url)
            except FatalImportError:
                raise
            except PipelineError as e:
                if config.on_page_error is None:
                    raise
                await config.on_page_error(page_number, url, e)
                page = None
            
            page_records = config.extract_data(page) if page is not None else []
            if page is not None:
                logger.debug(f"Page {page_number}: {len(page_records)} records from {url}")
                if config.on_page is not None:
                    await config.on_page(page_number, page_records)
                else:
                    records.extend(page_records)
            
            if page_records:
                empty_streak = 0
            else:
                empty_streak += 1
                if empty_streak >= config.max_consecutive_empty_pages:
                    logger.info(f"Stopping after {empty_streak} empty pages at page {page_number}")
                    break
            
            if config.max_pages is not None and page_number >= config.max_pages:
                break
            
            if page is not None and not config.has_next(page):
                break
            
            page_number += 1
        
        logger.info(
            f"Scraped pages {config.start_page}-{page_number} of {config.base_url} "
            f"({self.pages_fetched} loaded)"
        )
        return records
