"""
Base class for gomafia.pro scrapers.
"""

from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar
import logging

from core.exceptions import ParseError
from ingestion.browser import BrowserSession, Page
from ingestion.pagination import PaginationConfig, PaginationHandler
from ingestion.rate_limiter import RateLimiter
from ingestion.retry import RetryManager
from schemas.raw import ParseFailure

logger = logging.getLogger(__name__)

RawT = TypeVar("RawT")


class BaseScraper(ABC, Generic[RawT]):
    """
    Abstract scraper for one entity family.
    
    Subclasses implement:
    - extract(page): pure DOM -> raw records mapping
    - scrape(identifier): which pages to load for a run
    
    Rows that cannot become a record (no identifier) are collected in
    parse_failures for the calling phase to report.
    """
    
    entity: str = "records"
    
    def __init__(
        self,
        session: BrowserSession,
        rate_limiter: RateLimiter,
        retry_manager: Optional[RetryManager] = None,
        max_pages: Optional[int] = None
    ):
        self.session = session
        self.rate_limiter = rate_limiter
        self.retry_manager = retry_manager
        self.max_pages = max_pages
        self.pagination = PaginationHandler(session, rate_limiter, retry_manager)
        self.parse_failures: List[ParseFailure] = []
    
    @abstractmethod
    def extract(self, page: Page) -> List[RawT]:
        """Map one loaded page to raw records."""
        pass
    
    @abstractmethod
    async def scrape(self, identifier: Optional[str] = None) -> List[RawT]:
        """Load the page(s) for identifier and return raw records in page order."""
        pass
    
    def parse(self, page: Page) -> List[RawT]:
        """extract() with unexpected DOM shapes surfaced as ParseError."""
        try:
            return self.extract(page)
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            raise ParseError(
                f"Unexpected page structure for {self.entity}",
                context={"url": page.url, "entity": self.entity},
                original_exception=e
            )

    def url(self, path: str) -> str:
        return self.session.absolute_url(path)
    
    def report_failure(self, message: str, **context) -> None:
        self.parse_failures.append(ParseFailure(entity=self.entity, message=message, context=context))
        logger.warning(f"[{self.entity}] {message} {context}")
    
    def drain_failures(self) -> List[ParseFailure]:
        failures, self.parse_failures = self.parse_failures, []
        return failures


class ListingScraper(BaseScraper[RawT]):
    """
    Scraper over one paginated rating or tournament listing.
    
    scrape() returns the whole listing; phases that persist page by page
    drive pagination_config() themselves.
    """
    
    page_param: str = "page"
    
    @abstractmethod
    def listing_url(self) -> str:
        pass
    
    def pagination_config(self, **options) -> PaginationConfig[RawT]:
        return PaginationConfig(
            base_url=self.listing_url(),
            page_param=self.page_param,
            extract_data=self.parse,
            max_pages=self.max_pages,
            **options
        )
    
    async def scrape(self, identifier: Optional[str] = None) -> List[RawT]:
        return await self.pagination.scrape_all_pages(self.pagination_config())
