"""
Clubs rating scraper (gomafia.pro/rating?tab=clubs).
"""

from datetime import datetime
from typing import List, Optional

from ingestion.browser import Page
from ingestion.scrapers.base import ListingScraper
from ingestion.scrapers.parsing import (
    clean_text, extract_id_from_href, optional_text, parse_float, parse_int
)
from schemas.raw import ClubRaw


class ClubsScraper(ListingScraper[ClubRaw]):
    entity = "clubs"
    page_param = "pageClubs"
    
    def __init__(self, *args, year: Optional[int] = None, region: str = "all", **kwargs):
        super().__init__(*args, **kwargs)
        self.year = year or datetime.utcnow().year
        self.region = region
    
    def listing_url(self) -> str:
        return self.url(f"/rating?tab=clubs&yearClubs={self.year}&regionClubs={self.region}")
    
    def extract(self, page: Page) -> List[ClubRaw]:
        clubs = []
        for row in page.select("table tbody tr"):
            link = row.select_one('a[href*="/club/"]')
            gomafia_id = extract_id_from_href(link.get("href")) if link else None
            if gomafia_id is None:
                if clean_text(row):
                    self.report_failure("Club row without club link", url=page.url, row=clean_text(row)[:100])
                continue
            
            clubs.append(ClubRaw(
                gomafia_id=gomafia_id,
                name=optional_text(link),
                region=optional_text(row.select_one(".region")),
                president=optional_text(row.select_one(".president")),
                members=parse_int(row.select_one(".members")),
                elo_rating=parse_float(row.select_one(".elo")),
            ))
        return clubs
