"""
Players rating scraper (gomafia.pro/rating).
"""

from datetime import datetime
from typing import List, Optional

from ingestion.browser import Page
from ingestion.scrapers.base import ListingScraper
from ingestion.scrapers.parsing import (
    clean_text, extract_id_from_href, optional_text, parse_float, parse_int
)
from schemas.raw import PlayerRaw


class PlayersScraper(ListingScraper[PlayerRaw]):
    """Rating table rows: name link, region, club, tournaments, GG points, ELO."""
    
    entity = "players"
    page_param = "pageUsers"
    
    def __init__(self, *args, year: Optional[int] = None, region: str = "all", **kwargs):
        super().__init__(*args, **kwargs)
        self.year = year or datetime.utcnow().year
        self.region = region
    
    def listing_url(self) -> str:
        return self.url(f"/rating?yearUsers={self.year}&regionUsers={self.region}")
    
    def extract(self, page: Page) -> List[PlayerRaw]:
        players = []
        for row in page.select("table tbody tr"):
            link = row.select_one('a[href*="/player/"]')
            gomafia_id = extract_id_from_href(link.get("href")) if link else None
            if gomafia_id is None:
                if clean_text(row):
                    self.report_failure("Player row without profile link", url=page.url, row=clean_text(row)[:100])
                continue
            
            players.append(PlayerRaw(
                gomafia_id=gomafia_id,
                name=optional_text(link),
                region=optional_text(row.select_one(".region")),
                club_name=optional_text(row.select_one(".club")),
                tournaments_played=parse_int(row.select_one(".tournaments")),
                gg_points=parse_float(row.select_one(".gg-points")),
                elo_rating=parse_float(row.select_one(".elo")),
            ))
        return players
