"""
Tournament listing scraper (gomafia.pro/tournaments).
"""

from typing import List

from ingestion.browser import Page
from ingestion.scrapers.base import ListingScraper
from ingestion.scrapers.parsing import (
    clean_text,
    count_stars,
    extract_id_from_href,
    optional_text,
    parse_currency,
    parse_date,
    parse_float,
    parse_int,
    parse_tournament_status,
)
from schemas.raw import TournamentRaw


class TournamentsScraper(ListingScraper[TournamentRaw]):
    """
    Tournament rows.
    
    The name link holds the star rating (repeated glyphs) and the name in
    <b>; dates sit in .dates as one or two DD.MM.YYYY values.
    """
    
    entity = "tournaments"
    
    def __init__(self, *args, time_filter: str = "all", **kwargs):
        super().__init__(*args, **kwargs)
        self.time_filter = time_filter
    
    def listing_url(self) -> str:
        return self.url(f"/tournaments?time={self.time_filter}")
    
    def extract(self, page: Page) -> List[TournamentRaw]:
        tournaments = []
        for row in page.select("table tbody tr"):
            link = row.select_one('a[href*="/tournament/"]')
            gomafia_id = extract_id_from_href(link.get("href")) if link else None
            if gomafia_id is None:
                if clean_text(row):
                    self.report_failure("Tournament row without link", url=page.url, row=clean_text(row)[:100])
                continue
            
            name_el = link.select_one("b") or link
            dates = [parse_date(el) for el in row.select(".dates div, .dates span")]
            dates = [d for d in dates if d is not None]
            if not dates:
                single = parse_date(row.select_one(".dates"))
                dates = [single] if single else []
            
            tournaments.append(TournamentRaw(
                gomafia_id=gomafia_id,
                name=optional_text(name_el),
                start_date=dates[0] if dates else None,
                end_date=dates[-1] if len(dates) > 1 else None,
                status=parse_tournament_status(row.select_one(".status")),
                stars=count_stars(row.select_one(".stars")),
                average_elo=parse_float(row.select_one(".average-elo")),
                is_fsm_rated=row.select_one(".fsm") is not None,
                participants=parse_int(row.select_one(".participants")),
                prize_pool=parse_currency(row.select_one(".prize")),
            ))
        return tournaments
