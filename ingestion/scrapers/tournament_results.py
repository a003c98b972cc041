"""
Tournament results scraper (gomafia.pro/tournament/{id}?tab=tournamentResults).
"""

from typing import List, Optional

from ingestion.browser import Page
from ingestion.scrapers.base import BaseScraper
from ingestion.scrapers.parsing import (
    clean_text, extract_id_from_href, optional_text, parse_currency, parse_float, parse_int
)
from schemas.raw import PlayerTournamentRaw

PLAYER_LINK = 'a[href*="/stats/"], a[href*="/player/"]'


class TournamentResultsScraper(BaseScraper[PlayerTournamentRaw]):
    """Final standings: placement, GG points, ELO change and prize per player."""
    
    entity = "player_tournaments"
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tournament_gomafia_id: Optional[str] = None
    
    def results_url(self, tournament_gomafia_id: str) -> str:
        return self.url(f"/tournament/{tournament_gomafia_id}?tab=tournamentResults")
    
    def extract(self, page: Page) -> List[PlayerTournamentRaw]:
        tournament_id = self.tournament_gomafia_id or extract_id_from_href(page.url)
        results = []
        for position, row in enumerate(page.select("table tbody tr"), start=1):
            link = row.select_one(PLAYER_LINK)
            player_id = extract_id_from_href(link.get("href")) if link else None
            if player_id is None:
                if clean_text(row):
                    self.report_failure("Result row without player link", url=page.url, row=clean_text(row)[:100])
                continue
            
            placement_el = row.select_one(".place")
            if placement_el is None:
                cells = row.find_all("td")
                placement_el = cells[0] if cells else None
            
            results.append(PlayerTournamentRaw(
                player_gomafia_id=player_id,
                tournament_gomafia_id=str(tournament_id),
                player_name=optional_text(link),
                placement=parse_int(placement_el),
                gg_points=parse_float(row.select_one(".gg-points")),
                elo_change=parse_float(row.select_one(".elo-change")),
                prize_money=parse_currency(row.select_one(".prize")),
            ))
        return results
    
    async def scrape(self, identifier: Optional[str] = None) -> List[PlayerTournamentRaw]:
        if not identifier:
            raise ValueError("TournamentResultsScraper.scrape requires a tournament id")
        self.tournament_gomafia_id = str(identifier)
        try:
            page = await self.pagination.load_page(self.results_url(identifier))
            return self.parse(page)
        finally:
            self.tournament_gomafia_id = None
