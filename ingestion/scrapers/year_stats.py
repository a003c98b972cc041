"""
Player year statistics scraper (gomafia.pro/stats/{id}?year=YYYY).
"""

import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import parse_qs, urlsplit

from core.exceptions import FatalImportError, PipelineError
from ingestion.browser import Page
from ingestion.scrapers.base import BaseScraper
from ingestion.scrapers.parsing import extract_id_from_href, parse_float, parse_int
from schemas.raw import PlayerYearStatsRaw

logger = logging.getLogger(__name__)


def _year_from_url(url: str) -> Optional[int]:
    values = parse_qs(urlsplit(url).query).get("year")
    return int(values[0]) if values and values[0].isdigit() else None


class EmptyYearStreak:
    """
    Stopping predicate for walking back through a player's years.
    
    An empty year increments the streak and a year with data resets it;
    iteration stops once the streak reaches max_consecutive_empty. Years
    that failed to load are not evidence either way and leave the streak
    unchanged.
    """
    
    def __init__(self, max_consecutive_empty: int = 2):
        if max_consecutive_empty < 1:
            raise ValueError("max_consecutive_empty must be >= 1")
        self.max_consecutive_empty = max_consecutive_empty
        self.streak = 0
    
    def observe(self, has_data: bool) -> bool:
        """Record one year's outcome; True means stop."""
        self.streak = 0 if has_data else self.streak + 1
        return self.streak >= self.max_consecutive_empty


class PlayerYearStatsScraper(BaseScraper[PlayerYearStatsRaw]):
    """
    Role breakdown per year, newest year first.
    
    Walks from the current year down to min_year and stops early via
    EmptyYearStreak.
    """
    
    entity = "player_year_stats"
    
    def __init__(
        self,
        *args,
        min_year: int = 2022,
        max_consecutive_empty: int = 2,
        years: Optional[List[int]] = None,
        **kwargs
    ):
        super().__init__(*args, **kwargs)
        self.min_year = min_year
        self.max_consecutive_empty = max_consecutive_empty
        self.years = years
        self.player_gomafia_id: Optional[str] = None
        self.year: Optional[int] = None
    
    def stats_url(self, player_gomafia_id: str, year: int) -> str:
        return self.url(f"/stats/{player_gomafia_id}?year={year}")
    
    def years_to_scan(self) -> List[int]:
        if self.years is not None:
            return list(self.years)
        return list(range(datetime.utcnow().year, self.min_year - 1, -1))
    
    def extract(self, page: Page) -> List[PlayerYearStatsRaw]:
        total = parse_int(page.select_one(".total-games"))
        roles = {
            "don_games": parse_int(page.select_one(".don-games")) or 0,
            "mafia_games": parse_int(page.select_one(".mafia-games")) or 0,
            "sheriff_games": parse_int(page.select_one(".sheriff-games")) or 0,
            "civilian_games": parse_int(page.select_one(".civilian-games")) or 0,
        }
        if not total and not any(roles.values()):
            return []
        
        return [PlayerYearStatsRaw(
            player_gomafia_id=self.player_gomafia_id or extract_id_from_href(page.url),
            year=self.year or _year_from_url(page.url),
            total_games=total,
            elo_rating=parse_float(page.select_one(".elo")),
            extra_points=parse_float(page.select_one(".extra-points")) or 0.0,
            **roles,
        )]
    
    async def scrape(self, identifier: Optional[str] = None) -> List[PlayerYearStatsRaw]:
        if not identifier:
            raise ValueError("PlayerYearStatsScraper.scrape requires a player id")
        
        streak = EmptyYearStreak(self.max_consecutive_empty)
        results: List[PlayerYearStatsRaw] = []
        last_error: Optional[PipelineError] = None
        loaded_any = False
        self.player_gomafia_id = str(identifier)
        
        try:
            for year in self.years_to_scan():
                self.year = year
                try:
                    page = await self.pagination.load_page(self.stats_url(identifier, year))
                except FatalImportError:
                    raise
                except PipelineError as e:
                    last_error = e
                    logger.warning(f"Year {year} for player {identifier} failed to load: {e.message}")
                    continue
                
                loaded_any = True
                records = self.parse(page)
                results.extend(records)
                if streak.observe(bool(records)):
                    logger.debug(f"Player {identifier}: stopping at {year} after {streak.streak} empty years")
                    break
        finally:
            self.player_gomafia_id = None
            self.year = None
        
        if not loaded_any and last_error is not None:
            raise last_error
        return results
