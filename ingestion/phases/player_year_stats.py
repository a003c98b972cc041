"""
PLAYER_YEAR_STATS phase: per-year role breakdown of every stored player.
"""

from datetime import datetime
from typing import List, Tuple

from ingestion.phases.base import ImportPhase
from ingestion.scrapers.year_stats import PlayerYearStatsScraper
from models.base import PhaseName
from schemas.records import PlayerYearStatsRecord


class PlayerYearStatsPhase(ImportPhase):
    """Full runs walk back to min_year; incremental runs refresh the current year."""
    
    phase_name = PhaseName.PLAYER_YEAR_STATS
    entity = "player_year_stats"
    
    def __init__(self, context):
        super().__init__(context)
        self.scraper = PlayerYearStatsScraper(
            context.session,
            context.rate_limiter,
            context.retry_manager,
            min_year=context.min_year,
            max_consecutive_empty=context.max_empty_years,
            years=[datetime.utcnow().year] if context.incremental else None,
        )
    
    async def collect_items(self) -> List[Tuple[int, str]]:
        return await self.loader.list_players()
    
    def item_id(self, item: Tuple[int, str]) -> str:
        return item[1]
    
    async def process_item(self, item: Tuple[int, str]) -> None:
        player_id, gomafia_id = item
        raws = await self.scraper.scrape(gomafia_id)
        self.report_parse_failures(self.scraper.drain_failures())
        records = self.validate(PlayerYearStatsRecord, raws)
        existed = await self.loader.upsert_year_stats(player_id, records)
        await self.loader.commit()
        self.report_upserts(existed)
