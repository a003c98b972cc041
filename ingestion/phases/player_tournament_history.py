"""
PLAYER_TOURNAMENT_HISTORY phase: final standings of every stored tournament.
"""

from typing import List, Tuple

from ingestion.loaders.entity_loader import lookback_start
from ingestion.phases.base import ImportPhase
from ingestion.scrapers.tournament_results import TournamentResultsScraper
from models.base import PhaseName
from schemas.records import PlayerTournamentRecord


class PlayerTournamentHistoryPhase(ImportPhase):
    phase_name = PhaseName.PLAYER_TOURNAMENT_HISTORY
    entity = "player_tournaments"
    
    def __init__(self, context):
        super().__init__(context)
        self.scraper = TournamentResultsScraper(context.session, context.rate_limiter, context.retry_manager)
    
    async def collect_items(self) -> List[Tuple[int, str]]:
        since = lookback_start(self.context.lookback_days) if self.context.incremental else None
        return await self.loader.list_tournaments(recent_since=since)
    
    def item_id(self, item: Tuple[int, str]) -> str:
        return item[1]
    
    async def process_item(self, item: Tuple[int, str]) -> None:
        tournament_id, gomafia_id = item
        raws = await self.scraper.scrape(gomafia_id)
        self.report_parse_failures(self.scraper.drain_failures())
        records = self.validate(PlayerTournamentRecord, raws)
        existed = await self.loader.upsert_player_tournaments(tournament_id, records)
        await self.loader.commit()
        self.report_upserts(existed)
