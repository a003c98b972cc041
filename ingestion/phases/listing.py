"""
Phases fed by paginated listings: PLAYERS, CLUBS, TOURNAMENTS.
"""

import logging
from abc import abstractmethod
from typing import Any, List

from core.exceptions import NetworkError, PipelineError
from ingestion.checkpoint import Checkpoint
from ingestion.phases.base import ImportPhase, PhaseResult
from ingestion.scrapers.clubs import ClubsScraper
from ingestion.scrapers.players import PlayersScraper
from ingestion.scrapers.tournaments import TournamentsScraper
from models.base import PhaseName
from schemas.records import ClubRecord, PlayerRecord, TournamentRecord

logger = logging.getLogger(__name__)


class ListingPhase(ImportPhase):
    """
    Validate and upsert a listing page by page as it is scraped.
    
    Each page is split into batches; every committed batch saves a
    checkpoint whose batch index is the 0-based page and whose processed
    ids are the rows done on that page. A resumed run reloads that page,
    skips those rows and carries on from there.
    
    A page that still fails after retries is recorded as a skipped page
    and the traversal moves on, unless no page has loaded yet: then the
    listing is unreachable and the phase fails. Invalid rows are terminal
    for this run, so every row of a committed batch counts as processed.
    """
    
    scraper_class = None
    schema = None
    
    def __init__(self, context):
        super().__init__(context)
        self.scraper = self.scraper_class(
            context.session,
            context.rate_limiter,
            context.retry_manager,
            max_pages=context.max_pages,
        )
        self.result = PhaseResult(phase=self.phase_name)
        self.start_page = 1
        self.resume_ids: List[str] = []
        self.current_page = 1
        self.pages_loaded = 0
    
    async def execute(self) -> PhaseResult:
        self.result = PhaseResult(phase=self.phase_name)
        self.pages_loaded = 0
        
        checkpoint = await self.reporter.load_checkpoint(self.phase_name)
        self.start_page = checkpoint.last_batch_index + 1 if checkpoint else 1
        self.resume_ids = list(checkpoint.processed_ids) if checkpoint else []
        if checkpoint:
            logger.info(
                f"[{self.phase_name.value}] Resuming at page {self.start_page} "
                f"({len(self.resume_ids)} rows of it already processed)"
            )
        
        try:
            await self.traverse()
        except NetworkError as e:
            # Listing down after retries: wait out the outage once
            logger.warning(f"[{self.phase_name.value}] Listing unavailable: {e.message}")
            self.reporter.log_error(e, self.phase_name, will_retry=True)
            await self.context.retry_manager.wait_for_recovery()
            self.scraper.drain_failures()
            await self.traverse()
        
        await self.on_complete()
        logger.info(
            f"[{self.phase_name.value}] Done: {self.result.processed} rows over {self.pages_loaded} pages, "
            f"{len(self.result.skipped_pages)} pages skipped"
        )
        return self.result
    
    async def traverse(self) -> None:
        await self.scraper.pagination.scrape_all_pages(self.scraper.pagination_config(
            start_page=self.start_page,
            on_page=self.store_page,
            on_page_error=self.skip_page,
        ))
    
    async def store_page(self, page_number: int, raws: List[Any]) -> None:
        self.pages_loaded += 1
        self.current_page = page_number
        self.report_parse_failures(self.scraper.drain_failures())
        
        if await self.context.skipped.mark_pages_resolved(self.phase_name, [page_number]):
            await self.loader.commit()
        
        processed_ids = list(self.resume_ids) if page_number == self.start_page else []
        await self.process_items(raws, processed_ids, self.result)
    
    async def skip_page(self, page_number: int, url: str, error: PipelineError) -> None:
        if not self.pages_loaded:
            raise error
        
        self.reporter.log_error(error, self.phase_name, context={"page_number": page_number})
        await self.context.skipped.record(
            phase=self.phase_name,
            entity_type=self.entity,
            page_number=page_number,
            error_code=error.code,
            error_message=error.message,
            error_details={**error.context, "url": url},
            sync_log_id=self.context.sync_log_id,
        )
        self.result.skipped_pages.append(page_number)
    
    def create_checkpoint(self, batch_index: int, total_batches: int, processed_ids) -> Checkpoint:
        return Checkpoint(
            phase=self.phase_name,
            last_batch_index=self.current_page - 1,
            total_batches=self.current_page,
            processed_ids=list(processed_ids),
            message=(
                f"{self.phase_name.value}: page {self.current_page}, "
                f"batch {batch_index + 1}/{total_batches} complete"
            ),
        )
    
    def item_id(self, item: Any) -> str:
        return item.gomafia_id
    
    @abstractmethod
    async def upsert(self, records) -> List[bool]:
        """Write validated records; returns which keys were already stored."""
        pass
    
    async def process_batch(self, batch: List[Any]) -> List[str]:
        records = self.validate(self.schema, batch)
        existed = await self.upsert(records)
        await self.loader.commit()
        self.report_upserts(existed)
        return [self.item_id(item) for item in batch]


class PlayersPhase(ListingPhase):
    phase_name = PhaseName.PLAYERS
    entity = "players"
    scraper_class = PlayersScraper
    schema = PlayerRecord
    
    async def upsert(self, records) -> List[bool]:
        return await self.loader.upsert_players(records)


class ClubsPhase(ListingPhase):
    phase_name = PhaseName.CLUBS
    entity = "clubs"
    scraper_class = ClubsScraper
    schema = ClubRecord
    
    async def upsert(self, records) -> List[bool]:
        return await self.loader.upsert_clubs(records)
    
    async def on_complete(self) -> None:
        linked = await self.loader.link_players_to_clubs()
        logger.info(f"[{self.phase_name.value}] Linked {linked} players to clubs")


class TournamentsPhase(ListingPhase):
    phase_name = PhaseName.TOURNAMENTS
    entity = "tournaments"
    scraper_class = TournamentsScraper
    schema = TournamentRecord
    
    async def upsert(self, records) -> List[bool]:
        return await self.loader.upsert_tournaments(records)
