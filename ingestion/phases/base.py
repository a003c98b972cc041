"""
Base class for import phases.

A phase handles one entity family: it collects work items, skips the ones
its checkpoint already covers, processes the rest batch by batch and saves
a checkpoint after each committed batch.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar
import logging

from core.exceptions import FatalImportError, PipelineError
from ingestion.browser import BrowserSession
from ingestion.checkpoint import Checkpoint
from ingestion.loaders.entity_loader import EntityLoader
from ingestion.rate_limiter import RateLimiter
from ingestion.retry import RetryManager
from ingestion.skipped import SkippedEntityRecorder
from models.base import PhaseName, SyncType
from schemas.raw import ParseFailure
from schemas.records import validate_record

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class PhaseReporter(Protocol):
    """Callbacks a phase uses to report back to the run that owns it."""
    
    def record_valid_record(self, entity: str) -> None: ...
    
    def record_invalid_record(self, entity: str, message: str, context: Optional[Dict[str, Any]] = None) -> None: ...
    
    def record_duplicate_skipped(self) -> None: ...
    
    def log_error(self, error: Exception, phase: PhaseName, will_retry: bool = False, context: Optional[Dict[str, Any]] = None) -> None: ...
    
    def check_cancelled(self) -> None: ...
    
    async def load_checkpoint(self, phase: PhaseName) -> Optional[Checkpoint]: ...
    
    async def save_checkpoint(self, checkpoint: Checkpoint) -> None: ...


@dataclass
class ImportContext:
    """Per-run resources handed to every phase."""
    session: BrowserSession
    rate_limiter: RateLimiter
    retry_manager: RetryManager
    loader: EntityLoader
    skipped: SkippedEntityRecorder
    reporter: PhaseReporter
    mode: SyncType = SyncType.FULL
    batch_size: int = 100
    max_pages: Optional[int] = None
    lookback_days: int = 30
    min_year: int = 2022
    max_empty_years: int = 2
    sync_log_id: Optional[str] = None
    
    @property
    def incremental(self) -> bool:
        return self.mode == SyncType.INCREMENTAL


@dataclass
class PhaseResult:
    phase: PhaseName
    total_items: int = 0
    resumed_skipped: int = 0
    processed: int = 0
    failed: int = 0
    batches: int = 0
    skipped_pages: List[int] = field(default_factory=list)


class ImportPhase(ABC):
    """
    Template for one pipeline phase.
    
    Subclasses implement item_id() plus either collect_items() or their
    own execute() that feeds process_items(), and either process_item()
    (one work item at a time, failures isolated per item) or
    process_batch() (whole-batch validation and upsert).
    """
    
    phase_name: PhaseName
    entity: str = "records"
    
    def __init__(self, context: ImportContext):
        self.context = context
        self.reporter = context.reporter
        self.loader = context.loader
    
    def get_phase_name(self) -> PhaseName:
        return self.phase_name
    
    async def collect_items(self) -> List[Any]:
        """
        Every work item of this phase, in processing order.
        
        Optional override: phases that stream their items through
        process_items() from their own execute() leave it out.
        """
        raise NotImplementedError(f"{type(self).__name__} does not collect items up front")
    
    @abstractmethod
    def item_id(self, item: Any) -> str:
        pass
    
    async def process_item(self, item: Any) -> None:
        """
        Handle one work item.
        
        Optional override: only the default process_batch() calls it.
        """
        raise NotImplementedError(f"{type(self).__name__} processes whole batches")
    
    def create_checkpoint(self, batch_index: int, total_batches: int, processed_ids: Sequence[str]) -> Checkpoint:
        return Checkpoint(
            phase=self.phase_name,
            last_batch_index=batch_index,
            total_batches=total_batches,
            processed_ids=list(processed_ids),
            message=f"{self.phase_name.value}: batch {batch_index + 1}/{total_batches} complete",
            timestamp=datetime.utcnow(),
        )
    
    async def execute(self) -> PhaseResult:
        result = PhaseResult(phase=self.phase_name)
        
        checkpoint = await self.reporter.load_checkpoint(self.phase_name)
        processed_ids: List[str] = list(checkpoint.processed_ids) if checkpoint else []
        if checkpoint:
            logger.info(
                f"[{self.phase_name.value}] Resuming after batch {checkpoint.last_batch_index + 1}"
                f"/{checkpoint.total_batches} ({len(processed_ids)} items already processed)"
            )
        
        items = await self.collect_items()
        await self.process_items(items, processed_ids, result)
        
        await self.on_complete()
        logger.info(
            f"[{self.phase_name.value}] Done: {result.processed} processed, {result.failed} failed"
        )
        return result
    
    async def process_items(self, items: List[Any], processed_ids: List[str], result: PhaseResult) -> None:
        """
        Process items not yet in processed_ids, batch by batch.
        
        processed_ids is extended in place and saved in a checkpoint after
        every committed batch.
        """
        done = set(processed_ids)
        pending = [item for item in items if self.item_id(item) not in done]
        result.total_items += len(items)
        result.resumed_skipped += len(items) - len(pending)
        
        if not pending:
            logger.info(f"[{self.phase_name.value}] Nothing to process")
            return
        
        size = self.context.batch_size
        batches = [pending[i:i + size] for i in range(0, len(pending), size)]
        logger.info(
            f"[{self.phase_name.value}] Processing {len(pending)} items in {len(batches)} batches"
        )
        
        for index, batch in enumerate(batches):
            self.reporter.check_cancelled()
            
            succeeded = await self.process_batch(batch)
            
            for item_id in succeeded:
                if item_id not in done:
                    done.add(item_id)
                    processed_ids.append(item_id)
            result.processed += len(succeeded)
            result.failed += len(batch) - len(succeeded)
            result.batches += 1
            
            await self.reporter.save_checkpoint(
                self.create_checkpoint(index, len(batches), processed_ids)
            )
    
    async def process_batch(self, batch: List[Any]) -> List[str]:
        """
        Process items one by one; returns ids that finished.
        
        An item that fails after retries is logged, written to the skipped
        ledger and left out of the checkpoint so a later run retries it.
        Fatal errors propagate.
        """
        succeeded = []
        for item in batch:
            item_id = self.item_id(item)
            try:
                await self.process_item(item)
            except FatalImportError:
                raise
            except PipelineError as e:
                await self.loader.rollback()
                self.reporter.log_error(e, self.phase_name, context={"item_id": item_id})
                await self.context.skipped.record(
                    phase=self.phase_name,
                    entity_type=self.entity,
                    entity_id=item_id,
                    error_code=e.code,
                    error_message=e.message,
                    error_details=e.context,
                    sync_log_id=self.context.sync_log_id,
                )
                continue
            succeeded.append(item_id)
        
        if succeeded:
            await self.context.skipped.mark_resolved(self.phase_name, succeeded)
            await self.loader.commit()
        return succeeded
    
    async def on_complete(self) -> None:
        """Hook run once after the last batch."""
        pass
    
    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------
    
    def report_parse_failures(self, failures: List[ParseFailure]) -> None:
        for failure in failures:
            self.reporter.record_invalid_record(failure.entity, failure.message, failure.context)
    
    def validate(self, schema: Type[RecordT], raws: List[Any], entity: Optional[str] = None) -> List[RecordT]:
        """Validate raw records, reporting the invalid ones."""
        entity = entity or self.entity
        valid = []
        for raw in raws:
            record, error = validate_record(schema, raw)
            if record is None:
                self.reporter.record_invalid_record(
                    entity, error, {"gomafia_id": getattr(raw, "gomafia_id", None)}
                )
                continue
            valid.append(record)
        return valid
    
    def report_upserts(self, existed: List[bool], entity: Optional[str] = None) -> None:
        entity = entity or self.entity
        for was_present in existed:
            if was_present:
                self.reporter.record_duplicate_skipped()
            else:
                self.reporter.record_valid_record(entity)
