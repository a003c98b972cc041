# ============================================================================
# File: ingestion/orchestrator.py
# Description: Import orchestrator with resumable phases and run bookkeeping
# ============================================================================
"""
Import Orchestrator - runs the import phases in order.

This module provides:
- Sequential phase execution with checkpoint resume
- A single validation tracker per run
- Run bookkeeping (SyncLog, SyncStatus) finalized on every exit path
- Cooperative cancellation and a maximum run duration
- Error log with a summary by phase and error code
"""

from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings, settings as default_settings
from core.database import async_session_maker
from core.exceptions import (
    FatalImportError,
    ImportCancelledError,
    ImportConflictError,
    ImportTimeoutError,
    PipelineError,
)
from ingestion.browser import BrowserSession
from ingestion.checkpoint import Checkpoint, CheckpointManager
from ingestion.integrity import IntegrityChecker, IntegrityReport
from ingestion.loaders.entity_loader import EntityLoader
from ingestion.phases import ImportContext, ImportPhase, PhaseResult, build_phases
from ingestion.rate_limiter import RateLimiter
from ingestion.retry import RetryManager, RetryPolicy
from ingestion.skipped import SkippedEntityRecorder
from ingestion.validation import ValidationMetrics, ValidationMetricsTracker, ValidationSummary
from models.base import PhaseName, SyncStatusValue, SyncType, TERMINAL_SYNC_STATUSES
from models.sync_log import SyncLog
from models.sync_status import CURRENT_STATUS_ID, SyncStatus

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Import cancelled by user"


class ImportOrchestrator:
    """
    Owns one import run at a time.

    Responsibilities:
    - Reject concurrent runs
    - Build per-run resources (browser session, rate limiter, retry manager)
    - Execute phases in order, resuming from the saved checkpoint
    - Keep SyncLog and SyncStatus current and finalize them on every exit
    - Serve as the reporting target for phases (validation, errors, checkpoints)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_maker,
        browser: Optional[BrowserSession] = None,
        config: Optional[Settings] = None,
        phase_factory: Callable[[ImportContext], List[ImportPhase]] = build_phases,
        rate_limiter: Optional[RateLimiter] = None,
        retry_manager: Optional[RetryManager] = None
    ):
        self.session_factory = session_factory
        self.browser = browser
        self.settings = config or default_settings
        self.phase_factory = phase_factory
        self._rate_limiter = rate_limiter
        self._retry_manager = retry_manager
        self.retry_manager: Optional[RetryManager] = None

        self.tracker = ValidationMetricsTracker(
            threshold=self.settings.VALIDATION_THRESHOLD,
            max_stored_errors=self.settings.MAX_STORED_VALIDATION_ERRORS,
        )

        self._running = False
        self._cancel_requested = False
        self._deadline: Optional[float] = None
        self._db: Optional[AsyncSession] = None
        self.checkpoints: Optional[CheckpointManager] = None

        self.mode: Optional[SyncType] = None
        self.sync_log_id: Optional[str] = None
        self.current_phase: Optional[PhaseName] = None
        self.phase_results: List[PhaseResult] = []
        self.failed_phases: List[str] = []
        self._reset_error_log()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, mode: SyncType = SyncType.FULL, resume: bool = True) -> Dict[str, Any]:
        """
        Run every phase in order.

        Args:
            mode: FULL or INCREMENTAL
            resume: Continue from the saved checkpoint if there is one

        Returns:
            Run summary (sync_log_id, status, validation summary, phases)

        Raises:
            ImportConflictError: Another run is active
            FatalImportError: Session loss, storage outage or timeout
            PipelineError: Unexpected errors, wrapped
        """
        if self._running:
            raise ImportConflictError(
                "An import is already running",
                context={"sync_log_id": self.sync_log_id, "current_phase": self._phase_label()}
            )

        self._running = True
        self._cancel_requested = False
        self.mode = SyncType(mode)
        self.tracker.reset()
        self._reset_error_log()
        self.phase_results = []
        self.failed_phases = []
        self.current_phase = None
        self._deadline = time.monotonic() + self.settings.MAX_IMPORT_DURATION_HOURS * 3600
        self.retry_manager = self._retry_manager or RetryManager(
            policy=RetryPolicy.from_settings(self.settings),
            unavailability_wait=self.settings.COMPLETE_UNAVAILABILITY_WAIT,
        )

        try:
            async with self.session_factory() as db:
                self._db = db
                self.checkpoints = CheckpointManager(db)
                sync_log = await self._start_run(db)

                owns_browser = self.browser is None
                browser = self.browser or BrowserSession()
                try:
                    return await self._execute(db, sync_log, browser, resume)
                finally:
                    if owns_browser:
                        await browser.close()
        finally:
            self._db = None
            self._running = False
            self._cancel_requested = False

    def cancel(self) -> bool:
        """Request cancellation at the next phase or batch boundary."""
        if not self._running:
            return False
        self._cancel_requested = True
        logger.warning(f"Cancellation requested during {self._phase_label()}")
        return True

    def get_validation_metrics(self) -> ValidationMetrics:
        return self.tracker.get_metrics()

    def get_validation_summary(self) -> ValidationSummary:
        return self.tracker.get_summary()

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self._running,
            "mode": self.mode.value if self.mode else None,
            "current_phase": self._phase_label(),
            "sync_log_id": self.sync_log_id,
            "cancel_requested": self._cancel_requested,
            "validation": asdict(self.get_validation_summary()),
            "errors": self.get_error_summary(),
        }

    # ------------------------------------------------------------------
    # Reporting callbacks used by phases
    # ------------------------------------------------------------------

    def record_valid_record(self, entity: str) -> None:
        self.tracker.record_valid(entity)

    def record_invalid_record(self, entity: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.tracker.record_invalid(entity, message, context)

    def record_duplicate_skipped(self) -> None:
        self.tracker.record_duplicate_skipped()

    def check_cancelled(self) -> None:
        """Raise at a safe point if the run must stop."""
        if self._cancel_requested:
            raise ImportCancelledError(CANCELLED_MESSAGE, context={"phase": self._phase_label()})
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise ImportTimeoutError(
                f"Import exceeded {self.settings.MAX_IMPORT_DURATION_HOURS} hours",
                context={"phase": self._phase_label()}
            )

    def log_error(
        self,
        error: Exception,
        phase: Optional[PhaseName] = None,
        will_retry: bool = False,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        code = getattr(error, "code", type(error).__name__)
        phase_label = phase.value if phase else self._phase_label()
        entry = {
            "code": code,
            "message": getattr(error, "message", str(error)),
            "phase": phase_label,
            "will_retry": will_retry,
            "critical": isinstance(error, FatalImportError) or not isinstance(error, PipelineError),
            "context": {**getattr(error, "context", {}), **(context or {})},
            "timestamp": datetime.utcnow().isoformat(),
        }

        self._error_total += 1
        self._errors_by_phase[phase_label] = self._errors_by_phase.get(phase_label, 0) + 1
        self._errors_by_code[code] = self._errors_by_code.get(code, 0) + 1
        if entry["critical"]:
            self._critical_errors += 1
        if will_retry:
            self._retried_errors += 1
        if len(self._errors) < self.settings.MAX_STORED_ERRORS:
            self._errors.append(entry)

        logger.error(f"[{phase_label}] {code}: {entry['message']}", extra={"error_context": entry})

    def get_errors(self) -> List[Dict[str, Any]]:
        return list(self._errors)

    def get_error_summary(self) -> Dict[str, Any]:
        return {
            "total_errors": self._error_total,
            "by_phase": dict(self._errors_by_phase),
            "by_code": dict(self._errors_by_code),
            "critical_errors": self._critical_errors,
            "retried_errors": self._retried_errors,
        }

    async def load_checkpoint(self, phase: PhaseName) -> Optional[Checkpoint]:
        checkpoint = await self.checkpoints.load()
        if checkpoint is None or checkpoint.phase != phase:
            return None
        return checkpoint

    async def save_checkpoint(self, checkpoint: Checkpoint) -> None:
        await self.checkpoints.save(checkpoint)

    # ------------------------------------------------------------------
    # Run internals
    # ------------------------------------------------------------------

    async def _execute(
        self, db: AsyncSession, sync_log: SyncLog, browser: BrowserSession, resume: bool
    ) -> Dict[str, Any]:
        try:
            # --------------------------------------------------
            # SETUP: per-run resources
            # --------------------------------------------------
            await browser.open()
            context = self._build_context(db, browser, sync_log)
            phases = self.phase_factory(context)
            start_index = await self._resume_index(phases, resume)

            # --------------------------------------------------
            # PHASES
            # --------------------------------------------------
            for index, phase in enumerate(phases):
                if index < start_index:
                    continue
                self.check_cancelled()
                await self._run_phase(db, phase, index, len(phases))

            # --------------------------------------------------
            # INTEGRITY + FINALIZE
            # --------------------------------------------------
            self.current_phase = None
            integrity = await self._check_integrity(db)
            await self._finalize(db, sync_log, SyncStatusValue.COMPLETED, integrity=integrity)

            summary = self.get_validation_summary()
            if not summary.meets_threshold:
                logger.warning(
                    f"Validation rate {summary.validation_rate}% is below "
                    f"{self.settings.VALIDATION_THRESHOLD}% threshold"
                )
            return self._result(sync_log)

        except ImportCancelledError:
            logger.warning(f"Import cancelled during {self._phase_label()}")
            await db.rollback()
            await self._finalize(db, sync_log, SyncStatusValue.CANCELLED, error=CANCELLED_MESSAGE)
            return self._result(sync_log)

        except PipelineError as e:
            # Fatal pipeline errors - finalize and surface as-is
            self.log_error(e, self.current_phase)
            await db.rollback()
            await self._finalize_failed(db, sync_log, e.message)
            raise

        except Exception as e:
            logger.exception("Unexpected error in import pipeline")
            self.log_error(e, self.current_phase)
            await db.rollback()
            await self._finalize_failed(db, sync_log, str(e))

            raise PipelineError(
                "Unexpected error in import pipeline",
                context={
                    "phase": self._phase_label(),
                    "sync_log_id": sync_log.id,
                    "valid_records": self.tracker.valid_records,
                },
                original_exception=e
            )

    async def _run_phase(self, db: AsyncSession, phase: ImportPhase, index: int, total: int) -> None:
        name = phase.get_phase_name()
        self.current_phase = name
        logger.info(f"Starting phase {index + 1}/{total}: {name.value}")
        await self._update_status(
            db,
            current_operation=f"Running {name.value}",
            progress=int(index / total * 100),
        )

        try:
            result = await phase.execute()
        except (ImportCancelledError, FatalImportError):
            raise
        except PipelineError as e:
            # Phase-level failure: record it and move on to the next phase
            await db.rollback()
            self.log_error(e, name)
            self.failed_phases.append(name.value)
            await self.checkpoints.clear()
            logger.error(f"Phase {name.value} failed: {e.message}")
            return

        self.phase_results.append(result)
        await self.checkpoints.clear()
        await self._update_status(
            db,
            current_operation=f"Completed {name.value}",
            progress=int((index + 1) / total * 100),
            total_records_processed=self.tracker.valid_records,
        )

    def _build_context(self, db: AsyncSession, browser: BrowserSession, sync_log: SyncLog) -> ImportContext:
        cfg = self.settings
        incremental = self.mode == SyncType.INCREMENTAL
        return ImportContext(
            session=browser,
            rate_limiter=self._rate_limiter or RateLimiter(min_interval_ms=cfg.RATE_LIMIT_MS),
            retry_manager=self.retry_manager,
            loader=EntityLoader(db),
            skipped=SkippedEntityRecorder(db),
            reporter=self,
            mode=self.mode,
            batch_size=cfg.IMPORT_BATCH_SIZE,
            max_pages=cfg.INCREMENTAL_MAX_PAGES if incremental else cfg.MAX_PAGES,
            lookback_days=cfg.INCREMENTAL_LOOKBACK_DAYS,
            min_year=cfg.YEAR_STATS_MIN_YEAR,
            max_empty_years=cfg.YEAR_STATS_MAX_EMPTY_YEARS,
            sync_log_id=sync_log.id,
        )

    async def _resume_index(self, phases: List[ImportPhase], resume: bool) -> int:
        checkpoint = await self.checkpoints.load()
        if checkpoint is None:
            return 0
        if not resume:
            logger.info(f"Discarding checkpoint for {checkpoint.phase.value}")
            await self.checkpoints.clear()
            return 0
        for index, phase in enumerate(phases):
            if phase.get_phase_name() == checkpoint.phase:
                logger.info(
                    f"Resuming at {checkpoint.phase.value} "
                    f"({len(checkpoint.processed_ids)} items already processed)"
                )
                return index
        logger.warning(f"Checkpoint names unknown phase {checkpoint.phase}; starting over")
        await self.checkpoints.clear()
        return 0

    async def _start_run(self, db: AsyncSession) -> SyncLog:
        sync_log = SyncLog(type=self.mode, status=SyncStatusValue.RUNNING, start_time=datetime.utcnow())
        db.add(sync_log)

        status = await self._status_row(db)
        status.is_running = True
        status.current_operation = f"Starting {self.mode.value} import"
        status.progress = 0
        status.last_error = None
        status.total_records_processed = 0
        status.validation_rate = None

        await db.commit()
        self.sync_log_id = sync_log.id
        logger.info(f"Import {sync_log.id} started ({self.mode.value})")
        return sync_log

    async def _status_row(self, db: AsyncSession) -> SyncStatus:
        status = await db.get(SyncStatus, CURRENT_STATUS_ID)
        if status is None:
            status = SyncStatus(id=CURRENT_STATUS_ID, is_running=False, progress=0, total_records_processed=0)
            db.add(status)
        return status

    async def _update_status(self, db: AsyncSession, **fields) -> None:
        status = await self._status_row(db)
        for key, value in fields.items():
            setattr(status, key, value)
        status.updated_at = datetime.utcnow()
        await db.commit()

    async def _check_integrity(self, db: AsyncSession) -> Optional[IntegrityReport]:
        try:
            return await IntegrityChecker(db).run()
        except SQLAlchemyError as e:
            logger.warning(f"Integrity checks could not run: {e}")
            return None

    async def _finalize_failed(self, db: AsyncSession, sync_log: SyncLog, message: str) -> None:
        try:
            await self._finalize(db, sync_log, SyncStatusValue.FAILED, error=message)
        except Exception:
            logger.exception("Failed to record FAILED status for import run")

    async def _finalize(
        self,
        db: AsyncSession,
        sync_log: SyncLog,
        status_value: SyncStatusValue,
        error: Optional[str] = None,
        integrity: Optional[IntegrityReport] = None
    ) -> None:
        # Rollbacks expire loaded rows
        await db.refresh(sync_log)
        if sync_log.status in TERMINAL_SYNC_STATUSES:
            logger.warning(f"Sync log {sync_log.id} already {sync_log.status.value}; not changing it")
            return

        summary = self.get_validation_summary()
        now = datetime.utcnow()

        sync_log.status = status_value
        sync_log.end_time = now
        sync_log.records_processed = self.tracker.valid_records
        sync_log.errors = {
            "message": error,
            "error_summary": self.get_error_summary(),
            "errors": self._errors[:50],
            "validation": asdict(summary),
            "validation_errors": [asdict(e) for e in self.tracker.get_errors()],
            "failed_phases": list(self.failed_phases),
            "phases": [
                {**asdict(result), "phase": result.phase.value} for result in self.phase_results
            ],
            "integrity": integrity.to_dict() if integrity else None,
            "retries": self.retry_manager.get_metrics(),
        }

        status = await self._status_row(db)
        status.is_running = False
        status.current_operation = None
        status.last_error = error
        status.total_records_processed = self.tracker.valid_records
        status.validation_rate = summary.validation_rate
        if status_value == SyncStatusValue.COMPLETED:
            status.progress = 100
            status.last_sync_time = now
            status.last_sync_type = self.mode
        status.updated_at = now

        await db.commit()
        logger.info(
            f"Import {sync_log.id} {status_value.value}: {self.tracker.valid_records} valid, "
            f"{self.tracker.invalid_records} invalid, {self.tracker.duplicates_skipped} duplicates, "
            f"rate {summary.validation_rate}%"
        )

    def _result(self, sync_log: SyncLog) -> Dict[str, Any]:
        return {
            "sync_log_id": sync_log.id,
            "status": sync_log.status.value,
            "mode": self.mode.value,
            "validation": asdict(self.get_validation_summary()),
            "failed_phases": list(self.failed_phases),
            "phases": [
                {**asdict(result), "phase": result.phase.value} for result in self.phase_results
            ],
            "errors": self.get_error_summary(),
            "retries": self.retry_manager.get_metrics(),
        }

    def _phase_label(self) -> Optional[str]:
        return self.current_phase.value if self.current_phase else None

    def _reset_error_log(self) -> None:
        self._errors: List[Dict[str, Any]] = []
        self._error_total = 0
        self._errors_by_phase: Dict[str, int] = {}
        self._errors_by_code: Dict[str, int] = {}
        self._critical_errors = 0
        self._retried_errors = 0
