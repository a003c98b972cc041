import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.exceptions import ImportConflictError
from ingestion.orchestrator import ImportOrchestrator
from models.base import SyncType

logger = logging.getLogger(__name__)


class ImportScheduler:
    def __init__(self, orchestrator: ImportOrchestrator, interval_hours: Optional[int] = None):
        self.orchestrator = orchestrator
        self.interval_hours = interval_hours or settings.SYNC_INTERVAL_HOURS
        self.scheduler = AsyncIOScheduler()

    async def run_sync_job(self):
        """Job to run an incremental import"""
        logger.info("Scheduler: Starting incremental import")
        try:
            result = await self.orchestrator.run(SyncType.INCREMENTAL, resume=True)
            logger.info(f"Scheduler: Import finished with status {result['status']}")
        except ImportConflictError:
            logger.warning("Scheduler: Import already running, skipping this tick")
        except Exception as e:
            logger.error(f"Scheduler: Import job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id="gomafia_sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Import scheduler started (every {self.interval_hours}h)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Import scheduler stopped")
