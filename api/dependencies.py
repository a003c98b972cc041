"""
FastAPI dependencies shared by the routers
"""

import asyncio
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.database import async_session_maker
from ingestion.orchestrator import ImportOrchestrator

logger = logging.getLogger(__name__)

_orchestrator: Optional[ImportOrchestrator] = None
_import_task: Optional[asyncio.Task] = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session per request"""
    async with async_session_maker() as session:
        yield session


def get_orchestrator() -> ImportOrchestrator:
    """Process-wide orchestrator shared by the API and the scheduler"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ImportOrchestrator()
    return _orchestrator


def import_task_active() -> bool:
    return _import_task is not None and not _import_task.done()


def start_import_task(orchestrator: ImportOrchestrator, mode, resume: bool) -> asyncio.Task:
    """Run an import in the background of the event loop."""
    global _import_task
    _import_task = asyncio.create_task(_run_import(orchestrator, mode, resume))
    return _import_task


async def _run_import(orchestrator: ImportOrchestrator, mode, resume: bool) -> None:
    try:
        result = await orchestrator.run(mode, resume=resume)
        logger.info(f"Background import finished with status {result['status']}")
    except Exception as e:
        logger.error(f"Background import failed - {e}")
