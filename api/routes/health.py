"""
Health check endpoint with database and import status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_orchestrator
from ingestion.orchestrator import ImportOrchestrator
from schemas.api import HealthCheckResponse
from models.sync_status import CURRENT_STATUS_ID, SyncStatus
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    orchestrator: ImportOrchestrator = Depends(get_orchestrator)
):
    """
    Health check endpoint.
    
    Returns:
    - Database connectivity status
    - Last import run outcome
    """
    db_connected = False
    status = None
    
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
        status = await db.get(SyncStatus, CURRENT_STATUS_ID)
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")
    
    return HealthCheckResponse(
        database_connected=db_connected,
        import_running=orchestrator.is_running,
        last_sync_type=status.last_sync_type if status else None,
        last_sync_time=status.last_sync_time if status else None,
        last_error=status.last_error if status else None,
    )
