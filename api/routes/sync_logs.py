"""
Sync log history endpoint
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from api.dependencies import get_db
from schemas.api import SyncLogInfo, SyncLogListResponse
from models.sync_log import SyncLog
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["History"])


@router.get("/sync-logs", response_model=SyncLogListResponse)
async def get_sync_logs(
    limit: int = Query(20, ge=1, le=200, description="Number of runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """Most recent import runs, newest first"""
    total_result = await db.execute(select(func.count()).select_from(SyncLog))
    total = total_result.scalar() or 0
    
    result = await db.execute(
        select(SyncLog).order_by(SyncLog.start_time.desc()).limit(limit)
    )
    logs = result.scalars().all()
    
    return SyncLogListResponse(
        items=[SyncLogInfo.model_validate(log) for log in logs],
        total=total,
    )
