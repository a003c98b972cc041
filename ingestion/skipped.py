"""
Ledger of work items skipped after retries.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import PhaseName, SkippedEntityStatus
from models.skipped_entity import SkippedEntity

logger = logging.getLogger(__name__)


class SkippedEntityRecorder:
    """Persist and query skipped work items (players, tournaments, pages)."""
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def record(
        self,
        phase: PhaseName,
        entity_type: str,
        error_code: str,
        error_message: str,
        entity_id: Optional[str] = None,
        page_number: Optional[int] = None,
        error_details: Optional[Dict[str, Any]] = None,
        sync_log_id: Optional[str] = None
    ) -> SkippedEntity:
        entity = SkippedEntity(
            phase=phase,
            entity_type=entity_type,
            entity_id=entity_id,
            page_number=page_number,
            error_code=error_code,
            error_message=error_message[:2000],
            error_details=error_details,
            sync_log_id=sync_log_id,
            status=SkippedEntityStatus.PENDING,
        )
        self.db.add(entity)
        await self.db.commit()
        logger.info(f"Skipped {entity_type} {entity_id or page_number} in {phase.value}: {error_code}")
        return entity
    
    async def pending(self, phase: Optional[PhaseName] = None, limit: int = 100) -> List[SkippedEntity]:
        stmt = select(SkippedEntity).where(SkippedEntity.status == SkippedEntityStatus.PENDING)
        if phase is not None:
            stmt = stmt.where(SkippedEntity.phase == phase)
        stmt = stmt.order_by(SkippedEntity.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
    
    async def mark_resolved(self, phase: PhaseName, entity_ids: List[str]) -> int:
        """Resolve pending entries whose item has now been processed."""
        if not entity_ids:
            return 0
        result = await self.db.execute(
            update(SkippedEntity)
            .where(
                SkippedEntity.phase == phase,
                SkippedEntity.status == SkippedEntityStatus.PENDING,
                SkippedEntity.entity_id.in_(entity_ids),
            )
            .values(status=SkippedEntityStatus.RESOLVED, retry_count=SkippedEntity.retry_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
    
    async def mark_pages_resolved(self, phase: PhaseName, page_numbers: List[int]) -> int:
        """Resolve pending listing pages that have now loaded. Not committed here."""
        if not page_numbers:
            return 0
        result = await self.db.execute(
            update(SkippedEntity)
            .where(
                SkippedEntity.phase == phase,
                SkippedEntity.status == SkippedEntityStatus.PENDING,
                SkippedEntity.entity_id.is_(None),
                SkippedEntity.page_number.in_(page_numbers),
            )
            .values(status=SkippedEntityStatus.RESOLVED, retry_count=SkippedEntity.retry_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
