"""
Checkpoint persistence for resumable imports.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import CheckpointError
from models.base import PhaseName
from models.checkpoint import CURRENT_CHECKPOINT_ID, ImportCheckpoint
from models.sync_status import CURRENT_STATUS_ID, SyncStatus

logger = logging.getLogger(__name__)


@dataclass
class Checkpoint:
    """
    Resume position inside one phase.
    
    Invariant: last_batch_index < total_batches.
    """
    phase: PhaseName
    last_batch_index: int
    total_batches: int
    processed_ids: List[str] = field(default_factory=list)
    message: str = ""
    timestamp: datetime = field(default_factory=datetime.utcnow)
    
    def __post_init__(self):
        if self.total_batches and not 0 <= self.last_batch_index < self.total_batches:
            raise ValueError(
                f"last_batch_index {self.last_batch_index} outside 0..{self.total_batches - 1}"
            )
    
    def describe(self) -> dict:
        """Summary for operational debugging."""
        return {
            "phase": self.phase.value,
            "last_batch_index": self.last_batch_index,
            "total_batches": self.total_batches,
            "batches_done": self.last_batch_index + 1,
            "processed_count": len(self.processed_ids),
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class CheckpointManager:
    """
    Save, load and clear the single "current" checkpoint row.
    
    Saving also refreshes the run status' current operation so the
    status endpoint shows batch progress.
    """
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def save(self, checkpoint: Checkpoint) -> None:
        try:
            row = await self.db.get(ImportCheckpoint, CURRENT_CHECKPOINT_ID)
            if row is None:
                row = ImportCheckpoint(id=CURRENT_CHECKPOINT_ID)
                self.db.add(row)
            
            row.phase = checkpoint.phase
            row.last_batch_index = checkpoint.last_batch_index
            row.total_batches = checkpoint.total_batches
            row.processed_ids = list(checkpoint.processed_ids)
            row.message = checkpoint.message
            row.updated_at = checkpoint.timestamp
            
            status = await self.db.get(SyncStatus, CURRENT_STATUS_ID)
            if status is not None:
                status.current_operation = (
                    f"Processing {checkpoint.phase.value} "
                    f"(batch {checkpoint.last_batch_index + 1}/{checkpoint.total_batches})"
                )
            
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise CheckpointError(
                "Failed to save checkpoint",
                context={"phase": checkpoint.phase.value, "operation": "save"},
                original_exception=e
            )
        
        logger.debug(
            f"Checkpoint saved: {checkpoint.phase.value} batch "
            f"{checkpoint.last_batch_index + 1}/{checkpoint.total_batches}, "
            f"{len(checkpoint.processed_ids)} processed"
        )
    
    async def load(self) -> Optional[Checkpoint]:
        try:
            row = await self.db.get(ImportCheckpoint, CURRENT_CHECKPOINT_ID)
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to load checkpoint",
                context={"operation": "load"},
                original_exception=e
            )
        
        if row is None:
            return None
        
        return Checkpoint(
            phase=PhaseName(row.phase),
            last_batch_index=row.last_batch_index,
            total_batches=row.total_batches,
            processed_ids=list(row.processed_ids or []),
            message=row.message or "",
            timestamp=row.updated_at or row.created_at,
        )
    
    async def clear(self) -> None:
        try:
            row = await self.db.get(ImportCheckpoint, CURRENT_CHECKPOINT_ID)
            if row is not None:
                await self.db.delete(row)
                await self.db.commit()
                logger.debug(f"Checkpoint cleared for {row.phase}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise CheckpointError(
                "Failed to clear checkpoint",
                context={"operation": "clear"},
                original_exception=e
            )
