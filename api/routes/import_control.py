"""
Import control endpoints: start, cancel, status and run diagnostics
"""

from dataclasses import asdict
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, get_orchestrator, import_task_active, start_import_task
from ingestion.checkpoint import CheckpointManager
from ingestion.orchestrator import ImportOrchestrator
from ingestion.skipped import SkippedEntityRecorder
from models.base import PhaseName
from models.sync_status import CURRENT_STATUS_ID, SyncStatus
from schemas.api import (
    CheckpointInfo,
    CheckpointResponse,
    ImportCancelResponse,
    ImportStartRequest,
    ImportStartResponse,
    ImportStatusResponse,
    SkippedEntityInfo,
    SkippedEntityListResponse,
    ValidationErrorInfo,
    ValidationSummaryResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/import", tags=["Import"])


@router.get("/status", response_model=ImportStatusResponse)
async def get_import_status(
    db: AsyncSession = Depends(get_db),
    orchestrator: ImportOrchestrator = Depends(get_orchestrator)
):
    """Persisted run status merged with the live orchestrator state"""
    row = await db.get(SyncStatus, CURRENT_STATUS_ID)
    live = orchestrator.get_status()
    
    if row is None:
        return ImportStatusResponse(
            is_running=live["is_running"],
            current_phase=live["current_phase"],
            sync_log_id=live["sync_log_id"],
        )
    
    return ImportStatusResponse(
        is_running=row.is_running or live["is_running"],
        current_operation=row.current_operation,
        current_phase=live["current_phase"],
        progress=row.progress or 0,
        sync_log_id=live["sync_log_id"],
        last_sync_type=row.last_sync_type,
        last_sync_time=row.last_sync_time,
        last_error=row.last_error,
        total_records_processed=row.total_records_processed or 0,
        validation_rate=row.validation_rate,
        updated_at=row.updated_at,
    )


@router.post("/start", response_model=ImportStartResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_import(
    request: Request,
    body: Optional[ImportStartRequest] = None,
    orchestrator: ImportOrchestrator = Depends(get_orchestrator)
):
    """
    Start an import in the background.
    
    Returns 409 while another run is active.
    """
    body = body or ImportStartRequest()
    request_id = getattr(request.state, "request_id", "-")
    
    if orchestrator.is_running or import_task_active():
        logger.warning(f"[{request_id}] POST /import/start rejected: import already running")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Import already running")
    
    start_import_task(orchestrator, body.mode, body.resume)
    logger.info(f"[{request_id}] POST /import/start mode={body.mode.value} resume={body.resume}")
    
    return ImportStartResponse(
        accepted=True,
        mode=body.mode,
        resume=body.resume,
        message=f"{body.mode.value} import started",
    )


@router.post("/cancel", response_model=ImportCancelResponse)
async def cancel_import(orchestrator: ImportOrchestrator = Depends(get_orchestrator)):
    cancelled = orchestrator.cancel()
    return ImportCancelResponse(
        cancelled=cancelled,
        message="Cancellation requested" if cancelled else "No import is running",
    )


@router.get("/validation", response_model=ValidationSummaryResponse)
async def get_validation_summary(
    limit: int = Query(20, ge=0, le=100, description="Number of validation errors to include"),
    orchestrator: ImportOrchestrator = Depends(get_orchestrator)
):
    """Validation summary of the current or most recent run in this process"""
    summary = orchestrator.get_validation_summary()
    errors = orchestrator.tracker.get_errors()[:limit]
    
    return ValidationSummaryResponse(
        **asdict(summary),
        threshold=orchestrator.tracker.threshold,
        recent_errors=[ValidationErrorInfo(**asdict(error)) for error in errors],
    )


@router.get("/checkpoint", response_model=CheckpointResponse)
async def get_checkpoint(db: AsyncSession = Depends(get_db)):
    checkpoint = await CheckpointManager(db).load()
    if checkpoint is None:
        return CheckpointResponse(has_checkpoint=False)
    
    details = checkpoint.describe()
    return CheckpointResponse(
        has_checkpoint=True,
        checkpoint=CheckpointInfo(
            phase=checkpoint.phase,
            last_batch_index=details["last_batch_index"],
            total_batches=details["total_batches"],
            batches_done=details["batches_done"],
            processed_count=details["processed_count"],
            message=details["message"],
            timestamp=checkpoint.timestamp,
        ),
    )


@router.get("/skipped", response_model=SkippedEntityListResponse)
async def get_skipped_entities(
    phase: Optional[PhaseName] = Query(None, description="Filter by phase"),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db)
):
    """Work items that failed after retries and are still pending"""
    entities = await SkippedEntityRecorder(db).pending(phase=phase, limit=limit)
    items = [SkippedEntityInfo.model_validate(entity) for entity in entities]
    return SkippedEntityListResponse(items=items, total=len(items), phase=phase)
