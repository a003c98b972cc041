"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import PhaseName, SkippedEntityStatus, SyncStatusValue, SyncType


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    database_connected: bool
    import_running: bool = False
    last_sync_type: Optional[SyncType] = None
    last_sync_time: Optional[datetime] = None
    last_error: Optional[str] = None
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    
    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"
        if values.get("last_error"):
            return "degraded"
        return "healthy"
    
    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "import_running": False,
                "last_sync_type": "INCREMENTAL",
                "last_sync_time": "2024-01-15T03:00:00Z",
                "last_error": None
            }
        }


# ============================================================================
# Import Control Schemas
# ============================================================================

class ImportStartRequest(BaseModel):
    """Body of POST /import/start"""
    mode: SyncType = Field(SyncType.FULL, description="FULL or INCREMENTAL")
    resume: bool = Field(True, description="Continue from the saved checkpoint")


class ImportStartResponse(BaseModel):
    accepted: bool
    mode: SyncType
    resume: bool
    message: str
    
    class Config:
        use_enum_values = True


class ImportCancelResponse(BaseModel):
    cancelled: bool
    message: str


class ImportStatusResponse(BaseModel):
    """Current run status"""
    is_running: bool
    current_operation: Optional[str] = None
    current_phase: Optional[str] = None
    progress: int = Field(0, ge=0, le=100)
    sync_log_id: Optional[str] = None
    last_sync_type: Optional[SyncType] = None
    last_sync_time: Optional[datetime] = None
    last_error: Optional[str] = None
    total_records_processed: int = 0
    validation_rate: Optional[float] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "is_running": True,
                "current_operation": "Processing GAMES (batch 3/12)",
                "current_phase": "GAMES",
                "progress": 42,
                "sync_log_id": "2f1c6f0e-6c1f-4d1c-9a53-4b8f0e3f9a11",
                "total_records_processed": 18250,
                "validation_rate": 99.12
            }
        }


class ValidationErrorInfo(BaseModel):
    entity: str
    message: str
    context: Optional[Dict[str, Any]] = None


class ValidationSummaryResponse(BaseModel):
    """Validation summary of the current or last run"""
    validation_rate: float
    meets_threshold: bool
    threshold: float
    total_records: int
    valid_records: int
    invalid_records: int
    duplicates_skipped: int
    errors_by_entity: Dict[str, int] = Field(default_factory=dict)
    recent_errors: List[ValidationErrorInfo] = Field(default_factory=list)
    
    class Config:
        json_schema_extra = {
            "example": {
                "validation_rate": 98.0,
                "meets_threshold": True,
                "threshold": 98.0,
                "total_records": 100,
                "valid_records": 98,
                "invalid_records": 2,
                "duplicates_skipped": 0,
                "errors_by_entity": {"players": 2}
            }
        }


class CheckpointInfo(BaseModel):
    phase: PhaseName
    last_batch_index: int
    total_batches: int
    batches_done: int
    processed_count: int
    message: str = ""
    timestamp: Optional[datetime] = None
    
    class Config:
        use_enum_values = True


class CheckpointResponse(BaseModel):
    has_checkpoint: bool
    checkpoint: Optional[CheckpointInfo] = None


# ============================================================================
# History Schemas
# ============================================================================

class SyncLogInfo(BaseModel):
    id: str
    type: SyncType
    status: SyncStatusValue
    start_time: datetime
    end_time: Optional[datetime] = None
    records_processed: int = 0
    duration_seconds: Optional[float] = None
    errors: Optional[Dict[str, Any]] = None
    
    @validator("duration_seconds", pre=True, always=True)
    def compute_duration(cls, v, values):
        if v is not None:
            return v
        start, end = values.get("start_time"), values.get("end_time")
        if start and end:
            return round((end - start).total_seconds(), 2)
        return None
    
    class Config:
        from_attributes = True
        use_enum_values = True


class SyncLogListResponse(BaseModel):
    items: List[SyncLogInfo]
    total: int


class SkippedEntityInfo(BaseModel):
    id: int
    phase: PhaseName
    entity_type: str
    entity_id: Optional[str] = None
    page_number: Optional[int] = None
    error_code: str
    error_message: str
    status: SkippedEntityStatus
    retry_count: int = 0
    sync_log_id: Optional[str] = None
    created_at: datetime
    
    class Config:
        from_attributes = True
        use_enum_values = True


class SkippedEntityListResponse(BaseModel):
    items: List[SkippedEntityInfo]
    total: int
    phase: Optional[PhaseName] = None
    
    class Config:
        use_enum_values = True


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    
    class Config:
        json_schema_extra = {
            "example": {
                "error": "Import already running",
                "detail": "Wait for the current run or cancel it",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
