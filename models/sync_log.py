from sqlalchemy import Column, String, Enum, DateTime, Integer, Index
from datetime import datetime
import uuid
from models.base import Base, JSONType, SyncType, SyncStatusValue


class SyncLog(Base):
    """
    Append-only record of each import run.
    
    Purpose:
    - Audit trail of all runs (FULL and INCREMENTAL)
    - Error tracking and debugging
    - Validation rate history
    
    Status moves from RUNNING to exactly one terminal state and never back.
    """
    __tablename__ = "sync_logs"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(Enum(SyncType), nullable=False, index=True)
    status = Column(Enum(SyncStatusValue), nullable=False, default=SyncStatusValue.RUNNING, index=True)
    
    start_time = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    end_time = Column(DateTime, nullable=True)
    
    records_processed = Column(Integer, nullable=False, default=0)
    errors = Column(JSONType, nullable=True)
    
    __table_args__ = (
        Index("idx_sync_log_status_start", "status", "start_time"),
    )
