from sqlalchemy import Column, String, Boolean, DateTime, Integer, Float, Text, Enum
from datetime import datetime
from models.base import Base, SyncType

CURRENT_STATUS_ID = "current"


class SyncStatus(Base):
    """
    Single-row run status polled by the status endpoint.
    
    Overwritten at run start, updated after each phase and
    finalized at run end or cancellation.
    """
    __tablename__ = "sync_status"
    
    id = Column(String(20), primary_key=True, default=CURRENT_STATUS_ID)
    
    is_running = Column(Boolean, nullable=False, default=False)
    current_operation = Column(String(255), nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    
    last_sync_type = Column(Enum(SyncType), nullable=True)
    last_sync_time = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    
    total_records_processed = Column(Integer, nullable=False, default=0)
    validation_rate = Column(Float, nullable=True)
    
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
