from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Index
from datetime import datetime
from models.base import Base, JSONType, PhaseName, SkippedEntityStatus


class SkippedEntity(Base):
    """
    Work item that failed after retries and was skipped by its phase.
    
    Kept for later retry; a resumed or later run picks the item up again
    because it never entered the checkpoint's processed ids.
    """
    __tablename__ = "skipped_entities"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    
    phase = Column(Enum(PhaseName), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100), nullable=True)
    page_number = Column(Integer, nullable=True)
    
    error_code = Column(String(50), nullable=False)
    error_message = Column(Text, nullable=False)
    error_details = Column(JSONType, nullable=True)
    
    status = Column(Enum(SkippedEntityStatus), nullable=False, default=SkippedEntityStatus.PENDING)
    retry_count = Column(Integer, nullable=False, default=0)
    sync_log_id = Column(String(36), nullable=True)
    
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    __table_args__ = (
        Index("idx_skipped_phase_status", "phase", "status"),
    )
