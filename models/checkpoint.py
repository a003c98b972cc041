from sqlalchemy import Column, Integer, String, Enum, DateTime, Text
from datetime import datetime
from models.base import Base, JSONType, PhaseName

CURRENT_CHECKPOINT_ID = "current"


class ImportCheckpoint(Base):
    """
    Durable resume position of the running phase.
    
    Purpose:
    - Resume an interrupted run without reprocessing finished work items
    - Expose batch progress for operational debugging
    
    Design:
    - Single row ("current"); only meaningful for the phase it names
    - processed_ids holds every work item finished within that phase
    - Cleared once the phase completes
    """
    __tablename__ = "import_checkpoints"
    
    id = Column(String(20), primary_key=True, default=CURRENT_CHECKPOINT_ID)
    
    phase = Column(Enum(PhaseName), nullable=False)
    last_batch_index = Column(Integer, nullable=False, default=0)
    total_batches = Column(Integer, nullable=False, default=0)
    processed_ids = Column(JSONType, nullable=False, default=list)
    message = Column(Text, nullable=True)
    
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
