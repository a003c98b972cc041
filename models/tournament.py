from sqlalchemy import Column, Integer, String, DateTime, Date, Float, Boolean, Enum, Index
from datetime import datetime
from models.base import Base, TournamentStatus


class Tournament(Base):
    """Tournament from the gomafia.pro tournament listing."""
    __tablename__ = "tournaments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    gomafia_id = Column(String(50), nullable=False, unique=True, index=True)
    
    name = Column(String(500), nullable=False)
    stars = Column(Integer, nullable=True)
    average_elo = Column(Float, nullable=True)
    is_fsm_rated = Column(Boolean, nullable=False, default=False)
    
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(Enum(TournamentStatus), nullable=False, default=TournamentStatus.SCHEDULED)
    participants = Column(Integer, nullable=True)
    prize_pool = Column(Float, nullable=True)
    
    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        Index("idx_tournament_status_start", "status", "start_date"),
    )
