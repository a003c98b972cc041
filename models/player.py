from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Player(Base):
    """
    Player listed in the gomafia.pro rating.
    
    Players referenced only from game protocols are stored as stubs
    (gomafia_id and name) until the rating listing fills in the rest.
    """
    __tablename__ = "players"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    gomafia_id = Column(String(50), nullable=False, unique=True, index=True)
    
    name = Column(String(255), nullable=False)
    region = Column(String(255), nullable=True)
    club_name = Column(String(255), nullable=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True, index=True)
    
    elo_rating = Column(Float, nullable=True)
    tournaments_played = Column(Integer, nullable=True)
    gg_points = Column(Float, nullable=True)
    
    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    club = relationship("Club", back_populates="players")
