from sqlalchemy import Column, Integer, String, DateTime, Float
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Club(Base):
    """
    Club listed in the gomafia.pro club rating.
    
    Natural key: gomafia_id
    """
    __tablename__ = "clubs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    gomafia_id = Column(String(50), nullable=False, unique=True, index=True)
    
    name = Column(String(255), nullable=False)
    region = Column(String(255), nullable=True)
    president = Column(String(255), nullable=True)
    members = Column(Integer, nullable=True)
    elo_rating = Column(Float, nullable=True)
    
    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    players = relationship("Player", back_populates="club")
