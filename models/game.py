from sqlalchemy import (
    Column, Integer, String, DateTime, Float, Boolean, Enum, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, GameStatus, PlayerRole, Team, WinnerTeam


class Game(Base):
    """Single game of a tournament."""
    __tablename__ = "games"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    gomafia_id = Column(String(100), nullable=False, unique=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    
    game_number = Column(Integer, nullable=True)
    date = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    winner_team = Column(Enum(WinnerTeam), nullable=True)
    status = Column(Enum(GameStatus), nullable=False, default=GameStatus.COMPLETED)
    
    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    participations = relationship(
        "GameParticipation", back_populates="game", cascade="all, delete-orphan"
    )


class GameParticipation(Base):
    """
    A player's seat in a game.
    
    is_winner is True only when team equals the game's winner_team,
    so a drawn game has no winners.
    """
    __tablename__ = "game_participations"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    
    seat = Column(Integer, nullable=True)
    role = Column(Enum(PlayerRole), nullable=False)
    team = Column(Enum(Team), nullable=False)
    is_winner = Column(Boolean, nullable=False, default=False)
    performance_score = Column(Float, nullable=True)
    
    game = relationship("Game", back_populates="participations")
    
    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_participation_game_player"),
    )
