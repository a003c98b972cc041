from sqlalchemy import Column, Integer, DateTime, Float, Enum, ForeignKey, UniqueConstraint
from datetime import datetime
from models.base import Base, PlayerRole


class PlayerYearStats(Base):
    """Per-year role breakdown from a player's statistics page."""
    __tablename__ = "player_year_stats"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    
    total_games = Column(Integer, nullable=False, default=0)
    don_games = Column(Integer, nullable=False, default=0)
    mafia_games = Column(Integer, nullable=False, default=0)
    sheriff_games = Column(Integer, nullable=False, default=0)
    civilian_games = Column(Integer, nullable=False, default=0)
    elo_rating = Column(Float, nullable=True)
    extra_points = Column(Float, nullable=False, default=0.0)
    
    last_sync_at = Column(DateTime, nullable=True)
    
    __table_args__ = (
        UniqueConstraint("player_id", "year", name="uq_player_year"),
    )


class PlayerTournament(Base):
    """A player's final placement in a tournament."""
    __tablename__ = "player_tournaments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    
    placement = Column(Integer, nullable=True)
    gg_points = Column(Float, nullable=True)
    elo_change = Column(Float, nullable=True)
    prize_money = Column(Float, nullable=True)
    
    last_sync_at = Column(DateTime, nullable=True)
    
    __table_args__ = (
        UniqueConstraint("player_id", "tournament_id", name="uq_player_tournament"),
    )


class PlayerRoleStats(Base):
    """
    Aggregated per-role performance derived from game participations.
    
    Rebuilt by the STATISTICS phase; never scraped.
    """
    __tablename__ = "player_role_stats"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(PlayerRole), nullable=False)
    
    games_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    win_rate = Column(Float, nullable=False, default=0.0)
    average_performance = Column(Float, nullable=True)
    last_played = Column(DateTime, nullable=True)
    
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint("player_id", "role", name="uq_player_role"),
    )
