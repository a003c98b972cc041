"""
Raw entity shapes produced by the scrapers.

Plain field bags, one per entity family. Values are parsed (numbers,
dates, enums) but not validated; optional fields the page does not show
are None, and missing required fields are left None for validation to
reject.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from models.base import GameStatus, PlayerRole, Team, TournamentStatus, WinnerTeam


@dataclass
class PlayerRaw:
    gomafia_id: str
    name: Optional[str]
    region: Optional[str] = None
    club_name: Optional[str] = None
    tournaments_played: Optional[int] = None
    gg_points: Optional[float] = None
    elo_rating: Optional[float] = None


@dataclass
class ClubRaw:
    gomafia_id: str
    name: Optional[str]
    region: Optional[str] = None
    president: Optional[str] = None
    members: Optional[int] = None
    elo_rating: Optional[float] = None


@dataclass
class TournamentRaw:
    gomafia_id: str
    name: Optional[str]
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: TournamentStatus = TournamentStatus.SCHEDULED
    stars: Optional[int] = None
    average_elo: Optional[float] = None
    is_fsm_rated: bool = False
    participants: Optional[int] = None
    prize_pool: Optional[float] = None


@dataclass
class GameParticipationRaw:
    player_gomafia_id: str
    player_name: Optional[str]
    role: Optional[PlayerRole]
    team: Optional[Team]
    is_winner: bool = False
    performance_score: Optional[float] = None
    seat: Optional[int] = None


@dataclass
class GameRaw:
    gomafia_id: str
    tournament_gomafia_id: str
    date: Optional[datetime]
    game_number: Optional[int] = None
    duration_minutes: Optional[int] = None
    winner_team: Optional[WinnerTeam] = None
    status: GameStatus = GameStatus.COMPLETED
    participations: List[GameParticipationRaw] = field(default_factory=list)


@dataclass
class PlayerYearStatsRaw:
    player_gomafia_id: str
    year: int
    total_games: Optional[int] = None
    don_games: int = 0
    mafia_games: int = 0
    sheriff_games: int = 0
    civilian_games: int = 0
    elo_rating: Optional[float] = None
    extra_points: float = 0.0
    
    @property
    def gomafia_id(self) -> str:
        return f"{self.player_gomafia_id}:{self.year}"


@dataclass
class PlayerTournamentRaw:
    player_gomafia_id: str
    tournament_gomafia_id: str
    player_name: Optional[str] = None
    placement: Optional[int] = None
    gg_points: Optional[float] = None
    elo_change: Optional[float] = None
    prize_money: Optional[float] = None
    
    @property
    def gomafia_id(self) -> str:
        return f"{self.player_gomafia_id}:{self.tournament_gomafia_id}"


@dataclass
class ParseFailure:
    """A row a scraper could not turn into a raw record."""
    entity: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
