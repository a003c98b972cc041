"""
Pydantic schemas that validate raw scraped records before upsert
"""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, Field, validator, root_validator
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import SchemaValidationError, ValidationError
from models.base import GameStatus, PlayerRole, Team, TournamentStatus, WinnerTeam

RecordT = TypeVar("RecordT", bound=BaseModel)


def _strip_name(v):
    if v is None:
        return v
    v = str(v).strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class PlayerRecord(BaseModel):
    """Validated player row from the rating listing."""
    
    gomafia_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    region: Optional[str] = Field(None, max_length=255)
    club_name: Optional[str] = Field(None, max_length=255)
    tournaments_played: Optional[int] = Field(None, ge=0)
    gg_points: Optional[float] = None
    elo_rating: Optional[float] = Field(None, ge=0, le=5000)
    
    @validator("name", pre=True)
    def clean_name(cls, v):
        return _strip_name(v)


class ClubRecord(BaseModel):
    """Validated club row from the club rating."""
    
    gomafia_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    region: Optional[str] = Field(None, max_length=255)
    president: Optional[str] = Field(None, max_length=255)
    members: Optional[int] = Field(None, ge=0)
    elo_rating: Optional[float] = Field(None, ge=0, le=5000)
    
    @validator("name", pre=True)
    def clean_name(cls, v):
        return _strip_name(v)


class TournamentRecord(BaseModel):
    """
    Validated tournament row.
    
    Ensures:
    - start_date is present (tournaments without dates are rejected)
    - end_date, when present, is not before start_date
    - stars stay within 0-5
    """
    
    gomafia_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=500)
    start_date: date
    end_date: Optional[date] = None
    status: TournamentStatus = TournamentStatus.SCHEDULED
    stars: Optional[int] = Field(None, ge=0, le=5)
    average_elo: Optional[float] = Field(None, ge=0)
    is_fsm_rated: bool = False
    participants: Optional[int] = Field(None, ge=0)
    prize_pool: Optional[float] = Field(None, ge=0)
    
    @validator("name", pre=True)
    def clean_name(cls, v):
        return _strip_name(v)
    
    @validator("end_date")
    def end_not_before_start(cls, v, values):
        start = values.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date is before start_date")
        return v


class GameParticipationRecord(BaseModel):
    """Validated participation nested in a game."""
    
    player_gomafia_id: str = Field(..., min_length=1, max_length=50)
    player_name: Optional[str] = Field(None, max_length=255)
    role: PlayerRole
    team: Team
    is_winner: bool = False
    performance_score: Optional[float] = None
    seat: Optional[int] = Field(None, ge=1, le=10)


class GameRecord(BaseModel):
    """
    Validated game with its participations.
    
    Enforces the winner invariant: with a DRAW nobody wins, otherwise
    exactly the participants on winner_team are winners.
    """
    
    gomafia_id: str = Field(..., min_length=1, max_length=100)
    tournament_gomafia_id: str = Field(..., min_length=1, max_length=50)
    date: datetime
    game_number: Optional[int] = Field(None, ge=1)
    duration_minutes: Optional[int] = Field(None, ge=0)
    winner_team: Optional[WinnerTeam] = None
    status: GameStatus = GameStatus.COMPLETED
    participations: List[GameParticipationRecord] = Field(default_factory=list)
    
    @validator("participations")
    def unique_players(cls, v):
        ids = [p.player_gomafia_id for p in v]
        if len(ids) != len(set(ids)):
            raise ValueError("player appears twice in one game")
        return v
    
    @root_validator(skip_on_failure=True)
    def winners_match_outcome(cls, values):
        winner = values.get("winner_team")
        for p in values.get("participations") or []:
            if winner is None or winner == WinnerTeam.DRAW:
                expected = False
            else:
                expected = p.team.value == winner.value
            if p.is_winner != expected:
                raise ValueError(
                    f"is_winner={p.is_winner} for player {p.player_gomafia_id} "
                    f"contradicts winner_team={winner.value if winner else None}"
                )
        return values


class PlayerYearStatsRecord(BaseModel):
    """Validated per-year statistics."""
    
    player_gomafia_id: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=2000, le=2100)
    total_games: int = Field(..., ge=0)
    don_games: int = Field(0, ge=0)
    mafia_games: int = Field(0, ge=0)
    sheriff_games: int = Field(0, ge=0)
    civilian_games: int = Field(0, ge=0)
    elo_rating: Optional[float] = Field(None, ge=0, le=5000)
    extra_points: float = 0.0
    
    @root_validator(skip_on_failure=True)
    def roles_within_total(cls, values):
        by_role = sum(values.get(k) or 0 for k in ("don_games", "mafia_games", "sheriff_games", "civilian_games"))
        if by_role > values["total_games"]:
            raise ValueError(f"role games ({by_role}) exceed total_games ({values['total_games']})")
        return values


class PlayerTournamentRecord(BaseModel):
    """Validated placement of a player in a tournament."""
    
    player_gomafia_id: str = Field(..., min_length=1, max_length=50)
    tournament_gomafia_id: str = Field(..., min_length=1, max_length=50)
    player_name: Optional[str] = Field(None, max_length=255)
    placement: Optional[int] = Field(None, ge=1)
    gg_points: Optional[float] = None
    elo_change: Optional[float] = None
    prize_money: Optional[float] = Field(None, ge=0)


def parse_record(schema: Type[RecordT], raw) -> RecordT:
    """
    Build a validated record from a raw dataclass or mapping.
    
    Raises:
        SchemaValidationError: raw is neither a dataclass nor a mapping
        ValidationError: field-level validation failed
    """
    if is_dataclass(raw):
        data = asdict(raw)
    elif isinstance(raw, Mapping):
        data = dict(raw)
    else:
        raise SchemaValidationError(
            f"Cannot validate {type(raw).__name__} as {schema.__name__}",
            context={"schema": schema.__name__}
        )
    
    try:
        return schema(**data)
    except PydanticValidationError as e:
        field_errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError(
            "; ".join(field_errors),
            context={
                "schema": schema.__name__,
                "gomafia_id": data.get("gomafia_id"),
                "field_errors": field_errors,
            },
            original_exception=e
        )


def validate_record(
    schema: Type[RecordT], raw
) -> Tuple[Optional[RecordT], Optional[str]]:
    """
    Validate a raw record against a schema.
    
    Returns:
        (record, None) when valid, (None, message) otherwise
    """
    try:
        return parse_record(schema, raw), None
    except ValidationError as e:
        return None, e.message
