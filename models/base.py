from sqlalchemy import JSON
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class PhaseName(str, enum.Enum):
    """Import phases in execution order"""
    PLAYERS = "PLAYERS"
    CLUBS = "CLUBS"
    TOURNAMENTS = "TOURNAMENTS"
    GAMES = "GAMES"
    PLAYER_TOURNAMENT_HISTORY = "PLAYER_TOURNAMENT_HISTORY"
    PLAYER_YEAR_STATS = "PLAYER_YEAR_STATS"
    STATISTICS = "STATISTICS"


PHASE_ORDER = list(PhaseName)


class SyncType(str, enum.Enum):
    """Import run mode"""
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"


class SyncStatusValue(str, enum.Enum):
    """Sync log status"""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_SYNC_STATUSES = {
    SyncStatusValue.COMPLETED,
    SyncStatusValue.FAILED,
    SyncStatusValue.CANCELLED,
}


class TournamentStatus(str, enum.Enum):
    """Tournament lifecycle status"""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class GameStatus(str, enum.Enum):
    """Game status"""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Team(str, enum.Enum):
    """Side a participant plays for"""
    BLACK = "BLACK"
    RED = "RED"


class WinnerTeam(str, enum.Enum):
    """Game outcome"""
    BLACK = "BLACK"
    RED = "RED"
    DRAW = "DRAW"


class PlayerRole(str, enum.Enum):
    """Role dealt to a participant"""
    DON = "DON"
    MAFIA = "MAFIA"
    SHERIFF = "SHERIFF"
    CITIZEN = "CITIZEN"


ROLE_TEAMS = {
    PlayerRole.DON: Team.BLACK,
    PlayerRole.MAFIA: Team.BLACK,
    PlayerRole.SHERIFF: Team.RED,
    PlayerRole.CITIZEN: Team.RED,
}


class SkippedEntityStatus(str, enum.Enum):
    """Retry status of a skipped work item"""
    PENDING = "PENDING"
    RETRIED = "RETRIED"
    RESOLVED = "RESOLVED"
