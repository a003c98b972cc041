"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (PhaseName, SyncType, PlayerRole, ...)
    club, player, tournament: Entities from the gomafia.pro listings
    game: Games and per-player participations
    statistics: Year stats, tournament placements and derived role stats
    sync_log: One row per import run
    sync_status: Single-row run status ("current")
    checkpoint: Single-row resume position ("current")
    skipped_entity: Work items skipped after retries

Database Schema:
    Every scraped entity carries its gomafia_id as a unique natural key,
    which makes repeated imports idempotent upserts.

Usage:
    from models import Player, Game, SyncLog
    from models.base import PhaseName, SyncType
"""

from models.base import Base
from models.club import Club
from models.player import Player
from models.tournament import Tournament
from models.game import Game, GameParticipation
from models.statistics import PlayerYearStats, PlayerTournament, PlayerRoleStats
from models.sync_log import SyncLog
from models.sync_status import SyncStatus
from models.checkpoint import ImportCheckpoint
from models.skipped_entity import SkippedEntity

__all__ = [
    "Base",
    "Club",
    "Player",
    "Tournament",
    "Game",
    "GameParticipation",
    "PlayerYearStats",
    "PlayerTournament",
    "PlayerRoleStats",
    "SyncLog",
    "SyncStatus",
    "ImportCheckpoint",
    "SkippedEntity",
]
