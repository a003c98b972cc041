"""
Import phases in execution order.
"""

from typing import List

from ingestion.phases.base import ImportContext, ImportPhase, PhaseReporter, PhaseResult
from ingestion.phases.games import GamesPhase
from ingestion.phases.listing import ClubsPhase, PlayersPhase, TournamentsPhase
from ingestion.phases.player_tournament_history import PlayerTournamentHistoryPhase
from ingestion.phases.player_year_stats import PlayerYearStatsPhase
from ingestion.phases.statistics import StatisticsPhase, aggregate_role_stats

PHASE_CLASSES = [
    PlayersPhase,
    ClubsPhase,
    TournamentsPhase,
    GamesPhase,
    PlayerTournamentHistoryPhase,
    PlayerYearStatsPhase,
    StatisticsPhase,
]


def build_phases(context: ImportContext) -> List[ImportPhase]:
    """Instantiate every phase for one run, in order."""
    return [phase_class(context) for phase_class in PHASE_CLASSES]


__all__ = [
    "ImportContext",
    "ImportPhase",
    "PhaseReporter",
    "PhaseResult",
    "PlayersPhase",
    "ClubsPhase",
    "TournamentsPhase",
    "GamesPhase",
    "PlayerTournamentHistoryPhase",
    "PlayerYearStatsPhase",
    "StatisticsPhase",
    "PHASE_CLASSES",
    "build_phases",
    "aggregate_role_stats",
]
