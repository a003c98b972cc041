"""
Scrapers for gomafia.pro, one per entity family.
"""

from ingestion.scrapers.base import BaseScraper, ListingScraper
from ingestion.scrapers.players import PlayersScraper
from ingestion.scrapers.clubs import ClubsScraper
from ingestion.scrapers.tournaments import TournamentsScraper
from ingestion.scrapers.tournament_games import TournamentGamesScraper
from ingestion.scrapers.tournament_results import TournamentResultsScraper
from ingestion.scrapers.year_stats import EmptyYearStreak, PlayerYearStatsScraper

__all__ = [
    "BaseScraper",
    "ListingScraper",
    "PlayersScraper",
    "ClubsScraper",
    "TournamentsScraper",
    "TournamentGamesScraper",
    "TournamentResultsScraper",
    "PlayerYearStatsScraper",
    "EmptyYearStreak",
]
