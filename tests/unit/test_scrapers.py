"""
Unit tests for gomafia.pro scrapers
"""

from datetime import date, datetime

import pytest

from core.exceptions import ParseError, ResourceNotFoundError
from ingestion.browser import Page
from ingestion.scrapers import (
    ClubsScraper,
    PlayersScraper,
    PlayerYearStatsScraper,
    TournamentGamesScraper,
    TournamentResultsScraper,
    TournamentsScraper,
)
from ingestion.scrapers.year_stats import EmptyYearStreak
from models.base import PlayerRole, Team, TournamentStatus, WinnerTeam
from tests.fakes import (
    TEN_PLAYERS,
    clubs_page,
    games_page,
    players_page,
    results_page,
    tournaments_page,
    year_stats_page,
)


class TestPlayersScraper:
    
    @pytest.mark.asyncio
    async def test_scrapes_rows_across_pages(self, site, browser, rate_limiter):
        site.add("/rating", players_page([{"id": "1", "name": "Алиса", "club": "Полис"}], next_page=True), pageUsers=1)
        site.add("/rating", players_page([{"id": "2", "name": "Борис"}]), pageUsers=2)
        scraper = PlayersScraper(browser, rate_limiter, year=2025)
        
        players = await scraper.scrape()
        
        assert [p.gomafia_id for p in players] == ["1", "2"]
        assert players[0].name == "Алиса"
        assert players[0].club_name == "Полис"
        assert players[0].elo_rating == 1520.0
        assert players[0].gg_points == 12.5
        assert players[1].club_name is None
        assert site.requests[0].params["yearUsers"] == "2025"
    
    def test_row_without_link_is_reported(self, rate_limiter, browser):
        scraper = PlayersScraper(browser, rate_limiter, year=2025)
        page = Page.from_html("https://gomafia.test/rating", players_page([{"name": "Аноним"}]))
        
        assert scraper.extract(page) == []
        failures = scraper.drain_failures()
        assert len(failures) == 1
        assert failures[0].entity == "players"
        assert scraper.drain_failures() == []


class TestClubsScraper:
    
    @pytest.mark.asyncio
    async def test_scrapes_clubs(self, site, browser, rate_limiter):
        site.add("/rating", clubs_page([{"id": "7", "name": "Полис", "members": 31}]), tab="clubs", pageClubs=1)
        scraper = ClubsScraper(browser, rate_limiter, year=2025)
        
        clubs = await scraper.scrape()
        
        assert len(clubs) == 1
        assert clubs[0].gomafia_id == "7"
        assert clubs[0].members == 31
        assert clubs[0].president == "Иван Петров"


class TestTournamentsScraper:
    
    def test_extracts_listing_row(self, browser, rate_limiter):
        scraper = TournamentsScraper(browser, rate_limiter)
        page = Page.from_html("https://gomafia.test/tournaments", tournaments_page([
            {"id": "1504", "name": "Кубок Севера", "stars": 4, "fsm": True, "status": "В процессе"},
        ]))
        
        [tournament] = scraper.extract(page)
        
        assert tournament.gomafia_id == "1504"
        assert tournament.name == "Кубок Севера"
        assert tournament.stars == 4
        assert tournament.is_fsm_rated is True
        assert tournament.status == TournamentStatus.IN_PROGRESS
        assert tournament.start_date == date(2024, 3, 1)
        assert tournament.end_date == date(2024, 3, 3)
        assert tournament.prize_pool == 100000.0
        assert tournament.average_elo == 1450.0
    
    @pytest.mark.asyncio
    async def test_respects_max_pages(self, site, browser, rate_limiter):
        for n in range(1, 4):
            site.add("/tournaments", tournaments_page([{"id": str(n), "name": f"T{n}"}], next_page=True), page=n)
        scraper = TournamentsScraper(browser, rate_limiter, max_pages=2)
        
        tournaments = await scraper.scrape()
        
        assert [t.gomafia_id for t in tournaments] == ["1", "2"]


class TestTournamentGamesScraper:
    
    @pytest.mark.asyncio
    async def test_games_and_participations(self, site, browser, rate_limiter):
        site.add("/tournament/1504", games_page([
            {"id": "9001", "number": 1, "result": "Победа мафии", "players": TEN_PLAYERS},
        ]), tab="games")
        scraper = TournamentGamesScraper(browser, rate_limiter)
        
        [game] = await scraper.scrape("1504")
        
        assert game.gomafia_id == "9001"
        assert game.tournament_gomafia_id == "1504"
        assert game.winner_team == WinnerTeam.BLACK
        assert game.date == datetime(2024, 3, 1)
        assert len(game.participations) == 10
        don = game.participations[0]
        assert don.role == PlayerRole.DON
        assert don.team == Team.BLACK
        assert don.is_winner is True
        assert don.performance_score == 1.5
        assert don.seat == 1
        assert all(not p.is_winner for p in game.participations if p.team == Team.RED)
    
    @pytest.mark.asyncio
    async def test_draw_has_no_winners_and_fallback_id(self, site, browser, rate_limiter):
        site.add("/tournament/77", games_page([
            {"number": 3, "result": "Ничья", "players": TEN_PLAYERS},
        ]), tab="games")
        scraper = TournamentGamesScraper(browser, rate_limiter)
        
        [game] = await scraper.scrape("77")
        
        assert game.gomafia_id == "77_game_3"
        assert game.winner_team == WinnerTeam.DRAW
        assert not any(p.is_winner for p in game.participations)
    
    @pytest.mark.asyncio
    async def test_missing_tournament_page(self, browser, rate_limiter):
        scraper = TournamentGamesScraper(browser, rate_limiter)
        with pytest.raises(ResourceNotFoundError):
            await scraper.scrape("404")
    
    @pytest.mark.asyncio
    async def test_requires_identifier(self, browser, rate_limiter):
        with pytest.raises(ValueError):
            await TournamentGamesScraper(browser, rate_limiter).scrape()


class TestTournamentResultsScraper:
    
    @pytest.mark.asyncio
    async def test_results(self, site, browser, rate_limiter):
        site.add("/tournament/1504", results_page([
            ("1", "Алиса", 1, "5,25"),
            ("2", "Борис", None, "1"),
        ]), tab="tournamentResults")
        scraper = TournamentResultsScraper(browser, rate_limiter)
        
        results = await scraper.scrape("1504")
        
        assert [r.player_gomafia_id for r in results] == ["1", "2"]
        assert results[0].placement == 1
        assert results[0].gg_points == 5.25
        assert results[0].elo_change == 12.0
        assert results[0].prize_money is None
        assert results[1].placement is None
        assert results[0].gomafia_id == "1:1504"


class TestEmptyYearStreak:
    """Stop after max consecutive empty years; data resets the streak"""
    
    def test_stops_after_two_empty_years(self):
        streak = EmptyYearStreak(max_consecutive_empty=2)
        assert streak.observe(False) is False
        assert streak.observe(False) is True
    
    def test_data_resets_streak(self):
        streak = EmptyYearStreak(max_consecutive_empty=2)
        assert streak.observe(False) is False
        assert streak.observe(True) is False
        assert streak.observe(False) is False
        assert streak.streak == 1
    
    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            EmptyYearStreak(0)


class TestPlayerYearStatsScraper:
    
    @pytest.mark.asyncio
    async def test_walks_back_until_empty_streak(self, site, browser, rate_limiter):
        site.add("/stats/5", year_stats_page(total=40, don=4, mafia=8, sheriff=4, civilian=24), year=2025)
        site.add("/stats/5", year_stats_page(), year=2024)
        site.add("/stats/5", year_stats_page(), year=2023)
        site.add("/stats/5", year_stats_page(total=10, civilian=10), year=2022)
        scraper = PlayerYearStatsScraper(browser, rate_limiter, years=[2025, 2024, 2023, 2022])
        
        stats = await scraper.scrape("5")
        
        assert [s.year for s in stats] == [2025]
        assert stats[0].player_gomafia_id == "5"
        assert stats[0].total_games == 40
        assert stats[0].elo_rating == 1510.5
        assert stats[0].extra_points == 2.5
        assert len(site.requests) == 3
    
    @pytest.mark.asyncio
    async def test_failed_year_does_not_count_as_empty(self, site, browser, rate_limiter):
        site.add("/stats/5", year_stats_page(), year=2025)
        site.add("/stats/5", year_stats_page(total=12, mafia=3, civilian=9), year=2023)
        scraper = PlayerYearStatsScraper(browser, rate_limiter, years=[2025, 2024, 2023])
        
        stats = await scraper.scrape("5")
        
        assert [s.year for s in stats] == [2023]
    
    @pytest.mark.asyncio
    async def test_raises_when_no_year_loads(self, browser, rate_limiter):
        scraper = PlayerYearStatsScraper(browser, rate_limiter, years=[2025, 2024])
        with pytest.raises(ResourceNotFoundError):
            await scraper.scrape("999")
    
    def test_years_to_scan_default(self, browser, rate_limiter):
        scraper = PlayerYearStatsScraper(browser, rate_limiter, min_year=2022)
        years = scraper.years_to_scan()
        assert years[0] == datetime.utcnow().year
        assert years[-1] == 2022


class TestParse:
    
    def test_unexpected_structure_becomes_parse_error(self, browser, rate_limiter):
        class BrokenScraper(PlayersScraper):
            def extract(self, page):
                return [int(page.select_one(".missing").text)]
        
        page = Page.from_html("https://gomafia.test/rating", "<html></html>")
        with pytest.raises(ParseError) as exc_info:
            BrokenScraper(browser, rate_limiter).parse(page)
        
        assert exc_info.value.context["url"] == "https://gomafia.test/rating"
