"""
Unit tests for gomafia.pro field parsers
"""

from datetime import date, datetime

import pytest
from bs4 import BeautifulSoup

from ingestion.scrapers.parsing import (
    compute_is_winner,
    count_stars,
    extract_id_from_href,
    optional_text,
    parse_currency,
    parse_date,
    parse_datetime,
    parse_float,
    parse_int,
    parse_role,
    parse_tournament_status,
    parse_winner_team,
    team_for_role,
)
from models.base import PlayerRole, Team, TournamentStatus, WinnerTeam


def tag(markup: str):
    return BeautifulSoup(markup, "html.parser").find()


class TestText:
    
    def test_optional_text_maps_dashes_to_none(self):
        assert optional_text(tag("<td> – </td>")) is None
        assert optional_text(tag("<td>  Москва \n</td>")) == "Москва"
    
    @pytest.mark.parametrize("href,expected", [
        ("/player/123", "123"),
        ("https://gomafia.pro/stats/575?tab=history", "575"),
        ("/tournament/1504?tab=games", "1504"),
        ("/about", None),
        (None, None),
    ])
    def test_extract_id_from_href(self, href, expected):
        assert extract_id_from_href(href) == expected


class TestNumbers:
    
    def test_thousands_and_decimal_comma(self):
        assert parse_float("1 520,75") == 1520.75
        assert parse_int("1 520") == 1520
    
    def test_currency(self):
        assert parse_currency("100 000 ₽") == 100000.0
        assert parse_currency("—") is None
    
    def test_negative_with_unicode_minus(self):
        assert parse_float("−12,5") == -12.5


class TestStars:
    
    def test_glyphs(self):
        assert count_stars(tag('<span class="stars">★★★</span>')) == 3
    
    def test_filled_star_elements(self):
        markup = '<div><i class="star filled"></i><i class="star filled"></i><i class="star"></i></div>'
        assert count_stars(tag(markup)) == 2
    
    def test_data_attribute_clamped(self):
        assert count_stars(tag('<div data-stars="9"></div>')) == 5
    
    def test_empty_element_is_zero_and_missing_is_none(self):
        assert count_stars(tag("<span></span>")) == 0
        assert count_stars(None) is None


class TestDates:
    
    def test_date(self):
        assert parse_date("Дата: 25.10.2025") == date(2025, 10, 25)
    
    def test_datetime_with_time(self):
        assert parse_datetime("25.10.2025 18:30") == datetime(2025, 10, 25, 18, 30)
    
    def test_invalid_date(self):
        assert parse_date("31.02.2025") is None
        assert parse_date("") is None


class TestLabels:
    
    @pytest.mark.parametrize("label,expected", [
        ("Завершён", TournamentStatus.COMPLETED),
        ("В процессе", TournamentStatus.IN_PROGRESS),
        ("Отменён", TournamentStatus.CANCELLED),
        ("Регистрация", TournamentStatus.SCHEDULED),
    ])
    def test_tournament_status(self, label, expected):
        assert parse_tournament_status(label) == expected
    
    @pytest.mark.parametrize("label,expected", [
        ("Дон", PlayerRole.DON),
        ("Мафия", PlayerRole.MAFIA),
        ("Шериф", PlayerRole.SHERIFF),
        ("Мирный житель", PlayerRole.CITIZEN),
        ("", None),
    ])
    def test_role(self, label, expected):
        assert parse_role(label) == expected
    
    def test_team_for_role(self):
        assert team_for_role(PlayerRole.DON) == Team.BLACK
        assert team_for_role(PlayerRole.SHERIFF) == Team.RED
        assert team_for_role(None) is None
    
    @pytest.mark.parametrize("label,expected", [
        ("Победа мафии", WinnerTeam.BLACK),
        ("Победа мирных", WinnerTeam.RED),
        ("Ничья", WinnerTeam.DRAW),
        ("", None),
    ])
    def test_winner_team(self, label, expected):
        assert parse_winner_team(label) == expected


class TestComputeIsWinner:
    """Nobody wins a draw; otherwise the winner's team wins"""
    
    def test_draw_has_no_winners(self):
        assert compute_is_winner(Team.RED, WinnerTeam.DRAW) is False
        assert compute_is_winner(Team.BLACK, WinnerTeam.DRAW) is False
    
    def test_team_matches_winner(self):
        assert compute_is_winner(Team.BLACK, WinnerTeam.BLACK) is True
        assert compute_is_winner(Team.RED, WinnerTeam.BLACK) is False
    
    def test_unknown_outcome(self):
        assert compute_is_winner(Team.RED, None) is False
