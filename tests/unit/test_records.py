"""
Unit tests for record schemas
"""

import pytest
from datetime import date, datetime

from core.exceptions import SchemaValidationError, ValidationError
from models.base import PlayerRole, Team, WinnerTeam
from schemas.raw import PlayerRaw
from schemas.records import (
    GameRecord,
    PlayerRecord,
    PlayerYearStatsRecord,
    TournamentRecord,
    parse_record,
    validate_record,
)


def _participant(player_id, team, is_winner, role=None):
    return {
        "player_gomafia_id": player_id,
        "role": role or (PlayerRole.MAFIA if team == Team.BLACK else PlayerRole.CITIZEN),
        "team": team,
        "is_winner": is_winner,
    }


def _game(winner, participations):
    return {
        "gomafia_id": "1504_game_1",
        "tournament_gomafia_id": "1504",
        "date": datetime(2024, 3, 2, 12, 0),
        "winner_team": winner,
        "participations": participations,
    }


class TestPlayerRecord:
    
    def test_name_is_stripped(self):
        record = PlayerRecord(gomafia_id="575", name="  Тень  ", elo_rating=1820.5)
        assert record.name == "Тень"
    
    def test_blank_name_rejected(self):
        record, error = validate_record(PlayerRecord, {"gomafia_id": "575", "name": "   "})
        
        assert record is None
        assert "name" in error
    
    def test_elo_out_of_range_rejected(self):
        record, error = validate_record(PlayerRecord, {"gomafia_id": "575", "name": "Тень", "elo_rating": 9000})
        
        assert record is None
        assert "elo_rating" in error


class TestTournamentRecord:
    
    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_record(TournamentRecord, {
                "gomafia_id": "1504",
                "name": "Кубок",
                "start_date": date(2024, 3, 2),
                "end_date": date(2024, 3, 1),
            })
        
        assert "end_date is before start_date" in exc_info.value.message
        assert exc_info.value.context["gomafia_id"] == "1504"
    
    def test_stars_above_five_rejected(self):
        record, _ = validate_record(TournamentRecord, {
            "gomafia_id": "1504", "name": "Кубок", "start_date": date(2024, 3, 2), "stars": 6,
        })
        assert record is None
    
    def test_missing_start_date_rejected(self):
        record, error = validate_record(TournamentRecord, {"gomafia_id": "1504", "name": "Кубок"})
        
        assert record is None
        assert "start_date" in error


class TestGameRecord:
    
    def test_red_win(self):
        game = GameRecord(**_game(WinnerTeam.RED, [
            _participant("1", Team.RED, True),
            _participant("2", Team.BLACK, False),
        ]))
        
        assert [p.is_winner for p in game.participations] == [True, False]
    
    def test_draw_has_no_winners(self):
        game = GameRecord(**_game(WinnerTeam.DRAW, [
            _participant("1", Team.RED, False),
            _participant("2", Team.BLACK, False),
        ]))
        
        assert not any(p.is_winner for p in game.participations)
    
    def test_winner_on_draw_rejected(self):
        record, error = validate_record(GameRecord, _game(WinnerTeam.DRAW, [
            _participant("1", Team.RED, True),
        ]))
        
        assert record is None
        assert "contradicts winner_team=DRAW" in error
    
    def test_loser_marked_winner_rejected(self):
        record, _ = validate_record(GameRecord, _game(WinnerTeam.BLACK, [
            _participant("1", Team.RED, True),
        ]))
        assert record is None
    
    def test_duplicate_player_rejected(self):
        record, error = validate_record(GameRecord, _game(WinnerTeam.RED, [
            _participant("1", Team.RED, True),
            _participant("1", Team.RED, True),
        ]))
        
        assert record is None
        assert "player appears twice" in error


class TestPlayerYearStatsRecord:
    
    def test_role_games_within_total(self):
        record = PlayerYearStatsRecord(
            player_gomafia_id="575", year=2024, total_games=10,
            don_games=1, mafia_games=2, sheriff_games=1, civilian_games=6,
        )
        assert record.total_games == 10
    
    def test_role_games_above_total_rejected(self):
        record, error = validate_record(PlayerYearStatsRecord, {
            "player_gomafia_id": "575", "year": 2024, "total_games": 3,
            "don_games": 2, "mafia_games": 2,
        })
        
        assert record is None
        assert "exceed total_games" in error


class TestParseRecord:
    
    def test_accepts_dataclass(self):
        raw = PlayerRaw(gomafia_id="575", name="Тень")
        
        record = parse_record(PlayerRecord, raw)
        
        assert record.gomafia_id == "575"
    
    def test_rejects_unreadable_input(self):
        with pytest.raises(SchemaValidationError):
            parse_record(PlayerRecord, ["575", "Тень"])
    
    def test_field_errors_in_context(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_record(PlayerRecord, {"gomafia_id": "", "name": "Тень"})
        
        assert exc_info.value.context["schema"] == "PlayerRecord"
        assert exc_info.value.context["field_errors"][0].startswith("gomafia_id:")
