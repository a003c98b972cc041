"""
Field parsers for gomafia.pro markup.

Numbers use spaces as thousands separators and commas as decimal marks,
dates are DD.MM.YYYY, and labels are Russian.
"""

import re
from datetime import date, datetime
from typing import Optional

from bs4 import Tag

from models.base import GameStatus, PlayerRole, ROLE_TEAMS, Team, TournamentStatus, WinnerTeam

EMPTY_MARKERS = {"", "-", "–", "—", "n/a"}
STAR_GLYPHS = ("★", "⭐")

_ID_RE = re.compile(r"/(?:player|club|tournament|stats|game)/(\d+)")
_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")
_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})(?:\s+(\d{1,2}):(\d{2}))?")


def clean_text(value) -> str:
    """Collapse whitespace; accepts a Tag, a string or None."""
    if value is None:
        return ""
    if isinstance(value, Tag):
        value = value.get_text(" ", strip=True)
    return " ".join(str(value).split())


def optional_text(value) -> Optional[str]:
    """clean_text, with dash placeholders mapped to None."""
    text = clean_text(value)
    if text.lower() in EMPTY_MARKERS:
        return None
    return text


def extract_id_from_href(href: Optional[str]) -> Optional[str]:
    """'/player/123?tab=x' -> '123'."""
    if not href:
        return None
    match = _ID_RE.search(href)
    return match.group(1) if match else None


def _normalize_number(text: str) -> Optional[str]:
    text = text.replace("\xa0", "").replace(" ", "").replace(" ", "")
    text = text.replace("−", "-")
    match = _NUMBER_RE.search(text)
    if match is None:
        return None
    return match.group(0).replace(",", ".")


def parse_float(value) -> Optional[float]:
    text = optional_text(value)
    if text is None:
        return None
    number = _normalize_number(text)
    return float(number) if number is not None else None


def parse_int(value) -> Optional[int]:
    number = parse_float(value)
    return int(number) if number is not None else None


def parse_currency(value) -> Optional[float]:
    """'100 000 ₽' / '15 000 руб.' / '$500' -> float."""
    return parse_float(value)


def count_stars(value) -> Optional[int]:
    """
    Count star glyphs in a rating element, clamped to 0-5.
    
    Falls back to a number in the text or a data-stars attribute when
    the rating is not drawn with glyphs. None when nothing is rendered.
    """
    if value is None:
        return None
    if isinstance(value, Tag):
        attr = value.get("data-stars")
        if attr is not None and str(attr).strip().isdigit():
            return max(0, min(5, int(attr)))
        glyph_elements = value.select(".star.filled, .star--filled")
        if glyph_elements:
            return max(0, min(5, len(glyph_elements)))
    text = clean_text(value)
    glyphs = sum(text.count(g) for g in STAR_GLYPHS)
    if glyphs:
        return max(0, min(5, glyphs))
    number = parse_int(text)
    if number is not None:
        return max(0, min(5, number))
    return 0 if isinstance(value, Tag) else None


def parse_date(value) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def parse_datetime(value) -> Optional[datetime]:
    """'25.10.2025 18:30' or '25.10.2025' -> datetime."""
    text = clean_text(value)
    match = _DATE_RE.search(text)
    if match is None:
        return None
    day, month, year, hour, minute = match.groups()
    try:
        return datetime(int(year), int(month), int(day), int(hour or 0), int(minute or 0))
    except ValueError:
        return None


def parse_tournament_status(value) -> TournamentStatus:
    text = clean_text(value).lower().replace("ё", "е")
    if "заверш" in text:
        return TournamentStatus.COMPLETED
    if "в процессе" in text or "идет" in text:
        return TournamentStatus.IN_PROGRESS
    if "отмен" in text:
        return TournamentStatus.CANCELLED
    return TournamentStatus.SCHEDULED


def parse_game_status(value) -> GameStatus:
    return GameStatus(parse_tournament_status(value).value) if clean_text(value) else GameStatus.COMPLETED


def parse_role(value) -> Optional[PlayerRole]:
    text = clean_text(value).lower()
    if not text:
        return None
    if "дон" in text or text == "don":
        return PlayerRole.DON
    if "шериф" in text or "sheriff" in text:
        return PlayerRole.SHERIFF
    if "мафи" in text or "mafia" in text:
        return PlayerRole.MAFIA
    if "мирн" in text or "город" in text or "citizen" in text or "civilian" in text:
        return PlayerRole.CITIZEN
    return None


def team_for_role(role: Optional[PlayerRole]) -> Optional[Team]:
    return ROLE_TEAMS.get(role) if role else None


def parse_winner_team(value) -> Optional[WinnerTeam]:
    text = clean_text(value).lower().replace("ё", "е")
    if not text:
        return None
    if "ничья" in text or "draw" in text:
        return WinnerTeam.DRAW
    if "мафи" in text or "черн" in text or "black" in text:
        return WinnerTeam.BLACK
    if "мирн" in text or "город" in text or "красн" in text or "red" in text:
        return WinnerTeam.RED
    return None


def compute_is_winner(team: Optional[Team], winner_team: Optional[WinnerTeam]) -> bool:
    """A participant wins iff their team is the winner; nobody wins a draw."""
    if team is None or winner_team is None or winner_team == WinnerTeam.DRAW:
        return False
    return team.value == winner_team.value
