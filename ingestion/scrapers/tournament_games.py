"""
Tournament games scraper (gomafia.pro/tournament/{id}?tab=games).
"""

from typing import List, Optional

from bs4 import Tag

from ingestion.browser import Page
from ingestion.scrapers.base import BaseScraper
from ingestion.scrapers.parsing import (
    clean_text,
    compute_is_winner,
    extract_id_from_href,
    optional_text,
    parse_datetime,
    parse_float,
    parse_game_status,
    parse_int,
    parse_role,
    parse_winner_team,
    team_for_role,
)
from models.base import Team
from schemas.raw import GameParticipationRaw, GameRaw

PLAYER_LINK = 'a[href*="/stats/"], a[href*="/player/"]'


class TournamentGamesScraper(BaseScraper[GameRaw]):
    """
    Game cards of one tournament with their player tables.
    
    is_winner is derived here from (team, winner_team) so that a drawn
    game never has winners, whatever the page highlights.
    """
    
    entity = "games"
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tournament_gomafia_id: Optional[str] = None
    
    def games_url(self, tournament_gomafia_id: str) -> str:
        return self.url(f"/tournament/{tournament_gomafia_id}?tab=games")
    
    def extract(self, page: Page) -> List[GameRaw]:
        tournament_id = self.tournament_gomafia_id or extract_id_from_href(page.url)
        fallback_date = parse_datetime(page.select_one(".tournament-dates"))
        games = []
        
        for index, card in enumerate(page.select(".game"), start=1):
            game_number = parse_int(card.select_one(".game-number")) or index
            link = card.select_one('a[href*="/game/"]')
            gomafia_id = extract_id_from_href(link.get("href")) if link else None
            if gomafia_id is None:
                gomafia_id = card.get("data-game-id") or f"{tournament_id}_game_{game_number}"
            
            winner_team = parse_winner_team(card.select_one(".game-result"))
            
            games.append(GameRaw(
                gomafia_id=str(gomafia_id),
                tournament_gomafia_id=str(tournament_id),
                date=parse_datetime(card.select_one(".game-date")) or fallback_date,
                game_number=game_number,
                duration_minutes=parse_int(card.select_one(".game-duration")),
                winner_team=winner_team,
                status=parse_game_status(card.select_one(".game-status")),
                participations=self._extract_participations(card, winner_team, page.url, gomafia_id),
            ))
        return games
    
    def _extract_participations(self, card: Tag, winner_team, url: str, game_id) -> List[GameParticipationRaw]:
        participations = []
        for row in card.select("tbody tr"):
            link = row.select_one(PLAYER_LINK)
            player_id = extract_id_from_href(link.get("href")) if link else None
            if player_id is None:
                if clean_text(row):
                    self.report_failure(
                        "Participation row without player link",
                        url=url, game=game_id, row=clean_text(row)[:100]
                    )
                continue
            
            role = parse_role(row.select_one(".role"))
            team_text = clean_text(row.select_one(".team")).upper()
            team = Team(team_text) if team_text in Team.__members__ else team_for_role(role)
            
            participations.append(GameParticipationRaw(
                player_gomafia_id=player_id,
                player_name=optional_text(link),
                role=role,
                team=team,
                is_winner=compute_is_winner(team, winner_team),
                performance_score=parse_float(row.select_one(".points")),
                seat=parse_int(row.select_one(".seat")),
            ))
        return participations
    
    async def scrape(self, identifier: Optional[str] = None) -> List[GameRaw]:
        if not identifier:
            raise ValueError("TournamentGamesScraper.scrape requires a tournament id")
        self.tournament_gomafia_id = str(identifier)
        try:
            page = await self.pagination.load_page(self.games_url(identifier))
            return self.parse(page)
        finally:
            self.tournament_gomafia_id = None
