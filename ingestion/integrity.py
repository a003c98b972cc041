"""
Post-import integrity checks.

Reports referential problems in the imported data. Findings are stored on
the sync log; they never fail a run.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.game import Game, GameParticipation
from models.player import Player
from models.statistics import PlayerTournament
from models.tournament import Tournament

logger = logging.getLogger(__name__)


@dataclass
class IntegrityCheckResult:
    check_name: str
    passed: bool
    total_checked: int
    issues: int = 0
    message: str = ""


@dataclass
class IntegrityReport:
    checks: List[IntegrityCheckResult] = field(default_factory=list)
    
    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)
    
    def to_dict(self) -> dict:
        return {
            "status": "PASS" if self.passed else "FAIL",
            "total_checks": len(self.checks),
            "failed_checks": sum(1 for c in self.checks if not c.passed),
            "checks": [c.__dict__ for c in self.checks],
        }


class IntegrityChecker:
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def _count(self, stmt) -> int:
        return (await self.db.execute(stmt)).scalar_one()
    
    async def check_participation_links(self) -> IntegrityCheckResult:
        total = await self._count(select(func.count(GameParticipation.id)))
        orphaned = await self._count(
            select(func.count(GameParticipation.id))
            .outerjoin(Player, Player.id == GameParticipation.player_id)
            .outerjoin(Game, Game.id == GameParticipation.game_id)
            .where((Player.id.is_(None)) | (Game.id.is_(None)))
        )
        return IntegrityCheckResult(
            "GameParticipation links", orphaned == 0, total, orphaned,
            f"{orphaned} participations reference missing players or games" if orphaned else "",
        )
    
    async def check_player_tournament_links(self) -> IntegrityCheckResult:
        total = await self._count(select(func.count(PlayerTournament.id)))
        orphaned = await self._count(
            select(func.count(PlayerTournament.id))
            .outerjoin(Player, Player.id == PlayerTournament.player_id)
            .outerjoin(Tournament, Tournament.id == PlayerTournament.tournament_id)
            .where((Player.id.is_(None)) | (Tournament.id.is_(None)))
        )
        return IntegrityCheckResult(
            "PlayerTournament links", orphaned == 0, total, orphaned,
            f"{orphaned} placements reference missing players or tournaments" if orphaned else "",
        )
    
    async def check_games_have_participants(self) -> IntegrityCheckResult:
        total = await self._count(select(func.count(Game.id)))
        empty = await self._count(
            select(func.count(Game.id))
            .outerjoin(GameParticipation, GameParticipation.game_id == Game.id)
            .where(GameParticipation.id.is_(None))
        )
        return IntegrityCheckResult(
            "Games with participants", empty == 0, total, empty,
            f"{empty} games have no participations" if empty else "",
        )
    
    async def run(self) -> IntegrityReport:
        report = IntegrityReport(checks=[
            await self.check_participation_links(),
            await self.check_player_tournament_links(),
            await self.check_games_have_participants(),
        ])
        for check in report.checks:
            if not check.passed:
                logger.warning(f"Integrity check '{check.check_name}' failed: {check.message}")
        logger.info(f"Integrity checks: {'PASS' if report.passed else 'FAIL'}")
        return report
