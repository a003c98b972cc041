"""
STATISTICS phase: derive PlayerRoleStats from stored participations.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ingestion.phases.base import ImportPhase
from models.base import PhaseName


def aggregate_role_stats(rows: Iterable[Tuple]) -> List[Dict[str, Any]]:
    """
    Group (player_id, role, is_winner, performance_score, game_date) rows
    by (player, role).
    
    win_rate is a percentage, average_performance ignores missing scores
    (None when the group has none) and last_played is the latest game date.
    """
    groups: Dict[Tuple[int, Any], Dict[str, Any]] = {}
    for player_id, role, is_winner, score, played_at in rows:
        group = groups.setdefault((player_id, role), {"games": 0, "wins": 0, "scores": [], "last": None})
        group["games"] += 1
        if is_winner:
            group["wins"] += 1
        if score is not None:
            group["scores"].append(float(score))
        if played_at is not None and (group["last"] is None or played_at > group["last"]):
            group["last"] = played_at
    
    stats = []
    for (player_id, role), group in groups.items():
        games = group["games"]
        scores = group["scores"]
        stats.append({
            "player_id": player_id,
            "role": role,
            "games_played": games,
            "wins": group["wins"],
            "losses": games - group["wins"],
            "win_rate": round(group["wins"] / games * 100, 2) if games else 0.0,
            "average_performance": round(sum(scores) / len(scores), 4) if scores else None,
            "last_played": group["last"],
        })
    return stats


class StatisticsPhase(ImportPhase):
    """No scraping; reads participations of each player batch and upserts role stats."""
    
    phase_name = PhaseName.STATISTICS
    entity = "player_role_stats"
    
    async def collect_items(self) -> List[Tuple[int, str]]:
        return await self.loader.list_players()
    
    def item_id(self, item: Tuple[int, str]) -> str:
        return item[1]
    
    async def process_batch(self, batch: List[Tuple[int, str]]) -> List[str]:
        rows = await self.loader.participation_rows([player_id for player_id, _ in batch])
        stats = aggregate_role_stats(rows)
        await self.loader.upsert_role_stats(stats)
        await self.loader.commit()
        return [self.item_id(item) for item in batch]
