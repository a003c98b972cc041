"""
Load validated records into storage with upsert logic (idempotency)
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from sqlalchemy import select, delete, or_, tuple_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import StorageUnavailableError, UpsertError
from models.base import TournamentStatus
from models.club import Club
from models.game import Game, GameParticipation
from models.player import Player
from models.statistics import PlayerRoleStats, PlayerTournament, PlayerYearStats
from models.tournament import Tournament
from schemas.records import (
    ClubRecord,
    GameRecord,
    PlayerRecord,
    PlayerTournamentRecord,
    PlayerYearStatsRecord,
    TournamentRecord,
)

logger = logging.getLogger(__name__)

Key = Tuple[Any, ...]


class EntityLoader:
    """
    Storage handle for the import phases.
    
    Ensures:
    - One row per natural key on repeated runs (INSERT ... ON CONFLICT)
    - Callers learn which keys already existed, to count duplicates
    - Database outages surface as StorageUnavailableError (fatal)
    
    Statements run in the caller's transaction; commit() ends a batch.
    """
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    # ------------------------------------------------------------------
    # Generic upsert
    # ------------------------------------------------------------------
    
    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise UpsertError(
            f"Upsert not supported for dialect {dialect}",
            context={"table_name": model.__tablename__}
        )
    
    async def _existing_keys(self, model, key_columns: Sequence[str], keys: List[Key]) -> set:
        if not keys:
            return set()
        columns = [getattr(model, c) for c in key_columns]
        if len(columns) == 1:
            stmt = select(columns[0]).where(columns[0].in_([k[0] for k in keys]))
        else:
            stmt = select(*columns).where(tuple_(*columns).in_(keys))
        result = await self.db.execute(stmt)
        return {tuple(row) for row in result.all()}
    
    async def upsert(self, model, rows: List[Dict[str, Any]], key_columns: Sequence[str]) -> List[bool]:
        """
        INSERT ... ON CONFLICT (key_columns) DO UPDATE for each row.
        
        Returns:
            Per row, whether its key was already stored (or appeared
            earlier in the same call)
        """
        if not rows:
            return []
        
        keys = [tuple(row[c] for c in key_columns) for row in rows]
        
        try:
            seen = await self._existing_keys(model, key_columns, keys)
            existed = []
            for key, row in zip(keys, rows):
                existed.append(key in seen)
                seen.add(key)
                
                stmt = self._insert(model).values(**row)
                update_columns = {
                    name: stmt.excluded[name] for name in row if name not in key_columns
                }
                if update_columns:
                    stmt = stmt.on_conflict_do_update(index_elements=list(key_columns), set_=update_columns)
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=list(key_columns))
                await self.db.execute(stmt)
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(
                "Database unavailable during upsert",
                context={"table_name": model.__tablename__, "rows": len(rows)},
                original_exception=e
            )
        except SQLAlchemyError as e:
            raise UpsertError(
                f"Upsert into {model.__tablename__} failed",
                context={"table_name": model.__tablename__, "rows": len(rows)},
                original_exception=e
            )
        
        logger.debug(
            f"Upserted {len(rows)} rows into {model.__tablename__} "
            f"({sum(existed)} already present)"
        )
        return existed
    
    async def commit(self) -> None:
        try:
            await self.db.commit()
        except (OperationalError, InterfaceError) as e:
            await self.db.rollback()
            raise StorageUnavailableError("Database unavailable on commit", original_exception=e)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpsertError("Commit failed", original_exception=e)
    
    async def rollback(self) -> None:
        await self.db.rollback()
    
    async def _id_map(self, model, gomafia_ids: Iterable[str]) -> Dict[str, int]:
        gomafia_ids = list(set(gomafia_ids))
        if not gomafia_ids:
            return {}
        try:
            result = await self.db.execute(
                select(model.gomafia_id, model.id).where(model.gomafia_id.in_(gomafia_ids))
            )
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError("Database unavailable", original_exception=e)
        return {gid: pk for gid, pk in result.all()}
    
    # ------------------------------------------------------------------
    # Entity upserts
    # ------------------------------------------------------------------
    
    async def upsert_players(self, records: List[PlayerRecord]) -> List[bool]:
        now = datetime.utcnow()
        rows = [{**r.dict(), "last_sync_at": now, "updated_at": now} for r in records]
        return await self.upsert(Player, rows, ["gomafia_id"])
    
    async def upsert_clubs(self, records: List[ClubRecord]) -> List[bool]:
        now = datetime.utcnow()
        rows = [{**r.dict(), "last_sync_at": now, "updated_at": now} for r in records]
        return await self.upsert(Club, rows, ["gomafia_id"])
    
    async def upsert_tournaments(self, records: List[TournamentRecord]) -> List[bool]:
        now = datetime.utcnow()
        rows = [{**r.dict(), "last_sync_at": now, "updated_at": now} for r in records]
        return await self.upsert(Tournament, rows, ["gomafia_id"])
    
    async def ensure_players(self, names_by_gomafia_id: Dict[str, Optional[str]]) -> Dict[str, int]:
        """
        Make sure every referenced player exists, creating stubs for unknown ones.
        
        Existing rows are left untouched. Returns gomafia_id -> primary key.
        """
        known = await self._id_map(Player, names_by_gomafia_id.keys())
        missing = [gid for gid in names_by_gomafia_id if gid not in known]
        if missing:
            now = datetime.utcnow()
            rows = [
                {"gomafia_id": gid, "name": names_by_gomafia_id[gid] or f"Player {gid}", "created_at": now, "updated_at": now}
                for gid in missing
            ]
            for row in rows:
                stmt = self._insert(Player).values(**row).on_conflict_do_nothing(index_elements=["gomafia_id"])
                await self.db.execute(stmt)
            logger.info(f"Created {len(missing)} player stubs")
            known.update(await self._id_map(Player, missing))
        return known
    
    async def upsert_games(self, tournament_id: int, records: List[GameRecord]) -> List[bool]:
        """
        Upsert games and replace their participations.
        
        Participations are rewritten per game so that a re-scraped
        protocol never leaves stale seats behind.
        """
        if not records:
            return []
        
        now = datetime.utcnow()
        game_rows = [
            {
                "gomafia_id": r.gomafia_id,
                "tournament_id": tournament_id,
                "game_number": r.game_number,
                "date": r.date,
                "duration_minutes": r.duration_minutes,
                "winner_team": r.winner_team,
                "status": r.status,
                "last_sync_at": now,
            }
            for r in records
        ]
        existed = await self.upsert(Game, game_rows, ["gomafia_id"])
        
        player_names = {
            p.player_gomafia_id: p.player_name for r in records for p in r.participations
        }
        player_ids = await self.ensure_players(player_names)
        game_ids = await self._id_map(Game, [r.gomafia_id for r in records])
        
        try:
            await self.db.execute(
                delete(GameParticipation).where(GameParticipation.game_id.in_(list(game_ids.values())))
            )
            for record in records:
                for p in record.participations:
                    self.db.add(GameParticipation(
                        game_id=game_ids[record.gomafia_id],
                        player_id=player_ids[p.player_gomafia_id],
                        seat=p.seat,
                        role=p.role,
                        team=p.team,
                        is_winner=p.is_winner,
                        performance_score=p.performance_score,
                    ))
            await self.db.flush()
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError("Database unavailable writing participations", original_exception=e)
        except SQLAlchemyError as e:
            raise UpsertError(
                "Failed to write game participations",
                context={"table_name": "game_participations", "games": len(records)},
                original_exception=e
            )
        return existed
    
    async def upsert_player_tournaments(self, tournament_id: int, records: List[PlayerTournamentRecord]) -> List[bool]:
        if not records:
            return []
        player_ids = await self.ensure_players({r.player_gomafia_id: r.player_name for r in records})
        now = datetime.utcnow()
        rows = [
            {
                "player_id": player_ids[r.player_gomafia_id],
                "tournament_id": tournament_id,
                "placement": r.placement,
                "gg_points": r.gg_points,
                "elo_change": r.elo_change,
                "prize_money": r.prize_money,
                "last_sync_at": now,
            }
            for r in records
        ]
        return await self.upsert(PlayerTournament, rows, ["player_id", "tournament_id"])
    
    async def upsert_year_stats(self, player_id: int, records: List[PlayerYearStatsRecord]) -> List[bool]:
        now = datetime.utcnow()
        rows = [
            {**r.dict(exclude={"player_gomafia_id"}), "player_id": player_id, "last_sync_at": now}
            for r in records
        ]
        return await self.upsert(PlayerYearStats, rows, ["player_id", "year"])
    
    async def upsert_role_stats(self, rows: List[Dict[str, Any]]) -> List[bool]:
        now = datetime.utcnow()
        return await self.upsert(
            PlayerRoleStats, [{**row, "updated_at": now} for row in rows], ["player_id", "role"]
        )
    
    async def link_players_to_clubs(self) -> int:
        """Point players at the club matching their club_name."""
        club_ids = (
            select(Club.id).where(Club.name == Player.club_name).limit(1).scalar_subquery()
        )
        result = await self.db.execute(
            update(Player)
            .where(Player.club_name.is_not(None))
            .values(club_id=club_ids)
            .execution_options(synchronize_session=False)
        )
        await self.commit()
        return result.rowcount or 0
    
    # ------------------------------------------------------------------
    # Work-item queries
    # ------------------------------------------------------------------
    
    async def list_tournaments(
        self, recent_since: Optional[datetime] = None
    ) -> List[Tuple[int, str]]:
        """(id, gomafia_id) of stored tournaments, oldest first."""
        stmt = select(Tournament.id, Tournament.gomafia_id).order_by(Tournament.start_date, Tournament.id)
        if recent_since is not None:
            stmt = stmt.where(or_(
                Tournament.status == TournamentStatus.IN_PROGRESS,
                Tournament.start_date >= recent_since.date(),
            ))
        result = await self.db.execute(stmt)
        return [(pk, gid) for pk, gid in result.all()]
    
    async def list_players(self) -> List[Tuple[int, str]]:
        """(id, gomafia_id) of stored players."""
        result = await self.db.execute(select(Player.id, Player.gomafia_id).order_by(Player.id))
        return [(pk, gid) for pk, gid in result.all()]
    
    async def participation_rows(self, player_ids: List[int]) -> List[Tuple]:
        """(player_id, role, is_winner, performance_score, game date) for aggregation."""
        if not player_ids:
            return []
        result = await self.db.execute(
            select(
                GameParticipation.player_id,
                GameParticipation.role,
                GameParticipation.is_winner,
                GameParticipation.performance_score,
                Game.date,
            )
            .join(Game, Game.id == GameParticipation.game_id)
            .where(GameParticipation.player_id.in_(player_ids))
        )
        return [tuple(row) for row in result.all()]


def lookback_start(days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=days)
