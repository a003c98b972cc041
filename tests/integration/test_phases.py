"""
Integration tests for import phases against the fake site and SQLite
"""

import pytest
from datetime import date
from sqlalchemy import func, select

from ingestion.checkpoint import Checkpoint, CheckpointManager
from ingestion.loaders.entity_loader import EntityLoader
from ingestion.phases import GamesPhase, ImportContext, PlayersPhase, StatisticsPhase
from ingestion.phases.listing import ListingPhase
from ingestion.skipped import SkippedEntityRecorder
from ingestion.validation import ValidationMetricsTracker
from models.base import PhaseName, PlayerRole, SkippedEntityStatus
from models.game import Game
from models.player import Player
from models.skipped_entity import SkippedEntity
from models.statistics import PlayerRoleStats
from schemas.records import TournamentRecord
from tests.fakes import TEN_PLAYERS, games_page, players_page


class RecordingReporter:
    """Phase reporter backed by a tracker and a real checkpoint table"""
    
    def __init__(self, db_session):
        self.tracker = ValidationMetricsTracker()
        self.checkpoints = CheckpointManager(db_session)
        self.errors = []
        self.saved = []
    
    def record_valid_record(self, entity):
        self.tracker.record_valid(entity)
    
    def record_invalid_record(self, entity, message, context=None):
        self.tracker.record_invalid(entity, message, context)
    
    def record_duplicate_skipped(self):
        self.tracker.record_duplicate_skipped()
    
    def log_error(self, error, phase, will_retry=False, context=None):
        self.errors.append((phase, error.code, context))
    
    def check_cancelled(self):
        pass
    
    async def load_checkpoint(self, phase):
        checkpoint = await self.checkpoints.load()
        return checkpoint if checkpoint and checkpoint.phase == phase else None
    
    async def save_checkpoint(self, checkpoint):
        self.saved.append(checkpoint)
        await self.checkpoints.save(checkpoint)


def make_context(db_session, browser, rate_limiter, retry_manager, reporter, batch_size=2):
    return ImportContext(
        session=browser,
        rate_limiter=rate_limiter,
        retry_manager=retry_manager,
        loader=EntityLoader(db_session),
        skipped=SkippedEntityRecorder(db_session),
        reporter=reporter,
        batch_size=batch_size,
    )


def five_players():
    return [{"id": str(n), "name": f"Игрок {n}"} for n in range(1, 6)]


async def store_tournaments(db_session, *gomafia_ids):
    loader = EntityLoader(db_session)
    await loader.upsert_tournaments([
        TournamentRecord(gomafia_id=gid, name=f"Турнир {gid}", start_date=date(2024, 3, 1))
        for gid in gomafia_ids
    ])
    await loader.commit()


class TestPlayersPhase:
    """Listing phase: validate and upsert in checkpointed batches"""
    
    @pytest.mark.asyncio
    async def test_batches_and_checkpoints(self, db_session, site, browser, rate_limiter, retry_manager):
        site.add("/rating", players_page(five_players() + [{"id": "6", "name": " "}]), pageUsers=1)
        reporter = RecordingReporter(db_session)
        phase = PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter))
        
        result = await phase.execute()
        
        assert result.total_items == 6
        assert result.batches == 3
        assert result.processed == 6
        assert reporter.tracker.valid_records == 5
        assert reporter.tracker.invalid_records == 1
        assert [c.last_batch_index for c in reporter.saved] == [0, 0, 0]
        assert reporter.saved[-1].total_batches == 1
        assert len(reporter.saved[-1].processed_ids) == 6
        
        count = (await db_session.execute(select(func.count()).select_from(Player))).scalar()
        assert count == 5
    
    @pytest.mark.asyncio
    async def test_rerun_counts_duplicates(self, db_session, site, browser, rate_limiter, retry_manager):
        site.add("/rating", players_page(five_players()), pageUsers=1)
        await PlayersPhase(make_context(
            db_session, browser, rate_limiter, retry_manager, RecordingReporter(db_session)
        )).execute()
        await CheckpointManager(db_session).clear()
        
        reporter = RecordingReporter(db_session)
        await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert reporter.tracker.valid_records == 0
        assert reporter.tracker.duplicates_skipped == 5
        count = (await db_session.execute(select(func.count()).select_from(Player))).scalar()
        assert count == 5
    
    @pytest.mark.asyncio
    async def test_listing_outage_waits_once(self, db_session, site, browser, rate_limiter, retry_manager, sleeps):
        site.add("/rating", players_page(five_players()), pageUsers=1)
        site.fail_next("/rating", 503, 503, 503)
        reporter = RecordingReporter(db_session)
        
        result = await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert result.processed == 5
        assert 300.0 in sleeps
        assert reporter.errors[0][1] == "NETWORK_ERROR"
    
    @pytest.mark.asyncio
    async def test_pages_are_stored_before_a_later_page_fails(
        self, db_session, site, browser, rate_limiter, retry_manager
    ):
        """Pages 1-2 are committed and checkpointed even though page 3 never loads"""
        site.add("/rating", players_page(five_players()[:2], next_page=True), pageUsers=1)
        site.add("/rating", players_page(five_players()[2:4], next_page=True), pageUsers=2)
        reporter = RecordingReporter(db_session)
        
        result = await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        count = (await db_session.execute(select(func.count()).select_from(Player))).scalar()
        assert count == 4
        assert result.processed == 4
        assert result.skipped_pages[0] == 3
        checkpoint = await CheckpointManager(db_session).load()
        assert checkpoint.last_batch_index == 1
        assert checkpoint.processed_ids == ["3", "4"]
    
    @pytest.mark.asyncio
    async def test_failed_page_is_recorded_and_later_pages_imported(
        self, db_session, site, browser, rate_limiter, retry_manager
    ):
        site.add("/rating", players_page(five_players()[:2], next_page=True), pageUsers=1)
        site.add("/rating", players_page(five_players()[4:]), pageUsers=3)
        reporter = RecordingReporter(db_session)
        
        result = await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert result.skipped_pages == [2]
        assert reporter.errors == [(PhaseName.PLAYERS, "NOT_FOUND", {"page_number": 2})]
        ids = (await db_session.execute(select(Player.gomafia_id).order_by(Player.gomafia_id))).scalars().all()
        assert ids == ["1", "2", "5"]
        
        [skipped] = (await db_session.execute(select(SkippedEntity))).scalars().all()
        assert skipped.page_number == 2
        assert skipped.entity_id is None
        assert skipped.entity_type == "players"
        assert skipped.status == SkippedEntityStatus.PENDING
        assert skipped.error_details["url"].endswith("pageUsers=2")
        
        await CheckpointManager(db_session).clear()
        site.add("/rating", players_page(five_players()[2:4], next_page=True), pageUsers=2)
        await PlayersPhase(make_context(
            db_session, browser, rate_limiter, retry_manager, RecordingReporter(db_session)
        )).execute()
        
        await db_session.refresh(skipped)
        assert skipped.status == SkippedEntityStatus.RESOLVED
        count = (await db_session.execute(select(func.count()).select_from(Player))).scalar()
        assert count == 5
    
    @pytest.mark.asyncio
    async def test_resume_starts_at_checkpointed_page(self, db_session, site, browser, rate_limiter, retry_manager):
        site.add("/rating", players_page(five_players()[:2], next_page=True), pageUsers=1)
        site.add("/rating", players_page(five_players()[2:4], next_page=True), pageUsers=2)
        site.add("/rating", players_page(five_players()[4:]), pageUsers=3)
        await CheckpointManager(db_session).save(Checkpoint(PhaseName.PLAYERS, 1, 2, ["3"]))
        reporter = RecordingReporter(db_session)
        
        result = await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert [url.params["pageUsers"] for url in site.requests] == ["2", "3"]
        assert result.resumed_skipped == 1
        ids = (await db_session.execute(select(Player.gomafia_id).order_by(Player.gomafia_id))).scalars().all()
        assert ids == ["4", "5"]
        assert reporter.saved[-1].last_batch_index == 2
    
    @pytest.mark.asyncio
    async def test_empty_listing_is_a_no_op(self, db_session, site, browser, rate_limiter, retry_manager):
        site.add("/rating", players_page([]), pageUsers=1)
        reporter = RecordingReporter(db_session)
        
        result = await PlayersPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert (result.total_items, result.processed, result.failed, result.batches) == (0, 0, 0, 0)
        assert result.skipped_pages == []
        assert reporter.saved == []
        assert reporter.errors == []
        assert await CheckpointManager(db_session).load() is None
    
    @pytest.mark.asyncio
    async def test_listing_phase_requires_upsert(self, db_session, browser, rate_limiter, retry_manager):
        class NoUpsertPhase(ListingPhase):
            phase_name = PhaseName.PLAYERS
        
        context = make_context(db_session, browser, rate_limiter, retry_manager, RecordingReporter(db_session))
        with pytest.raises(TypeError):
            NoUpsertPhase(context)


class TestGamesPhase:
    """Per-item phase: resume and skip ledger"""
    
    @pytest.mark.asyncio
    async def test_resume_skips_processed_tournaments(self, db_session, site, browser, rate_limiter, retry_manager):
        await store_tournaments(db_session, "1504", "1505")
        site.add("/tournament/1505", games_page([{"id": "9002", "players": TEN_PLAYERS}]), tab="games")
        await CheckpointManager(db_session).save(Checkpoint(PhaseName.GAMES, 0, 2, ["1504"]))
        reporter = RecordingReporter(db_session)
        
        result = await GamesPhase(make_context(
            db_session, browser, rate_limiter, retry_manager, reporter, batch_size=1
        )).execute()
        
        assert site.requested_paths() == ["/tournament/1505"]
        assert result.resumed_skipped == 1
        assert result.processed == 1
        assert reporter.saved[-1].processed_ids == ["1504", "1505"]
        games = (await db_session.execute(select(Game.gomafia_id))).scalars().all()
        assert games == ["9002"]
    
    @pytest.mark.asyncio
    async def test_failed_tournament_is_recorded_and_not_checkpointed(
        self, db_session, site, browser, rate_limiter, retry_manager
    ):
        await store_tournaments(db_session, "1504", "1505")
        site.add("/tournament/1504", games_page([{"id": "9001", "players": TEN_PLAYERS}]), tab="games")
        reporter = RecordingReporter(db_session)
        
        result = await GamesPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert result.processed == 1
        assert result.failed == 1
        assert reporter.saved[-1].processed_ids == ["1504"]
        assert reporter.errors == [(PhaseName.GAMES, "NOT_FOUND", {"item_id": "1505"})]
        
        [skipped] = (await db_session.execute(select(SkippedEntity))).scalars().all()
        assert skipped.entity_id == "1505"
        assert skipped.error_code == "NOT_FOUND"
        assert skipped.status == SkippedEntityStatus.PENDING
        
        await CheckpointManager(db_session).clear()
        site.add("/tournament/1505", games_page([{"id": "9002", "players": TEN_PLAYERS}]), tab="games")
        await GamesPhase(make_context(
            db_session, browser, rate_limiter, retry_manager, RecordingReporter(db_session)
        )).execute()
        
        await db_session.refresh(skipped)
        assert skipped.status == SkippedEntityStatus.RESOLVED
    
    @pytest.mark.asyncio
    async def test_no_stored_tournaments_is_a_no_op(self, db_session, site, browser, rate_limiter, retry_manager):
        reporter = RecordingReporter(db_session)
        
        result = await GamesPhase(make_context(db_session, browser, rate_limiter, retry_manager, reporter)).execute()
        
        assert (result.total_items, result.processed, result.failed, result.batches) == (0, 0, 0, 0)
        assert reporter.saved == []
        assert site.requests == []
        assert await CheckpointManager(db_session).load() is None


class TestStatisticsPhase:
    
    @pytest.mark.asyncio
    async def test_role_stats_from_participations(self, db_session, site, browser, rate_limiter, retry_manager):
        await store_tournaments(db_session, "1504")
        site.add("/tournament/1504", games_page([
            {"id": "9001", "number": 1, "result": "Победа мафии", "players": TEN_PLAYERS},
            {"id": "9002", "number": 2, "result": "Победа мирных", "players": TEN_PLAYERS},
        ]), tab="games")
        context = make_context(db_session, browser, rate_limiter, retry_manager, RecordingReporter(db_session), batch_size=100)
        await GamesPhase(context).execute()
        await CheckpointManager(db_session).clear()
        
        await StatisticsPhase(context).execute()
        
        row = (await db_session.execute(
            select(PlayerRoleStats)
            .join(Player, Player.id == PlayerRoleStats.player_id)
            .where(Player.gomafia_id == "1", PlayerRoleStats.role == PlayerRole.DON)
        )).scalar_one()
        assert row.games_played == 2
        assert row.wins == 1
        assert row.win_rate == 50.0
