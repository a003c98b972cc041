"""
API endpoint tests
"""

import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import httpx

from api.main import app
from api.dependencies import get_db, get_orchestrator
from core.exceptions import CheckpointError
from ingestion.checkpoint import Checkpoint, CheckpointManager
from ingestion.orchestrator import ImportOrchestrator
from ingestion.skipped import SkippedEntityRecorder
from models.base import PhaseName, SyncStatusValue, SyncType
from models.sync_log import SyncLog
from models.sync_status import CURRENT_STATUS_ID, SyncStatus


@pytest.fixture
def orchestrator(session_factory):
    return ImportOrchestrator(session_factory=session_factory)


@pytest_asyncio.fixture
async def client(db_session, orchestrator):
    """Create test client with database and orchestrator overrides"""
    
    async def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    
    app.dependency_overrides.clear()


@pytest.fixture
def start_task(monkeypatch):
    """Replace the background task launcher"""
    launcher = MagicMock()
    monkeypatch.setattr("api.routes.import_control.start_import_task", launcher)
    monkeypatch.setattr("api.routes.import_control.import_task_active", lambda: False)
    return launcher


class TestHealth:
    
    @pytest.mark.asyncio
    async def test_health_database_connected(self, client):
        """Test health endpoint returns database status"""
        response = await client.get("/health")
        
        assert response.status_code == 200
        data = response.json()
        assert data["database_connected"] is True
        assert data["import_running"] is False
        assert data["status"] == "healthy"
        assert "X-Request-ID" in response.headers
    
    @pytest.mark.asyncio
    async def test_health_degraded_after_failed_run(self, client, db_session):
        db_session.add(SyncStatus(
            id=CURRENT_STATUS_ID,
            is_running=False,
            last_sync_type=SyncType.FULL,
            last_error="Browser session is not open",
        ))
        await db_session.commit()
        
        data = (await client.get("/health")).json()
        
        assert data["status"] == "degraded"
        assert data["last_sync_type"] == "FULL"
        assert data["last_error"] == "Browser session is not open"
    
    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/", headers={"X-Request-ID": "abc-123"})
        
        assert response.headers["X-Request-ID"] == "abc-123"
    
    @pytest.mark.asyncio
    async def test_malformed_request_id_is_replaced(self, client):
        response = await client.get("/", headers={"X-Request-ID": "x" * 80})
        
        request_id = response.headers["X-Request-ID"]
        assert request_id != "x" * 80
        assert len(request_id) == 32
        assert "X-API-Latency-ms" in response.headers


class TestImportControl:
    
    @pytest.mark.asyncio
    async def test_start_accepts_request(self, client, orchestrator, start_task):
        response = await client.post("/import/start", json={"mode": "INCREMENTAL", "resume": False})
        
        assert response.status_code == 202
        data = response.json()
        assert data["accepted"] is True
        assert data["mode"] == "INCREMENTAL"
        start_task.assert_called_once_with(orchestrator, SyncType.INCREMENTAL, False)
    
    @pytest.mark.asyncio
    async def test_start_defaults_to_full_resume(self, client, start_task):
        response = await client.post("/import/start")
        
        assert response.status_code == 202
        _, mode, resume = start_task.call_args.args
        assert (mode, resume) == (SyncType.FULL, True)
    
    @pytest.mark.asyncio
    async def test_start_conflict_while_running(self, client, monkeypatch, start_task):
        monkeypatch.setattr("api.routes.import_control.import_task_active", lambda: True)
        
        response = await client.post("/import/start")
        
        assert response.status_code == 409
        start_task.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_start_rejects_unknown_mode(self, client, start_task):
        response = await client.post("/import/start", json={"mode": "PARTIAL"})
        
        assert response.status_code == 422
    
    @pytest.mark.asyncio
    async def test_cancel_when_idle(self, client):
        response = await client.post("/import/cancel")
        
        assert response.status_code == 200
        assert response.json()["cancelled"] is False
    
    @pytest.mark.asyncio
    async def test_status_without_runs(self, client):
        data = (await client.get("/import/status")).json()
        
        assert data["is_running"] is False
        assert data["progress"] == 0
        assert data["last_sync_time"] is None
    
    @pytest.mark.asyncio
    async def test_status_from_persisted_row(self, client, db_session):
        db_session.add(SyncStatus(
            id=CURRENT_STATUS_ID,
            is_running=True,
            current_operation="Processing GAMES (batch 3/10)",
            progress=42,
            total_records_processed=1200,
        ))
        await db_session.commit()
        
        data = (await client.get("/import/status")).json()
        
        assert data["is_running"] is True
        assert data["progress"] == 42
        assert data["current_operation"] == "Processing GAMES (batch 3/10)"
    
    @pytest.mark.asyncio
    async def test_validation_summary(self, client, orchestrator):
        for _ in range(49):
            orchestrator.record_valid_record("players")
        orchestrator.record_invalid_record("players", "name: must not be empty", {"gomafia_id": "9"})
        orchestrator.record_duplicate_skipped()
        
        data = (await client.get("/import/validation", params={"limit": 5})).json()
        
        assert data["validation_rate"] == 98.0
        assert data["meets_threshold"] is True
        assert data["threshold"] == 98.0
        assert data["duplicates_skipped"] == 1
        assert data["errors_by_entity"] == {"players": 1}
        assert data["recent_errors"][0]["context"] == {"gomafia_id": "9"}
    
    @pytest.mark.asyncio
    async def test_checkpoint(self, client, db_session):
        assert (await client.get("/import/checkpoint")).json() == {"has_checkpoint": False, "checkpoint": None}
        
        await CheckpointManager(db_session).save(
            Checkpoint(PhaseName.GAMES, 2, 10, ["1", "2", "3"], message="GAMES: batch 3/10 complete")
        )
        data = (await client.get("/import/checkpoint")).json()
        
        assert data["has_checkpoint"] is True
        assert data["checkpoint"]["phase"] == "GAMES"
        assert data["checkpoint"]["batches_done"] == 3
        assert data["checkpoint"]["processed_count"] == 3
    
    @pytest.mark.asyncio
    async def test_checkpoint_error_response(self, client, monkeypatch):
        async def broken_load(self):
            raise CheckpointError("Failed to load checkpoint", context={"operation": "load"})
        monkeypatch.setattr(CheckpointManager, "load", broken_load)
        
        response = await client.get("/import/checkpoint")
        
        assert response.status_code == 500
        assert response.json()["error"] == "CHECKPOINT_ERROR"
        assert response.json()["detail"] == "Failed to load checkpoint"
    
    @pytest.mark.asyncio
    async def test_skipped_entities(self, client, db_session):
        recorder = SkippedEntityRecorder(db_session)
        await recorder.record(PhaseName.GAMES, "games", "NOT_FOUND", "Page not found", entity_id="1505")
        await recorder.record(PhaseName.PLAYERS, "players", "NETWORK_ERROR", "Timeout", page_number=3)
        
        data = (await client.get("/import/skipped", params={"phase": "GAMES"})).json()
        
        assert data["total"] == 1
        assert data["phase"] == "GAMES"
        assert data["items"][0]["entity_id"] == "1505"
        assert data["items"][0]["status"] == "PENDING"


class TestSyncLogs:
    
    @pytest.mark.asyncio
    async def test_newest_first_with_duration(self, client, db_session):
        start = datetime(2024, 3, 1, 3, 0)
        db_session.add(SyncLog(
            type=SyncType.FULL, status=SyncStatusValue.COMPLETED,
            start_time=start, end_time=start + timedelta(minutes=90), records_processed=5000,
        ))
        db_session.add(SyncLog(
            type=SyncType.INCREMENTAL, status=SyncStatusValue.FAILED,
            start_time=start + timedelta(days=1), end_time=start + timedelta(days=1, seconds=30),
            errors={"message": "Browser session is not open"},
        ))
        await db_session.commit()
        
        data = (await client.get("/sync-logs", params={"limit": 10})).json()
        
        assert data["total"] == 2
        assert [item["type"] for item in data["items"]] == ["INCREMENTAL", "FULL"]
        assert data["items"][0]["status"] == "FAILED"
        assert data["items"][0]["errors"]["message"] == "Browser session is not open"
        assert data["items"][1]["duration_seconds"] == 5400.0
