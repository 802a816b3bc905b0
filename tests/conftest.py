"""Pytest configuration and fixtures."""
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tx_ingest_service.api.deps import get_repository
from tx_ingest_service.config import Settings
from tx_ingest_service.db.repositories import EventRecordRepository
from tx_ingest_service.main import create_app
from tx_ingest_service.models.schemas import UpsertResult

ALLOWED_IP = "10.0.0.5"


@pytest.fixture
def test_settings():
    """Settings with a one-entry allow-list, ignoring any local .env."""
    return Settings(_env_file=None, allowed_ips=f"{ALLOWED_IP}, 10.0.0.6")


@pytest.fixture
def repository():
    """Repository double; upsert echoes the submitted tx_hash."""
    repo = AsyncMock(spec=EventRecordRepository)
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def upsert(record):
        return UpsertResult(id=1, tx_hash=record.tx_hash, created_at=now, updated_at=now)

    repo.upsert.side_effect = upsert
    repo.health_check.return_value = now
    repo.current_time.return_value = now
    return repo


@pytest.fixture
def app(test_settings, repository):
    app = create_app(test_settings)
    app.dependency_overrides[get_repository] = lambda: repository
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def allowed_headers():
    return {"X-Forwarded-For": ALLOWED_IP}


@pytest.fixture
def valid_payload():
    return {
        "tx_hash": "0xabc",
        "provider": "p1",
        "provider_node": "n1",
        "source_node": "n2",
        "arg_count": 2,
        "price_usdc": 1.5,
        "transferred_usdc": 1.5,
        "status": "Success",
        "started_at": "2024-01-01T00:00:00Z",
        "successful_attempt": 1,
        "total_attempts": 1,
        "payment_validated": True,
    }
