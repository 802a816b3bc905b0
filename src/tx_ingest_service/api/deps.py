"""FastAPI dependencies shared by the routers."""
from fastapi import Request

from tx_ingest_service.db.repositories import EventRecordRepository


def get_repository(request: Request) -> EventRecordRepository:
    """Return the repository built during application startup."""
    return request.app.state.repository
