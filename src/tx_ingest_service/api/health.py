"""Liveness probe and landing page."""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from tx_ingest_service.api.deps import get_repository
from tx_ingest_service.core.logging import get_logger
from tx_ingest_service.db.repositories import EventRecordRepository
from tx_ingest_service.models.schemas import HealthResponse

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database unreachable"}},
)
async def health_check(
    repository: EventRecordRepository = Depends(get_repository),
):
    """Report whether the database answers a trivial query."""
    try:
        timestamp = await repository.health_check()
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e) or type(e).__name__,
            },
        )
    return HealthResponse(timestamp=timestamp)


@router.get("/", response_class=PlainTextResponse)
async def root(repository: EventRecordRepository = Depends(get_repository)) -> str:
    """Landing page showing the database clock."""
    now = await repository.current_time()
    return f"Hello, World! The time from the DB is {now}"
