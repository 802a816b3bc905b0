"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from tx_ingest_service.api import data, health
from tx_ingest_service.config import Settings, settings
from tx_ingest_service.core.access import IPAllowListDependency
from tx_ingest_service.core.errors import IngestError, StartupError
from tx_ingest_service.core.logging import get_logger, setup_logging
from tx_ingest_service.db.connection import Database
from tx_ingest_service.db.repositories import EventRecordRepository

# Setup logging
setup_logging(
    service_name=settings.service_name,
    service_version=settings.service_version,
    log_level=settings.log_level,
    log_format=settings.log_format,
)
logger = get_logger(__name__)


async def handle_ingest_error(request: Request, exc: IngestError) -> JSONResponse:
    """Render ingestion errors as ``{"error", "message"[, "details"]}``."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given settings."""
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the pool and create the table; any failure aborts startup."""
        logger.info("Starting ingestion service...")
        database = Database(
            config.database_url,
            min_size=config.database_pool_min_size,
            max_size=config.database_pool_max_size,
        )
        repository = EventRecordRepository(database)
        try:
            await database.connect()
            await repository.ensure_schema()
        except Exception as e:
            logger.critical("Could not prepare event table", error=str(e))
            await database.close()
            raise StartupError("Event table creation failed") from e

        if not config.allowed_ip_list:
            logger.warning("ALLOWED_IPS is empty; every ingestion request will be refused")

        app.state.database = database
        app.state.repository = repository
        logger.info("Ingestion service started successfully")
        yield
        logger.info("Shutting down ingestion service...")
        await database.close()
        logger.info("Ingestion service shutdown complete")

    app = FastAPI(
        title="Transaction Ingestion Service",
        description="Validates and stores provider call records keyed by transaction hash",
        version=config.service_version,
        lifespan=lifespan,
    )
    app.add_exception_handler(IngestError, handle_ingest_error)

    require_allowed_ip = IPAllowListDependency(config.allowed_ip_list)
    app.include_router(health.router)
    app.include_router(data.router, dependencies=[Depends(require_allowed_ip)])
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    logger.info(f"Listening at http://localhost:{settings.port}")
    logger.info(f"Data ingestion endpoint available at: http://localhost:{settings.port}/api/data")
    uvicorn.run(
        "tx_ingest_service.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
