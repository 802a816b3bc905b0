"""FastAPI router for event record ingestion."""
import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from tx_ingest_service.api.deps import get_repository
from tx_ingest_service.core.access import resolve_client_address
from tx_ingest_service.core.errors import ClientError, PersistenceError
from tx_ingest_service.core.logging import bind_context, get_logger, unbind_context
from tx_ingest_service.db.repositories import EventRecordRepository
from tx_ingest_service.models.schemas import IngestResponse
from tx_ingest_service.models.validation import Rejected, validate_event_record

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["ingestion"])


async def _read_payload(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        logger.warning("Rejected request without data", body_size=len(body))
        raise ClientError("No data provided", "Request body must contain data to store")

    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.warning("Rejected malformed JSON body", body_size=len(body), error=str(e))
        raise ClientError("Invalid JSON", "Request body must be valid JSON")

    if payload is None or (isinstance(payload, (dict, list)) and not payload):
        logger.warning("Rejected request without data", body_size=len(body))
        raise ClientError("No data provided", "Request body must contain data to store")
    return payload


@router.post("/data", response_model=IngestResponse)
async def ingest_data(
    request: Request,
    repository: EventRecordRepository = Depends(get_repository),
) -> IngestResponse:
    """
    Store one event record.

    The caller's address has already passed the allow-list when this runs.
    A record whose tx_hash is already stored is merged into the existing row.
    """
    bind_context(client_ip=resolve_client_address(request))
    try:
        payload = await _read_payload(request)
        if isinstance(payload, dict):
            bind_context(tx_hash=payload.get("tx_hash"))
            logger.info("Received data", fields=sorted(payload))

        result = validate_event_record(payload)
        if isinstance(result, Rejected):
            logger.warning("Rejected invalid event record", errors=result.errors)
            raise ClientError(
                "Invalid data format",
                "Request body does not match the event record schema",
                details=result.errors,
            )

        try:
            stored = await repository.upsert(result.record)
        except Exception as e:
            logger.exception("Failed to persist event record", error=str(e))
            raise PersistenceError()

        logger.info(
            "Data stored successfully",
            id=stored.id,
            created_at=stored.created_at.isoformat(),
            updated_at=stored.updated_at.isoformat(),
        )
        return IngestResponse(tx_hash=stored.tx_hash)
    finally:
        unbind_context("client_ip", "tx_hash")
