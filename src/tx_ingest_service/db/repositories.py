"""Data access for event records."""
import json
from datetime import datetime
from typing import Any, Optional

from tx_ingest_service.db.connection import Database
from tx_ingest_service.models.schemas import ErrorType, EventRecord, TxStatus, UpsertResult

TABLE_NAME = "event_records"


def _sql_list(values) -> str:
    return ", ".join(f"'{v.value}'" for v in values)


CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id SERIAL PRIMARY KEY,
    tx_hash TEXT NOT NULL UNIQUE,
    provider TEXT NOT NULL,
    provider_node TEXT NOT NULL,
    source_node TEXT NOT NULL,
    arg_count INTEGER NOT NULL,
    price_usdc NUMERIC(20, 6) NOT NULL,
    transferred_usdc NUMERIC(20, 6) NOT NULL,
    status TEXT NOT NULL CHECK (status IN ({_sql_list(TxStatus)})),
    started_at TIMESTAMPTZ NOT NULL,
    completed_at TIMESTAMPTZ,
    total_duration_ms BIGINT,
    successful_attempt INTEGER NOT NULL,
    total_attempts INTEGER NOT NULL,
    response_size_bytes BIGINT,
    error_type TEXT CHECK (error_type IS NULL OR error_type IN ({_sql_list(ErrorType)})),
    error_message TEXT,
    validation_error TEXT,
    payment_validated BOOLEAN NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

# Columns overwritten when a tx_hash is submitted again. tx_hash, arg_count,
# price_usdc, transferred_usdc, started_at and created_at keep the values of
# the first insert.
MUTABLE_COLUMNS = (
    "provider",
    "provider_node",
    "source_node",
    "status",
    "completed_at",
    "total_duration_ms",
    "successful_attempt",
    "total_attempts",
    "response_size_bytes",
    "error_type",
    "error_message",
    "validation_error",
    "payment_validated",
)

_UPDATE_SET = ",\n    ".join(f"{col} = EXCLUDED.{col}" for col in MUTABLE_COLUMNS)

# Timestamps and the pass-through columns are sent as text and cast by
# PostgreSQL so that parsing (and rejecting) them is the store's job.
UPSERT_SQL = f"""
INSERT INTO {TABLE_NAME} (
    tx_hash, provider, provider_node, source_node, arg_count,
    price_usdc, transferred_usdc, status, started_at, completed_at,
    total_duration_ms, successful_attempt, total_attempts, response_size_bytes,
    error_type, error_message, validation_error, payment_validated
)
VALUES (
    $1, $2, $3, $4, $5,
    $6, $7, $8, $9::text::timestamptz, $10::text::timestamptz,
    $11::text::bigint, $12, $13, $14::text::bigint,
    $15, $16::text, $17::text, $18
)
ON CONFLICT (tx_hash) DO UPDATE SET
    {_UPDATE_SET},
    updated_at = NOW()
RETURNING id, tx_hash, created_at, updated_at
"""


def as_text(value: Any) -> Optional[str]:
    """Render a JSON value as column text: objects as JSON, scalars as strings."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


class EventRecordRepository:
    """Repository for idempotent event record storage."""

    def __init__(self, database: Database):
        self.database = database

    async def ensure_schema(self) -> None:
        """Create the event table if it does not exist yet."""
        async with self.database.acquire() as conn:
            await conn.execute(CREATE_TABLE_SQL)

    async def upsert(self, record: EventRecord) -> UpsertResult:
        """Insert a record, or merge it into the row with the same tx_hash."""
        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                UPSERT_SQL,
                record.tx_hash,
                record.provider,
                record.provider_node,
                record.source_node,
                record.arg_count,
                record.price_usdc,
                record.transferred_usdc,
                record.status,
                record.started_at,
                as_text(record.completed_at),
                as_text(record.total_duration_ms),
                record.successful_attempt,
                record.total_attempts,
                as_text(record.response_size_bytes),
                record.error_type,
                as_text(record.error_message),
                as_text(record.validation_error),
                record.payment_validated,
            )
            return UpsertResult(**dict(row))

    async def current_time(self) -> datetime:
        """Return the database clock."""
        async with self.database.acquire() as conn:
            return await conn.fetchval("SELECT NOW()")

    async def health_check(self) -> datetime:
        """Round-trip a trivial query; raises when the database is unreachable."""
        return await self.current_time()
