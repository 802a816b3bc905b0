"""Pydantic models for ingested event records and API responses."""
import math
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, StrictBool, StrictStr


class TxStatus(str, Enum):
    """Outcome of the provider call."""

    SUCCESS = "Success"
    FAILED = "Failed"


class ErrorType(str, Enum):
    """Failure category reported for an unsuccessful call."""

    PROVIDER_NOT_FOUND = "ProviderNotFound"
    PAYMENT_VALIDATION_FAILED = "PaymentValidationFailed"
    ALL_RETRIES_FAILED = "AllRetriesFailed"
    API_CALL_FAILED = "ApiCallFailed"


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a JSON number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _integral(value: Any) -> int:
    if not _is_number(value):
        raise ValueError("expected an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("expected an integer")
    return int(value)


def _numeric(value: Any) -> Decimal:
    if not _is_number(value):
        raise ValueError("expected a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("expected a finite number")
    return Decimal(str(value))


IntegralNumber = Annotated[int, BeforeValidator(_integral)]
Amount = Annotated[Decimal, BeforeValidator(_numeric)]


class EventRecord(BaseModel):
    """One provider call, keyed by its transaction hash.

    Timestamps stay strings here and the optional pass-through fields keep
    whatever JSON value was sent; PostgreSQL parses both on write.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    tx_hash: StrictStr
    provider: StrictStr
    provider_node: StrictStr
    source_node: StrictStr
    arg_count: IntegralNumber
    price_usdc: Amount
    transferred_usdc: Amount
    status: TxStatus
    started_at: StrictStr
    completed_at: Optional[Any] = None
    total_duration_ms: Optional[Any] = None
    successful_attempt: IntegralNumber
    total_attempts: IntegralNumber
    response_size_bytes: Optional[Any] = None
    error_type: Optional[ErrorType] = None
    error_message: Optional[Any] = None
    validation_error: Optional[Any] = None
    payment_validated: StrictBool


class UpsertResult(BaseModel):
    """Row identity returned by the store after a write."""

    id: int
    tx_hash: str
    created_at: datetime
    updated_at: datetime


class IngestResponse(BaseModel):
    """Response after storing an event record."""

    success: bool = True
    tx_hash: str


class HealthResponse(BaseModel):
    """Health check response when the database answers."""

    status: str = "healthy"
    database: str = "connected"
    timestamp: datetime
