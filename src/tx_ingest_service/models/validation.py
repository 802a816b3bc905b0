"""Parse untyped request bodies into ``EventRecord`` instances.

``validate_event_record`` never raises. It returns ``Accepted`` with the typed
record, or ``Rejected`` with one human-readable message per offending field,
in field declaration order. All violations are reported together.
"""
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import ValidationError

from tx_ingest_service.models.schemas import ErrorType, EventRecord, TxStatus

_EXPECTED = {
    "tx_hash": "must be a string",
    "provider": "must be a string",
    "provider_node": "must be a string",
    "source_node": "must be a string",
    "arg_count": "must be an integer",
    "price_usdc": "must be a number",
    "transferred_usdc": "must be a number",
    "status": "must be one of: " + ", ".join(s.value for s in TxStatus),
    "started_at": "must be a string",
    "successful_attempt": "must be an integer",
    "total_attempts": "must be an integer",
    "payment_validated": "must be a boolean",
    "error_type": "must be one of: " + ", ".join(e.value for e in ErrorType),
}


@dataclass(frozen=True)
class Accepted:
    record: EventRecord


@dataclass(frozen=True)
class Rejected:
    errors: list[str] = field(default_factory=list)


ValidationResult = Union[Accepted, Rejected]


def _describe(error: dict) -> tuple[str, str]:
    name = str(error["loc"][0]) if error["loc"] else "body"
    if error["type"] == "missing":
        return name, f"{name} is required"
    expected = _EXPECTED.get(name)
    if expected is None:
        return name, f"{name}: {error['msg']}"
    return name, f"{name} {expected}"


def validate_event_record(data: Any) -> ValidationResult:
    """Validate an untyped payload against the event record schema."""
    if not isinstance(data, dict):
        return Rejected(["Request body must be a JSON object"])

    try:
        return Accepted(EventRecord.model_validate(data))
    except ValidationError as exc:
        messages: dict[str, str] = {}
        for error in exc.errors():
            name, message = _describe(error)
            messages.setdefault(name, message)
        return Rejected(list(messages.values()))
