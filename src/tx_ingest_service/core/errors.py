"""Error taxonomy for the ingestion service.

Each HTTP-facing error carries its status code and the client-visible
``error``/``message`` pair. The application registers a single handler that
renders them (see ``tx_ingest_service.main``).
"""
from typing import Optional

from fastapi import status


class IngestError(Exception):
    """Base class for errors that end a request with a JSON error body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        error: str,
        message: str,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body: dict = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ClientError(IngestError):
    """Missing, malformed or schema-invalid request body."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(IngestError):
    """Caller address is not on the allow-list."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self) -> None:
        super().__init__("Forbidden", "IP address not authorized")


class ConfigError(IngestError):
    """The service is not configured to accept any caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Ingestion allow-list is not configured") -> None:
        super().__init__("Server misconfiguration", message)


class PersistenceError(IngestError):
    """The store rejected or failed the write.

    The client only ever sees the generic message; the cause is logged.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self) -> None:
        super().__init__("Database persistence failed", "Failed to store data")


class StartupError(RuntimeError):
    """Fatal failure while preparing the store; the server must not start."""
