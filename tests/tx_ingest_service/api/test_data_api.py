"""Unit tests for the ingestion API."""
import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from tx_ingest_service.api.deps import get_repository
from tx_ingest_service.config import Settings
from tx_ingest_service.main import create_app


def test_ingest_valid_record(client, repository, allowed_headers, valid_payload):
    """Test POST /api/data stores an allow-listed caller's record."""
    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "tx_hash": "0xabc"}
    repository.upsert.assert_called_once()
    record = repository.upsert.call_args[0][0]
    assert record.tx_hash == "0xabc"
    assert record.provider == "p1"


def test_ingest_from_unlisted_address(client, repository, valid_payload):
    """Test POST /api/data refuses callers outside the allow-list."""
    response = client.post(
        "/api/data", json=valid_payload, headers={"X-Forwarded-For": "192.168.1.1"}
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden", "message": "IP address not authorized"}
    repository.upsert.assert_not_called()


def test_ingest_without_forwarded_header_uses_peer(client, repository, valid_payload):
    response = client.post("/api/data", json=valid_payload)

    assert response.status_code == 403
    repository.upsert.assert_not_called()


def test_ingest_with_empty_allow_list(repository, allowed_headers, valid_payload):
    """Test POST /api/data reports a misconfiguration, not a 403."""
    app = create_app(Settings(_env_file=None, allowed_ips=""))
    app.dependency_overrides[get_repository] = lambda: repository
    client = TestClient(app)

    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 500
    assert response.json()["error"] == "Server misconfiguration"
    repository.upsert.assert_not_called()


def test_access_checked_before_body(client, repository):
    response = client.post(
        "/api/data", content=b"not json", headers={"X-Forwarded-For": "192.168.1.1"}
    )

    assert response.status_code == 403


def test_ingest_empty_object(client, repository, allowed_headers):
    """Test POST /api/data with {}."""
    response = client.post("/api/data", json={}, headers=allowed_headers)

    assert response.status_code == 400
    assert response.json() == {
        "error": "No data provided",
        "message": "Request body must contain data to store",
    }
    repository.upsert.assert_not_called()


def test_ingest_empty_body(client, allowed_headers):
    response = client.post("/api/data", content=b"", headers=allowed_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "No data provided"


def test_ingest_invalid_json(client, allowed_headers):
    response = client.post(
        "/api/data",
        content=b"{tx_hash:",
        headers={**allowed_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid JSON"


def test_ingest_invalid_status(client, repository, allowed_headers, valid_payload):
    """Test POST /api/data with a status outside the enum."""
    valid_payload["status"] = "Pending"

    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid data format"
    assert any(detail.startswith("status") for detail in body["details"])
    repository.upsert.assert_not_called()


def test_ingest_reports_all_field_errors(client, allowed_headers, valid_payload):
    del valid_payload["tx_hash"]
    del valid_payload["status"]

    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 400
    assert response.json()["details"] == ["tx_hash is required", "status is required"]


def test_ingest_non_object_body(client, allowed_headers):
    response = client.post("/api/data", json=[1, 2], headers=allowed_headers)

    assert response.status_code == 400
    assert response.json()["details"] == ["Request body must be a JSON object"]


def test_ingest_database_failure_is_generic(client, repository, allowed_headers, valid_payload):
    """Test POST /api/data hides database errors from the caller."""
    repository.upsert.side_effect = Exception('relation "event_records" does not exist')

    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Database persistence failed",
        "message": "Failed to store data",
    }
    assert "event_records" not in response.text


def test_ingest_passes_optional_fields_through(client, repository, allowed_headers, valid_payload):
    """Test optional columns are stored as sent, leaving parsing to the database."""
    valid_payload.update(error_message=42, total_duration_ms=True)

    response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 200
    record = repository.upsert.call_args[0][0]
    assert record.error_message == 42
    assert record.total_duration_ms is True


def test_forbidden_request_logs_address_and_allow_list(client, valid_payload):
    with capture_logs() as logs:
        response = client.post(
            "/api/data", json=valid_payload, headers={"X-Forwarded-For": "192.168.1.1"}
        )

    assert response.status_code == 403
    rejected = [entry for entry in logs if entry["log_level"] == "warning"]
    assert len(rejected) == 1
    assert rejected[0]["client_ip"] == "192.168.1.1"
    assert rejected[0]["allowed_ips"] == ["10.0.0.5", "10.0.0.6"]


def test_empty_allow_list_logged_as_misconfiguration(repository, allowed_headers, valid_payload):
    app = create_app(Settings(_env_file=None, allowed_ips=""))
    app.dependency_overrides[get_repository] = lambda: repository

    with capture_logs() as logs:
        TestClient(app).post("/api/data", json=valid_payload, headers=allowed_headers)

    assert [entry["log_level"] for entry in logs] == ["error"]
    assert "allow-list is empty" in logs[0]["event"]


def test_database_failure_logged_server_side(client, repository, allowed_headers, valid_payload):
    repository.upsert.side_effect = Exception('relation "event_records" does not exist')

    with capture_logs() as logs:
        response = client.post("/api/data", json=valid_payload, headers=allowed_headers)

    assert response.status_code == 500
    failures = [entry for entry in logs if entry["log_level"] == "error"]
    assert len(failures) == 1
    assert failures[0]["event"] == "Failed to persist event record"
    assert failures[0]["exc_info"] is True
    assert "event_records" in failures[0]["error"]
    assert "event_records" not in response.text


@pytest.mark.parametrize(
    "content, event",
    [
        (b"", "Rejected request without data"),
        (b"{}", "Rejected request without data"),
        (b"{tx_hash:", "Rejected malformed JSON body"),
    ],
)
def test_client_errors_are_logged(client, allowed_headers, content, event):
    with capture_logs() as logs:
        response = client.post("/api/data", content=content, headers=allowed_headers)

    assert response.status_code == 400
    assert [entry["event"] for entry in logs if entry["log_level"] == "warning"] == [event]
