"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from cheque_clearance.api.dependencies import get_status_publisher
from cheque_clearance.domain.exceptions import UpstreamUnavailableError
from cheque_clearance.domain.snapshot import decode_notes
from tests.conftest import FailingPublisher


@pytest.fixture
def order_payload():
    return {
        "amount_cents": 125000,
        "currency": "USD",
        "obligation_ref": "inst-001",
        "payment_method": "cheque",
        "cheque_number": "000451",
        "cheque_date": "2025-09-20",
        "created_by": "cashier-1",
        "evidence_documents": [
            {
                "document_hash": "sha256:aa11",
                "document_asset_url": "https://files.example/slip.pdf",
                "document_name": "deposit-slip.pdf",
            }
        ],
    }


@pytest.fixture
def order_id(client: TestClient, installment, order_payload) -> str:
    response = client.post("/v1/orders", json=order_payload)
    assert response.status_code == 201
    return response.json()["order_id"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "cheque_transition_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_order(client: TestClient, installment, order_payload, publisher):
    """Test POST /v1/orders records a Received cheque and extends the due date"""
    response = client.post("/v1/orders", json=order_payload)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Received"
    assert data["payment_status"] == "Unclear_Received"
    assert data["effective_due_date"] == "2025-09-20"
    assert data["version"] == 1
    assert data["notes"]["chequeStatus"] == "Received"
    assert len(data["history"]) == 1
    assert data["history"][0]["documents"][0]["document_name"] == "deposit-slip.pdf"
    assert publisher.latest(data["order_id"])["chequeStatus"] == "Received"

    obligation = client.get("/v1/obligations/inst-001").json()
    assert obligation["original_due_date"] == "2025-09-15"
    assert obligation["effective_due_date"] == "2025-09-20"


def test_create_order_for_one_time_obligation(client: TestClient, one_time_obligation, order_payload):
    order_payload["obligation_ref"] = "once-001"
    response = client.post("/v1/orders", json=order_payload)
    assert response.status_code == 422


def test_create_order_for_unknown_obligation(client: TestClient, db, order_payload):
    response = client.post("/v1/orders", json=order_payload)
    assert response.status_code == 404


def test_create_order_rejects_other_payment_methods(client: TestClient, installment, order_payload):
    order_payload["payment_method"] = "card"
    response = client.post("/v1/orders", json=order_payload)
    assert response.status_code == 422


def test_get_order(client: TestClient, order_id):
    """Test GET /v1/orders/{order_id}"""
    response = client.get(f"/v1/orders/{order_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["order_id"] == order_id
    assert data["obligation_ref"] == "inst-001"
    assert data["payment_method"] == "cheque"
    assert data["amount_cents"] == 125000


def test_get_order_not_found(client: TestClient, db):
    """Test GET /v1/orders/{order_id} with unknown ID"""
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/v1/orders/{fake_uuid}").status_code == 404
    assert client.get("/v1/orders/not-a-uuid").status_code == 404


def test_update_cheque_status(client: TestClient, order_id, publisher):
    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Presented", "acting_user": "admin-1", "presentation_date": "2025-09-02"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Presented"
    assert data["payment_status"] == "Unclear_Presented"
    assert data["version"] == 2
    assert publisher.latest(order_id)["presentationDate"] == "2025-09-02"


def test_illegal_transition_is_conflict(client: TestClient, order_id):
    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Cleared", "acting_user": "admin-1", "clearance_date": "2025-09-04"},
    )

    assert response.status_code == 409
    assert "Received -> Cleared" in response.json()["detail"]


def test_missing_evidence_is_unprocessable(client: TestClient, order_id):
    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Presented", "acting_user": "admin-1"},
    )

    assert response.status_code == 422
    assert client.get(f"/v1/orders/{order_id}").json()["status"] == "Received"


def test_stale_expected_version_is_conflict(client: TestClient, order_id):
    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={
            "target_status": "Presented",
            "acting_user": "admin-1",
            "presentation_date": "2025-09-02",
            "expected_version": 7,
        },
    )
    assert response.status_code == 409


def test_update_unknown_order(client: TestClient, db):
    response = client.post(
        "/v1/orders/00000000-0000-0000-0000-000000000000/cheque-status",
        json={"target_status": "Presented", "acting_user": "admin-1", "presentation_date": "2025-09-02"},
    )
    assert response.status_code == 404


def test_publish_failure_is_service_unavailable(client: TestClient, order_id):
    """Obligation service down: 503 and nothing changes locally"""
    client.app.dependency_overrides[get_status_publisher] = FailingPublisher

    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Presented", "acting_user": "admin-1", "presentation_date": "2025-09-02"},
    )

    assert response.status_code == 503
    data = client.get(f"/v1/orders/{order_id}").json()
    assert data["status"] == "Received"
    assert len(data["history"]) == 1


def test_idempotency_key_replays_transition(client: TestClient, order_id, publisher):
    body = {"target_status": "Presented", "acting_user": "admin-1", "presentation_date": "2025-09-02"}
    headers = {"Idempotency-Key": "present-1"}

    first = client.post(f"/v1/orders/{order_id}/cheque-status", json=body, headers=headers)
    published = len(publisher.published)
    second = client.post(f"/v1/orders/{order_id}/cheque-status", json=body, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["version"] == first.json()["version"]
    assert len(second.json()["history"]) == 2
    assert len(publisher.published) == published


def test_idempotency_key_reused_for_other_target_is_conflict(client: TestClient, order_id):
    headers = {"Idempotency-Key": "present-1"}
    client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Presented", "acting_user": "admin-1", "presentation_date": "2025-09-02"},
        headers=headers,
    )

    response = client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Bounced", "acting_user": "admin-1", "reason": "account closed"},
        headers=headers,
    )

    assert response.status_code == 409
    assert client.get(f"/v1/orders/{order_id}").json()["status"] == "Presented"


def test_get_history(client: TestClient, order_id):
    """Test GET /v1/orders/{order_id}/history"""
    client.post(
        f"/v1/orders/{order_id}/cheque-status",
        json={"target_status": "Returned", "acting_user": "admin-1", "reason": "stale date"},
    )

    response = client.get(f"/v1/orders/{order_id}/history")

    assert response.status_code == 200
    events = response.json()["events"]
    assert [e["sequence"] for e in events] == [1, 2]
    assert events[0]["previous_status"] is None
    assert events[1]["new_status"] == "Returned"
    assert events[1]["reason"] == "stale date"


def test_register_and_get_obligation(client: TestClient, db):
    response = client.post(
        "/v1/obligations",
        json={
            "obligation_id": "inst-777",
            "kind": "installment",
            "amount_cents": 40000,
            "currency": "USD",
            "due_date": "2025-10-01",
        },
    )

    assert response.status_code == 201
    data = client.get("/v1/obligations/inst-777").json()
    assert data["kind"] == "installment"
    assert data["original_due_date"] == data["effective_due_date"] == "2025-10-01"


def test_register_duplicate_obligation(client: TestClient, installment):
    response = client.post(
        "/v1/obligations",
        json={
            "obligation_id": "inst-001",
            "kind": "installment",
            "amount_cents": 125000,
            "currency": "USD",
            "due_date": "2025-09-15",
        },
    )
    assert response.status_code == 409


def test_get_obligation_not_found(client: TestClient, db):
    assert client.get("/v1/obligations/missing").status_code == 404


@patch("cheque_clearance.infrastructure.clients.status_reader.StatusReader.fetch_snapshot")
def test_batch_payment_status(mock_fetch: AsyncMock, client: TestClient, clock):
    """Test POST /v1/payment-status/batch with one unreachable order"""
    bags = {
        "order-paid": decode_notes({"chequeStatus": "Cleared", "effectiveDueDate": "2025-09-20"}),
        "order-late": decode_notes({"chequeStatus": "Bounced", "effectiveDueDate": "2025-09-20"}),
        "order-none": None,
    }

    async def fetch(order_id, http_client):
        if order_id == "order-down":
            raise UpstreamUnavailableError("Obligation service timeout after 2.0s")
        return bags[order_id]

    mock_fetch.side_effect = fetch
    clock.set(2025, 9, 25)

    response = client.post(
        "/v1/payment-status/batch",
        json={"order_ids": ["order-paid", "order-late", "order-none", "order-down"]},
    )

    assert response.status_code == 200
    items = {item["order_id"]: item for item in response.json()["items"]}
    assert items["order-paid"]["payment_status"] == "Paid"
    assert items["order-paid"]["cheque_status"] == "Cleared"
    assert items["order-late"]["payment_status"] == "Overdue"
    assert items["order-none"]["payment_status"] == "Pending"
    assert items["order-none"]["degraded"] is False
    assert items["order-down"]["payment_status"] == "Pending"
    assert items["order-down"]["degraded"] is True


def test_batch_requires_order_ids(client: TestClient):
    response = client.post("/v1/payment-status/batch", json={"order_ids": []})
    assert response.status_code == 422
