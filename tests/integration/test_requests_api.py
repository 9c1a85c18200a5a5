"""Integration tests for blood request API endpoints."""

from fastapi.testclient import TestClient
from sqlmodel import select

from bloodbank.domain.exceptions import PersistenceConflictError
from bloodbank.domain.models import BatchStatus, BloodType, InventoryBatch, RequestStatus
from bloodbank.domain.services.inventory_ledger import InventoryLedger

VALID_REQUEST_DATA = {
    "patient_name": "John Smith",
    "hospital": "St. Mary's",
    "blood_type": "A+",
    "quantity": 5,
    "priority": "Critical",
}


def submit_request(client: TestClient, **overrides) -> dict:
    """Helper to submit a request and return the response data."""
    response = client.post("/api/requests/", json={**VALID_REQUEST_DATA, **overrides})
    assert response.status_code == 201
    return response.json()["data"]


class TestSubmitRequest:
    """Tests for POST /api/requests/."""

    def test_submit_request_success(self, client: TestClient):
        response = client.post("/api/requests/", json=VALID_REQUEST_DATA)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Blood request submitted successfully!"
        assert body["data"]["status"] == "pending"
        assert body["data"]["priority"] == "Critical"
        assert body["data"]["requested_at"].startswith("2026-03-01T12:00:00")
        assert body["data"]["processed_at"] is None

    def test_invalid_priority_rejected(self, client: TestClient):
        response = client.post("/api/requests/", json={**VALID_REQUEST_DATA, "priority": "Urgent"})
        assert response.status_code == 400

    def test_zero_quantity_rejected(self, client: TestClient):
        response = client.post("/api/requests/", json={**VALID_REQUEST_DATA, "quantity": 0})
        assert response.status_code == 400


class TestReadRequests:
    """Tests for GET /api/requests/ and GET /api/requests/{id}."""

    def test_get_request(self, client: TestClient):
        request = submit_request(client)

        response = client.get(f"/api/requests/{request['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["patient_name"] == "John Smith"

    def test_get_unknown_request_returns_404(self, client: TestClient):
        response = client.get("/api/requests/999")

        assert response.status_code == 404
        assert response.json()["error"] == "Request not found."

    def test_list_filters_by_status(self, client: TestClient):
        first = submit_request(client)
        submit_request(client, patient_name="Ann Lee")
        client.put(f"/api/requests/{first['id']}", json={"status": "cancelled"})

        pending = client.get("/api/requests/?status=pending").json()["data"]
        cancelled = client.get("/api/requests/?status=cancelled").json()["data"]

        assert [r["patient_name"] for r in pending] == ["Ann Lee"]
        assert [r["id"] for r in cancelled] == [first["id"]]


class TestApproveRequest:
    """Tests for PUT /api/requests/{id}/approve."""

    def test_approve_allocates_fifo(self, client: TestClient, session, make_batch):
        first = make_batch(BloodType.A_POS, 3, expires_in_days=5)
        second = make_batch(BloodType.A_POS, 4, expires_in_days=10)
        request = submit_request(client)

        response = client.put(
            f"/api/requests/{request['id']}/approve", json={"processed_by": "Dr. Ade"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Request fulfilled successfully and inventory updated."
        assert body["data"]["request"]["status"] == "fulfilled"
        assert body["data"]["request"]["processed_by"] == "Dr. Ade"
        assert body["data"]["units_allocated"] == 5
        allocations = body["data"]["allocations"]
        assert allocations[0]["batch_id"] == first.id
        assert allocations[0]["quantity"] == 3
        assert allocations[1]["split_from_id"] == second.id
        assert allocations[1]["quantity"] == 2

        availability = client.get("/api/inventory/availability?blood_type=A%2B").json()
        assert availability["data"][0]["available"] == 2

    def test_approve_without_body(self, client: TestClient, make_batch):
        make_batch(BloodType.A_POS, 5, expires_in_days=5)
        request = submit_request(client)

        response = client.put(f"/api/requests/{request['id']}/approve")

        assert response.status_code == 200
        assert response.json()["data"]["request"]["processed_by"] == "System"

    def test_approve_with_reserve(self, client: TestClient, session, make_batch):
        make_batch(BloodType.A_POS, 5, expires_in_days=5)
        request = submit_request(client)

        response = client.put(
            f"/api/requests/{request['id']}/approve", json={"reserve": True}
        )

        assert response.status_code == 200
        assert {a["status"] for a in response.json()["data"]["allocations"]} == {"reserved"}
        session.expire_all()
        statuses = {b.status for b in session.exec(select(InventoryBatch)).all()}
        assert statuses == {BatchStatus.RESERVED}

    def test_insufficient_stock_returns_400(self, client: TestClient, session, make_batch):
        make_batch(BloodType.O_NEG, 3, expires_in_days=5)
        request = submit_request(client, blood_type="O-", quantity=10)

        response = client.put(f"/api/requests/{request['id']}/approve")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Insufficient O- blood. Available: 3, Required: 10.",
        }
        current = client.get(f"/api/requests/{request['id']}").json()["data"]
        assert current["status"] == "pending"

    def test_approve_unknown_request_returns_404(self, client: TestClient):
        assert client.put("/api/requests/999/approve").status_code == 404

    def test_approve_twice_returns_400(self, client: TestClient, make_batch):
        make_batch(BloodType.A_POS, 10, expires_in_days=5)
        request = submit_request(client)
        client.put(f"/api/requests/{request['id']}/approve")

        response = client.put(f"/api/requests/{request['id']}/approve")

        assert response.status_code == 400
        assert "Only pending requests" in response.json()["error"]

    def test_exhausted_conflicts_return_generic_500(
        self, client: TestClient, make_batch, monkeypatch
    ):
        make_batch(BloodType.A_POS, 10, expires_in_days=5)
        request = submit_request(client)

        def always_conflict(self, *args, **kwargs):
            raise PersistenceConflictError("Batch 1 was modified concurrently")

        monkeypatch.setattr(InventoryLedger, "allocate", always_conflict)

        response = client.put(f"/api/requests/{request['id']}/approve")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "An unexpected server error occurred.",
        }


class TestUpdateRequestStatus:
    """Tests for PUT /api/requests/{id}."""

    def test_reject(self, client: TestClient, session, make_batch):
        make_batch(BloodType.A_POS, 10, expires_in_days=5)
        request = submit_request(client)

        response = client.put(
            f"/api/requests/{request['id']}",
            json={"status": "rejected", "processed_by": "Nurse Kim"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Request updated successfully."
        assert body["data"]["status"] == "rejected"
        assert body["data"]["processed_by"] == "Nurse Kim"
        availability = client.get("/api/inventory/availability?blood_type=A%2B").json()
        assert availability["data"][0]["available"] == 10

    def test_cancel(self, client: TestClient):
        request = submit_request(client)

        response = client.put(f"/api/requests/{request['id']}", json={"status": "cancelled"})

        assert response.json()["data"]["status"] == "cancelled"
        assert response.json()["data"]["processed_by"] == "System"

    def test_direct_fulfil_is_refused(self, client: TestClient):
        request = submit_request(client)

        response = client.put(f"/api/requests/{request['id']}", json={"status": "fulfilled"})

        assert response.status_code == 400
        assert "Use the approve endpoint" in response.json()["error"]
        assert client.get(f"/api/requests/{request['id']}").json()["data"]["status"] == (
            RequestStatus.PENDING.value
        )

    def test_closed_request_cannot_change(self, client: TestClient):
        request = submit_request(client)
        client.put(f"/api/requests/{request['id']}", json={"status": "rejected"})

        response = client.put(f"/api/requests/{request['id']}", json={"status": "cancelled"})

        assert response.status_code == 400

    def test_unknown_request_returns_404(self, client: TestClient):
        response = client.put("/api/requests/999", json={"status": "rejected"})
        assert response.status_code == 404


class TestDeleteRequest:
    """Tests for DELETE /api/requests/{id}."""

    def test_delete_request(self, client: TestClient):
        request = submit_request(client)

        response = client.delete(f"/api/requests/{request['id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Request deleted successfully."
        assert client.get(f"/api/requests/{request['id']}").status_code == 404

    def test_delete_unknown_request_returns_404(self, client: TestClient):
        assert client.delete("/api/requests/999").status_code == 404
