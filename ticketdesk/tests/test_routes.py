"""
Tests for the HTTP API

Repositories are replaced with the in-memory fakes through FastAPI
dependency overrides.
"""
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from ticketdesk.main import app
from ticketdesk.routes import sync
from ticketdesk.routes.dependencies import (
    get_category_repository,
    get_reconciliation_engine,
    get_ticket_service,
)

TICKET_BODY = {
    "subject": "Cannot log in",
    "description": "Login page returns 500",
    "requester_id": "user-1",
    "contact_email": "user@example.com",
}


@pytest.fixture
def client(service, categories, engine):
    app.dependency_overrides[get_ticket_service] = lambda: service
    app.dependency_overrides[get_category_repository] = lambda: categories
    app.dependency_overrides[get_reconciliation_engine] = lambda: engine
    sync.sync_state.update({"ticket_sync_in_progress": False, "last_result": None})
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def disabled_client(client, disabled_engine):
    app.dependency_overrides[get_reconciliation_engine] = lambda: disabled_engine
    return client


class TestHealth:
    """Test service endpoints"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        data = client.get("/").json()
        assert data["version"] == "1.0.0"


class TestTickets:
    """Test ticket endpoints"""

    def test_list_categories(self, client):
        response = client.get("/api/v1/tickets/categories")
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["billing", "technical"]

    def test_create_and_get(self, client):
        response = client.post("/api/v1/tickets", json=TICKET_BODY)

        assert response.status_code == 201
        created = response.json()
        assert created["category"] == "technical"
        assert created["priority"] == "high"

        fetched = client.get(f"/api/v1/tickets/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["display_number"] == created["display_number"]

    def test_invalid_category_is_400(self, client):
        response = client.post("/api/v1/tickets", json={**TICKET_BODY, "category": "nope"})
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_unknown_ticket_is_404(self, client):
        response = client.get(f"/api/v1/tickets/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_update_status(self, client):
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()

        response = client.patch(
            f"/api/v1/tickets/{created['id']}",
            json={"status": "resolved", "actor_id": "agent-1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["changed_fields"] == ["status"]
        assert data["pushed"] is False
        assert data["ticket"]["status_history"][0]["status"] == "open"

    def test_update_linked_ticket_pushes(self, client, freshdesk):
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()
        client.post(f"/api/v1/tickets/{created['id']}/push")

        response = client.patch(
            f"/api/v1/tickets/{created['id']}",
            json={"priority": "urgent", "actor_id": "agent-1"},
        )

        assert response.json()["pushed"] is True
        freshdesk.update_ticket_fields.assert_called_once_with(501, {"priority": 4})

    def test_comment_reopens(self, client):
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()
        client.patch(f"/api/v1/tickets/{created['id']}", json={"status": "resolved", "actor_id": "agent-1"})

        response = client.post(
            f"/api/v1/tickets/{created['id']}/comments",
            json={"author_id": "user-1", "content": "Still broken"},
        )

        assert response.status_code == 201
        ticket = client.get(f"/api/v1/tickets/{created['id']}").json()
        assert ticket["status"] == "open"
        thread = client.get(f"/api/v1/tickets/{created['id']}/comments").json()
        assert len(thread) == 2

    def test_push_twice_is_409(self, client):
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()

        first = client.post(f"/api/v1/tickets/{created['id']}/push")
        second = client.post(f"/api/v1/tickets/{created['id']}/push")

        assert first.status_code == 200
        assert first.json()["external_id"] == 501
        assert second.status_code == 409

    def test_push_disabled_is_503(self, disabled_client):
        created = disabled_client.post("/api/v1/tickets", json=TICKET_BODY).json()

        response = disabled_client.post(f"/api/v1/tickets/{created['id']}/push")

        assert response.status_code == 503
        assert response.json()["error"] == "IntegrationDisabled"

    def test_list_with_filters(self, client):
        client.post("/api/v1/tickets", json=TICKET_BODY)
        client.post("/api/v1/tickets", json={**TICKET_BODY, "subject": "Invoice missing", "category": "billing"})

        response = client.get("/api/v1/tickets", params={"category": "billing", "limit": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["pages"] == 1
        assert data["limit"] == 5
        assert data["tickets"][0]["subject"] == "Invoice missing"

    def test_list_search(self, client):
        client.post("/api/v1/tickets", json=TICKET_BODY)

        data = client.get("/api/v1/tickets", params={"search": "returns 500"}).json()

        assert data["total"] == 1

    def test_list_bad_paging_is_422(self, client):
        assert client.get("/api/v1/tickets", params={"page": 0}).status_code == 422
        assert client.get("/api/v1/tickets", params={"sort_order": "up"}).status_code == 422

    def test_stats(self, client):
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()
        client.patch(f"/api/v1/tickets/{created['id']}", json={"status": "resolved", "actor_id": "agent-1"})
        client.post("/api/v1/tickets", json={**TICKET_BODY, "category": "billing"})

        response = client.get("/api/v1/tickets/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["total"] == 2
        assert stats["by_status"]["resolved"] == 1
        assert stats["by_status"]["open"] == 1
        assert stats["by_category"]["billing"]["count"] == 1
        assert stats["avg_resolution_minutes"] is not None


class TestSync:
    """Test sync endpoints"""

    def test_trigger_runs_batch(self, client, freshdesk, tickets):
        freshdesk.get_ticket.return_value = {"id": 501, "status": 2, "priority": 3}
        created = client.post("/api/v1/tickets", json=TICKET_BODY).json()
        client.post(f"/api/v1/tickets/{created['id']}/push")

        response = client.post("/api/v1/sync/tickets")
        assert response.status_code == 202

        status = client.get("/api/v1/sync/status").json()
        assert status["enabled"] is True
        assert status["sync_in_progress"] is False
        assert status["last_synced"] == 1
        assert status["last_failed"] == 0

    def test_trigger_while_running_is_409(self, client):
        sync.sync_state["ticket_sync_in_progress"] = True
        response = client.post("/api/v1/sync/tickets")
        assert response.status_code == 409

    def test_second_trigger_before_task_runs_is_409(self, client, monkeypatch):
        async def pending_task(engine):
            return None

        monkeypatch.setattr(sync, "sync_tickets_task", pending_task)

        first = client.post("/api/v1/sync/tickets")
        second = client.post("/api/v1/sync/tickets")

        assert first.status_code == 202
        assert second.status_code == 409
        assert client.get("/api/v1/sync/status").json()["sync_in_progress"] is True

    def test_trigger_disabled_is_503(self, disabled_client):
        response = disabled_client.post("/api/v1/sync/tickets")
        assert response.status_code == 503

    def test_status_disabled(self, disabled_client):
        status = disabled_client.get("/api/v1/sync/status").json()
        assert status["enabled"] is False
        assert status["last_sync_started"] is None
