"""
Integration tests for the web API
"""

import pytest
from fastapi.testclient import TestClient

from microtasker.webapp.server.app import app
from microtasker.webapp.server.auth import reset_auth_service
from microtasker.services.task_service import reset_task_service


@pytest.fixture
def client(test_db, test_config):
    """Test client wired to the temporary database"""
    reset_auth_service()
    reset_task_service()

    with TestClient(app) as test_client:
        yield test_client

    reset_auth_service()
    reset_task_service()


def register(client, email="user@example.com", password="password123", name="Test User"):
    return client.post("/api/auth/register", json={"email": email, "password": password, "name": name})


@pytest.fixture
def tokens(client):
    response = register(client)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def headers(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


class TestService:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_anonymous(self, client):
        data = client.get("/").json()

        assert data["service"] == "MicroTasker"
        assert data["user"] is None

    def test_root_signed_in(self, client, headers):
        assert client.get("/", headers=headers).json()["user"] == "user@example.com"


class TestAuthEndpoints:
    """Test registration, login, refresh and logout."""

    def test_register(self, client):
        response = register(client)
        data = response.json()

        assert response.status_code == 201
        assert data["user"]["email"] == "user@example.com"
        assert data["token_type"] == "Bearer"
        assert data["access_token"]
        assert data["refresh_token"]

    def test_register_duplicate(self, client, tokens):
        assert register(client).status_code == 409

    def test_register_invalid_email(self, client):
        assert register(client, email="not-an-email").status_code == 422

    def test_register_short_password(self, client):
        assert register(client, password="short").status_code == 422

    def test_login(self, client, tokens):
        response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "password123"})

        assert response.status_code == 200
        assert response.json()["user"]["last_login"] is not None

    def test_login_wrong_password(self, client, tokens):
        response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "wrong-pass"})
        assert response.status_code == 401

    def test_me(self, client, headers):
        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Test User"

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401

    def test_verify(self, client, headers):
        assert client.get("/api/auth/verify", headers=headers).json()["valid"] is True

    def test_refresh_with_body(self, client, tokens):
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        new_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
        assert client.get("/api/auth/me", headers=new_headers).status_code == 200

    def test_refresh_with_header(self, client, tokens):
        response = client.post("/api/auth/refresh",
                               headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert response.status_code == 200

    def test_refresh_with_access_token_rejected(self, client, tokens):
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    def test_logout_revokes_access_token(self, client, headers):
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestTaskEndpoints:
    """Test task CRUD."""

    def test_requires_auth(self, client):
        assert client.get("/api/tasks").status_code == 401

    def test_create_and_list(self, client, headers):
        response = client.post("/api/tasks", headers=headers, json={
            "title": "Read Psalm 1",
            "category": "Read",
            "tags": ["bible", " "],
            "priority": "High",
            "due_date": "2024-06-01",
        })

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["category"] == "Read"
        assert task["tags"] == ["bible"]
        assert response.json()["template"] is None

        listing = client.get("/api/tasks", headers=headers).json()
        assert listing["count"] == 1
        assert listing["tasks"][0]["id"] == task["id"]

    def test_create_invalid_category(self, client, headers):
        response = client.post("/api/tasks", headers=headers, json={"title": "x", "category": "Cook"})
        assert response.status_code == 422

    def test_create_recurring(self, client, headers):
        response = client.post("/api/tasks", headers=headers, json={
            "title": "Pray", "frequency": "daily", "start_date": "2024-06-01",
        })
        data = response.json()

        assert data["template"]["is_template"] is True
        assert data["task"]["template_id"] == data["template"]["id"]

        listing = client.get("/api/tasks", params={"include_templates": "false"}, headers=headers).json()
        assert listing["count"] == 1

    def test_get_update_delete(self, client, headers):
        task_id = client.post("/api/tasks", headers=headers, json={"title": "Draft"}).json()["task"]["id"]

        assert client.get(f"/api/tasks/{task_id}", headers=headers).json()["task"]["title"] == "Draft"

        response = client.put(f"/api/tasks/{task_id}", headers=headers, json={"title": "Final", "priority": "Low"})
        assert response.status_code == 200
        assert response.json()["task"]["title"] == "Final"
        assert response.json()["task"]["priority"] == "Low"

        assert client.delete(f"/api/tasks/{task_id}", headers=headers).status_code == 200
        assert client.get(f"/api/tasks/{task_id}", headers=headers).status_code == 404

    def test_complete_spawns_next(self, client, headers):
        data = client.post("/api/tasks", headers=headers, json={
            "title": "Water plants", "frequency": "weekly",
            "start_date": "2024-06-01", "end_date": "2024-06-10",
        }).json()

        response = client.post(f"/api/tasks/{data['task']['id']}/complete", headers=headers)
        body = response.json()

        assert response.status_code == 200
        assert body["task"]["completed"] is True
        assert body["task"]["completed_at"] is not None
        assert body["next_task"]["due_date"] == "2024-06-08"

        last = client.put(f"/api/tasks/{body['next_task']['id']}", headers=headers, json={"completed": True})
        assert last.json()["next_task"] is None

    def test_uncomplete_clears_timestamp(self, client, headers):
        task_id = client.post("/api/tasks", headers=headers, json={"title": "Draft"}).json()["task"]["id"]
        client.post(f"/api/tasks/{task_id}/complete", headers=headers)

        task = client.put(f"/api/tasks/{task_id}", headers=headers, json={"completed": False}).json()["task"]
        assert task["completed"] is False
        assert task["completed_at"] is None

    def test_complete_template_rejected(self, client, headers):
        data = client.post("/api/tasks", headers=headers, json={"title": "Pray", "frequency": "daily"}).json()
        response = client.post(f"/api/tasks/{data['template']['id']}/complete", headers=headers)
        assert response.status_code == 400

    def test_other_users_task_is_not_found(self, client, headers):
        task_id = client.post("/api/tasks", headers=headers, json={"title": "Private"}).json()["task"]["id"]
        other = register(client, email="other@example.com").json()
        other_headers = {"Authorization": f"Bearer {other['access_token']}"}

        assert client.get(f"/api/tasks/{task_id}", headers=other_headers).status_code == 404
        assert client.delete(f"/api/tasks/{task_id}", headers=other_headers).status_code == 404


class TestCaptureEndpoints:
    """Test quick capture over HTTP."""

    def test_capture(self, client, headers):
        response = client.post("/api/capture", headers=headers, json={
            "text": "Write email /write #urgent #today", "today": "2024-06-01",
        })
        task = response.json()["task"]

        assert response.status_code == 201
        assert task["title"] == "Write email"
        assert task["category"] == "Write"
        assert task["priority"] == "High"
        assert task["due_date"] == "2024-06-01"

    def test_capture_recurring(self, client, headers):
        data = client.post("/api/capture", headers=headers, json={
            "text": "Call mom #daily", "today": "2024-06-01",
        }).json()

        assert data["template"]["frequency"] == "daily"
        assert data["task"]["due_date"] == "2024-06-01"

    def test_capture_rejected(self, client, headers):
        response = client.post("/api/capture", headers=headers, json={"text": "/write #urgent"})
        detail = response.json()["detail"]

        assert response.status_code == 400
        assert "No task title" in detail["errors"][0]
        assert detail["suggestions"] == []
        assert client.get("/api/tasks", headers=headers).json()["count"] == 0

    def test_preview_stores_nothing(self, client, headers):
        response = client.post("/api/capture/preview", headers=headers, json={
            "text": "Draft /wrte #to", "today": "2024-06-01",
        })
        data = response.json()

        assert data["draft"]["title"] == "Draft /wrte"
        assert data["draft"]["tags"] == ["to"]
        assert data["suggestions"] == ["Did you mean /write instead of /wrte?"]
        assert data["completions"] == ["#today", "#tomorrow"]
        assert client.get("/api/tasks", headers=headers).json()["count"] == 0


class TestViewEndpoints:

    def test_today_and_progress(self, client, headers):
        first = client.post("/api/capture", headers=headers, json={
            "text": "Write email #urgent #today", "today": "2024-06-01"
        }).json()["task"]
        client.post("/api/capture", headers=headers, json={"text": "Stretch #low #today", "today": "2024-06-01"})

        today = client.get("/api/views/today", params={"day": "2024-06-01"}, headers=headers).json()
        assert [t["title"] for t in today["tasks"]] == ["Write email", "Stretch"]
        assert today["estimated_minutes"] == 7.0

        client.post(f"/api/tasks/{first['id']}/complete", headers=headers)
        progress = client.get("/api/progress", headers=headers).json()
        assert progress["completed_today"] == 1
        assert progress["streak"] == 1

    def test_backlog(self, client, headers):
        client.post("/api/capture", headers=headers, json={"text": "Someday idea #ideas"})
        client.post("/api/capture", headers=headers, json={"text": "Dated #today"})

        backlog = client.get("/api/views/backlog", headers=headers).json()
        assert [t["title"] for t in backlog["tasks"]] == ["Someday idea"]
        assert backlog["filter"] == "unplanned"

        everything = client.get("/api/views/backlog", params={"filter": "all"}, headers=headers).json()
        assert everything["count"] == 2

        searched = client.get("/api/views/backlog", params={"filter": "all", "search": "idea"},
                              headers=headers).json()
        assert searched["count"] == 1

    def test_planning(self, client, headers):
        client.post("/api/capture", headers=headers, json={"text": "Plan trip #tomorrow", "today": "2024-06-01"})

        planning = client.get("/api/views/planning", params={"day": "2024-06-02"}, headers=headers).json()
        assert planning["count"] == 1
        assert planning["day"] == "2024-06-02"

    def test_completed(self, client, headers):
        task_id = client.post("/api/capture", headers=headers, json={"text": "Done soon"}).json()["task"]["id"]
        client.post(f"/api/tasks/{task_id}/complete", headers=headers)

        completed = client.get("/api/views/completed", headers=headers).json()
        assert [t["id"] for t in completed["tasks"]] == [task_id]
