"""
Tests for the HTTP endpoints.

Tests cover:
1. Habit, todo, journal and health routes
2. Error mapping (404 / 400 / 422)
3. Data export/import and backup files
"""
import json
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from girassol import backup_service
from girassol.database import get_db
from girassol.main import app, get_ai_service
from girassol.services.storage_service import KeyValueStore


@pytest.fixture
def client(db_session, make_ai_service, backup_dir, monkeypatch):
    def override_get_db():
        yield db_session

    ai = make_ai_service(json.dumps({"subtasks": ["Passo 1", "Passo 2"]}))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: ai
    monkeypatch.setattr(backup_service, "BACKUP_DIR", backup_dir)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestRoot:
    def test_health_check(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "active"


class TestHabitRoutes:
    """Tests for /api/habits"""

    def test_create_toggle_and_list(self, client):
        created = client.post("/api/habits", json={"title": "Meditar"})
        assert created.status_code == 201
        habit_id = created.json()["id"]

        toggled = client.post(f"/api/habits/{habit_id}/toggle", json={"date": "2026-01-29"})
        assert toggled.status_code == 200
        assert toggled.json()["completedDates"] == ["2026-01-29"]

        habits = client.get("/api/habits").json()
        assert [h["title"] for h in habits] == ["Meditar"]

        stats = client.get("/api/habits/stats").json()
        assert len(stats[0]["last_days"]) == 7

    def test_unknown_habit_is_404(self, client):
        assert client.post("/api/habits/missing/toggle", json={"date": "2026-01-29"}).status_code == 404
        assert client.delete("/api/habits/missing").status_code == 404

    def test_invalid_payload_is_422(self, client):
        assert client.post("/api/habits", json={"title": ""}).status_code == 422


class TestTodoRoutes:
    """Tests for /api/todos"""

    def test_todo_lifecycle(self, client):
        todo = client.post("/api/todos", json={"text": "Planejar viagem", "priority": "high"}).json()

        with_subtask = client.post(f"/api/todos/{todo['id']}/subtasks", json={"text": "Hotel"}).json()
        subtask_id = with_subtask["subtasks"][0]["id"]

        toggled = client.post(f"/api/todos/{todo['id']}/subtasks/{subtask_id}/toggle").json()
        assert toggled["subtasks"][0]["completed"] is True

        generated = client.post(f"/api/todos/{todo['id']}/subtasks/generate").json()
        assert [s["text"] for s in generated["subtasks"]] == ["Hotel", "Passo 1", "Passo 2"]

        assert client.post(f"/api/todos/{todo['id']}/toggle").json()["completed"] is True
        assert client.delete(f"/api/todos/{todo['id']}").status_code == 204
        assert client.get("/api/todos").json() == []

    def test_unknown_subtask_is_404(self, client):
        todo = client.post("/api/todos", json={"text": "Planejar"}).json()

        response = client.delete(f"/api/todos/{todo['id']}/subtasks/missing")
        assert response.status_code == 404


class TestJournalRoutes:
    """Tests for /api/journal"""

    def test_create_update_delete(self, client):
        entry = client.post("/api/journal", json={"content": "Bom dia", "mood": "happy"}).json()

        updated = client.put(f"/api/journal/{entry['id']}", json={"mood": "sad"})
        assert updated.json()["mood"] == "sad"
        assert updated.json()["content"] == "Bom dia"

        assert client.delete(f"/api/journal/{entry['id']}").status_code == 204
        assert client.put(f"/api/journal/{entry['id']}", json={"mood": "sad"}).status_code == 404

    def test_analyze(self, client):
        entry = client.post("/api/journal", json={"content": "Bom dia"}).json()

        response = client.post(f"/api/journal/{entry['id']}/analyze")

        assert response.status_code == 200
        assert response.json()["aiAnalysis"]


class TestHealthRoutes:
    """Tests for /api/health-logs"""

    def test_upsert_and_read(self, client):
        client.put("/api/health-logs", json={"date": "2026-01-30", "weight": 80})
        logs = client.put("/api/health-logs", json={
            "date": "2026-01-30", "weight": 79.5, "workout": True,
            "meals": {"breakfast": True, "morningSnack": True}
        }).json()

        assert len(logs) == 1
        assert logs[0]["meals"]["morningSnack"] is True

        log = client.get("/api/health-logs/2026-01-30").json()
        assert log["weight"] == 79.5
        assert client.get("/api/health-logs/weights").json() == [{"date": "2026-01-30", "weight": 79.5}]

    def test_blank_day_and_errors(self, client):
        assert client.get("/api/health-logs/2026-01-01").json()["workout"] is False
        assert client.get("/api/health-logs/01-01-2026").status_code == 400
        assert client.delete("/api/health-logs/2026-01-01").status_code == 404
        assert client.put("/api/health-logs", json={"date": "ontem"}).status_code == 422


class TestPreferenceAndCalendarRoutes:
    def test_preferences(self, client):
        assert client.get("/api/preferences").json()["notificationTime"] == "09:00"

        updated = client.put("/api/preferences", json={"notifications": True, "notificationTime": "21:00"})
        assert updated.json()["notifications"] is True
        assert updated.json()["notificationTime"] == "21:00"

        assert client.put("/api/preferences", json={"notificationTime": "9h"}).status_code == 422

    def test_month_grid(self, client):
        grid = client.get("/api/calendar/2025/1").json()

        assert grid["leading_blanks"] == 3
        assert len(grid["days"]) == 31
        assert client.get("/api/calendar/2025/13").status_code == 422

    def test_last_days(self, client):
        assert len(client.get("/api/calendar/last-days?n=5").json()) == 5

    def test_progress(self, client):
        assert client.get("/api/progress").json()["tasks"] == {"completed": 0, "pending": 0}


class TestDataRoutes:
    """Tests for export/import/clear"""

    def test_export_import_round_trip(self, client):
        client.post("/api/habits", json={"title": "Ler"})
        document = client.get("/api/data/export").text

        assert client.delete("/api/data").status_code == 204
        assert client.get("/api/habits").json() == []

        response = client.post("/api/data/import", content=document)
        assert response.status_code == 200
        assert "habits" in response.json()["written"]
        assert client.get("/api/habits").json()[0]["title"] == "Ler"

    def test_rejected_import(self, client):
        response = client.post("/api/data/import", content="[1, 2, 3]")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid backup file"

    def test_unwritable_import_is_500(self, client):
        """Should not answer success when the store refuses every write"""
        with patch.object(KeyValueStore, "set", return_value=False):
            response = client.post("/api/data/import", content='{"habits": []}')

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to write backup data"

    def test_scalar_collections_still_readable(self, client):
        response = client.post("/api/data/import", content='{"habits": 5, "todos": true}')
        assert response.status_code == 200
        assert response.json()["failed"] == []

        assert client.get("/api/habits").status_code == 200
        assert client.get("/api/habits").json() == []
        assert client.get("/api/todos").json() == []
        assert client.get("/api/progress").status_code == 200


class TestBackupRoutes:
    """Tests for /api/backups"""

    def test_create_list_restore_delete(self, client):
        client.post("/api/todos", json={"text": "Correr"})

        created = client.post("/api/backups")
        assert created.status_code == 201
        filename = created.json()["filename"]
        assert created.json()["backup_type"] == "manual"

        assert [b["filename"] for b in client.get("/api/backups").json()] == [filename]
        assert json.loads(client.get(f"/api/backups/{filename}").text)["todos"][0]["text"] == "Correr"

        client.delete("/api/data")
        restored = client.post(f"/api/backups/{filename}/restore")
        assert restored.status_code == 200
        assert client.get("/api/todos").json()[0]["text"] == "Correr"

        assert client.delete(f"/api/backups/{filename}").status_code == 204
        assert client.get(f"/api/backups/{filename}").status_code == 404
