"""Tests for the students endpoints."""

import pytest
from fastapi.testclient import TestClient

from core.errors import ConfigurationError


def create(client, student_number, name="Ada Lovelace", title=None):
    response = client.post(
        "/students",
        json={"student_number": student_number, "name": name, "title": title},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestAppLifecycle:
    """Tests for startup and health."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": True}

    def test_root(self, client):
        assert client.get("/").status_code == 200

    def test_startup_fails_without_connection_string(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        import main

        with pytest.raises(ConfigurationError):
            with TestClient(main.app):
                pass


class TestStudentsApi:
    """Tests for /students."""

    def test_create_writes_student_and_log(self, client, run, direct_executor):
        student = create(client, 1001, "  Ada Lovelace ", "Countess")
        assert student["student_number"] == 1001
        assert student["name"] == "Ada Lovelace"
        assert student["title"] == "Countess"

        messages = run(
            direct_executor.query_many(
                "SELECT message FROM logs WHERE student_id = :id",
                {"id": student["student_id"]},
                into=str,
            )
        )
        assert messages == ["created student 1001"]

    def test_create_duplicate_number(self, client):
        create(client, 1001)
        response = client.post("/students", json={"student_number": 1001, "name": "Someone"})
        assert response.status_code == 409

    def test_create_validation(self, client):
        response = client.post("/students", json={"student_number": 0, "name": "Ada"})
        assert response.status_code == 422

    def test_create_blank_name_rejected(self, client, run, direct_executor):
        response = client.post("/students", json={"student_number": 5, "name": "   "})
        assert response.status_code == 422
        assert run(direct_executor.execute_scalar("SELECT COUNT(*) FROM students", into=int)) == 0

    def test_update_blank_name_rejected(self, client):
        student = create(client, 5, "Ada")
        response = client.put(
            f"/students/{student['student_id']}", json={"student_number": 5, "name": "   "}
        )
        assert response.status_code == 422
        assert client.get("/students/5").json()["name"] == "Ada"

    def test_get_by_number(self, client):
        create(client, 1001, "Ada")
        response = client.get("/students/1001")
        assert response.status_code == 200
        assert response.json()["name"] == "Ada"

    def test_get_by_number_not_found(self, client):
        assert client.get("/students/999").status_code == 404

    def test_get_by_non_positive_number(self, client):
        assert client.get("/students/0").status_code == 400

    def test_get_invalid_stored_row(self, client, run, direct_executor):
        run(
            direct_executor.execute(
                "INSERT INTO students (student_number, name) VALUES (:n, :name)",
                {"n": 5, "name": "   "},
            )
        )
        assert client.get("/students/5").status_code == 422

    def test_list_skips_invalid_rows(self, client, run, direct_executor):
        create(client, 1, "Ada")
        run(
            direct_executor.execute(
                "INSERT INTO students (student_number, name) VALUES (:n, NULL)", {"n": 2}
            )
        )
        create(client, 3, "Grace")

        body = client.get("/students").json()
        assert body["count"] == 2
        assert [s["student_number"] for s in body["students"]] == [1, 3]

    def test_first_name(self, client):
        assert client.get("/students/first-name").status_code == 404
        create(client, 7, "Grace Hopper")
        create(client, 8, "Ada")
        assert client.get("/students/first-name").json() == {"name": "Grace Hopper"}

    def test_import(self, client):
        response = client.post(
            "/students/import",
            json={
                "students": [
                    {"student_number": n, "name": f"Student {n}"} for n in (10, 11, 12)
                ]
            },
        )
        assert response.status_code == 201
        assert response.json() == {"ok": True, "inserted": 3}
        assert client.get("/students").json()["count"] == 3

    def test_import_duplicate_is_conflict_and_atomic(self, client):
        create(client, 10)
        response = client.post(
            "/students/import",
            json={"students": [{"student_number": 20, "name": "A"}, {"student_number": 10, "name": "B"}]},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "ConstraintViolationError"
        assert client.get("/students/20").status_code == 404

    def test_import_requires_rows(self, client):
        assert client.post("/students/import", json={"students": []}).status_code == 422

    def test_summary(self, client):
        for number in (1, 2, 3):
            create(client, number, f"Student {number}")

        body = client.get("/students/summary", params={"limit": 2}).json()
        assert body["total"] == 3
        assert [s["student_number"] for s in body["latest"]] == [3, 2]

    def test_update(self, client):
        student = create(client, 1, "Ada")
        response = client.put(
            f"/students/{student['student_id']}",
            json={"student_number": 2, "name": "Ada King", "title": "Countess"},
        )
        assert response.status_code == 200
        assert response.json()["student_number"] == 2
        assert response.json()["name"] == "Ada King"

    def test_update_missing(self, client):
        response = client.put("/students/999", json={"student_number": 2, "name": "Nobody"})
        assert response.status_code == 404

    def test_delete_removes_student_and_logs(self, client, run, direct_executor):
        student = create(client, 1, "Ada")
        response = client.delete(f"/students/{student['student_id']}")
        assert response.status_code == 200
        assert client.get("/students/1").status_code == 404
        assert run(direct_executor.execute_scalar("SELECT COUNT(*) FROM logs", into=int)) == 0

    def test_delete_missing(self, client):
        assert client.delete("/students/999").status_code == 404
