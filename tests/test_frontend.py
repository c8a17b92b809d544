"""
Frontend service tests.

The frontend owns no data; these tests check how it relays sibling
answers, keeps the session cookie and degrades when a sibling fails.
"""

import json

import httpx
import pytest

from conftest import USER, auth_headers, fake_verify

pytestmark = pytest.mark.frontend

ADA = auth_headers("token-ada")


def refuse(request):
    raise httpx.ConnectError("Connection refused", request=request)


def test_login_sets_cookie(frontend_client, sibling_handlers):
    # Arrange
    def user_service(request):
        if request.url.path == "/api/v1/auth/login":
            assert json.loads(request.content) == {"email": "ada@example.com", "password": "password123"}
            return httpx.Response(200, json={"success": True, "user": USER, "session_token": "token-ada"})
        return fake_verify(request)

    sibling_handlers["users"].respond = user_service

    # Act
    response = frontend_client.post("/auth/login", json={"email": "ada@example.com", "password": "password123"})

    # Assert
    assert response.status_code == 200
    assert response.json() == {"success": True, "user": USER}
    assert response.cookies.get("session_token") == "token-ada"

    home = frontend_client.get("/")
    assert home.json()["authenticated"] is True
    assert home.json()["user"]["id"] == 1


def test_login_failure_is_relayed(frontend_client, sibling_handlers):
    sibling_handlers["users"].respond = lambda request: httpx.Response(
        401, json={"success": False, "error": "Invalid email or password"}
    )

    response = frontend_client.post("/auth/login", json={"email": "ada@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password"}


def test_register_relays_validation_errors(frontend_client, sibling_handlers):
    sibling_handlers["users"].respond = lambda request: httpx.Response(
        422, json={"success": False, "errors": ["Email has already been taken"]}
    )

    response = frontend_client.post(
        "/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "password123"},
    )

    assert response.status_code == 422
    assert response.json()["errors"] == ["Email has already been taken"]


def test_login_with_user_service_down_is_503(frontend_client, sibling_handlers):
    sibling_handlers["users"].respond = refuse

    response = frontend_client.post("/auth/login", json={"email": "ada@example.com", "password": "password123"})

    assert response.status_code == 503


def test_logout_clears_cookie_even_when_user_service_fails(frontend_client, sibling_handlers):
    sibling_handlers["users"].respond = refuse
    frontend_client.cookies.set("session_token", "token-ada")

    response = frontend_client.post("/auth/logout")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "session_token=" in response.headers["set-cookie"]
    assert len(sibling_handlers["users"].requests) == 1


def test_home_for_anonymous_visitor(frontend_client):
    assert frontend_client.get("/").json() == {"authenticated": False, "user": None}


def test_dashboard_combines_tasks_and_analytics(frontend_client, sibling_handlers):
    # Arrange
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(
        200, json={"success": True, "tasks": [{"id": 1, "title": "Write report"}], "total": 1}
    )
    sibling_handlers["analytics"].respond = lambda request: httpx.Response(
        200, json={"status": "success", "data": {"total_tasks": 1, "completion_rate": 0}}
    )

    # Act
    response = frontend_client.get("/dashboard", headers=ADA)

    # Assert
    body = response.json()
    assert response.status_code == 200
    assert body["recent_tasks"] == [{"id": 1, "title": "Write report"}]
    assert body["analytics"] == {"total_tasks": 1, "completion_rate": 0}
    assert body["errors"] == []
    assert sibling_handlers["tasks"].requests[0].url.params["limit"] == "5"
    assert sibling_handlers["tasks"].requests[0].headers["Authorization"] == "Bearer token-ada"


def test_dashboard_degrades_per_sibling(frontend_client, sibling_handlers):
    sibling_handlers["analytics"].respond = refuse

    body = frontend_client.get("/dashboard", headers=ADA).json()

    assert body["success"] is True
    assert body["analytics"]["total_tasks"] == 0
    assert body["errors"] == ["Analytics: Service connection failed. Please try again later."]


def test_dashboard_treats_non_object_answers_as_failures(frontend_client, sibling_handlers):
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(200, text="OK")
    sibling_handlers["analytics"].respond = lambda request: httpx.Response(200, json=["x"])

    response = frontend_client.get("/dashboard", headers=ADA)

    assert response.status_code == 200
    body = response.json()
    assert body["recent_tasks"] == []
    assert body["analytics"]["total_tasks"] == 0
    assert body["errors"] == [
        "Tasks: Service returned an unexpected response.",
        "Analytics: Service returned an unexpected response.",
    ]


def test_task_list_with_unreadable_answer_is_502(frontend_client, sibling_handlers):
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(200, json=["x"])

    response = frontend_client.get("/tasks", headers=ADA)

    assert response.status_code == 502
    assert response.json() == {"success": False, "error": "Service returned an unexpected response."}


def test_dashboard_requires_login(frontend_client):
    assert frontend_client.get("/dashboard").status_code == 401


def test_create_task_forwards_body(frontend_client, sibling_handlers):
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(
        201, json={"success": True, "task": {"id": 5, **json.loads(request.content)}}
    )

    response = frontend_client.post("/tasks", json={"title": "Write report", "priority": "high"}, headers=ADA)

    assert response.status_code == 201
    assert response.json()["task"]["title"] == "Write report"
    assert response.json()["task"]["priority"] == "high"


def test_completing_goes_through_complete_endpoint(frontend_client, sibling_handlers):
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(
        200, json={"success": True, "task": {"id": 5, "status": "completed"}}
    )

    completed = frontend_client.patch("/tasks/5/status", json={"status": "completed"}, headers=ADA)
    started = frontend_client.patch("/tasks/5/status", json={"status": "in_progress"}, headers=ADA)
    missing = frontend_client.patch("/tasks/5/status", json={}, headers=ADA)

    assert completed.status_code == 200
    assert started.status_code == 200
    assert missing.status_code == 400
    assert sibling_handlers["tasks"].paths() == ["/api/v1/tasks/5/complete", "/api/v1/tasks/5/status"]


def test_illegal_transition_is_relayed(frontend_client, sibling_handlers):
    sibling_handlers["tasks"].respond = lambda request: httpx.Response(
        422, json={"success": False, "errors": ["Cannot transition from completed to completed"]}
    )

    response = frontend_client.patch("/tasks/5/status", json={"status": "completed"}, headers=ADA)

    assert response.status_code == 422
    assert response.json()["errors"] == ["Cannot transition from completed to completed"]


def test_analytics_page(frontend_client, sibling_handlers):
    def analytics(request):
        if request.url.path.endswith("/completion-trend"):
            return httpx.Response(200, json={"status": "success", "data": {"trend_data": [{"date": "2024-01-01", "completed_tasks": 2}]}})
        if request.url.path.endswith("/priority-distribution"):
            return httpx.Response(200, json={"status": "success", "data": {"distribution": {"high": 2}}})
        return httpx.Response(200, json={"status": "success", "data": {"total_tasks": 2}})

    sibling_handlers["analytics"].respond = analytics

    body = frontend_client.get("/analytics?days=7", headers=ADA).json()

    assert body["summary"] == {"total_tasks": 2}
    assert body["completion_trend"] == [{"date": "2024-01-01", "completed_tasks": 2}]
    assert body["priority_distribution"] == {"high": 2}
    assert body["errors"] == []


def test_analytics_page_ignores_malformed_data(frontend_client, sibling_handlers):
    sibling_handlers["analytics"].respond = lambda request: httpx.Response(200, json={"status": "success", "data": ["x"]})

    response = frontend_client.get("/analytics", headers=ADA)

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total_tasks"] == 0
    assert body["completion_trend"] == []
    assert body["priority_distribution"] == {}


def test_files_are_listed_for_caller(frontend_client, sibling_handlers):
    sibling_handlers["files"].respond = lambda request: httpx.Response(
        200, json={"data": {"items": [{"id": 3}], "pagination": {"total_count": 1}}}
    )

    body = frontend_client.get("/files", headers=ADA).json()

    assert body["files"] == [{"id": 3}]
    assert sibling_handlers["files"].requests[0].url.params["user_id"] == "1"


def test_deleting_someone_elses_file_is_404(frontend_client, sibling_handlers):
    sibling_handlers["files"].respond = lambda request: httpx.Response(200, json={"data": {"id": 3, "user_id": 2}})

    response = frontend_client.delete("/files/3", headers=ADA)

    assert response.status_code == 404
    assert [r.method for r in sibling_handlers["files"].requests] == ["GET"]


def test_deleting_own_file(frontend_client, sibling_handlers):
    def files(request):
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"data": {"id": 3, "user_id": 1}})

    sibling_handlers["files"].respond = files

    response = frontend_client.delete("/files/3", headers=ADA)

    assert response.status_code == 200
    assert [r.method for r in sibling_handlers["files"].requests] == ["GET", "DELETE"]


def test_file_pages_ignore_malformed_data(frontend_client, sibling_handlers):
    sibling_handlers["files"].respond = lambda request: httpx.Response(200, json={"data": [{"id": 3, "user_id": 1}]})

    listed = frontend_client.get("/files", headers=ADA)
    deleted = frontend_client.delete("/files/3", headers=ADA)

    assert listed.status_code == 200
    assert listed.json()["files"] == []
    assert deleted.status_code == 404
    assert [r.method for r in sibling_handlers["files"].requests] == ["GET", "GET"]
