import pytest
from fastapi.testclient import TestClient

from taskdesk.models.audit import AuditLog
from taskdesk.models.project import Project


@pytest.fixture
def alpha(client: TestClient, pm_user, executor_user, auth_headers):
    headers = auth_headers(pm_user)
    project = client.post("/projects/", json={"title": "Alpha", "description": "First"}, headers=headers).json()
    client.post(
        f"/projects/{project['id']}/members",
        json={"user_id": str(executor_user.id), "role": "executor"},
        headers=headers,
    )
    return project


def test_create_project(client: TestClient, db, pm_user, auth_headers):
    response = client.post("/projects/", json={"title": "Alpha"}, headers=auth_headers(pm_user))
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Alpha"
    assert data["owner_id"] == str(pm_user.id)
    assert response.headers["X-Stale-Views"] == "/projects"
    assert db.query(AuditLog).filter_by(action="project_created").count() == 1


def test_create_project_forbidden_for_executor(client: TestClient, db, executor_user, auth_headers):
    response = client.post("/projects/", json={"title": "Alpha"}, headers=auth_headers(executor_user))
    assert response.status_code == 403
    assert "X-Stale-Views" not in response.headers
    assert db.query(Project).count() == 0


def test_create_project_missing_title(client: TestClient, pm_user, auth_headers):
    response = client.post("/projects/", json={"description": "No title"}, headers=auth_headers(pm_user))
    assert response.status_code == 422


def test_list_projects_visibility(client: TestClient, alpha, pm_user, executor_user, other_executor, auth_headers):
    client.post("/projects/", json={"title": "Beta"}, headers=auth_headers(pm_user))

    titles = [p["title"] for p in client.get("/projects/", headers=auth_headers(executor_user)).json()]
    assert titles == ["Alpha"]
    assert client.get("/projects/", headers=auth_headers(other_executor)).json() == []
    assert len(client.get("/projects/", headers=auth_headers(pm_user)).json()) == 2


def test_get_project(client: TestClient, alpha, executor_user, other_executor, auth_headers):
    assert client.get(f"/projects/{alpha['id']}", headers=auth_headers(executor_user)).status_code == 200
    assert client.get(f"/projects/{alpha['id']}", headers=auth_headers(other_executor)).status_code == 403
    missing = client.get("/projects/00000000-0000-0000-0000-000000000000", headers=auth_headers(executor_user))
    assert missing.status_code == 404


def test_update_project(client: TestClient, alpha, pm_user, executor_user, auth_headers):
    response = client.patch(f"/projects/{alpha['id']}", json={"title": "Alpha v2"}, headers=auth_headers(pm_user))
    assert response.status_code == 200
    assert response.json()["title"] == "Alpha v2"
    assert response.headers["X-Stale-Views"] == f"/projects,/projects/{alpha['id']}"

    response = client.patch(f"/projects/{alpha['id']}", json={"title": "Mine"}, headers=auth_headers(executor_user))
    assert response.status_code == 403


def test_members(client: TestClient, alpha, pm_user, executor_user, auth_headers):
    response = client.get(f"/projects/{alpha['id']}/members", headers=auth_headers(executor_user))
    assert response.status_code == 200
    roles = {m["user"]["email"]: m["role"] for m in response.json()}
    assert roles == {"pm@example.com": "project_manager", "executor@example.com": "executor"}


def test_add_member_twice(client: TestClient, alpha, pm_user, executor_user, auth_headers):
    response = client.post(
        f"/projects/{alpha['id']}/members",
        json={"user_id": str(executor_user.id), "role": "observer"},
        headers=auth_headers(pm_user),
    )
    assert response.status_code == 400


def test_add_member_invalid_role(client: TestClient, alpha, pm_user, other_executor, auth_headers):
    response = client.post(
        f"/projects/{alpha['id']}/members",
        json={"user_id": str(other_executor.id), "role": "admin"},
        headers=auth_headers(pm_user),
    )
    assert response.status_code == 422


def test_remove_member_and_owner(client: TestClient, alpha, pm_user, executor_user, auth_headers):
    headers = auth_headers(pm_user)
    response = client.delete(f"/projects/{alpha['id']}/members/{executor_user.id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["result"] == str(executor_user.id)

    response = client.delete(f"/projects/{alpha['id']}/members/{pm_user.id}", headers=headers)
    assert response.status_code == 400


def test_delete_project(client: TestClient, db, alpha, pm_user, executor_user, auth_headers):
    assert client.delete(f"/projects/{alpha['id']}", headers=auth_headers(executor_user)).status_code == 403

    response = client.delete(f"/projects/{alpha['id']}", headers=auth_headers(pm_user))
    assert response.status_code == 200
    assert response.json() == {"result": alpha["id"], "detail": "Project deleted"}
    assert db.query(Project).count() == 0
    assert client.get(f"/projects/{alpha['id']}", headers=auth_headers(pm_user)).status_code == 404


def test_project_audit_log_endpoint(client: TestClient, alpha, executor_user, other_executor, auth_headers):
    response = client.get("/audit/", params={"project_id": alpha["id"]}, headers=auth_headers(executor_user))
    assert response.status_code == 200
    actions = {log["action"] for log in response.json()}
    assert {"project_created", "member_added"} <= actions

    response = client.get("/audit/", headers=auth_headers(executor_user))
    assert response.status_code == 403
    response = client.get("/audit/", params={"project_id": alpha["id"]}, headers=auth_headers(other_executor))
    assert response.status_code == 403
