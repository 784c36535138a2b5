from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from taskdesk.models.notification import Notification

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def alpha(client: TestClient, pm_user, executor_user, auth_headers):
    headers = auth_headers(pm_user)
    project = client.post("/projects/", json={"title": "Alpha"}, headers=headers).json()
    client.post(
        f"/projects/{project['id']}/members",
        json={"user_id": str(executor_user.id), "role": "executor"},
        headers=headers,
    )
    return project


def test_cron_requires_secret(client: TestClient):
    assert client.post("/api/cron/deadline-reminders").status_code == 401
    response = client.post("/api/cron/deadline-reminders", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_cron_usage_message(client: TestClient):
    response = client.get("/api/cron/deadline-reminders")
    assert response.status_code == 200
    assert response.json() == {
        "message": "Deadline reminders endpoint",
        "usage": "Use POST with proper authorization",
    }


def test_cron_sends_reminders(client: TestClient, db, alpha, pm_user, executor_user, auth_headers):
    due = datetime.now(timezone.utc) + timedelta(hours=30)
    client.post(
        "/tasks/",
        json={
            "title": "Due soon",
            "project_id": alpha["id"],
            "assignee_id": str(executor_user.id),
            "due_date": due.isoformat(),
        },
        headers=auth_headers(pm_user),
    )
    client.post(
        "/tasks/",
        json={"title": "No deadline", "project_id": alpha["id"], "assignee_id": str(executor_user.id)},
        headers=auth_headers(pm_user),
    )

    response = client.post("/api/cron/deadline-reminders", headers=CRON_HEADERS)
    assert response.status_code == 200
    assert response.json() == {"success": True, "tasksProcessed": 1, "remindersSent": 1, "errors": 0}
    assert db.query(Notification).filter_by(type="deadline_reminder", recipient_id=executor_user.id).count() == 1


def test_cron_with_nothing_due(client: TestClient):
    response = client.post("/api/cron/deadline-reminders", headers=CRON_HEADERS)
    assert response.json() == {"success": True, "tasksProcessed": 0, "remindersSent": 0, "errors": 0}


def test_projects_report_json(client: TestClient, alpha, pm_user, executor_user, auth_headers):
    response = client.get("/reports/projects", headers=auth_headers(pm_user))
    assert response.status_code == 200
    rows = response.json()
    assert rows[0]["title"] == "Alpha"
    assert rows[0]["members_count"] == 2
    assert rows[0]["completion"] == 0

    assert client.get("/reports/projects", headers=auth_headers(executor_user)).status_code == 403


def test_export_pdf(client: TestClient, alpha, pm_user, auth_headers):
    response = client.get("/reports/export", params={"type": "projects", "format": "pdf"}, headers=auth_headers(pm_user))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    expected = f"projects-report-{date.today().isoformat()}.pdf"
    assert response.headers["content-disposition"] == f'attachment; filename="{expected}"'
    assert response.content.startswith(b"%PDF")


def test_export_excel_for_project(client: TestClient, alpha, pm_user, auth_headers):
    client.post("/tasks/", json={"title": "Write docs", "project_id": alpha["id"]}, headers=auth_headers(pm_user))
    response = client.get(
        "/reports/export",
        params={"type": "tasks", "format": "excel", "project_id": alpha["id"]},
        headers=auth_headers(pm_user),
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert response.headers["content-disposition"].endswith('.xlsx"')
    assert response.content.startswith(b"PK")


def test_export_rejects_unknown_type(client: TestClient, pm_user, auth_headers):
    response = client.get("/reports/export", params={"type": "users"}, headers=auth_headers(pm_user))
    assert response.status_code == 422
    response = client.get("/reports/export", params={"type": "tasks", "format": "csv"}, headers=auth_headers(pm_user))
    assert response.status_code == 422
