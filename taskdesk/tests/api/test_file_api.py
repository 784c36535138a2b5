from pathlib import Path
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from taskdesk.api.file import content_disposition
from taskdesk.core.settings import settings
from taskdesk.models.audit import AuditLog
from taskdesk.models.file import File


@pytest.fixture
def alpha(client: TestClient, pm_user, executor_user, observer_user, auth_headers):
    headers = auth_headers(pm_user)
    project = client.post("/projects/", json={"title": "Alpha"}, headers=headers).json()
    for user, role in ((executor_user, "executor"), (observer_user, "observer")):
        client.post(
            f"/projects/{project['id']}/members",
            json={"user_id": str(user.id), "role": role},
            headers=headers,
        )
    return project


def upload(client, headers, project_id, name="report.pdf", content=b"%PDF-1.4 test", mime="application/pdf"):
    return client.post(
        "/files/",
        files={"file": (name, content, mime)},
        data={"project_id": project_id, "description": "Quarterly"},
        headers=headers,
    )


def test_content_disposition_header():
    header = content_disposition("отчёт \"Q1\".pdf")
    assert header.startswith('attachment; filename="')
    ascii_part = header.split('filename="')[1].split('"')[0]
    assert ascii_part == "_____ _Q1_.pdf"
    assert header.endswith("filename*=UTF-8''" + quote("отчёт \"Q1\".pdf", safe=""))


def test_upload_and_download(client: TestClient, alpha, executor_user, observer_user, auth_headers):
    response = upload(client, auth_headers(executor_user), alpha["id"], name="отчёт.pdf")
    assert response.status_code == 200
    data = response.json()
    assert data["original_name"] == "отчёт.pdf"
    assert data["file_size"] == len(b"%PDF-1.4 test")
    assert data["description"] == "Quarterly"
    assert f"/projects/{alpha['id']}" in response.headers["X-Stale-Views"]

    download = client.get(f"/files/{data['id']}", headers=auth_headers(observer_user))
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 test"
    assert download.headers["content-type"] == "application/pdf"
    assert download.headers["content-length"] == str(len(b"%PDF-1.4 test"))
    disposition = download.headers["content-disposition"]
    assert 'filename="_____.pdf"' in disposition
    assert "filename*=UTF-8''%D0%BE%D1%82%D1%87%D1%91%D1%82.pdf" in disposition


def test_upload_forbidden_for_observer(client: TestClient, db, alpha, observer_user, auth_headers):
    response = upload(client, auth_headers(observer_user), alpha["id"])
    assert response.status_code == 403
    assert db.query(File).count() == 0


def test_upload_rejects_disallowed_type(client: TestClient, alpha, executor_user, auth_headers):
    response = upload(client, auth_headers(executor_user), alpha["id"], name="tool.exe", mime="application/x-msdownload")
    assert response.status_code == 400


def test_upload_rejects_large_file(client: TestClient, alpha, executor_user, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 8)
    response = upload(client, auth_headers(executor_user), alpha["id"], content=b"0123456789")
    assert response.status_code == 400
    assert "too large" in response.json()["detail"]


def test_upload_without_target(client: TestClient, executor_user, auth_headers):
    response = client.post(
        "/files/",
        files={"file": ("a.txt", b"abc", "text/plain")},
        headers=auth_headers(executor_user),
    )
    assert response.status_code == 400


def test_download_forbidden_for_stranger(client: TestClient, alpha, executor_user, other_executor, auth_headers):
    file_id = upload(client, auth_headers(executor_user), alpha["id"]).json()["id"]
    assert client.get(f"/files/{file_id}", headers=auth_headers(other_executor)).status_code == 403


def test_list_files(client: TestClient, alpha, executor_user, auth_headers):
    headers = auth_headers(executor_user)
    upload(client, headers, alpha["id"], name="a.pdf")
    upload(client, headers, alpha["id"], name="b.pdf")
    listed = client.get("/files/", params={"project_id": alpha["id"]}, headers=headers).json()
    assert {f["original_name"] for f in listed} == {"a.pdf", "b.pdf"}


def test_delete_file_with_missing_blob(client: TestClient, db, alpha, executor_user, auth_headers):
    headers = auth_headers(executor_user)
    file_id = upload(client, headers, alpha["id"]).json()["id"]
    stored = db.query(File).one()
    Path(stored.file_path).unlink()

    response = client.delete(f"/files/{file_id}", headers=headers)
    assert response.status_code == 200
    assert db.query(File).count() == 0
    assert db.query(AuditLog).filter_by(action="file_deleted").count() == 1

    assert client.get(f"/files/{file_id}", headers=headers).status_code == 404
