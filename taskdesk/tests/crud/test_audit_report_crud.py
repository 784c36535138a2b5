import pytest
from sqlalchemy.orm import Session

from taskdesk.core.exceptions import PermissionDeniedError, ValidationError
from taskdesk.crud.audit import get_audit_logs
from taskdesk.crud.project import add_project_member, create_project
from taskdesk.crud.report import build_projects_report, build_tasks_report, export_report
from taskdesk.crud.task import create_task, update_task_status
from taskdesk.crud.user import create_user
from taskdesk.services.exporter import render_report, report_filename


@pytest.fixture
def alpha(db: Session, pm_actor, executor_user):
    project = create_project(db, pm_actor, {"title": "Alpha", "description": "First"})
    add_project_member(db, pm_actor, project.id, {"user_id": executor_user.id, "role": "executor"})
    done = create_task(db, pm_actor, {"title": "Done task", "project_id": project.id, "assignee_id": executor_user.id})
    update_task_status(db, pm_actor, done.id, {"status": "completed"})
    create_task(db, pm_actor, {"title": "Open task", "project_id": project.id})
    return project


def test_project_audit_log_visible_to_members(db: Session, alpha, executor_user, actor_for):
    logs = get_audit_logs(db, actor_for(executor_user), project_id=alpha.id)
    actions = {log.action for log in logs}
    assert {"project_created", "member_added", "task_created", "task_status_changed"} <= actions
    assert all(log.project_id == alpha.id for log in logs)


def test_project_audit_log_hidden_from_strangers(db: Session, alpha, other_executor, actor_for):
    with pytest.raises(PermissionDeniedError):
        get_audit_logs(db, actor_for(other_executor), project_id=alpha.id)


def test_global_audit_log_requires_admin_or_pm(db: Session, alpha, admin_actor, pm_user, pm_actor, executor_user, actor_for):
    with pytest.raises(PermissionDeniedError):
        get_audit_logs(db, actor_for(executor_user))

    pm_logs = get_audit_logs(db, pm_actor)
    assert pm_logs
    assert all(log.project_id == alpha.id or log.user_id == pm_user.id for log in pm_logs)

    assert len(get_audit_logs(db, admin_actor)) >= len(pm_logs)
    filtered = get_audit_logs(db, admin_actor, action="task_created")
    assert {log.action for log in filtered} == {"task_created"}
    assert len(get_audit_logs(db, admin_actor, limit=1)) == 1


def test_global_audit_log_for_pm_matches_project_access(db: Session, alpha, admin_actor, pm_actor):
    gamma = create_project(db, admin_actor, {"title": "Gamma"})
    create_user(db, admin_actor, {"email": "new@example.com", "name": "New User", "password": "secret123"})

    pm_logs = get_audit_logs(db, pm_actor)
    assert any(log.project_id == gamma.id for log in pm_logs)
    assert "user_created" not in {log.action for log in pm_logs}
    assert get_audit_logs(db, pm_actor, project_id=gamma.id)


def test_projects_report_rows(db: Session, alpha, pm_actor, pm_user):
    rows = build_projects_report(db, pm_actor)
    assert len(rows) == 1
    row = rows[0]
    assert row["title"] == "Alpha"
    assert row["owner"] == pm_user.name
    assert row["total_tasks"] == 2
    assert row["completed_tasks"] == 1
    assert row["completion"] == 50
    assert row["members_count"] == 2


def test_tasks_report_rows(db: Session, alpha, pm_actor, pm_user, executor_user):
    rows = {row["title"]: row for row in build_tasks_report(db, pm_actor, alpha.id)}
    assert rows["Done task"]["assignee"] == executor_user.name
    assert rows["Done task"]["status"] == "completed"
    assert rows["Open task"]["assignee"] == "Unassigned"
    assert rows["Open task"]["creator"] == pm_user.name
    assert rows["Open task"]["project"] == "Alpha"


def test_reports_denied_for_executor(db: Session, alpha, executor_user, actor_for):
    with pytest.raises(PermissionDeniedError):
        build_projects_report(db, actor_for(executor_user))
    with pytest.raises(PermissionDeniedError):
        export_report(db, actor_for(executor_user), "tasks", "excel")


def test_export_pdf_and_excel(db: Session, alpha, pm_actor):
    content, filename, media_type = export_report(db, pm_actor, "projects", "pdf")
    assert content.startswith(b"%PDF")
    assert filename.startswith("projects-report-") and filename.endswith(".pdf")
    assert media_type == "application/pdf"

    content, filename, media_type = export_report(db, pm_actor, "tasks", "excel", alpha.id)
    assert content.startswith(b"PK")
    assert filename.endswith(".xlsx")
    assert media_type == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def test_export_unknown_type_or_format(db: Session, pm_actor):
    with pytest.raises(ValidationError):
        export_report(db, pm_actor, "users", "pdf")
    with pytest.raises(ValidationError):
        render_report("projects", [], "csv")


def test_render_empty_report_and_filename():
    assert render_report("tasks", [], "pdf").startswith(b"%PDF")
    from datetime import date
    assert report_filename("tasks", "excel", today=date(2025, 3, 9)) == "tasks-report-2025-03-09.xlsx"
