# taskdesk/crud/report.py
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, aliased

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import PermissionDeniedError, ProjectNotFound, ValidationError
from taskdesk.core.permissions import can_export_reports, can_view_project
from taskdesk.models.project import Project, ProjectMember
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.services.exporter import MEDIA_TYPES, REPORT_KINDS, render_report, report_filename

logger = logging.getLogger("Taskdesk.Reports")

UNASSIGNED = "Unassigned"

def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""

def _require_export(actor: Optional[Actor]) -> Actor:
    actor = require_actor(actor)
    if not can_export_reports(actor):
        raise PermissionDeniedError("Not enough permissions to export reports")
    return actor

def build_projects_report(db: Session, actor: Optional[Actor]) -> List[Dict[str, Any]]:
    """
    Сводка по проектам: владелец, задачи (всего/завершено/%), участники.
    """
    _require_export(actor)

    total_tasks = func.count(Task.id)
    completed_tasks = func.coalesce(func.sum(case((Task.status == "completed", 1), else_=0)), 0)
    members_count = (
        select(func.count(ProjectMember.id))
        .where(ProjectMember.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )
    rows = (
        db.query(Project, User.name, total_tasks, completed_tasks, members_count)
        .join(User, Project.owner_id == User.id)
        .outerjoin(Task, Task.project_id == Project.id)
        .group_by(Project.id, User.name)
        .order_by(Project.created_at.desc())
        .all()
    )

    report = []
    for project, owner_name, total, completed, members in rows:
        total = int(total or 0)
        completed = int(completed or 0)
        report.append({
            "id": project.id,
            "title": project.title,
            "description": project.description,
            "owner": owner_name,
            "created_at": _fmt_date(project.created_at),
            "total_tasks": total,
            "completed_tasks": completed,
            "completion": round(completed / total * 100) if total else 0,
            "members_count": int(members or 0),
        })
    return report

def build_tasks_report(
    db: Session,
    actor: Optional[Actor],
    project_id: Optional[uuid.UUID] = None,
) -> List[Dict[str, Any]]:
    """
    Детальный отчёт по задачам, опционально в рамках одного проекта.
    """
    actor = _require_export(actor)

    assignee = aliased(User)
    creator = aliased(User)
    query = (
        db.query(Task, Project.title, assignee.name, creator.name)
        .join(Project, Task.project_id == Project.id)
        .outerjoin(assignee, Task.assignee_id == assignee.id)
        .join(creator, Task.creator_id == creator.id)
    )
    if project_id is not None:
        project = db.get(Project, project_id)
        if not project:
            raise ProjectNotFound(f"Project with id={project_id} not found.")
        if not can_view_project(actor, project):
            raise PermissionDeniedError("Not enough permissions to view this project")
        query = query.filter(Task.project_id == project_id)

    report = []
    for task, project_title, assignee_name, creator_name in query.order_by(Task.created_at.desc()).all():
        report.append({
            "id": task.id,
            "title": task.title,
            "project": project_title,
            "status": task.status,
            "priority": task.priority,
            "complexity": task.complexity,
            "assignee": assignee_name or UNASSIGNED,
            "creator": creator_name,
            "due_date": _fmt_date(task.due_date),
            "created_at": _fmt_date(task.created_at),
            "description": task.description or "",
        })
    return report

def export_report(
    db: Session,
    actor: Optional[Actor],
    kind: str,
    fmt: str,
    project_id: Optional[uuid.UUID] = None,
) -> Tuple[bytes, str, str]:
    """
    Собирает и рендерит отчёт. Возвращает (content, filename, media_type).
    """
    if kind not in REPORT_KINDS:
        raise ValidationError(f"Unknown report type: {kind}")
    if kind == "projects":
        rows = build_projects_report(db, actor)
    else:
        rows = build_tasks_report(db, actor, project_id)
    content = render_report(kind, rows, fmt)
    filename = report_filename(kind, fmt)
    logger.info(f"Exported {kind} report ({fmt}) for {actor.id}")
    return content, filename, MEDIA_TYPES[fmt]
