# taskdesk/crud/project.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import (
    PermissionDeniedError,
    ProjectNotFound,
    ProjectValidationError,
    UserNotFound,
)
from taskdesk.core.permissions import (
    can_create_project,
    can_delete_project,
    can_edit_project,
    can_manage_members,
    can_view_project,
)
from taskdesk.core.validation import validate_payload
from taskdesk.crud.audit import add_audit_log
from taskdesk.crud.notification import notify_project_invite
from taskdesk.models.file import File
from taskdesk.models.project import Project, ProjectMember
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.schemas.project import MemberAdd, ProjectCreate, ProjectUpdate
from taskdesk.services import storage

logger = logging.getLogger("Taskdesk.Projects")

OWNER_PROJECT_ROLE = "project_manager"

# ==== Чтение ====

def get_project(db: Session, project_id: uuid.UUID) -> Project:
    """
    Возвращает проект по ID или бросает ProjectNotFound.
    """
    project = db.get(Project, project_id)
    if not project:
        raise ProjectNotFound(f"Project with id={project_id} not found.")
    return project

def get_project_for_actor(db: Session, actor: Optional[Actor], project_id: uuid.UUID) -> Project:
    actor = require_actor(actor)
    project = get_project(db, project_id)
    if not can_view_project(actor, project):
        raise PermissionDeniedError("Not enough permissions to view this project")
    return project

def get_visible_projects(
    db: Session,
    actor: Optional[Actor],
    filters: Optional[Dict[str, Any]] = None,
) -> List[Project]:
    """
    Проекты, видимые пользователю: admin и project_manager видят все,
    остальные — свои и те, где они участники.
    """
    actor = require_actor(actor)
    filters = filters or {}
    query = db.query(Project)

    if not (actor.is_admin or actor.is_project_manager):
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == actor.id)
        query = query.filter(or_(Project.owner_id == actor.id, Project.id.in_(member_of)))

    if filters.get("search"):
        pattern = f"%{filters['search']}%"
        query = query.filter(or_(Project.title.ilike(pattern), Project.description.ilike(pattern)))
    if filters.get("owner_id"):
        query = query.filter(Project.owner_id == filters["owner_id"])

    return query.order_by(Project.created_at.desc()).all()

def get_project_members(db: Session, actor: Optional[Actor], project_id: uuid.UUID) -> List[ProjectMember]:
    project = get_project_for_actor(db, actor, project_id)
    return (
        db.query(ProjectMember)
        .options(joinedload(ProjectMember.user))
        .filter(ProjectMember.project_id == project.id)
        .order_by(ProjectMember.added_at.asc())
        .all()
    )

# ==== Изменения ====

def create_project(db: Session, actor: Optional[Actor], data: dict) -> Project:
    """
    Создаёт проект. Владелец — текущий пользователь; в той же транзакции
    добавляется его членство с ролью project_manager и запись аудита.
    """
    actor = require_actor(actor)
    payload = validate_payload(ProjectCreate, data, ProjectValidationError)
    if not can_create_project(actor):
        raise PermissionDeniedError("Not enough permissions to create projects")

    project = Project(
        id=uuid.uuid4(),
        title=payload.title,
        description=payload.description,
        owner_id=actor.id,
    )
    db.add(project)
    db.add(ProjectMember(project_id=project.id, user_id=actor.id, role=OWNER_PROJECT_ROLE))
    add_audit_log(
        db,
        action="project_created",
        entity_type="project",
        entity_id=project.id,
        user_id=actor.id,
        project_id=project.id,
        details={"title": project.title},
    )
    try:
        db.commit()
        db.refresh(project)
        logger.info(f"Created project '{project.title}' (ID: {project.id})")
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise ProjectValidationError("Database error while creating project.")

    actor.join_project(project.id, OWNER_PROJECT_ROLE)
    actor.invalidate("/projects")
    return project

def update_project(db: Session, actor: Optional[Actor], project_id: uuid.UUID, data: dict) -> Project:
    """
    Обновляет название/описание проекта. Аудит хранит изменения {field: [old, new]}.
    """
    actor = require_actor(actor)
    payload = validate_payload(ProjectUpdate, data, ProjectValidationError)
    project = get_project(db, project_id)
    if not can_edit_project(actor, project):
        raise PermissionDeniedError("Not enough permissions to edit this project")

    fields = payload.model_dump(exclude_unset=True)
    if "title" in fields and fields["title"] is None:
        raise ProjectValidationError("title: Project title is required")

    changes = {}
    for field, value in fields.items():
        old = getattr(project, field)
        if old != value:
            changes[field] = [old, value]
            setattr(project, field, value)

    if not changes:
        logger.info(f"Update called but no changes for project {project.id}")
        return project

    try:
        add_audit_log(
            db,
            action="project_updated",
            entity_type="project",
            entity_id=project.id,
            user_id=actor.id,
            project_id=project.id,
            details={"changes": changes},
        )
        db.commit()
        db.refresh(project)
        logger.info(f"Updated project {project.id} fields: {changes}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update project: {e}")
        raise ProjectValidationError("Database error while updating project.")

    actor.invalidate("/projects", f"/projects/{project.id}")
    return project

def delete_project(db: Session, actor: Optional[Actor], project_id: uuid.UUID) -> uuid.UUID:
    """
    Удаляет проект вместе с участниками, задачами, файлами, журналом
    и уведомлениями. Запись аудита project_deleted не привязана к проекту,
    чтобы пережить каскад. Файлы с диска удаляются после commit (best-effort).
    """
    actor = require_actor(actor)
    project = get_project(db, project_id)
    if not can_delete_project(actor, project):
        raise PermissionDeniedError("Not enough permissions to delete this project")

    task_ids = select(Task.id).where(Task.project_id == project.id)
    blob_paths = [
        path for (path,) in db.query(File.file_path).filter(
            or_(File.project_id == project.id, File.task_id.in_(task_ids))
        ).all()
    ]
    title = project.title

    try:
        db.delete(project)
        add_audit_log(
            db,
            action="project_deleted",
            entity_type="project",
            entity_id=project_id,
            user_id=actor.id,
            project_id=None,
            details={"title": title},
        )
        db.commit()
        logger.info(f"Deleted project '{title}' (ID: {project_id})")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete project: {e}")
        raise ProjectValidationError("Database error while deleting project.")

    for path in blob_paths:
        try:
            storage.remove_blob(path)
        except OSError as e:
            logger.warning(f"Could not remove file {path} of deleted project {project_id}: {e}")

    actor.leave_project(project_id)
    actor.invalidate("/projects")
    return project_id

def add_project_member(db: Session, actor: Optional[Actor], project_id: uuid.UUID, data: dict) -> ProjectMember:
    """
    Приглашение пользователя в проект. После commit отправляется
    уведомление project_invite (best-effort).
    """
    actor = require_actor(actor)
    payload = validate_payload(MemberAdd, data, ProjectValidationError)
    project = get_project(db, project_id)
    user = db.get(User, payload.user_id)
    if not user:
        raise UserNotFound(f"User with id={payload.user_id} not found.")
    if not can_manage_members(actor, project):
        raise PermissionDeniedError("Not enough permissions to manage project members")

    existing = db.query(ProjectMember).filter_by(project_id=project.id, user_id=user.id).first()
    if existing:
        raise ProjectValidationError("User is already a member of this project.")

    member = ProjectMember(project_id=project.id, user_id=user.id, role=payload.role)
    db.add(member)
    try:
        db.flush()
        add_audit_log(
            db,
            action="member_added",
            entity_type="project",
            entity_id=project.id,
            user_id=actor.id,
            project_id=project.id,
            details={"addedUserId": str(user.id), "role": payload.role},
        )
        db.commit()
        db.refresh(member)
        logger.info(f"Added user {user.id} to project {project.id} as {payload.role}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to add project member: {e}")
        raise ProjectValidationError("Database error while adding project member.")

    try:
        notify_project_invite(db, project, user.id, payload.role, actor)
    except Exception:
        logger.exception(f"Failed to send project invite for project {project.id} to {user.id}")

    if user.id == actor.id:
        actor.join_project(project.id, payload.role)
    actor.invalidate(f"/projects/{project.id}")
    return member

def remove_project_member(db: Session, actor: Optional[Actor], project_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """
    Исключение участника. Членство владельца проекта удалить нельзя.
    """
    actor = require_actor(actor)
    project = get_project(db, project_id)
    member = db.query(ProjectMember).filter_by(project_id=project.id, user_id=user_id).first()
    if not member:
        raise UserNotFound(f"User with id={user_id} is not a member of this project.")
    if not can_manage_members(actor, project):
        raise PermissionDeniedError("Not enough permissions to manage project members")
    if user_id == project.owner_id:
        raise ProjectValidationError("The project owner cannot be removed from the project.")

    role = member.role
    try:
        db.delete(member)
        add_audit_log(
            db,
            action="member_removed",
            entity_type="project",
            entity_id=project.id,
            user_id=actor.id,
            project_id=project.id,
            details={"removedUserId": str(user_id), "role": role},
        )
        db.commit()
        logger.info(f"Removed user {user_id} from project {project.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to remove project member: {e}")
        raise ProjectValidationError("Database error while removing project member.")

    if user_id == actor.id:
        actor.leave_project(project.id)
    actor.invalidate(f"/projects/{project.id}")
