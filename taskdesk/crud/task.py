# taskdesk/crud/task.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import String as SQLString, case, cast, or_, select
from sqlalchemy.orm import Session

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import (
    PermissionDeniedError,
    TaskNotFound,
    TaskValidationError,
    UserNotFound,
)
from taskdesk.core.permissions import (
    can_change_task_status,
    can_create_task,
    can_delete_task,
    can_edit_task,
    can_view_project,
)
from taskdesk.core.validation import validate_payload
from taskdesk.crud.audit import add_audit_log
from taskdesk.crud.notification import notify_task_assignment
from taskdesk.crud.project import get_project
from taskdesk.models.project import Project, ProjectMember
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.schemas.task import TaskCreate, TaskStatusUpdate, TaskUpdate
from taskdesk.services import storage

logger = logging.getLogger("Taskdesk.Tasks")

SORT_FIELDS = ("created_at", "due_date", "priority", "title")
PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Приводит дату к UTC; naive-значения считаются UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value

def _same(old: Any, new: Any) -> bool:
    if isinstance(old, datetime) or isinstance(new, datetime):
        return as_utc(old) == as_utc(new)
    return old == new

def _task_paths(task: Task) -> tuple:
    return (f"/tasks/{task.id}", f"/projects/{task.project_id}", "/tasks")

def _is_project_member(db: Session, project: Project, user_id: uuid.UUID) -> bool:
    if project.owner_id == user_id:
        return True
    return db.query(ProjectMember).filter_by(project_id=project.id, user_id=user_id).first() is not None

# ==== Чтение ====

def get_task(db: Session, actor: Optional[Actor], task_id: uuid.UUID) -> Task:
    """
    Задача по ID; нужен доступ на просмотр её проекта.
    """
    actor = require_actor(actor)
    task = db.get(Task, task_id)
    if not task:
        raise TaskNotFound(f"Task with id={task_id} not found.")
    if not can_view_project(actor, task.project):
        raise PermissionDeniedError("Not enough permissions to view this task")
    return task

def get_visible_tasks(
    db: Session,
    actor: Optional[Actor],
    filters: Optional[Dict[str, Any]] = None,
    sort_by: str = "created_at",
) -> List[Task]:
    """
    Задачи из проектов, видимых пользователю, с фильтрами и сортировкой.

    filters: project_id, status, priority, assignee_id, tag, search,
    parent_task_id (значение "root" — только задачи верхнего уровня).
    """
    actor = require_actor(actor)
    filters = filters or {}
    query = db.query(Task)

    if not (actor.is_admin or actor.is_project_manager):
        owned = select(Project.id).where(Project.owner_id == actor.id)
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == actor.id)
        query = query.filter(or_(
            Task.project_id.in_(owned),
            Task.project_id.in_(member_of),
            Task.assignee_id == actor.id,
        ))

    if filters.get("project_id"):
        query = query.filter(Task.project_id == filters["project_id"])
    if filters.get("status"):
        query = query.filter(Task.status == filters["status"])
    if filters.get("priority"):
        query = query.filter(Task.priority == filters["priority"])
    if filters.get("assignee_id"):
        query = query.filter(Task.assignee_id == filters["assignee_id"])
    if filters.get("tag"):
        query = query.filter(cast(Task.tags, SQLString).like(f'%"{filters["tag"]}"%'))
    if filters.get("search"):
        pattern = f"%{filters['search']}%"
        query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
    parent_task_id = filters.get("parent_task_id")
    if parent_task_id == "root":
        query = query.filter(Task.parent_task_id.is_(None))
    elif parent_task_id:
        try:
            parent_task_id = uuid.UUID(str(parent_task_id))
        except ValueError:
            raise TaskValidationError("parent_task_id: Expected a task ID or 'root'")
        query = query.filter(Task.parent_task_id == parent_task_id)

    # Сортировка
    if sort_by == "priority":
        query = query.order_by(case(PRIORITY_RANK, value=Task.priority, else_=len(PRIORITY_RANK)).asc())
    elif sort_by == "due_date":
        query = query.order_by(Task.due_date.is_(None).asc(), Task.due_date.asc())
    elif sort_by == "title":
        query = query.order_by(Task.title.asc())
    else:
        query = query.order_by(Task.created_at.desc())

    return query.all()

# ==== Изменения ====

def create_task(db: Session, actor: Optional[Actor], data: dict) -> Task:
    """
    Создать задачу. При указанном исполнителе после commit отправляется
    уведомление о назначении.
    """
    actor = require_actor(actor)
    payload = validate_payload(TaskCreate, data, TaskValidationError)
    project = get_project(db, payload.project_id)

    parent = None
    if payload.parent_task_id:
        parent = db.get(Task, payload.parent_task_id)
        if not parent:
            raise TaskNotFound(f"Parent task with id={payload.parent_task_id} not found.")
    if payload.assignee_id and not db.get(User, payload.assignee_id):
        raise UserNotFound(f"User with id={payload.assignee_id} not found.")

    if not can_create_task(actor, project):
        raise PermissionDeniedError("Not enough permissions to create tasks in this project")
    if parent and parent.project_id != project.id:
        raise TaskValidationError("parent_task_id: Parent task must belong to the same project")
    if payload.assignee_id and not _is_project_member(db, project, payload.assignee_id):
        raise TaskValidationError("assignee_id: Assignee must be a member of the project")

    task = Task(
        id=uuid.uuid4(),
        title=payload.title,
        description=payload.description,
        project_id=project.id,
        parent_task_id=payload.parent_task_id,
        assignee_id=payload.assignee_id,
        creator_id=actor.id,
        status="open",
        priority=payload.priority,
        complexity=payload.complexity,
        due_date=as_utc(payload.due_date),
        tags=[t.strip() for t in payload.tags if t.strip()],
    )
    db.add(task)
    add_audit_log(
        db,
        action="task_created",
        entity_type="task",
        entity_id=task.id,
        user_id=actor.id,
        project_id=project.id,
        details={
            "title": task.title,
            "assigneeId": _jsonable(task.assignee_id),
            "status": task.status,
            "priority": task.priority,
        },
    )
    try:
        db.commit()
        db.refresh(task)
        logger.info(f"Created task '{task.title}' (ID: {task.id}) in project {project.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise TaskValidationError("Database error while creating task.")

    if task.assignee_id:
        try:
            notify_task_assignment(db, task, actor)
        except Exception:
            logger.exception(f"Failed to send assignment notification for task {task.id}")

    actor.invalidate(*_task_paths(task))
    return task

def update_task(db: Session, actor: Optional[Actor], task_id: uuid.UUID, data: dict) -> Task:
    """
    Обновить поля задачи. Аудит: task_assigned, если изменился только
    исполнитель, иначе task_updated с картой изменений.
    """
    actor = require_actor(actor)
    payload = validate_payload(TaskUpdate, data, TaskValidationError)
    task = db.get(Task, task_id)
    if not task:
        raise TaskNotFound(f"Task with id={task_id} not found.")
    fields = payload.model_dump(exclude_unset=True)
    if fields.get("assignee_id") and not db.get(User, fields["assignee_id"]):
        raise UserNotFound(f"User with id={fields['assignee_id']} not found.")
    if not can_edit_task(actor, task, task.project):
        raise PermissionDeniedError("Not enough permissions to edit this task")
    if fields.get("assignee_id") and not _is_project_member(db, task.project, fields["assignee_id"]):
        raise TaskValidationError("assignee_id: Assignee must be a member of the project")

    for required in ("title", "priority", "complexity"):
        if required in fields and fields[required] is None:
            raise TaskValidationError(f"{required}: Field cannot be empty")
    if "tags" in fields:
        fields["tags"] = [t.strip() for t in (fields["tags"] or []) if t.strip()]
    if "due_date" in fields:
        fields["due_date"] = as_utc(fields["due_date"])

    old_assignee = task.assignee_id
    changes = {}
    for field, value in fields.items():
        old = getattr(task, field)
        if not _same(old, value):
            changes[field] = [_jsonable(old), _jsonable(value)]
            setattr(task, field, value)

    if not changes:
        logger.info(f"Update called but no changes for task {task.id}")
        return task

    reassigned = "assignee_id" in changes and task.assignee_id is not None
    if set(changes) == {"assignee_id"}:
        action = "task_assigned"
        details = {"oldAssigneeId": _jsonable(old_assignee), "newAssigneeId": _jsonable(task.assignee_id)}
    else:
        action = "task_updated"
        details = {"changes": changes}

    try:
        add_audit_log(
            db,
            action=action,
            entity_type="task",
            entity_id=task.id,
            user_id=actor.id,
            project_id=task.project_id,
            details=details,
        )
        db.commit()
        db.refresh(task)
        logger.info(f"Updated task {task.id} fields: {list(changes)}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update task: {e}")
        raise TaskValidationError("Database error while updating task.")

    if reassigned:
        try:
            notify_task_assignment(db, task, actor)
        except Exception:
            logger.exception(f"Failed to send assignment notification for task {task.id}")

    actor.invalidate(*_task_paths(task))
    return task

def update_task_status(db: Session, actor: Optional[Actor], task_id: uuid.UUID, data: dict) -> Task:
    """
    Смена статуса задачи. Любой статус может перейти в любой; повторная
    установка текущего статуса ничего не записывает.
    """
    actor = require_actor(actor)
    payload = validate_payload(TaskStatusUpdate, data, TaskValidationError)
    task = db.get(Task, task_id)
    if not task:
        raise TaskNotFound(f"Task with id={task_id} not found.")
    if not can_change_task_status(actor, task, task.project):
        raise PermissionDeniedError("Not enough permissions to change the status of this task")

    old_status = task.status
    if old_status == payload.status:
        logger.info(f"Task {task.id} already has status '{old_status}'")
        return task

    task.status = payload.status
    try:
        add_audit_log(
            db,
            action="task_status_changed",
            entity_type="task",
            entity_id=task.id,
            user_id=actor.id,
            project_id=task.project_id,
            details={"oldStatus": old_status, "newStatus": payload.status},
        )
        db.commit()
        db.refresh(task)
        logger.info(f"Task {task.id} status: {old_status} -> {task.status}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update task status: {e}")
        raise TaskValidationError("Database error while updating task status.")

    actor.invalidate(*_task_paths(task))
    return task

def _collect_blob_paths(task: Task) -> List[str]:
    paths = [f.file_path for f in task.files]
    for subtask in task.subtasks:
        paths.extend(_collect_blob_paths(subtask))
    return paths

def delete_task(db: Session, actor: Optional[Actor], task_id: uuid.UUID) -> uuid.UUID:
    """
    Удалить задачу вместе с подзадачами, комментариями и файлами.
    """
    actor = require_actor(actor)
    task = db.get(Task, task_id)
    if not task:
        raise TaskNotFound(f"Task with id={task_id} not found.")
    if not can_delete_task(actor, task, task.project):
        raise PermissionDeniedError("Not enough permissions to delete this task")

    blob_paths = _collect_blob_paths(task)
    paths = _task_paths(task)
    project_id = task.project_id
    title = task.title

    try:
        db.delete(task)
        add_audit_log(
            db,
            action="task_deleted",
            entity_type="task",
            entity_id=task_id,
            user_id=actor.id,
            project_id=project_id,
            details={"title": title},
        )
        db.commit()
        logger.info(f"Deleted task '{title}' (ID: {task_id})")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete task: {e}")
        raise TaskValidationError("Database error while deleting task.")

    for path in blob_paths:
        try:
            storage.remove_blob(path)
        except OSError as e:
            logger.warning(f"Could not remove file {path} of deleted task {task_id}: {e}")

    actor.invalidate(*paths)
    return task_id
