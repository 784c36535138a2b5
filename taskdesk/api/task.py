#taskdesk/api/task.py
import uuid
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from taskdesk.core.actor import Actor
from taskdesk.crud.task import (
    create_task,
    delete_task,
    get_task,
    get_visible_tasks,
    update_task,
    update_task_status,
)
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.response import SuccessResponse
from taskdesk.schemas.task import (
    TaskCreate, TaskPriority, TaskRead, TaskStatus, TaskStatusUpdate, TaskUpdate
)

router = APIRouter(prefix="/tasks", tags=["Tasks"])

@router.post("/", response_model=TaskRead)
def create_new_task(
    data: TaskCreate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Создать задачу в проекте.
    """
    task = create_task(db, actor, data.model_dump())
    apply_stale_views(response, actor)
    return task

@router.get("/", response_model=List[TaskRead])
def list_tasks(
    project_id: Optional[uuid.UUID] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    assignee_id: Optional[uuid.UUID] = Query(None),
    tag: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    parent_task_id: Optional[str] = Query(None, description="ID родительской задачи или 'root'"),
    sort_by: Literal["created_at", "due_date", "priority", "title"] = Query("created_at"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Получить список задач с фильтрацией и сортировкой.
    """
    filters = {
        "project_id": project_id,
        "status": status,
        "priority": priority,
        "assignee_id": assignee_id,
        "tag": tag,
        "search": search,
        "parent_task_id": parent_task_id,
    }
    filters = {k: v for k, v in filters.items() if v is not None}
    return get_visible_tasks(db, actor, filters=filters, sort_by=sort_by)

@router.get("/{task_id}", response_model=TaskRead)
def get_one_task(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return get_task(db, actor, task_id)

@router.patch("/{task_id}", response_model=TaskRead)
def update_one_task(
    task_id: uuid.UUID,
    data: TaskUpdate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Обновить поля задачи (в том числе исполнителя).
    """
    task = update_task(db, actor, task_id, data.model_dump(exclude_unset=True))
    apply_stale_views(response, actor)
    return task

@router.post("/{task_id}/status", response_model=TaskRead)
def change_task_status(
    task_id: uuid.UUID,
    data: TaskStatusUpdate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Сменить статус задачи.
    """
    task = update_task_status(db, actor, task_id, data.model_dump())
    apply_stale_views(response, actor)
    return task

@router.delete("/{task_id}", response_model=SuccessResponse)
def delete_one_task(
    task_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Удалить задачу с подзадачами, комментариями и файлами.
    """
    deleted_id = delete_task(db, actor, task_id)
    apply_stale_views(response, actor)
    return SuccessResponse(result=str(deleted_id), detail="Task deleted")
