#taskdesk/api/project.py
import uuid
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from taskdesk.core.actor import Actor
from taskdesk.crud.project import (
    add_project_member,
    create_project,
    delete_project,
    get_project_for_actor,
    get_project_members,
    get_visible_projects,
    remove_project_member,
    update_project,
)
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.project import MemberAdd, MemberRead, ProjectCreate, ProjectRead, ProjectUpdate
from taskdesk.schemas.response import SuccessResponse

router = APIRouter(prefix="/projects", tags=["Projects"])

@router.post("/", response_model=ProjectRead)
def create_new_project(
    data: ProjectCreate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Создать новый проект (admin / project_manager).
    """
    project = create_project(db, actor, data.model_dump())
    apply_stale_views(response, actor)
    return project

@router.get("/", response_model=List[ProjectRead])
def list_projects(
    search: Optional[str] = Query(None),
    owner_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Проекты, доступные текущему пользователю.
    """
    filters = {"search": search, "owner_id": owner_id}
    filters = {k: v for k, v in filters.items() if v is not None}
    return get_visible_projects(db, actor, filters=filters)

@router.get("/{project_id}", response_model=ProjectRead)
def get_one_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Получить проект по ID.
    """
    return get_project_for_actor(db, actor, project_id)

@router.patch("/{project_id}", response_model=ProjectRead)
def update_one_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Обновить проект (владелец / admin).
    """
    project = update_project(db, actor, project_id, data.model_dump(exclude_unset=True))
    apply_stale_views(response, actor)
    return project

@router.delete("/{project_id}", response_model=SuccessResponse)
def delete_one_project(
    project_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Удалить проект со всем содержимым (владелец / admin).
    """
    deleted_id = delete_project(db, actor, project_id)
    apply_stale_views(response, actor)
    return SuccessResponse(result=str(deleted_id), detail="Project deleted")

# --- Участники ---

@router.get("/{project_id}/members", response_model=List[MemberRead])
def list_members(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return get_project_members(db, actor, project_id)

@router.post("/{project_id}/members", response_model=MemberRead)
def add_member(
    project_id: uuid.UUID,
    data: MemberAdd,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Пригласить пользователя в проект.
    """
    member = add_project_member(db, actor, project_id, data.model_dump())
    apply_stale_views(response, actor)
    return member

@router.delete("/{project_id}/members/{user_id}", response_model=SuccessResponse)
def remove_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Исключить участника из проекта.
    """
    remove_project_member(db, actor, project_id, user_id)
    apply_stale_views(response, actor)
    return SuccessResponse(result=str(user_id), detail="Member removed")
