#taskdesk/api/user.py
import uuid
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from taskdesk.core.actor import Actor
from taskdesk.core.exceptions import PermissionDeniedError
from taskdesk.core.permissions import can_list_users, is_self
from taskdesk.crud.user import (
    create_user,
    deactivate_user,
    get_user,
    get_users,
    update_profile,
    update_user_role,
)
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.user import ProfileUpdate, UserCreate, UserRead, UserRole, UserRoleUpdate

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=UserRead)
def read_me(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Текущий пользователь.
    """
    return get_user(db, actor.id)

@router.patch("/me", response_model=UserRead)
def update_me(
    data: ProfileUpdate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Обновить свой профиль (имя, отдел, пароль).
    """
    user = update_profile(db, actor, data.model_dump(exclude_unset=True))
    apply_stale_views(response, actor)
    return user

@router.post("/", response_model=UserRead)
def create_new_user(
    data: UserCreate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Создать пользователя (только admin).
    """
    user = create_user(db, actor, data.model_dump())
    apply_stale_views(response, actor)
    return user

@router.get("/", response_model=List[UserRead])
def list_users(
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Список пользователей с поиском и фильтром по роли.
    """
    return get_users(db, actor, search=search, role=role)

@router.get("/{user_id}", response_model=UserRead)
def read_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    user = get_user(db, user_id)
    if not (is_self(actor, user_id) or can_list_users(actor)):
        raise PermissionDeniedError("Not authorized to access this user's information")
    return user

@router.patch("/{user_id}/role", response_model=UserRead)
def change_user_role(
    user_id: uuid.UUID,
    data: UserRoleUpdate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Сменить системную роль пользователя (только admin, не себе).
    """
    user = update_user_role(db, actor, user_id, data.model_dump())
    apply_stale_views(response, actor)
    return user

@router.post("/{user_id}/deactivate", response_model=UserRead)
def deactivate(
    user_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Деактивировать пользователя (только admin, не себя).
    """
    user = deactivate_user(db, actor, user_id)
    apply_stale_views(response, actor)
    return user
