#taskdesk/schemas/project.py
import uuid
from pydantic import BaseModel, Field, constr
from typing import Optional, Literal
from datetime import datetime

from taskdesk.schemas.user import UserShort

ProjectRole = Literal["project_manager", "executor", "observer"]

class ProjectBase(BaseModel):
    """
    ProjectBase — базовая схема проекта.
    """
    title: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(..., example="Alpha", description="Название проекта")
    description: Optional[str] = Field(None, example="Project description", description="Описание")

class ProjectCreate(ProjectBase):
    """
    ProjectCreate — схема для создания проекта (владелец выставляется на сервере).
    """
    pass

class ProjectUpdate(BaseModel):
    """
    ProjectUpdate — схема для обновления проекта (все поля опциональны).
    """
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None

class ProjectRead(ProjectBase):
    """
    ProjectRead — схема полного вывода проекта (response).
    """
    id: uuid.UUID
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class MemberAdd(BaseModel):
    """
    MemberAdd — приглашение пользователя в проект.
    """
    user_id: uuid.UUID = Field(..., description="ID приглашаемого пользователя")
    role: ProjectRole = Field("executor", example="executor", description="Роль в проекте")

class MemberRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    role: ProjectRole
    added_at: datetime
    user: Optional[UserShort] = None

    class Config:
        from_attributes = True
