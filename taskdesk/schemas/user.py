#taskdesk/schemas/user.py
import uuid
from pydantic import BaseModel, Field, EmailStr, constr
from typing import Optional, Literal
from datetime import datetime

UserRole = Literal["admin", "project_manager", "executor", "observer"]

class UserBase(BaseModel):
    """
    UserBase — базовая схема пользователя (используется для create/read).
    """
    email: EmailStr = Field(..., example="john.doe@example.com", description="Email пользователя (логин)")
    name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(..., example="John Doe", description="Имя")
    role: UserRole = Field("executor", example="executor", description="Системная роль")
    department: Optional[str] = Field(None, example="Engineering", description="Отдел")

class UserCreate(UserBase):
    """
    UserCreate — создание пользователя администратором (пароль обязателен).
    """
    password: constr(min_length=6) = Field(..., example="secret123", description="Пароль")

class UserRoleUpdate(BaseModel):
    """
    UserRoleUpdate — смена системной роли (только admin).
    """
    role: UserRole = Field(..., example="project_manager", description="Новая роль")

class ProfileUpdate(BaseModel):
    """
    ProfileUpdate — обновление собственного профиля (все поля опциональны).
    """
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = Field(None, description="Имя")
    department: Optional[str] = Field(None, description="Отдел")
    password: Optional[constr(min_length=6)] = Field(None, description="Новый пароль")

class UserShort(BaseModel):
    id: uuid.UUID
    name: str
    email: EmailStr

    class Config:
        from_attributes = True

class UserRead(UserBase):
    """
    UserRead — схема для выдачи пользователя (response).
    """
    id: uuid.UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
