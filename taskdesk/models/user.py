#taskdesk/models/user.py
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, DateTime, Uuid, func
)
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base

ROLE_ADMIN = "admin"
ROLE_PROJECT_MANAGER = "project_manager"
ROLE_EXECUTOR = "executor"
ROLE_OBSERVER = "observer"

USER_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_EXECUTOR, ROLE_OBSERVER)

class User(Base):
    """
    User — аккаунт пользователя с глобальной системной ролью и отделом.
    Пользователи не удаляются, только деактивируются (is_active=False).
    """
    __tablename__ = "users"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email: str = Column(String(255), unique=True, nullable=False, index=True, doc="Email (логин)")
    password_hash: str = Column(String(255), nullable=False, doc="Хэш пароля (bcrypt)")
    name: str = Column(String(255), nullable=False, doc="Отображаемое имя")
    role: str = Column(String(50), nullable=False, default=ROLE_EXECUTOR, doc="admin | project_manager | executor | observer")
    department: str = Column(String(255), nullable=True, doc="Отдел")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Аккаунт активен")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    # --- Связи ---
    owned_projects = relationship("Project", back_populates="owner", cascade="all, delete-orphan")
    memberships = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
