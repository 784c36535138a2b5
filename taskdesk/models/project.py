#taskdesk/models/project.py
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Uuid, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base

PROJECT_ROLES = ("project_manager", "executor", "observer")

class Project(Base):
    """
    Project — проект. Владелец фиксируется при создании; удаление каскадно
    убирает участников, задачи, файлы, журнал аудита и уведомления проекта.
    """
    __tablename__ = "projects"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title: str = Column(String(255), nullable=False, index=True, doc="Название проекта")
    description: str = Column(Text, nullable=True, doc="Описание")
    owner_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True, doc="Владелец")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата изменения")

    owner = relationship("User", back_populates="owned_projects")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    files = relationship("File", back_populates="project", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="project", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(id={self.id}, title='{self.title}', owner_id={self.owner_id})>"


class ProjectMember(Base):
    """
    ProjectMember — участие пользователя в проекте с проектной ролью.
    Одна строка на пару (project, user).
    """
    __tablename__ = "project_members"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: uuid.UUID = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role: str = Column(String(50), nullable=False, default="executor", doc="project_manager | executor | observer")
    added_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата добавления")

    project = relationship("Project", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    def __repr__(self):
        return f"<ProjectMember(project_id={self.project_id}, user_id={self.user_id}, role='{self.role}')>"
