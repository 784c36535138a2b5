#taskdesk/models/task.py
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, DateTime, Integer, ForeignKey, JSON, Uuid, func
)
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base

TASK_STATUSES = ("open", "in_progress", "completed", "cancelled")
TASK_PRIORITIES = ("low", "medium", "high", "critical")

class Task(Base):
    """
    Task — задача проекта. Может иметь родительскую задачу (подзадачи),
    исполнителя и автора. Удаление каскадно убирает подзадачи, комментарии и файлы.
    """
    __tablename__ = "tasks"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title: str = Column(String(255), nullable=False, index=True, doc="Заголовок задачи")
    description: str = Column(Text, nullable=True, doc="Описание")
    project_id: uuid.UUID = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_task_id: uuid.UUID = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True, doc="Родительская задача")
    assignee_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True, doc="Исполнитель")
    creator_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, doc="Автор задачи")
    status: str = Column(String(50), nullable=False, default="open", index=True, doc="open | in_progress | completed | cancelled")
    priority: str = Column(String(50), nullable=False, default="medium", doc="low | medium | high | critical")
    complexity: int = Column(Integer, nullable=False, default=1, doc="Сложность (1-10)")
    due_date: datetime = Column(DateTime(timezone=True), nullable=True, index=True, doc="Срок выполнения")
    tags: list = Column(JSON, default=list, doc="Теги")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата изменения")

    # --- Связи ---
    project = relationship("Project", back_populates="tasks")
    parent = relationship("Task", remote_side=[id], back_populates="subtasks")
    subtasks = relationship("Task", back_populates="parent", cascade="all, delete-orphan")
    assignee = relationship("User", foreign_keys=[assignee_id])
    creator = relationship("User", foreign_keys=[creator_id])
    comments = relationship("Comment", back_populates="task", cascade="all, delete-orphan")
    files = relationship("File", back_populates="task", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', status='{self.status}')>"
