#taskdesk/schemas/task.py
import uuid
from pydantic import BaseModel, Field, constr
from typing import Optional, List, Literal
from datetime import datetime

TaskStatus = Literal["open", "in_progress", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high", "critical"]

class TaskBase(BaseModel):
    """
    TaskBase — базовая схема задачи.
    """
    title: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(..., example="Write docs", description="Заголовок задачи")
    description: Optional[str] = Field(None, example="Describe the API", description="Описание")
    priority: TaskPriority = Field("medium", example="medium", description="Приоритет")
    complexity: int = Field(1, ge=1, le=10, example=3, description="Сложность (1-10)")
    due_date: Optional[datetime] = Field(None, example="2025-12-31T12:00:00Z", description="Срок выполнения")
    tags: List[str] = Field(default_factory=list, example=["backend", "api"], description="Теги")

class TaskCreate(TaskBase):
    """
    TaskCreate — схема для создания задачи.
    """
    project_id: uuid.UUID = Field(..., description="ID проекта")
    parent_task_id: Optional[uuid.UUID] = Field(None, description="ID родительской задачи")
    assignee_id: Optional[uuid.UUID] = Field(None, description="ID исполнителя")

class TaskUpdate(BaseModel):
    """
    TaskUpdate — схема для обновления задачи (все поля опциональны).
    Статус меняется отдельным действием.
    """
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    complexity: Optional[int] = Field(None, ge=1, le=10)
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    assignee_id: Optional[uuid.UUID] = None

class TaskStatusUpdate(BaseModel):
    status: TaskStatus = Field(..., example="in_progress", description="Новый статус")

class TaskRead(TaskBase):
    """
    TaskRead — схема полного вывода задачи (response).
    """
    id: uuid.UUID
    project_id: uuid.UUID
    parent_task_id: Optional[uuid.UUID] = None
    assignee_id: Optional[uuid.UUID] = None
    creator_id: uuid.UUID
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
