#taskdesk/schemas/report.py
import uuid
from pydantic import BaseModel, Field
from typing import Optional

class ProjectReportRow(BaseModel):
    """
    ProjectReportRow — строка сводного отчёта по проектам.
    """
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    owner: str = Field(..., description="Имя владельца")
    created_at: str = Field(..., example="2025-01-31")
    total_tasks: int
    completed_tasks: int
    completion: int = Field(..., description="Процент завершения (0-100)")
    members_count: int

class TaskReportRow(BaseModel):
    """
    TaskReportRow — строка детального отчёта по задачам.
    """
    id: uuid.UUID
    title: str
    project: str
    status: str
    priority: str
    complexity: int
    assignee: str
    creator: str
    due_date: str = ""
    created_at: str
    description: str = ""
