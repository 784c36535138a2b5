#taskdesk/schemas/file.py
import uuid
from pydantic import BaseModel, Field, constr, model_validator
from typing import Optional
from datetime import datetime

class FileUpload(BaseModel):
    """
    FileUpload — метаданные загружаемого файла.
    Нужен хотя бы один из project_id / task_id.
    """
    original_name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(..., example="report.pdf")
    mime_type: str = Field(..., example="application/pdf")
    project_id: Optional[uuid.UUID] = Field(None, description="ID проекта")
    task_id: Optional[uuid.UUID] = Field(None, description="ID задачи")
    description: Optional[str] = Field(None, description="Описание файла")

    @model_validator(mode="after")
    def check_target(self):
        if self.project_id is None and self.task_id is None:
            raise ValueError("project_id or task_id is required")
        return self

class FileRead(BaseModel):
    """
    FileRead — метаданные файла (response).
    """
    id: uuid.UUID
    filename: str
    original_name: str
    file_size: int
    mime_type: str
    description: Optional[str] = None
    project_id: Optional[uuid.UUID] = None
    task_id: Optional[uuid.UUID] = None
    uploaded_by: uuid.UUID
    uploaded_at: datetime

    class Config:
        from_attributes = True
