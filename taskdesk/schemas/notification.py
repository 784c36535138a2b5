#taskdesk/schemas/notification.py
import uuid
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class NotificationRead(BaseModel):
    """
    NotificationRead — уведомление пользователя (response).
    """
    id: uuid.UUID
    recipient_id: uuid.UUID
    triggered_by_id: Optional[uuid.UUID] = None
    type: str
    title: str
    message: str
    entity_type: str
    entity_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

class UnreadCount(BaseModel):
    count: int = Field(..., example=3, description="Количество непрочитанных уведомлений")

class DeadlineSweepResult(BaseModel):
    """
    DeadlineSweepResult — итог рассылки напоминаний о дедлайнах.
    """
    success: bool = True
    tasksProcessed: int = Field(..., example=4)
    remindersSent: int = Field(..., example=3)
    errors: int = Field(..., example=1)
