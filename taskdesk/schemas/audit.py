#taskdesk/schemas/audit.py
import uuid
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime

class AuditLogRead(BaseModel):
    """
    AuditLogRead — запись журнала аудита (response).
    """
    id: uuid.UUID
    action: str
    entity_type: str
    entity_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    project_id: Optional[uuid.UUID] = None
    details: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True
