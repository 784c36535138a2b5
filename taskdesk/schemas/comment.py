#taskdesk/schemas/comment.py
import uuid
from pydantic import BaseModel, Field, constr
from typing import Optional
from datetime import datetime

from taskdesk.schemas.user import UserShort

class CommentCreate(BaseModel):
    content: constr(strip_whitespace=True, min_length=1) = Field(..., example="Looks good", description="Текст комментария")

class CommentRead(BaseModel):
    """
    CommentRead — комментарий с автором.
    """
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime
    author: Optional[UserShort] = None

    class Config:
        from_attributes = True
