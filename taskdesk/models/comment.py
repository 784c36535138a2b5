#taskdesk/models/comment.py
import uuid
from datetime import datetime
from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base

class Comment(Base):
    """
    Comment — комментарий к задаче.
    """
    __tablename__ = "comments"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    content: str = Column(Text, nullable=False, doc="Текст комментария")
    task_id: uuid.UUID = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    task = relationship("Task", back_populates="comments")
    author = relationship("User")

    def __repr__(self):
        return f"<Comment(id={self.id}, task_id={self.task_id}, author_id={self.author_id})>"
