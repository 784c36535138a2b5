#taskdesk/models/notification.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base, utcnow

NOTIFICATION_TYPES = ("task_assigned", "comment_added", "project_invite", "deadline_reminder")

class Notification(Base):
    """
    Notification — внутреннее уведомление пользователя.
    Изменяется только отметкой о прочтении.
    """
    __tablename__ = "notifications"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    triggered_by_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, doc="NULL — система")
    type: str = Column(String(50), nullable=False, doc="task_assigned | comment_added | project_invite | deadline_reminder")
    title: str = Column(String(255), nullable=False)
    message: str = Column(Text, nullable=False)
    entity_type: str = Column(String(50), nullable=False)
    entity_id: uuid.UUID = Column(Uuid, nullable=False)
    project_id: uuid.UUID = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    is_read: bool = Column(Boolean, default=False, nullable=False, index=True)
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship("Project", back_populates="notifications")
    recipient = relationship("User", foreign_keys=[recipient_id])
    triggered_by = relationship("User", foreign_keys=[triggered_by_id])

    def __repr__(self):
        return f"<Notification(type='{self.type}', recipient_id={self.recipient_id}, is_read={self.is_read})>"
