#taskdesk/models/audit.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base, utcnow

class AuditLog(Base):
    """
    AuditLog — неизменяемая запись об изменении данных.
    user_id = NULL означает, что действие выполнено системой (cron).
    """
    __tablename__ = "audit_logs"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action: str = Column(String(100), nullable=False, index=True, doc="Тип действия (project_created, ...)")
    entity_type: str = Column(String(50), nullable=False, doc="Тип сущности")
    entity_id: uuid.UUID = Column(Uuid, nullable=False, index=True, doc="ID сущности")
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True, doc="Кто выполнил действие")
    project_id: uuid.UUID = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    details: dict = Column(JSON, default=dict, doc="Детали действия")
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    project = relationship("Project", back_populates="audit_logs")
    user = relationship("User")

    def __repr__(self):
        return f"<AuditLog(action='{self.action}', entity_type='{self.entity_type}', entity_id={self.entity_id})>"
