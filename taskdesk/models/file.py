#taskdesk/models/file.py
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from taskdesk.models.base import Base

class File(Base):
    """
    File — загруженный файл, привязанный к проекту и/или задаче.
    Сам файл хранится на диске (file_path), здесь только метаданные.
    """
    __tablename__ = "files"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    filename: str = Column(String(255), nullable=False, doc="Имя на диске (<uuid>.<ext>)")
    original_name: str = Column(String(255), nullable=False, doc="Исходное имя файла")
    file_path: str = Column(String(1024), nullable=False, doc="Путь к файлу на диске")
    file_size: int = Column(Integer, nullable=False, doc="Размер в байтах")
    mime_type: str = Column(String(255), nullable=False, doc="MIME-тип")
    description: str = Column(Text, nullable=True, doc="Описание")
    project_id: uuid.UUID = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    task_id: uuid.UUID = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    uploaded_by: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    uploaded_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="files")
    task = relationship("Task", back_populates="files")
    uploader = relationship("User")

    def __repr__(self):
        return f"<File(id={self.id}, original_name='{self.original_name}', size={self.file_size})>"
