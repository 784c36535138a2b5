# taskdesk/crud/file.py
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import (
    FileNotFound,
    FileValidationError,
    PermissionDeniedError,
    ProjectNotFound,
    TaskNotFound,
)
from taskdesk.core.permissions import can_delete_file, can_upload_file, can_view_file, can_view_project
from taskdesk.core.settings import settings
from taskdesk.core.validation import validate_payload
from taskdesk.crud.audit import add_audit_log
from taskdesk.models.file import File
from taskdesk.models.project import Project, ProjectMember
from taskdesk.models.task import Task
from taskdesk.schemas.file import FileUpload
from taskdesk.services import storage

logger = logging.getLogger("Taskdesk.Files")

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
}

def _file_project(db: Session, file: File) -> Project:
    if file.project_id:
        return db.get(Project, file.project_id)
    return file.task.project

def _get_file(db: Session, file_id: uuid.UUID) -> File:
    file = db.get(File, file_id)
    if not file:
        raise FileNotFound(f"File with id={file_id} not found.")
    return file

def validate_upload(content: bytes, mime_type: str) -> None:
    """
    Проверка размера (MAX_UPLOAD_SIZE) и MIME-типа по белому списку.
    """
    if not content:
        raise FileValidationError("file: File is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise FileValidationError(f"file: File is too large. Maximum size is {limit_mb} MB")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise FileValidationError(f"file: File type '{mime_type}' is not allowed")

# ==== Чтение ====

def get_files(
    db: Session,
    actor: Optional[Actor],
    project_id: Optional[uuid.UUID] = None,
    task_id: Optional[uuid.UUID] = None,
) -> List[File]:
    """
    Файлы задачи, проекта или (без фильтра) всех доступных проектов.
    """
    actor = require_actor(actor)
    query = db.query(File)

    if task_id is not None:
        task = db.get(Task, task_id)
        if not task:
            raise TaskNotFound(f"Task with id={task_id} not found.")
        if not can_view_project(actor, task.project):
            raise PermissionDeniedError("Not enough permissions to view files of this task")
        query = query.filter(File.task_id == task.id)
    elif project_id is not None:
        project = db.get(Project, project_id)
        if not project:
            raise ProjectNotFound(f"Project with id={project_id} not found.")
        if not can_view_project(actor, project):
            raise PermissionDeniedError("Not enough permissions to view files of this project")
        query = query.filter(File.project_id == project.id)
    elif not actor.is_admin:
        owned = select(Project.id).where(Project.owner_id == actor.id)
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == actor.id)
        query = query.filter(or_(File.project_id.in_(owned), File.project_id.in_(member_of)))

    return query.order_by(File.uploaded_at.desc()).all()

def get_file_for_download(db: Session, actor: Optional[Actor], file_id: uuid.UUID) -> Tuple[File, bytes]:
    """
    Возвращает (метаданные, содержимое) файла. Доступно участникам проекта и admin.
    """
    actor = require_actor(actor)
    file = _get_file(db, file_id)
    project = _file_project(db, file)
    if not can_view_file(actor, file, project):
        raise PermissionDeniedError("Not enough permissions to download this file")
    try:
        content = storage.read_blob(file.file_path)
    except FileNotFoundError:
        logger.error(f"File {file.id} is missing on disk: {file.file_path}")
        raise FileNotFound("File content is missing on disk.")
    return file, content

# ==== Изменения ====

def upload_file(db: Session, actor: Optional[Actor], data: dict, content: bytes) -> File:
    """
    Загрузка файла: запись на диск, затем строка в БД и аудит одной
    транзакцией. Если commit не удался, файл с диска удаляется.
    """
    actor = require_actor(actor)
    payload = validate_payload(FileUpload, data, FileValidationError)
    validate_upload(content, payload.mime_type)

    task = None
    if payload.task_id:
        task = db.get(Task, payload.task_id)
        if not task:
            raise TaskNotFound(f"Task with id={payload.task_id} not found.")
    if payload.project_id:
        project = db.get(Project, payload.project_id)
        if not project:
            raise ProjectNotFound(f"Project with id={payload.project_id} not found.")
    else:
        project = task.project

    if not can_upload_file(actor, project):
        raise PermissionDeniedError("Not enough permissions to upload files to this project")
    if task and task.project_id != project.id:
        raise FileValidationError("task_id: Task must belong to the same project")

    stored_name, file_path = storage.save_blob(content, payload.original_name, str(project.id))
    file = File(
        id=uuid.uuid4(),
        filename=stored_name,
        original_name=payload.original_name,
        file_path=file_path,
        file_size=len(content),
        mime_type=payload.mime_type,
        description=payload.description,
        project_id=project.id,
        task_id=task.id if task else None,
        uploaded_by=actor.id,
    )
    db.add(file)
    add_audit_log(
        db,
        action="file_uploaded",
        entity_type="file",
        entity_id=file.id,
        user_id=actor.id,
        project_id=project.id,
        details={
            "filename": file.original_name,
            "fileSize": file.file_size,
            "taskId": str(task.id) if task else None,
        },
    )
    try:
        db.commit()
        db.refresh(file)
        logger.info(f"Uploaded file '{file.original_name}' (ID: {file.id}, {file.file_size} bytes)")
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        try:
            storage.remove_blob(file_path)
        except OSError:
            logger.exception(f"Failed to remove orphaned blob {file_path}")
        raise FileValidationError("Database error while uploading file.")

    actor.invalidate(f"/projects/{project.id}")
    if task:
        actor.invalidate(f"/tasks/{task.id}")
    return file

def delete_file(db: Session, actor: Optional[Actor], file_id: uuid.UUID) -> uuid.UUID:
    """
    Удаление файла. Строка в БД и аудит коммитятся первыми; удаление
    с диска — после и best-effort, строка удаляется даже если файла на диске нет.
    """
    actor = require_actor(actor)
    file = _get_file(db, file_id)
    project = _file_project(db, file)
    if not can_delete_file(actor, file, project):
        raise PermissionDeniedError("Not enough permissions to delete this file")

    file_path = file.file_path
    task_id = file.task_id
    details = {"filename": file.original_name, "fileSize": file.file_size}

    try:
        db.delete(file)
        add_audit_log(
            db,
            action="file_deleted",
            entity_type="file",
            entity_id=file_id,
            user_id=actor.id,
            project_id=project.id,
            details=details,
        )
        db.commit()
        logger.info(f"Deleted file record {file_id} ('{details['filename']}')")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete file: {e}")
        raise FileValidationError("Database error while deleting file.")

    try:
        storage.remove_blob(file_path)
    except OSError as e:
        logger.warning(f"Could not remove file {file_path} from disk: {e}")

    actor.invalidate(f"/projects/{project.id}")
    if task_id:
        actor.invalidate(f"/tasks/{task_id}")
    return file_id
