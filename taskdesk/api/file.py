#taskdesk/api/file.py
import uuid
from urllib.parse import quote
from fastapi import APIRouter, Depends, File as FileParam, Form, Query, Response, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional

from taskdesk.core.actor import Actor
from taskdesk.core.settings import settings
from taskdesk.crud.file import delete_file, get_file_for_download, get_files, upload_file
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.file import FileRead
from taskdesk.schemas.response import SuccessResponse

router = APIRouter(prefix="/files", tags=["Files"])

def content_disposition(filename: str) -> str:
    """
    attachment с ASCII-именем (не-ASCII символы заменены на "_")
    и UTF-8 именем в filename*.
    """
    ascii_name = "".join(ch if 32 <= ord(ch) < 127 and ch not in '"\\' else "_" for ch in filename)
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"

@router.post("/", response_model=FileRead)
async def upload(
    response: Response,
    file: UploadFile = FileParam(...),
    project_id: Optional[uuid.UUID] = Form(None),
    task_id: Optional[uuid.UUID] = Form(None),
    description: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Загрузить файл в проект и/или задачу (multipart).
    """
    content = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    data = {
        "original_name": file.filename or "file",
        "mime_type": file.content_type or "application/octet-stream",
        "project_id": project_id,
        "task_id": task_id,
        "description": description,
    }
    stored = upload_file(db, actor, data, content)
    apply_stale_views(response, actor)
    return stored

@router.get("/", response_model=List[FileRead])
def list_files(
    project_id: Optional[uuid.UUID] = Query(None),
    task_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return get_files(db, actor, project_id=project_id, task_id=task_id)

@router.get("/{file_id}")
def download(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Скачать файл (участники проекта и admin).
    """
    file, content = get_file_for_download(db, actor, file_id)
    return Response(
        content=content,
        media_type=file.mime_type,
        headers={
            "Content-Disposition": content_disposition(file.original_name),
            "Content-Length": str(len(content)),
        },
    )

@router.delete("/{file_id}", response_model=SuccessResponse)
def remove_file(
    file_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Удалить файл (загрузивший, владелец проекта, project_manager проекта, admin).
    """
    deleted_id = delete_file(db, actor, file_id)
    apply_stale_views(response, actor)
    return SuccessResponse(result=str(deleted_id), detail="File deleted")
