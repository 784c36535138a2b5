#taskdesk/api/comment.py
import uuid
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List

from taskdesk.core.actor import Actor
from taskdesk.crud.comment import create_comment, delete_comment, get_task_comments
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.comment import CommentCreate, CommentRead
from taskdesk.schemas.response import SuccessResponse

router = APIRouter(tags=["Comments"])

@router.get("/tasks/{task_id}/comments", response_model=List[CommentRead])
def list_comments(
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return get_task_comments(db, actor, task_id)

@router.post("/tasks/{task_id}/comments", response_model=CommentRead)
def add_comment(
    task_id: uuid.UUID,
    data: CommentCreate,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Добавить комментарий к задаче.
    """
    comment = create_comment(db, actor, task_id, data.model_dump())
    apply_stale_views(response, actor)
    return comment

@router.delete("/comments/{comment_id}", response_model=SuccessResponse)
def remove_comment(
    comment_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    deleted_id = delete_comment(db, actor, comment_id)
    apply_stale_views(response, actor)
    return SuccessResponse(result=str(deleted_id), detail="Comment deleted")
