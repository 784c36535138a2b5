# taskdesk/crud/comment.py
import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import (
    CommentNotFound,
    CommentValidationError,
    PermissionDeniedError,
    TaskNotFound,
)
from taskdesk.core.permissions import can_comment, can_delete_comment, can_view_project
from taskdesk.core.validation import validate_payload
from taskdesk.crud.audit import add_audit_log
from taskdesk.crud.notification import notify_comment_added
from taskdesk.models.comment import Comment
from taskdesk.models.task import Task
from taskdesk.schemas.comment import CommentCreate

logger = logging.getLogger("Taskdesk.Comments")

def _get_task(db: Session, task_id: uuid.UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise TaskNotFound(f"Task with id={task_id} not found.")
    return task

def get_task_comments(db: Session, actor: Optional[Actor], task_id: uuid.UUID) -> List[Comment]:
    """
    Комментарии задачи в хронологическом порядке.
    """
    actor = require_actor(actor)
    task = _get_task(db, task_id)
    if not can_view_project(actor, task.project):
        raise PermissionDeniedError("Not enough permissions to view comments of this task")
    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.task_id == task.id)
        .order_by(Comment.created_at.asc())
        .all()
    )

def create_comment(db: Session, actor: Optional[Actor], task_id: uuid.UUID, data: dict) -> Comment:
    """
    Добавить комментарий. Исполнитель и автор задачи (кроме самого
    комментатора) получают уведомление.
    """
    actor = require_actor(actor)
    payload = validate_payload(CommentCreate, data, CommentValidationError)
    task = _get_task(db, task_id)
    if not can_comment(actor, task.project):
        raise PermissionDeniedError("Not enough permissions to comment on this task")

    comment = Comment(id=uuid.uuid4(), content=payload.content, task_id=task.id, author_id=actor.id)
    db.add(comment)
    add_audit_log(
        db,
        action="comment_created",
        entity_type="comment",
        entity_id=comment.id,
        user_id=actor.id,
        project_id=task.project_id,
        details={"taskId": str(task.id)},
    )
    try:
        db.commit()
        db.refresh(comment)
        logger.info(f"Created comment {comment.id} on task {task.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise CommentValidationError("Database error while creating comment.")

    try:
        notify_comment_added(db, task, comment, actor)
    except Exception:
        logger.exception(f"Failed to send comment notification for task {task.id}")

    actor.invalidate(f"/tasks/{task.id}")
    return comment

def delete_comment(db: Session, actor: Optional[Actor], comment_id: uuid.UUID) -> uuid.UUID:
    actor = require_actor(actor)
    comment = db.get(Comment, comment_id)
    if not comment:
        raise CommentNotFound(f"Comment with id={comment_id} not found.")
    task = comment.task
    if not can_delete_comment(actor, comment, task.project):
        raise PermissionDeniedError("Not enough permissions to delete this comment")

    try:
        db.delete(comment)
        add_audit_log(
            db,
            action="comment_deleted",
            entity_type="comment",
            entity_id=comment_id,
            user_id=actor.id,
            project_id=task.project_id,
            details={"taskId": str(task.id)},
        )
        db.commit()
        logger.info(f"Deleted comment {comment_id} from task {task.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete comment: {e}")
        raise CommentValidationError("Database error while deleting comment.")

    actor.invalidate(f"/tasks/{task.id}")
    return comment_id
