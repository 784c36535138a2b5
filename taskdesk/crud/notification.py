# taskdesk/crud/notification.py
"""
Диспетчер уведомлений.

Для каждого события (назначение задачи, комментарий, приглашение в проект,
приближение дедлайна) определяет получателей, создаёт по одной записи
Notification на получателя, отправляет письма (best-effort) и пишет
отдельной транзакцией запись аудита notification_sent.

Вызывающие действия выполняют диспатч уже после commit основной записи
и сами гасят его ошибки; здесь ошибка записи уведомлений пробрасывается,
чтобы рассылка по дедлайнам могла посчитать её.
"""

import html
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import NotificationNotFound, PermissionDeniedError
from taskdesk.core.settings import settings
from taskdesk.crud.audit import record_audit_log
from taskdesk.models.comment import Comment
from taskdesk.models.notification import Notification
from taskdesk.models.project import Project
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.services import mailer

logger = logging.getLogger("Taskdesk.Notifications")

COMMENT_PREVIEW_LENGTH = 100
MAX_NOTIFICATIONS = 100

ROLE_LABELS = {
    "project_manager": "Project manager",
    "executor": "Executor",
    "observer": "Observer",
}

def comment_preview(content: str, length: int = COMMENT_PREVIEW_LENGTH) -> str:
    if len(content) > length:
        return content[:length] + "..."
    return content

def comment_recipient_ids(task: Task, author_id: uuid.UUID) -> List[uuid.UUID]:
    """
    Получатели уведомления о комментарии: {исполнитель, автор задачи}
    без автора комментария, без повторов.
    """
    recipients: List[uuid.UUID] = []
    for user_id in (task.assignee_id, task.creator_id):
        if user_id and user_id != author_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients

def _email_body(recipient: User, heading: str, paragraphs: List[str]) -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        f"<h2>{html.escape(heading)}</h2>"
        f"<p>Hello, {html.escape(recipient.name)}!</p>"
        f"{body}"
        f"<p>Open Taskdesk: {html.escape(settings.APP_URL)}</p>"
    )

def _dispatch(
    db: Session,
    *,
    notification_type: str,
    audit_type: str,
    recipients: List[User],
    triggered_by_id: Optional[uuid.UUID],
    entity_type: str,
    entity_id: uuid.UUID,
    project_id: Optional[uuid.UUID],
    title: str,
    message: str,
    email_subject: str,
    email_html: Callable[[User], str],
) -> int:
    """
    Общий конвейер рассылки. Возвращает число созданных уведомлений.
    """
    if not recipients:
        logger.info(f"No recipients for {notification_type} on {entity_type} {entity_id}")
        return 0

    for recipient in recipients:
        db.add(Notification(
            recipient_id=recipient.id,
            triggered_by_id=triggered_by_id,
            type=notification_type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
            project_id=project_id,
        ))
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to store {notification_type} notifications: {e}")
        raise

    for recipient in recipients:
        try:
            mailer.send_email(recipient.email, email_subject, email_html(recipient))
        except Exception:
            logger.exception(f"Failed to email {notification_type} to {recipient.email}")

    record_audit_log(
        db,
        action="notification_sent",
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=triggered_by_id,
        project_id=project_id,
        details={"type": audit_type, "recipients": len(recipients)},
    )
    logger.info(f"Dispatched {notification_type} to {len(recipients)} recipient(s) for {entity_type} {entity_id}")
    return len(recipients)

# ==== События ====

def notify_task_assignment(db: Session, task: Task, assigned_by: Optional[Actor]) -> int:
    """
    Уведомление нового исполнителя о назначении задачи.
    """
    if task.assignee_id is None:
        return 0
    assignee = db.get(User, task.assignee_id)
    if assignee is None:
        return 0
    project = db.get(Project, task.project_id)
    assigner_name = assigned_by.name if assigned_by else "System"

    def email_html(recipient: User) -> str:
        paragraphs = [
            f"{html.escape(assigner_name)} assigned you a task in project "
            f"\"{html.escape(project.title)}\":",
            f"<strong>{html.escape(task.title)}</strong>",
        ]
        if task.description:
            paragraphs.append(html.escape(task.description))
        return _email_body(recipient, "You have a new task", paragraphs)

    return _dispatch(
        db,
        notification_type="task_assigned",
        audit_type="task_assignment",
        recipients=[assignee],
        triggered_by_id=assigned_by.id if assigned_by else None,
        entity_type="task",
        entity_id=task.id,
        project_id=task.project_id,
        title="New task assigned",
        message=f"{assigner_name} assigned you the task \"{task.title}\" in project \"{project.title}\"",
        email_subject=f"New task: {task.title}",
        email_html=email_html,
    )

def notify_comment_added(db: Session, task: Task, comment: Comment, author: Actor) -> int:
    """
    Уведомление исполнителя и автора задачи о новом комментарии.
    """
    recipient_ids = comment_recipient_ids(task, author.id)
    recipients = [u for u in (db.get(User, uid) for uid in recipient_ids) if u is not None]
    project = db.get(Project, task.project_id)
    preview = comment_preview(comment.content)

    def email_html(recipient: User) -> str:
        return _email_body(recipient, "New comment on a task", [
            f"{html.escape(author.name)} commented on the task \"{html.escape(task.title)}\" "
            f"in project \"{html.escape(project.title)}\":",
            f"<strong>{html.escape(author.name)}:</strong> {html.escape(comment.content)}",
        ])

    return _dispatch(
        db,
        notification_type="comment_added",
        audit_type="comment_notification",
        recipients=recipients,
        triggered_by_id=author.id,
        entity_type="task",
        entity_id=task.id,
        project_id=task.project_id,
        title=f"New comment on \"{task.title}\"",
        message=f"{author.name}: {preview}",
        email_subject=f"New comment: {task.title}",
        email_html=email_html,
    )

def notify_project_invite(
    db: Session,
    project: Project,
    user_id: uuid.UUID,
    role: str,
    invited_by: Optional[Actor],
) -> int:
    """
    Уведомление приглашённого пользователя. В тексте — имя владельца
    проекта и название роли.
    """
    invited = db.get(User, user_id)
    if invited is None:
        return 0
    owner = db.get(User, project.owner_id)
    owner_name = owner.name if owner else "Project owner"
    role_label = ROLE_LABELS.get(role, role)

    def email_html(recipient: User) -> str:
        return _email_body(recipient, "Project invitation", [
            f"You have been invited to the project \"{html.escape(project.title)}\" "
            f"as \"{html.escape(role_label)}\".",
            f"Invited by: {html.escape(owner_name)}",
        ])

    return _dispatch(
        db,
        notification_type="project_invite",
        audit_type="project_invite",
        recipients=[invited],
        triggered_by_id=invited_by.id if invited_by else None,
        entity_type="project",
        entity_id=project.id,
        project_id=project.id,
        title=f"Invitation to project \"{project.title}\"",
        message=f"{owner_name} invited you to the project \"{project.title}\" as \"{role_label}\"",
        email_subject=f"Project invitation: {project.title}",
        email_html=email_html,
    )

def send_deadline_reminder(db: Session, task: Task) -> int:
    """
    Напоминание исполнителю о приближающемся дедлайне.
    Инициатор — система (triggered_by_id = NULL).
    """
    assignee = db.get(User, task.assignee_id) if task.assignee_id else None
    if assignee is None:
        raise ValueError(f"Task {task.id} has no assignee to remind")
    project = db.get(Project, task.project_id)
    due = task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else "soon"

    def email_html(recipient: User) -> str:
        return _email_body(recipient, "Deadline approaching", [
            f"The task \"{html.escape(task.title)}\" in project \"{html.escape(project.title)}\" "
            f"is due {html.escape(due)} (UTC).",
        ])

    return _dispatch(
        db,
        notification_type="deadline_reminder",
        audit_type="deadline_reminder",
        recipients=[assignee],
        triggered_by_id=None,
        entity_type="task",
        entity_id=task.id,
        project_id=task.project_id,
        title=f"Deadline approaching: {task.title}",
        message=f"The task \"{task.title}\" in project \"{project.title}\" is due {due} (UTC)",
        email_subject=f"Deadline reminder: {task.title}",
        email_html=email_html,
    )

def get_tasks_due_for_reminder(db: Session, now: Optional[datetime] = None) -> List[Task]:
    """
    Открытые задачи с исполнителем, у которых срок в окне
    [now + FROM_HOURS, now + TO_HOURS].
    """
    now = now or datetime.now(timezone.utc)
    window_start = now + timedelta(hours=settings.DEADLINE_REMINDER_FROM_HOURS)
    window_end = now + timedelta(hours=settings.DEADLINE_REMINDER_TO_HOURS)
    return (
        db.query(Task)
        .filter(
            Task.status == "open",
            Task.assignee_id.isnot(None),
            Task.due_date.isnot(None),
            Task.due_date >= window_start,
            Task.due_date <= window_end,
        )
        .order_by(Task.due_date.asc())
        .all()
    )

def send_deadline_reminders(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Рассылка напоминаний о дедлайнах. Каждая задача обрабатывается
    изолированно: ошибка одной не мешает остальным.
    """
    tasks = get_tasks_due_for_reminder(db, now)
    logger.info(f"Found {len(tasks)} task(s) with approaching deadlines")

    sent = 0
    errors = 0
    for task in tasks:
        try:
            send_deadline_reminder(db, task)
            sent += 1
        except Exception:
            db.rollback()
            errors += 1
            logger.exception(f"Failed to send deadline reminder for task {task.id}")

    logger.info(f"Deadline reminders sent: {sent}, errors: {errors}")
    return {"tasksProcessed": len(tasks), "remindersSent": sent, "errors": errors}

# ==== Чтение и отметка о прочтении ====

def get_user_notifications(
    db: Session,
    actor: Optional[Actor],
    unread_only: bool = False,
    limit: int = MAX_NOTIFICATIONS,
) -> List[Notification]:
    actor = require_actor(actor)
    query = db.query(Notification).filter(Notification.recipient_id == actor.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    limit = max(1, min(limit, MAX_NOTIFICATIONS))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()

def get_unread_count(db: Session, actor: Optional[Actor]) -> int:
    actor = require_actor(actor)
    return db.query(Notification).filter(
        Notification.recipient_id == actor.id,
        Notification.is_read == False,
    ).count()

def mark_notification_read(db: Session, actor: Optional[Actor], notification_id: uuid.UUID) -> Notification:
    """
    Отмечает уведомление прочитанным. Доступно только получателю.
    """
    actor = require_actor(actor)
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotificationNotFound(f"Notification with id={notification_id} not found.")
    if notification.recipient_id != actor.id:
        raise PermissionDeniedError("You can only mark your own notifications as read")

    notification.is_read = True
    try:
        db.commit()
        logger.info(f"Notification {notification.id} marked as read by {actor.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to mark notification {notification_id} as read: {e}")
        raise
    actor.invalidate("/notifications")
    return notification

def mark_all_notifications_read(db: Session, actor: Optional[Actor]) -> int:
    """
    Отмечает все уведомления пользователя прочитанными. Возвращает их число.
    """
    actor = require_actor(actor)
    try:
        updated = db.query(Notification).filter(
            Notification.recipient_id == actor.id,
            Notification.is_read == False,
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        logger.info(f"Marked {updated} notification(s) as read for {actor.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to mark notifications as read for {actor.id}: {e}")
        raise
    actor.invalidate("/notifications")
    return updated
