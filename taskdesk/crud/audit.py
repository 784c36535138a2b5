# taskdesk/crud/audit.py
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import PermissionDeniedError, ProjectNotFound
from taskdesk.core.permissions import can_view_audit_logs
from taskdesk.models.audit import AuditLog
from taskdesk.models.project import Project

logger = logging.getLogger("Taskdesk.Audit")

MAX_AUDIT_LIMIT = 500

def add_audit_log(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID,
    user_id: Optional[uuid.UUID],
    project_id: Optional[uuid.UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Добавляет запись аудита в текущую транзакцию (без commit).
    Коммит выполняет вызывающее действие вместе с основной записью.
    """
    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        project_id=project_id,
        details=details or {},
    )
    db.add(entry)
    return entry

def record_audit_log(db: Session, **kwargs) -> Optional[AuditLog]:
    """
    Записывает аудит отдельной транзакцией. Ошибка логируется и не
    пробрасывается (используется для notification_sent).
    """
    entry = add_audit_log(db, **kwargs)
    try:
        db.commit()
        return entry
    except Exception:
        db.rollback()
        logger.exception(f"Failed to record audit '{kwargs.get('action')}' for {kwargs.get('entity_id')}")
        return None

def get_audit_logs(
    db: Session,
    actor: Optional[Actor],
    project_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    """
    История изменений.

    С project_id: журнал проекта, нужен доступ на просмотр проекта.
    Без project_id: admin видит всё, project_manager — журналы всех
    проектов (как и при запросе по project_id) и собственные действия
    вне проектов.
    """
    actor = require_actor(actor)
    query = db.query(AuditLog)

    if project_id is not None:
        project = db.get(Project, project_id)
        if not project:
            raise ProjectNotFound(f"Project with id={project_id} not found.")
        if not can_view_audit_logs(actor, project):
            raise PermissionDeniedError("Not enough permissions to view the audit log of this project")
        query = query.filter(AuditLog.project_id == project_id)
    else:
        if not can_view_audit_logs(actor):
            raise PermissionDeniedError("Not enough permissions to view the audit log")
        if not actor.is_admin:
            query = query.filter(
                or_(AuditLog.project_id.isnot(None), AuditLog.user_id == actor.id)
            )

    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)

    limit = max(1, min(limit, MAX_AUDIT_LIMIT))
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
