#taskdesk/api/audit.py
import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from taskdesk.core.actor import Actor
from taskdesk.crud.audit import get_audit_logs
from taskdesk.dependencies import get_actor, get_db
from taskdesk.schemas.audit import AuditLogRead

router = APIRouter(prefix="/audit", tags=["Audit"])

@router.get("/", response_model=List[AuditLogRead])
def list_audit_logs(
    project_id: Optional[uuid.UUID] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Журнал аудита с фильтрами по проекту, пользователю и действию.
    """
    return get_audit_logs(db, actor, project_id=project_id, user_id=user_id, action=action, limit=limit)
