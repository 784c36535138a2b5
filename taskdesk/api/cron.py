#taskdesk/api/cron.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskdesk.crud.notification import send_deadline_reminders
from taskdesk.dependencies import get_db, verify_cron_secret
from taskdesk.schemas.notification import DeadlineSweepResult
from taskdesk.schemas.response import SimpleMessage

router = APIRouter(prefix="/api/cron", tags=["Cron"])

@router.post(
    "/deadline-reminders",
    response_model=DeadlineSweepResult,
    dependencies=[Depends(verify_cron_secret)],
)
def deadline_reminders(db: Session = Depends(get_db)):
    """
    Рассылка напоминаний о дедлайнах. Вызывается внешним планировщиком
    с заголовком Authorization: Bearer <CRON_SECRET>.
    """
    result = send_deadline_reminders(db)
    return DeadlineSweepResult(success=True, **result)

@router.get("/deadline-reminders", response_model=SimpleMessage, response_model_exclude_none=True)
def deadline_reminders_usage():
    return SimpleMessage(message="Deadline reminders endpoint", usage="Use POST with proper authorization")
