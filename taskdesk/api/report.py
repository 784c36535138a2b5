#taskdesk/api/report.py
import uuid
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from taskdesk.core.actor import Actor
from taskdesk.crud.report import build_projects_report, build_tasks_report, export_report
from taskdesk.dependencies import get_actor, get_db
from taskdesk.schemas.report import ProjectReportRow, TaskReportRow

router = APIRouter(prefix="/reports", tags=["Reports"])

@router.get("/projects", response_model=List[ProjectReportRow])
def projects_report(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return build_projects_report(db, actor)

@router.get("/tasks", response_model=List[TaskReportRow])
def tasks_report(
    project_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return build_tasks_report(db, actor, project_id)

@router.get("/export")
def export(
    report_type: Literal["projects", "tasks"] = Query(..., alias="type"),
    fmt: Literal["pdf", "excel"] = Query("pdf", alias="format"),
    project_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Экспорт отчёта в PDF или Excel.
    """
    content, filename, media_type = export_report(db, actor, report_type, fmt, project_id)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )
