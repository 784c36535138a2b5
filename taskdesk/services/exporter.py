# taskdesk/services/exporter.py
"""
Рендер отчётов в PDF (reportlab) и Excel (openpyxl).

Отчёт — список словарей (строки из taskdesk.crud.report); колонки
для каждого типа отчёта описаны в REPORT_COLUMNS.
"""

import io
import logging
from datetime import date
from typing import Any, Dict, List, Tuple
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from taskdesk.core.exceptions import ValidationError

logger = logging.getLogger("Taskdesk.Exporter")

REPORT_KINDS = ("projects", "tasks")
REPORT_FORMATS = ("pdf", "excel")

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
EXTENSIONS = {"pdf": "pdf", "excel": "xlsx"}

# (ключ строки, заголовок колонки, ширина в Excel)
REPORT_COLUMNS: Dict[str, List[Tuple[str, str, int]]] = {
    "projects": [
        ("title", "Project", 30),
        ("description", "Description", 40),
        ("owner", "Owner", 20),
        ("total_tasks", "Total tasks", 15),
        ("completed_tasks", "Completed tasks", 15),
        ("completion", "Completion", 15),
        ("members_count", "Members", 15),
        ("created_at", "Created", 15),
    ],
    "tasks": [
        ("title", "Task", 30),
        ("project", "Project", 20),
        ("status", "Status", 15),
        ("priority", "Priority", 15),
        ("complexity", "Complexity", 10),
        ("assignee", "Assignee", 20),
        ("creator", "Creator", 20),
        ("due_date", "Due date", 15),
        ("created_at", "Created", 15),
        ("description", "Description", 40),
    ],
}

REPORT_TITLES = {"projects": "Projects report", "tasks": "Tasks report"}

HEADER_FILL = "E0E0E0"
PDF_TEXT_LIMIT = 100


def report_filename(kind: str, fmt: str, today: date = None) -> str:
    today = today or date.today()
    return f"{kind}-report-{today.isoformat()}.{EXTENSIONS[fmt]}"


def _cell_value(key: str, row: Dict[str, Any]) -> Any:
    value = row.get(key)
    if key == "completion":
        return f"{value}%"
    return "" if value is None else value


def render_pdf(kind: str, rows: List[Dict[str, Any]]) -> bytes:
    columns = REPORT_COLUMNS[kind]
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"]

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    story = [
        Paragraph(REPORT_TITLES[kind], styles["Title"]),
        Paragraph(f"Generated: {date.today().isoformat()}", styles["Normal"]),
        Spacer(1, 12),
    ]

    if kind == "tasks":
        completed = sum(1 for r in rows if r.get("status") == "completed")
        rate = round(completed / len(rows) * 100) if rows else 0
        story.append(Paragraph(f"Total tasks: {len(rows)}. Completed: {completed} ({rate}%)", styles["Normal"]))
        story.append(Spacer(1, 12))

    data = [[Paragraph(f"<b>{escape(header)}</b>", cell_style) for _, header, _ in columns]]
    for row in rows:
        cells = []
        for key, _, _ in columns:
            text = str(_cell_value(key, row))
            if len(text) > PDF_TEXT_LIMIT:
                text = text[:PDF_TEXT_LIMIT] + "..."
            cells.append(Paragraph(escape(text), cell_style))
        data.append(cells)

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{HEADER_FILL}")),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    story.append(table)

    doc.build(story)
    return buffer.getvalue()


def render_excel(kind: str, rows: List[Dict[str, Any]]) -> bytes:
    columns = REPORT_COLUMNS[kind]
    wb = Workbook()
    ws = wb.active
    ws.title = kind.capitalize()

    ws.append([header for _, header, _ in columns])
    for row in rows:
        ws.append([_cell_value(key, row) for key, _, _ in columns])

    header_font = Font(bold=True)
    header_fill = PatternFill(fill_type="solid", fgColor=HEADER_FILL)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
    for index, (_, _, width) in enumerate(columns):
        ws.column_dimensions[ws.cell(row=1, column=index + 1).column_letter].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def render_report(kind: str, rows: List[Dict[str, Any]], fmt: str) -> bytes:
    """
    Рендерит отчёт kind ("projects" | "tasks") в формат fmt ("pdf" | "excel").
    """
    if kind not in REPORT_KINDS:
        raise ValidationError(f"Unknown report type: {kind}")
    if fmt == "pdf":
        content = render_pdf(kind, rows)
    elif fmt == "excel":
        content = render_excel(kind, rows)
    else:
        raise ValidationError(f"Unknown report format: {fmt}")
    logger.info(f"Rendered {kind} report as {fmt}: {len(rows)} rows, {len(content)} bytes")
    return content
