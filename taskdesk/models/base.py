#taskdesk/models/base.py
"""
Базовый класс для всех ORM-моделей Taskdesk.

Использовать как Base при описании моделей:
    from taskdesk.models.base import Base
"""

from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Текущее время в UTC (python-side default для журналов)."""
    return datetime.now(timezone.utc)
