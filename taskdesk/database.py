# taskdesk/database.py

import json

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from taskdesk.core.settings import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}


def json_serializer(value) -> str:
    """Сериализация JSON-колонок без экранирования не-ASCII символов."""
    return json.dumps(value, ensure_ascii=False)


# Движок подключения к БД
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
    json_serializer=json_serializer,
)

# Фабрика сессий (scoped_session для потокобезопасности)
SessionLocal = scoped_session(
    sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
)
