import os
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Переменные окружения выставляются до импорта settings и приложения.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "testsecretkey"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("SMTP_USER", None)

# Все модели регистрируются в Base.metadata до create_all.
import taskdesk.models
from taskdesk.models.base import Base

from taskdesk.core.settings import settings as app_settings
app_settings.SMTP_HOST = None
app_settings.SMTP_USER = None

from taskdesk.main import app
from taskdesk.core.actor import Actor
from taskdesk.core.security import create_access_token, hash_password
from taskdesk.database import json_serializer
from taskdesk.dependencies import get_db
from taskdesk.models.user import User

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    json_serializer=json_serializer,
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)

DEFAULT_PASSWORD = "testpassword"


@pytest.fixture(autouse=True)
def create_test_tables() -> Generator[None, None, None]:
    """
    Чистая схема на каждый тест: действия коммитят сами, поэтому откат
    внешней транзакции не годится.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """
    Загруженные файлы пишутся во временную директорию теста.
    """
    path = tmp_path / "uploads"
    monkeypatch.setattr(app_settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    TestClient с подменённой зависимостью get_db: приложение и тест
    работают с одной сессией.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    del app.dependency_overrides[get_db]


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """
    Фабрика пользователей: создаёт запись напрямую, минуя действия и аудит.
    """
    def _make_user(
        email: str,
        role: str = "executor",
        name: str = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        department: str = None,
    ) -> User:
        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name or email.split("@")[0].title(),
            role=role,
            department=department,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.com", role="admin", name="Admin")


@pytest.fixture
def pm_user(make_user) -> User:
    return make_user("pm@example.com", role="project_manager", name="Paula Manager")


@pytest.fixture
def executor_user(make_user) -> User:
    return make_user("executor@example.com", role="executor", name="Eve Executor")


@pytest.fixture
def other_executor(make_user) -> User:
    return make_user("bob@example.com", role="executor", name="Bob Builder")


@pytest.fixture
def observer_user(make_user) -> User:
    return make_user("observer@example.com", role="observer", name="Oscar Observer")


@pytest.fixture
def actor_for(db: Session) -> Callable[[User], Actor]:
    """
    Собирает свежий Actor (с актуальным членством в проектах).
    """
    def _actor_for(user: User) -> Actor:
        return Actor.from_user(db, user)
    return _actor_for


@pytest.fixture
def admin_actor(admin_user, actor_for) -> Actor:
    return actor_for(admin_user)


@pytest.fixture
def pm_actor(pm_user, actor_for) -> Actor:
    return actor_for(pm_user)


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """
    Заголовки Authorization с access token для пользователя.
    """
    def _auth_headers(user: User) -> dict:
        token, _ = create_access_token(data={"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def sent_emails(monkeypatch) -> list:
    """
    Перехватывает отправку писем: список (to, subject, html).
    """
    sent = []

    def fake_send_email(to: str, subject: str, html: str) -> bool:
        sent.append((to, subject, html))
        return True

    monkeypatch.setattr("taskdesk.services.mailer.send_email", fake_send_email)
    return sent
