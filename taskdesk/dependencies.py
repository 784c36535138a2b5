# taskdesk/dependencies.py

import uuid
from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, Response, status
from sqlalchemy.orm import Session
from taskdesk.core.actor import Actor
from taskdesk.core.security import oauth2_scheme, verify_access_token
from taskdesk.core.settings import settings
from taskdesk.database import SessionLocal
from taskdesk.models.user import User

STALE_VIEWS_HEADER = "X-Stale-Views"

def get_db() -> Generator[Session, None, None]:
    """
    Создает и возвращает сессию базы данных, гарантирует закрытие после использования.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Декодирует JWT-токен, получает пользователя из базы, если токен валиден.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = verify_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception
    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise credentials_exception
    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    return user

def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Проверяет, что пользователь активен.
    """
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return current_user

def get_actor(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Actor:
    """
    Actor текущего запроса: пользователь и его членство в проектах.
    """
    return Actor.from_user(db, current_user)

def apply_stale_views(response: Response, actor: Actor) -> None:
    """
    Передаёт клиенту пути представлений, которые действие пометило устаревшими.
    """
    if actor.stale_views:
        response.headers[STALE_VIEWS_HEADER] = ",".join(sorted(actor.stale_views))

def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Проверяет заголовок Authorization: Bearer <CRON_SECRET>.
    """
    if not settings.CRON_SECRET or authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
