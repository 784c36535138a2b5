# taskdesk/crud/user.py
import html
import logging
import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import (
    PermissionDeniedError,
    UserNotFound,
    UserValidationError,
)
from taskdesk.core.permissions import can_list_users, can_manage_users, is_self
from taskdesk.core.security import hash_password, verify_password
from taskdesk.core.settings import settings
from taskdesk.core.validation import validate_payload
from taskdesk.crud.audit import add_audit_log
from taskdesk.models.user import User
from taskdesk.schemas.user import ProfileUpdate, UserCreate, UserRoleUpdate
from taskdesk.services import mailer

logger = logging.getLogger("Taskdesk.Users")

# ==== Чтение ====

def get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserNotFound(f"User with id={user_id} not found.")
    return user

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()

def get_users(
    db: Session,
    actor: Optional[Actor],
    search: Optional[str] = None,
    role: Optional[str] = None,
    include_inactive: bool = True,
) -> List[User]:
    """
    Список пользователей (admin / project_manager) с поиском по имени, email
    и отделу и фильтром по роли.
    """
    actor = require_actor(actor)
    if not can_list_users(actor):
        raise PermissionDeniedError("Not enough permissions to list users")

    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(User.name.ilike(pattern), User.email.ilike(pattern), User.department.ilike(pattern))
        )
    if role:
        query = query.filter(User.role == role)
    if not include_inactive:
        query = query.filter(User.is_active == True)
    return query.order_by(User.created_at.desc(), User.name.asc()).all()

def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Возвращает пользователя при верном email/пароле, иначе None.
    Деактивированные пользователи не проходят аутентификацию.
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        logger.info(f"Login attempt for deactivated user {user.email}")
        return None
    return user

# ==== Изменения ====

def _send_welcome_email(user: User, password: str) -> None:
    content = (
        "<h2>Welcome to Taskdesk!</h2>"
        f"<p>Hello, {html.escape(user.name)}!</p>"
        "<p>An account has been created for you in the task management system.</p>"
        f"<p><strong>Email:</strong> {html.escape(user.email)}<br>"
        f"<strong>Password:</strong> {html.escape(password)}<br>"
        f"<strong>Role:</strong> {html.escape(user.role)}</p>"
        "<p>Please change your password after the first login.</p>"
        f"<p>Sign in at: {html.escape(settings.APP_URL)}</p>"
    )
    mailer.send_email(user.email, "Welcome to Taskdesk!", content)

def create_user(db: Session, actor: Optional[Actor], data: dict) -> User:
    """
    Создание пользователя администратором. Отправляет приветственное
    письмо (best-effort).
    """
    actor = require_actor(actor)
    payload = validate_payload(UserCreate, data, UserValidationError)
    if not can_manage_users(actor):
        raise PermissionDeniedError("Not enough permissions to create users")

    email = payload.email.strip().lower()
    if get_user_by_email(db, email):
        raise UserValidationError(f"User with email '{email}' already exists.")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
        department=payload.department or None,
        is_active=True,
    )
    db.add(user)
    try:
        db.flush()
        add_audit_log(
            db,
            action="user_created",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.id,
            details={"name": user.name, "email": user.email, "role": user.role},
        )
        db.commit()
        db.refresh(user)
        logger.info(f"Created user '{user.email}' (ID: {user.id}) by {actor.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise UserValidationError("Database error while creating user.")

    try:
        _send_welcome_email(user, payload.password)
    except Exception:
        logger.exception(f"Failed to send welcome email to {user.email}")

    actor.invalidate("/users")
    return user

def update_user_role(db: Session, actor: Optional[Actor], user_id: uuid.UUID, data: dict) -> User:
    """
    Смена системной роли. Только admin и никогда — самому себе.
    """
    actor = require_actor(actor)
    payload = validate_payload(UserRoleUpdate, data, UserValidationError)
    if is_self(actor, user_id):
        raise PermissionDeniedError("You cannot change your own role")
    user = get_user(db, user_id)
    if not can_manage_users(actor):
        raise PermissionDeniedError("Not enough permissions to change user roles")

    old_role = user.role
    user.role = payload.role
    try:
        add_audit_log(
            db,
            action="user_role_changed",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.id,
            details={"oldRole": old_role, "newRole": payload.role},
        )
        db.commit()
        db.refresh(user)
        logger.info(f"Changed role of user {user.id}: {old_role} -> {user.role}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update role: {e}")
        raise UserValidationError("Database error while updating user role.")

    actor.invalidate("/users")
    return user

def deactivate_user(db: Session, actor: Optional[Actor], user_id: uuid.UUID) -> User:
    """
    Деактивация аккаунта. Только admin и никогда — собственного.
    """
    actor = require_actor(actor)
    if is_self(actor, user_id):
        raise PermissionDeniedError("You cannot deactivate your own account")
    user = get_user(db, user_id)
    if not can_manage_users(actor):
        raise PermissionDeniedError("Not enough permissions to deactivate users")
    if not user.is_active:
        raise UserValidationError("User is already deactivated.")

    user.is_active = False
    try:
        add_audit_log(
            db,
            action="user_deactivated",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.id,
            details={"email": user.email},
        )
        db.commit()
        db.refresh(user)
        logger.info(f"Deactivated user {user.id} by {actor.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to deactivate user: {e}")
        raise UserValidationError("Database error while deactivating user.")

    actor.invalidate("/users")
    return user

def update_profile(db: Session, actor: Optional[Actor], data: dict) -> User:
    """
    Обновление собственного профиля: имя, отдел, пароль.
    """
    actor = require_actor(actor)
    payload = validate_payload(ProfileUpdate, data, UserValidationError)
    user = get_user(db, actor.id)

    fields = payload.model_dump(exclude_unset=True)
    changes = {}
    for field in ("name", "department"):
        if field in fields and fields[field] != getattr(user, field):
            changes[field] = [getattr(user, field), fields[field]]
            setattr(user, field, fields[field])
    if fields.get("password"):
        user.password_hash = hash_password(fields["password"])
        changes["password"] = True

    if not changes:
        logger.info(f"Update called but no changes for user {user.id}")
        return user

    try:
        add_audit_log(
            db,
            action="user_updated",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.id,
            details={"changes": changes},
        )
        db.commit()
        db.refresh(user)
        logger.info(f"Updated profile of user {user.id} fields: {list(changes)}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update profile: {e}")
        raise UserValidationError("Database error while updating profile.")

    actor.name = user.name
    actor.department = user.department
    actor.invalidate("/profile")
    return user

def create_first_admin(db: Session, email: str, password: str, name: str) -> User:
    """
    Создаёт первого администратора (bootstrap, без аудита). Если пользователь
    с таким email уже есть — возвращает его.
    """
    existing = get_user_by_email(db, email)
    if existing:
        return existing
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        name=name,
        role="admin",
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Created first admin '{user.email}'")
        return user
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise UserValidationError("Database error while creating admin user.")
