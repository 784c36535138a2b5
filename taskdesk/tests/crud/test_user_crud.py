import uuid

import pytest
from sqlalchemy.orm import Session

from taskdesk.core.exceptions import PermissionDeniedError, UserNotFound, UserValidationError
from taskdesk.core.security import verify_password
from taskdesk.crud.user import (
    authenticate_user,
    create_first_admin,
    create_user,
    deactivate_user,
    get_user_by_email,
    get_users,
    update_profile,
    update_user_role,
)
from taskdesk.models.audit import AuditLog
from taskdesk.models.user import User

DEFAULT_PASSWORD = "testpassword"


def new_user_data(**overrides):
    data = {
        "email": "New.User@Example.com",
        "name": "New User",
        "password": "secret123",
        "role": "executor",
        "department": "Engineering",
    }
    data.update(overrides)
    return data


def test_create_user_by_admin(db: Session, admin_user, admin_actor, sent_emails):
    user = create_user(db, admin_actor, new_user_data())

    assert user.email == "new.user@example.com"
    assert user.is_active is True
    assert verify_password("secret123", user.password_hash)

    log = db.query(AuditLog).filter_by(action="user_created").one()
    assert log.user_id == admin_user.id
    assert log.details == {"name": "New User", "email": "new.user@example.com", "role": "executor"}

    assert len(sent_emails) == 1
    to, subject, body = sent_emails[0]
    assert to == "new.user@example.com"
    assert "secret123" in body


def test_create_user_survives_mail_failure(db: Session, admin_actor, monkeypatch):
    def broken_send(to, subject, html):
        raise ConnectionError("SMTP down")

    monkeypatch.setattr("taskdesk.services.mailer.send_email", broken_send)
    user = create_user(db, admin_actor, new_user_data())
    assert db.get(User, user.id) is not None


def test_create_user_denied_for_project_manager(db: Session, pm_actor):
    with pytest.raises(PermissionDeniedError):
        create_user(db, pm_actor, new_user_data())
    assert get_user_by_email(db, "new.user@example.com") is None


def test_create_user_duplicate_email(db: Session, admin_actor, executor_user):
    with pytest.raises(UserValidationError):
        create_user(db, admin_actor, new_user_data(email="EXECUTOR@example.com"))


def test_create_user_short_password(db: Session, admin_actor):
    with pytest.raises(UserValidationError) as exc:
        create_user(db, admin_actor, new_user_data(password="123"))
    assert "password" in str(exc.value)


def test_admin_cannot_change_own_role(db: Session, admin_user, admin_actor):
    with pytest.raises(PermissionDeniedError):
        update_user_role(db, admin_actor, admin_user.id, {"role": "executor"})
    db.refresh(admin_user)
    assert admin_user.role == "admin"
    assert db.query(AuditLog).count() == 0


def test_admin_cannot_deactivate_self(db: Session, admin_user, admin_actor):
    with pytest.raises(PermissionDeniedError):
        deactivate_user(db, admin_actor, admin_user.id)
    db.refresh(admin_user)
    assert admin_user.is_active is True


def test_update_role_audits_old_and_new(db: Session, admin_actor, executor_user):
    user = update_user_role(db, admin_actor, executor_user.id, {"role": "project_manager"})
    assert user.role == "project_manager"
    log = db.query(AuditLog).filter_by(action="user_role_changed").one()
    assert log.details == {"oldRole": "executor", "newRole": "project_manager"}


def test_update_role_denied_for_non_admin(db: Session, pm_actor, executor_user):
    with pytest.raises(PermissionDeniedError):
        update_user_role(db, pm_actor, executor_user.id, {"role": "admin"})


def test_update_role_unknown_user(db: Session, admin_actor):
    with pytest.raises(UserNotFound):
        update_user_role(db, admin_actor, uuid.uuid4(), {"role": "observer"})


def test_deactivated_user_cannot_authenticate(db: Session, admin_actor, executor_user):
    assert authenticate_user(db, "executor@example.com", DEFAULT_PASSWORD) is not None

    deactivate_user(db, admin_actor, executor_user.id)

    assert authenticate_user(db, "executor@example.com", DEFAULT_PASSWORD) is None
    log = db.query(AuditLog).filter_by(action="user_deactivated").one()
    assert log.details == {"email": "executor@example.com"}

    with pytest.raises(UserValidationError):
        deactivate_user(db, admin_actor, executor_user.id)


def test_authenticate_wrong_password(db: Session, executor_user):
    assert authenticate_user(db, "executor@example.com", "wrong-password") is None
    assert authenticate_user(db, "nobody@example.com", DEFAULT_PASSWORD) is None


def test_get_users_search_and_role(db: Session, pm_actor, executor_user, observer_user, make_user, actor_for):
    make_user("dev@example.com", name="Dana Dev", department="Platform")

    assert {u.email for u in get_users(db, pm_actor, role="observer")} == {"observer@example.com"}
    assert [u.email for u in get_users(db, pm_actor, search="platform")] == ["dev@example.com"]

    with pytest.raises(PermissionDeniedError):
        get_users(db, actor_for(executor_user))


def test_update_profile(db: Session, executor_user, actor_for):
    actor = actor_for(executor_user)
    user = update_profile(db, actor, {"name": "Eve E.", "password": "newsecret"})

    assert user.name == "Eve E."
    assert actor.name == "Eve E."
    assert verify_password("newsecret", user.password_hash)
    log = db.query(AuditLog).filter_by(action="user_updated").one()
    assert log.details["changes"]["name"] == ["Eve Executor", "Eve E."]
    assert log.details["changes"]["password"] is True


def test_create_first_admin_is_idempotent(db: Session):
    first = create_first_admin(db, "root@example.com", "rootpass", "Root")
    second = create_first_admin(db, "root@example.com", "other", "Other")
    assert first.id == second.id
    assert first.role == "admin"
    assert db.query(User).count() == 1


def test_initial_admin_bootstrap(db: Session):
    from taskdesk.core.settings import settings
    from taskdesk.initial_data import create_initial_admin_user

    create_initial_admin_user(db)
    create_initial_admin_user(db)

    admin = get_user_by_email(db, settings.FIRST_ADMIN_EMAIL)
    assert admin.role == "admin"
    assert verify_password(settings.FIRST_ADMIN_PASSWORD, admin.password_hash)
    assert db.query(User).count() == 1
