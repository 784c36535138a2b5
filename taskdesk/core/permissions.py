# taskdesk/core/permissions.py
"""
Проверки прав доступа.

Все функции — чистые предикаты: принимают Actor и минимальный контекст
ресурса, возвращают bool и никогда не бросают исключений. Преобразование
False в ошибку 403 — задача вызывающего кода.
"""

import uuid
from typing import Optional

from taskdesk.core.actor import Actor
from taskdesk.models.comment import Comment
from taskdesk.models.file import File
from taskdesk.models.project import Project
from taskdesk.models.task import Task

PROJECT_MANAGER = "project_manager"
EXECUTOR = "executor"


def _is_owner(actor: Actor, project: Project) -> bool:
    return project.owner_id == actor.id


def _is_project_manager_in(actor: Actor, project: Project) -> bool:
    return actor.project_role(project.id) == PROJECT_MANAGER


# ==== Системные права ====

def can_create_project(actor: Actor) -> bool:
    return actor.is_admin or actor.is_project_manager

def can_manage_users(actor: Actor) -> bool:
    return actor.is_admin

def can_list_users(actor: Actor) -> bool:
    return actor.is_admin or actor.is_project_manager

def can_export_reports(actor: Actor) -> bool:
    return actor.is_admin or actor.is_project_manager

def is_self(actor: Actor, user_id: uuid.UUID) -> bool:
    return actor.id == user_id


# ==== Проекты ====

def can_edit_project(actor: Actor, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project)

def can_delete_project(actor: Actor, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project)

def can_manage_members(actor: Actor, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project)

def can_view_project(actor: Actor, project: Project) -> bool:
    """
    Просмотр шире редактирования: любое членство в проекте или глобальная
    роль admin / project_manager.
    """
    return (
        actor.is_admin
        or actor.is_project_manager
        or _is_owner(actor, project)
        or actor.is_member(project.id)
    )


# ==== Задачи ====

def can_create_task(actor: Actor, project: Project) -> bool:
    return (
        actor.is_admin
        or _is_owner(actor, project)
        or actor.is_project_manager
        or _is_project_manager_in(actor, project)
    )

def can_edit_task(actor: Actor, task: Task, project: Project) -> bool:
    return (
        actor.is_admin
        or _is_owner(actor, project)
        or task.assignee_id == actor.id
        or task.creator_id == actor.id
        or _is_project_manager_in(actor, project)
    )

def can_change_task_status(actor: Actor, task: Task, project: Project) -> bool:
    return (
        actor.is_admin
        or _is_owner(actor, project)
        or task.assignee_id == actor.id
        or _is_project_manager_in(actor, project)
    )

def can_delete_task(actor: Actor, task: Task, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project) or _is_project_manager_in(actor, project)


# ==== Комментарии ====

def can_comment(actor: Actor, project: Project) -> bool:
    return can_view_project(actor, project)

def can_delete_comment(actor: Actor, comment: Comment, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project) or comment.author_id == actor.id


# ==== Файлы ====

def can_upload_file(actor: Actor, project: Project) -> bool:
    return (
        actor.is_admin
        or _is_owner(actor, project)
        or actor.project_role(project.id) in (PROJECT_MANAGER, EXECUTOR)
    )

def can_view_file(actor: Actor, file: File, project: Project) -> bool:
    return actor.is_admin or _is_owner(actor, project) or actor.is_member(project.id)

def can_delete_file(actor: Actor, file: File, project: Project) -> bool:
    return (
        actor.is_admin
        or file.uploaded_by == actor.id
        or _is_owner(actor, project)
        or _is_project_manager_in(actor, project)
    )


# ==== Аудит ====

def can_view_audit_logs(actor: Actor, project: Optional[Project] = None) -> bool:
    if project is None:
        return actor.is_admin or actor.is_project_manager
    return can_view_project(actor, project)
