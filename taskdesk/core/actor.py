# taskdesk/core/actor.py
"""
Actor — типизированный контекст текущего пользователя.

Создаётся один раз на границе (HTTP dependency, cron, тесты) и явно
передаётся во все действия и проверки прав. Содержит глобальную роль,
членство в проектах и набор "устаревших" представлений, которые
действия помечают после записи.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from sqlalchemy.orm import Session

from taskdesk.core.exceptions import AuthError
from taskdesk.models.project import ProjectMember
from taskdesk.models.user import User, ROLE_ADMIN, ROLE_PROJECT_MANAGER


@dataclass
class Actor:
    id: uuid.UUID
    role: str
    name: str = ""
    email: str = ""
    department: Optional[str] = None
    memberships: Dict[uuid.UUID, str] = field(default_factory=dict)
    stale_views: Set[str] = field(default_factory=set)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_project_manager(self) -> bool:
        """Глобальная роль project_manager."""
        return self.role == ROLE_PROJECT_MANAGER

    def project_role(self, project_id: uuid.UUID) -> Optional[str]:
        return self.memberships.get(project_id)

    def is_member(self, project_id: uuid.UUID) -> bool:
        return project_id in self.memberships

    def join_project(self, project_id: uuid.UUID, role: str) -> None:
        self.memberships[project_id] = role

    def leave_project(self, project_id: uuid.UUID) -> None:
        self.memberships.pop(project_id, None)

    def invalidate(self, *paths: str) -> None:
        """Помечает пути представлений как требующие обновления."""
        self.stale_views.update(paths)

    @classmethod
    def from_user(cls, db: Session, user: User) -> "Actor":
        """
        Собирает Actor из ORM-пользователя, подгружая его членства в проектах.
        """
        rows = db.query(ProjectMember.project_id, ProjectMember.role).filter(
            ProjectMember.user_id == user.id
        ).all()
        return cls(
            id=user.id,
            role=user.role,
            name=user.name,
            email=user.email,
            department=user.department,
            memberships={project_id: role for project_id, role in rows},
        )


def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise AuthError("Not authenticated")
    return actor
