import uuid

import pytest

from taskdesk.core.actor import Actor, require_actor
from taskdesk.core.exceptions import AuthError
from taskdesk.core.permissions import (
    can_change_task_status,
    can_comment,
    can_create_project,
    can_create_task,
    can_delete_comment,
    can_delete_file,
    can_delete_project,
    can_delete_task,
    can_edit_project,
    can_edit_task,
    can_export_reports,
    can_list_users,
    can_manage_members,
    can_manage_users,
    can_upload_file,
    can_view_audit_logs,
    can_view_file,
    can_view_project,
    is_self,
)
from taskdesk.models.comment import Comment
from taskdesk.models.file import File
from taskdesk.models.project import Project
from taskdesk.models.task import Task

OWNER_ID = uuid.uuid4()


@pytest.fixture
def project():
    return Project(id=uuid.uuid4(), title="Alpha", owner_id=OWNER_ID)


def make_actor(role, memberships=None, actor_id=None):
    return Actor(id=actor_id or uuid.uuid4(), role=role, memberships=memberships or {})


def test_system_permissions_by_role():
    admin = make_actor("admin")
    pm = make_actor("project_manager")
    executor = make_actor("executor")
    observer = make_actor("observer")

    assert can_create_project(admin) and can_create_project(pm)
    assert not can_create_project(executor)
    assert not can_create_project(observer)

    assert can_manage_users(admin)
    assert not can_manage_users(pm)

    assert can_list_users(pm) and not can_list_users(executor)
    assert can_export_reports(pm) and not can_export_reports(observer)


def test_is_self():
    actor = make_actor("admin")
    assert is_self(actor, actor.id)
    assert not is_self(actor, uuid.uuid4())


def test_project_view_is_wider_than_edit(project):
    member = make_actor("executor", {project.id: "observer"})
    stranger = make_actor("executor")
    global_pm = make_actor("project_manager")
    owner = make_actor("executor", actor_id=OWNER_ID)

    assert can_view_project(member, project)
    assert not can_edit_project(member, project)
    assert not can_view_project(stranger, project)
    assert can_view_project(global_pm, project)
    assert not can_edit_project(global_pm, project)
    assert can_edit_project(owner, project)
    assert can_delete_project(owner, project)
    assert can_manage_members(owner, project)
    assert not can_manage_members(global_pm, project)


def test_task_permissions(project):
    assignee = make_actor("executor", {project.id: "executor"})
    creator = make_actor("executor", {project.id: "executor"})
    project_pm = make_actor("executor", {project.id: "project_manager"})
    observer = make_actor("observer", {project.id: "observer"})
    task = Task(
        id=uuid.uuid4(),
        title="Write docs",
        project_id=project.id,
        assignee_id=assignee.id,
        creator_id=creator.id,
    )

    assert can_create_task(project_pm, project)
    assert can_create_task(make_actor("project_manager"), project)
    assert not can_create_task(assignee, project)

    assert can_edit_task(assignee, task, project)
    assert can_edit_task(creator, task, project)
    assert not can_edit_task(observer, task, project)

    # автор задачи без назначения статус не меняет
    assert can_change_task_status(assignee, task, project)
    assert not can_change_task_status(creator, task, project)
    assert can_change_task_status(project_pm, task, project)

    assert can_delete_task(project_pm, task, project)
    assert not can_delete_task(assignee, task, project)


def test_comment_permissions(project):
    author = make_actor("executor", {project.id: "executor"})
    observer = make_actor("observer", {project.id: "observer"})
    stranger = make_actor("executor")
    comment = Comment(id=uuid.uuid4(), content="hi", author_id=author.id)

    assert can_comment(observer, project)
    assert not can_comment(stranger, project)
    assert can_delete_comment(author, comment, project)
    assert not can_delete_comment(observer, comment, project)
    assert can_delete_comment(make_actor("admin"), comment, project)


def test_file_permissions(project):
    executor = make_actor("executor", {project.id: "executor"})
    observer = make_actor("observer", {project.id: "observer"})
    project_pm = make_actor("executor", {project.id: "project_manager"})
    global_pm = make_actor("project_manager")
    file = File(id=uuid.uuid4(), uploaded_by=executor.id, project_id=project.id)

    assert can_upload_file(executor, project)
    assert not can_upload_file(observer, project)
    assert can_view_file(observer, file, project)
    assert not can_view_file(global_pm, file, project)

    assert can_delete_file(executor, file, project)
    assert can_delete_file(project_pm, file, project)
    assert not can_delete_file(observer, file, project)


def test_audit_log_permissions(project):
    assert can_view_audit_logs(make_actor("project_manager"))
    assert not can_view_audit_logs(make_actor("executor"))
    assert can_view_audit_logs(make_actor("observer", {project.id: "observer"}), project)


def test_require_actor_raises_without_actor():
    with pytest.raises(AuthError):
        require_actor(None)


def test_actor_tracks_memberships_and_stale_views():
    actor = make_actor("project_manager")
    project_id = uuid.uuid4()
    actor.join_project(project_id, "project_manager")
    assert actor.project_role(project_id) == "project_manager"
    actor.leave_project(project_id)
    assert not actor.is_member(project_id)

    actor.invalidate("/projects", "/tasks")
    actor.invalidate("/projects")
    assert actor.stale_views == {"/projects", "/tasks"}
