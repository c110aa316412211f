"""
Task service tests against the in-memory row store.
"""
import pytest

from conftest import ACTORS, run
from issuehub.services import NotOwner, RoleForbidden


USER = ACTORS["tok-user"]
MEMBER = ACTORS["tok-member"]
OTHER = ACTORS["tok-other-member"]
LEADER = ACTORS["tok-leader"]


def test_new_task_defaults_to_creator(container):
    task = run(container.tasks.create_task(USER, "user", {"title": "Draft report"}))
    assert task["assigned_to"] == "u-user"
    assert task["created_by"] == "u-user"
    assert task["status"] == "pending"


def test_only_managers_assign_to_others(container):
    with pytest.raises(RoleForbidden):
        run(container.tasks.create_task(MEMBER, "team_member", {"title": "x", "assigned_to": "u-other"}))

    task = run(container.tasks.create_task(LEADER, "team_leader", {"title": "x", "assigned_to": "u-other"}))
    assert task["assigned_to"] == "u-other"
    assert task["created_by"] == "u-leader"


def test_listing_is_scoped_for_non_managers(container):
    run(container.tasks.create_task(LEADER, "team_leader", {"title": "for member", "assigned_to": "u-member"}))
    run(container.tasks.create_task(MEMBER, "team_member", {"title": "own"}))
    run(container.tasks.create_task(OTHER, "team_member", {"title": "someone else"}))

    titles = {t["title"] for t in run(container.tasks.list_tasks(MEMBER, "team_member"))}
    assert titles == {"for member", "own"}

    assert len(run(container.tasks.list_tasks(LEADER, "team_leader"))) == 3


def test_get_task_checks_visibility(container):
    task = run(container.tasks.create_task(OTHER, "team_member", {"title": "private"}))
    with pytest.raises(NotOwner):
        run(container.tasks.get_task(MEMBER, "team_member", task["id"]))
    assert run(container.tasks.get_task(LEADER, "team_leader", task["id"]))["title"] == "private"


def test_team_member_cannot_reassign(container):
    task = run(container.tasks.create_task(LEADER, "team_leader", {"title": "x", "assigned_to": "u-member"}))

    updated = run(container.tasks.update_task(MEMBER, "team_member", task["id"], {"status": "completed"}))
    assert updated["status"] == "completed"

    with pytest.raises(RoleForbidden):
        run(container.tasks.update_task(MEMBER, "team_member", task["id"], {"assigned_to": "u-other"}))


def test_update_ignores_creator_field(container):
    task = run(container.tasks.create_task(USER, "user", {"title": "x"}))
    updated = run(container.tasks.update_task(USER, "user", task["id"], {"created_by": "u-admin", "title": "y"}))
    assert updated["created_by"] == "u-user"
    assert updated["title"] == "y"


def test_delete_requires_creator_or_manager(container):
    task = run(container.tasks.create_task(LEADER, "team_leader", {"title": "x", "assigned_to": "u-member"}))
    with pytest.raises(NotOwner):
        run(container.tasks.delete_task(MEMBER, "team_member", task["id"]))

    run(container.tasks.delete_task(LEADER, "team_leader", task["id"]))
    assert run(container.tasks.list_tasks(LEADER, "team_leader")) == []
