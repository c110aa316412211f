"""
Issue service tests against the in-memory row store.
"""
import pytest

from conftest import ACTORS, run
from issuehub.models import Issue
from issuehub.services import InvalidHierarchy, NotFound, NotOwner, RoleForbidden, UpstreamUnavailable


ADMIN = ACTORS["tok-admin"]
LEADER = ACTORS["tok-leader"]
MEMBER = ACTORS["tok-member"]
OTHER = ACTORS["tok-other-member"]
CLIENT = ACTORS["tok-client"]


def _create(container, actor=ADMIN, role="admin", **payload):
    payload.setdefault("project_id", "p-1")
    payload.setdefault("summary", "Something broke")
    return run(container.issues.create_issue(actor, role, payload))


def test_legacy_priority_on_create_becomes_internal(container):
    issue = _create(container, priority="highest")
    assert issue["internal_priority"] == "P1"
    assert run(container.store.get("issues", issue["id"]))["internal_priority"] == "P1"


def test_create_defaults(container):
    issue = _create(container)
    assert issue["key"] == "HUB-1"
    assert issue["status"] == "to_do"
    assert issue["internal_priority"] == "P3"
    assert issue["labels"] == []
    assert issue["reporter"] == {"id": "u-admin", "email": "admin@example.com"}
    assert issue["assignee"] is None

    assert _create(container)["key"] == "HUB-2"


def test_reporter_is_always_the_creator(container):
    issue = _create(container, actor=MEMBER, role="team_member", reporter_id="u-admin")
    assert issue["reporter_id"] == "u-member"


def test_create_for_unknown_project(container):
    with pytest.raises(NotFound):
        _create(container, project_id="p-missing")


def test_create_under_subtask_is_rejected(container):
    parent = _create(container)
    child = _create(container, parent_issue_id=parent["id"])
    with pytest.raises(InvalidHierarchy):
        _create(container, parent_issue_id=child["id"])


def test_client_update_only_touches_client_fields(container):
    issue = _create(container)
    updated = run(container.issues.update_issue(
        CLIENT, "client", issue["id"], {"status": "done", "client_priority": "urgent"}
    ))
    assert updated["status"] == "to_do"
    assert updated["client_priority"] == "urgent"


def test_client_update_with_only_disallowed_fields_is_a_noop(container):
    issue = _create(container)
    before = len(container.store.writes)
    updated = run(container.issues.update_issue(CLIENT, "client", issue["id"], {"status": "done"}))
    assert updated["status"] == "to_do"
    assert len(container.store.writes) == before


def test_team_member_outsider_is_denied(container):
    issue = _create(container, assignee_id="u-member")
    with pytest.raises(NotOwner):
        run(container.issues.update_issue(OTHER, "team_member", issue["id"], {"status": "done"}))


def test_team_member_assignee_updates_status_only(container):
    issue = _create(container, assignee_id="u-member")
    updated = run(container.issues.update_issue(
        MEMBER, "team_member", issue["id"], {"status": "in_progress", "summary": "renamed", "priority": "low"}
    ))
    assert updated["status"] == "in_progress"
    assert updated["summary"] == "Something broke"
    assert updated["internal_priority"] == "P4"


def test_manager_cannot_rewrite_reporter(container):
    issue = _create(container)
    updated = run(container.issues.update_issue(
        LEADER, "team_leader", issue["id"], {"reporter_id": "u-leader", "assignee_id": "u-other"}
    ))
    assert updated["reporter_id"] == "u-admin"
    assert updated["assignee_id"] == "u-other"
    assert updated["assignee"] == {"id": "u-other", "email": "other@example.com"}


def test_manager_update_respects_hierarchy(container):
    parent = _create(container)
    child = _create(container, parent_issue_id=parent["id"])
    other = _create(container)
    with pytest.raises(InvalidHierarchy):
        run(container.issues.update_issue(ADMIN, "admin", other["id"], {"parent_issue_id": child["id"]}))


def test_create_falls_back_when_schema_lacks_column(container):
    container.store.known_columns["issues"] = set(Issue.model_fields) - {"exposed_to_client"}

    issue = _create(container, priority="high", exposed_to_client=True)

    stored = run(container.store.get("issues", issue["id"]))
    assert "exposed_to_client" not in stored
    assert stored["priority"] == "high"
    assert stored["key"] == "HUB-1"
    assert stored["project_id"] == "p-1"
    assert stored["reporter_id"] == "u-admin"


def test_update_falls_back_when_schema_lacks_column(container):
    issue = _create(container)
    stored = run(container.store.get("issues", issue["id"]))
    container.store.known_columns["issues"] = set(stored) - {"exposed_to_client"}

    updated = run(container.issues.update_issue(
        ADMIN, "admin", issue["id"], {"summary": "Reworded", "exposed_to_client": True}
    ))
    assert updated["summary"] == "Reworded"
    assert updated["exposed_to_client"] is False


def test_get_issue_includes_people_and_hierarchy(container):
    parent = _create(container, assignee_id="u-member")
    child = _create(container, parent_issue_id=parent["id"], internal_priority="P2")

    view = run(container.issues.get_issue(parent["id"]))
    assert view["assignee"]["email"] == "member@example.com"
    assert view["parent"] is None
    assert [s["id"] for s in view["subtasks"]] == [child["id"]]
    assert view["subtasks"][0]["internal_priority"] == "P2"

    child_view = run(container.issues.get_issue(child["id"]))
    assert child_view["parent"] == {"id": parent["id"], "key": parent["key"], "summary": parent["summary"]}


def test_list_issues_filters(container):
    _create(container, status="in_progress")
    _create(container)
    _create(container, project_id="p-2")

    assert len(run(container.issues.list_issues())) == 3
    assert len(run(container.issues.list_issues({"project_id": "p-1"}))) == 2
    assert len(run(container.issues.list_issues({"status": "in_progress"}))) == 1


def test_set_parent_needs_hierarchy_rights(container):
    parent = _create(container)
    issue = _create(container, actor=MEMBER, role="team_member")
    with pytest.raises(RoleForbidden):
        run(container.issues.set_parent(MEMBER, "team_member", issue["id"], parent["id"]))

    linked = run(container.issues.set_parent(ADMIN, "admin", issue["id"], parent["id"]))
    assert linked["parent"]["id"] == parent["id"]

    unlinked = run(container.issues.set_parent(ADMIN, "admin", issue["id"], None))
    assert unlinked["parent"] is None


def test_delete_detaches_subtasks(container):
    parent = _create(container)
    child = _create(container, parent_issue_id=parent["id"])

    run(container.issues.delete_issue(CLIENT, "client", parent["id"]))

    with pytest.raises(NotFound):
        run(container.store.get("issues", parent["id"]))
    assert run(container.store.get("issues", child["id"]))["parent_issue_id"] is None


def test_keys_are_not_reused_after_delete(container):
    first = _create(container)
    second = _create(container)
    run(container.issues.delete_issue(ADMIN, "admin", first["id"]))

    third = _create(container)
    assert second["key"] == "HUB-2"
    assert third["key"] == "HUB-3"


def test_legacy_priority_column_follows_internal(container):
    issue = _create(container, internal_priority="P2")
    assert run(container.store.get("issues", issue["id"]))["priority"] == "high"

    run(container.issues.update_issue(ADMIN, "admin", issue["id"], {"internal_priority": "P5"}))
    stored = run(container.store.get("issues", issue["id"]))
    assert stored["internal_priority"] == "P5"
    assert stored["priority"] == "lowest"


def test_failed_detach_keeps_parent_and_logs_progress(container, monkeypatch, caplog):
    parent = _create(container)
    _create(container, parent_issue_id=parent["id"])
    _create(container, parent_issue_id=parent["id"])

    hierarchy = container.issues.hierarchy
    real_detach = hierarchy.detach
    detached = []

    async def flaky_detach(child_id):
        if detached:
            raise UpstreamUnavailable("connection reset")
        await real_detach(child_id)
        detached.append(child_id)

    monkeypatch.setattr(hierarchy, "detach", flaky_detach)

    with pytest.raises(UpstreamUnavailable):
        run(container.issues.delete_issue(ADMIN, "admin", parent["id"]))

    assert run(container.store.get("issues", parent["id"]))["id"] == parent["id"]
    assert detached[0] in caplog.text
