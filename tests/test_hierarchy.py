"""
Unit tests for parent/subtask linkage and the hierarchy view.
"""
import pytest

from conftest import run
from issuehub.services import (
    HierarchyResolver,
    InMemoryRowStore,
    InvalidHierarchy,
    NotFound,
    ReasonCode,
)


def _issue(issue_id, project_id="p-1", parent=None, **extra):
    row = {
        "id": issue_id,
        "key": f"HUB-{issue_id}",
        "project_id": project_id,
        "summary": f"Issue {issue_id}",
        "status": "to_do",
        "internal_priority": "P3",
        "client_priority": None,
        "parent_issue_id": parent,
    }
    row.update(extra)
    return row


@pytest.fixture
def resolver():
    store = InMemoryRowStore()
    run(store.insert("issues", _issue("A")))
    run(store.insert("issues", _issue("B")))
    run(store.insert("issues", _issue("C", parent="B", status="in_progress", client_priority="asap")))
    run(store.insert("issues", _issue("D", project_id="p-2")))
    run(store.insert("issues", _issue("E")))
    return HierarchyResolver(store)


def test_child_with_own_subtasks_is_rejected(resolver):
    result = run(resolver.attach("A", "B"))
    assert not result.ok
    assert result.reason == ReasonCode.INVALID_HIERARCHY


def test_parent_that_is_a_subtask_is_rejected(resolver):
    result = run(resolver.attach("C", "E"))
    assert result.reason == ReasonCode.INVALID_HIERARCHY
    with pytest.raises(InvalidHierarchy):
        result.raise_for_rejection()


def test_self_parenting_is_rejected(resolver):
    assert run(resolver.attach("A", "A")).reason == ReasonCode.INVALID_HIERARCHY


def test_cross_project_link_is_rejected(resolver):
    assert not run(resolver.attach("A", "D")).ok


def test_attach_writes_parent_reference(resolver):
    result = run(resolver.attach("A", "E"))
    assert result.ok
    assert run(resolver.store.get("issues", "E"))["parent_issue_id"] == "A"


def test_missing_issues_are_not_found(resolver):
    missing_parent = run(resolver.attach("nope", "E"))
    assert missing_parent.reason == ReasonCode.NOT_FOUND
    with pytest.raises(NotFound):
        missing_parent.raise_for_rejection()

    assert run(resolver.attach("A", "nope")).reason == ReasonCode.NOT_FOUND


def test_validate_new_issue_under_subtask(resolver):
    result = run(resolver.validate("C", child_project_id="p-1"))
    assert result.reason == ReasonCode.INVALID_HIERARCHY

    assert run(resolver.validate("A", child_project_id="p-1")).ok


def test_detach(resolver):
    run(resolver.detach("C"))
    assert run(resolver.store.get("issues", "C"))["parent_issue_id"] is None
    assert run(resolver.has_subtasks("B")) is False


def test_view_of_parent_lists_projected_subtasks(resolver):
    view = run(resolver.view_for("B"))
    assert view.parent is None
    assert [s.model_dump() for s in view.subtasks] == [{
        "id": "C",
        "key": "HUB-C",
        "summary": "Issue C",
        "status": "in_progress",
        "internal_priority": "P3",
        "client_priority": "asap",
    }]


def test_view_of_subtask_has_parent_projection(resolver):
    view = run(resolver.view_for("C"))
    assert view.parent.model_dump() == {"id": "B", "key": "HUB-B", "summary": "Issue B"}
    assert view.subtasks == []


def test_check_link_is_pure():
    parent = {"id": "P", "project_id": "p-1", "parent_issue_id": None}
    assert HierarchyResolver.check_link(parent, "X", "p-1", child_has_subtasks=False).ok
    assert not HierarchyResolver.check_link(parent, "X", "p-1", child_has_subtasks=True).ok
    assert not HierarchyResolver.check_link({**parent, "parent_issue_id": "Q"}, "X", "p-1", False).ok
