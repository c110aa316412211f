"""
Unit tests for the mutation sanitizer and its schema-drift fallback.
"""
import pytest

from conftest import run
from issuehub.services import (
    InMemoryRowStore,
    MutationSanitizer,
    SchemaDrift,
    SchemaDriftUnrecoverable,
    UpstreamUnavailable,
)


PAYLOADS = [
    {},
    {"summary": "a"},
    {"summary": "a", "status": "done", "reporter_id": "u-x"},
    {"client_priority": "urgent", "description": None},
]

MASKS = [
    frozenset(),
    frozenset({"summary"}),
    frozenset({"client_priority", "description"}),
    frozenset({"summary", "status", "assignee_id"}),
]


def test_sanitize_drops_keys_outside_mask():
    payload = {"summary": "a", "status": "done", "reporter_id": "u-x"}
    assert MutationSanitizer.sanitize(payload, {"summary", "status"}) == {"summary": "a", "status": "done"}


def test_sanitize_keeps_none_values_inside_mask():
    assert MutationSanitizer.sanitize({"description": None}, {"description"}) == {"description": None}


def test_sanitize_is_idempotent():
    for payload in PAYLOADS:
        for mask in MASKS:
            once = MutationSanitizer.sanitize(payload, mask)
            assert MutationSanitizer.sanitize(once, mask) == once


def test_degraded_payload_keeps_stable_fields_and_translates_priority():
    payload = {
        "summary": "Crash",
        "internal_priority": "P1",
        "client_priority": "urgent",
        "assignee_id": "u-1",
        "exposed_to_client": True,
        "labels": ["ui"],
    }
    reduced = MutationSanitizer.degraded_payload(payload)
    assert reduced == {
        "summary": "Crash",
        "priority": "highest",
        "exposed_to_client": True,
        "labels": ["ui"],
    }


def test_degraded_payload_drops_rejected_column():
    reduced = MutationSanitizer.degraded_payload(
        {"summary": "Crash", "exposed_to_client": True}, rejected_column="exposed_to_client"
    )
    assert reduced == {"summary": "Crash"}


def test_degraded_payload_keep():
    reduced = MutationSanitizer.degraded_payload(
        {"summary": "Crash", "project_id": "p-1", "release_id": "r-1"}, keep={"project_id"}
    )
    assert reduced == {"summary": "Crash", "project_id": "p-1"}


def test_unknown_column_retries_once_without_it():
    store = InMemoryRowStore(known_columns={"issues": ["id", "summary", "status", "created_at"]})
    row = run(store.insert("issues", {"id": "i-1", "summary": "old", "status": "to_do"}))

    sanitizer = MutationSanitizer()
    stored = run(sanitizer.write_with_fallback(
        lambda changes: store.update("issues", row["id"], changes),
        {"summary": "new", "exposed_to_client": True},
    ))

    assert stored["summary"] == "new"
    assert "exposed_to_client" not in stored
    assert store.writes[-1] == ("update", "issues", {"summary": "new"})


def test_second_drift_is_a_hard_error():
    calls = []

    async def write(changes):
        calls.append(changes)
        raise SchemaDrift("unknown column", column="summary")

    with pytest.raises(SchemaDriftUnrecoverable) as exc_info:
        run(MutationSanitizer().write_with_fallback(write, {"summary": "x", "status": "done"}))

    assert len(calls) == 2
    assert calls[1] == {"status": "done"}
    assert "migration" in exc_info.value.message
    assert exc_info.value.column == "summary"


def test_other_storage_errors_are_not_retried():
    calls = []

    async def write(changes):
        calls.append(changes)
        raise UpstreamUnavailable("connection refused")

    with pytest.raises(UpstreamUnavailable):
        run(MutationSanitizer().write_with_fallback(write, {"summary": "x"}))
    assert len(calls) == 1
