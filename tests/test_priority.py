"""
Unit tests for legacy/dual-tier priority reconciliation.
"""
import pytest

from issuehub.services import PriorityNormalizer


TABLE = [
    ("highest", "P1"),
    ("high", "P2"),
    ("medium", "P3"),
    ("low", "P4"),
    ("lowest", "P5"),
]


@pytest.mark.parametrize("legacy,internal", TABLE)
def test_mapping_table(legacy, internal):
    assert PriorityNormalizer.normalize_on_create(None, legacy) == internal
    assert PriorityNormalizer.to_legacy(internal) == legacy


@pytest.mark.parametrize("legacy,internal", TABLE)
def test_legacy_token_in_internal_slot_round_trips(legacy, internal):
    normalized = PriorityNormalizer.normalize_on_create(legacy, None)
    assert normalized == internal
    assert PriorityNormalizer.to_legacy(normalized) == legacy


def test_internal_wins_over_legacy():
    assert PriorityNormalizer.normalize_on_create("P2", "lowest") == "P2"


def test_default_is_p3():
    assert PriorityNormalizer.normalize_on_create(None, None) == "P3"
    assert PriorityNormalizer.normalize_on_create("", "") == "P3"


def test_unknown_tokens_pass_through():
    assert PriorityNormalizer.normalize_on_create("urgent", None) == "urgent"
    assert PriorityNormalizer.normalize_on_create(None, "critical") == "critical"
    assert PriorityNormalizer.to_legacy("P9") == "P9"
    assert PriorityNormalizer.to_legacy(None) is None


def test_no_partial_matches():
    assert PriorityNormalizer.normalize_on_create(None, "High") == "High"
    assert PriorityNormalizer.to_legacy("p1") == "p1"


def test_normalize_payload_consumes_legacy_key():
    assert PriorityNormalizer.normalize_payload({"priority": "low"}) == {"internal_priority": "P4"}

    both = PriorityNormalizer.normalize_payload({"priority": "low", "internal_priority": "P1", "summary": "x"})
    assert both == {"internal_priority": "P1", "summary": "x"}

    assert PriorityNormalizer.normalize_payload({"summary": "x"}) == {"summary": "x"}


def test_normalize_payload_does_not_mutate_input():
    payload = {"priority": "high"}
    PriorityNormalizer.normalize_payload(payload)
    assert payload == {"priority": "high"}
