# hse_core/tests/test_transition_tables.py

import pytest

from hse_core.workflows import (
    allowed_actions,
    get_lifecycle,
    lookup,
    normalize_kind,
    required_roles,
    workflow_definition,
)


@pytest.mark.parametrize(
    "kind,status,action,target",
    [
        ("hazard", "OPEN", "assess", "ASSESSED"),
        ("hazard", "ASSESSED", "resolve", "RESOLVED"),
        ("hazard", "RESOLVED", "close", "CLOSED"),
        ("hazard", "CLOSED", "reassess", "OPEN"),
        ("license", "DRAFT", "submit", "SUBMITTED"),
        ("license", "UNDER_REVIEW", "approve", "APPROVED"),
        ("license", "APPROVED", "activate", "ACTIVE"),
        ("license", "SUSPENDED", "reactivate", "ACTIVE"),
        ("license", "EXPIRED", "renew", "ACTIVE"),
        ("training", "SCHEDULED", "start", "IN_PROGRESS"),
        ("training", "DRAFT", "cancel", "CANCELLED"),
    ],
)
def test_lookup_returns_target_for_legal_pairs(kind, status, action, target):
    rule = lookup(kind, status, action)
    assert rule is not None
    assert rule.target == target


@pytest.mark.parametrize(
    "kind,status,action",
    [
        ("hazard", "OPEN", "close"),
        ("hazard", "CLOSED", "resolve"),
        ("license", "DRAFT", "approve"),
        ("license", "REVOKED", "renew"),
        ("license", "EXPIRED", "expire"),
        ("training", "COMPLETED", "cancel"),
        ("training", "DRAFT", "start"),
    ],
)
def test_lookup_has_no_entry_for_illegal_pairs(kind, status, action):
    assert lookup(kind, status, action) is None


def test_lookup_normalizes_case_and_aliases():
    assert lookup("hazard", "closed", "REOPEN").action == "reassess"
    assert lookup("hazards", " open ", "Assess").target == "ASSESSED"


def test_unknown_kind_has_no_rules():
    assert lookup("incident", "OPEN", "close") is None
    with pytest.raises(ValueError):
        normalize_kind("incident")


def test_terminal_states_have_no_outgoing_actions_except_reopen_paths():
    license_lc = get_lifecycle("license")
    for status in license_lc.terminal:
        actions = allowed_actions("license", status)
        # EXPIRED can still be renewed
        assert actions == (["renew"] if status == "EXPIRED" else [])

    training_lc = get_lifecycle("training")
    for status in training_lc.terminal:
        assert allowed_actions("training", status) == []


def test_allowed_actions_hide_system_only_expire():
    assert "expire" not in allowed_actions("license", "ACTIVE")
    assert allowed_actions("license", "ACTIVE") == ["suspend", "revoke", "renew"]


def test_reason_required_on_destructive_actions():
    assert lookup("license", "ACTIVE", "suspend").requires_reason
    assert lookup("license", "SUBMITTED", "reject").requires_reason
    assert lookup("license", "SUSPENDED", "revoke").requires_reason
    assert lookup("training", "SCHEDULED", "cancel").requires_reason
    assert lookup("hazard", "CLOSED", "reassess").requires_reason
    assert not lookup("license", "APPROVED", "activate").requires_reason


def test_required_roles_include_administrator_except_system_actions():
    assert required_roles("hazard", "close") == ["ADMINISTRATOR", "SAFETY_MANAGER"]
    assert required_roles("license", "expire") == ["SYSTEM"]
    with pytest.raises(ValueError):
        required_roles("license", "teleport")


def test_definition_covers_every_kind_and_is_json_friendly():
    everything = workflow_definition()
    assert set(everything) == {"hazard", "license", "training"}

    lic = workflow_definition("license")
    assert lic["initial"] == "DRAFT"
    assert lic["terminal"] == ["EXPIRED", "REJECTED", "REVOKED"]

    expire = next(t for t in lic["transitions"] if t["action"] == "expire")
    assert expire["system_only"] is True
    assert expire["roles"] == []
    assert "EXPIRED" not in expire["from"]
