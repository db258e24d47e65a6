# hse_core/workflows/tables.py
"""
Static lifecycle tables for Hazard, License and Training.

One Lifecycle per entity kind; each owns its states, its transition rules and
the sets the rest of the app derives behaviour from (initial, terminal,
editable). Lookups are (status, action) -> TransitionRule or None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from django.apps import apps

from . import effects as fx
from .roles import (
    ADMINISTRATOR,
    COMPLIANCE_OFFICER,
    LICENSE_MANAGER,
    SAFETY_MANAGER,
    SAFETY_OFFICER,
    TRAINING_MANAGER,
)


# ===============================================================
# Actions
# ===============================================================

ACTION_ALIASES: Dict[str, str] = {
    "reopen": "reassess",
}


def normalize_action(value: str) -> str:
    raw = str(value or "").strip().lower().replace("-", "_")
    return ACTION_ALIASES.get(raw, raw)


# ===============================================================
# Rule / lifecycle shapes
# ===============================================================

@dataclass(frozen=True)
class TransitionRule:
    action: str
    sources: FrozenSet[str]
    target: str
    roles: FrozenSet[str] = frozenset()
    owner_allowed: bool = False
    requires_reason: bool = False
    required_fields: Tuple[str, ...] = ()
    guards: Tuple[Callable[[Any], Dict[str, str]], ...] = ()
    updates: Tuple[Callable[[Any], Dict[str, Any]], ...] = ()
    effects: Tuple[Callable[[Any], None], ...] = ()
    system_only: bool = False

    def allows_role(self, roles) -> bool:
        if self.system_only:
            return False
        if ADMINISTRATOR in roles:
            return True
        return bool(self.roles.intersection(roles))


@dataclass
class TransitionContext:
    instance: Any
    rule: TransitionRule
    actor: Any
    reason: str
    now: datetime
    from_status: str
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Lifecycle:
    kind: str
    model_label: str
    states: Tuple[str, ...]
    initial: str
    terminal: FrozenSet[str]
    editable: FrozenSet[str]
    manager_role: str
    owner_fields: Tuple[str, ...]
    due_field: str
    rules: Tuple[TransitionRule, ...]
    # states that do not count as "open" on dashboards
    closed: FrozenSet[str] = frozenset()
    locked_fields: Tuple[str, ...] = ()

    def get_model(self):
        return apps.get_model(self.model_label)

    def lookup(self, status: str, action: str) -> Optional[TransitionRule]:
        status = (status or "").strip().upper()
        action = normalize_action(action)
        for rule in self.rules:
            if rule.action == action and status in rule.sources:
                return rule
        return None

    def actions_from(self, status: str, *, include_system: bool = False) -> List[str]:
        status = (status or "").strip().upper()
        out = []
        for rule in self.rules:
            if status not in rule.sources:
                continue
            if rule.system_only and not include_system:
                continue
            if rule.action not in out:
                out.append(rule.action)
        return out

    def rule_for(self, action: str) -> Optional[TransitionRule]:
        action = normalize_action(action)
        for rule in self.rules:
            if rule.action == action:
                return rule
        return None

    @property
    def actions(self) -> List[str]:
        out = []
        for rule in self.rules:
            if rule.action not in out:
                out.append(rule.action)
        return out

    @property
    def open_states(self) -> FrozenSet[str]:
        return frozenset(self.states) - self.terminal - self.closed

    def is_owner(self, instance, user) -> bool:
        if user is None or not getattr(user, "pk", None):
            return False
        return any(getattr(instance, f"{f}_id", None) == user.pk for f in self.owner_fields)


# ===============================================================
# Hazard
# ===============================================================

HAZARD_OPEN = "OPEN"
HAZARD_ASSESSED = "ASSESSED"
HAZARD_RESOLVED = "RESOLVED"
HAZARD_CLOSED = "CLOSED"

HAZARD_STATES = (HAZARD_OPEN, HAZARD_ASSESSED, HAZARD_RESOLVED, HAZARD_CLOSED)

_HAZARD_HANDLERS = frozenset({SAFETY_MANAGER, SAFETY_OFFICER})

HAZARD_LIFECYCLE = Lifecycle(
    kind="hazard",
    model_label="hse_core.Hazard",
    states=HAZARD_STATES,
    initial=HAZARD_OPEN,
    terminal=frozenset({HAZARD_CLOSED}),
    closed=frozenset({HAZARD_RESOLVED}),
    editable=frozenset({HAZARD_OPEN}),
    manager_role=SAFETY_MANAGER,
    owner_fields=("reporter", "created_by"),
    due_field="expected_resolution_date",
    rules=(
        TransitionRule(
            action="assess",
            sources=frozenset({HAZARD_OPEN}),
            target=HAZARD_ASSESSED,
            roles=_HAZARD_HANDLERS,
            required_fields=("current_risk_assessment",),
        ),
        TransitionRule(
            action="resolve",
            sources=frozenset({HAZARD_ASSESSED}),
            target=HAZARD_RESOLVED,
            roles=_HAZARD_HANDLERS,
            updates=(fx.stamp("resolved_at"),),
        ),
        TransitionRule(
            action="close",
            sources=frozenset({HAZARD_RESOLVED}),
            target=HAZARD_CLOSED,
            roles=frozenset({SAFETY_MANAGER}),
            guards=(fx.no_pending_critical_actions,),
            updates=(fx.stamp("closed_at"),),
        ),
        TransitionRule(
            action="reassess",
            sources=frozenset({HAZARD_CLOSED}),
            target=HAZARD_OPEN,
            roles=_HAZARD_HANDLERS,
            requires_reason=True,
            updates=(fx.clear("resolved_at", "closed_at", "current_risk_assessment"),),
            effects=(fx.supersede_risk_assessment,),
        ),
    ),
)


# ===============================================================
# License
# ===============================================================

LICENSE_DRAFT = "DRAFT"
LICENSE_SUBMITTED = "SUBMITTED"
LICENSE_UNDER_REVIEW = "UNDER_REVIEW"
LICENSE_APPROVED = "APPROVED"
LICENSE_REJECTED = "REJECTED"
LICENSE_ACTIVE = "ACTIVE"
LICENSE_SUSPENDED = "SUSPENDED"
LICENSE_REVOKED = "REVOKED"
LICENSE_EXPIRED = "EXPIRED"

LICENSE_STATES = (
    LICENSE_DRAFT,
    LICENSE_SUBMITTED,
    LICENSE_UNDER_REVIEW,
    LICENSE_APPROVED,
    LICENSE_REJECTED,
    LICENSE_ACTIVE,
    LICENSE_SUSPENDED,
    LICENSE_REVOKED,
    LICENSE_EXPIRED,
)

LICENSE_TERMINAL = frozenset({LICENSE_REJECTED, LICENSE_REVOKED, LICENSE_EXPIRED})

_LICENSE_REVIEWERS = frozenset({LICENSE_MANAGER, COMPLIANCE_OFFICER})

LICENSE_LIFECYCLE = Lifecycle(
    kind="license",
    model_label="hse_core.License",
    states=LICENSE_STATES,
    initial=LICENSE_DRAFT,
    terminal=LICENSE_TERMINAL,
    editable=frozenset({LICENSE_DRAFT, LICENSE_SUBMITTED, LICENSE_UNDER_REVIEW, LICENSE_APPROVED}),
    manager_role=LICENSE_MANAGER,
    owner_fields=("created_by", "holder"),
    due_field="expiry_date",
    locked_fields=("license_number", "issuing_authority", "issued_date", "expiry_date", "holder_name"),
    rules=(
        TransitionRule(
            action="submit",
            sources=frozenset({LICENSE_DRAFT}),
            target=LICENSE_SUBMITTED,
            roles=_LICENSE_REVIEWERS,
            owner_allowed=True,
            required_fields=("title", "license_type", "issuing_authority", "expiry_date"),
            updates=(fx.stamp("submitted_at"),),
        ),
        TransitionRule(
            action="review",
            sources=frozenset({LICENSE_SUBMITTED}),
            target=LICENSE_UNDER_REVIEW,
            roles=_LICENSE_REVIEWERS,
        ),
        TransitionRule(
            action="approve",
            sources=frozenset({LICENSE_SUBMITTED, LICENSE_UNDER_REVIEW}),
            target=LICENSE_APPROVED,
            roles=_LICENSE_REVIEWERS,
            updates=(fx.stamp("approved_at"),),
        ),
        TransitionRule(
            action="reject",
            sources=frozenset({LICENSE_SUBMITTED, LICENSE_UNDER_REVIEW}),
            target=LICENSE_REJECTED,
            roles=_LICENSE_REVIEWERS,
            requires_reason=True,
        ),
        TransitionRule(
            action="activate",
            sources=frozenset({LICENSE_APPROVED}),
            target=LICENSE_ACTIVE,
            roles=frozenset({LICENSE_MANAGER}),
            updates=(fx.stamp("activated_at"),),
        ),
        TransitionRule(
            action="suspend",
            sources=frozenset({LICENSE_ACTIVE}),
            target=LICENSE_SUSPENDED,
            roles=frozenset({LICENSE_MANAGER}),
            requires_reason=True,
            updates=(fx.stamp("suspended_at"),),
        ),
        TransitionRule(
            action="reactivate",
            sources=frozenset({LICENSE_SUSPENDED}),
            target=LICENSE_ACTIVE,
            roles=frozenset({LICENSE_MANAGER}),
            updates=(fx.clear("suspended_at"),),
        ),
        TransitionRule(
            action="revoke",
            sources=frozenset({LICENSE_ACTIVE, LICENSE_SUSPENDED}),
            target=LICENSE_REVOKED,
            roles=frozenset({LICENSE_MANAGER}),
            requires_reason=True,
            updates=(fx.stamp("revoked_at"),),
        ),
        TransitionRule(
            action="expire",
            sources=frozenset(set(LICENSE_STATES) - LICENSE_TERMINAL),
            target=LICENSE_EXPIRED,
            system_only=True,
        ),
        TransitionRule(
            action="renew",
            sources=frozenset({LICENSE_ACTIVE, LICENSE_EXPIRED}),
            target=LICENSE_ACTIVE,
            roles=_LICENSE_REVIEWERS,
            guards=(fx.previously_activated, fx.positive_renewal_period),
            updates=(fx.renewed_expiry,),
            effects=(fx.record_renewal,),
        ),
    ),
)


# ===============================================================
# Training
# ===============================================================

TRAINING_DRAFT = "DRAFT"
TRAINING_SCHEDULED = "SCHEDULED"
TRAINING_IN_PROGRESS = "IN_PROGRESS"
TRAINING_COMPLETED = "COMPLETED"
TRAINING_CANCELLED = "CANCELLED"

TRAINING_STATES = (
    TRAINING_DRAFT,
    TRAINING_SCHEDULED,
    TRAINING_IN_PROGRESS,
    TRAINING_COMPLETED,
    TRAINING_CANCELLED,
)

TRAINING_TERMINAL = frozenset({TRAINING_COMPLETED, TRAINING_CANCELLED})

TRAINING_LIFECYCLE = Lifecycle(
    kind="training",
    model_label="hse_core.Training",
    states=TRAINING_STATES,
    initial=TRAINING_DRAFT,
    terminal=TRAINING_TERMINAL,
    editable=frozenset({TRAINING_DRAFT, TRAINING_SCHEDULED}),
    manager_role=TRAINING_MANAGER,
    owner_fields=("created_by",),
    due_field="scheduled_end_date",
    rules=(
        TransitionRule(
            action="schedule",
            sources=frozenset({TRAINING_DRAFT}),
            target=TRAINING_SCHEDULED,
            roles=frozenset({TRAINING_MANAGER}),
            owner_allowed=True,
            required_fields=("instructor_name", "scheduled_start_date", "scheduled_end_date"),
            guards=(fx.schedule_window_valid,),
        ),
        TransitionRule(
            action="start",
            sources=frozenset({TRAINING_SCHEDULED}),
            target=TRAINING_IN_PROGRESS,
            roles=frozenset({TRAINING_MANAGER}),
            guards=(fx.minimum_participants_met,),
            updates=(fx.stamp("actual_start_date"),),
            effects=(fx.participants_attending,),
        ),
        TransitionRule(
            action="complete",
            sources=frozenset({TRAINING_IN_PROGRESS}),
            target=TRAINING_COMPLETED,
            roles=frozenset({TRAINING_MANAGER}),
            updates=(fx.stamp("actual_end_date"),),
        ),
        TransitionRule(
            action="cancel",
            sources=frozenset(set(TRAINING_STATES) - TRAINING_TERMINAL),
            target=TRAINING_CANCELLED,
            roles=frozenset({TRAINING_MANAGER}),
            requires_reason=True,
            effects=(fx.participants_withdrawn,),
        ),
    ),
)


# ===============================================================
# Registry
# ===============================================================

LIFECYCLES: Dict[str, Lifecycle] = {
    HAZARD_LIFECYCLE.kind: HAZARD_LIFECYCLE,
    LICENSE_LIFECYCLE.kind: LICENSE_LIFECYCLE,
    TRAINING_LIFECYCLE.kind: TRAINING_LIFECYCLE,
}

KIND_PLURALS: Dict[str, str] = {
    "hazards": "hazard",
    "licenses": "license",
    "trainings": "training",
}


def get_lifecycle(kind: str) -> Optional[Lifecycle]:
    k = str(kind or "").strip().lower()
    return LIFECYCLES.get(KIND_PLURALS.get(k, k))


def lifecycle_for_instance(instance) -> Optional[Lifecycle]:
    label = instance._meta.label
    for lifecycle in LIFECYCLES.values():
        if lifecycle.model_label == label:
            return lifecycle
    return None


def lookup(kind: str, current_status: str, action: str) -> Optional[TransitionRule]:
    """
    (kind, status, action) -> rule, or None when the table has no entry.
    """
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        return None
    return lifecycle.lookup(current_status, action)
