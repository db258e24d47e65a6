# hse_core/workflows/capabilities.py
"""
Single source of the can_* flags.

Serializers show these flags to clients and the executor enforces the same
decisions, so the UI and the server cannot disagree about what is allowed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from django.apps import apps

from .roles import ADMINISTRATOR, READONLY, SYSTEM, normalize_role, user_roles
from .tables import Lifecycle, TransitionRule, lifecycle_for_instance


@dataclass
class Decision:
    action: str
    rule: Optional[TransitionRule]
    role_ok: bool = False
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def legal(self) -> bool:
        return self.rule is not None

    @property
    def allowed(self) -> bool:
        return self.legal and self.role_ok and not self.errors


def _resolve_roles(user, roles: Optional[Iterable[str]]) -> FrozenSet[str]:
    if roles is None:
        return user_roles(user)
    return frozenset(normalize_role(r) for r in roles)


def is_privileged(lifecycle: Lifecycle, roles: FrozenSet[str]) -> bool:
    """Administrator or the entity's manager role."""
    return ADMINISTRATOR in roles or lifecycle.manager_role in roles


def missing_requirements(rule: TransitionRule, instance) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for name in rule.required_fields:
        value = getattr(instance, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = f"This field is required to {rule.action}."
    if errors:
        return errors
    for guard in rule.guards:
        errors.update(guard(instance) or {})
    return errors


def role_allows(lifecycle: Lifecycle, rule: TransitionRule, instance, user, roles: FrozenSet[str]) -> bool:
    if rule.system_only:
        return SYSTEM in roles
    if rule.allows_role(roles):
        return True
    if rule.owner_allowed and READONLY not in roles:
        return lifecycle.is_owner(instance, user)
    return False


def decide(instance, action: str, user, roles: Optional[Iterable[str]] = None) -> Decision:
    """
    Full decision for one action: table legality, role, field completeness.
    """
    lifecycle = lifecycle_for_instance(instance)
    rule = lifecycle.lookup(instance.status, action)
    decision = Decision(action=action, rule=rule)
    if rule is None:
        return decision

    resolved = _resolve_roles(user, roles)
    decision.role_ok = role_allows(lifecycle, rule, instance, user, resolved)
    if decision.role_ok:
        decision.errors = missing_requirements(rule, instance)
    return decision


def can_edit(instance, user, roles: Optional[Iterable[str]] = None) -> bool:
    lifecycle = lifecycle_for_instance(instance)
    resolved = _resolve_roles(user, roles)
    if instance.status not in lifecycle.editable:
        return False
    if is_privileged(lifecycle, resolved):
        return True
    if READONLY in resolved:
        return False
    return lifecycle.is_owner(instance, user)


def has_transition_history(lifecycle: Lifecycle, instance) -> bool:
    if instance.pk is None:
        return False
    entries = apps.get_model("hse_core", "TransitionAuditEntry").objects
    return entries.filter(kind=lifecycle.kind, object_id=instance.pk).exists()


def can_delete(instance, user, roles: Optional[Iterable[str]] = None) -> bool:
    """
    Only records that never left their initial status may be deleted; a
    record reopened back into it keeps its history.
    """
    lifecycle = lifecycle_for_instance(instance)
    resolved = _resolve_roles(user, roles)
    if instance.status != lifecycle.initial:
        return False
    if has_transition_history(lifecycle, instance):
        return False
    if is_privileged(lifecycle, resolved):
        return True
    if READONLY in resolved:
        return False
    return lifecycle.is_owner(instance, user)


def evaluate(instance, user, roles: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    {"can_edit", "can_delete", "can_<action>"..., "allowed_actions"} for one
    entity and one actor. System-only actions never appear.
    """
    lifecycle = lifecycle_for_instance(instance)
    resolved = _resolve_roles(user, roles)

    caps: Dict[str, Any] = {
        "can_edit": can_edit(instance, user, resolved),
        "can_delete": can_delete(instance, user, resolved),
    }

    allowed = []
    for rule in lifecycle.rules:
        if rule.system_only:
            continue
        key = f"can_{rule.action}"
        if caps.get(key):
            continue
        ok = decide(instance, rule.action, user, resolved).allowed
        caps[key] = ok
        if ok:
            allowed.append(rule.action)

    caps["allowed_actions"] = allowed
    return caps
