# hse_core/workflows/__init__.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .roles import (
    ADMINISTRATOR,
    READONLY,
    ROLE_ALIASES,
    SYSTEM,
    normalize_role,
    primary_role,
    user_roles,
)
from .tables import (
    ACTION_ALIASES,
    HAZARD_LIFECYCLE,
    LICENSE_LIFECYCLE,
    LIFECYCLES,
    TRAINING_LIFECYCLE,
    Lifecycle,
    TransitionRule,
    get_lifecycle,
    lifecycle_for_instance,
    lookup,
    normalize_action,
)


# ===============================================================
# Public workflow API
# ===============================================================

def normalize_kind(kind: str) -> str:
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise ValueError(f"Unknown workflow kind: {kind}")
    return lifecycle.kind


def allowed_actions(kind: str, status: str) -> List[str]:
    """
    Actions legal from `status`, independent of role. System-only actions are
    left out.
    """
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        return []
    return lifecycle.actions_from(status)


def required_roles(kind: str, action: str) -> List[str]:
    """
    Roles allowed to perform `action`. ADMINISTRATOR is implicit everywhere
    except on system-only actions.
    """
    lifecycle = get_lifecycle(kind)
    rule = lifecycle.rule_for(action) if lifecycle else None
    if rule is None:
        raise ValueError(f"Unknown {kind} action: {action}")
    if rule.system_only:
        return [SYSTEM]
    return sorted(rule.roles | {ADMINISTRATOR})


def workflow_definition(kind: Optional[str] = None) -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """

    def _one(lifecycle: Lifecycle) -> Dict[str, Any]:
        return {
            "kind": lifecycle.kind,
            "states": list(lifecycle.states),
            "initial": lifecycle.initial,
            "terminal": sorted(lifecycle.terminal),
            "editable": sorted(lifecycle.editable),
            "transitions": [
                {
                    "action": rule.action,
                    "from": sorted(rule.sources),
                    "to": rule.target,
                    "requires_reason": rule.requires_reason,
                    "required_fields": list(rule.required_fields),
                    "system_only": rule.system_only,
                    "roles": [] if rule.system_only else sorted(rule.roles | {ADMINISTRATOR}),
                }
                for rule in lifecycle.rules
            ],
        }

    if kind is None:
        return {k: _one(lc) for k, lc in LIFECYCLES.items()}

    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise ValueError(f"Unsupported workflow kind: {kind}")
    return _one(lifecycle)


__all__ = [
    "ACTION_ALIASES",
    "ADMINISTRATOR",
    "HAZARD_LIFECYCLE",
    "LICENSE_LIFECYCLE",
    "LIFECYCLES",
    "READONLY",
    "ROLE_ALIASES",
    "SYSTEM",
    "TRAINING_LIFECYCLE",
    "Lifecycle",
    "TransitionRule",
    "allowed_actions",
    "get_lifecycle",
    "lifecycle_for_instance",
    "lookup",
    "normalize_action",
    "normalize_kind",
    "normalize_role",
    "primary_role",
    "required_roles",
    "user_roles",
    "workflow_definition",
]
