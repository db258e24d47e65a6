# hse_core/workflows/executor.py

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from hse_core.cache import invalidate_summary
from hse_core.models import TransitionAuditEntry

from .capabilities import decide
from .errors import (
    ConcurrentModification,
    Forbidden,
    InvalidTransition,
    NotFound,
    TransitionValidationError,
)
from .roles import normalize_role, primary_role, user_roles
from .tables import TransitionContext, get_lifecycle, normalize_action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    kind: str
    object_id: int
    action: str
    from_status: str
    to_status: str
    audit_id: int

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _model_has_field(model_cls, name: str) -> bool:
    return any(f.name == name for f in model_cls._meta.concrete_fields)


def _collect_updates(ctx: TransitionContext, model_cls) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    for fn in ctx.rule.updates:
        updates.update(fn(ctx))

    if _model_has_field(model_cls, "status_changed_at"):
        updates["status_changed_at"] = ctx.now
    if _model_has_field(model_cls, "updated_at"):
        updates["updated_at"] = ctx.now
    if ctx.reason and _model_has_field(model_cls, "status_notes"):
        updates["status_notes"] = ctx.reason
    return updates


def execute_transition(
    *,
    kind: str,
    action: str,
    actor,
    object_id: Optional[int] = None,
    instance=None,
    reason: str = "",
    expected_status: Optional[str] = None,
    roles=None,
) -> TransitionResult:
    """
    Apply one named lifecycle action.

    Checks run in a fixed order: existence, expected status, table legality,
    actor role, reason, required fields and guards. The status write is a
    compare-and-set on the status the caller observed; the audit entry and
    any child effects commit with it or not at all.

    Pass `instance` to act on an already-loaded row (its in-memory status is
    the observed status); otherwise the row is read by `object_id`.
    `actor=None` is the system actor.
    """
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise NotFound(f"Unknown workflow kind: {kind}")

    model_cls = lifecycle.get_model()
    action = normalize_action(action)
    reason = (reason or "").strip()

    # 1) Existence
    if instance is None:
        instance = model_cls.objects.filter(pk=object_id).first()
        if instance is None:
            raise NotFound(f"{lifecycle.kind.capitalize()} {object_id} does not exist.")
    object_id = instance.pk
    current = (instance.status or "").strip().upper()

    # 2) Caller's view of the status must still hold
    if expected_status and expected_status.strip().upper() != current:
        raise ConcurrentModification(kind=lifecycle.kind, object_id=object_id, current_status=current)

    # 3) Legality, 4) role, 5) requirements: one decision, shared with the UI flags
    if roles is None:
        resolved_roles = user_roles(actor)
    else:
        resolved_roles = frozenset(normalize_role(r) for r in roles)
    decision = decide(instance, action, actor, resolved_roles)

    if not decision.legal:
        logger.info("Rejected %s on %s %s: not allowed from %s", action, lifecycle.kind, object_id, current)
        raise InvalidTransition(
            kind=lifecycle.kind,
            action=action,
            current_status=current,
            allowed_actions=lifecycle.actions_from(current),
        )

    rule = decision.rule

    if not decision.role_ok:
        logger.info("Rejected %s on %s %s: actor lacks role", action, lifecycle.kind, object_id)
        if rule.system_only:
            raise Forbidden(f"'{action}' is performed by the system only.", action=action)
        raise Forbidden(
            f"You do not have the required role to {action} this {lifecycle.kind}.",
            action=action,
        )

    errors: Dict[str, str] = {}
    if rule.requires_reason and not reason:
        errors["reason"] = f"A reason is required to {action}."
    errors.update(decision.errors)
    if errors:
        logger.info("Rejected %s on %s %s: %s", action, lifecycle.kind, object_id, ", ".join(sorted(errors)))
        raise TransitionValidationError(errors)

    # 6) Apply status + effects + audit atomically
    ctx = TransitionContext(
        instance=instance,
        rule=rule,
        actor=actor,
        reason=reason,
        now=timezone.now(),
        from_status=current,
    )
    ctx.updates = _collect_updates(ctx, model_cls)

    with transaction.atomic():
        updated = model_cls.objects.filter(pk=object_id, status=current).update(
            status=rule.target,
            **ctx.updates,
        )
        if updated != 1:
            fresh = model_cls.objects.filter(pk=object_id).values_list("status", flat=True).first()
            raise ConcurrentModification(kind=lifecycle.kind, object_id=object_id, current_status=fresh)

        for effect in rule.effects:
            effect(ctx)

        entry = TransitionAuditEntry.objects.create(
            kind=lifecycle.kind,
            object_id=object_id,
            action=action,
            from_status=current,
            to_status=rule.target,
            actor=actor,
            actor_role=primary_role(resolved_roles),
            reason=reason,
        )

    # 7) Dashboards for this kind are now stale
    invalidate_summary(lifecycle.kind)

    logger.info(
        "%s %s: %s -> %s (%s) by %s",
        lifecycle.kind,
        object_id,
        current,
        rule.target,
        action,
        actor.get_username() if actor is not None else "system",
    )

    return TransitionResult(
        kind=lifecycle.kind,
        object_id=object_id,
        action=action,
        from_status=current,
        to_status=rule.target,
        audit_id=entry.pk,
    )
