# hse_core/workflows/effects.py
"""
Building blocks referenced by the transition tables.

Three shapes, all keyed off a TransitionContext:
- guards(instance)  -> {field: message} for every unmet precondition
- updates(ctx)      -> extra column values written with the status change
- effects(ctx)      -> child-row changes applied after the status change,
                       inside the same transaction

Nothing here imports hse_core.models; related rows are reached through the
instance's reverse managers.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Dict

from django.conf import settings
from django.utils import timezone

from hse_core.choices import MitigationStatus, ParticipantStatus, Priority


# ===============================================================
# Guards
# ===============================================================

def positive_renewal_period(instance) -> Dict[str, str]:
    days = getattr(instance, "renewal_period_days", None) or 0
    if days <= 0:
        return {"renewal_period_days": "Renewal period must be a positive number of days."}
    return {}


def previously_activated(instance) -> Dict[str, str]:
    # a license expired straight out of DRAFT/SUBMITTED was never approved
    if getattr(instance, "activated_at", None) is None:
        return {"status": "Only a license that has been active can be renewed."}
    return {}


def no_pending_critical_actions(instance) -> Dict[str, str]:
    pending = instance.mitigation_actions.filter(
        priority=Priority.CRITICAL,
        status__in=[MitigationStatus.PLANNED, MitigationStatus.IN_PROGRESS],
    ).count()
    if pending:
        return {
            "mitigation_actions": (
                f"{pending} critical mitigation action(s) must be completed "
                "before the hazard can be closed."
            )
        }
    return {}


def schedule_window_valid(instance) -> Dict[str, str]:
    start = getattr(instance, "scheduled_start_date", None)
    end = getattr(instance, "scheduled_end_date", None)
    if start and end and end < start:
        return {"scheduled_end_date": "End date must not be before the start date."}
    return {}


def minimum_participants_met(instance) -> Dict[str, str]:
    minimum = getattr(instance, "min_participants", 0) or 0
    active = instance.participants.filter(
        status__in=[ParticipantStatus.ENROLLED, ParticipantStatus.ATTENDING],
    ).count()
    if active < minimum:
        return {
            "participants": (
                f"At least {minimum} participant(s) must be enrolled before the "
                f"training can start ({active} enrolled)."
            )
        }
    return {}


# ===============================================================
# Column updates
# ===============================================================

def stamp(field: str) -> Callable[[Any], Dict[str, Any]]:
    """Set `field` to the transition time."""

    def _updates(ctx) -> Dict[str, Any]:
        return {field: ctx.now}

    _updates.__name__ = f"stamp_{field}"
    return _updates


def clear(*fields: str) -> Callable[[Any], Dict[str, Any]]:
    def _updates(ctx) -> Dict[str, Any]:
        return {f: None for f in fields}

    _updates.__name__ = "clear_" + "_".join(fields)
    return _updates


def renewed_expiry(ctx) -> Dict[str, Any]:
    """
    expiry = today + renewal_period_days; the renewal-due countdown restarts
    from the new expiry.
    """
    lic = ctx.instance
    today = timezone.localdate(ctx.now)
    expiry = today + timedelta(days=lic.renewal_period_days)

    next_renewal = None
    if lic.renewal_required:
        notice = getattr(settings, "HSE_RENEWAL_NOTICE_DAYS", 30)
        next_renewal = max(today, expiry - timedelta(days=notice))

    return {"expiry_date": expiry, "next_renewal_date": next_renewal}


# ===============================================================
# Child effects
# ===============================================================

def record_renewal(ctx) -> None:
    ctx.instance.renewals.create(
        previous_expiry_date=ctx.instance.expiry_date,
        new_expiry_date=ctx.updates["expiry_date"],
        renewed_by=ctx.actor,
        notes=ctx.reason,
    )


def supersede_risk_assessment(ctx) -> None:
    ctx.instance.risk_assessments.filter(is_active=True).update(is_active=False)


def participants_attending(ctx) -> None:
    ctx.instance.participants.filter(status=ParticipantStatus.ENROLLED).update(
        status=ParticipantStatus.ATTENDING,
        updated_at=ctx.now,
    )


def participants_withdrawn(ctx) -> None:
    ctx.instance.participants.filter(
        status__in=[ParticipantStatus.ENROLLED, ParticipantStatus.ATTENDING],
    ).update(
        status=ParticipantStatus.WITHDRAWN,
        updated_at=ctx.now,
    )
