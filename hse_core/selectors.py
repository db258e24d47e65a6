# hse_core/selectors.py
"""
Read-side predicates shared by list filters, dashboards and visibility checks.
"""
from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.db.models import Q, QuerySet
from django.utils import timezone

from .choices import HIGH_PRIORITIES, HIGH_RISK_LEVELS
from .models import Hazard, UserRole
from .workflows import ADMINISTRATOR, get_lifecycle
from .workflows.roles import SAFETY_MANAGER, user_roles


def overdue_q(kind: str, today=None) -> Q:
    """
    Target date strictly in the past and status not terminal.
    """
    lifecycle = get_lifecycle(kind)
    today = today or timezone.localdate()
    due = lifecycle.due_field
    if lifecycle.kind == "training":
        lookup = {f"{due}__date__lt": today}
    else:
        lookup = {f"{due}__lt": today}
    return Q(**lookup) & ~Q(status__in=lifecycle.terminal)


def open_q(kind: str) -> Q:
    lifecycle = get_lifecycle(kind)
    return Q(status__in=lifecycle.open_states)


def high_risk_q(kind: str) -> Q:
    lifecycle = get_lifecycle(kind)
    if lifecycle.kind == "hazard":
        return Q(current_risk_assessment__risk_level__in=HIGH_RISK_LEVELS)
    if lifecycle.kind == "license":
        return Q(risk_level__in=HIGH_RISK_LEVELS)
    return Q(priority__in=HIGH_PRIORITIES)


def mine_q(kind: str, user) -> Q:
    """Records the user owns or is assigned to."""
    lifecycle = get_lifecycle(kind)
    if lifecycle.kind == "hazard":
        return Q(reporter=user) | Q(created_by=user) | Q(mitigation_actions__assigned_to=user)
    if lifecycle.kind == "license":
        return Q(holder=user) | Q(created_by=user)
    return Q(created_by=user) | Q(participants__user=user)


# ===============================================================
# Hazard visibility
# ===============================================================

def _departments(user) -> set:
    return set(
        UserRole.objects.filter(user=user)
        .exclude(department="")
        .values_list("department", flat=True)
    )


def hazard_visibility_q(user) -> Optional[Q]:
    """
    None means unrestricted.

    Others see hazards they reported, hazards with a mitigation action
    assigned to them, and hazards reported in one of their departments.
    """
    roles = user_roles(user)
    if ADMINISTRATOR in roles or SAFETY_MANAGER in roles:
        return None

    q = Q(reporter=user) | Q(created_by=user) | Q(mitigation_actions__assigned_to=user)
    departments = _departments(user)
    if departments:
        q |= Q(reporter_department__in=departments)
    return q


def visible_hazards(user, queryset: Optional[QuerySet] = None) -> QuerySet:
    qs = queryset if queryset is not None else Hazard.objects.all()
    if not user or not user.is_authenticated:
        return qs.none()
    q = hazard_visibility_q(user)
    if q is None:
        return qs
    return qs.filter(pk__in=Hazard.objects.filter(q).values("pk"))


def can_access_hazard(user, hazard: Hazard) -> bool:
    return visible_hazards(user, Hazard.objects.filter(pk=hazard.pk)).exists()


def hide_private_hazards() -> bool:
    return bool(getattr(settings, "HSE_PRIVATE_HAZARD_NOT_FOUND", True))
