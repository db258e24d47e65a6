# hse_core/summaries.py
"""
Dashboard aggregates over the whole collection of one entity kind.

List filters never reach this module: dashboards report global counts
regardless of what the list view is showing.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

from django.db.models import Count
from django.utils import timezone

from .cache import AUDIT_PARAMS, cached_summary
from .choices import (
    CONDITION_DONE,
    MITIGATION_DONE,
    PARTICIPANT_DONE,
    Priority,
    RiskLevel,
    Severity,
    enum_name,
)
from .models import (
    Hazard,
    License,
    LicenseCondition,
    MitigationAction,
    Training,
    TrainingParticipant,
)
from .selectors import high_risk_q, open_q, overdue_q
from .workflows import get_lifecycle
from .workflows.tables import TRAINING_SCHEDULED


@dataclass
class Summary:
    total_count: int = 0
    open_count: int = 0
    high_risk_count: int = 0
    overdue_count: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)
    overdue_actions_count: int = 0
    extra: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class _Shape:
    model: Any
    category_field: str
    severity_field: str
    severity_enum: Any


_SHAPES = {
    "hazard": _Shape(Hazard, "category", "severity", Severity),
    "license": _Shape(License, "license_type", "risk_level", RiskLevel),
    "training": _Shape(Training, "category", "priority", Priority),
}


def _grouped(qs, field_name: str, enum_cls=None) -> Dict[str, int]:
    out: Dict[str, int] = {}
    rows = qs.order_by().values(field_name).annotate(n=Count("id"))
    for row in rows:
        if not row["n"]:
            continue
        value = row[field_name]
        key = enum_name(enum_cls, value) if enum_cls is not None else str(value)
        out[key] = out.get(key, 0) + row["n"]
    return out


def _overdue_children(kind: str, today) -> int:
    if kind == "hazard":
        return MitigationAction.objects.filter(target_date__lt=today).exclude(status__in=MITIGATION_DONE).count()
    if kind == "license":
        return LicenseCondition.objects.filter(due_date__lt=today).exclude(status__in=CONDITION_DONE).count()
    return TrainingParticipant.objects.filter(due_date__lt=today).exclude(status__in=PARTICIPANT_DONE).count()


def _extra(kind: str, today) -> Dict[str, int]:
    if kind == "hazard":
        return {"unassessed_count": Hazard.objects.filter(current_risk_assessment__isnull=True).count()}
    if kind == "license":
        lifecycle = get_lifecycle("license")
        live = License.objects.exclude(status__in=lifecycle.terminal)
        return {
            "expiring_soon_count": live.filter(
                expiry_date__gte=today,
                expiry_date__lte=today + timedelta(days=30),
            ).count(),
            "renewal_due_count": live.filter(
                renewal_required=True,
                next_renewal_date__lte=today,
            ).count(),
            "critical_count": live.filter(is_critical_license=True).count(),
        }
    return {
        "participant_count": TrainingParticipant.objects.count(),
        "upcoming_count": Training.objects.filter(
            status=TRAINING_SCHEDULED,
            scheduled_start_date__gte=timezone.now(),
        ).count(),
    }


def aggregate(kind: str) -> Summary:
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise ValueError(f"Unknown summary kind: {kind}")

    shape = _SHAPES[lifecycle.kind]
    today = timezone.localdate()
    qs = shape.model.objects.all()

    return Summary(
        total_count=qs.count(),
        open_count=qs.filter(open_q(lifecycle.kind)).count(),
        high_risk_count=qs.filter(high_risk_q(lifecycle.kind)).count(),
        overdue_count=qs.filter(overdue_q(lifecycle.kind, today)).count(),
        by_category=_grouped(qs, shape.category_field),
        by_severity=_grouped(qs, shape.severity_field, shape.severity_enum),
        by_status=_grouped(qs, "status"),
        overdue_actions_count=_overdue_children(lifecycle.kind, today),
        extra=_extra(lifecycle.kind, today),
    )


def get_summary(kind: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Cached dashboard summary. Only the audit flags of `params` matter: the
    aggregate itself never depends on list filters.
    """
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise ValueError(f"Unknown summary kind: {kind}")

    flags = {p: params.get(p) for p in AUDIT_PARAMS if params and params.get(p) is not None}
    return cached_summary(lifecycle.kind, lambda: aggregate(lifecycle.kind).as_dict(), flags)
