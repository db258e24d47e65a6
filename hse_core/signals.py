# hse_core/signals.py
from __future__ import annotations

from threading import local

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from hse_core.cache import invalidate_summary
from hse_core.models import (
    AuditLog,
    Hazard,
    License,
    LicenseCondition,
    MitigationAction,
    Training,
    TrainingParticipant,
    UserRole,
)

# ===============================================================
# Thread-local user storage
# ===============================================================
_state = local()


def set_current_user(user):
    _state.user = user


def get_current_user():
    return getattr(_state, "user", None)


# Model -> dashboard kind whose summary it feeds
SUMMARY_KINDS = {
    Hazard: "hazard",
    MitigationAction: "hazard",
    License: "license",
    LicenseCondition: "license",
    Training: "training",
    TrainingParticipant: "training",
}

AUDITED = set(SUMMARY_KINDS) | {UserRole}


# ===============================================================
# Utilities
# ===============================================================
def _log(action: str, instance, details: dict | None = None):
    user = get_current_user()

    AuditLog.objects.create(
        user=user if user and user.is_authenticated else None,
        action=f"{action} {instance.__class__.__name__}",
        details=details or {
            "model": instance.__class__.__name__,
            "object_id": instance.pk,
        },
    )


# ===============================================================
# CREATE / UPDATE
# ===============================================================
@receiver(post_save)
def audit_create_update(sender, instance, created, raw=False, **kwargs):
    if sender not in AUDITED or raw:
        return

    _log("CREATE" if created else "UPDATE", instance)

    kind = SUMMARY_KINDS.get(sender)
    if kind:
        invalidate_summary(kind)


# ===============================================================
# DELETE
# ===============================================================
@receiver(post_delete)
def audit_delete(sender, instance, **kwargs):
    if sender not in AUDITED:
        return

    _log("DELETE", instance)

    kind = SUMMARY_KINDS.get(sender)
    if kind:
        invalidate_summary(kind)
