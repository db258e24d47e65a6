# hse_core/models/core.py

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import models


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


KIND_CHOICES = (
    ("hazard", "Hazard"),
    ("license", "License"),
    ("training", "Training"),
)


# ============================================================
# User Roles
# ============================================================
class UserRole(TimeStampedModel):
    """
    Opaque role string held by a user, plus the department used for
    hazard visibility.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="hse_roles",
    )
    role = models.CharField(max_length=64)
    department = models.CharField(max_length=120, blank=True)

    class Meta:
        unique_together = ("user", "role")
        ordering = ["user_id", "role"]

    def __str__(self):
        return f"{self.user} → {self.role}"


# ============================================================
# Audit Log (CRUD + attachment events)
# ============================================================
class AuditLog(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    action = models.CharField(max_length=255)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"[{self.created_at}] {self.action}"


# ============================================================
# Transition audit (append-only)
# ============================================================
class TransitionAuditEntry(models.Model):
    """
    Immutable record of one lifecycle transition.

    Written only by the executor, inside the same transaction as the
    status change. Updates and deletes are refused.
    """

    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    object_id = models.PositiveBigIntegerField()
    action = models.CharField(max_length=32)
    from_status = models.CharField(max_length=32)
    to_status = models.CharField(max_length=32)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="hse_transitions",
    )
    actor_role = models.CharField(max_length=64, blank=True)
    reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["kind", "object_id"], name="hse_transition_kind_obj_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise PermissionDenied("Transition audit entries are append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("Transition audit entries are append-only.")

    def __str__(self):
        actor = self.actor.get_username() if self.actor else "system"
        return (
            f"{self.kind.upper()} {self.object_id}: "
            f"{self.from_status} → {self.to_status} ({self.action}) by {actor}"
        )


# ============================================================
# Attachment metadata (no file bytes)
# ============================================================
class AttachmentRecord(models.Model):
    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    object_id = models.PositiveBigIntegerField()

    file_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=120, blank=True)
    size_bytes = models.PositiveBigIntegerField()
    description = models.CharField(max_length=500, blank=True)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="hse_attachments",
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-uploaded_at", "-id"]
        indexes = [
            models.Index(fields=["kind", "object_id"], name="hse_attachment_kind_obj_idx"),
        ]

    def __str__(self):
        return f"{self.kind}:{self.object_id} {self.file_name}"
