# hse_core/models/licenses.py

from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from hse_core.choices import (
    CONDITION_DONE,
    ConditionStatus,
    LicenseType,
    Priority,
    RiskLevel,
)
from hse_core.workflows.guards import WorkflowWriteGuardMixin
from hse_core.workflows.tables import LICENSE_DRAFT, LICENSE_LIFECYCLE, LICENSE_STATES

from .core import TimeStampedModel


# ============================================================
# License / Permit
# ============================================================
class License(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"
    LOCKED_FIELDS = LICENSE_LIFECYCLE.locked_fields

    license_number = models.CharField(max_length=100, unique=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    license_type = models.CharField(max_length=32, choices=LicenseType.choices)

    status = models.CharField(
        max_length=32,
        choices=[(s, s.replace("_", " ").title()) for s in LICENSE_STATES],
        default=LICENSE_DRAFT,
        editable=False,
        db_index=True,
    )
    priority = models.PositiveSmallIntegerField(choices=Priority.choices, default=Priority.MEDIUM)
    risk_level = models.PositiveSmallIntegerField(choices=RiskLevel.choices, default=RiskLevel.MEDIUM)

    issuing_authority = models.CharField(max_length=200)
    holder = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="held_licenses",
    )
    holder_name = models.CharField(max_length=200)
    department = models.CharField(max_length=120, blank=True)

    issued_date = models.DateField()
    expiry_date = models.DateField(db_index=True)

    renewal_required = models.BooleanField(default=True)
    renewal_period_days = models.PositiveIntegerField(default=90)
    next_renewal_date = models.DateField(null=True, blank=True)

    scope = models.TextField(blank=True)
    is_critical_license = models.BooleanField(default=False)

    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    suspended_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    status_changed_at = models.DateTimeField(null=True, blank=True)
    status_notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="licenses_created",
    )

    class Meta:
        ordering = ["-created_at", "-id"]

    def clean(self):
        if self.issued_date and self.expiry_date and self.expiry_date <= self.issued_date:
            raise ValidationError("Expiry date must be after the issued date.")

    def save(self, *args, **kwargs):
        if self.pk is None and self.next_renewal_date is None and self.renewal_required and self.expiry_date:
            notice = getattr(settings, "HSE_RENEWAL_NOTICE_DAYS", 30)
            self.next_renewal_date = self.expiry_date - timedelta(days=notice)
        return super().save(*args, **kwargs)

    @property
    def days_until_expiry(self) -> int:
        return (self.expiry_date - timezone.localdate()).days

    @property
    def is_renewal_due(self) -> bool:
        return bool(self.next_renewal_date and self.next_renewal_date <= timezone.localdate())

    def __str__(self):
        return f"{self.license_number} {self.title}"


# ============================================================
# License Condition
# ============================================================
class LicenseCondition(TimeStampedModel):
    license = models.ForeignKey(
        License,
        on_delete=models.CASCADE,
        related_name="conditions",
    )
    condition_type = models.CharField(max_length=100, blank=True)
    description = models.TextField()
    is_mandatory = models.BooleanField(default=True)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=32,
        choices=ConditionStatus.choices,
        default=ConditionStatus.PENDING,
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    responsible_person = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["due_date", "id"]

    @property
    def is_overdue(self) -> bool:
        return bool(
            self.due_date
            and self.due_date < timezone.localdate()
            and self.status not in CONDITION_DONE
        )

    def __str__(self):
        return f"LC-{self.pk} ({self.get_status_display()})"


# ============================================================
# License Renewal history
# ============================================================
class LicenseRenewal(models.Model):
    license = models.ForeignKey(
        License,
        on_delete=models.CASCADE,
        related_name="renewals",
    )
    previous_expiry_date = models.DateField()
    new_expiry_date = models.DateField()
    renewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="license_renewals",
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.license_id}: {self.previous_expiry_date} → {self.new_expiry_date}"
