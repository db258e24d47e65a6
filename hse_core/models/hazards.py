# hse_core/models/hazards.py

from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from hse_core.choices import (
    MITIGATION_DONE,
    REVIEW_INTERVAL_MONTHS,
    HazardCategory,
    HazardType,
    MitigationStatus,
    MitigationType,
    Priority,
    RiskLevel,
    Severity,
    risk_level_for_score,
)
from hse_core.workflows.guards import WorkflowWriteGuardMixin
from hse_core.workflows.tables import HAZARD_OPEN, HAZARD_STATES

from .core import TimeStampedModel


# ============================================================
# Hazard
# ============================================================
class Hazard(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=32, choices=HazardCategory.choices)
    hazard_type = models.CharField(max_length=32, choices=HazardType.choices, default=HazardType.OTHER)

    location = models.CharField(max_length=255, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    status = models.CharField(
        max_length=32,
        choices=[(s, s.replace("_", " ").title()) for s in HAZARD_STATES],
        default=HAZARD_OPEN,
        editable=False,
        db_index=True,
    )
    severity = models.PositiveSmallIntegerField(choices=Severity.choices, default=Severity.MODERATE)

    identified_date = models.DateField(default=timezone.localdate, db_index=True)
    expected_resolution_date = models.DateField(null=True, blank=True)

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reported_hazards",
    )
    reporter_department = models.CharField(max_length=120, blank=True)

    current_risk_assessment = models.ForeignKey(
        "hse_core.RiskAssessment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    resolved_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    status_changed_at = models.DateTimeField(null=True, blank=True)
    status_notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="hazards_created",
    )

    class Meta:
        ordering = ["-identified_date", "-id"]

    def clean(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValidationError("Latitude and longitude must be provided together.")
        if self.expected_resolution_date and self.expected_resolution_date < self.identified_date:
            raise ValidationError("Expected resolution date cannot precede the identified date.")

    @property
    def reporter_name(self) -> str:
        if not self.reporter:
            return ""
        return self.reporter.get_full_name() or self.reporter.get_username()

    def __str__(self):
        return f"HZ-{self.pk} {self.title}"


# ============================================================
# Risk Assessment
# ============================================================
class RiskAssessment(TimeStampedModel):
    """
    One scored assessment of a hazard. Only one per hazard is active; older
    ones stay for history.
    """

    hazard = models.ForeignKey(
        Hazard,
        on_delete=models.CASCADE,
        related_name="risk_assessments",
    )
    assessor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="risk_assessments",
    )
    assessment_date = models.DateField(default=timezone.localdate)

    probability_score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    severity_score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    risk_score = models.PositiveSmallIntegerField(editable=False)
    risk_level = models.PositiveSmallIntegerField(choices=RiskLevel.choices, editable=False)

    next_review_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-assessment_date", "-id"]

    def save(self, *args, **kwargs):
        self.risk_score = int(self.probability_score) * int(self.severity_score)
        self.risk_level = risk_level_for_score(self.risk_score)
        if self.next_review_date is None:
            months = REVIEW_INTERVAL_MONTHS[self.risk_level]
            self.next_review_date = self.assessment_date + timedelta(days=30 * months)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"RA-{self.pk} hazard={self.hazard_id} score={self.risk_score}"


# ============================================================
# Mitigation Action
# ============================================================
class MitigationAction(TimeStampedModel):
    hazard = models.ForeignKey(
        Hazard,
        on_delete=models.CASCADE,
        related_name="mitigation_actions",
    )
    description = models.TextField()
    action_type = models.CharField(
        max_length=32,
        choices=MitigationType.choices,
        default=MitigationType.ADMINISTRATIVE,
    )
    priority = models.PositiveSmallIntegerField(choices=Priority.choices, default=Priority.MEDIUM)
    status = models.CharField(
        max_length=32,
        choices=MitigationStatus.choices,
        default=MitigationStatus.PLANNED,
    )

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="mitigation_actions",
    )
    target_date = models.DateField()
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["target_date", "id"]

    @property
    def is_overdue(self) -> bool:
        return self.target_date < timezone.localdate() and self.status not in MITIGATION_DONE

    def __str__(self):
        return f"MA-{self.pk} ({self.get_status_display()})"
