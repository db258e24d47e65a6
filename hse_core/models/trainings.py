# hse_core/models/trainings.py

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from hse_core.choices import (
    PARTICIPANT_DONE,
    DeliveryMethod,
    ParticipantStatus,
    Priority,
    TrainingCategory,
    TrainingType,
)
from hse_core.workflows.guards import WorkflowWriteGuardMixin
from hse_core.workflows.tables import TRAINING_DRAFT, TRAINING_STATES

from .core import TimeStampedModel


# ============================================================
# Training
# ============================================================
class Training(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"

    training_code = models.CharField(max_length=50, unique=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    training_type = models.CharField(max_length=32, choices=TrainingType.choices, default=TrainingType.SAFETY)
    category = models.CharField(
        max_length=32,
        choices=TrainingCategory.choices,
        default=TrainingCategory.MANDATORY,
    )

    status = models.CharField(
        max_length=32,
        choices=[(s, s.replace("_", " ").title()) for s in TRAINING_STATES],
        default=TRAINING_DRAFT,
        editable=False,
        db_index=True,
    )
    priority = models.PositiveSmallIntegerField(choices=Priority.choices, default=Priority.MEDIUM)
    delivery_method = models.CharField(
        max_length=32,
        choices=DeliveryMethod.choices,
        default=DeliveryMethod.CLASSROOM,
    )

    scheduled_start_date = models.DateTimeField(null=True, blank=True, db_index=True)
    scheduled_end_date = models.DateTimeField(null=True, blank=True)
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)

    venue = models.CharField(max_length=255, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    instructor_name = models.CharField(max_length=200, blank=True)

    min_participants = models.PositiveIntegerField(default=1)
    max_participants = models.PositiveIntegerField(default=20)

    status_changed_at = models.DateTimeField(null=True, blank=True)
    status_notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="trainings_created",
    )

    class Meta:
        ordering = ["-scheduled_start_date", "-id"]

    def clean(self):
        if self.min_participants > self.max_participants:
            raise ValidationError("Minimum participants cannot exceed maximum participants.")

    @property
    def available_spots(self) -> int:
        taken = self.participants.exclude(status=ParticipantStatus.WITHDRAWN).count()
        return max(0, self.max_participants - taken)

    def __str__(self):
        return f"{self.training_code} {self.title}"


# ============================================================
# Training Participant
# ============================================================
class TrainingParticipant(TimeStampedModel):
    training = models.ForeignKey(
        Training,
        on_delete=models.CASCADE,
        related_name="participants",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="training_enrolments",
    )
    name = models.CharField(max_length=200, blank=True)
    department = models.CharField(max_length=120, blank=True)
    status = models.CharField(
        max_length=32,
        choices=ParticipantStatus.choices,
        default=ParticipantStatus.ENROLLED,
    )
    due_date = models.DateField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ("training", "user")
        ordering = ["training_id", "id"]

    @property
    def is_overdue(self) -> bool:
        return bool(
            self.due_date
            and self.due_date < timezone.localdate()
            and self.status not in PARTICIPANT_DONE
        )

    def __str__(self):
        return f"{self.training_id}:{self.user_id} ({self.get_status_display()})"
