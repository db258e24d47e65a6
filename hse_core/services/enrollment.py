# hse_core/services/enrollment.py
from __future__ import annotations

from django.db import transaction
from rest_framework.exceptions import ValidationError

from hse_core.cache import invalidate_summary
from hse_core.choices import ParticipantStatus
from hse_core.models import Training, TrainingParticipant, UserRole
from hse_core.workflows.tables import TRAINING_LIFECYCLE


def enroll_participant(*, training: Training, user, due_date=None) -> TrainingParticipant:
    if training.status in TRAINING_LIFECYCLE.terminal:
        raise ValidationError(
            {"status": f"Cannot enroll participants in a {training.status.lower()} training."}
        )

    with transaction.atomic():
        locked = Training.objects.select_for_update().get(pk=training.pk)

        if TrainingParticipant.objects.filter(training=locked, user=user).exists():
            raise ValidationError({"user": "Participant is already enrolled in this training."})

        taken = TrainingParticipant.objects.filter(training=locked).exclude(
            status=ParticipantStatus.WITHDRAWN,
        ).count()
        if taken >= locked.max_participants:
            raise ValidationError({"participants": "Training has reached maximum participant capacity."})

        department = (
            UserRole.objects.filter(user=user)
            .exclude(department="")
            .values_list("department", flat=True)
            .first()
        )

        participant = TrainingParticipant.objects.create(
            training=locked,
            user=user,
            name=user.get_full_name() or user.get_username(),
            department=department or "",
            due_date=due_date,
        )

    invalidate_summary("training")
    return participant
