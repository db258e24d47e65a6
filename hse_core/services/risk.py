# hse_core/services/risk.py
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from hse_core.cache import invalidate_summary
from hse_core.models import Hazard, RiskAssessment
from hse_core.workflows.tables import HAZARD_LIFECYCLE

logger = logging.getLogger(__name__)


def record_risk_assessment(
    *,
    hazard: Hazard,
    assessor,
    probability_score: int,
    severity_score: int,
    assessment_date=None,
    notes: str = "",
) -> RiskAssessment:
    """
    Make a new assessment the hazard's current one.

    The previous current assessment is kept but deactivated, so exactly one
    assessment per hazard is authoritative.
    """
    if hazard.status in HAZARD_LIFECYCLE.terminal:
        raise ValidationError(
            {"status": f"Hazard is '{hazard.status}'; reassess it before recording a new assessment."}
        )

    errors = {}
    for name, value in (("probability_score", probability_score), ("severity_score", severity_score)):
        if not isinstance(value, int) or not 1 <= value <= 5:
            errors[name] = "Must be an integer between 1 and 5."
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        locked = Hazard.objects.select_for_update().get(pk=hazard.pk)
        RiskAssessment.objects.filter(hazard=locked, is_active=True).update(is_active=False)

        assessment = RiskAssessment.objects.create(
            hazard=locked,
            assessor=assessor,
            probability_score=probability_score,
            severity_score=severity_score,
            assessment_date=assessment_date or timezone.localdate(),
            notes=notes or "",
        )
        Hazard.objects.filter(pk=locked.pk).update(
            current_risk_assessment=assessment,
            updated_at=timezone.now(),
        )

    invalidate_summary("hazard")
    logger.info(
        "Hazard %s assessed: score=%s level=%s",
        hazard.pk,
        assessment.risk_score,
        assessment.get_risk_level_display(),
    )
    return assessment
