# hse_core/workflows/expiry.py
from __future__ import annotations

import logging
from typing import Optional

from django.utils import timezone

from hse_core.models import License

from .errors import ConcurrentModification, InvalidTransition
from .executor import execute_transition
from .tables import LICENSE_TERMINAL

logger = logging.getLogger(__name__)


def expire_due_licenses(today=None, *, limit: Optional[int] = None) -> int:
    """
    Run the system-only `expire` action for every non-terminal license whose
    expiry date has passed. Returns the number expired.

    Rows changed by someone else mid-run are skipped and picked up next run.
    """
    today = today or timezone.localdate()

    qs = (
        License.objects.filter(expiry_date__lt=today)
        .exclude(status__in=LICENSE_TERMINAL)
        .order_by("expiry_date", "id")
    )
    if limit:
        qs = qs[:limit]

    expired = 0
    for lic in qs.iterator():
        try:
            execute_transition(kind="license", instance=lic, action="expire", actor=None)
        except (ConcurrentModification, InvalidTransition) as exc:
            logger.info("License %s not expired: %s", lic.pk, exc.__class__.__name__)
            continue
        expired += 1

    logger.info("Expired %d license(s) due before %s", expired, today)
    return expired
