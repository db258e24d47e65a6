# hse_core/tasks.py
from __future__ import annotations

from celery import shared_task

from hse_core.workflows.expiry import expire_due_licenses


@shared_task
def expire_licenses(limit: int | None = None) -> int:
    return expire_due_licenses(limit=limit)
