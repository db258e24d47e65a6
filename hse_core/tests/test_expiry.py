# hse_core/tests/test_expiry.py
from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from hse_core.models import License, TransitionAuditEntry
from hse_core.tasks import expire_licenses
from hse_core.workflows.expiry import expire_due_licenses


@pytest.fixture
def past_due(license_factory):
    yesterday = timezone.localdate() - timedelta(days=1)

    def _factory(status):
        return license_factory(
            status=status,
            issued_date=yesterday - timedelta(days=365),
            expiry_date=yesterday,
        )

    return _factory


@pytest.mark.django_db
def test_expires_only_past_due_non_terminal(past_due, license_factory):
    active = past_due("ACTIVE")
    suspended = past_due("SUSPENDED")
    revoked = past_due("REVOKED")
    current = license_factory(status="ACTIVE")
    due_today = license_factory(status="ACTIVE", expiry_date=timezone.localdate())

    assert expire_due_licenses() == 2

    statuses = dict(License.objects.values_list("pk", "status"))
    assert statuses[active.pk] == "EXPIRED"
    assert statuses[suspended.pk] == "EXPIRED"
    assert statuses[revoked.pk] == "REVOKED"
    assert statuses[current.pk] == "ACTIVE"
    assert statuses[due_today.pk] == "ACTIVE"

    entry = TransitionAuditEntry.objects.get(kind="license", object_id=active.pk)
    assert entry.action == "expire"
    assert entry.actor is None


@pytest.mark.django_db
def test_second_run_is_a_noop(past_due):
    past_due("ACTIVE")
    assert expire_due_licenses() == 1
    assert expire_due_licenses() == 0
    assert TransitionAuditEntry.objects.filter(action="expire").count() == 1


@pytest.mark.django_db
def test_limit(past_due):
    for _ in range(3):
        past_due("APPROVED")
    assert expire_due_licenses(limit=2) == 2
    assert License.objects.filter(status="EXPIRED").count() == 2


@pytest.mark.django_db
def test_management_command_and_task(past_due):
    past_due("DRAFT")
    past_due("ACTIVE")

    out = StringIO()
    call_command("expire_licenses", "--limit", "1", stdout=out)
    assert "Expired 1 license(s)." in out.getvalue()

    assert expire_licenses() == 1
    assert not License.objects.exclude(status="EXPIRED").exists()
