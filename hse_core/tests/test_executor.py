# hse_core/tests/test_executor.py

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from hse_core.choices import MitigationStatus, ParticipantStatus, Priority
from hse_core.models import (
    License,
    LicenseRenewal,
    MitigationAction,
    RiskAssessment,
    TrainingParticipant,
    TransitionAuditEntry,
)
from hse_core.workflows import get_lifecycle, lookup
from hse_core.workflows.capabilities import evaluate
from hse_core.workflows.errors import (
    ConcurrentModification,
    Forbidden,
    InvalidTransition,
    NotFound,
    TransitionValidationError,
)
from hse_core.workflows.executor import execute_transition
from hse_core.workflows.expiry import expire_due_licenses


def _trail(kind, obj):
    return list(
        TransitionAuditEntry.objects.filter(kind=kind, object_id=obj.pk).order_by("created_at", "id")
    )


# ===============================================================
# Happy paths
# ===============================================================

@pytest.mark.django_db
def test_license_full_lifecycle_writes_one_entry_per_step(license_manager, license_factory):
    lic = license_factory()

    for action, target in [
        ("submit", "SUBMITTED"),
        ("review", "UNDER_REVIEW"),
        ("approve", "APPROVED"),
        ("activate", "ACTIVE"),
    ]:
        result = execute_transition(kind="license", object_id=lic.pk, action=action, actor=license_manager)
        assert result.to_status == target

    lic.refresh_from_db()
    assert lic.status == "ACTIVE"
    assert lic.submitted_at is not None
    assert lic.approved_at is not None
    assert lic.activated_at is not None

    trail = _trail("license", lic)
    assert [e.action for e in trail] == ["submit", "review", "approve", "activate"]
    assert trail[0].from_status == "DRAFT"
    assert trail[-1].to_status == "ACTIVE"
    assert all(e.actor_id == license_manager.pk for e in trail)
    assert all(e.actor_role == "LICENSE_MANAGER" for e in trail)


@pytest.mark.django_db
def test_result_carries_audit_id(user_admin, license_factory):
    lic = license_factory(status="APPROVED")
    result = execute_transition(kind="license", instance=lic, action="activate", actor=user_admin)

    entry = TransitionAuditEntry.objects.get(pk=result.audit_id)
    assert entry.object_id == lic.pk
    assert result.as_dict()["from_status"] == "APPROVED"
    assert entry.actor_role == "ADMINISTRATOR"


@pytest.mark.django_db
def test_suspend_records_reason_on_entity_and_trail(license_manager, license_factory):
    lic = license_factory(status="ACTIVE")
    execute_transition(
        kind="license",
        object_id=lic.pk,
        action="suspend",
        actor=license_manager,
        reason="  Emission limits exceeded ",
    )

    lic.refresh_from_db()
    assert lic.status == "SUSPENDED"
    assert lic.status_notes == "Emission limits exceeded"
    assert lic.suspended_at is not None
    assert _trail("license", lic)[0].reason == "Emission limits exceeded"


@pytest.mark.django_db
def test_renew_moves_expiry_and_records_renewal(compliance_officer, license_factory, settings):
    settings.HSE_RENEWAL_NOTICE_DAYS = 30
    today = timezone.localdate()
    lic = license_factory(status="EXPIRED", expiry_date=today - timedelta(days=3), renewal_period_days=365)

    execute_transition(kind="license", object_id=lic.pk, action="renew", actor=compliance_officer)

    lic.refresh_from_db()
    assert lic.status == "ACTIVE"
    assert lic.expiry_date == today + timedelta(days=365)
    assert lic.next_renewal_date == lic.expiry_date - timedelta(days=30)

    renewal = LicenseRenewal.objects.get(license=lic)
    assert renewal.previous_expiry_date == today - timedelta(days=3)
    assert renewal.new_expiry_date == lic.expiry_date
    assert renewal.renewed_by == compliance_officer


@pytest.mark.django_db
def test_reassess_clears_assessment_and_reopens(safety_officer, hazard_factory):
    hazard = hazard_factory(status="CLOSED")
    assessment = RiskAssessment.objects.create(hazard=hazard, probability_score=2, severity_score=2)
    hazard.current_risk_assessment = assessment
    hazard.save(update_fields=["current_risk_assessment"], _workflow_bypass=True)

    execute_transition(
        kind="hazard",
        instance=hazard,
        action="reopen",
        actor=safety_officer,
        reason="New exposure reported",
    )

    hazard.refresh_from_db()
    assessment.refresh_from_db()
    assert hazard.status == "OPEN"
    assert hazard.current_risk_assessment is None
    assert assessment.is_active is False
    assert _trail("hazard", hazard)[0].action == "reassess"


@pytest.mark.django_db
def test_start_and_cancel_update_participants(training_manager, employee, other_employee, training_factory):
    training = training_factory(status="SCHEDULED", min_participants=2)
    TrainingParticipant.objects.create(training=training, user=employee)
    TrainingParticipant.objects.create(training=training, user=other_employee)

    execute_transition(kind="training", object_id=training.pk, action="start", actor=training_manager)
    assert set(training.participants.values_list("status", flat=True)) == {ParticipantStatus.ATTENDING}

    execute_transition(
        kind="training",
        object_id=training.pk,
        action="cancel",
        actor=training_manager,
        reason="Instructor unavailable",
    )
    assert set(training.participants.values_list("status", flat=True)) == {ParticipantStatus.WITHDRAWN}


# ===============================================================
# Rejections
# ===============================================================

@pytest.mark.django_db
def test_illegal_action_is_invalid_even_for_admin(user_admin, license_factory):
    lic = license_factory()

    with pytest.raises(InvalidTransition) as exc:
        execute_transition(kind="license", object_id=lic.pk, action="approve", actor=user_admin)

    assert exc.value.current_status == "DRAFT"
    assert exc.value.allowed_actions == ["submit"]
    assert _trail("license", lic) == []


@pytest.mark.django_db
def test_legality_is_checked_before_role(employee, license_factory):
    lic = license_factory()
    with pytest.raises(InvalidTransition):
        execute_transition(kind="license", object_id=lic.pk, action="activate", actor=employee)


@pytest.mark.django_db
def test_wrong_role_is_forbidden(employee, license_factory):
    lic = license_factory(status="APPROVED")
    with pytest.raises(Forbidden):
        execute_transition(kind="license", object_id=lic.pk, action="activate", actor=employee)

    lic.refresh_from_db()
    assert lic.status == "APPROVED"


@pytest.mark.django_db
def test_expire_is_system_only(user_admin, license_factory):
    lic = license_factory(status="ACTIVE")

    with pytest.raises(Forbidden):
        execute_transition(kind="license", object_id=lic.pk, action="expire", actor=user_admin)

    result = execute_transition(kind="license", object_id=lic.pk, action="expire", actor=None)
    assert result.to_status == "EXPIRED"
    entry = TransitionAuditEntry.objects.get(pk=result.audit_id)
    assert entry.actor is None
    assert entry.actor_role == "SYSTEM"


@pytest.mark.django_db
def test_missing_reason_is_a_field_error(license_manager, license_factory):
    lic = license_factory(status="ACTIVE")

    for reason in ("", "   "):
        with pytest.raises(TransitionValidationError) as exc:
            execute_transition(
                kind="license",
                object_id=lic.pk,
                action="suspend",
                actor=license_manager,
                reason=reason,
            )
        assert "reason" in exc.value.fields

    lic.refresh_from_db()
    assert lic.status == "ACTIVE"


@pytest.mark.django_db
def test_missing_required_fields_are_reported(user_admin, training_factory):
    training = training_factory(instructor_name="", scheduled_start_date=None)

    with pytest.raises(TransitionValidationError) as exc:
        execute_transition(kind="training", object_id=training.pk, action="schedule", actor=user_admin)

    assert set(exc.value.fields) == {"instructor_name", "scheduled_start_date"}


@pytest.mark.django_db
def test_guard_blocks_close_with_pending_critical_action(safety_manager, hazard_factory):
    hazard = hazard_factory(status="RESOLVED")
    MitigationAction.objects.create(
        hazard=hazard,
        description="Replace guard rail",
        priority=Priority.CRITICAL,
        status=MitigationStatus.IN_PROGRESS,
        target_date=timezone.localdate(),
    )

    with pytest.raises(TransitionValidationError) as exc:
        execute_transition(kind="hazard", object_id=hazard.pk, action="close", actor=safety_manager)
    assert "mitigation_actions" in exc.value.fields


@pytest.mark.django_db
def test_minimum_participants_guard(training_manager, training_factory):
    training = training_factory(status="SCHEDULED", min_participants=1)
    with pytest.raises(TransitionValidationError) as exc:
        execute_transition(kind="training", object_id=training.pk, action="start", actor=training_manager)
    assert "participants" in exc.value.fields


@pytest.mark.django_db
def test_renew_requires_positive_period(license_manager, license_factory):
    lic = license_factory(status="ACTIVE", renewal_period_days=0)
    with pytest.raises(TransitionValidationError) as exc:
        execute_transition(kind="license", object_id=lic.pk, action="renew", actor=license_manager)
    assert "renewal_period_days" in exc.value.fields


@pytest.mark.django_db
def test_draft_that_expired_cannot_be_renewed_into_active(license_manager, license_factory):
    yesterday = timezone.localdate() - timedelta(days=1)
    lic = license_factory(issued_date=yesterday - timedelta(days=30), expiry_date=yesterday)

    assert expire_due_licenses() == 1
    lic.refresh_from_db()
    assert lic.status == "EXPIRED"
    assert lic.activated_at is None

    caps = evaluate(lic, license_manager)
    assert caps["can_renew"] is False
    assert "renew" not in caps["allowed_actions"]

    with pytest.raises(TransitionValidationError) as exc:
        execute_transition(kind="license", object_id=lic.pk, action="renew", actor=license_manager)
    assert "status" in exc.value.fields

    lic.refresh_from_db()
    assert lic.status == "EXPIRED"
    assert lic.submitted_at is None
    assert not LicenseRenewal.objects.filter(license=lic).exists()


@pytest.mark.django_db
def test_unknown_object_and_kind(user_admin):
    with pytest.raises(NotFound):
        execute_transition(kind="license", object_id=999999, action="submit", actor=user_admin)
    with pytest.raises(NotFound):
        execute_transition(kind="incident", object_id=1, action="close", actor=user_admin)


# ===============================================================
# Concurrency
# ===============================================================

@pytest.mark.django_db
def test_expected_status_mismatch_is_conflict(license_manager, license_factory):
    lic = license_factory(status="APPROVED")

    with pytest.raises(ConcurrentModification) as exc:
        execute_transition(
            kind="license",
            object_id=lic.pk,
            action="activate",
            actor=license_manager,
            expected_status="SUBMITTED",
        )
    assert exc.value.current_status == "APPROVED"
    assert exc.value.detail["retryable"] is True


@pytest.mark.django_db
def test_stale_instance_loses_the_race(license_manager, license_factory):
    lic = license_factory(status="APPROVED")
    stale = License.objects.get(pk=lic.pk)

    execute_transition(kind="license", object_id=lic.pk, action="activate", actor=license_manager)

    # stale copy still believes APPROVED; the compare-and-set must miss
    with pytest.raises(ConcurrentModification) as exc:
        execute_transition(kind="license", instance=stale, action="activate", actor=license_manager)

    assert exc.value.current_status == "ACTIVE"
    assert len(_trail("license", lic)) == 1


@pytest.mark.django_db
def test_failed_audit_write_rolls_back_status_and_effects(compliance_officer, license_factory):
    lic = license_factory(status="ACTIVE")
    old_expiry = lic.expiry_date

    with mock.patch("hse_core.workflows.executor.TransitionAuditEntry") as entry_cls:
        entry_cls.objects.create.side_effect = RuntimeError("disk full")
        with pytest.raises(RuntimeError):
            execute_transition(kind="license", object_id=lic.pk, action="renew", actor=compliance_officer)

    lic.refresh_from_db()
    assert lic.status == "ACTIVE"
    assert lic.expiry_date == old_expiry
    assert _trail("license", lic) == []
    assert not LicenseRenewal.objects.filter(license=lic).exists()


# ===============================================================
# Execution agrees with the capability flags
# ===============================================================

@pytest.mark.django_db
@pytest.mark.parametrize("username_fixture", ["license_manager", "employee"])
def test_execute_succeeds_iff_flag_is_set(request, username_fixture, license_factory):
    actor = request.getfixturevalue(username_fixture)
    lifecycle = get_lifecycle("license")

    for status in lifecycle.states:
        for action in lifecycle.actions:
            lic = license_factory(status=status)
            caps = evaluate(lic, actor)

            if caps.get(f"can_{action}"):
                result = execute_transition(
                    kind="license", instance=lic, action=action, actor=actor, reason="checked"
                )
                assert result.from_status == status
            elif lookup("license", status, action) is None:
                with pytest.raises(InvalidTransition):
                    execute_transition(kind="license", instance=lic, action=action, actor=actor, reason="checked")
            else:
                with pytest.raises(Forbidden):
                    execute_transition(kind="license", instance=lic, action=action, actor=actor, reason="checked")
