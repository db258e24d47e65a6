# hse_core/tests/test_capabilities.py

from unittest import mock

import pytest
from rest_framework.test import APIRequestFactory

from hse_core.models import Hazard, RiskAssessment
from hse_core.serializers import LicenseSerializer
from hse_core.workflows.capabilities import can_delete, can_edit, decide, evaluate
from hse_core.workflows.executor import execute_transition
from hse_core.workflows.roles import user_roles


@pytest.mark.django_db
def test_admin_sees_every_legal_action(user_admin, license_factory):
    lic = license_factory(status="SUBMITTED")
    caps = evaluate(lic, user_admin)

    assert caps["can_review"] is True
    assert caps["can_approve"] is True
    assert caps["can_reject"] is True
    # illegal from SUBMITTED regardless of role
    assert caps["can_activate"] is False
    assert "can_expire" not in caps
    assert caps["allowed_actions"] == ["review", "approve", "reject"]


@pytest.mark.django_db
def test_role_without_rule_gets_no_actions(employee, license_factory):
    lic = license_factory(status="APPROVED")
    caps = evaluate(lic, employee)
    assert caps["can_activate"] is False
    assert caps["allowed_actions"] == []


@pytest.mark.django_db
def test_owner_can_submit_own_draft(employee, license_factory):
    lic = license_factory(created_by=employee)
    assert evaluate(lic, employee)["can_submit"] is True


@pytest.mark.django_db
def test_non_owner_employee_cannot_submit(employee, other_employee, license_factory):
    lic = license_factory(created_by=other_employee)
    assert evaluate(lic, employee)["can_submit"] is False


@pytest.mark.django_db
def test_missing_required_field_turns_flag_off(safety_officer, hazard_factory):
    hazard = hazard_factory()
    decision = decide(hazard, "assess", safety_officer)

    assert decision.legal
    assert decision.role_ok
    assert "current_risk_assessment" in decision.errors
    assert evaluate(hazard, safety_officer)["can_assess"] is False


@pytest.mark.django_db
def test_flag_on_once_requirement_met(safety_officer, hazard_factory):
    hazard = hazard_factory()
    assessment = RiskAssessment.objects.create(
        hazard=hazard,
        probability_score=3,
        severity_score=4,
    )
    hazard.current_risk_assessment = assessment

    assert evaluate(hazard, safety_officer)["can_assess"] is True


@pytest.mark.django_db
def test_close_is_safety_manager_only(safety_manager, safety_officer, hazard_factory):
    hazard = hazard_factory(status="RESOLVED")
    assert evaluate(hazard, safety_manager)["can_close"] is True
    assert evaluate(hazard, safety_officer)["can_close"] is False


@pytest.mark.django_db
def test_edit_and_delete_flags_follow_status(license_manager, license_factory):
    draft = license_factory()
    active = license_factory(status="ACTIVE")

    assert can_edit(draft, license_manager) is True
    assert can_delete(draft, license_manager) is True

    assert can_edit(active, license_manager) is False
    assert can_delete(active, license_manager) is False


@pytest.mark.django_db
def test_readonly_user_gets_nothing(readonly_user, license_factory):
    lic = license_factory(created_by=readonly_user)
    caps = evaluate(lic, readonly_user)
    assert caps["can_edit"] is False
    assert caps["can_delete"] is False
    assert caps["allowed_actions"] == []


@pytest.mark.django_db
def test_explicit_roles_override_stored_roles(employee, training_factory):
    training = training_factory(status="SCHEDULED")
    assert evaluate(training, employee)["can_cancel"] is False
    assert evaluate(training, employee, roles=["training coordinator"])["can_cancel"] is True


@pytest.mark.django_db
def test_reopened_hazard_keeps_its_history(api_client, safety_manager, hazard_factory):
    hazard = hazard_factory(status="CLOSED")
    execute_transition(
        kind="hazard",
        object_id=hazard.pk,
        action="reassess",
        actor=safety_manager,
        reason="Recurring leak",
    )
    hazard.refresh_from_db()

    assert hazard.status == "OPEN"
    assert can_edit(hazard, safety_manager) is True
    assert can_delete(hazard, safety_manager) is False
    assert evaluate(hazard, safety_manager)["can_delete"] is False

    assert api_client.login(username="safety_manager", password="pass123") is True
    resp = api_client.delete(f"/hse/hazards/{hazard.id}/", secure=True)
    assert resp.status_code == 403
    assert Hazard.objects.filter(pk=hazard.pk).exists()


@pytest.mark.django_db
def test_untouched_initial_record_is_still_deletable(api_client, safety_manager, hazard_factory):
    hazard = hazard_factory()
    assert can_delete(hazard, safety_manager) is True

    assert api_client.login(username="safety_manager", password="pass123") is True
    resp = api_client.delete(f"/hse/hazards/{hazard.id}/", secure=True)
    assert resp.status_code == 204


@pytest.mark.django_db
def test_list_resolves_roles_once_per_response(api_client, license_manager, license_factory):
    for _ in range(3):
        license_factory()
    assert api_client.login(username="license_manager", password="pass123") is True

    with mock.patch("hse_core.workflows.capabilities.user_roles", wraps=user_roles) as per_row:
        resp = api_client.get("/hse/licenses/", secure=True)

    assert resp.status_code == 200
    items = resp.json()["items"]
    assert len(items) == 3
    assert all(item["capabilities"]["can_submit"] is True for item in items)
    assert per_row.call_count == 0


@pytest.mark.django_db
def test_serializer_without_roles_in_context_looks_them_up_once(license_manager, license_factory):
    licenses = [license_factory() for _ in range(3)]
    request = APIRequestFactory().get("/hse/licenses/")
    request.user = license_manager

    with mock.patch("hse_core.serializers.user_roles", wraps=user_roles) as lookup_roles:
        data = LicenseSerializer(licenses, many=True, context={"request": request}).data

    assert [row["capabilities"]["can_delete"] for row in data] == [True, True, True]
    assert lookup_roles.call_count == 1
