# hse_core/tests/test_api_workflows.py
import pytest

from hse_core.models import TransitionAuditEntry


def _transition(client, kind, pk, payload):
    return client.post(
        f"/hse/workflows/{kind}/{pk}/transition/",
        payload,
        format="json",
        secure=True,
    )


@pytest.mark.django_db
def test_allowed_actions_depend_on_role(api_client, license_manager, employee, user_admin, license_factory):
    lic = license_factory(status="ACTIVE")

    assert api_client.login(username="employee", password="pass123") is True
    resp = api_client.get(f"/hse/workflows/license/{lic.id}/allowed/", secure=True)
    assert resp.status_code == 200
    body = resp.json()
    assert body["current"] == "ACTIVE"
    assert body["allowed"] == []
    assert body["roles"] == ["EMPLOYEE"]
    api_client.logout()

    assert api_client.login(username="license_manager", password="pass123") is True
    resp = api_client.get(f"/hse/workflows/licenses/{lic.id}/allowed/", secure=True)
    assert resp.status_code == 200
    assert set(resp.json()["allowed"]) == {"suspend", "revoke", "renew"}
    assert resp.json()["capabilities"]["can_edit"] is False
    api_client.logout()

    assert api_client.login(username="admin", password="pass123") is True
    resp = api_client.get(f"/hse/workflows/license/{lic.id}/allowed/", secure=True)
    assert set(resp.json()["allowed"]) == {"suspend", "revoke", "renew"}
    assert "expire" not in resp.json()["allowed"]


@pytest.mark.django_db
def test_transition_endpoint_applies_and_audits(api_client, license_manager, license_factory):
    lic = license_factory(status="APPROVED")
    assert api_client.login(username="license_manager", password="pass123") is True

    resp = _transition(api_client, "license", lic.id, {"action": "activate"})
    assert resp.status_code == 200, resp.content
    body = resp.json()
    assert body["from_status"] == "APPROVED"
    assert body["to_status"] == "ACTIVE"
    assert body["current"] == "ACTIVE"

    entry = TransitionAuditEntry.objects.get(pk=body["audit_id"])
    assert entry.actor_id == license_manager.id

    lic.refresh_from_db()
    assert lic.status == "ACTIVE"


@pytest.mark.django_db
def test_illegal_transition_returns_allowed_actions(api_client, user_admin, license_factory):
    lic = license_factory()
    assert api_client.login(username="admin", password="pass123") is True

    resp = _transition(api_client, "license", lic.id, {"action": "approve"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["current_status"] == "DRAFT"
    assert body["allowed_actions"] == ["submit"]


@pytest.mark.django_db
def test_missing_reason_is_400_with_field(api_client, license_manager, license_factory):
    lic = license_factory(status="ACTIVE")
    assert api_client.login(username="license_manager", password="pass123") is True

    resp = _transition(api_client, "license", lic.id, {"action": "revoke", "reason": ""})
    assert resp.status_code == 400
    assert "reason" in resp.json()


@pytest.mark.django_db
def test_role_violation_is_403(api_client, employee, training_factory):
    training = training_factory(status="SCHEDULED")
    assert api_client.login(username="employee", password="pass123") is True

    resp = _transition(api_client, "training", training.id, {"action": "cancel", "reason": "Rain"})
    assert resp.status_code == 403
    training.refresh_from_db()
    assert training.status == "SCHEDULED"


@pytest.mark.django_db
def test_expected_status_conflict_is_409(api_client, license_manager, license_factory):
    lic = license_factory(status="ACTIVE")
    assert api_client.login(username="license_manager", password="pass123") is True

    resp = _transition(
        api_client,
        "license",
        lic.id,
        {"action": "suspend", "reason": "Audit", "expected_status": "APPROVED"},
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["current_status"] == "ACTIVE"
    assert body["retryable"] is True


@pytest.mark.django_db
def test_unknown_kind_and_object(api_client, user_admin):
    assert api_client.login(username="admin", password="pass123") is True

    assert _transition(api_client, "incident", 1, {"action": "close"}).status_code == 404
    assert _transition(api_client, "license", 987654, {"action": "submit"}).status_code == 404


@pytest.mark.django_db
def test_missing_action_is_400(api_client, user_admin, license_factory):
    lic = license_factory()
    assert api_client.login(username="admin", password="pass123") is True
    assert _transition(api_client, "license", lic.id, {}).status_code == 400


@pytest.mark.django_db
def test_unauthenticated_requests_are_rejected(api_client, license_factory):
    lic = license_factory()

    resp = _transition(api_client, "license", lic.id, {"action": "submit"})
    assert resp.status_code in (401, 403)

    resp = api_client.get(f"/hse/workflows/license/{lic.id}/allowed/", secure=True)
    assert resp.status_code in (401, 403)

    lic.refresh_from_db()
    assert lic.status == "DRAFT"


@pytest.mark.django_db
def test_audit_trail_is_oldest_first(api_client, license_manager, license_factory):
    lic = license_factory(status="APPROVED")
    assert api_client.login(username="license_manager", password="pass123") is True

    _transition(api_client, "license", lic.id, {"action": "activate"})
    _transition(api_client, "license", lic.id, {"action": "suspend", "reason": "Spill"})
    _transition(api_client, "license", lic.id, {"action": "reactivate"})

    resp = api_client.get(f"/hse/workflows/license/{lic.id}/audit-trail/", secure=True)
    assert resp.status_code == 200
    entries = resp.json()["entries"]
    assert [e["action"] for e in entries] == ["activate", "suspend", "reactivate"]
    assert entries[1]["reason"] == "Spill"
    assert entries[0]["actor"]["username"] == "license_manager"


@pytest.mark.django_db
def test_audit_trail_outlives_the_entity(api_client, user_admin, license_factory):
    lic = license_factory()
    assert api_client.login(username="admin", password="pass123") is True
    _transition(api_client, "license", lic.id, {"action": "submit"})

    pk = lic.id
    lic.delete()

    resp = api_client.get(f"/hse/workflows/license/{pk}/audit-trail/", secure=True)
    assert resp.status_code == 200
    assert len(resp.json()["entries"]) == 1


@pytest.mark.django_db
def test_definition_endpoints(api_client, employee):
    assert api_client.login(username="employee", password="pass123") is True

    resp = api_client.get("/hse/workflows/", secure=True)
    assert resp.status_code == 200
    assert set(resp.json()) == {"hazard", "license", "training"}

    resp = api_client.get("/hse/workflows/trainings/", secure=True)
    assert resp.status_code == 200
    assert resp.json()["initial"] == "DRAFT"

    assert api_client.get("/hse/workflows/incident/", secure=True).status_code == 404


@pytest.mark.django_db
def test_dashboard_endpoint(api_client, employee, license_factory):
    license_factory()
    assert api_client.login(username="employee", password="pass123") is True

    resp = api_client.get("/hse/dashboard/license/", secure=True)
    assert resp.status_code == 200
    body = resp.json()
    assert body["cached"] is True
    assert body["summary"]["total_count"] == 1

    resp = api_client.get("/hse/dashboard/license/?include_audit_trail=true", secure=True)
    assert resp.json()["cached"] is False

    assert api_client.get("/hse/dashboard/incident/", secure=True).status_code == 404


@pytest.mark.django_db
def test_whoami_reports_roles(api_client, safety_officer):
    assert api_client.login(username="safety_officer", password="pass123") is True
    resp = api_client.get("/hse/whoami/", secure=True)
    assert resp.status_code == 200
    body = resp.json()
    assert body["effective_roles"] == ["SAFETY_OFFICER"]
    assert body["primary_role"] == "SAFETY_OFFICER"
    assert body["roles"] == [{"role": "SAFETY_OFFICER", "department": "Operations"}]
