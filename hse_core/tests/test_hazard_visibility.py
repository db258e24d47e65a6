# hse_core/tests/test_hazard_visibility.py
import pytest
from django.utils import timezone

from hse_core.models import Hazard, MitigationAction
from hse_core.selectors import visible_hazards


@pytest.fixture
def hazards(hazard_factory, employee, other_employee):
    return {
        "own": hazard_factory(title="own", reporter=employee, reporter_department="Operations"),
        "department": hazard_factory(title="department", reporter_department="Operations"),
        "foreign": hazard_factory(title="foreign", reporter=other_employee, reporter_department="Logistics"),
    }


@pytest.mark.django_db
def test_employee_sees_own_and_department(hazards, employee):
    titles = set(visible_hazards(employee).values_list("title", flat=True))
    assert titles == {"own", "department"}


@pytest.mark.django_db
def test_assignee_sees_hazard(hazards, employee):
    MitigationAction.objects.create(
        hazard=hazards["foreign"],
        description="Re-route forklifts",
        assigned_to=employee,
        target_date=timezone.localdate(),
    )
    assert visible_hazards(employee).filter(pk=hazards["foreign"].pk).exists()


@pytest.mark.django_db
def test_managers_see_everything(hazards, safety_manager, user_admin):
    assert visible_hazards(safety_manager).count() == 3
    assert visible_hazards(user_admin).count() == 3


@pytest.mark.django_db
def test_list_endpoint_is_scoped(api_client, hazards, employee):
    assert api_client.login(username="employee", password="pass123") is True
    resp = api_client.get("/hse/hazards/", secure=True)

    assert resp.status_code == 200
    body = resp.json()
    assert sorted(h["title"] for h in body["items"]) == ["department", "own"]
    assert body["total_count"] == 2
    # dashboard numbers cover the whole table
    assert body["summary"]["total_count"] == 3


@pytest.mark.django_db
def test_private_hazard_is_404_by_default(api_client, hazards, employee):
    assert api_client.login(username="employee", password="pass123") is True
    pk = hazards["foreign"].pk

    assert api_client.get(f"/hse/hazards/{pk}/", secure=True).status_code == 404
    assert api_client.get(f"/hse/workflows/hazard/{pk}/allowed/", secure=True).status_code == 404
    assert api_client.get(f"/hse/workflows/hazard/{pk}/audit-trail/", secure=True).status_code == 404


@pytest.mark.django_db
def test_private_hazard_is_403_when_configured(api_client, hazards, employee, settings):
    settings.HSE_PRIVATE_HAZARD_NOT_FOUND = False
    assert api_client.login(username="employee", password="pass123") is True

    resp = api_client.get(f"/hse/hazards/{hazards['foreign'].pk}/", secure=True)
    assert resp.status_code == 403


@pytest.mark.django_db
def test_reporter_and_department_set_from_caller(api_client, employee):
    assert api_client.login(username="employee", password="pass123") is True

    resp = api_client.post(
        "/hse/hazards/",
        {"title": "Wet floor", "category": "PHYSICAL", "hazard_type": "SLIP", "severity": "MINOR"},
        format="json",
        secure=True,
    )
    assert resp.status_code == 201, resp.content
    hazard = Hazard.objects.get(pk=resp.json()["id"])
    assert hazard.status == "OPEN"
    assert hazard.reporter == employee
    assert hazard.reporter_department == "Operations"
    assert resp.json()["severity"] == "MINOR"


@pytest.mark.django_db
def test_reporter_cannot_be_supplied(api_client, employee, other_employee):
    assert api_client.login(username="employee", password="pass123") is True
    resp = api_client.post(
        "/hse/hazards/",
        {"title": "Spoofed", "category": "FIRE", "reporter": other_employee.pk},
        format="json",
        secure=True,
    )
    assert resp.status_code == 400
    assert "reporter" in resp.json()


@pytest.mark.django_db
def test_half_a_coordinate_is_rejected(api_client, employee):
    assert api_client.login(username="employee", password="pass123") is True
    resp = api_client.post(
        "/hse/hazards/",
        {"title": "Somewhere", "category": "FIRE", "latitude": 0.31},
        format="json",
        secure=True,
    )
    assert resp.status_code == 400
    assert "latitude" in resp.json()
