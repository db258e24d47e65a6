# hse_core/tests/test_license_attachments.py
from datetime import timedelta

import pytest
from django.utils import timezone

from hse_core.models import AttachmentRecord, AuditLog, License
from hse_core.services.attachments import AttachmentError, record_attachments, validate_metadata


def _payload(number="PRM-100", **extra):
    today = timezone.localdate()
    data = {
        "license_number": number,
        "title": "Hot work permit",
        "license_type": "SAFETY",
        "issuing_authority": "Fire Department",
        "holder_name": "Maintenance",
        "issued_date": str(today),
        "expiry_date": str(today + timedelta(days=180)),
    }
    data.update(extra)
    return data


@pytest.mark.django_db
def test_create_with_good_and_bad_attachments_still_201(api_client, license_manager, settings):
    settings.HSE_ATTACHMENT_MAX_BYTES = 1024
    assert api_client.login(username="license_manager", password="pass123") is True

    payload = _payload(
        attachments=[
            {"file_name": "permit.pdf", "size_bytes": 512, "content_type": "application/pdf"},
            {"file_name": "huge.pdf", "size_bytes": 4096},
            {"file_name": "script.exe", "size_bytes": 10},
        ]
    )
    resp = api_client.post("/hse/licenses/", payload, format="json", secure=True)

    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["result"] == "partial"
    assert [a["file_name"] for a in body["attachments"]] == ["permit.pdf"]
    assert [w["code"] for w in body["warnings"]] == ["FILE_TOO_LARGE", "INVALID_TYPE"]
    assert [w["index"] for w in body["warnings"]] == ["1", "2"]

    lic = License.objects.get(license_number="PRM-100")
    assert lic.status == "DRAFT"
    assert lic.created_by == license_manager
    assert AttachmentRecord.objects.filter(kind="license", object_id=lic.pk).count() == 1


@pytest.mark.django_db
def test_create_without_attachments_has_no_attachment_keys(api_client, license_manager):
    assert api_client.login(username="license_manager", password="pass123") is True

    resp = api_client.post("/hse/licenses/", _payload("PRM-101"), format="json", secure=True)
    assert resp.status_code == 201
    body = resp.json()
    assert "warnings" not in body
    assert body["capabilities"]["can_submit"] is True


@pytest.mark.django_db
def test_attachment_endpoint_on_existing_license(api_client, license_manager, license_factory):
    lic = license_factory()
    assert api_client.login(username="license_manager", password="pass123") is True

    url = f"/hse/licenses/{lic.id}/attachments/"
    resp = api_client.post(url, {"file_name": "inspection.jpg", "size_bytes": 2048}, format="json", secure=True)
    assert resp.status_code == 201
    assert resp.json()["result"] == "success"

    resp = api_client.post(url, {"attachments": [{"file_name": "", "size_bytes": 5}]}, format="json", secure=True)
    assert resp.status_code == 400
    assert resp.json()["warnings"][0]["code"] == "MISSING_NAME"

    resp = api_client.get(url, secure=True)
    assert resp.status_code == 200
    assert [a["file_name"] for a in resp.json()] == ["inspection.jpg"]


@pytest.mark.django_db
def test_each_recorded_attachment_is_audited(license_factory, employee):
    lic = license_factory()
    outcome = record_attachments(
        kind="license",
        object_id=lic.pk,
        items=[{"name": "a.pdf", "size": "100"}, {"file_name": "b.pdf", "size_bytes": 0}],
        user=employee,
    )

    assert len(outcome.recorded) == 1
    assert outcome.recorded[0].uploaded_by == employee
    assert outcome.warnings[0]["code"] == "EMPTY_FILE"
    assert AuditLog.objects.filter(action=f"ATTACH LICENSE {lic.pk}", user=employee).count() == 1


def test_metadata_validation_messages():
    with pytest.raises(AttachmentError) as exc:
        validate_metadata({"file_name": "notes.txt", "size_bytes": "lots"})
    assert exc.value.error_code == "INVALID_SIZE"

    clean = validate_metadata({"file_name": " report.PDF ", "size_bytes": 10})
    assert clean["file_name"] == "report.PDF"
    assert clean["content_type"] == ""
