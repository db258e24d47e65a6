# hse_core/tests/conftest.py

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Any, Callable, Optional

import pytest
from django.contrib.auth import authenticate, get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from hse_core.choices import HazardCategory, LicenseType
from hse_core.models import Hazard, License, Training, UserRole
from hse_core.signals import set_current_user


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


class AuthAPIClient(APIClient):
    """
    Test client that uses force_authenticate for predictable DRF auth.
    """

    _user = None

    def login(self, username: str, password: str, **kwargs) -> bool:  # type: ignore[override]
        user = authenticate(username=username, password=password)
        if not user:
            return False
        self.force_authenticate(user=user)
        self._user = user
        return True

    def logout(self) -> None:  # type: ignore[override]
        # force_authenticate(user=None) would call self.logout() again
        super().logout()
        self.handler._force_user = None
        self.handler._force_token = None
        self._user = None


@pytest.fixture(autouse=True)
def _plain_http(settings):
    # SecurityMiddleware would otherwise redirect test requests to https://testserver/
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.SECURE_HSTS_SECONDS = 0


@pytest.fixture(autouse=True)
def _fresh_state():
    # Summaries are cached across requests and the signal user is thread-local
    cache.clear()
    set_current_user(None)
    yield
    set_current_user(None)


@pytest.fixture
def api_client() -> AuthAPIClient:
    return AuthAPIClient()


def _make_user(username: str, *, role: Optional[str] = None, department: str = "", superuser: bool = False):
    User = get_user_model()
    user, _ = User.objects.get_or_create(
        username=username,
        defaults={"is_staff": superuser, "is_superuser": superuser},
    )
    # Always ensure password works even if user already existed
    user.set_password("pass123")
    user.save(update_fields=["password"])
    if role:
        UserRole.objects.get_or_create(user=user, role=role, defaults={"department": department})
    return user


@pytest.fixture
def user_admin(db):
    return _make_user("admin", superuser=True)


@pytest.fixture
def safety_manager(db):
    return _make_user("safety_manager", role="SAFETY_MANAGER", department="HSE")


@pytest.fixture
def safety_officer(db):
    return _make_user("safety_officer", role="SAFETY_OFFICER", department="Operations")


@pytest.fixture
def license_manager(db):
    return _make_user("license_manager", role="LICENSE_MANAGER", department="Compliance")


@pytest.fixture
def compliance_officer(db):
    return _make_user("compliance_officer", role="COMPLIANCE_OFFICER", department="Compliance")


@pytest.fixture
def training_manager(db):
    return _make_user("training_manager", role="TRAINING_MANAGER", department="HR")


@pytest.fixture
def employee(db):
    return _make_user("employee", role="EMPLOYEE", department="Operations")


@pytest.fixture
def other_employee(db):
    return _make_user("other_employee", role="EMPLOYEE", department="Logistics")


@pytest.fixture
def readonly_user(db):
    return _make_user("viewer", role="READONLY")


# ===============================================================
# Entity factories
# ===============================================================

@pytest.fixture
def hazard_factory(db) -> Callable[..., Hazard]:
    """
    Status is set on insert only; later changes go through the executor
    or save(_workflow_bypass=True).
    """

    def _factory(*, status: str = "OPEN", reporter=None, **extra: Any) -> Hazard:
        kwargs = {
            "title": _rand("Hazard"),
            "category": HazardCategory.PHYSICAL,
            "status": status,
            "reporter": reporter,
            "created_by": reporter,
        }
        kwargs.update(extra)
        return Hazard.objects.create(**kwargs)

    return _factory


# Statuses only reachable through activate; rows created directly in them get an activation stamp
_ONCE_ACTIVE = {"ACTIVE", "SUSPENDED", "REVOKED", "EXPIRED"}


@pytest.fixture
def license_factory(db) -> Callable[..., License]:
    def _factory(*, status: str = "DRAFT", **extra: Any) -> License:
        today = timezone.localdate()
        kwargs = {
            "license_number": _rand("LIC"),
            "title": _rand("License"),
            "license_type": LicenseType.ENVIRONMENTAL,
            "issuing_authority": "National Environment Authority",
            "holder_name": "Site Operations",
            "issued_date": today - timedelta(days=30),
            "expiry_date": today + timedelta(days=335),
            "status": status,
        }
        if status in _ONCE_ACTIVE:
            kwargs["activated_at"] = timezone.now() - timedelta(days=30)
        kwargs.update(extra)
        return License.objects.create(**kwargs)

    return _factory


@pytest.fixture
def training_factory(db) -> Callable[..., Training]:
    def _factory(*, status: str = "DRAFT", **extra: Any) -> Training:
        start = timezone.now() + timedelta(days=7)
        kwargs = {
            "training_code": _rand("TRN"),
            "title": _rand("Training"),
            "status": status,
            "instructor_name": "J. Okello",
            "scheduled_start_date": start,
            "scheduled_end_date": start + timedelta(hours=4),
        }
        kwargs.update(extra)
        return Training.objects.create(**kwargs)

    return _factory
