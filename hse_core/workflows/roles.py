# hse_core/workflows/roles.py
from __future__ import annotations

from typing import Dict, FrozenSet


# ===============================================================
# Canonical roles
# ===============================================================

ADMINISTRATOR = "ADMINISTRATOR"
SAFETY_MANAGER = "SAFETY_MANAGER"
SAFETY_OFFICER = "SAFETY_OFFICER"
LICENSE_MANAGER = "LICENSE_MANAGER"
COMPLIANCE_OFFICER = "COMPLIANCE_OFFICER"
TRAINING_MANAGER = "TRAINING_MANAGER"
EMPLOYEE = "EMPLOYEE"
READONLY = "READONLY"

# Actor used by scheduled jobs (license expiry)
SYSTEM = "SYSTEM"

CANONICAL_ROLES: FrozenSet[str] = frozenset(
    {
        ADMINISTRATOR,
        SAFETY_MANAGER,
        SAFETY_OFFICER,
        LICENSE_MANAGER,
        COMPLIANCE_OFFICER,
        TRAINING_MANAGER,
        EMPLOYEE,
        READONLY,
    }
)

ROLE_ALIASES: Dict[str, str] = {
    "ADMIN": ADMINISTRATOR,
    "ADMINISTRATOR": ADMINISTRATOR,
    "SYSTEM_ADMIN": ADMINISTRATOR,
    "SUPERUSER": ADMINISTRATOR,
    "SUPERADMIN": ADMINISTRATOR,
    "SAFETY_MANAGER": SAFETY_MANAGER,
    "HSE_MANAGER": SAFETY_MANAGER,
    "SAFETY_OFFICER": SAFETY_OFFICER,
    "HSE_OFFICER": SAFETY_OFFICER,
    "LICENSE_MANAGER": LICENSE_MANAGER,
    "PERMIT_MANAGER": LICENSE_MANAGER,
    "COMPLIANCE_OFFICER": COMPLIANCE_OFFICER,
    "TRAINING_MANAGER": TRAINING_MANAGER,
    "TRAINING_COORDINATOR": TRAINING_MANAGER,
    "EMPLOYEE": EMPLOYEE,
    "STAFF": EMPLOYEE,
    "READONLY": READONLY,
    "VIEWER": READONLY,
}


def normalize_role(value: str) -> str:
    raw = str(value or "").strip().upper().replace(" ", "_").replace("-", "_")
    return ROLE_ALIASES.get(raw, raw or READONLY)


def user_roles(user) -> FrozenSet[str]:
    """
    Normalized roles held by a user.

    Superusers are always ADMINISTRATOR. A missing user is the system actor.
    Anonymous users hold nothing.
    """
    if user is None:
        return frozenset({SYSTEM})

    if not getattr(user, "is_authenticated", False):
        return frozenset()

    if getattr(user, "is_superuser", False):
        return frozenset({ADMINISTRATOR})

    from hse_core.models import UserRole

    raw = UserRole.objects.filter(user=user).values_list("role", flat=True)
    return frozenset(normalize_role(r) for r in raw)


def primary_role(roles) -> str:
    """
    Role recorded on audit entries: the most privileged one held.
    """
    order = [
        SYSTEM,
        ADMINISTRATOR,
        SAFETY_MANAGER,
        LICENSE_MANAGER,
        TRAINING_MANAGER,
        COMPLIANCE_OFFICER,
        SAFETY_OFFICER,
        EMPLOYEE,
        READONLY,
    ]
    for role in order:
        if role in roles:
            return role
    return sorted(roles)[0] if roles else ""
