# hse_core/permissions.py
from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS, BasePermission

from .workflows.roles import ADMINISTRATOR, READONLY, SYSTEM, user_roles


# ------------------------------------------------------------------
# Role definitions
# ------------------------------------------------------------------
def has_write_role(user) -> bool:
    """Any role other than READONLY may write; superusers always may."""
    if not user or not user.is_authenticated:
        return False
    roles = user_roles(user) - {SYSTEM}
    return bool(roles - {READONLY})


def is_administrator(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return ADMINISTRATOR in user_roles(user)


# ------------------------------------------------------------------
# Permission classes
# ------------------------------------------------------------------
class IsRoleAllowedOrReadOnly(BasePermission):
    """
    Read: any authenticated user
    Write: requires a role other than READONLY

    Per-object edit/delete rules live in the lifecycle capabilities and are
    checked by the viewset.
    """

    message = "Write access denied. Your role does not allow changes."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        if request.method in SAFE_METHODS:
            return True

        return has_write_role(user)


class IsAdministratorOrReadOnly(BasePermission):
    """
    Role assignments are managed by administrators only.
    """

    message = "Only administrators can manage role assignments."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        if request.method in SAFE_METHODS:
            return True

        return is_administrator(user)
