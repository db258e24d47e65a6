# hse_core/workflows/errors.py
"""
Transition failures, shaped as DRF exceptions so views can let them propagate.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError


class Forbidden(PermissionDenied):
    def __init__(self, detail: str, *, action: Optional[str] = None):
        payload = {"detail": detail}
        if action:
            payload["action"] = action
        super().__init__(payload)


class InvalidTransition(APIException):
    """
    Action is not legal from the current status.

    Always carries the current status and the actions that are legal from it.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_transition"

    def __init__(self, *, kind: str, action: str, current_status: str, allowed_actions: Iterable[str]):
        self.current_status = current_status
        self.allowed_actions: List[str] = list(allowed_actions)
        super().__init__(
            {
                "status": f"Cannot {action} a {kind} in status '{current_status}'.",
                "current_status": current_status,
                "allowed_actions": self.allowed_actions,
            }
        )


class TransitionValidationError(ValidationError):
    """Per-field errors: missing reason, missing fields, failed guards."""

    def __init__(self, errors: Dict[str, str]):
        self.fields = dict(errors)
        super().__init__({f: [msg] for f, msg in self.fields.items()})


class ConcurrentModification(APIException):
    """Status changed underneath the caller. Safe to retry against fresh state."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "concurrent_modification"

    def __init__(self, *, kind: str, object_id, current_status: Optional[str]):
        self.current_status = current_status
        super().__init__(f"{kind.capitalize()} {object_id} was modified by another request.")
        # kept raw so "retryable" renders as a JSON boolean
        self.detail = {
            "detail": self.detail,
            "current_status": current_status,
            "retryable": True,
        }


__all__ = [
    "NotFound",
    "Forbidden",
    "InvalidTransition",
    "TransitionValidationError",
    "ConcurrentModification",
]
