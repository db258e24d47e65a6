# hse_core/views_workflow_api.py

from __future__ import annotations

from typing import Dict, Type

from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import NotAuthenticated, NotFound, PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from hse_core.models import Hazard, License, Training, TransitionAuditEntry
from hse_core.selectors import can_access_hazard, hide_private_hazards
from hse_core.serializers import TransitionAuditEntrySerializer, TransitionRequestSerializer
from hse_core.signals import set_current_user
from hse_core.workflows import get_lifecycle, user_roles, workflow_definition
from hse_core.workflows.capabilities import evaluate
from hse_core.workflows.executor import execute_transition


# =============================================================
# Workflow model registry
# =============================================================

KIND_MODEL_MAP: Dict[str, Type] = {
    "hazard": Hazard,
    "license": License,
    "training": Training,
}


# =============================================================
# Helpers
# =============================================================

def _normalize_kind(kind: str) -> str:
    lifecycle = get_lifecycle(kind)
    if lifecycle is None:
        raise NotFound(f"Unknown workflow kind '{kind}'. Use 'hazard', 'license' or 'training'.")
    return lifecycle.kind


def _require_auth(user) -> None:
    """
    Enforce authentication in a way that returns DRF's normal 401/403
    instead of Django login redirects (302) under session-based setups.
    """
    if not user or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated("Authentication credentials were not provided.")
    set_current_user(user)


def _get_instance(kind: str, pk: int, user):
    model = KIND_MODEL_MAP[kind]
    instance = model.objects.filter(pk=pk).first()
    if instance is None:
        raise NotFound(f"{kind.capitalize()} {pk} does not exist.")

    if kind == "hazard" and not can_access_hazard(user, instance):
        if hide_private_hazards():
            raise NotFound(f"{kind.capitalize()} {pk} does not exist.")
        raise PermissionDenied("You do not have access to this hazard.")

    return instance


# =============================================================
# API: Capabilities + allowed actions
# =============================================================

class WorkflowAllowedView(APIView):
    """
    GET /hse/workflows/<kind>/<pk>/allowed/

    Returns:
    - current status
    - capabilities (can_edit, can_delete, can_<action>...)
    - allowed actions for this user
    - user roles considered
    """
    # AllowAny + explicit auth check avoids 302 login redirects.
    permission_classes = [AllowAny]

    def get(self, request, kind: str, pk: int):
        _require_auth(request.user)
        kind = _normalize_kind(kind)
        instance = _get_instance(kind, pk, request.user)

        roles = user_roles(request.user)
        capabilities = evaluate(instance, request.user, roles)

        return Response(
            {
                "kind": kind,
                "object_id": instance.pk,
                "current": instance.status,
                "allowed": capabilities["allowed_actions"],
                "capabilities": capabilities,
                "roles": sorted(roles),
            }
        )


# =============================================================
# API: Execute workflow transition (AUTHORITATIVE)
# =============================================================

class WorkflowTransitionView(APIView):
    """
    POST /hse/workflows/<kind>/<pk>/transition/

    Body:
        { "action": "approve" }
        { "action": "suspend", "reason": "Inspection failed", "expected_status": "ACTIVE" }

    This endpoint is the ONLY API-level entry point
    that mutates lifecycle status.
    """
    permission_classes = [AllowAny]

    @extend_schema(request=TransitionRequestSerializer)
    def post(self, request, kind: str, pk: int):
        _require_auth(request.user)
        kind = _normalize_kind(kind)
        instance = _get_instance(kind, pk, request.user)

        body = TransitionRequestSerializer(data=request.data or {})
        body.is_valid(raise_exception=True)
        data = body.validated_data

        result = execute_transition(
            kind=kind,
            instance=instance,
            action=data["action"],
            actor=request.user,
            reason=data.get("reason") or "",
            expected_status=data.get("expected_status") or None,
        )

        payload = result.as_dict()
        payload["current"] = result.to_status
        return Response(payload)


# =============================================================
# API: Audit trail (never cached)
# =============================================================

class WorkflowAuditTrailView(APIView):
    """
    GET /hse/workflows/<kind>/<pk>/audit-trail/

    Oldest first. Entries outlive the entity they describe.
    """
    permission_classes = [AllowAny]

    def get(self, request, kind: str, pk: int):
        _require_auth(request.user)
        kind = _normalize_kind(kind)

        if kind == "hazard" and KIND_MODEL_MAP[kind].objects.filter(pk=pk).exists():
            _get_instance(kind, pk, request.user)

        entries = (
            TransitionAuditEntry.objects.filter(kind=kind, object_id=pk)
            .select_related("actor")
            .order_by("created_at", "id")
        )
        return Response(
            {
                "kind": kind,
                "object_id": int(pk),
                "entries": TransitionAuditEntrySerializer(entries, many=True).data,
            }
        )


# =============================================================
# API: Static definition
# =============================================================

class WorkflowDefinitionView(APIView):
    """
    GET /hse/workflows/           -> every kind
    GET /hse/workflows/<kind>/

    States, transitions, reason requirements and roles, for UI rendering.
    """
    permission_classes = [AllowAny]

    def get(self, request, kind: str | None = None):
        _require_auth(request.user)
        if kind is None:
            return Response(workflow_definition())
        return Response(workflow_definition(_normalize_kind(kind)))
