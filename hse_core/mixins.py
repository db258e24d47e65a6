# hse_core/mixins.py
from __future__ import annotations

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from .querying import compose
from .signals import set_current_user
from .summaries import get_summary
from .workflows.capabilities import can_delete, can_edit
from .workflows.roles import user_roles


# ===============================================================
# Utilities
# ===============================================================

def _deny_if_payload_has(request, fields: list[str], message: str):
    """
    Reject requests that attempt to mutate server-controlled fields.
    Makes violations noisy and testable.
    """
    incoming = getattr(request, "data", {}) or {}
    present = [f for f in fields if f in incoming]
    if present:
        raise ValidationError({f: message for f in present})


# ===============================================================
# Current user for model signals
# ===============================================================

class CurrentUserMixin:
    """
    DRF authenticates inside the view, after middleware ran. Store the
    resolved user so signal-written audit rows carry it.
    """

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        user = getattr(request, "user", None)
        set_current_user(user if user is not None and user.is_authenticated else None)


# ===============================================================
# Lifecycle entities (Hazard / License / Training)
# ===============================================================

class LifecycleViewSetMixin(CurrentUserMixin):
    """
    CRUD for an entity whose status belongs to the workflow executor.

    ViewSets using this mixin must define:
      - lifecycle_kind = "hazard" | "license" | "training"

    - status is never accepted in a payload
    - updates require can_edit, deletes require can_delete
    - lists run through the query composer and embed the dashboard summary
    """

    lifecycle_kind: str = None
    server_controlled_fields = ["status", "created_by"]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        request = getattr(self, "request", None)
        if request is not None:
            context["roles"] = user_roles(request.user)
        return context

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        result = compose(
            queryset,
            request.query_params,
            kind=self.lifecycle_kind,
            user=request.user,
        )
        serializer = self.get_serializer(result.items, many=True)

        payload = result.as_dict(items=serializer.data)
        payload["summary"] = get_summary(self.lifecycle_kind, request.query_params)
        return Response(payload)

    def perform_create(self, serializer, **extra):
        _deny_if_payload_has(
            self.request,
            self.server_controlled_fields,
            "This field is server-controlled.",
        )
        return serializer.save(created_by=self.request.user, **extra)

    def perform_update(self, serializer):
        instance = serializer.instance
        if not can_edit(instance, self.request.user):
            raise PermissionDenied(
                f"This {self.lifecycle_kind} cannot be edited in status {instance.status}."
            )

        _deny_if_payload_has(
            self.request,
            self.server_controlled_fields,
            "This field cannot be modified. Use the workflow transition endpoint.",
        )

        try:
            serializer.save()
        except DjangoPermissionDenied as exc:
            raise PermissionDenied(str(exc))

    def perform_destroy(self, instance):
        if not can_delete(instance, self.request.user):
            raise PermissionDenied(
                f"This {self.lifecycle_kind} can only be deleted in its initial status by its owner or a manager."
            )
        instance.delete()
