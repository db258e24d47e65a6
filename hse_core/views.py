# hse_core/views.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.utils import timezone
from django.utils.dateparse import parse_date
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .choices import CONDITION_DONE, MITIGATION_DONE, PARTICIPANT_DONE, ParticipantStatus
from .mixins import CurrentUserMixin, LifecycleViewSetMixin
from .models import (
    AttachmentRecord,
    AuditLog,
    Hazard,
    License,
    LicenseCondition,
    MitigationAction,
    RiskAssessment,
    Training,
    TrainingParticipant,
    UserRole,
)
from .permissions import IsAdministratorOrReadOnly, IsRoleAllowedOrReadOnly
from .selectors import can_access_hazard, hide_private_hazards, visible_hazards
from .serializers import (
    AttachmentRecordSerializer,
    AuditLogSerializer,
    HazardSerializer,
    LicenseConditionSerializer,
    LicenseSerializer,
    MitigationActionSerializer,
    RiskAssessmentInputSerializer,
    RiskAssessmentSerializer,
    TrainingParticipantSerializer,
    TrainingSerializer,
    UserRoleSerializer,
)
from .services.attachments import record_attachments
from .services.enrollment import enroll_participant
from .services.risk import record_risk_assessment
from .workflows.capabilities import can_edit, is_privileged
from .workflows.roles import (
    ADMINISTRATOR,
    SAFETY_MANAGER,
    SAFETY_OFFICER,
    TRAINING_MANAGER,
    user_roles,
)
from .workflows.tables import lifecycle_for_instance

User = get_user_model()


# ===============================================================
# Utilities
# ===============================================================

def _department_of(user) -> str:
    return (
        UserRole.objects.filter(user=user)
        .exclude(department="")
        .values_list("department", flat=True)
        .first()
        or ""
    )


def _stamp_completion(serializer, done_statuses):
    """Set completed_at the first time a sub-entity reaches a done status."""
    new_status = serializer.validated_data.get("status")
    instance = serializer.instance
    if new_status in done_statuses and not getattr(instance, "completed_at", None):
        return serializer.save(completed_at=timezone.now())
    if new_status is not None and new_status not in done_statuses:
        return serializer.save(completed_at=None)
    return serializer.save()


# Terminal parents whose child records managers may still amend
_AMENDABLE_TERMINALS = {
    "license": frozenset({"EXPIRED"}),  # conditions settled before renewal
    "training": frozenset({"COMPLETED"}),  # participant outcomes
}


def _require_parent_write(user, parent) -> None:
    """
    Child rows (conditions, participants) follow their parent's edit rules:
    the owner while the parent is editable, or the kind's manager role.
    """
    lifecycle = lifecycle_for_instance(parent)
    roles = user_roles(user)

    if is_privileged(lifecycle, roles):
        if parent.status in lifecycle.terminal and parent.status not in _AMENDABLE_TERMINALS.get(lifecycle.kind, ()):
            raise PermissionDenied(f"This {lifecycle.kind} is {parent.status}; its records can no longer change.")
        return

    if not can_edit(parent, user, roles):
        raise PermissionDenied(
            f"Only the {lifecycle.kind}'s owner or a manager can change its records while it is {parent.status}."
        )


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "HSE-Compliance"})


# ===============================================================
# Attachments (shared by every lifecycle entity)
# ===============================================================
class AttachmentActionMixin:
    """
    GET  /hse/<plural>/<pk>/attachments/  -> recorded attachment metadata
    POST /hse/<plural>/<pk>/attachments/  -> record one item or {"attachments": [...]}
    """

    @action(detail=True, methods=["get", "post"], url_path="attachments")
    def attachments(self, request, pk=None):
        instance = self.get_object()

        if request.method == "GET":
            records = AttachmentRecord.objects.filter(
                kind=self.lifecycle_kind,
                object_id=instance.pk,
            ).order_by("-uploaded_at", "-id")
            return Response(AttachmentRecordSerializer(records, many=True).data)

        payload = request.data or {}
        items = payload.get("attachments") if "attachments" in payload else [payload]
        if not isinstance(items, list) or not items:
            raise ValidationError({"attachments": "Provide attachment metadata."})

        outcome = record_attachments(
            kind=self.lifecycle_kind,
            object_id=instance.pk,
            items=items,
            user=request.user,
        )
        body = {
            "attachments": AttachmentRecordSerializer(outcome.recorded, many=True).data,
            "warnings": outcome.warnings,
            "result": outcome.result,
        }
        code = status.HTTP_201_CREATED if outcome.recorded else status.HTTP_400_BAD_REQUEST
        return Response(body, status=code)


# ===============================================================
# Hazards
# ===============================================================
class HazardViewSet(LifecycleViewSetMixin, AttachmentActionMixin, viewsets.ModelViewSet):
    lifecycle_kind = "hazard"
    serializer_class = HazardSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    lookup_value_regex = r"\d+"
    server_controlled_fields = ["status", "created_by", "reporter", "current_risk_assessment"]

    def get_queryset(self):
        qs = Hazard.objects.select_related(
            "reporter",
            "current_risk_assessment",
        ).prefetch_related("mitigation_actions")
        return visible_hazards(self.request.user, qs)

    def get_object(self):
        pk = self.kwargs[self.lookup_field]
        hazard = (
            Hazard.objects.select_related("reporter", "current_risk_assessment")
            .filter(pk=pk)
            .first()
        )
        if hazard is None:
            raise NotFound("Hazard not found.")

        if not can_access_hazard(self.request.user, hazard):
            if hide_private_hazards():
                raise NotFound("Hazard not found.")
            raise PermissionDenied("You do not have access to this hazard.")

        self.check_object_permissions(self.request, hazard)
        return hazard

    def perform_create(self, serializer, **extra):
        user = self.request.user
        department = serializer.validated_data.get("reporter_department") or _department_of(user)
        return super().perform_create(serializer, reporter=user, reporter_department=department, **extra)

    @extend_schema(request=RiskAssessmentInputSerializer, responses=RiskAssessmentSerializer)
    @action(detail=True, methods=["post"], url_path="risk-assessments")
    def risk_assessments(self, request, pk=None):
        hazard = self.get_object()

        roles = user_roles(request.user)
        if not roles & {ADMINISTRATOR, SAFETY_MANAGER, SAFETY_OFFICER}:
            raise PermissionDenied("Only safety staff can record risk assessments.")

        data = RiskAssessmentInputSerializer(data=request.data)
        data.is_valid(raise_exception=True)

        assessment = record_risk_assessment(
            hazard=hazard,
            assessor=request.user,
            **data.validated_data,
        )
        return Response(RiskAssessmentSerializer(assessment).data, status=status.HTTP_201_CREATED)


# ===============================================================
# Licenses
# ===============================================================
class LicenseViewSet(LifecycleViewSetMixin, AttachmentActionMixin, viewsets.ModelViewSet):
    lifecycle_kind = "license"
    queryset = License.objects.select_related("holder").prefetch_related("conditions", "renewals")
    serializer_class = LicenseSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    lookup_value_regex = r"\d+"

    def create(self, request, *args, **kwargs):
        """
        The license is committed first; attachment failures only add
        warnings to the 201 response.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = serializer.validated_data.pop("attachments", None)

        self.perform_create(serializer)
        body = dict(serializer.data)

        if items:
            outcome = record_attachments(
                kind=self.lifecycle_kind,
                object_id=serializer.instance.pk,
                items=items,
                user=request.user,
            )
            body["attachments"] = AttachmentRecordSerializer(outcome.recorded, many=True).data
            body["warnings"] = outcome.warnings
            body["result"] = outcome.result

        headers = self.get_success_headers(serializer.data)
        return Response(body, status=status.HTTP_201_CREATED, headers=headers)

    def perform_update(self, serializer):
        serializer.validated_data.pop("attachments", None)
        super().perform_update(serializer)


# ===============================================================
# Trainings
# ===============================================================
class TrainingViewSet(LifecycleViewSetMixin, AttachmentActionMixin, viewsets.ModelViewSet):
    lifecycle_kind = "training"
    queryset = Training.objects.prefetch_related("participants")
    serializer_class = TrainingSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    lookup_value_regex = r"\d+"

    @extend_schema(responses=TrainingParticipantSerializer)
    @action(detail=True, methods=["post"], url_path="enroll")
    def enroll(self, request, pk=None):
        """
        Enroll the caller, or `user_id` when the caller manages trainings.
        """
        training = self.get_object()
        payload = request.data or {}

        user = request.user
        raw_user = payload.get("user_id")
        if raw_user not in (None, "") and str(raw_user) != str(user.pk):
            if not user_roles(user) & {ADMINISTRATOR, TRAINING_MANAGER}:
                raise PermissionDenied("Only training managers can enroll other users.")
            user = User.objects.filter(pk=raw_user).first() if str(raw_user).isdigit() else None
            if user is None:
                raise ValidationError({"user_id": "User does not exist."})

        due_date = None
        if payload.get("due_date"):
            due_date = parse_date(str(payload["due_date"]))
            if due_date is None:
                raise ValidationError({"due_date": "Use YYYY-MM-DD."})

        participant = enroll_participant(training=training, user=user, due_date=due_date)
        return Response(TrainingParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)


# ===============================================================
# Sub-entities
# ===============================================================
class RiskAssessmentViewSet(CurrentUserMixin, viewsets.ReadOnlyModelViewSet):
    """Assessments are recorded through POST /hazards/<pk>/risk-assessments/."""

    serializer_class = RiskAssessmentSerializer
    filterset_fields = ["hazard", "is_active"]

    def get_queryset(self):
        hazards = visible_hazards(self.request.user)
        return (
            RiskAssessment.objects.select_related("assessor")
            .filter(hazard__in=hazards)
            .order_by("-assessment_date", "-id")
        )


class MitigationActionViewSet(CurrentUserMixin, viewsets.ModelViewSet):
    serializer_class = MitigationActionSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    filterset_fields = ["hazard", "status", "priority", "assigned_to"]

    def get_queryset(self):
        hazards = visible_hazards(self.request.user)
        return MitigationAction.objects.filter(hazard__in=hazards).order_by("target_date", "-id")

    def perform_create(self, serializer):
        hazard = serializer.validated_data["hazard"]
        if not can_access_hazard(self.request.user, hazard):
            raise NotFound("Hazard not found.")
        serializer.save()

    def perform_update(self, serializer):
        _stamp_completion(serializer, MITIGATION_DONE)


class LicenseConditionViewSet(CurrentUserMixin, viewsets.ModelViewSet):
    queryset = LicenseCondition.objects.select_related("license").order_by("due_date", "-id")
    serializer_class = LicenseConditionSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    filterset_fields = ["license", "status", "is_mandatory"]

    def perform_create(self, serializer):
        _require_parent_write(self.request.user, serializer.validated_data["license"])
        serializer.save()

    def perform_update(self, serializer):
        _require_parent_write(self.request.user, serializer.instance.license)
        target = serializer.validated_data.get("license")
        if target is not None and target.pk != serializer.instance.license_id:
            _require_parent_write(self.request.user, target)
        _stamp_completion(serializer, CONDITION_DONE)

    def perform_destroy(self, instance):
        _require_parent_write(self.request.user, instance.license)
        instance.delete()


class TrainingParticipantViewSet(
    CurrentUserMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Participants are created through POST /trainings/<pk>/enroll/."""

    queryset = TrainingParticipant.objects.select_related("training", "user").order_by("training_id", "name", "id")
    serializer_class = TrainingParticipantSerializer
    permission_classes = [IsRoleAllowedOrReadOnly]
    filterset_fields = ["training", "status", "user"]

    def _is_self_withdrawal(self, serializer) -> bool:
        participant = serializer.instance
        training = participant.training
        lifecycle = lifecycle_for_instance(training)
        return (
            participant.user_id == self.request.user.pk
            and set(serializer.validated_data) == {"status"}
            and serializer.validated_data["status"] == ParticipantStatus.WITHDRAWN
            and training.status not in lifecycle.terminal
        )

    def perform_update(self, serializer):
        if not self._is_self_withdrawal(serializer):
            _require_parent_write(self.request.user, serializer.instance.training)
        _stamp_completion(serializer, PARTICIPANT_DONE)

    def perform_destroy(self, instance):
        _require_parent_write(self.request.user, instance.training)
        instance.delete()


# ===============================================================
# Roles
# ===============================================================
class UserRoleViewSet(CurrentUserMixin, viewsets.ModelViewSet):
    queryset = UserRole.objects.select_related("user").all().order_by("user_id", "role", "id")
    serializer_class = UserRoleSerializer
    permission_classes = [IsAdministratorOrReadOnly]
    filterset_fields = ["user", "role", "department"]


# ===============================================================
# Audit logs (READ-ONLY)
# ===============================================================
class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("user").all().order_by("-created_at", "-id")
    serializer_class = AuditLogSerializer
    filterset_fields = ["user", "action"]
