# hse_core/serializers.py
from __future__ import annotations

from typing import Any, Dict

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .choices import Priority, RiskLevel, Severity, enum_name, parse_enum
from .models import (
    AttachmentRecord,
    AuditLog,
    Hazard,
    License,
    LicenseCondition,
    LicenseRenewal,
    MitigationAction,
    RiskAssessment,
    Training,
    TrainingParticipant,
    TransitionAuditEntry,
    UserRole,
)
from .workflows.capabilities import evaluate
from .workflows.roles import user_roles
from .workflows.tables import LICENSE_LIFECYCLE

User = get_user_model()


# ===============================================================
# Helpers
# ===============================================================

class ImmutableFieldsMixin:
    """
    Blocks updates to selected fields if they appear in incoming validated data.
    """
    immutable_fields: tuple[str, ...] = ()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if self.instance is not None and self.immutable_fields:
            for field in self.immutable_fields:
                if field in attrs and attrs[field] != getattr(self.instance, field, None):
                    raise serializers.ValidationError(
                        {field: "This field is locked after creation."}
                    )
        return super().validate(attrs)


class EnumNameField(serializers.Field):
    """Integer choice stored in the DB, exposed by member name ("MAJOR")."""

    def __init__(self, enum_cls, **kwargs):
        self.enum_cls = enum_cls
        super().__init__(**kwargs)

    def to_representation(self, value):
        return enum_name(self.enum_cls, value)

    def to_internal_value(self, data):
        parsed = parse_enum(self.enum_cls, data)
        if parsed is None:
            names = ", ".join(m.name for m in self.enum_cls)
            raise serializers.ValidationError(f"Expected one of: {names}.")
        return parsed


class CapabilitiesMixin(serializers.Serializer):
    capabilities = serializers.SerializerMethodField()

    def get_capabilities(self, obj) -> Dict[str, Any]:
        request = self.context.get("request")
        user = getattr(request, "user", None)
        # list serializers share one context; roles are resolved once per response
        roles = self.context.get("roles")
        if roles is None:
            roles = self.context["roles"] = user_roles(user)
        return evaluate(obj, user, roles)


class UserSlimSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "email")
        read_only_fields = fields


# ===============================================================
# Hazards
# ===============================================================

class RiskAssessmentSerializer(serializers.ModelSerializer):
    risk_level = EnumNameField(RiskLevel, read_only=True)
    assessor = UserSlimSerializer(read_only=True)

    class Meta:
        model = RiskAssessment
        fields = (
            "id",
            "hazard",
            "assessor",
            "assessment_date",
            "probability_score",
            "severity_score",
            "risk_score",
            "risk_level",
            "next_review_date",
            "notes",
            "is_active",
            "created_at",
        )
        read_only_fields = ("id", "hazard", "risk_score", "risk_level", "is_active", "created_at")


class MitigationActionSerializer(serializers.ModelSerializer):
    priority = EnumNameField(Priority, required=False)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = MitigationAction
        fields = (
            "id",
            "hazard",
            "description",
            "action_type",
            "priority",
            "status",
            "assigned_to",
            "target_date",
            "completed_at",
            "is_overdue",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "completed_at", "is_overdue", "created_at", "updated_at")


class HazardSerializer(CapabilitiesMixin, serializers.ModelSerializer):
    severity = EnumNameField(Severity, required=False)
    reporter = UserSlimSerializer(read_only=True)
    reporter_name = serializers.CharField(read_only=True)
    current_risk_assessment = RiskAssessmentSerializer(read_only=True)
    mitigation_actions = MitigationActionSerializer(many=True, read_only=True)

    class Meta:
        model = Hazard
        fields = (
            "id",
            "title",
            "description",
            "category",
            "hazard_type",
            "location",
            "latitude",
            "longitude",
            "status",
            "severity",
            "identified_date",
            "expected_resolution_date",
            "reporter",
            "reporter_name",
            "reporter_department",
            "current_risk_assessment",
            "mitigation_actions",
            "resolved_at",
            "closed_at",
            "status_changed_at",
            "status_notes",
            "capabilities",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "status",
            "reporter",
            "reporter_name",
            "resolved_at",
            "closed_at",
            "status_changed_at",
            "status_notes",
            "created_at",
            "updated_at",
        )

    def validate(self, attrs):
        lat = attrs.get("latitude", getattr(self.instance, "latitude", None))
        lng = attrs.get("longitude", getattr(self.instance, "longitude", None))
        if (lat is None) != (lng is None):
            raise serializers.ValidationError({"latitude": "Latitude and longitude must be provided together."})
        return super().validate(attrs)


class RiskAssessmentInputSerializer(serializers.Serializer):
    probability_score = serializers.IntegerField(min_value=1, max_value=5)
    severity_score = serializers.IntegerField(min_value=1, max_value=5)
    assessment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


# ===============================================================
# Licenses
# ===============================================================

class LicenseConditionSerializer(serializers.ModelSerializer):
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = LicenseCondition
        fields = (
            "id",
            "license",
            "condition_type",
            "description",
            "is_mandatory",
            "due_date",
            "status",
            "completed_at",
            "responsible_person",
            "is_overdue",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "completed_at", "is_overdue", "created_at", "updated_at")


class LicenseRenewalSerializer(serializers.ModelSerializer):
    renewed_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = LicenseRenewal
        fields = ("id", "previous_expiry_date", "new_expiry_date", "renewed_by", "notes", "created_at")
        read_only_fields = fields


class AttachmentInputSerializer(serializers.Serializer):
    file_name = serializers.CharField(max_length=255)
    size_bytes = serializers.IntegerField()
    content_type = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class LicenseSerializer(ImmutableFieldsMixin, CapabilitiesMixin, serializers.ModelSerializer):
    priority = EnumNameField(Priority, required=False)
    risk_level = EnumNameField(RiskLevel, required=False)
    conditions = LicenseConditionSerializer(many=True, read_only=True)
    renewals = LicenseRenewalSerializer(many=True, read_only=True)
    days_until_expiry = serializers.IntegerField(read_only=True)
    is_renewal_due = serializers.BooleanField(read_only=True)
    attachments = serializers.ListField(
        child=serializers.DictField(),
        write_only=True,
        required=False,
    )

    immutable_fields = LICENSE_LIFECYCLE.locked_fields

    class Meta:
        model = License
        fields = (
            "id",
            "license_number",
            "title",
            "description",
            "license_type",
            "status",
            "priority",
            "risk_level",
            "issuing_authority",
            "holder",
            "holder_name",
            "department",
            "issued_date",
            "expiry_date",
            "renewal_required",
            "renewal_period_days",
            "next_renewal_date",
            "scope",
            "is_critical_license",
            "submitted_at",
            "approved_at",
            "activated_at",
            "suspended_at",
            "revoked_at",
            "status_changed_at",
            "status_notes",
            "days_until_expiry",
            "is_renewal_due",
            "conditions",
            "renewals",
            "attachments",
            "capabilities",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "status",
            "next_renewal_date",
            "submitted_at",
            "approved_at",
            "activated_at",
            "suspended_at",
            "revoked_at",
            "status_changed_at",
            "status_notes",
            "created_at",
            "updated_at",
        )

    def validate(self, attrs):
        attrs = super().validate(attrs)
        issued = attrs.get("issued_date", getattr(self.instance, "issued_date", None))
        expiry = attrs.get("expiry_date", getattr(self.instance, "expiry_date", None))
        if issued and expiry and expiry <= issued:
            raise serializers.ValidationError({"expiry_date": "Expiry date must be after the issued date."})
        return attrs


# ===============================================================
# Trainings
# ===============================================================

class TrainingParticipantSerializer(serializers.ModelSerializer):
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = TrainingParticipant
        fields = (
            "id",
            "training",
            "user",
            "name",
            "department",
            "status",
            "due_date",
            "completed_at",
            "is_overdue",
            "created_at",
        )
        read_only_fields = ("id", "training", "user", "name", "department", "is_overdue", "created_at")


class TrainingSerializer(CapabilitiesMixin, serializers.ModelSerializer):
    priority = EnumNameField(Priority, required=False)
    participants = TrainingParticipantSerializer(many=True, read_only=True)
    available_spots = serializers.IntegerField(read_only=True)

    class Meta:
        model = Training
        fields = (
            "id",
            "training_code",
            "title",
            "description",
            "training_type",
            "category",
            "status",
            "priority",
            "delivery_method",
            "scheduled_start_date",
            "scheduled_end_date",
            "actual_start_date",
            "actual_end_date",
            "venue",
            "latitude",
            "longitude",
            "instructor_name",
            "min_participants",
            "max_participants",
            "available_spots",
            "participants",
            "status_changed_at",
            "status_notes",
            "capabilities",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "status",
            "actual_start_date",
            "actual_end_date",
            "status_changed_at",
            "status_notes",
            "created_at",
            "updated_at",
        )

    def validate(self, attrs):
        minimum = attrs.get("min_participants", getattr(self.instance, "min_participants", 1))
        maximum = attrs.get("max_participants", getattr(self.instance, "max_participants", 20))
        if minimum > maximum:
            raise serializers.ValidationError(
                {"min_participants": "Minimum participants cannot exceed maximum participants."}
            )
        return super().validate(attrs)


# ===============================================================
# Roles / audit
# ===============================================================

class UserRoleSerializer(serializers.ModelSerializer):
    user = UserSlimSerializer(read_only=True)
    user_id = serializers.PrimaryKeyRelatedField(
        source="user",
        queryset=User.objects.all(),
        write_only=True,
    )

    class Meta:
        model = UserRole
        fields = ("id", "user", "user_id", "role", "department", "created_at")
        read_only_fields = ("id", "created_at")


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSlimSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ("id", "user", "action", "details", "created_at")
        read_only_fields = fields


class TransitionAuditEntrySerializer(serializers.ModelSerializer):
    actor = UserSlimSerializer(read_only=True)

    class Meta:
        model = TransitionAuditEntry
        fields = (
            "id",
            "kind",
            "object_id",
            "action",
            "from_status",
            "to_status",
            "actor",
            "actor_role",
            "reason",
            "created_at",
        )
        read_only_fields = fields


class AttachmentRecordSerializer(serializers.ModelSerializer):
    uploaded_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = AttachmentRecord
        fields = (
            "id",
            "kind",
            "object_id",
            "file_name",
            "content_type",
            "size_bytes",
            "description",
            "uploaded_by",
            "uploaded_at",
        )
        read_only_fields = fields


class TransitionRequestSerializer(serializers.Serializer):
    action = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    expected_status = serializers.CharField(required=False, allow_blank=True, allow_null=True)
