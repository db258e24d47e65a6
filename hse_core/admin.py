# hse_core/admin.py

from django.contrib import admin, messages
from django.urls import reverse
from django.utils.html import format_html

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
from .workflows.expiry import expire_due_licenses


def _audit_trail_link(kind: str, obj):
    url = (
        reverse("admin:hse_core_transitionauditentry_changelist")
        + f"?kind={kind}&object_id={obj.pk}"
    )
    return format_html('<a href="{}">Transitions</a>', url)


class StatusReadOnlyAdmin(admin.ModelAdmin):
    """
    Status and lifecycle timestamps are display-only; changes go through
    the transition endpoint.
    """

    lifecycle_kind = None
    lifecycle_readonly = ("status", "status_changed_at", "status_notes", "created_at", "updated_at")

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        fields.extend(f for f in self.lifecycle_readonly if f not in fields)
        if obj is not None:
            fields.extend(f for f in getattr(obj, "LOCKED_FIELDS", ()) if f not in fields)
        return fields

    def workflow_links(self, obj):
        return _audit_trail_link(self.lifecycle_kind, obj)

    workflow_links.short_description = "Workflow"


# =============================================================
# Transition audit entries (READ-ONLY, APPEND-ONLY)
# =============================================================

@admin.register(TransitionAuditEntry)
class TransitionAuditEntryAdmin(admin.ModelAdmin):
    list_display = (
        "kind",
        "object_id",
        "action",
        "from_status",
        "to_status",
        "actor",
        "actor_role",
        "created_at",
    )
    list_filter = ("kind", "action", "to_status")
    search_fields = ("object_id", "actor__username", "reason")
    ordering = ("-created_at",)

    readonly_fields = [f.name for f in TransitionAuditEntry._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Hazards
# =============================================================

class MitigationActionInline(admin.TabularInline):
    model = MitigationAction
    extra = 0
    fields = ("description", "action_type", "priority", "status", "assigned_to", "target_date", "completed_at")


class RiskAssessmentInline(admin.TabularInline):
    model = RiskAssessment
    extra = 0
    can_delete = False
    fields = ("assessment_date", "probability_score", "severity_score", "risk_score", "risk_level", "is_active")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Hazard)
class HazardAdmin(StatusReadOnlyAdmin):
    lifecycle_kind = "hazard"
    list_display = ("title", "category", "severity", "status", "reporter", "identified_date", "workflow_links")
    list_filter = ("status", "category", "hazard_type", "severity")
    search_fields = ("title", "description", "location", "reporter_department")
    inlines = (RiskAssessmentInline, MitigationActionInline)
    raw_id_fields = ("reporter", "created_by")
    lifecycle_readonly = StatusReadOnlyAdmin.lifecycle_readonly + (
        "current_risk_assessment",
        "resolved_at",
        "closed_at",
    )


# =============================================================
# Licenses
# =============================================================

class LicenseConditionInline(admin.TabularInline):
    model = LicenseCondition
    extra = 0
    fields = ("condition_type", "description", "is_mandatory", "due_date", "status", "responsible_person")


class LicenseRenewalInline(admin.TabularInline):
    model = LicenseRenewal
    extra = 0
    can_delete = False
    fields = ("previous_expiry_date", "new_expiry_date", "renewed_by", "notes", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(License)
class LicenseAdmin(StatusReadOnlyAdmin):
    lifecycle_kind = "license"
    list_display = ("license_number", "title", "license_type", "status", "expiry_date", "workflow_links")
    list_filter = ("status", "license_type", "is_critical_license", "priority")
    search_fields = ("license_number", "title", "holder_name", "department")
    inlines = (LicenseConditionInline, LicenseRenewalInline)
    raw_id_fields = ("holder", "created_by")
    actions = ("expire_overdue_licenses",)
    lifecycle_readonly = StatusReadOnlyAdmin.lifecycle_readonly + (
        "next_renewal_date",
        "submitted_at",
        "approved_at",
        "activated_at",
        "suspended_at",
        "revoked_at",
    )

    @admin.action(description="Run license expiry now (all due licenses)")
    def expire_overdue_licenses(self, request, queryset):
        expired = expire_due_licenses()
        self.message_user(request, f"Expired {expired} license(s).", level=messages.SUCCESS)


# =============================================================
# Trainings
# =============================================================

class TrainingParticipantInline(admin.TabularInline):
    model = TrainingParticipant
    extra = 0
    fields = ("user", "name", "department", "status", "due_date", "completed_at")
    raw_id_fields = ("user",)


@admin.register(Training)
class TrainingAdmin(StatusReadOnlyAdmin):
    lifecycle_kind = "training"
    list_display = ("training_code", "title", "training_type", "status", "scheduled_start_date", "workflow_links")
    list_filter = ("status", "training_type", "category", "delivery_method")
    search_fields = ("training_code", "title", "instructor_name", "venue")
    inlines = (TrainingParticipantInline,)
    raw_id_fields = ("created_by",)
    lifecycle_readonly = StatusReadOnlyAdmin.lifecycle_readonly + ("actual_start_date", "actual_end_date")


# =============================================================
# User Roles
# =============================================================

@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "department")
    search_fields = ("user__username", "role", "department")
    list_filter = ("role",)


# =============================================================
# Attachments (READ-ONLY)
# =============================================================

@admin.register(AttachmentRecord)
class AttachmentRecordAdmin(admin.ModelAdmin):
    list_display = ("kind", "object_id", "file_name", "size_bytes", "uploaded_by", "uploaded_at")
    list_filter = ("kind",)
    search_fields = ("file_name",)
    readonly_fields = [f.name for f in AttachmentRecord._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


# =============================================================
# Audit Log (READ-ONLY)
# =============================================================

@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user", "action")
    search_fields = ("action", "user__username")
    list_filter = ("action",)
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
