# hse_core/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter

# -------------------------------------------------
# Core API ViewSets
# -------------------------------------------------
from .views import (
    HealthCheckView,
    HazardViewSet,
    LicenseViewSet,
    TrainingViewSet,
    RiskAssessmentViewSet,
    MitigationActionViewSet,
    LicenseConditionViewSet,
    TrainingParticipantViewSet,
    UserRoleViewSet,
    AuditLogViewSet,
)

# -------------------------------------------------
# Lifecycle APIs
# -------------------------------------------------
from .views_workflow_api import (
    WorkflowAllowedView,
    WorkflowAuditTrailView,
    WorkflowDefinitionView,
    WorkflowTransitionView,
)

# -------------------------------------------------
# Dashboards
# -------------------------------------------------
from .views_dashboard import DashboardSummaryView

# -------------------------------------------------
# Identity
# -------------------------------------------------
from .views_identity import WhoAmIView


app_name = "hse_core"

# -------------------------------------------------
# Router (CRUD APIs)
# -------------------------------------------------
router = DefaultRouter()
router.register(r"hazards", HazardViewSet, basename="hazard")
router.register(r"licenses", LicenseViewSet, basename="license")
router.register(r"trainings", TrainingViewSet, basename="training")
router.register(r"risk-assessments", RiskAssessmentViewSet, basename="risk-assessment")
router.register(r"mitigation-actions", MitigationActionViewSet, basename="mitigation-action")
router.register(r"license-conditions", LicenseConditionViewSet, basename="license-condition")
router.register(r"training-participants", TrainingParticipantViewSet, basename="training-participant")
router.register(r"roles", UserRoleViewSet, basename="role")
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")


urlpatterns = [
    # ============================================================
    # Core CRUD API
    # ============================================================
    path("", include(router.urls)),

    # ============================================================
    # System
    # ============================================================
    path("health/", HealthCheckView.as_view(), name="health_check"),

    # ============================================================
    # Identity
    # ============================================================
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # ============================================================
    # Workflow definitions
    # ============================================================
    path("workflows/", WorkflowDefinitionView.as_view(), name="workflow-definitions"),
    path("workflows/<str:kind>/", WorkflowDefinitionView.as_view(), name="workflow-definition"),

    # ============================================================
    # Lifecycle actions (single object)
    # ============================================================
    path("workflows/<str:kind>/<int:pk>/allowed/", WorkflowAllowedView.as_view(), name="workflow-allowed"),
    path("workflows/<str:kind>/<int:pk>/transition/", WorkflowTransitionView.as_view(), name="workflow-transition"),
    path("workflows/<str:kind>/<int:pk>/audit-trail/", WorkflowAuditTrailView.as_view(), name="workflow-audit-trail"),

    # ============================================================
    # Dashboards
    # ============================================================
    path("dashboard/<str:kind>/", DashboardSummaryView.as_view(), name="dashboard-summary"),
]
