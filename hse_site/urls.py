"""
Root URL configuration.

/api/...  landing, auth tokens and OpenAPI docs
/hse/...  hazards, licenses, trainings, workflows and dashboards
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import ApiHomeView

auth_urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/", include("rest_framework.urls")),
]

# Docs are public
schema_urlpatterns = [
    path("", SpectacularAPIView.as_view(permission_classes=[AllowAny]), name="schema"),
    path(
        "swagger-ui/",
        SpectacularSwaggerView.as_view(url_name="schema", permission_classes=[AllowAny]),
        name="swagger-ui",
    ),
    path(
        "redoc/",
        SpectacularRedocView.as_view(url_name="schema", permission_classes=[AllowAny]),
        name="redoc",
    ),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", ApiHomeView.as_view(), name="api-home"),
    path("api/", include(auth_urlpatterns)),
    path("api/schema/", include(schema_urlpatterns)),
    path("hse/", include("hse_core.urls")),
]
