# hse_core/filters.py
import math
from datetime import timedelta

from django.db.models import Count, F, FloatField, Q, Value
from django.db.models.functions import Power, Sqrt
from django.utils import timezone
from django_filters import rest_framework as df

from .choices import ParticipantStatus, Priority, RiskLevel, Severity, parse_enum
from .models import Hazard, License, Training
from .selectors import high_risk_q, mine_q, overdue_q
from .workflows.tables import LICENSE_TERMINAL

# Miles per degree of latitude in the planar approximation
DEGREE_FACTOR = 69.1


def within_radius(queryset, latitude: float, longitude: float, radius: float):
    """
    Planar short-range approximation, not great-circle distance:
    sqrt((69.1*dlat)^2 + (69.1*dlng*cos(lat/57.3))^2) <= radius
    """
    cos_lat = math.cos(latitude / 57.3)
    distance = Sqrt(
        Power((Value(latitude) - F("latitude")) * DEGREE_FACTOR, 2)
        + Power((Value(longitude) - F("longitude")) * (DEGREE_FACTOR * cos_lat), 2),
        output_field=FloatField(),
    )
    return (
        queryset.filter(latitude__isnull=False, longitude__isnull=False)
        .annotate(distance=distance)
        .filter(distance__lte=radius)
    )


class LifecycleFilterSet(df.FilterSet):
    """
    Shared predicates: exact enums, OR-search, geo radius, special flags.

    Subclasses set `kind` and `search_fields`. The acting user comes from
    the request or an explicit `user=` argument.
    """

    kind = None
    search_fields = ()

    search = df.CharFilter(method="filter_search")
    status = df.CharFilter(method="filter_status")
    only_overdue = df.BooleanFilter(method="filter_only_overdue")
    only_high_risk = df.BooleanFilter(method="filter_only_high_risk")
    only_mine = df.BooleanFilter(method="filter_only_mine")

    latitude = df.NumberFilter(method="filter_noop")
    longitude = df.NumberFilter(method="filter_noop")
    radius_km = df.NumberFilter(method="filter_noop")

    def __init__(self, data=None, queryset=None, *, request=None, prefix=None, user=None):
        super().__init__(data=data, queryset=queryset, request=request, prefix=prefix)
        self.user = user if user is not None else getattr(request, "user", None)

    def filter_noop(self, queryset, name, value):
        return queryset

    def filter_search(self, queryset, name, value):
        term = (value or "").strip()
        if not term:
            return queryset
        q = Q()
        for field in self.search_fields:
            q |= Q(**{f"{field}__icontains": term})
        return queryset.filter(q)

    def filter_status(self, queryset, name, value):
        return queryset.filter(status=value.strip().upper())

    def filter_only_overdue(self, queryset, name, value):
        return queryset.filter(overdue_q(self.kind)) if value else queryset

    def filter_only_high_risk(self, queryset, name, value):
        return queryset.filter(high_risk_q(self.kind)) if value else queryset

    def filter_only_mine(self, queryset, name, value):
        if not value:
            return queryset
        if not self.user or not self.user.is_authenticated:
            return queryset.none()
        model = queryset.model
        return queryset.filter(pk__in=model.objects.filter(mine_q(self.kind, self.user)).values("pk"))

    def _filter_enum(self, queryset, field_name, enum_cls, value):
        parsed = parse_enum(enum_cls, value)
        if parsed is None:
            return queryset.none()
        return queryset.filter(**{field_name: parsed})

    def filter_queryset(self, queryset):
        queryset = super().filter_queryset(queryset)
        data = self.form.cleaned_data
        lat, lng, radius = data.get("latitude"), data.get("longitude"), data.get("radius_km")
        if lat is not None and lng is not None and radius is not None:
            queryset = within_radius(queryset, float(lat), float(lng), float(radius))
        return queryset


# ===============================================================
# Hazard
# ===============================================================

class HazardFilter(LifecycleFilterSet):
    kind = "hazard"
    search_fields = (
        "title",
        "description",
        "location",
        "reporter__username",
        "reporter__first_name",
        "reporter__last_name",
        "reporter_department",
    )

    category = df.CharFilter(method="filter_category")
    hazard_type = df.CharFilter(method="filter_hazard_type")
    severity = df.CharFilter(method="filter_severity")
    risk_level = df.CharFilter(method="filter_risk_level")
    location = df.CharFilter(field_name="location", lookup_expr="icontains")
    department = df.CharFilter(field_name="reporter_department", lookup_expr="icontains")
    identified_from = df.DateFilter(field_name="identified_date", lookup_expr="gte")
    identified_to = df.DateFilter(field_name="identified_date", lookup_expr="lte")
    resolution_from = df.DateFilter(field_name="expected_resolution_date", lookup_expr="gte")
    resolution_to = df.DateFilter(field_name="expected_resolution_date", lookup_expr="lte")
    only_unassessed = df.BooleanFilter(method="filter_only_unassessed")

    class Meta:
        model = Hazard
        fields = []

    def filter_category(self, queryset, name, value):
        return queryset.filter(category=value.strip().upper())

    def filter_hazard_type(self, queryset, name, value):
        return queryset.filter(hazard_type=value.strip().upper())

    def filter_severity(self, queryset, name, value):
        return self._filter_enum(queryset, "severity", Severity, value)

    def filter_risk_level(self, queryset, name, value):
        return self._filter_enum(queryset, "current_risk_assessment__risk_level", RiskLevel, value)

    def filter_only_unassessed(self, queryset, name, value):
        return queryset.filter(current_risk_assessment__isnull=True) if value else queryset


# ===============================================================
# License
# ===============================================================

class LicenseFilter(LifecycleFilterSet):
    kind = "license"
    search_fields = (
        "title",
        "description",
        "license_number",
        "holder_name",
        "department",
        "issuing_authority",
    )

    license_type = df.CharFilter(method="filter_license_type")
    priority = df.CharFilter(method="filter_priority")
    risk_level = df.CharFilter(method="filter_risk_level")
    department = df.CharFilter(field_name="department", lookup_expr="icontains")
    issuing_authority = df.CharFilter(field_name="issuing_authority", lookup_expr="icontains")
    holder = df.NumberFilter(field_name="holder_id")
    is_critical_license = df.BooleanFilter(field_name="is_critical_license")
    issued_from = df.DateFilter(field_name="issued_date", lookup_expr="gte")
    issued_to = df.DateFilter(field_name="issued_date", lookup_expr="lte")
    expiry_from = df.DateFilter(field_name="expiry_date", lookup_expr="gte")
    expiry_to = df.DateFilter(field_name="expiry_date", lookup_expr="lte")
    expiring_within_days = df.NumberFilter(method="filter_expiring_within_days")

    class Meta:
        model = License
        fields = []

    def filter_license_type(self, queryset, name, value):
        return queryset.filter(license_type=value.strip().upper())

    def filter_priority(self, queryset, name, value):
        return self._filter_enum(queryset, "priority", Priority, value)

    def filter_risk_level(self, queryset, name, value):
        return self._filter_enum(queryset, "risk_level", RiskLevel, value)

    def filter_expiring_within_days(self, queryset, name, value):
        today = timezone.localdate()
        return queryset.filter(
            expiry_date__gte=today,
            expiry_date__lte=today + timedelta(days=int(value)),
        ).exclude(status__in=LICENSE_TERMINAL)


# ===============================================================
# Training
# ===============================================================

class TrainingFilter(LifecycleFilterSet):
    kind = "training"
    search_fields = (
        "title",
        "description",
        "training_code",
        "instructor_name",
        "venue",
    )

    training_type = df.CharFilter(method="filter_training_type")
    category = df.CharFilter(method="filter_category")
    priority = df.CharFilter(method="filter_priority")
    delivery_method = df.CharFilter(method="filter_delivery_method")
    instructor = df.CharFilter(field_name="instructor_name", lookup_expr="icontains")
    venue = df.CharFilter(field_name="venue", lookup_expr="icontains")
    scheduled_from = df.DateFilter(field_name="scheduled_start_date", lookup_expr="date__gte")
    scheduled_to = df.DateFilter(field_name="scheduled_start_date", lookup_expr="date__lte")
    has_available_spots = df.BooleanFilter(method="filter_has_available_spots")

    class Meta:
        model = Training
        fields = []

    def filter_training_type(self, queryset, name, value):
        return queryset.filter(training_type=value.strip().upper())

    def filter_category(self, queryset, name, value):
        return queryset.filter(category=value.strip().upper())

    def filter_priority(self, queryset, name, value):
        return self._filter_enum(queryset, "priority", Priority, value)

    def filter_delivery_method(self, queryset, name, value):
        return queryset.filter(delivery_method=value.strip().upper())

    def filter_has_available_spots(self, queryset, name, value):
        if value is None:
            return queryset
        annotated = Training.objects.annotate(
            taken=Count("participants", filter=~Q(participants__status=ParticipantStatus.WITHDRAWN)),
        )
        open_ids = annotated.filter(taken__lt=F("max_participants")).values("pk")
        if value:
            return queryset.filter(pk__in=open_ids)
        return queryset.exclude(pk__in=open_ids)


FILTERSETS = {
    "hazard": HazardFilter,
    "license": LicenseFilter,
    "training": TrainingFilter,
}
