# hse_core/querying.py
"""
List queries: filter -> sort -> count -> page.

total_count is always taken before slicing, and a page outside the range is
an empty page, never an error.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings
from django.db.models import QuerySet
from rest_framework.exceptions import ValidationError

from .filters import FILTERSETS
from .workflows import get_lifecycle

SORT_FIELDS: Dict[str, Dict[str, str]] = {
    "hazard": {
        "title": "title",
        "category": "category",
        "severity": "severity",
        "status": "status",
        "location": "location",
        "reporter": "reporter__username",
        "identifieddate": "identified_date",
        "expectedresolutiondate": "expected_resolution_date",
        "risklevel": "current_risk_assessment__risk_level",
        "createdat": "created_at",
    },
    "license": {
        "title": "title",
        "licensenumber": "license_number",
        "type": "license_type",
        "licensetype": "license_type",
        "status": "status",
        "priority": "priority",
        "risklevel": "risk_level",
        "holder": "holder_name",
        "holdername": "holder_name",
        "issueddate": "issued_date",
        "expirydate": "expiry_date",
        "createdat": "created_at",
    },
    "training": {
        "title": "title",
        "trainingcode": "training_code",
        "type": "training_type",
        "category": "category",
        "status": "status",
        "priority": "priority",
        "instructor": "instructor_name",
        "venue": "venue",
        "scheduledstartdate": "scheduled_start_date",
        "createdat": "created_at",
    },
}

DEFAULT_SORT: Dict[str, str] = {
    "hazard": "identified_date",
    "license": "created_at",
    "training": "scheduled_start_date",
}


@dataclass
class FilteredResult:
    items: List[Any]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return 1 < self.page_number <= self.total_pages + 1

    @property
    def has_next(self) -> bool:
        return 1 <= self.page_number < self.total_pages

    def as_dict(self, items: Optional[List[Any]] = None) -> Dict[str, Any]:
        return {
            "items": self.items if items is None else items,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "has_previous": self.has_previous,
            "has_next": self.has_next,
        }


def _sort_key(raw) -> str:
    return str(raw or "").strip().lower().replace("_", "").replace("-", "").replace(" ", "")


def apply_sorting(queryset: QuerySet, kind: str, sort_by=None, sort_direction=None) -> QuerySet:
    """
    Unknown sort keys fall back to the kind's default field, descending.
    """
    lifecycle = get_lifecycle(kind)
    field = SORT_FIELDS[lifecycle.kind].get(_sort_key(sort_by))

    if field is None:
        return queryset.order_by(f"-{DEFAULT_SORT[lifecycle.kind]}", "-id")

    descending = str(sort_direction or "").strip().lower() in {"desc", "descending"}
    return queryset.order_by(f"-{field}" if descending else field, "-id")


def _page_number(raw) -> int:
    if raw in (None, ""):
        return 1
    try:
        return int(str(raw).strip())
    except ValueError:
        return 0


def paginate(queryset, page=None, page_size: Optional[int] = None) -> FilteredResult:
    size = page_size or getattr(settings, "HSE_PAGE_SIZE", 20)
    number = _page_number(page)

    total = queryset.count()
    total_pages = math.ceil(total / size) if total else 0

    if number < 1 or number > total_pages:
        items: List[Any] = []
    else:
        offset = (number - 1) * size
        items = list(queryset[offset:offset + size])

    return FilteredResult(
        items=items,
        total_count=total,
        page_number=number,
        page_size=size,
        total_pages=total_pages,
    )


def compose(
    queryset: QuerySet,
    params: Optional[Mapping[str, Any]],
    *,
    kind: str,
    user=None,
    page_size: Optional[int] = None,
) -> FilteredResult:
    """
    Apply every active predicate in `params` (AND-combined; `search` ORs
    across its fields), then sort and page.
    """
    lifecycle = get_lifecycle(kind)
    params = params or {}

    filterset = FILTERSETS[lifecycle.kind](data=params, queryset=queryset, user=user)
    if not filterset.is_valid():
        raise ValidationError(filterset.errors)

    qs = apply_sorting(filterset.qs, lifecycle.kind, params.get("sort_by"), params.get("sort_direction"))
    return paginate(qs, params.get("page"), page_size=page_size)
