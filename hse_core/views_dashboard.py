# hse_core/views_dashboard.py
from __future__ import annotations

from typing import Any, Dict

from django.utils import timezone
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from hse_core.cache import cache_bypassed
from hse_core.summaries import get_summary
from hse_core.workflows import get_lifecycle


class DashboardSummaryView(APIView):
    """
    Aggregated compliance summary for one entity kind.

    READ-ONLY.
    Counts cover the whole table; list filters do not apply.
    Served from cache unless the request asks for audit data.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, kind: str):
        lifecycle = get_lifecycle(kind)
        if lifecycle is None:
            raise NotFound(f"Unknown dashboard kind '{kind}'.")

        params = request.query_params
        payload: Dict[str, Any] = {
            "kind": lifecycle.kind,
            "generated_at": timezone.now(),
            "cached": not cache_bypassed(params),
            "summary": get_summary(lifecycle.kind, params),
        }
        return Response(payload)
