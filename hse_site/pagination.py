# hse_site/pagination.py
from __future__ import annotations

from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from hse_core.querying import paginate


class DefaultPagination(BasePagination):
    """
    1-indexed page numbers with a fixed page size.

    Pages outside the result range return an empty list instead of a 404,
    so clients can always read total_count / total_pages.
    """

    page_query_param = "page"

    def paginate_queryset(self, queryset, request, view=None):
        self.result = paginate(queryset, request.query_params.get(self.page_query_param))
        return self.result.items

    def get_paginated_response(self, data):
        return Response(self.result.as_dict(items=data))

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "items": schema,
                "total_count": {"type": "integer"},
                "total_pages": {"type": "integer"},
                "page_number": {"type": "integer"},
                "page_size": {"type": "integer"},
                "has_previous": {"type": "boolean"},
                "has_next": {"type": "boolean"},
            },
        }
