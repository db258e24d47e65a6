from rest_framework.response import Response
from rest_framework.views import APIView

from hse_core.workflows import LIFECYCLES


class ApiHomeView(APIView):
    """Unauthenticated index of the API entry points."""

    authentication_classes = []
    permission_classes = []

    def get(self, request):
        collections = {f"{kind}s": f"/hse/{kind}s/" for kind in LIFECYCLES}
        return Response(
            {
                "service": "hse-compliance",
                "auth": {
                    "token_obtain": "/api/token/",
                    "token_refresh": "/api/token/refresh/",
                },
                "docs": {
                    "schema": "/api/schema/",
                    "swagger": "/api/schema/swagger-ui/",
                    "redoc": "/api/schema/redoc/",
                },
                "collections": collections,
                "workflows": "/hse/workflows/",
                "dashboards": {kind: f"/hse/dashboard/{kind}/" for kind in LIFECYCLES},
                "health": "/hse/health/",
            }
        )
