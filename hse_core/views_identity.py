# hse_core/views_identity.py
from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import UserRole
from .workflows.roles import primary_role, user_roles


class WhoAmIView(APIView):
    """
    Returns the currently authenticated user, their role assignments and the
    normalized roles the lifecycle engine will apply.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user

        assignments = [
            {"role": ur.role, "department": ur.department}
            for ur in UserRole.objects.filter(user=user).order_by("role", "id")
        ]
        effective = user_roles(user)

        return Response(
            {
                "id": user.id,
                "username": user.username,
                "is_superuser": bool(getattr(user, "is_superuser", False)),
                "roles": assignments,
                "effective_roles": sorted(effective),
                "primary_role": primary_role(effective),
            }
        )
