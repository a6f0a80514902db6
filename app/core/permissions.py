"""
Permission classes shared by the booking and payment APIs.

- IsPlatformAdmin: admin role or superuser

Object-level rules (who may accept, dispute, cancel) are enforced by the
booking state machine, not here, so API calls and background jobs apply
the same checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsPlatformAdmin(permissions.BasePermission):
    """Allows access only to platform admins."""

    message = "Only platform admins can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)
