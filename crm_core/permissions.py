# crm_core/permissions.py
from __future__ import annotations

import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import Profile


# ------------------------------------------------------------------
# Utilities
# ------------------------------------------------------------------
def _bearer_token(request) -> str:
    header = request.headers.get("Authorization", "") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def is_crm_admin(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser or user.is_staff:
        return True
    return Profile.objects.filter(user=user, role=Profile.Role.ADMIN).exists()


# ------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------
class HasAlertServiceToken(BasePermission):
    """
    Gate for the background job endpoints.

    Allowed:
    - CORS preflight (OPTIONS)
    - Authorization: Bearer <ALERTS_SERVICE_TOKEN>
    - an authenticated staff session (manual trigger from the admin)
    """

    message = "A valid service token is required."

    def has_permission(self, request, view) -> bool:
        if request.method == "OPTIONS":
            return True

        expected = getattr(settings, "ALERTS_SERVICE_TOKEN", "") or ""
        presented = _bearer_token(request)
        if expected and presented and hmac.compare_digest(presented, expected):
            return True

        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_staff)


class IsAlertRuleEditorOrReadOnly(BasePermission):
    """
    Any authenticated user may read rules; only CRM admins may change them.
    """

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return is_crm_admin(user)
