"""
Role based permission classes.

Roles are stored on ``User.role``; admin and staff form the elevated
tier that may act on any patient's records.
"""
from django.conf import settings
from rest_framework.permissions import BasePermission

from clinic.services.access import ELEVATED_ROLES


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsElevatedRole(BasePermission):
    """Admin or staff."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ELEVATED_ROLES


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "admin"


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "patient"


class IsDoctorRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "doctor"


class CanUseAssistant(BasePermission):
    """Roles listed in ``ASSISTANT_ALLOWED_ROLES`` may chat with the assistant."""
    message = "Access denied. Only admins and staff can use this feature."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in settings.ASSISTANT_ALLOWED_ROLES
