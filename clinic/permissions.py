"""
Custom permission classes for role based access control.

Ownership rules (a patient reading their own record, the ordering
doctor editing an interpretation) are checked in the services.
"""
from rest_framework.permissions import BasePermission

from .models import User


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_PATIENT


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_ADMIN


class IsStaffOrAdmin(BasePermission):
    """Staff or administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in {User.ROLE_STAFF, User.ROLE_ADMIN}
