from rest_framework.permissions import BasePermission


class IsAdmin(BasePermission):
    """Authenticated caller with role == "admin"; gates every /api/admin endpoint."""
    message = "Forbidden"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and getattr(user, "is_authenticated", False) and getattr(user, "role", None) == "admin")
