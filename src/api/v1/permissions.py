"""Custom DRF permissions for the team closing API."""
from rest_framework.permissions import BasePermission


class IsClosingManager(BasePermission):
    """Closing commands are reserved to staff users."""

    message = "Only staff users can manage team closings."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)
