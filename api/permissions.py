"""
Role based permissions. Roles live on the local UserProfile; a user without
a profile has the `user` role.
"""
from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


class HasAdminAccess(BasePermission):
    """Admins and subadmins."""
    message = 'Admin or SubAdmin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'has_admin_access', False))
