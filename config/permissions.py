# config/permissions.py

from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    Permission class that only allows admin users.
    """
    message = 'Only admin users can perform this action.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_admin
        )


class IsOwnerOrAdmin(permissions.BasePermission):
    """
    Permission class that allows restaurant owners and admins.
    Used for: Creating restaurants, listing owner reservations.
    """
    message = 'Only restaurant owners and admins can perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.has_role('owner', 'admin')


class IsRestaurantOwnerOrAdmin(permissions.BasePermission):
    """
    Object permission for restaurant writes.
    Reads are public, writes need the restaurant's owner or an admin.
    """
    message = 'Not authorized'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True

        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.is_admin:
            return True

        return obj.is_owned_by(request.user)


class IsAuthenticatedUser(permissions.BasePermission):
    """
    Permission class for any active, authenticated account.
    Used for: Making reservations, writing reviews.
    """
    message = 'Authentication is required for this action.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.is_active
        )
