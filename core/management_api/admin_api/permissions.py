from rest_framework import permissions


class IsAppAdmin(permissions.BasePermission):
    """Application admins only (``User.is_admin``)"""
    message = "Admin access required"

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.is_admin
        )
