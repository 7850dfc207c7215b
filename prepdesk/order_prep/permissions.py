"""
Custom permissions for the Order Preparation module.
"""

from rest_framework.permissions import BasePermission


def is_prep_supervisor(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or user.is_superuser or getattr(user, 'role', None) in ('admin', 'supervisor')


class IsPrepStaff(BasePermission):
    """
    Permission that allows access to anyone working the preparation floor.

    Preparers, supervisors and admins by role, plus Django staff users.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.is_staff:
            return True

        return getattr(user, 'role', None) in ('admin', 'supervisor', 'preparer')


class IsPrepSupervisor(BasePermission):
    """
    Permission for administrative interventions (reassign, reopen, remove,
    priority, dashboards).
    """

    def has_permission(self, request, view):
        return is_prep_supervisor(request.user)
