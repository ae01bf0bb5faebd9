from rest_framework.permissions import BasePermission, SAFE_METHODS

from users.models import Role


class IsAdminOrReadOnly(BasePermission):
    """
    Reference data (tags, barangays): any signed-in user reads,
    only admins write.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return getattr(user, "role", None) == Role.ADMIN
