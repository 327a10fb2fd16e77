# pyright: reportIncompatibleMethodOverride=false
from rest_framework.permissions import SAFE_METHODS, BasePermission


def _is_tenant_member(user) -> bool:
    return bool(user and user.is_authenticated and user.tenant_id)


class IsTenantMember(BasePermission):
    def has_permission(self, request, view):
        return _is_tenant_member(request.user)


class IsTenantEditorOrReadOnly(BasePermission):
    """Any tenant member may read badge templates; only admin and staff may change them."""

    def has_permission(self, request, view):
        user = request.user
        if not _is_tenant_member(user):
            return False
        if request.method in SAFE_METHODS:
            return True
        return user.can_edit_badges
