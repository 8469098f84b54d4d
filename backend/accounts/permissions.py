from rest_framework import permissions

from .context import get_session_context


class IsSuperAdmin(permissions.BasePermission):
    """
    Platform administrators only. Unauthenticated callers get 401 rather than 403.
    """

    def has_permission(self, request, view):
        context = get_session_context(request)
        return context.is_super_admin


class IsTenantMember(permissions.BasePermission):
    """
    Any authenticated user attached to a tenant.
    """

    def has_permission(self, request, view):
        context = get_session_context(request)
        return context.tenant_id is not None


class IsTenantOwner(IsTenantMember):
    """
    Tenant owners only; used for billing and rename requests.
    """

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.role == request.user.Role.OWNER
