"""
Tenant API views.

Endpoints:
- Public subdomain lookup used by request routing
- Rename requests for tenant owners (create, view the open request, withdraw it)
- Rename moderation for platform administrators (list, approve, reject, cancel)

Every status change goes through ``tenants.services.name_changes``; the views
only translate HTTP input and lifecycle errors.
"""

from django.http import Http404, JsonResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounts.context import get_session_context
from accounts.permissions import IsSuperAdmin, IsTenantOwner
from billing.exceptions import EntityNotFound, LifecycleError
from billing.pagination import BoundedPageNumberPagination
from billing.serializers import RejectionSerializer
from billing.views.responses import error_response, lifecycle_error_response

from .models import Tenant, TenantNameChangeRequest
from .resolver import resolve_tenant
from .serializers import (
    TenantLookupSerializer,
    TenantNameChangeCreateSerializer,
    TenantNameChangeRequestSerializer,
)
from .services import name_changes


class TenantBySubdomainView(APIView):
    """
    Resolve a subdomain to its tenant.

    Public: the routing layer calls this before any session exists.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, subdomain, *args, **kwargs):
        tenant = resolve_tenant(subdomain)
        if tenant is None:
            raise Http404("Tenant not found")
        return JsonResponse(TenantLookupSerializer(tenant).data)


class TenantNameChangeRequestView(APIView):
    """
    Rename request of the caller's tenant.

    GET returns the most recent request (or ``null``), POST submits a new one.
    """

    permission_classes = [IsTenantOwner]

    def get(self, request, *args, **kwargs):
        context = get_session_context(request)
        latest = (
            TenantNameChangeRequest.objects.filter(tenant_id=context.tenant_id)
            .order_by('-requested_at')
            .first()
        )
        data = TenantNameChangeRequestSerializer(latest).data if latest else None
        return JsonResponse({'request': data})

    def post(self, request, *args, **kwargs):
        context = get_session_context(request)
        serializer = TenantNameChangeCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                'invalid_payload',
                'Name change request is invalid.',
                http_status=status.HTTP_400_BAD_REQUEST,
                details=serializer.errors,
            )

        tenant = Tenant.objects.get(pk=context.tenant_id)
        try:
            change_request = name_changes.request_name_change(
                tenant=tenant,
                proposed_name=serializer.validated_data['new_name'],
                reason=serializer.validated_data['reason'],
                requested_by=request.user,
                now=timezone.now(),
            )
        except LifecycleError as exc:
            return lifecycle_error_response(exc)
        return JsonResponse(TenantNameChangeRequestSerializer(change_request).data, status=status.HTTP_201_CREATED)


class TenantNameChangeWithdrawView(APIView):
    """Owner withdrawal of their tenant's open rename request."""

    permission_classes = [IsTenantOwner]

    def post(self, request, request_id, *args, **kwargs):
        context = get_session_context(request)
        if not TenantNameChangeRequest.objects.filter(pk=request_id, tenant_id=context.tenant_id).exists():
            return lifecycle_error_response(EntityNotFound(f"Name change request {request_id} not found."))
        try:
            change_request = name_changes.cancel_name_change(request_id, actor=request.user, now=timezone.now())
        except LifecycleError as exc:
            return lifecycle_error_response(exc)
        return JsonResponse(TenantNameChangeRequestSerializer(change_request).data)


class AdminTenantNameChangeViewSet(ReadOnlyModelViewSet):
    """
    Rename requests across all tenants for moderation.

    Supports ``?status=`` filtering; pending requests come first in review order.
    """

    serializer_class = TenantNameChangeRequestSerializer
    permission_classes = [IsSuperAdmin]
    pagination_class = BoundedPageNumberPagination
    filterset_fields = ['status', 'tenant']
    ordering_fields = ['requested_at', 'effective_at']
    ordering = ['-requested_at']
    queryset = TenantNameChangeRequest.objects.select_related('tenant', 'requested_by')
    lookup_url_kwarg = 'request_id'


class AdminTenantNameChangeActionView(APIView):
    """Approve, reject or cancel a rename request; ``operation`` comes from the URL conf."""

    permission_classes = [IsSuperAdmin]
    operation = None

    def post(self, request, request_id, *args, **kwargs):
        now = timezone.now()
        try:
            if self.operation == 'approve':
                change_request = name_changes.approve_name_change(request_id, actor=request.user, now=now)
            elif self.operation == 'reject':
                serializer = RejectionSerializer(data=request.data)
                serializer.is_valid(raise_exception=True)
                change_request = name_changes.reject_name_change(
                    request_id,
                    actor=request.user,
                    reason=serializer.validated_data['reason'],
                    now=now,
                )
            else:
                change_request = name_changes.cancel_name_change(request_id, actor=request.user, now=now)
        except LifecycleError as exc:
            return lifecycle_error_response(exc)
        return JsonResponse(TenantNameChangeRequestSerializer(change_request).data)
