"""Platform administrator endpoints for moderating subscription requests."""
from __future__ import annotations

from django.http import JsonResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.viewsets import ReadOnlyModelViewSet
from rest_framework.views import APIView

from accounts.permissions import IsSuperAdmin
from billing.exceptions import LifecycleError
from billing.filters import SubscriptionRequestFilter
from billing.models import SubscriptionRequest
from billing.pagination import BoundedPageNumberPagination
from billing.serializers import (
    RejectionSerializer,
    SubscriptionRequestApproveSerializer,
    SubscriptionRequestSerializer,
    SubscriptionSerializer,
)
from billing.services.queries import subscription_stats
from billing.services.subscription_requests import (
    approve_subscription_request,
    pending_subscription_request_count,
    reject_subscription_request,
)
from billing.views.responses import error_response, lifecycle_error_response


class SubscriptionRequestViewSet(ReadOnlyModelViewSet):
    """Requests across all tenants; ``?status=pending`` gives the review queue."""

    serializer_class = SubscriptionRequestSerializer
    permission_classes = [IsSuperAdmin]
    pagination_class = BoundedPageNumberPagination
    filterset_class = SubscriptionRequestFilter
    ordering_fields = ("requested_at", "total_amount")
    ordering = ("-requested_at",)
    queryset = SubscriptionRequest.objects.select_related("tenant", "plan", "requested_by")
    lookup_url_kwarg = "request_id"


class PendingSubscriptionRequestCountView(APIView):
    permission_classes = [IsSuperAdmin]

    def get(self, request, *args, **kwargs):
        return JsonResponse({"count": pending_subscription_request_count()})


class SubscriptionStatsView(APIView):
    permission_classes = [IsSuperAdmin]

    def get(self, request, *args, **kwargs):
        return JsonResponse(subscription_stats())


class SubscriptionRequestApproveView(APIView):
    permission_classes = [IsSuperAdmin]

    def post(self, request, request_id, *args, **kwargs):
        serializer = SubscriptionRequestApproveSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "invalid_payload",
                "Approval payload is invalid.",
                http_status=status.HTTP_400_BAD_REQUEST,
                details=serializer.errors,
            )
        try:
            result = approve_subscription_request(
                request_id,
                actor=request.user,
                now=timezone.now(),
                invoice_number=serializer.validated_data.get("invoice_number") or None,
                payment_method=serializer.validated_data["payment_method"],
            )
        except LifecycleError as exc:
            return lifecycle_error_response(exc)

        return JsonResponse(
            {
                "request": SubscriptionRequestSerializer(result.request).data,
                "subscription": SubscriptionSerializer(result.subscription).data,
                "invoice_number": result.ledger_entry.invoice_number,
                "superseded_subscription_id": result.superseded_subscription_id,
                "tenant_reactivated": result.tenant_reactivated,
            }
        )


class SubscriptionRequestRejectView(APIView):
    permission_classes = [IsSuperAdmin]

    def post(self, request, request_id, *args, **kwargs):
        serializer = RejectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            subscription_request = reject_subscription_request(
                request_id,
                actor=request.user,
                reason=serializer.validated_data["reason"],
                now=timezone.now(),
            )
        except LifecycleError as exc:
            return lifecycle_error_response(exc)
        return JsonResponse(SubscriptionRequestSerializer(subscription_request).data)
