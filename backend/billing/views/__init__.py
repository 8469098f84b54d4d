"""Tenant-facing billing endpoints: plans, subscription status, history and upgrade requests."""
from __future__ import annotations

import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from accounts.context import get_session_context
from accounts.permissions import IsTenantMember, IsTenantOwner
from billing.exceptions import LifecycleError
from billing.filters import BillingLedgerEntryFilter
from billing.models import Plan
from billing.pagination import BoundedPageNumberPagination
from billing.serializers import (
    BillingLedgerEntrySerializer,
    PlanSerializer,
    SubscriptionRequestCreateSerializer,
    SubscriptionRequestSerializer,
    SubscriptionStatusSerializer,
)
from billing.services.queries import billing_history, get_subscription_status
from billing.services.subscription_requests import submit_subscription_request
from billing.views.responses import error_response, lifecycle_error_response
from tenants.models import Tenant

logger = logging.getLogger(__name__)


def _current_tenant(request) -> Tenant:
    context = get_session_context(request)
    return get_object_or_404(Tenant, pk=context.tenant_id)


class PlanListView(ListAPIView):
    serializer_class = PlanSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None
    queryset = Plan.objects.filter(is_active=True).order_by("price")


class SubscriptionStatusView(APIView):
    permission_classes = [IsTenantMember]

    def get(self, request, *args, **kwargs):
        tenant = _current_tenant(request)
        view = get_subscription_status(tenant.pk, now=timezone.now())
        payload = SubscriptionStatusSerializer(view).data
        payload["tenant_status"] = tenant.status
        return JsonResponse(payload)


class BillingHistoryView(ListAPIView):
    serializer_class = BillingLedgerEntrySerializer
    permission_classes = [IsTenantMember]
    pagination_class = BoundedPageNumberPagination
    filterset_class = BillingLedgerEntryFilter

    def get_queryset(self):
        tenant = _current_tenant(self.request)
        return billing_history(tenant.pk)


class SubscriptionRequestSubmitView(APIView):
    permission_classes = [IsTenantOwner]

    def post(self, request, *args, **kwargs):
        tenant = _current_tenant(request)
        serializer = SubscriptionRequestCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "invalid_payload",
                "Subscription request is invalid.",
                http_status=status.HTTP_400_BAD_REQUEST,
                details=serializer.errors,
            )
        data = serializer.validated_data
        try:
            subscription_request = submit_subscription_request(
                tenant=tenant,
                plan=data["plan"],
                billing_period=data["billing_period"],
                contact_name=data["contact_name"],
                contact_phone=data["contact_phone"],
                contact_email=data.get("contact_email", ""),
                requested_by=request.user,
                now=timezone.now(),
            )
        except LifecycleError as exc:
            return lifecycle_error_response(exc)

        return JsonResponse(
            SubscriptionRequestSerializer(subscription_request).data,
            status=status.HTTP_201_CREATED,
        )
