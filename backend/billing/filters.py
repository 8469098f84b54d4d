"""FilterSet definitions for billing endpoints."""
from __future__ import annotations

import django_filters

from billing.models import BillingLedgerEntry, SubscriptionRequest


class SubscriptionRequestFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    billing_period = django_filters.CharFilter(field_name="billing_period", lookup_expr="iexact")
    plan = django_filters.CharFilter(field_name="plan__key", lookup_expr="iexact")
    tenant_id = django_filters.UUIDFilter(field_name="tenant_id")
    requested_after = django_filters.DateTimeFilter(field_name="requested_at", lookup_expr="gte")
    requested_before = django_filters.DateTimeFilter(field_name="requested_at", lookup_expr="lte")

    class Meta:
        model = SubscriptionRequest
        fields = ["status", "billing_period", "plan", "tenant_id"]


class BillingLedgerEntryFilter(django_filters.FilterSet):
    payment_method = django_filters.CharFilter(field_name="payment_method", lookup_expr="iexact")
    paid_after = django_filters.DateTimeFilter(field_name="paid_at", lookup_expr="gte")
    paid_before = django_filters.DateTimeFilter(field_name="paid_at", lookup_expr="lte")

    class Meta:
        model = BillingLedgerEntry
        fields = ["payment_method"]
