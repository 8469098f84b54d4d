"""DRF serializers for plans, subscriptions, subscription requests and the ledger."""
from __future__ import annotations

from typing import Any, Dict

from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from billing.models import (
    BillingLedgerEntry,
    BillingPeriod,
    Plan,
    Subscription,
    SubscriptionRequest,
)


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = ["id", "key", "name", "price", "description", "features"]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = PlanSerializer(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "plan",
            "billing_period",
            "status",
            "start_date",
            "end_date",
            "amount",
            "auto_renewal",
        ]
        read_only_fields = fields


class SubscriptionStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    days_remaining = serializers.IntegerField(allow_null=True)
    end_date = serializers.DateTimeField(allow_null=True)
    plan = serializers.CharField(allow_null=True)
    billing_period = serializers.CharField(allow_null=True)
    subscription_id = serializers.CharField(allow_null=True)


class BillingLedgerEntrySerializer(serializers.ModelSerializer):
    plan = serializers.CharField(source="subscription.plan.key", read_only=True)
    billing_period = serializers.CharField(source="subscription.billing_period", read_only=True)

    class Meta:
        model = BillingLedgerEntry
        fields = [
            "id",
            "amount",
            "currency",
            "payment_method",
            "status",
            "invoice_number",
            "plan",
            "billing_period",
            "paid_at",
        ]
        read_only_fields = fields


class SubscriptionRequestSerializer(serializers.ModelSerializer):
    tenant_id = serializers.UUIDField(read_only=True)
    tenant_name = serializers.CharField(source="tenant.name", read_only=True)
    tenant_subdomain = serializers.CharField(source="tenant.subdomain", read_only=True)
    plan = PlanSerializer(read_only=True)
    requested_by_name = serializers.SerializerMethodField()

    class Meta:
        model = SubscriptionRequest
        fields = [
            "id",
            "tenant_id",
            "tenant_name",
            "tenant_subdomain",
            "plan",
            "billing_period",
            "total_amount",
            "status",
            "contact_name",
            "contact_phone",
            "contact_email",
            "requested_by_name",
            "requested_at",
            "resolved_at",
            "rejection_reason",
            "invoice_number",
        ]
        read_only_fields = fields

    def get_requested_by_name(self, obj: SubscriptionRequest):
        return obj.requested_by.display_name if obj.requested_by_id else None


class SubscriptionRequestCreateSerializer(serializers.Serializer):
    plan = serializers.SlugRelatedField(slug_field="key", queryset=Plan.objects.filter(is_active=True))
    billing_period = serializers.ChoiceField(choices=BillingPeriod.choices)
    contact_name = serializers.CharField(max_length=255)
    contact_phone = serializers.CharField(max_length=50)
    contact_email = serializers.EmailField(required=False, allow_blank=True, default="")

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        attrs = super().validate(attrs)
        if not attrs["contact_name"].strip():
            raise serializers.ValidationError({"contact_name": _("Contact name is required.")})
        return attrs


class SubscriptionRequestApproveSerializer(serializers.Serializer):
    invoice_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    payment_method = serializers.ChoiceField(
        choices=BillingLedgerEntry.PaymentMethod.choices,
        default=BillingLedgerEntry.PaymentMethod.CASH,
    )


class RejectionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)
