from rest_framework import serializers

from .models import Tenant, TenantNameChangeRequest


class TenantLookupSerializer(serializers.ModelSerializer):
    """
    Public projection returned by the subdomain resolver.

    Only routing information is exposed; billing and ownership details stay private.
    """

    class Meta:
        model = Tenant
        fields = ['id', 'name', 'subdomain', 'status']
        read_only_fields = fields


class TenantNameChangeRequestSerializer(serializers.ModelSerializer):
    tenant_id = serializers.UUIDField(read_only=True)
    tenant_subdomain = serializers.CharField(source='tenant.subdomain', read_only=True)
    requested_by_name = serializers.SerializerMethodField()

    class Meta:
        model = TenantNameChangeRequest
        fields = [
            'id', 'tenant_id', 'tenant_subdomain', 'old_name', 'proposed_name',
            'proposed_subdomain', 'reason', 'status', 'requested_by_name',
            'requested_at', 'reviewed_at', 'effective_at', 'applied_at',
            'rejection_reason',
        ]
        read_only_fields = fields

    def get_requested_by_name(self, obj):
        return obj.requested_by.display_name if obj.requested_by_id else None


class TenantNameChangeCreateSerializer(serializers.Serializer):
    """
    Input for a rename request.

    Length, availability and the one-open-request rule are enforced by the
    workflow service so that HTTP and programmatic callers behave the same.
    """

    new_name = serializers.CharField(max_length=255, trim_whitespace=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=2000)
