from __future__ import annotations

from django_filters import rest_framework as filters
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounts.permissions import IsSuperAdmin
from billing.pagination import BoundedPageNumberPagination

from .models import AuditLogEntry
from .serializers import AuditLogEntrySerializer


class AuditLogEntryFilter(filters.FilterSet):
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")
    action = filters.CharFilter(field_name="action", lookup_expr="iexact")
    entity = filters.CharFilter(field_name="entity", lookup_expr="iexact")
    tenant_id = filters.UUIDFilter(field_name="tenant_id")

    class Meta:
        model = AuditLogEntry
        fields = ["action", "entity", "entity_id", "tenant_id"]


class AuditLogEntryViewSet(ReadOnlyModelViewSet):
    """Expose the lifecycle audit trail to platform administrators."""

    serializer_class = AuditLogEntrySerializer
    permission_classes = [IsSuperAdmin]
    pagination_class = BoundedPageNumberPagination
    queryset = AuditLogEntry.objects.select_related("user").order_by("-created_at", "-id")
    filterset_class = AuditLogEntryFilter
    filter_backends = [filters.DjangoFilterBackend]
