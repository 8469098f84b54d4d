from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounts.permissions import IsTenantMember
from billing.pagination import BoundedPageNumberPagination

from .models import Notification
from .serializers import MarkAsReadSerializer, NotificationSerializer


class NotificationViewSet(ReadOnlyModelViewSet):
    """Inbox of the caller: notifications addressed to them or to their whole tenant."""

    serializer_class = NotificationSerializer
    permission_classes = [IsTenantMember]
    pagination_class = BoundedPageNumberPagination
    filterset_fields = ["is_read", "type"]

    def get_queryset(self):
        user = self.request.user
        return Notification.objects.filter(
            Q(user=user) | Q(user__isnull=True),
            tenant_id=user.tenant_id,
        ).order_by("-created_at")

    @action(detail=False, methods=["post"], url_path="mark-as-read")
    def mark_as_read(self, request):
        serializer = MarkAsReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        queryset = self.get_queryset().filter(is_read=False)
        if not serializer.validated_data["all"]:
            queryset = queryset.filter(pk__in=serializer.validated_data["ids"])
        updated = queryset.update(is_read=True)
        return Response({"updated": updated}, status=status.HTTP_200_OK)
