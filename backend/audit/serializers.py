from rest_framework import serializers

from .models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    tenant_id = serializers.UUIDField(read_only=True, allow_null=True)
    user = serializers.SerializerMethodField()

    class Meta:
        model = AuditLogEntry
        fields = (
            "id",
            "action",
            "entity",
            "entity_id",
            "tenant_id",
            "user",
            "user_name",
            "details",
            "created_at",
        )
        read_only_fields = fields

    def get_user(self, obj):
        user = getattr(obj, "user", None)
        if not user:
            return None
        return {
            "id": user.pk,
            "username": getattr(user, "username", None),
            "email": getattr(user, "email", None),
        }
