from django.contrib import admin

from .models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "action",
        "entity",
        "entity_id",
        "tenant",
        "user_name",
    )
    list_filter = ("action", "entity")
    search_fields = ("entity_id", "user_name", "tenant__name", "tenant__subdomain")
    ordering = ("-created_at",)
    readonly_fields = (
        "created_at",
        "action",
        "entity",
        "entity_id",
        "tenant",
        "user",
        "user_name",
        "details",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
