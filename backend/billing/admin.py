from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import (
    BillingLedgerEntry,
    Plan,
    Subscription,
    SubscriptionRequest,
    TrialNotificationRecord,
)


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    """Manage subscription plan catalog."""

    list_display = ("key", "name", "price", "is_active", "created_at")
    search_fields = ("key", "name", "description")
    list_filter = ("is_active",)
    ordering = ("price", "name")
    readonly_fields = ("created_at",)

    fieldsets = (
        ("Plan Details", {"fields": ("key", "name", "description", "features", "is_active")}),
        ("Pricing", {"fields": ("price",)}),
        ("Timestamps", {"fields": ("created_at",)}),
    )


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Read-only view of subscription rows; status only moves through the lifecycle services."""

    list_display = (
        "id",
        "tenant_link",
        "plan",
        "status",
        "billing_period",
        "start_date",
        "end_date",
        "amount",
    )
    list_filter = ("status", "billing_period", "plan")
    search_fields = ("id", "tenant__name", "tenant__subdomain")
    ordering = ("-start_date",)
    list_select_related = ("tenant", "plan")
    readonly_fields = (
        "tenant",
        "plan",
        "status",
        "billing_period",
        "start_date",
        "end_date",
        "amount",
        "auto_renewal",
        "source_request",
        "created_at",
        "updated_at",
    )

    @admin.display(description="Tenant")
    def tenant_link(self, obj):
        url = reverse("admin:tenants_tenant_change", args=[obj.tenant_id])
        return format_html('<a href="{}">{}</a>', url, obj.tenant.name)

    def has_add_permission(self, request):
        return False


@admin.register(SubscriptionRequest)
class SubscriptionRequestAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "tenant",
        "plan",
        "billing_period",
        "total_amount",
        "status",
        "requested_at",
        "resolved_at",
    )
    list_filter = ("status", "billing_period", "plan")
    search_fields = ("id", "tenant__name", "contact_name", "contact_phone", "invoice_number")
    ordering = ("-requested_at",)
    list_select_related = ("tenant", "plan")
    readonly_fields = (
        "tenant",
        "plan",
        "billing_period",
        "total_amount",
        "status",
        "requested_by",
        "requested_at",
        "resolved_by",
        "resolved_at",
        "rejection_reason",
        "invoice_number",
    )

    fieldsets = (
        ("Request", {"fields": ("tenant", "plan", "billing_period", "total_amount", "status")}),
        ("Contact", {"fields": ("contact_name", "contact_phone", "contact_email")}),
        ("Resolution", {"fields": ("requested_by", "requested_at", "resolved_by", "resolved_at", "rejection_reason", "invoice_number")}),
    )

    def has_add_permission(self, request):
        return False


@admin.register(BillingLedgerEntry)
class BillingLedgerEntryAdmin(admin.ModelAdmin):
    """Append-only payment ledger."""

    list_display = ("paid_at", "tenant", "amount", "currency", "payment_method", "invoice_number", "recorded_by")
    list_filter = ("payment_method", "currency")
    search_fields = ("invoice_number", "tenant__name", "recorded_by")
    ordering = ("-paid_at",)
    list_select_related = ("tenant",)

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(TrialNotificationRecord)
class TrialNotificationRecordAdmin(admin.ModelAdmin):
    list_display = ("subscription", "threshold_days", "channel", "sent_at")
    list_filter = ("threshold_days", "channel")
    ordering = ("-sent_at",)
    readonly_fields = ("subscription", "threshold_days", "channel", "sent_at")
