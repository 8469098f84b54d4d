"""
Django admin configuration for tenants and rename requests.

Status fields are read-only here: tenant access is driven by the subscription
lifecycle and rename requests by the moderation endpoints.
"""

from django.contrib import admin

from .models import Tenant, TenantNameChangeRequest


class TenantNameChangeRequestInline(admin.TabularInline):
    model = TenantNameChangeRequest
    fk_name = 'tenant'
    extra = 0
    fields = ['proposed_name', 'status', 'requested_at', 'effective_at', 'applied_at']
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'subdomain', 'status', 'plan', 'suspended_at', 'data_archived_at', 'created_at']
    list_filter = ['status', 'plan']
    search_fields = ['name', 'subdomain']
    readonly_fields = ['id', 'status', 'subdomain', 'suspended_at', 'data_archived_at', 'created_at', 'updated_at']
    inlines = [TenantNameChangeRequestInline]


@admin.register(TenantNameChangeRequest)
class TenantNameChangeRequestAdmin(admin.ModelAdmin):
    list_display = ['tenant', 'old_name', 'proposed_name', 'status', 'requested_at', 'effective_at']
    list_filter = ['status']
    search_fields = ['old_name', 'proposed_name', 'tenant__subdomain']
    raw_id_fields = ['tenant', 'requested_by', 'reviewed_by']
    readonly_fields = [
        'id', 'status', 'old_name', 'proposed_subdomain', 'requested_at',
        'reviewed_at', 'effective_at', 'applied_at',
    ]
