from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    User admin configuration
    """
    list_display = (
        'username', 'email', 'tenant', 'role',
        'is_super_admin', 'is_active', 'created_at'
    )
    list_filter = (
        'is_active', 'is_staff', 'is_super_admin', 'role', 'created_at'
    )
    search_fields = (
        'username', 'email', 'first_name', 'last_name',
        'phone', 'tenant__name', 'tenant__subdomain'
    )
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('tenant',)

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Tenant', {
            'fields': ('tenant', 'role', 'is_super_admin', 'phone')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Tenant', {
            'fields': ('tenant', 'role', 'is_super_admin')
        }),
    )
