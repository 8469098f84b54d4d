"""
Django application configuration for the tenants app.

The tenants app owns the shop-level entities of the platform:
- Tenant records keyed by subdomain
- Rename requests and their moderated, scheduled application
- Resolution of incoming subdomains to tenants

Tenant access status is driven by the billing lifecycle; this app only stores it.
"""

from django.apps import AppConfig


class TenantsConfig(AppConfig):
    """
    Application configuration for the tenants Django app.

    Features provided by this app:
    - Tenant lookup by subdomain for request routing
    - Rename requests with administrator review, a cooling-off period and
      automatic approval of requests nobody reviewed
    - Hook for archiving tenant operational data once a tenant is archived
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tenants'
    verbose_name = 'Tenant Management'
