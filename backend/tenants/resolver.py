"""Subdomain to tenant resolution used by request routing."""
from typing import Optional

from .models import Tenant


def normalise_subdomain(subdomain: str) -> str:
    return (subdomain or "").strip().lower()


def resolve_tenant(subdomain: str) -> Optional[Tenant]:
    """
    Return the tenant owning ``subdomain`` or ``None``.

    Lookup is case-insensitive; suspended and archived tenants are still
    returned so callers can redirect them to the billing pages.
    """

    key = normalise_subdomain(subdomain)
    if not key:
        return None
    return Tenant.objects.filter(subdomain__iexact=key).first()
