"""Default tenant data archiver invoked when a tenant becomes archived."""
import logging
from datetime import datetime

from .models import Tenant

logger = logging.getLogger(__name__)


def flag_tenant_data_archived(tenant_id, *, now: datetime) -> None:
    """
    Mark the tenant's operational data as inaccessible.

    POS, inventory and customer records stay in place; deployments that move
    them to cold storage point ``TENANT_DATA_ARCHIVER`` at their own callable
    with the same signature.
    """

    Tenant.objects.filter(pk=tenant_id, data_archived_at__isnull=True).update(data_archived_at=now)
    logger.info("Tenant %s data flagged as archived at %s", tenant_id, now.isoformat())
