"""Tenant access status changes driven by the subscription lifecycle.

Every write is a compare-and-set on the tenant's current status so overlapping
jobs and approvals never double-suspend or double-archive a tenant. Callers
that also touch subscriptions lock the tenant row first.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.db import transaction

from audit.models import AuditAction
from audit.services import record_audit
from billing.models import LIVE_SUBSCRIPTION_STATUSES, Subscription
from billing.observability.metrics import TENANT_STATUS_CHANGES
from tenants.models import Tenant

logger = logging.getLogger(__name__)


def lock_tenant(tenant_id) -> Tenant:
    """Lock the tenant row for the rest of the surrounding transaction."""
    return Tenant.objects.select_for_update().get(pk=tenant_id)


def has_live_subscription(tenant_id) -> bool:
    return Subscription.objects.filter(tenant_id=tenant_id, status__in=LIVE_SUBSCRIPTION_STATUSES).exists()


def suspend_tenant_if_unsubscribed(tenant_id, *, now: datetime, actor=None, reason: str = "") -> bool:
    """Move ``active -> suspended`` unless a trial or active subscription remains."""

    with transaction.atomic():
        lock_tenant(tenant_id)
        if has_live_subscription(tenant_id):
            return False
        updated = Tenant.objects.filter(pk=tenant_id, status=Tenant.Status.ACTIVE).update(
            status=Tenant.Status.SUSPENDED,
            suspended_at=now,
            updated_at=now,
        )
    if not updated:
        return False

    TENANT_STATUS_CHANGES.labels(target=Tenant.Status.SUSPENDED).inc()
    record_audit(
        action=AuditAction.SUSPEND_TENANT,
        entity="tenant",
        entity_id=tenant_id,
        tenant_id=tenant_id,
        user=actor,
        details={"reason": reason or "no_live_subscription", "suspended_at": now},
    )
    logger.info("Suspended tenant %s (%s)", tenant_id, reason or "no_live_subscription")
    return True


def archive_tenant(tenant_id, *, now: datetime, actor=None) -> bool:
    """Move ``suspended -> archived`` while no live subscription exists.

    ``data_archived_at`` is left to the configured tenant data archiver.
    """

    with transaction.atomic():
        lock_tenant(tenant_id)
        if has_live_subscription(tenant_id):
            return False
        updated = Tenant.objects.filter(pk=tenant_id, status=Tenant.Status.SUSPENDED).update(
            status=Tenant.Status.ARCHIVED,
            updated_at=now,
        )
    if not updated:
        return False

    TENANT_STATUS_CHANGES.labels(target=Tenant.Status.ARCHIVED).inc()
    record_audit(
        action=AuditAction.ARCHIVE_TENANT,
        entity="tenant",
        entity_id=tenant_id,
        tenant_id=tenant_id,
        user=actor,
        details={"archived_at": now},
    )
    logger.info("Archived tenant %s", tenant_id)
    return True


def reactivate_tenant(tenant_id, *, plan_key: str, now: datetime, actor=None) -> bool:
    """Restore access after a paid subscription starts and record the plan key.

    Returns ``True`` when the tenant was suspended or archived beforehand.
    """

    Tenant.objects.filter(pk=tenant_id).exclude(plan=plan_key).update(plan=plan_key, updated_at=now)
    previous: Optional[str] = (
        Tenant.objects.filter(pk=tenant_id).values_list("status", flat=True).first()
    )
    updated = Tenant.objects.filter(
        pk=tenant_id,
        status__in=[Tenant.Status.SUSPENDED, Tenant.Status.ARCHIVED],
    ).update(
        status=Tenant.Status.ACTIVE,
        suspended_at=None,
        data_archived_at=None,
        updated_at=now,
    )
    if not updated:
        return False

    TENANT_STATUS_CHANGES.labels(target=Tenant.Status.ACTIVE).inc()
    record_audit(
        action=AuditAction.REACTIVATE_TENANT,
        entity="tenant",
        entity_id=tenant_id,
        tenant_id=tenant_id,
        user=actor,
        details={"from": previous, "plan": plan_key},
    )
    return True
