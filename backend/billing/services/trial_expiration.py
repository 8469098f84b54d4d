"""Expire lapsed subscriptions, suspend their tenants and archive long-suspended tenants."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from billing.constants import DEFAULT_TENANT_DATA_ARCHIVER, trial_archive_after
from billing.models import LIVE_SUBSCRIPTION_STATUSES, Subscription
from billing.observability.logging import log_billing_event
from billing.observability.metrics import LIFECYCLE_JOB_DURATION, record_job_run
from billing.services.job_summary import JobSummary
from billing.services.subscription_state import SubscriptionEvent, apply_transition
from billing.services.tenant_access import archive_tenant, lock_tenant
from tenants.models import Tenant

logger = logging.getLogger(__name__)

JOB_NAME = "trial_expiration"


@dataclass
class ExpirationSummary(JobSummary):
    processed_count: int = 0
    skipped_count: int = 0
    suspended_tenant_ids: List[str] = field(default_factory=list)
    archived_tenant_ids: List[str] = field(default_factory=list)


def get_tenant_data_archiver() -> Callable:
    path = getattr(settings, "TENANT_DATA_ARCHIVER", DEFAULT_TENANT_DATA_ARCHIVER)
    return import_string(path)


def run_trial_expiration(now: datetime, *, archiver: Optional[Callable] = None) -> ExpirationSummary:
    """Expire every live subscription whose ``end_date`` is before ``now``.

    Each subscription is handled in its own transaction with the tenant row
    locked ahead of the subscription row; a failure is recorded and the batch
    moves on. Failure of the initial candidate query propagates.
    """

    summary = ExpirationSummary()
    try:
        with LIFECYCLE_JOB_DURATION.labels(job=JOB_NAME).time():
            candidates = list(
                Subscription.objects.filter(status__in=LIVE_SUBSCRIPTION_STATUSES, end_date__lt=now)
                .order_by("end_date")
                .values_list("pk", "tenant_id")
            )
            logger.info("Found %d lapsed subscriptions to expire", len(candidates))

            for subscription_id, tenant_id in candidates:
                _expire_one(summary, subscription_id, tenant_id, now)

            _archive_suspended_tenants(summary, now, archiver or get_tenant_data_archiver())
    except Exception:
        record_job_run(JOB_NAME, failed=True)
        raise

    outcome = record_job_run(JOB_NAME, error_count=len(summary.errors))
    log_billing_event(
        message="job.completed",
        job=JOB_NAME,
        extra={
            "outcome": outcome,
            "processed": summary.processed_count,
            "skipped": summary.skipped_count,
            "suspended": len(summary.suspended_tenant_ids),
            "archived": len(summary.archived_tenant_ids),
            "errors": len(summary.errors),
        },
    )
    return summary


def _expire_one(summary: ExpirationSummary, subscription_id, tenant_id, now: datetime) -> None:
    try:
        with transaction.atomic():
            lock_tenant(tenant_id)
            subscription = Subscription.objects.select_for_update().get(pk=subscription_id)
            result = apply_transition(
                subscription,
                SubscriptionEvent.EXPIRE,
                now=now,
                details={"job": JOB_NAME},
            )
    except Subscription.DoesNotExist:
        summary.skipped_count += 1
        return
    except Exception as exc:
        logger.exception("Failed to expire subscription %s", subscription_id)
        summary.add_error("subscription", subscription_id, exc)
        return

    if not result.applied:
        summary.skipped_count += 1
        logger.debug("Skipped subscription %s: %s", subscription_id, result.reason)
        return

    summary.processed_count += 1
    if result.tenant_suspended:
        summary.suspended_tenant_ids.append(str(tenant_id))


def _archive_suspended_tenants(summary: ExpirationSummary, now: datetime, archiver: Callable) -> None:
    cutoff = now - trial_archive_after()
    tenant_ids = list(
        Tenant.objects.filter(status=Tenant.Status.SUSPENDED, suspended_at__lte=cutoff)
        .order_by("suspended_at")
        .values_list("pk", flat=True)
    )

    for tenant_id in tenant_ids:
        try:
            # The archiver runs inside the transaction so its failure keeps the tenant suspended.
            with transaction.atomic():
                archived = archive_tenant(tenant_id, now=now)
                if archived:
                    archiver(tenant_id, now=now)
        except Exception as exc:
            logger.exception("Failed to archive tenant %s", tenant_id)
            summary.add_error("tenant", tenant_id, exc)
            continue

        if archived:
            summary.archived_tenant_ids.append(str(tenant_id))
        else:
            summary.skipped_count += 1
