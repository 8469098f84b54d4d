"""Celery tasks driving the subscription lifecycle batch jobs."""
from __future__ import annotations

import logging
from typing import Any, Dict

from celery import shared_task
from django.utils import timezone

from billing.services.renewal_reminders import run_renewal_reminders
from billing.services.subscription_requests import auto_approve_stale_requests
from billing.services.trial_expiration import run_trial_expiration
from billing.services.trial_notifications import run_trial_notifications

logger = logging.getLogger(__name__)


@shared_task
def run_trial_expiration_task() -> Dict[str, Any]:
    """Expire lapsed subscriptions and archive long-suspended tenants."""

    summary = run_trial_expiration(timezone.now())
    logger.info(
        "Trial expiration finished: %s processed, %s suspended, %s archived, %s errors.",
        summary.processed_count,
        len(summary.suspended_tenant_ids),
        len(summary.archived_tenant_ids),
        len(summary.errors),
    )
    return summary.to_dict()


@shared_task
def run_trial_notifications_task() -> Dict[str, Any]:
    summary = run_trial_notifications(timezone.now())
    logger.info(
        "Trial reminders finished: %s sent, %s skipped, %s failed.",
        summary.sent_count,
        summary.skipped_count,
        summary.failed_count,
    )
    return summary.to_dict()


@shared_task
def auto_approve_subscription_requests_task() -> Dict[str, Any]:
    """Approve subscription requests left pending past the grace period."""

    summary = auto_approve_stale_requests(timezone.now())
    logger.info("Auto-approved %s subscription requests.", summary.approved_count)
    return summary.to_dict()


@shared_task
def run_renewal_reminders_task() -> Dict[str, Any]:
    summary = run_renewal_reminders(timezone.now())
    logger.info(
        "Renewal reminders finished: %s expiring, %s sent, %s failed.",
        summary.expiring_count,
        summary.sent_count,
        summary.failed_count,
    )
    return summary.to_dict()
