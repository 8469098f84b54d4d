"""Renewal reminders for paid subscriptions approaching their end date."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from django.conf import settings

from audit.models import AuditAction
from billing.constants import normalise_thresholds, renewal_reminder_thresholds, trial_notification_channel
from billing.models import Subscription, SubscriptionStatus
from billing.observability.logging import log_billing_event
from billing.observability.metrics import LIFECYCLE_JOB_DURATION, RENEWAL_REMINDERS, record_job_run
from billing.services.trial_notifications import NotificationSummary, notify_at_threshold

logger = logging.getLogger(__name__)

JOB_NAME = "renewal_reminders"


@dataclass
class RenewalReminderSummary(NotificationSummary):
    expiring_count: int = 0


def build_renewal_reminder(subscription: Subscription, remaining: int) -> Tuple[str, str]:
    site_name = getattr(settings, "SITE_NAME", "GoodSale")
    site_url = getattr(settings, "SITE_URL", "https://goodsale.app").rstrip("/")
    tenant = subscription.tenant
    plural = "s" if remaining != 1 else ""
    title = f"Your {site_name} subscription expires in {remaining} day{plural}"
    body = (
        f"Your {subscription.plan.name} subscription for {tenant.name} will expire in {remaining} day{plural}.\n\n"
        f"End date: {subscription.end_date:%Y-%m-%d}\n\n"
        "Please contact us or submit a renewal request to keep access to your shop.\n\n"
        f"Visit: {site_url}/{tenant.subdomain}/billing\n"
    )
    return title, body


def run_renewal_reminders(
    now: datetime,
    thresholds: Optional[Iterable[int]] = None,
    transport=None,
) -> RenewalReminderSummary:
    """Remind tenants whose active subscription ends within the largest threshold.

    Reminders share the claim table with trial reminders, so each
    (subscription, threshold) is sent at most once.
    """

    if transport is None:
        from notifications.transport import get_transport

        transport = get_transport()
    thresholds = normalise_thresholds(thresholds) if thresholds is not None else renewal_reminder_thresholds()
    channel = trial_notification_channel()
    horizon = now + timedelta(days=max(thresholds))

    summary = RenewalReminderSummary()
    try:
        with LIFECYCLE_JOB_DURATION.labels(job=JOB_NAME).time():
            candidates = list(
                Subscription.objects.select_related("tenant", "plan")
                .filter(status=SubscriptionStatus.ACTIVE, end_date__gt=now, end_date__lte=horizon)
                .order_by("end_date")
            )
            summary.expiring_count = len(candidates)
            logger.info("Found %d active subscriptions ending before %s", len(candidates), horizon)

            for subscription in candidates:
                notify_at_threshold(
                    summary,
                    subscription,
                    now=now,
                    thresholds=thresholds,
                    channel=channel,
                    transport=transport,
                    build_message=build_renewal_reminder,
                    audit_action=AuditAction.RENEWAL_REMINDER_SENT,
                    counter=RENEWAL_REMINDERS,
                )
    except Exception:
        record_job_run(JOB_NAME, failed=True)
        raise

    outcome = record_job_run(JOB_NAME, error_count=len(summary.errors))
    log_billing_event(
        message="job.completed",
        job=JOB_NAME,
        extra={
            "outcome": outcome,
            "expiring": summary.expiring_count,
            "sent": summary.sent_count,
            "failed": summary.failed_count,
        },
    )
    return summary
