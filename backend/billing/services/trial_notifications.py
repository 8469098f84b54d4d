"""Trial expiry reminders sent once per (subscription, threshold)."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction

from audit.models import AuditAction
from audit.services import record_audit
from billing.constants import normalise_thresholds, trial_notification_channel, trial_notification_thresholds
from billing.models import Subscription, SubscriptionStatus, TrialNotificationRecord
from billing.observability.logging import log_billing_event
from billing.observability.metrics import LIFECYCLE_JOB_DURATION, TRIAL_NOTIFICATIONS, record_job_run
from billing.services.job_summary import JobSummary

logger = logging.getLogger(__name__)

JOB_NAME = "trial_notifications"
ONE_DAY = timedelta(days=1)


@dataclass
class NotificationSummary(JobSummary):
    sent_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)


def days_remaining(end_date: datetime, now: datetime) -> int:
    """Whole days left, rounded up and never negative."""
    return max(0, math.ceil((end_date - now) / ONE_DAY))


def select_threshold(remaining: int, thresholds: Iterable[int]) -> Optional[int]:
    """The smallest configured threshold at or above ``remaining``."""
    eligible = [threshold for threshold in thresholds if threshold >= remaining]
    return min(eligible) if eligible else None


def build_reminder(subscription: Subscription, remaining: int) -> Tuple[str, str]:
    site_name = getattr(settings, "SITE_NAME", "GoodSale")
    site_url = getattr(settings, "SITE_URL", "https://goodsale.app").rstrip("/")
    tenant = subscription.tenant
    plural = "s" if remaining != 1 else ""
    title = f"Your {site_name} trial expires in {remaining} day{plural}"
    body = (
        f"Your free trial of {site_name} for {tenant.name} is expiring in {remaining} day{plural}.\n\n"
        f"Trial end date: {subscription.end_date:%Y-%m-%d}\n\n"
        "After your trial expires, you won't be able to access:\n"
        "- Point of Sale (POS)\n"
        "- Inventory Management\n"
        "- Customer Data\n"
        "- Reports & Analytics\n\n"
        f"To keep using {site_name}, please upgrade your subscription now.\n\n"
        f"Visit: {site_url}/{tenant.subdomain}/billing\n"
    )
    return title, body


def run_trial_notifications(
    now: datetime,
    thresholds: Optional[Iterable[int]] = None,
    transport=None,
) -> NotificationSummary:
    """Remind tenants whose trial ends within the largest threshold.

    A reminder is claimed by inserting its ``TrialNotificationRecord`` before
    dispatch, so concurrent runs cannot both send it. A failed dispatch
    releases the claim and a later run may try again.
    """

    if transport is None:
        from notifications.transport import get_transport

        transport = get_transport()
    thresholds = normalise_thresholds(thresholds) if thresholds is not None else trial_notification_thresholds()
    channel = trial_notification_channel()
    horizon = now + timedelta(days=max(thresholds))

    summary = NotificationSummary()
    try:
        with LIFECYCLE_JOB_DURATION.labels(job=JOB_NAME).time():
            candidates = list(
                Subscription.objects.select_related("tenant")
                .filter(status=SubscriptionStatus.TRIAL, end_date__gt=now, end_date__lte=horizon)
                .order_by("end_date")
            )
            logger.info("Found %d trials ending before %s", len(candidates), horizon)

            for subscription in candidates:
                notify_at_threshold(
                    summary,
                    subscription,
                    now=now,
                    thresholds=thresholds,
                    channel=channel,
                    transport=transport,
                    build_message=build_reminder,
                    audit_action=AuditAction.TRIAL_NOTIFICATION_SENT,
                    counter=TRIAL_NOTIFICATIONS,
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
            "sent": summary.sent_count,
            "skipped": summary.skipped_count,
            "failed": summary.failed_count,
        },
    )
    return summary


def notify_at_threshold(
    summary: NotificationSummary,
    subscription: Subscription,
    *,
    now: datetime,
    thresholds,
    channel: str,
    transport,
    build_message: Callable[[Subscription, int], Tuple[str, str]],
    audit_action: str,
    counter,
) -> None:
    """Claim the reminder for the matching threshold, then dispatch it.

    The claim is a ``TrialNotificationRecord`` row; a failed dispatch deletes it.
    """

    remaining = days_remaining(subscription.end_date, now)
    threshold = select_threshold(remaining, thresholds)
    result: Dict[str, Any] = {
        "tenant_id": str(subscription.tenant_id),
        "subscription_id": str(subscription.pk),
        "days_remaining": remaining,
        "threshold": threshold,
    }
    if threshold is None:
        summary.skipped_count += 1
        summary.results.append({**result, "outcome": "skipped"})
        return

    try:
        with transaction.atomic():
            claim = TrialNotificationRecord.objects.create(
                subscription=subscription,
                threshold_days=threshold,
                channel=channel,
                sent_at=now,
            )
    except IntegrityError:
        summary.skipped_count += 1
        counter.labels(threshold=str(threshold), outcome="duplicate").inc()
        summary.results.append({**result, "outcome": "already_sent"})
        return

    title, body = build_message(subscription, remaining)
    try:
        delivered = transport.send(subscription.tenant_id, channel, title, body)
        error: Optional[Exception] = None if delivered else RuntimeError("transport reported no delivery")
    except Exception as exc:
        logger.exception("Reminder dispatch failed for subscription %s", subscription.pk)
        error = exc

    if error is not None:
        claim.delete()
        summary.failed_count += 1
        summary.add_error("subscription", subscription.pk, error)
        counter.labels(threshold=str(threshold), outcome="failed").inc()
        summary.results.append({**result, "outcome": "failed"})
        return

    summary.sent_count += 1
    counter.labels(threshold=str(threshold), outcome="sent").inc()
    summary.results.append({**result, "outcome": "sent"})
    record_audit(
        action=audit_action,
        entity="subscription",
        entity_id=subscription.pk,
        tenant_id=subscription.tenant_id,
        details={
            "threshold_days": threshold,
            "days_remaining": remaining,
            "channel": channel,
            "subject": title,
        },
    )
