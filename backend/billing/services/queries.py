"""Read-only projections over subscriptions for tenants and administrators."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from django.db.models import Count, QuerySet

from billing.models import (
    LIVE_SUBSCRIPTION_STATUSES,
    BillingLedgerEntry,
    Subscription,
    SubscriptionRequest,
    SubscriptionStatus,
)
from billing.services.trial_notifications import days_remaining

NOT_FOUND = "not_found"


@dataclass(frozen=True)
class SubscriptionStatusView:
    status: str
    days_remaining: Optional[int]
    end_date: Optional[datetime]
    plan: Optional[str] = None
    billing_period: Optional[str] = None
    subscription_id: Optional[str] = None


def current_subscription(tenant_id) -> Optional[Subscription]:
    """The live subscription, or the most recent one when none is live."""

    live = (
        Subscription.objects.select_related("plan")
        .filter(tenant_id=tenant_id, status__in=LIVE_SUBSCRIPTION_STATUSES)
        .first()
    )
    if live is not None:
        return live
    return (
        Subscription.objects.select_related("plan")
        .filter(tenant_id=tenant_id)
        .order_by("-end_date", "-created_at")
        .first()
    )


def get_subscription_status(tenant_id, *, now: datetime) -> SubscriptionStatusView:
    """Status as a tenant should see it at ``now``.

    A live row whose end date has passed reads as expired even before the
    expiration job has run; nothing is written.
    """

    subscription = current_subscription(tenant_id)
    if subscription is None:
        return SubscriptionStatusView(status=NOT_FOUND, days_remaining=None, end_date=None)

    status = subscription.status
    remaining = None
    if subscription.is_live:
        remaining = days_remaining(subscription.end_date, now)
        if subscription.end_date < now:
            status = SubscriptionStatus.EXPIRED

    return SubscriptionStatusView(
        status=str(status),
        days_remaining=remaining,
        end_date=subscription.end_date,
        plan=subscription.plan.key,
        billing_period=subscription.billing_period,
        subscription_id=str(subscription.pk),
    )


def billing_history(tenant_id) -> QuerySet:
    return (
        BillingLedgerEntry.objects.filter(tenant_id=tenant_id)
        .select_related("subscription__plan")
        .order_by("-paid_at", "-created_at")
    )


def subscription_stats() -> Dict[str, int]:
    """Subscription counts per status plus pending request count."""

    counts = {choice: 0 for choice in SubscriptionStatus.values}
    for row in Subscription.objects.order_by().values("status").annotate(total=Count("id")):
        counts[row["status"]] = row["total"]
    counts["pending_requests"] = SubscriptionRequest.objects.filter(
        status=SubscriptionRequest.Status.PENDING
    ).count()
    return counts
