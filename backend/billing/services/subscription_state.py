"""Subscription status transitions.

``decide`` is the pure rule table; ``apply_transition`` persists a decision with
a compare-and-transition update so that, of two overlapping callers, exactly one
observes the change and the other gets a no-op result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from django.db import IntegrityError, models, transaction

from audit.models import AuditAction
from audit.services import record_audit
from billing.constants import trial_period
from billing.exceptions import LifecycleConflict, LifecycleValidationError
from billing.models import BillingPeriod, Plan, Subscription, SubscriptionStatus
from billing.observability.logging import log_billing_event
from billing.observability.metrics import SUBSCRIPTION_TRANSITIONS
from billing.services.tenant_access import suspend_tenant_if_unsubscribed
from tenants.models import Tenant

logger = logging.getLogger(__name__)


class SubscriptionEvent(models.TextChoices):
    EXPIRE = "EXPIRE", "Expire"
    SUPERSEDE = "SUPERSEDE", "Supersede"
    ACTIVATE = "ACTIVATE", "Activate"
    CANCEL = "CANCEL", "Cancel"


TERMINAL_STATUSES = frozenset({SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED})

_TRANSITIONS = {
    (SubscriptionStatus.TRIAL, SubscriptionEvent.ACTIVATE): SubscriptionStatus.ACTIVE,
    (SubscriptionStatus.TRIAL, SubscriptionEvent.EXPIRE): SubscriptionStatus.EXPIRED,
    (SubscriptionStatus.ACTIVE, SubscriptionEvent.EXPIRE): SubscriptionStatus.EXPIRED,
    (SubscriptionStatus.TRIAL, SubscriptionEvent.SUPERSEDE): SubscriptionStatus.CANCELLED,
    (SubscriptionStatus.ACTIVE, SubscriptionEvent.SUPERSEDE): SubscriptionStatus.CANCELLED,
    (SubscriptionStatus.ACTIVE, SubscriptionEvent.CANCEL): SubscriptionStatus.CANCELLED,
}

_AUDIT_ACTIONS = {
    SubscriptionEvent.EXPIRE: AuditAction.EXPIRE_SUBSCRIPTION,
    SubscriptionEvent.SUPERSEDE: AuditAction.SUPERSEDE_SUBSCRIPTION,
    SubscriptionEvent.ACTIVATE: AuditAction.ACTIVATE_SUBSCRIPTION,
    SubscriptionEvent.CANCEL: AuditAction.CANCEL_SUBSCRIPTION,
}


@dataclass(frozen=True)
class TransitionDecision:
    source: str
    event: str
    target: Optional[str] = None
    reason: str = ""

    @property
    def applies(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class TransitionResult:
    subscription_id: Any
    tenant_id: Any
    event: str
    source: str
    target: Optional[str]
    applied: bool
    reason: str = ""
    tenant_suspended: bool = False


def decide(status: str, event: str, *, end_date: Optional[datetime] = None,
           now: Optional[datetime] = None) -> TransitionDecision:
    """Return the target status for ``event`` or an explicit no-op.

    Defined for every (status, event) pair. ``EXPIRE`` only applies once
    ``end_date`` is strictly in the past.
    """

    try:
        status = SubscriptionStatus(status)
        event = SubscriptionEvent(event)
    except ValueError as exc:
        raise LifecycleValidationError(str(exc)) from exc

    if status in TERMINAL_STATUSES:
        return TransitionDecision(source=status, event=event, reason=f"{status} is terminal")

    target = _TRANSITIONS.get((status, event))
    if target is None:
        return TransitionDecision(source=status, event=event, reason=f"{event} does not apply to {status}")

    if event == SubscriptionEvent.EXPIRE:
        if end_date is None or now is None:
            raise LifecycleValidationError("EXPIRE requires both end_date and now.")
        if not end_date < now:
            return TransitionDecision(source=status, event=event, reason="end_date not yet passed")

    return TransitionDecision(source=status, event=event, target=target)


def apply_transition(
    subscription: Subscription,
    event: str,
    *,
    now: datetime,
    actor=None,
    details: Optional[Dict[str, Any]] = None,
) -> TransitionResult:
    """Persist ``event`` against ``subscription`` if it still holds the expected status.

    A lost race (zero rows updated) is reported as ``applied=False``. On expiry
    the tenant is suspended when no live subscription remains.
    """

    decision = decide(subscription.status, event, end_date=subscription.end_date, now=now)
    if not decision.applies:
        return TransitionResult(
            subscription_id=subscription.pk,
            tenant_id=subscription.tenant_id,
            event=decision.event,
            source=decision.source,
            target=None,
            applied=False,
            reason=decision.reason,
        )

    updated = Subscription.objects.filter(pk=subscription.pk, status=decision.source).update(
        status=decision.target,
        updated_at=now,
    )
    if not updated:
        return TransitionResult(
            subscription_id=subscription.pk,
            tenant_id=subscription.tenant_id,
            event=decision.event,
            source=decision.source,
            target=None,
            applied=False,
            reason="status changed concurrently",
        )

    subscription.status = decision.target
    SUBSCRIPTION_TRANSITIONS.labels(event=decision.event, source=decision.source, target=decision.target).inc()

    payload: Dict[str, Any] = {"from": decision.source, "to": decision.target, "end_date": subscription.end_date}
    if details:
        payload.update(details)
    record_audit(
        action=_AUDIT_ACTIONS[decision.event],
        entity="subscription",
        entity_id=subscription.pk,
        tenant_id=subscription.tenant_id,
        user=actor,
        details=payload,
    )
    log_billing_event(
        message="subscription.transition",
        tenant_id=subscription.tenant_id,
        actor=getattr(actor, "display_name", None),
        extra={"subscription_id": str(subscription.pk), "event": decision.event, "to": decision.target},
    )

    suspended = False
    if decision.target == SubscriptionStatus.EXPIRED:
        suspended = suspend_tenant_if_unsubscribed(
            subscription.tenant_id, now=now, actor=actor, reason="subscription_expired"
        )

    return TransitionResult(
        subscription_id=subscription.pk,
        tenant_id=subscription.tenant_id,
        event=decision.event,
        source=decision.source,
        target=decision.target,
        applied=True,
        tenant_suspended=suspended,
    )


def start_trial(tenant: Tenant, plan: Plan, *, now: datetime, actor=None) -> Subscription:
    """Open the signup trial; refuses when the tenant already has a live subscription."""

    try:
        with transaction.atomic():
            subscription = Subscription.objects.create(
                tenant=tenant,
                plan=plan,
                billing_period=BillingPeriod.ONE_MONTH,
                status=SubscriptionStatus.TRIAL,
                start_date=now,
                end_date=now + trial_period(),
                amount=0,
            )
            Tenant.objects.filter(pk=tenant.pk).update(plan=plan.key, updated_at=now)
    except IntegrityError as exc:
        raise LifecycleConflict(f"Tenant {tenant.pk} already has a live subscription.") from exc

    tenant.plan = plan.key
    record_audit(
        action=AuditAction.START_TRIAL,
        entity="subscription",
        entity_id=subscription.pk,
        tenant_id=tenant.pk,
        user=actor,
        details={"plan": plan.key, "end_date": subscription.end_date},
    )
    logger.info("Started trial %s for tenant %s until %s", subscription.pk, tenant.pk, subscription.end_date)
    return subscription
