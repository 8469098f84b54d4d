from datetime import timedelta

import pytest

from audit.models import SYSTEM_ACTOR, AuditAction, AuditLogEntry
from billing.exceptions import LifecycleConflict, LifecycleValidationError
from billing.models import Subscription, SubscriptionStatus
from billing.services.queries import get_subscription_status
from billing.services.subscription_state import (
    SubscriptionEvent,
    apply_transition,
    decide,
    start_trial,
)
from tenants.models import Tenant


def test_expire_applies_once_end_date_has_passed(now):
    decision = decide(SubscriptionStatus.TRIAL, SubscriptionEvent.EXPIRE, end_date=now - timedelta(seconds=1), now=now)

    assert decision.applies
    assert decision.target == SubscriptionStatus.EXPIRED


def test_expire_is_a_noop_at_the_exact_end_date(now):
    decision = decide(SubscriptionStatus.ACTIVE, SubscriptionEvent.EXPIRE, end_date=now, now=now)

    assert not decision.applies
    assert decision.reason == "end_date not yet passed"


@pytest.mark.parametrize("status", [SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED])
@pytest.mark.parametrize("event", list(SubscriptionEvent))
def test_terminal_statuses_never_move(now, status, event):
    decision = decide(status, event, end_date=now - timedelta(days=1), now=now)

    assert not decision.applies
    assert "terminal" in decision.reason


@pytest.mark.parametrize(
    "status,event,target",
    [
        (SubscriptionStatus.TRIAL, SubscriptionEvent.ACTIVATE, SubscriptionStatus.ACTIVE),
        (SubscriptionStatus.TRIAL, SubscriptionEvent.SUPERSEDE, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.ACTIVE, SubscriptionEvent.SUPERSEDE, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.ACTIVE, SubscriptionEvent.CANCEL, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.ACTIVE, SubscriptionEvent.ACTIVATE, None),
        (SubscriptionStatus.TRIAL, SubscriptionEvent.CANCEL, None),
    ],
)
def test_transition_table(status, event, target):
    assert decide(status, event).target == target


def test_unknown_status_is_rejected():
    with pytest.raises(LifecycleValidationError):
        decide("paused", SubscriptionEvent.EXPIRE)


@pytest.mark.django_db
def test_expiring_last_live_subscription_suspends_tenant(tenant, make_subscription, now):
    subscription = make_subscription(tenant, end=now - timedelta(hours=1))

    result = apply_transition(subscription, SubscriptionEvent.EXPIRE, now=now)

    assert result.applied
    assert result.tenant_suspended
    subscription.refresh_from_db()
    tenant.refresh_from_db()
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert tenant.status == Tenant.Status.SUSPENDED
    assert tenant.suspended_at == now

    actions = list(AuditLogEntry.objects.order_by("id").values_list("action", "user_name"))
    assert actions == [
        (AuditAction.EXPIRE_SUBSCRIPTION, SYSTEM_ACTOR),
        (AuditAction.SUSPEND_TENANT, SYSTEM_ACTOR),
    ]


@pytest.mark.django_db
def test_stale_snapshot_loses_the_race(tenant, make_subscription, now):
    subscription = make_subscription(tenant, end=now - timedelta(hours=1))
    Subscription.objects.filter(pk=subscription.pk).update(status=SubscriptionStatus.EXPIRED)

    result = apply_transition(subscription, SubscriptionEvent.EXPIRE, now=now)

    assert not result.applied
    assert result.reason == "status changed concurrently"
    assert not AuditLogEntry.objects.exists()


@pytest.mark.django_db
def test_supersede_keeps_tenant_active(tenant, make_subscription, now):
    subscription = make_subscription(tenant, end=now + timedelta(days=3))

    result = apply_transition(subscription, SubscriptionEvent.SUPERSEDE, now=now)

    assert result.applied
    assert result.target == SubscriptionStatus.CANCELLED
    assert not result.tenant_suspended
    tenant.refresh_from_db()
    assert tenant.status == Tenant.Status.ACTIVE


@pytest.mark.django_db
def test_start_trial_opens_fourteen_day_trial(tenant, plan, now):
    subscription = start_trial(tenant, plan, now=now)

    assert subscription.status == SubscriptionStatus.TRIAL
    assert subscription.end_date == now + timedelta(days=14)
    tenant.refresh_from_db()
    assert tenant.plan == plan.key
    assert AuditLogEntry.objects.filter(action=AuditAction.START_TRIAL, entity_id=str(subscription.pk)).exists()


@pytest.mark.django_db
def test_start_trial_refuses_second_live_subscription(tenant, plan, now):
    start_trial(tenant, plan, now=now)

    with pytest.raises(LifecycleConflict):
        start_trial(tenant, plan, now=now)

    assert Subscription.objects.filter(tenant=tenant).count() == 1


@pytest.mark.django_db
def test_status_read_agrees_with_expiry_rule_at_the_end_date(tenant, make_subscription, now):
    make_subscription(tenant, end=now)

    assert get_subscription_status(tenant.pk, now=now).status == SubscriptionStatus.TRIAL
    assert get_subscription_status(tenant.pk, now=now + timedelta(seconds=1)).status == SubscriptionStatus.EXPIRED
