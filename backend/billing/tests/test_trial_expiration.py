from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError

from audit.models import SYSTEM_ACTOR, AuditAction, AuditLogEntry
from billing.models import SubscriptionStatus
from billing.services import subscription_state
from billing.services.trial_expiration import run_trial_expiration
from tenants.archival import flag_tenant_data_archived
from tenants.models import Tenant

pytestmark = pytest.mark.django_db


def test_lapsed_trial_is_expired_and_tenant_suspended(tenant, make_subscription, now):
    subscription = make_subscription(tenant, end=now - timedelta(hours=2))

    summary = run_trial_expiration(now)

    assert summary.processed_count == 1
    assert summary.suspended_tenant_ids == [str(tenant.pk)]
    assert summary.to_dict()["success"] is True
    subscription.refresh_from_db()
    tenant.refresh_from_db()
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert tenant.status == Tenant.Status.SUSPENDED

    entry = AuditLogEntry.objects.get(action=AuditAction.EXPIRE_SUBSCRIPTION)
    assert entry.user_name == SYSTEM_ACTOR
    assert entry.details["from"] == SubscriptionStatus.TRIAL
    assert entry.details["job"] == "trial_expiration"


def test_second_run_is_a_noop(tenant, make_subscription, now):
    make_subscription(tenant, end=now - timedelta(hours=2))
    run_trial_expiration(now)
    audit_count = AuditLogEntry.objects.count()

    summary = run_trial_expiration(now + timedelta(minutes=5))

    assert summary.processed_count == 0
    assert summary.suspended_tenant_ids == []
    assert AuditLogEntry.objects.count() == audit_count


def test_subscriptions_ending_now_or_later_are_untouched(make_tenant, make_subscription, now):
    ending_now = make_subscription(make_tenant("Ends Now"), end=now)
    active = make_subscription(
        make_tenant("Paid Shop"), status=SubscriptionStatus.ACTIVE, end=now + timedelta(days=30)
    )

    summary = run_trial_expiration(now)

    assert summary.processed_count == 0
    ending_now.refresh_from_db()
    active.refresh_from_db()
    assert ending_now.status == SubscriptionStatus.TRIAL
    assert active.status == SubscriptionStatus.ACTIVE


def test_lapsed_paid_subscription_expires_too(tenant, make_subscription, now):
    subscription = make_subscription(tenant, status=SubscriptionStatus.ACTIVE, end=now - timedelta(days=1))

    summary = run_trial_expiration(now)

    assert summary.processed_count == 1
    subscription.refresh_from_db()
    assert subscription.status == SubscriptionStatus.EXPIRED


def test_failure_on_one_subscription_does_not_stop_the_batch(make_tenant, make_subscription, now):
    broken = make_subscription(make_tenant("Broken Shop"), end=now - timedelta(days=2))
    healthy = make_subscription(make_tenant("Healthy Shop"), end=now - timedelta(days=1))
    real_apply = subscription_state.apply_transition

    def flaky_apply(subscription, event, **kwargs):
        if subscription.pk == broken.pk:
            raise RuntimeError("row is corrupt")
        return real_apply(subscription, event, **kwargs)

    with mock.patch("billing.services.trial_expiration.apply_transition", side_effect=flaky_apply):
        summary = run_trial_expiration(now)

    assert summary.processed_count == 1
    assert [error.entity_id for error in summary.errors] == [str(broken.pk)]
    assert summary.to_dict()["success"] is False
    broken.refresh_from_db()
    healthy.refresh_from_db()
    assert broken.status == SubscriptionStatus.TRIAL
    assert healthy.status == SubscriptionStatus.EXPIRED


def test_long_suspended_tenant_is_archived(make_tenant, now):
    stale = make_tenant(
        "Closed Shop",
        status=Tenant.Status.SUSPENDED,
        suspended_at=now - timedelta(days=15),
    )
    recent = make_tenant(
        "Paused Shop",
        status=Tenant.Status.SUSPENDED,
        suspended_at=now - timedelta(days=3),
    )
    archiver = mock.Mock()

    summary = run_trial_expiration(now, archiver=archiver)

    assert summary.archived_tenant_ids == [str(stale.pk)]
    archiver.assert_called_once_with(stale.pk, now=now)
    stale.refresh_from_db()
    recent.refresh_from_db()
    assert stale.status == Tenant.Status.ARCHIVED
    assert stale.data_archived_at is None
    assert recent.status == Tenant.Status.SUSPENDED
    assert AuditLogEntry.objects.filter(action=AuditAction.ARCHIVE_TENANT, entity_id=str(stale.pk)).exists()


def test_archiver_failure_keeps_tenant_suspended(make_tenant, now):
    stale = make_tenant(
        "Closed Shop",
        status=Tenant.Status.SUSPENDED,
        suspended_at=now - timedelta(days=20),
    )
    archiver = mock.Mock(side_effect=OSError("cold storage unavailable"))

    summary = run_trial_expiration(now, archiver=archiver)

    assert summary.archived_tenant_ids == []
    assert summary.errors[0].entity == "tenant"
    stale.refresh_from_db()
    assert stale.status == Tenant.Status.SUSPENDED
    assert stale.data_archived_at is None


def test_audit_outage_does_not_block_expiration(tenant, make_subscription, now):
    subscription = make_subscription(tenant, end=now - timedelta(days=1))

    with mock.patch("audit.services.AuditLogEntry.objects.create", side_effect=DatabaseError("audit down")):
        summary = run_trial_expiration(now)

    assert summary.errors == []
    assert summary.suspended_tenant_ids == [str(tenant.pk)]
    subscription.refresh_from_db()
    tenant.refresh_from_db()
    assert subscription.status == SubscriptionStatus.EXPIRED
    assert tenant.status == Tenant.Status.SUSPENDED
    assert not AuditLogEntry.objects.exists()

def test_default_archiver_flags_tenant_data(make_tenant, now):
    stale = make_tenant(
        "Closed Shop",
        status=Tenant.Status.SUSPENDED,
        suspended_at=now - timedelta(days=30),
    )

    run_trial_expiration(now)

    stale.refresh_from_db()
    assert stale.status == Tenant.Status.ARCHIVED
    assert stale.data_archived_at == now


def test_default_archiver_owns_the_data_timestamp(make_tenant, now):
    tenant = make_tenant("Closed Shop", status=Tenant.Status.ARCHIVED)

    flag_tenant_data_archived(tenant.pk, now=now)
    flag_tenant_data_archived(tenant.pk, now=now + timedelta(days=1))

    tenant.refresh_from_db()
    assert tenant.data_archived_at == now


def test_query_failure_propagates(now):
    with mock.patch(
        "billing.services.trial_expiration.Subscription.objects.filter",
        side_effect=RuntimeError("database unavailable"),
    ):
        with pytest.raises(RuntimeError):
            run_trial_expiration(now)
