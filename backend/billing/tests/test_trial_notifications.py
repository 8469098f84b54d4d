from datetime import timedelta

import pytest

from audit.models import AuditAction, AuditLogEntry
from billing.models import SubscriptionStatus, TrialNotificationRecord
from billing.services.trial_notifications import (
    build_reminder,
    days_remaining,
    run_trial_notifications,
    select_threshold,
)


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(days=3), 3),
        (timedelta(days=2, hours=1), 3),
        (timedelta(hours=1), 1),
        (timedelta(hours=-5), 0),
    ],
)
def test_days_remaining_rounds_up(now, delta, expected):
    assert days_remaining(now + delta, now) == expected


@pytest.mark.parametrize(
    "remaining,expected",
    [(7, 7), (5, 7), (3, 3), (2, 3), (1, 1), (0, 1), (8, None)],
)
def test_select_threshold_picks_smallest_covering_threshold(remaining, expected):
    assert select_threshold(remaining, (7, 3, 1)) == expected


@pytest.mark.django_db
def test_build_reminder_mentions_billing_page(tenant, make_subscription, now, settings):
    settings.SITE_NAME = "GoodSale"
    settings.SITE_URL = "https://pos.example.com/"
    subscription = make_subscription(tenant, end=now + timedelta(hours=20))

    title, body = build_reminder(subscription, 1)

    assert title == "Your GoodSale trial expires in 1 day"
    assert "https://pos.example.com/mama-shop/billing" in body
    assert "Point of Sale (POS)" in body


@pytest.mark.django_db
class TestRunTrialNotifications:
    def test_sends_reminder_for_matching_threshold(self, tenant, make_subscription, now, recording_transport):
        subscription = make_subscription(tenant, end=now + timedelta(days=2, hours=20))

        summary = run_trial_notifications(now, thresholds=(7, 3, 1), transport=recording_transport)

        assert summary.sent_count == 1
        assert summary.results[0]["threshold"] == 3
        assert summary.results[0]["outcome"] == "sent"
        assert len(recording_transport.calls) == 1
        assert recording_transport.calls[0]["tenant_id"] == tenant.pk
        assert "3 days" in recording_transport.calls[0]["title"]
        record = TrialNotificationRecord.objects.get(subscription=subscription)
        assert record.threshold_days == 3
        assert record.sent_at == now
        assert AuditLogEntry.objects.filter(action=AuditAction.TRIAL_NOTIFICATION_SENT).count() == 1

    def test_same_threshold_is_never_sent_twice(self, tenant, make_subscription, now, recording_transport):
        make_subscription(tenant, end=now + timedelta(days=3))

        run_trial_notifications(now, thresholds=(7, 3, 1), transport=recording_transport)
        summary = run_trial_notifications(now + timedelta(hours=6), thresholds=(7, 3, 1), transport=recording_transport)

        assert summary.sent_count == 0
        assert summary.skipped_count == 1
        assert summary.results[0]["outcome"] == "already_sent"
        assert len(recording_transport.calls) == 1

    def test_each_threshold_is_sent_as_the_trial_runs_down(self, tenant, make_subscription, now, recording_transport):
        subscription = make_subscription(tenant, end=now + timedelta(days=6))

        run_trial_notifications(now, thresholds=(7, 3, 1), transport=recording_transport)
        run_trial_notifications(now + timedelta(days=4), thresholds=(7, 3, 1), transport=recording_transport)
        run_trial_notifications(now + timedelta(days=5, hours=12), thresholds=(7, 3, 1), transport=recording_transport)

        thresholds = sorted(
            TrialNotificationRecord.objects.filter(subscription=subscription).values_list("threshold_days", flat=True)
        )
        assert thresholds == [1, 3, 7]
        assert len(recording_transport.calls) == 3

    def test_trials_outside_the_window_are_ignored(self, make_tenant, make_subscription, now, recording_transport):
        make_subscription(make_tenant("Far Shop"), end=now + timedelta(days=10))
        make_subscription(make_tenant("Gone Shop"), end=now - timedelta(hours=1))
        make_subscription(make_tenant("Paid Shop"), status=SubscriptionStatus.ACTIVE, end=now + timedelta(days=2))

        summary = run_trial_notifications(now, thresholds=(7, 3, 1), transport=recording_transport)

        assert summary.sent_count == 0
        assert summary.results == []
        assert recording_transport.calls == []

    def test_failed_dispatch_releases_the_claim(self, tenant, make_subscription, now, transport_factory):
        subscription = make_subscription(tenant, end=now + timedelta(days=1))
        failing = transport_factory(error=ConnectionError("smtp down"))

        summary = run_trial_notifications(now, thresholds=(7, 3, 1), transport=failing)

        assert summary.failed_count == 1
        assert summary.to_dict()["success"] is False
        assert summary.errors[0].entity_id == str(subscription.pk)
        assert not TrialNotificationRecord.objects.exists()
        assert not AuditLogEntry.objects.filter(action=AuditAction.TRIAL_NOTIFICATION_SENT).exists()

        retry = transport_factory()
        summary = run_trial_notifications(now + timedelta(hours=1), thresholds=(7, 3, 1), transport=retry)

        assert summary.sent_count == 1
        assert TrialNotificationRecord.objects.filter(subscription=subscription, threshold_days=1).exists()

    def test_undelivered_message_counts_as_failure(self, tenant, make_subscription, now, transport_factory):
        make_subscription(tenant, end=now + timedelta(days=2))

        summary = run_trial_notifications(now, thresholds=(7, 3, 1), transport=transport_factory(result=False))

        assert summary.failed_count == 1
        assert not TrialNotificationRecord.objects.exists()

    def test_thresholds_default_to_settings(self, tenant, make_subscription, now, recording_transport, settings):
        settings.TRIAL_NOTIFICATION_THRESHOLDS = (10,)
        make_subscription(tenant, end=now + timedelta(days=9))

        summary = run_trial_notifications(now, transport=recording_transport)

        assert summary.sent_count == 1
        assert summary.results[0]["threshold"] == 10
