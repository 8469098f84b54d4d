import json
from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core import mail
from django.core.management import call_command
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone

from billing.models import SubscriptionStatus
from billing.services.trial_notifications import NotificationSummary
from jobs.registry import JOB_RUNNERS
from tenants.models import Tenant

pytestmark = pytest.mark.django_db

SECRET = "s3cret-value"


@pytest.fixture
def cron_client(api_client):
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {SECRET}")
    return api_client


@override_settings(CRON_SECRET=SECRET)
def test_missing_secret_is_unauthorised(api_client):
    response = api_client.post(reverse("jobs:trial-expiration"))

    assert response.status_code == 401


@override_settings(CRON_SECRET=SECRET)
def test_wrong_secret_is_unauthorised(api_client):
    api_client.credentials(HTTP_AUTHORIZATION="Bearer nope")

    response = api_client.post(reverse("jobs:trial-expiration"))

    assert response.status_code == 401


@override_settings(CRON_SECRET="")
def test_unconfigured_secret_refuses_everyone(cron_client):
    response = cron_client.post(reverse("jobs:trial-expiration"))

    assert response.status_code == 401


@override_settings(CRON_SECRET=SECRET)
def test_trial_expiration_job_runs(cron_client, tenant, make_subscription):
    subscription = make_subscription(
        tenant,
        start=timezone.now() - timedelta(days=15),
        end=timezone.now() - timedelta(days=1),
    )

    response = cron_client.post(reverse("jobs:trial-expiration"))

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["job"] == "trial-expiration"
    assert payload["processed_count"] == 1
    assert payload["suspended_tenant_ids"] == [str(tenant.pk)]
    assert payload["stats"]["expired"] == 1
    subscription.refresh_from_db()
    assert subscription.status == SubscriptionStatus.EXPIRED
    tenant.refresh_from_db()
    assert tenant.status == Tenant.Status.SUSPENDED


@override_settings(CRON_SECRET=SECRET)
def test_subscription_renewal_job_sends_reminders(cron_client, tenant, owner, make_subscription):
    make_subscription(
        tenant,
        status=SubscriptionStatus.ACTIVE,
        start=timezone.now() - timedelta(days=170),
        end=timezone.now() + timedelta(days=10),
    )

    response = cron_client.post(reverse("jobs:subscription-renewal"))

    assert response.status_code == 200
    payload = response.json()
    assert payload["job"] == "subscription-renewal"
    assert payload["expiring_count"] == 1
    assert payload["sent_count"] == 1
    assert payload["stats"]["active"] == 1
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["owner@example.com"]

@override_settings(CRON_SECRET=SECRET)
def test_partial_failure_returns_multi_status(cron_client):
    summary = NotificationSummary(sent_count=1, failed_count=1)
    summary.add_error("subscription", "abc", ConnectionError("smtp down"))

    with mock.patch.dict(JOB_RUNNERS, {"trial-notifications": mock.Mock(return_value=summary)}):
        response = cron_client.post(reverse("jobs:trial-notifications"))

    assert response.status_code == 207
    payload = response.json()
    assert payload["success"] is False
    assert payload["errors"] == [{"entity": "subscription", "entity_id": "abc", "error": "smtp down"}]


@override_settings(CRON_SECRET=SECRET)
def test_job_crash_returns_server_error(cron_client):
    runner = mock.Mock(side_effect=RuntimeError("database unavailable"))

    with mock.patch.dict(JOB_RUNNERS, {"subscription-requests": runner}):
        response = cron_client.post(reverse("jobs:subscription-requests"))

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "job": "subscription-requests",
        "timestamp": mock.ANY,
        "error": "database unavailable",
    }


@override_settings(CRON_SECRET=SECRET)
def test_name_change_job_requires_known_task(cron_client):
    response = cron_client.post(reverse("jobs:tenant-name-changes") + "?task=rename-everything")

    assert response.status_code == 400
    assert response.json()["success"] is False


@override_settings(CRON_SECRET=SECRET)
def test_name_change_job_runs_all_tasks(cron_client):
    response = cron_client.post(reverse("jobs:tenant-name-changes") + "?task=all")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert set(payload["results"]) == {"auto-approve", "apply"}


def test_management_command_prints_summary(tenant, make_subscription, now):
    make_subscription(tenant, end=now - timedelta(hours=1))
    out = StringIO()

    call_command("run_lifecycle_job", "trial-expiration", "--now", "2025-01-15T12:00:00", stdout=out)

    output = out.getvalue()
    payload = json.loads(output[: output.rindex("}") + 1])
    assert payload["processed_count"] == 1
    assert payload["success"] is True
