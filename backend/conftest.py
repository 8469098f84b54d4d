from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from billing.models import Plan, Subscription, SubscriptionStatus
from tenants.models import Tenant

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=dt_timezone.utc)


class RecordingTransport:
    """Notification transport double remembering every delivery attempt."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def send(self, tenant_id, channel, title, body):
        self.calls.append({"tenant_id": tenant_id, "channel": channel, "title": title, "body": body})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def plan(db):
    # Keys differ from the plans seeded after migrate.
    return Plan.objects.create(
        key="test-basic",
        name="Test Basic",
        price=Decimal("10000.00"),
        description="Plan used by the test-suite",
    )


@pytest.fixture
def premium_plan(db):
    return Plan.objects.create(key="test-premium", name="Test Premium", price=Decimal("25000.00"))


@pytest.fixture
def make_tenant(db):
    def _make(name="Mama Shop", subdomain=None, **fields):
        return Tenant.objects.create(name=name, subdomain=subdomain or name.lower().replace(" ", "-"), **fields)

    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant()


@pytest.fixture
def make_user(db):
    User = get_user_model()

    def _make(username, *, tenant=None, role=User.Role.CASHIER, **fields):
        return User.objects.create_user(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            password="pass1234",
            tenant=tenant,
            role=role,
            **fields,
        )

    return _make


@pytest.fixture
def owner(make_user, tenant):
    User = get_user_model()
    return make_user("owner", tenant=tenant, role=User.Role.OWNER, first_name="Grace", last_name="Nakato")


@pytest.fixture
def super_admin(make_user):
    return make_user("platform", is_super_admin=True, first_name="Platform", last_name="Admin")


@pytest.fixture
def make_subscription(plan):
    def _make(tenant, *, status=SubscriptionStatus.TRIAL, start=None, end, **fields):
        start = start if start is not None else min(end, FIXED_NOW) - timedelta(days=14)
        return Subscription.objects.create(
            tenant=tenant,
            plan=fields.pop("plan", plan),
            status=status,
            start_date=start,
            end_date=end,
            **fields,
        )

    return _make


@pytest.fixture
def recording_transport():
    return RecordingTransport()


@pytest.fixture
def transport_factory():
    return RecordingTransport
