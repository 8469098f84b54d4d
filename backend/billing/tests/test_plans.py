from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command

from billing.apps import ensure_default_plans
from billing.models import Plan

pytestmark = pytest.mark.django_db

TEST_PLAN_CONFIG = {
    "corner": {"name": "Corner", "price": "3000", "features": ["pos"]},
    "chain": {"name": "Chain", "price": "90000", "description": "Many shops"},
}


def test_plans_are_created_then_refreshed(settings):
    settings.PLAN_CONFIG = TEST_PLAN_CONFIG

    first = ensure_default_plans()
    settings.PLAN_CONFIG = {**TEST_PLAN_CONFIG, "corner": {**TEST_PLAN_CONFIG["corner"], "price": "3500"}}
    second = ensure_default_plans()

    assert sorted(first["created"]) == ["chain", "corner"]
    assert second == {"created": [], "updated": ["corner"]}
    corner = Plan.objects.get(key="corner")
    assert corner.price == Decimal("3500")
    assert corner.features == ["pos"]
    assert corner.price_for("12_months") == Decimal("42000.00")


def test_setup_command_reports_plans(settings):
    settings.PLAN_CONFIG = TEST_PLAN_CONFIG
    out = StringIO()

    call_command("setup_default_plans", stdout=out)

    assert "Created plan: corner" in out.getvalue()
    assert Plan.objects.filter(key__in=["corner", "chain"]).count() == 2
