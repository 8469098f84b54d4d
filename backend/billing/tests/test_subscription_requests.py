from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError

from audit.models import SYSTEM_ACTOR, AuditAction, AuditLogEntry
from billing.exceptions import (
    DependencyFailure,
    EntityNotFound,
    InvalidTransition,
    LifecycleConflict,
    LifecycleValidationError,
)
from billing.models import (
    BillingLedgerEntry,
    BillingPeriod,
    Subscription,
    SubscriptionRequest,
    SubscriptionStatus,
)
from billing.services.subscription_requests import (
    approve_subscription_request,
    auto_approve_stale_requests,
    pending_subscription_request_count,
    reject_subscription_request,
    submit_subscription_request,
)
from tenants.models import Tenant

pytestmark = pytest.mark.django_db


@pytest.fixture
def submit(tenant, owner, plan):
    def _submit(*, at, billing_period=BillingPeriod.SIX_MONTHS, on_plan=None, for_tenant=None):
        return submit_subscription_request(
            tenant=for_tenant or tenant,
            plan=on_plan or plan,
            billing_period=billing_period,
            contact_name="Grace Nakato",
            contact_phone="+256700000000",
            contact_email="grace@example.com",
            requested_by=owner if for_tenant is None else None,
            now=at,
        )

    return _submit


def test_submit_computes_total_from_monthly_price(submit, now):
    request = submit(at=now)

    assert request.status == SubscriptionRequest.Status.PENDING
    assert request.total_amount == Decimal("60000.00")
    assert request.requested_at == now
    entry = AuditLogEntry.objects.get(action=AuditAction.SUBSCRIPTION_UPGRADE_REQUEST)
    assert entry.user_name == "Grace Nakato"
    assert entry.details["total_amount"] == "60000.00"


def test_only_one_pending_request_per_tenant(submit, now):
    submit(at=now)

    with pytest.raises(LifecycleConflict):
        submit(at=now + timedelta(minutes=1))


def test_unknown_billing_period_is_rejected(submit, now):
    with pytest.raises(LifecycleValidationError):
        submit(at=now, billing_period="3_months")


def test_inactive_plan_cannot_be_requested(submit, plan, now):
    plan.is_active = False
    plan.save(update_fields=["is_active"])

    with pytest.raises(LifecycleValidationError):
        submit(at=now)


def test_approval_supersedes_trial_and_records_payment(tenant, submit, make_subscription, super_admin, now):
    trial = make_subscription(tenant, end=now + timedelta(days=5))
    request = submit(at=now - timedelta(hours=3))

    result = approve_subscription_request(request.pk, actor=super_admin, now=now, invoice_number="INV-0001")

    trial.refresh_from_db()
    assert trial.status == SubscriptionStatus.CANCELLED
    assert result.superseded_subscription_id == str(trial.pk)

    subscription = result.subscription
    assert subscription.status == SubscriptionStatus.ACTIVE
    assert subscription.start_date == now
    assert subscription.end_date == datetime(2025, 7, 15, 12, 0, tzinfo=dt_timezone.utc)
    assert subscription.amount == Decimal("60000.00")
    assert subscription.source_request_id == request.pk

    request.refresh_from_db()
    assert request.status == SubscriptionRequest.Status.APPROVED
    assert request.resolved_by == super_admin
    assert request.invoice_number == "INV-0001"

    ledger = BillingLedgerEntry.objects.get(subscription=subscription)
    assert ledger.amount == Decimal("60000.00")
    assert ledger.invoice_number == "INV-0001"
    assert ledger.recorded_by == "Platform Admin"
    assert ledger.currency == "ugx"

    tenant.refresh_from_db()
    assert tenant.plan == "test-basic"
    assert Subscription.objects.filter(tenant=tenant, status__in=["trial", "active"]).count() == 1

    actions = set(AuditLogEntry.objects.values_list("action", flat=True))
    assert {
        AuditAction.SUPERSEDE_SUBSCRIPTION,
        AuditAction.APPROVE_SUBSCRIPTION_REQUEST,
        AuditAction.RECORD_PAYMENT,
    } <= actions


def test_approval_reactivates_suspended_tenant(tenant, submit, make_subscription, super_admin, now):
    make_subscription(tenant, status=SubscriptionStatus.EXPIRED, end=now - timedelta(days=2))
    Tenant.objects.filter(pk=tenant.pk).update(status=Tenant.Status.SUSPENDED, suspended_at=now - timedelta(days=2))
    request = submit(at=now - timedelta(hours=1))

    result = approve_subscription_request(request.pk, actor=super_admin, now=now)

    assert result.tenant_reactivated
    assert result.superseded_subscription_id is None
    assert result.ledger_entry.invoice_number.startswith("INV-20250115-")
    tenant.refresh_from_db()
    assert tenant.status == Tenant.Status.ACTIVE
    assert tenant.suspended_at is None


def test_approved_request_cannot_be_approved_again(submit, super_admin, now):
    request = submit(at=now)
    approve_subscription_request(request.pk, actor=super_admin, now=now)

    with pytest.raises(InvalidTransition):
        approve_subscription_request(request.pk, actor=super_admin, now=now + timedelta(minutes=1))

    assert BillingLedgerEntry.objects.count() == 1


def test_approving_missing_request_raises_not_found(super_admin, now):
    with pytest.raises(EntityNotFound):
        approve_subscription_request("1b4e28ba-2fa1-11d2-883f-0016d3cca427", actor=super_admin, now=now)


def test_unknown_payment_method_is_rejected(submit, super_admin, now):
    request = submit(at=now)

    with pytest.raises(LifecycleValidationError):
        approve_subscription_request(request.pk, actor=super_admin, now=now, payment_method="cheque")


def test_rejection_creates_nothing(tenant, submit, super_admin, now):
    request = submit(at=now)

    rejected = reject_subscription_request(request.pk, actor=super_admin, reason="Unreachable contact", now=now)

    assert rejected.status == SubscriptionRequest.Status.REJECTED
    assert rejected.rejection_reason == "Unreachable contact"
    assert not Subscription.objects.filter(tenant=tenant).exists()
    assert not BillingLedgerEntry.objects.exists()
    with pytest.raises(InvalidTransition):
        approve_subscription_request(request.pk, actor=super_admin, now=now)


def test_failed_approval_leaves_request_pending(tenant, submit, make_subscription, super_admin, now):
    trial = make_subscription(tenant, end=now + timedelta(days=5))
    request = submit(at=now)

    with mock.patch(
        "billing.services.subscription_requests.BillingLedgerEntry.objects.create",
        side_effect=DatabaseError("disk full"),
    ):
        with pytest.raises(DependencyFailure):
            approve_subscription_request(request.pk, actor=super_admin, now=now)

    request.refresh_from_db()
    trial.refresh_from_db()
    assert request.status == SubscriptionRequest.Status.PENDING
    assert trial.status == SubscriptionStatus.TRIAL
    assert not Subscription.objects.filter(tenant=tenant, status=SubscriptionStatus.ACTIVE).exists()


def test_audit_outage_does_not_block_approval(tenant, submit, make_subscription, super_admin, now):
    trial = make_subscription(tenant, end=now + timedelta(days=5))
    request = submit(at=now - timedelta(hours=1))

    with mock.patch("audit.services.AuditLogEntry.objects.create", side_effect=DatabaseError("audit down")):
        result = approve_subscription_request(request.pk, actor=super_admin, now=now)

    request.refresh_from_db()
    trial.refresh_from_db()
    assert request.status == SubscriptionRequest.Status.APPROVED
    assert trial.status == SubscriptionStatus.CANCELLED
    assert result.subscription.status == SubscriptionStatus.ACTIVE
    assert BillingLedgerEntry.objects.filter(subscription=result.subscription).count() == 1
    assert not AuditLogEntry.objects.filter(action=AuditAction.APPROVE_SUBSCRIPTION_REQUEST).exists()


class TestAutoApproval:
    def test_requests_older_than_grace_are_approved(self, tenant, submit, make_subscription, now):
        make_subscription(tenant, end=now + timedelta(days=2))
        request = submit(at=now - timedelta(hours=49))

        summary = auto_approve_stale_requests(now)

        assert summary.approved_count == 1
        assert summary.approved_request_ids == [str(request.pk)]
        request.refresh_from_db()
        assert request.status == SubscriptionRequest.Status.AUTO_APPROVED
        assert request.resolved_by is None
        ledger = BillingLedgerEntry.objects.get(subscription_request=request)
        assert ledger.recorded_by == SYSTEM_ACTOR
        entry = AuditLogEntry.objects.get(action=AuditAction.AUTO_APPROVE_SUBSCRIPTION_REQUEST)
        assert entry.user_name == SYSTEM_ACTOR

    def test_recent_requests_wait(self, submit, now):
        request = submit(at=now - timedelta(hours=47))

        summary = auto_approve_stale_requests(now)

        assert summary.approved_count == 0
        request.refresh_from_db()
        assert request.status == SubscriptionRequest.Status.PENDING
        assert pending_subscription_request_count() == 1

    def test_sweep_is_idempotent(self, submit, now):
        submit(at=now - timedelta(days=3))

        auto_approve_stale_requests(now)
        summary = auto_approve_stale_requests(now + timedelta(hours=1))

        assert summary.approved_count == 0
        assert BillingLedgerEntry.objects.count() == 1

    def test_one_failing_request_does_not_block_others(self, make_tenant, submit, plan, now):
        first = submit(at=now - timedelta(days=3), for_tenant=make_tenant("First Shop"))
        second = submit(at=now - timedelta(days=3, hours=1), for_tenant=make_tenant("Second Shop"))

        with mock.patch(
            "billing.services.subscription_requests.reactivate_tenant",
            side_effect=[DatabaseError("lock timeout"), False],
        ):
            summary = auto_approve_stale_requests(now)

        assert summary.approved_count == 1
        assert summary.approved_request_ids == [str(first.pk)]
        assert [error.entity_id for error in summary.errors] == [str(second.pk)]
        second.refresh_from_db()
        assert second.status == SubscriptionRequest.Status.PENDING
