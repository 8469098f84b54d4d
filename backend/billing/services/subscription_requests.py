"""Subscription request workflow: submission, manual and automatic approval, rejection.

Manual approval and the auto-approval sweep share ``_approve``: one transaction
that supersedes the live subscription, opens the paid one, records the ledger
entry and resolves the request. A failure anywhere leaves the request pending.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import QuerySet

from audit.models import SYSTEM_ACTOR, AuditAction
from audit.services import record_audit
from billing.constants import subscription_request_grace
from billing.exceptions import (
    DependencyFailure,
    EntityNotFound,
    InvalidTransition,
    LifecycleConflict,
    LifecycleError,
    LifecycleValidationError,
)
from billing.models import (
    LIVE_SUBSCRIPTION_STATUSES,
    BillingLedgerEntry,
    Plan,
    Subscription,
    SubscriptionRequest,
    SubscriptionStatus,
)
from billing.observability.logging import log_billing_event
from billing.observability.metrics import (
    LIFECYCLE_JOB_DURATION,
    SUBSCRIPTION_REQUESTS_RESOLVED,
    record_job_run,
)
from billing.services.job_summary import JobSummary
from billing.services.periods import months_for, period_end
from billing.services.subscription_state import SubscriptionEvent, apply_transition
from billing.services.tenant_access import lock_tenant, reactivate_tenant
from tenants.models import Tenant

logger = logging.getLogger(__name__)

JOB_NAME = "subscription_request_auto_approval"


@dataclass(frozen=True)
class ApprovalResult:
    request: SubscriptionRequest
    subscription: Subscription
    ledger_entry: BillingLedgerEntry
    superseded_subscription_id: Optional[str] = None
    tenant_reactivated: bool = False


@dataclass
class ApprovalSweepSummary(JobSummary):
    approved_count: int = 0
    skipped_count: int = 0
    approved_request_ids: List[str] = field(default_factory=list)


def generate_invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def submit_subscription_request(
    *,
    tenant: Tenant,
    plan: Plan,
    billing_period: str,
    contact_name: str,
    contact_phone: str,
    contact_email: str = "",
    requested_by=None,
    now: datetime,
) -> SubscriptionRequest:
    """Record a tenant's request for a paid plan; the total is price times months."""

    months_for(billing_period)
    if not plan.is_active:
        raise LifecycleValidationError(f"Plan '{plan.key}' is not available.")
    if not (contact_name or "").strip() or not (contact_phone or "").strip():
        raise LifecycleValidationError("Contact name and phone are required.")

    total_amount = plan.price_for(billing_period)
    try:
        with transaction.atomic():
            request = SubscriptionRequest.objects.create(
                tenant=tenant,
                plan=plan,
                billing_period=billing_period,
                total_amount=total_amount,
                requested_by=requested_by,
                requested_at=now,
                contact_name=contact_name.strip(),
                contact_phone=contact_phone.strip(),
                contact_email=(contact_email or "").strip(),
            )
    except IntegrityError as exc:
        raise LifecycleConflict("A subscription request is already pending for this tenant.") from exc

    record_audit(
        action=AuditAction.SUBSCRIPTION_UPGRADE_REQUEST,
        entity="subscription_request",
        entity_id=request.pk,
        tenant_id=tenant.pk,
        user=requested_by,
        details={
            "tenant_name": tenant.name,
            "plan": plan.key,
            "billing_period": billing_period,
            "total_amount": total_amount,
        },
    )
    log_billing_event(
        message="subscription_request.submitted",
        tenant_id=tenant.pk,
        actor=getattr(requested_by, "display_name", None),
        extra={"request_id": str(request.pk), "plan": plan.key, "billing_period": billing_period},
    )
    return request


def approve_subscription_request(
    request_id,
    *,
    actor,
    now: datetime,
    invoice_number: Optional[str] = None,
    payment_method: str = BillingLedgerEntry.PaymentMethod.CASH,
) -> ApprovalResult:
    """Administrator approval. Raises ``InvalidTransition`` if the request is no longer pending."""

    if payment_method not in BillingLedgerEntry.PaymentMethod.values:
        raise LifecycleValidationError(f"Unknown payment method '{payment_method}'.")
    return _approve(
        request_id,
        now=now,
        actor=actor,
        automatic=False,
        invoice_number=invoice_number,
        payment_method=payment_method,
    )


def auto_approve_stale_requests(now: datetime, grace: Optional[timedelta] = None) -> ApprovalSweepSummary:
    """Approve every request left pending longer than ``grace``."""

    grace = grace if grace is not None else subscription_request_grace()
    cutoff = now - grace
    summary = ApprovalSweepSummary()

    try:
        with LIFECYCLE_JOB_DURATION.labels(job=JOB_NAME).time():
            request_ids = list(
                SubscriptionRequest.objects.filter(
                    status=SubscriptionRequest.Status.PENDING,
                    requested_at__lte=cutoff,
                )
                .order_by("requested_at")
                .values_list("pk", flat=True)
            )
            logger.info("Found %d subscription requests pending since before %s", len(request_ids), cutoff)

            for request_id in request_ids:
                try:
                    _approve(
                        request_id,
                        now=now,
                        actor=None,
                        automatic=True,
                        invoice_number=None,
                        payment_method=BillingLedgerEntry.PaymentMethod.CASH,
                    )
                except (InvalidTransition, EntityNotFound) as exc:
                    summary.skipped_count += 1
                    logger.info("Skipped subscription request %s: %s", request_id, exc)
                    continue
                except LifecycleError as exc:
                    summary.add_error("subscription_request", request_id, exc)
                    continue
                except Exception as exc:
                    logger.exception("Unexpected failure auto-approving subscription request %s", request_id)
                    summary.add_error("subscription_request", request_id, exc)
                    continue

                summary.approved_count += 1
                summary.approved_request_ids.append(str(request_id))
    except Exception:
        record_job_run(JOB_NAME, failed=True)
        raise

    outcome = record_job_run(JOB_NAME, error_count=len(summary.errors))
    log_billing_event(
        message="job.completed",
        job=JOB_NAME,
        extra={
            "outcome": outcome,
            "approved": summary.approved_count,
            "skipped": summary.skipped_count,
            "errors": len(summary.errors),
        },
    )
    return summary


def _approve(
    request_id,
    *,
    now: datetime,
    actor,
    automatic: bool,
    invoice_number: Optional[str],
    payment_method: str,
) -> ApprovalResult:
    resolution = SubscriptionRequest.Status.AUTO_APPROVED if automatic else SubscriptionRequest.Status.APPROVED
    invoice_number = (invoice_number or "").strip() or generate_invoice_number(now)
    recorded_by = actor.display_name if actor is not None else SYSTEM_ACTOR

    try:
        with transaction.atomic():
            try:
                request = (
                    SubscriptionRequest.objects.select_for_update()
                    .select_related("plan")
                    .get(pk=request_id)
                )
            except SubscriptionRequest.DoesNotExist as exc:
                raise EntityNotFound(f"Subscription request {request_id} not found.") from exc

            if request.status != SubscriptionRequest.Status.PENDING:
                raise InvalidTransition(f"Subscription request {request_id} is already {request.status}.")

            lock_tenant(request.tenant_id)

            superseded_id = None
            live = (
                Subscription.objects.select_for_update()
                .filter(tenant_id=request.tenant_id, status__in=LIVE_SUBSCRIPTION_STATUSES)
                .first()
            )
            if live is not None:
                transition = apply_transition(
                    live,
                    SubscriptionEvent.SUPERSEDE,
                    now=now,
                    actor=actor,
                    details={"subscription_request_id": str(request.pk)},
                )
                if transition.applied:
                    superseded_id = str(live.pk)

            subscription = Subscription.objects.create(
                tenant_id=request.tenant_id,
                plan=request.plan,
                billing_period=request.billing_period,
                status=SubscriptionStatus.ACTIVE,
                start_date=now,
                end_date=period_end(now, request.billing_period),
                amount=request.total_amount,
                source_request=request,
            )

            updated = SubscriptionRequest.objects.filter(
                pk=request.pk,
                status=SubscriptionRequest.Status.PENDING,
            ).update(
                status=resolution,
                resolved_at=now,
                resolved_by=actor,
                invoice_number=invoice_number,
            )
            if not updated:
                raise InvalidTransition(f"Subscription request {request_id} was resolved concurrently.")

            ledger_entry = BillingLedgerEntry.objects.create(
                tenant_id=request.tenant_id,
                subscription=subscription,
                subscription_request=request,
                amount=request.total_amount,
                payment_method=payment_method,
                invoice_number=invoice_number,
                recorded_by=recorded_by,
                notes="Approved automatically after the review window" if automatic else "",
                paid_at=now,
            )

            reactivated = reactivate_tenant(request.tenant_id, plan_key=request.plan.key, now=now, actor=actor)

            record_audit(
                action=(
                    AuditAction.AUTO_APPROVE_SUBSCRIPTION_REQUEST
                    if automatic
                    else AuditAction.APPROVE_SUBSCRIPTION_REQUEST
                ),
                entity="subscription_request",
                entity_id=request.pk,
                tenant_id=request.tenant_id,
                user=actor,
                details={
                    "plan": request.plan.key,
                    "billing_period": request.billing_period,
                    "amount": request.total_amount,
                    "subscription_id": subscription.pk,
                    "superseded_subscription_id": superseded_id,
                    "start_date": subscription.start_date,
                    "end_date": subscription.end_date,
                },
            )
            record_audit(
                action=AuditAction.RECORD_PAYMENT,
                entity="billing_ledger_entry",
                entity_id=ledger_entry.pk,
                tenant_id=request.tenant_id,
                user=actor,
                details={
                    "amount": ledger_entry.amount,
                    "payment_method": payment_method,
                    "invoice_number": invoice_number,
                },
            )
    except IntegrityError as exc:
        raise LifecycleConflict(f"Approval of subscription request {request_id} conflicts: {exc}") from exc
    except DatabaseError as exc:
        logger.exception("Database failure approving subscription request %s", request_id)
        raise DependencyFailure(f"Could not approve subscription request {request_id}.") from exc

    request.status = resolution
    request.resolved_at = now
    request.resolved_by = actor
    request.invoice_number = invoice_number
    SUBSCRIPTION_REQUESTS_RESOLVED.labels(resolution=resolution).inc()
    log_billing_event(
        message="subscription_request.approved",
        tenant_id=request.tenant_id,
        actor=recorded_by,
        extra={
            "request_id": str(request.pk),
            "subscription_id": str(subscription.pk),
            "automatic": automatic,
        },
    )
    return ApprovalResult(
        request=request,
        subscription=subscription,
        ledger_entry=ledger_entry,
        superseded_subscription_id=superseded_id,
        tenant_reactivated=reactivated,
    )


def reject_subscription_request(request_id, *, actor, reason: str = "", now: datetime) -> SubscriptionRequest:
    """Administrator rejection; creates no subscription and no ledger entry."""

    try:
        request = SubscriptionRequest.objects.get(pk=request_id)
    except SubscriptionRequest.DoesNotExist as exc:
        raise EntityNotFound(f"Subscription request {request_id} not found.") from exc

    updated = SubscriptionRequest.objects.filter(
        pk=request.pk,
        status=SubscriptionRequest.Status.PENDING,
    ).update(
        status=SubscriptionRequest.Status.REJECTED,
        resolved_at=now,
        resolved_by=actor,
        rejection_reason=reason or "",
    )
    if not updated:
        raise InvalidTransition(f"Subscription request {request_id} is already {request.status}.")

    request.refresh_from_db()
    SUBSCRIPTION_REQUESTS_RESOLVED.labels(resolution=SubscriptionRequest.Status.REJECTED).inc()
    record_audit(
        action=AuditAction.REJECT_SUBSCRIPTION_REQUEST,
        entity="subscription_request",
        entity_id=request.pk,
        tenant_id=request.tenant_id,
        user=actor,
        details={"reason": reason or ""},
    )
    return request


def pending_subscription_requests() -> QuerySet:
    return (
        SubscriptionRequest.objects.filter(status=SubscriptionRequest.Status.PENDING)
        .select_related("tenant", "plan", "requested_by")
        .order_by("requested_at")
    )


def pending_subscription_request_count() -> int:
    return SubscriptionRequest.objects.filter(status=SubscriptionRequest.Status.PENDING).count()
