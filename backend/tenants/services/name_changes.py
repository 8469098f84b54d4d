"""Tenant rename workflow: request, moderation, scheduling and application.

Renames never happen at approval time. An approved or auto-approved request
waits for its ``effective_at`` and is applied by ``apply_due_name_changes``,
which re-checks that the name is still free.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils.text import slugify

from audit.models import AuditAction
from audit.services import record_audit
from billing.constants import name_change_cooling_off, name_change_grace
from billing.exceptions import EntityNotFound, InvalidTransition, LifecycleConflict, LifecycleValidationError
from billing.observability.logging import log_billing_event
from billing.observability.metrics import LIFECYCLE_JOB_DURATION, record_job_run
from billing.services.job_summary import JobSummary
from tenants.models import Tenant, TenantNameChangeRequest

logger = logging.getLogger(__name__)

APPLY_JOB_NAME = "tenant_name_change_apply"
AUTO_APPROVE_JOB_NAME = "tenant_name_change_auto_approve"

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 255
NAME_TAKEN_REASON = "Name was taken by another tenant before application"


@dataclass
class ApplySummary(JobSummary):
    applied_count: int = 0
    rejected_count: int = 0
    skipped_count: int = 0
    applied_request_ids: List[str] = field(default_factory=list)
    rejected_request_ids: List[str] = field(default_factory=list)


@dataclass
class AutoApproveSummary(JobSummary):
    auto_approved_count: int = 0
    skipped_count: int = 0
    auto_approved_request_ids: List[str] = field(default_factory=list)


def name_is_taken(name: str, subdomain: str, *, exclude_tenant_id=None) -> bool:
    others = Tenant.objects.all()
    if exclude_tenant_id is not None:
        others = others.exclude(pk=exclude_tenant_id)
    return others.filter(name__iexact=name).exists() or others.filter(subdomain=subdomain).exists()


def _get_request(request_id, *, lock: bool = False) -> TenantNameChangeRequest:
    queryset = TenantNameChangeRequest.objects.select_related("tenant")
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=request_id)
    except TenantNameChangeRequest.DoesNotExist as exc:
        raise EntityNotFound(f"Name change request {request_id} not found.") from exc


def request_name_change(
    *,
    tenant: Tenant,
    proposed_name: str,
    reason: str = "",
    requested_by=None,
    now: datetime,
) -> TenantNameChangeRequest:
    proposed_name = (proposed_name or "").strip()
    if not MIN_NAME_LENGTH <= len(proposed_name) <= MAX_NAME_LENGTH:
        raise LifecycleValidationError(
            f"Tenant name must be between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters."
        )
    proposed_subdomain = slugify(proposed_name)[:MAX_NAME_LENGTH]
    if not proposed_subdomain:
        raise LifecycleValidationError("Tenant name must contain letters or digits.")
    if proposed_name == tenant.name:
        raise LifecycleValidationError("Proposed name matches the current name.")
    if name_is_taken(proposed_name, proposed_subdomain, exclude_tenant_id=tenant.pk):
        raise LifecycleConflict(f"The name '{proposed_name}' is already in use.")

    try:
        with transaction.atomic():
            request = TenantNameChangeRequest.objects.create(
                tenant=tenant,
                old_name=tenant.name,
                proposed_name=proposed_name,
                proposed_subdomain=proposed_subdomain,
                reason=reason or "",
                requested_by=requested_by,
                requested_at=now,
            )
    except IntegrityError as exc:
        raise LifecycleConflict("A name change request is already open for this tenant.") from exc

    record_audit(
        action=AuditAction.REQUEST_TENANT_NAME_CHANGE,
        entity="tenant_name_change_request",
        entity_id=request.pk,
        tenant_id=tenant.pk,
        user=requested_by,
        details={"old_name": tenant.name, "new_name": proposed_name, "reason": reason or ""},
    )
    return request


def approve_name_change(request_id, *, actor, now: datetime) -> TenantNameChangeRequest:
    """Schedule a pending request after the cooling-off period."""

    request = _get_request(request_id)
    effective_at = now + name_change_cooling_off()
    updated = TenantNameChangeRequest.objects.filter(
        pk=request.pk,
        status=TenantNameChangeRequest.Status.PENDING,
    ).update(
        status=TenantNameChangeRequest.Status.SCHEDULED,
        reviewed_by=actor,
        reviewed_at=now,
        effective_at=effective_at,
    )
    if not updated:
        raise InvalidTransition(f"Name change request {request_id} is {request.status}, not pending.")

    request.refresh_from_db()
    record_audit(
        action=AuditAction.APPROVE_TENANT_NAME_CHANGE,
        entity="tenant_name_change_request",
        entity_id=request.pk,
        tenant_id=request.tenant_id,
        user=actor,
        details={"new_name": request.proposed_name, "effective_at": effective_at},
    )
    return request


def reject_name_change(request_id, *, actor, reason: str = "", now: datetime) -> TenantNameChangeRequest:
    request = _get_request(request_id)
    updated = TenantNameChangeRequest.objects.filter(
        pk=request.pk,
        status=TenantNameChangeRequest.Status.PENDING,
    ).update(
        status=TenantNameChangeRequest.Status.REJECTED,
        reviewed_by=actor,
        reviewed_at=now,
        rejection_reason=reason or "",
    )
    if not updated:
        raise InvalidTransition(f"Name change request {request_id} is {request.status}, not pending.")

    request.refresh_from_db()
    record_audit(
        action=AuditAction.REJECT_TENANT_NAME_CHANGE,
        entity="tenant_name_change_request",
        entity_id=request.pk,
        tenant_id=request.tenant_id,
        user=actor,
        details={"new_name": request.proposed_name, "reason": reason or ""},
    )
    return request


def cancel_name_change(request_id, *, actor, now: datetime) -> TenantNameChangeRequest:
    """Withdraw an open request (pending, scheduled or auto-approved)."""

    request = _get_request(request_id)
    updated = TenantNameChangeRequest.objects.filter(
        pk=request.pk,
        status__in=TenantNameChangeRequest.OPEN_STATUSES,
    ).update(
        status=TenantNameChangeRequest.Status.CANCELLED,
        reviewed_by=actor,
        reviewed_at=now,
    )
    if not updated:
        raise InvalidTransition(f"Name change request {request_id} is {request.status} and cannot be cancelled.")

    request.refresh_from_db()
    record_audit(
        action=AuditAction.CANCEL_TENANT_NAME_CHANGE,
        entity="tenant_name_change_request",
        entity_id=request.pk,
        tenant_id=request.tenant_id,
        user=actor,
        details={"new_name": request.proposed_name},
    )
    return request


def open_name_change_request(tenant_id) -> Optional[TenantNameChangeRequest]:
    return TenantNameChangeRequest.objects.filter(
        tenant_id=tenant_id,
        status__in=TenantNameChangeRequest.OPEN_STATUSES,
    ).first()


def apply_due_name_changes(now: datetime) -> ApplySummary:
    """Rename tenants whose scheduled or auto-approved request is due."""

    summary = ApplySummary()
    try:
        with LIFECYCLE_JOB_DURATION.labels(job=APPLY_JOB_NAME).time():
            request_ids = list(
                TenantNameChangeRequest.objects.filter(
                    status__in=TenantNameChangeRequest.AWAITING_APPLY_STATUSES,
                    effective_at__lte=now,
                )
                .order_by("effective_at")
                .values_list("pk", flat=True)
            )
            logger.info("Found %d name changes due for application", len(request_ids))

            for request_id in request_ids:
                try:
                    outcome = _apply_one(request_id, now)
                except Exception as exc:
                    logger.exception("Failed to apply name change %s", request_id)
                    summary.add_error("tenant_name_change_request", request_id, exc)
                    continue

                if outcome == TenantNameChangeRequest.Status.APPLIED:
                    summary.applied_count += 1
                    summary.applied_request_ids.append(str(request_id))
                elif outcome == TenantNameChangeRequest.Status.REJECTED:
                    summary.rejected_count += 1
                    summary.rejected_request_ids.append(str(request_id))
                else:
                    summary.skipped_count += 1
    except Exception:
        record_job_run(APPLY_JOB_NAME, failed=True)
        raise

    outcome_label = record_job_run(APPLY_JOB_NAME, error_count=len(summary.errors))
    log_billing_event(
        message="job.completed",
        job=APPLY_JOB_NAME,
        extra={
            "outcome": outcome_label,
            "applied": summary.applied_count,
            "rejected": summary.rejected_count,
            "errors": len(summary.errors),
        },
    )
    return summary


def _apply_one(request_id, now: datetime) -> Optional[str]:
    with transaction.atomic():
        request = _get_request(request_id, lock=True)
        if request.status not in TenantNameChangeRequest.AWAITING_APPLY_STATUSES:
            return None
        if request.effective_at is None or request.effective_at > now:
            return None

        Tenant.objects.select_for_update().get(pk=request.tenant_id)
        taken = name_is_taken(
            request.proposed_name,
            request.proposed_subdomain,
            exclude_tenant_id=request.tenant_id,
        )
        if not taken:
            try:
                with transaction.atomic():
                    Tenant.objects.filter(pk=request.tenant_id).update(
                        name=request.proposed_name,
                        subdomain=request.proposed_subdomain,
                        updated_at=now,
                    )
            except IntegrityError:
                taken = True

        if taken:
            TenantNameChangeRequest.objects.filter(pk=request.pk, status=request.status).update(
                status=TenantNameChangeRequest.Status.REJECTED,
                rejection_reason=NAME_TAKEN_REASON,
                reviewed_at=now,
            )
            record_audit(
                action=AuditAction.REJECT_TENANT_NAME_CHANGE,
                entity="tenant_name_change_request",
                entity_id=request.pk,
                tenant_id=request.tenant_id,
                details={"new_name": request.proposed_name, "reason": NAME_TAKEN_REASON},
            )
            logger.warning("Name '%s' no longer available for request %s", request.proposed_name, request.pk)
            return TenantNameChangeRequest.Status.REJECTED

        TenantNameChangeRequest.objects.filter(pk=request.pk, status=request.status).update(
            status=TenantNameChangeRequest.Status.APPLIED,
            applied_at=now,
        )
        record_audit(
            action=AuditAction.APPLY_TENANT_NAME_CHANGE,
            entity="tenant_name_change_request",
            entity_id=request.pk,
            tenant_id=request.tenant_id,
            details={
                "old_name": request.old_name,
                "new_name": request.proposed_name,
                "subdomain": request.proposed_subdomain,
                "applied_at": now,
            },
        )
    logger.info("Renamed tenant %s: %s -> %s", request.tenant_id, request.old_name, request.proposed_name)
    return TenantNameChangeRequest.Status.APPLIED


def auto_approve_stale_name_changes(now: datetime, grace: Optional[timedelta] = None) -> AutoApproveSummary:
    """Auto-approve requests left pending longer than ``grace``."""

    grace = grace if grace is not None else name_change_grace()
    cutoff = now - grace
    effective_at = now + name_change_cooling_off()
    summary = AutoApproveSummary()

    try:
        with LIFECYCLE_JOB_DURATION.labels(job=AUTO_APPROVE_JOB_NAME).time():
            request_ids = list(
                TenantNameChangeRequest.objects.filter(
                    status=TenantNameChangeRequest.Status.PENDING,
                    requested_at__lte=cutoff,
                )
                .order_by("requested_at")
                .values_list("pk", "tenant_id")
            )

            for request_id, tenant_id in request_ids:
                try:
                    updated = TenantNameChangeRequest.objects.filter(
                        pk=request_id,
                        status=TenantNameChangeRequest.Status.PENDING,
                    ).update(
                        status=TenantNameChangeRequest.Status.AUTO_APPROVED,
                        reviewed_at=now,
                        effective_at=effective_at,
                    )
                except Exception as exc:
                    logger.exception("Failed to auto-approve name change %s", request_id)
                    summary.add_error("tenant_name_change_request", request_id, exc)
                    continue

                if not updated:
                    summary.skipped_count += 1
                    continue

                summary.auto_approved_count += 1
                summary.auto_approved_request_ids.append(str(request_id))
                record_audit(
                    action=AuditAction.AUTO_APPROVE_TENANT_NAME_CHANGE,
                    entity="tenant_name_change_request",
                    entity_id=request_id,
                    tenant_id=tenant_id,
                    details={"auto_approved_at": now, "effective_at": effective_at},
                )
    except Exception:
        record_job_run(AUTO_APPROVE_JOB_NAME, failed=True)
        raise

    outcome = record_job_run(AUTO_APPROVE_JOB_NAME, error_count=len(summary.errors))
    log_billing_event(
        message="job.completed",
        job=AUTO_APPROVE_JOB_NAME,
        extra={"outcome": outcome, "auto_approved": summary.auto_approved_count, "errors": len(summary.errors)},
    )
    return summary
