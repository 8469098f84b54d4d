"""Prometheus metrics helpers for the subscription lifecycle."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

LIFECYCLE_JOB_RUNS = Counter(
    "billing_lifecycle_job_runs_total",
    "Number of lifecycle batch job invocations",
    labelnames=("job", "outcome"),
)

LIFECYCLE_JOB_DURATION = Histogram(
    "billing_lifecycle_job_duration_seconds",
    "Wall time of lifecycle batch job invocations",
    labelnames=("job",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 15, 60),
)

SUBSCRIPTION_TRANSITIONS = Counter(
    "billing_subscription_transition_total",
    "Subscription status transitions applied",
    labelnames=("event", "source", "target"),
)

TRIAL_NOTIFICATIONS = Counter(
    "billing_trial_notification_total",
    "Trial expiry reminders by outcome",
    labelnames=("threshold", "outcome"),
)

RENEWAL_REMINDERS = Counter(
    "billing_renewal_reminder_total",
    "Paid subscription renewal reminders by outcome",
    labelnames=("threshold", "outcome"),
)

SUBSCRIPTION_REQUESTS_RESOLVED = Counter(
    "billing_subscription_request_resolved_total",
    "Subscription requests resolved",
    labelnames=("resolution",),
)

TENANT_STATUS_CHANGES = Counter(
    "billing_tenant_status_change_total",
    "Tenant access status changes driven by the lifecycle",
    labelnames=("target",),
)


def record_job_run(job: str, *, error_count: int = 0, failed: bool = False) -> str:
    """Count one job invocation and return its outcome label."""

    if failed:
        outcome = "failed"
    elif error_count:
        outcome = "partial"
    else:
        outcome = "success"
    LIFECYCLE_JOB_RUNS.labels(job=job, outcome=outcome).inc()
    return outcome
