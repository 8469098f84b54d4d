"""Lifecycle jobs addressable by name from HTTP triggers, Celery and the CLI."""
from __future__ import annotations

from billing.services.renewal_reminders import run_renewal_reminders
from billing.services.subscription_requests import auto_approve_stale_requests
from billing.services.trial_expiration import run_trial_expiration
from billing.services.trial_notifications import run_trial_notifications
from tenants.services.name_changes import apply_due_name_changes, auto_approve_stale_name_changes

NAME_CHANGE_TASKS = {
    "apply": apply_due_name_changes,
    "auto-approve": auto_approve_stale_name_changes,
}

JOB_RUNNERS = {
    "trial-expiration": run_trial_expiration,
    "trial-notifications": run_trial_notifications,
    "subscription-requests": auto_approve_stale_requests,
    "subscription-renewal": run_renewal_reminders,
    "tenant-name-changes-apply": apply_due_name_changes,
    "tenant-name-changes-auto-approve": auto_approve_stale_name_changes,
}
