"""Celery tasks for the tenant rename workflow."""
from __future__ import annotations

import logging
from typing import Any, Dict

from celery import shared_task
from django.utils import timezone

from tenants.services.name_changes import apply_due_name_changes, auto_approve_stale_name_changes

logger = logging.getLogger(__name__)


@shared_task
def apply_due_name_changes_task() -> Dict[str, Any]:
    summary = apply_due_name_changes(timezone.now())
    logger.info(
        "Applied %s tenant renames (%s rejected as taken).",
        summary.applied_count,
        summary.rejected_count,
    )
    return summary.to_dict()


@shared_task
def auto_approve_name_changes_task() -> Dict[str, Any]:
    """Schedule rename requests nobody reviewed within the grace period."""

    summary = auto_approve_stale_name_changes(timezone.now())
    logger.info("Auto-approved %s tenant rename requests.", summary.auto_approved_count)
    return summary.to_dict()
