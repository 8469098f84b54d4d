"""Default values and settings accessors for the subscription lifecycle."""
from __future__ import annotations

from datetime import timedelta
from typing import Tuple

from django.conf import settings

DEFAULT_TRIAL_PERIOD_DAYS = 14
DEFAULT_TRIAL_NOTIFICATION_THRESHOLDS: Tuple[int, ...] = (7, 3, 1)
DEFAULT_TRIAL_NOTIFICATION_CHANNEL = "email"
DEFAULT_RENEWAL_REMINDER_THRESHOLDS: Tuple[int, ...] = (30, 7, 1)
DEFAULT_TRIAL_ARCHIVE_AFTER_DAYS = 14
DEFAULT_SUBSCRIPTION_REQUEST_AUTO_APPROVE_HOURS = 48
DEFAULT_TENANT_NAME_CHANGE_AUTO_APPROVE_DAYS = 30
DEFAULT_TENANT_NAME_CHANGE_COOLING_OFF_HOURS = 24
DEFAULT_NOTIFICATION_TRANSPORT = "notifications.transport.DjangoNotificationTransport"
DEFAULT_TENANT_DATA_ARCHIVER = "tenants.archival.flag_tenant_data_archived"


def trial_period() -> timedelta:
    return timedelta(days=int(getattr(settings, "TRIAL_PERIOD_DAYS", DEFAULT_TRIAL_PERIOD_DAYS)))


def trial_notification_thresholds() -> Tuple[int, ...]:
    configured = getattr(settings, "TRIAL_NOTIFICATION_THRESHOLDS", DEFAULT_TRIAL_NOTIFICATION_THRESHOLDS)
    return normalise_thresholds(configured)


def normalise_thresholds(values) -> Tuple[int, ...]:
    """Positive, de-duplicated thresholds in descending order."""
    thresholds = sorted({int(value) for value in values if int(value) > 0}, reverse=True)
    if not thresholds:
        raise ValueError("At least one positive notification threshold is required.")
    return tuple(thresholds)


def renewal_reminder_thresholds() -> Tuple[int, ...]:
    configured = getattr(settings, "RENEWAL_REMINDER_THRESHOLDS", DEFAULT_RENEWAL_REMINDER_THRESHOLDS)
    return normalise_thresholds(configured)


def trial_notification_channel() -> str:
    return getattr(settings, "TRIAL_NOTIFICATION_CHANNEL", DEFAULT_TRIAL_NOTIFICATION_CHANNEL)


def trial_archive_after() -> timedelta:
    return timedelta(days=int(getattr(settings, "TRIAL_ARCHIVE_AFTER_DAYS", DEFAULT_TRIAL_ARCHIVE_AFTER_DAYS)))


def subscription_request_grace() -> timedelta:
    hours = getattr(
        settings,
        "SUBSCRIPTION_REQUEST_AUTO_APPROVE_HOURS",
        DEFAULT_SUBSCRIPTION_REQUEST_AUTO_APPROVE_HOURS,
    )
    return timedelta(hours=int(hours))


def name_change_grace() -> timedelta:
    days = getattr(
        settings,
        "TENANT_NAME_CHANGE_AUTO_APPROVE_DAYS",
        DEFAULT_TENANT_NAME_CHANGE_AUTO_APPROVE_DAYS,
    )
    return timedelta(days=int(days))


def name_change_cooling_off() -> timedelta:
    hours = getattr(
        settings,
        "TENANT_NAME_CHANGE_COOLING_OFF_HOURS",
        DEFAULT_TENANT_NAME_CHANGE_COOLING_OFF_HOURS,
    )
    return timedelta(hours=int(hours))
