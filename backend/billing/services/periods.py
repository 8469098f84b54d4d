"""Calendar helpers for billing periods."""
from __future__ import annotations

import calendar
from datetime import datetime

from billing.exceptions import LifecycleValidationError
from billing.models import BILLING_PERIOD_MONTHS


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole months, clamping the day to the target month's length."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def months_for(billing_period: str) -> int:
    try:
        return BILLING_PERIOD_MONTHS[billing_period]
    except KeyError as exc:
        raise LifecycleValidationError(f"Unknown billing period '{billing_period}'.") from exc


def period_end(start: datetime, billing_period: str) -> datetime:
    return add_months(start, months_for(billing_period))
