"""Notification transports used by the lifecycle jobs."""
from __future__ import annotations

import logging
from typing import List

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils.module_loading import import_string

from billing.constants import DEFAULT_NOTIFICATION_TRANSPORT

from .models import Notification

logger = logging.getLogger(__name__)

EMAIL = "email"
IN_APP = "in_app"
ALL = "all"
CHANNELS = (EMAIL, IN_APP, ALL)


class NotificationTransport:
    """Delivers a message to a tenant. ``send`` returns ``True`` once something was delivered."""

    def send(self, tenant_id, channel: str, title: str, body: str) -> bool:
        raise NotImplementedError


class DjangoNotificationTransport(NotificationTransport):
    """
    Delivers to the tenant's active owners: in-app rows and/or email via ``send_mail``.

    Mail errors propagate so callers can release whatever they claimed.
    """

    def send(self, tenant_id, channel: str, title: str, body: str) -> bool:
        if channel not in CHANNELS:
            raise ValueError(f"Unsupported notification channel '{channel}'.")

        owners = self._owners(tenant_id)
        if not owners:
            logger.warning("No active owner to notify for tenant %s", tenant_id)
            return False

        delivered = False
        if channel in (IN_APP, ALL):
            Notification.objects.bulk_create(
                [
                    Notification(
                        tenant_id=tenant_id,
                        user=owner,
                        type=Notification.Type.SYSTEM,
                        title=title,
                        description=body,
                    )
                    for owner in owners
                ]
            )
            delivered = True

        if channel in (EMAIL, ALL):
            recipients = [owner.email for owner in owners if owner.email]
            if recipients:
                context = {
                    'title': title,
                    'body': body,
                    'site_name': getattr(settings, 'SITE_NAME', 'GoodSale'),
                    'site_url': getattr(settings, 'SITE_URL', 'https://goodsale.app'),
                }
                html_message = render_to_string('emails/notification.html', context)
                sent = send_mail(
                    subject=title,
                    message=body,
                    from_email=settings.DEFAULT_FROM_EMAIL,
                    recipient_list=recipients,
                    html_message=html_message,
                    fail_silently=False,
                )
                delivered = delivered or sent > 0
                logger.info("Email '%s' sent to %d owner(s) of tenant %s", title, len(recipients), tenant_id)
            else:
                logger.warning("Owners of tenant %s have no email address", tenant_id)

        return delivered

    @staticmethod
    def _owners(tenant_id) -> List:
        User = get_user_model()
        return list(
            User.objects.filter(tenant_id=tenant_id, role=User.Role.OWNER, is_active=True).order_by("date_joined")
        )


def get_transport() -> NotificationTransport:
    path = getattr(settings, "NOTIFICATION_TRANSPORT", DEFAULT_NOTIFICATION_TRANSPORT)
    return import_string(path)()
