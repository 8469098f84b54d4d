import pytest
from django.contrib.auth import get_user_model
from django.core import mail

from notifications.models import Notification
from notifications.transport import DjangoNotificationTransport, get_transport

pytestmark = pytest.mark.django_db


def test_email_goes_to_active_owners(tenant, owner, make_user):
    make_user("cashier", tenant=tenant)
    transport = DjangoNotificationTransport()

    delivered = transport.send(tenant.pk, "email", "Your trial expires in 3 days", "Upgrade now.")

    assert delivered is True
    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == ["owner@example.com"]
    assert message.subject == "Your trial expires in 3 days"
    assert message.alternatives
    assert not Notification.objects.exists()


def test_in_app_creates_notification_per_owner(tenant, owner, make_user):
    make_user("co-owner", tenant=tenant, role=get_user_model().Role.OWNER)

    delivered = DjangoNotificationTransport().send(tenant.pk, "in_app", "Reminder", "Body")

    assert delivered is True
    assert mail.outbox == []
    assert Notification.objects.filter(tenant=tenant, title="Reminder").count() == 2


def test_all_channel_uses_both(tenant, owner):
    DjangoNotificationTransport().send(tenant.pk, "all", "Reminder", "Body")

    assert len(mail.outbox) == 1
    assert Notification.objects.filter(user=owner).count() == 1


def test_tenant_without_owner_is_not_delivered(tenant):
    assert DjangoNotificationTransport().send(tenant.pk, "email", "Reminder", "Body") is False
    assert mail.outbox == []


def test_unknown_channel_raises(tenant, owner):
    with pytest.raises(ValueError):
        DjangoNotificationTransport().send(tenant.pk, "sms", "Reminder", "Body")


def test_transport_is_configurable(settings):
    settings.NOTIFICATION_TRANSPORT = "notifications.transport.DjangoNotificationTransport"

    assert isinstance(get_transport(), DjangoNotificationTransport)
