import uuid

from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification shown to a tenant user."""

    class Type(models.TextChoices):
        SYSTEM = "system", "System"
        SALE = "sale", "Sale"
        STOCK = "stock", "Stock"
        USER = "user", "User"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
        help_text="Recipient; empty for tenant-wide notifications",
    )
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.SYSTEM)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_read = models.BooleanField(default=False)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notification"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant", "user", "is_read"], name="notification_inbox_idx"),
        ]

    def __str__(self):
        return f"Notification<{self.tenant_id}:{self.title}>"
