from __future__ import annotations

from django.conf import settings
from django.db import models

SYSTEM_ACTOR = "SYSTEM"


class AuditAction(models.TextChoices):
    EXPIRE_SUBSCRIPTION = "EXPIRE_SUBSCRIPTION", "Subscription expired"
    SUPERSEDE_SUBSCRIPTION = "SUPERSEDE_SUBSCRIPTION", "Subscription superseded"
    ACTIVATE_SUBSCRIPTION = "ACTIVATE_SUBSCRIPTION", "Subscription activated"
    CANCEL_SUBSCRIPTION = "CANCEL_SUBSCRIPTION", "Subscription cancelled"
    START_TRIAL = "START_TRIAL", "Trial started"
    SUSPEND_TENANT = "SUSPEND_TENANT", "Tenant suspended"
    ARCHIVE_TENANT = "ARCHIVE_TENANT", "Tenant archived"
    REACTIVATE_TENANT = "REACTIVATE_TENANT", "Tenant reactivated"
    TRIAL_NOTIFICATION_SENT = "TRIAL_NOTIFICATION_SENT", "Trial reminder sent"
    RENEWAL_REMINDER_SENT = "RENEWAL_REMINDER_SENT", "Renewal reminder sent"
    SUBSCRIPTION_UPGRADE_REQUEST = "SUBSCRIPTION_UPGRADE_REQUEST", "Subscription requested"
    APPROVE_SUBSCRIPTION_REQUEST = "APPROVE_SUBSCRIPTION_REQUEST", "Subscription request approved"
    AUTO_APPROVE_SUBSCRIPTION_REQUEST = "AUTO_APPROVE_SUBSCRIPTION_REQUEST", "Subscription request auto-approved"
    REJECT_SUBSCRIPTION_REQUEST = "REJECT_SUBSCRIPTION_REQUEST", "Subscription request rejected"
    RECORD_PAYMENT = "RECORD_PAYMENT", "Payment recorded"
    REQUEST_TENANT_NAME_CHANGE = "REQUEST_TENANT_NAME_CHANGE", "Rename requested"
    APPROVE_TENANT_NAME_CHANGE = "APPROVE_TENANT_NAME_CHANGE", "Rename approved"
    AUTO_APPROVE_TENANT_NAME_CHANGE = "AUTO_APPROVE_TENANT_NAME_CHANGE", "Rename auto-approved"
    REJECT_TENANT_NAME_CHANGE = "REJECT_TENANT_NAME_CHANGE", "Rename rejected"
    CANCEL_TENANT_NAME_CHANGE = "CANCEL_TENANT_NAME_CHANGE", "Rename cancelled"
    APPLY_TENANT_NAME_CHANGE = "APPLY_TENANT_NAME_CHANGE", "Rename applied"


class AuditLogEntry(models.Model):
    """Append-only record of every state change made by the lifecycle engine."""

    id = models.BigAutoField(primary_key=True)
    action = models.CharField(max_length=64, choices=AuditAction.choices)
    entity = models.CharField(max_length=64, help_text="Kind of record the action touched.")
    entity_id = models.CharField(max_length=64, help_text="Primary key of the touched record.")
    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_log_entries",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_log_entries",
    )
    user_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Actor name; SYSTEM for scheduled jobs.",
    )
    details = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audit_log_entry"
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=("entity", "entity_id"), name="audit_entity_idx"),
            models.Index(fields=("action", "-created_at"), name="audit_action_ts_idx"),
            models.Index(fields=("tenant", "-created_at"), name="audit_tenant_ts_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are append-only.")
        return super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover - human readable only
        return f"AuditLogEntry<{self.action} {self.entity}:{self.entity_id}>"
