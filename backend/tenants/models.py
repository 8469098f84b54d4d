import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Tenant(models.Model):
    """
    Tenant model - Core entity for the multi-tenant architecture

    Represents a subscribing shop identified by its subdomain. Each tenant
    provides an isolated environment for:
    - Point of sale, inventory and shift data
    - Team accounts and roles
    - Subscription and billing history

    ``status`` and ``subdomain`` are owned by the subscription lifecycle and the
    name change workflow respectively; other code treats them as read-only.
    """

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        SUSPENDED = "suspended", "Suspended"
        ARCHIVED = "archived", "Archived"

    # Primary identification using UUID for global uniqueness and security
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the tenant"
    )

    name = models.CharField(
        max_length=255,
        unique=True,
        help_text="Shop display name"
    )
    subdomain = models.SlugField(
        max_length=255,
        unique=True,
        help_text="Subdomain used to route requests to this tenant"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        help_text="Access state driven by the subscription lifecycle"
    )
    plan = models.CharField(
        max_length=50,
        default="starter",
        help_text="Key of the plan attached to the live subscription (denormalized)"
    )

    suspended_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When the tenant lost its last live subscription"
    )
    data_archived_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When operational data was flagged inaccessible"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp of tenant creation"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp of last tenant modification"
    )

    class Meta:
        db_table = 'tenant'
        verbose_name = 'Tenant'
        verbose_name_plural = 'Tenants'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='tenant_status_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.subdomain})"

    @property
    def is_accessible(self):
        return self.status == self.Status.ACTIVE

    def owners(self):
        return self.users.filter(role="owner", is_active=True)


class TenantNameChangeRequest(models.Model):
    """
    Tenant rename request moderated by platform administrators.

    Approved requests are not applied immediately: they are scheduled for an
    ``effective_at`` after a cooling-off period, and the apply job performs the
    rename. Requests left unmoderated past the grace window are auto-approved.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SCHEDULED = "scheduled", "Scheduled"
        AUTO_APPROVED = "auto_approved", "Auto Approved"
        APPLIED = "applied", "Applied"
        REJECTED = "rejected", "Rejected"
        CANCELLED = "cancelled", "Cancelled"

    OPEN_STATUSES = (Status.PENDING, Status.SCHEDULED, Status.AUTO_APPROVED)
    AWAITING_APPLY_STATUSES = (Status.SCHEDULED, Status.AUTO_APPROVED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name='name_change_requests',
        help_text="Tenant asking to be renamed"
    )
    old_name = models.CharField(max_length=255)
    proposed_name = models.CharField(max_length=255)
    proposed_subdomain = models.SlugField(max_length=255)
    reason = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tenant_name_change_requests',
    )
    requested_at = models.DateTimeField(help_text="Start of the auto-approval grace window")
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_tenant_name_changes',
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    effective_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Earliest time the apply job may rename the tenant"
    )
    applied_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    class Meta:
        db_table = 'tenant_name_change_request'
        verbose_name = 'Tenant name change request'
        verbose_name_plural = 'Tenant name change requests'
        ordering = ['-requested_at']
        indexes = [
            models.Index(fields=['status', 'effective_at'], name='tenant_rename_due_idx'),
            models.Index(fields=['status', 'requested_at'], name='tenant_rename_stale_idx'),
        ]
        constraints = [
            # One open request per tenant
            models.UniqueConstraint(
                fields=['tenant'],
                condition=Q(status__in=['pending', 'scheduled', 'auto_approved']),
                name='tenant_single_open_rename',
            ),
        ]

    def __str__(self):
        return f"TenantNameChange<{self.old_name} -> {self.proposed_name}:{self.status}>"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES
