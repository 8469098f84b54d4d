"""Billing models for plans, subscriptions, upgrade requests and the payment ledger."""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from tenants.models import Tenant


def _default_currency() -> str:
    """Resolve default billing currency from settings."""
    return getattr(settings, "BILLING_CURRENCY", "ugx").lower()


class BillingPeriod(models.TextChoices):
    ONE_MONTH = "1_month", "1 Month"
    SIX_MONTHS = "6_months", "6 Months"
    TWELVE_MONTHS = "12_months", "12 Months"
    TWENTY_FOUR_MONTHS = "24_months", "24 Months"

    @property
    def months(self) -> int:
        return BILLING_PERIOD_MONTHS[self.value]


BILLING_PERIOD_MONTHS = {
    BillingPeriod.ONE_MONTH.value: 1,
    BillingPeriod.SIX_MONTHS.value: 6,
    BillingPeriod.TWELVE_MONTHS.value: 12,
    BillingPeriod.TWENTY_FOUR_MONTHS.value: 24,
}


class SubscriptionStatus(models.TextChoices):
    TRIAL = "trial", "Trial"
    ACTIVE = "active", "Active"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


LIVE_SUBSCRIPTION_STATUSES = (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE)


class Plan(models.Model):
    """
    Subscription plan offered to tenants.

    Plans referenced by billing history are never deleted (``PROTECT`` on every
    foreign key); price changes are made by creating a new plan.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key = models.SlugField(max_length=50, unique=True, help_text="Stable identifier, denormalized onto tenants")
    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Price per month",
    )
    description = models.TextField(blank=True)
    features = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, help_text="Whether tenants may request this plan")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "billing_plan"
        verbose_name = "Plan"
        verbose_name_plural = "Plans"
        ordering = ["price"]

    def __str__(self):
        return f"{self.name} ({self.price}/month)"

    def price_for(self, billing_period: str) -> Decimal:
        """Total charged for ``billing_period`` at this plan's monthly price."""
        months = BILLING_PERIOD_MONTHS[billing_period]
        return (self.price * months).quantize(Decimal("0.01"))


class Subscription(models.Model):
    """
    Tenant subscription row.

    Rows are never rewritten on renewal or supersession: the old row reaches a
    terminal status and a new row is inserted, so the table doubles as history.
    At most one row per tenant is live (trial or active).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="subscriptions",
        help_text="Subscribing tenant",
    )
    plan = models.ForeignKey(
        Plan,
        on_delete=models.PROTECT,
        related_name="subscriptions",
        help_text="Plan in use",
    )
    billing_period = models.CharField(
        max_length=20,
        choices=BillingPeriod.choices,
        default=BillingPeriod.ONE_MONTH,
    )
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.TRIAL,
        help_text="Only changed through billing.services.subscription_state",
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(help_text="End of the trial or paid period")
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    auto_renewal = models.BooleanField(default=False)
    source_request = models.OneToOneField(
        "SubscriptionRequest",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="resulting_subscription",
        help_text="Approved request that created this subscription",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_subscription"
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        ordering = ["-start_date", "-created_at"]
        indexes = [
            models.Index(fields=["status", "end_date"], name="billing_sub_status_end_idx"),
            models.Index(fields=["tenant", "status"], name="billing_sub_tenant_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant"],
                condition=Q(status__in=["trial", "active"]),
                name="billing_sub_single_live_per_tenant",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="billing_sub_end_after_start",
            ),
        ]

    def __str__(self):
        return f"Subscription<{self.tenant_id}:{self.status}>"

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_SUBSCRIPTION_STATUSES


class SubscriptionRequest(models.Model):
    """
    Tenant request to move to a paid plan, moderated by platform administrators.

    Requests are immutable once resolved; every status write is guarded on
    ``status='pending'``.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        AUTO_APPROVED = "auto_approved", "Auto Approved"
        REJECTED = "rejected", "Rejected"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="subscription_requests",
    )
    plan = models.ForeignKey(
        Plan,
        on_delete=models.PROTECT,
        related_name="subscription_requests",
    )
    billing_period = models.CharField(max_length=20, choices=BillingPeriod.choices)
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
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
        related_name="subscription_requests",
        help_text="Tenant user who submitted the request",
    )
    requested_at = models.DateTimeField(help_text="Start of the auto-approval grace window")
    contact_name = models.CharField(max_length=255)
    contact_phone = models.CharField(max_length=50)
    contact_email = models.EmailField(blank=True)

    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_subscription_requests",
        help_text="Administrator who resolved the request (empty when automatic)",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    invoice_number = models.CharField(max_length=64, blank=True, help_text="Invoice issued on approval")

    class Meta:
        db_table = "billing_subscription_request"
        verbose_name = "Subscription request"
        verbose_name_plural = "Subscription requests"
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["status", "requested_at"], name="billing_subreq_stale_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant"],
                condition=Q(status="pending"),
                name="billing_subreq_single_pending",
            ),
        ]

    def __str__(self):
        return f"SubscriptionRequest<{self.tenant_id}:{self.plan_id}:{self.status}>"

    @property
    def is_resolved(self) -> bool:
        return self.status != self.Status.PENDING


class BillingLedgerEntry(models.Model):
    """Append-only record of a completed charge; never updated after creation."""

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        BANK_TRANSFER = "bank_transfer", "Bank Transfer"
        MOBILE_MONEY = "mobile_money", "Mobile Money"
        OTHER = "other", "Other"

    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="billing_ledger_entries",
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    subscription_request = models.OneToOneField(
        SubscriptionRequest,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entry",
        help_text="Request whose approval produced the charge",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    currency = models.CharField(max_length=3, default=_default_currency)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.COMPLETED,
    )
    invoice_number = models.CharField(max_length=64, blank=True)
    recorded_by = models.CharField(
        max_length=255,
        blank=True,
        help_text="Administrator or system actor that recorded the charge",
    )
    notes = models.TextField(blank=True)
    paid_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "billing_ledger_entry"
        verbose_name = "Billing ledger entry"
        verbose_name_plural = "Billing ledger entries"
        ordering = ["-paid_at", "-created_at"]
        indexes = [
            models.Index(fields=["tenant", "-paid_at"], name="billing_ledger_tenant_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["invoice_number"],
                condition=Q(invoice_number__gt=""),
                name="billing_ledger_invoice_number_key",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Billing ledger entries are append-only.")
        if self.currency:
            self.currency = self.currency.lower()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Billing ledger entries are append-only.")

    def __str__(self):
        return f"BillingLedgerEntry<{self.tenant_id}:{self.amount} {self.currency}>"


class TrialNotificationRecord(models.Model):
    """Marks a (subscription, threshold) reminder as consumed."""

    id = models.BigAutoField(primary_key=True)
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name="trial_notifications",
    )
    threshold_days = models.PositiveSmallIntegerField()
    channel = models.CharField(max_length=20)
    sent_at = models.DateTimeField()

    class Meta:
        db_table = "billing_trial_notification"
        verbose_name = "Trial notification"
        verbose_name_plural = "Trial notifications"
        ordering = ["-sent_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["subscription", "threshold_days"],
                name="billing_trial_notification_once",
            ),
        ]

    def __str__(self):
        return f"TrialNotification<{self.subscription_id}:{self.threshold_days}d>"
