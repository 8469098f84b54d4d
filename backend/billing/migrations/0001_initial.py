import uuid
from decimal import Decimal

import billing.models
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


BILLING_PERIOD_CHOICES = [
    ('1_month', '1 Month'),
    ('6_months', '6 Months'),
    ('12_months', '12 Months'),
    ('24_months', '24 Months'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Plan',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('key', models.SlugField(help_text='Stable identifier, denormalized onto tenants', unique=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('price', models.DecimalField(decimal_places=2, help_text='Price per month', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('description', models.TextField(blank=True)),
                ('features', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True, help_text='Whether tenants may request this plan')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Plan',
                'verbose_name_plural': 'Plans',
                'db_table': 'billing_plan',
                'ordering': ['price'],
            },
        ),
        migrations.CreateModel(
            name='SubscriptionRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('billing_period', models.CharField(choices=BILLING_PERIOD_CHOICES, max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('auto_approved', 'Auto Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('requested_at', models.DateTimeField(help_text='Start of the auto-approval grace window')),
                ('contact_name', models.CharField(max_length=255)),
                ('contact_phone', models.CharField(max_length=50)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('invoice_number', models.CharField(blank=True, help_text='Invoice issued on approval', max_length=64)),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='subscription_requests', to='billing.plan')),
                ('requested_by', models.ForeignKey(blank=True, help_text='Tenant user who submitted the request', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subscription_requests', to=settings.AUTH_USER_MODEL)),
                ('resolved_by', models.ForeignKey(blank=True, help_text='Administrator who resolved the request (empty when automatic)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='resolved_subscription_requests', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subscription_requests', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'Subscription request',
                'verbose_name_plural': 'Subscription requests',
                'db_table': 'billing_subscription_request',
                'ordering': ['-requested_at'],
                'indexes': [models.Index(fields=['status', 'requested_at'], name='billing_subreq_stale_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('tenant',), name='billing_subreq_single_pending'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('billing_period', models.CharField(choices=BILLING_PERIOD_CHOICES, default='1_month', max_length=20)),
                ('status', models.CharField(choices=[('trial', 'Trial'), ('active', 'Active'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='trial', help_text='Only changed through billing.services.subscription_state', max_length=20)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField(help_text='End of the trial or paid period')),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('auto_renewal', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('plan', models.ForeignKey(help_text='Plan in use', on_delete=django.db.models.deletion.PROTECT, related_name='subscriptions', to='billing.plan')),
                ('source_request', models.OneToOneField(blank=True, help_text='Approved request that created this subscription', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='resulting_subscription', to='billing.subscriptionrequest')),
                ('tenant', models.ForeignKey(help_text='Subscribing tenant', on_delete=django.db.models.deletion.CASCADE, related_name='subscriptions', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'Subscription',
                'verbose_name_plural': 'Subscriptions',
                'db_table': 'billing_subscription',
                'ordering': ['-start_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'end_date'], name='billing_sub_status_end_idx'),
                    models.Index(fields=['tenant', 'status'], name='billing_sub_tenant_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['trial', 'active'])), fields=('tenant',), name='billing_sub_single_live_per_tenant'),
                    models.CheckConstraint(condition=models.Q(('end_date__gte', models.F('start_date'))), name='billing_sub_end_after_start'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BillingLedgerEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('currency', models.CharField(default=billing.models._default_currency, max_length=3)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('bank_transfer', 'Bank Transfer'), ('mobile_money', 'Mobile Money'), ('other', 'Other')], default='cash', max_length=20)),
                ('status', models.CharField(choices=[('completed', 'Completed')], default='completed', max_length=20)),
                ('invoice_number', models.CharField(blank=True, max_length=64)),
                ('recorded_by', models.CharField(blank=True, help_text='Administrator or system actor that recorded the charge', max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('paid_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ledger_entries', to='billing.subscription')),
                ('subscription_request', models.OneToOneField(blank=True, help_text='Request whose approval produced the charge', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='ledger_entry', to='billing.subscriptionrequest')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='billing_ledger_entries', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'Billing ledger entry',
                'verbose_name_plural': 'Billing ledger entries',
                'db_table': 'billing_ledger_entry',
                'ordering': ['-paid_at', '-created_at'],
                'indexes': [models.Index(fields=['tenant', '-paid_at'], name='billing_ledger_tenant_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('invoice_number__gt', '')), fields=('invoice_number',), name='billing_ledger_invoice_number_key'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TrialNotificationRecord',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('threshold_days', models.PositiveSmallIntegerField()),
                ('channel', models.CharField(max_length=20)),
                ('sent_at', models.DateTimeField()),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trial_notifications', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Trial notification',
                'verbose_name_plural': 'Trial notifications',
                'db_table': 'billing_trial_notification',
                'ordering': ['-sent_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('subscription', 'threshold_days'), name='billing_trial_notification_once'),
                ],
            },
        ),
    ]
