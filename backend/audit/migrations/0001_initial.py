from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenants', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLogEntry',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[
                    ('EXPIRE_SUBSCRIPTION', 'Subscription expired'),
                    ('SUPERSEDE_SUBSCRIPTION', 'Subscription superseded'),
                    ('ACTIVATE_SUBSCRIPTION', 'Subscription activated'),
                    ('CANCEL_SUBSCRIPTION', 'Subscription cancelled'),
                    ('START_TRIAL', 'Trial started'),
                    ('SUSPEND_TENANT', 'Tenant suspended'),
                    ('ARCHIVE_TENANT', 'Tenant archived'),
                    ('REACTIVATE_TENANT', 'Tenant reactivated'),
                    ('TRIAL_NOTIFICATION_SENT', 'Trial reminder sent'),
                    ('RENEWAL_REMINDER_SENT', 'Renewal reminder sent'),
                    ('SUBSCRIPTION_UPGRADE_REQUEST', 'Subscription requested'),
                    ('APPROVE_SUBSCRIPTION_REQUEST', 'Subscription request approved'),
                    ('AUTO_APPROVE_SUBSCRIPTION_REQUEST', 'Subscription request auto-approved'),
                    ('REJECT_SUBSCRIPTION_REQUEST', 'Subscription request rejected'),
                    ('RECORD_PAYMENT', 'Payment recorded'),
                    ('REQUEST_TENANT_NAME_CHANGE', 'Rename requested'),
                    ('APPROVE_TENANT_NAME_CHANGE', 'Rename approved'),
                    ('AUTO_APPROVE_TENANT_NAME_CHANGE', 'Rename auto-approved'),
                    ('REJECT_TENANT_NAME_CHANGE', 'Rename rejected'),
                    ('CANCEL_TENANT_NAME_CHANGE', 'Rename cancelled'),
                    ('APPLY_TENANT_NAME_CHANGE', 'Rename applied'),
                ], max_length=64)),
                ('entity', models.CharField(help_text='Kind of record the action touched.', max_length=64)),
                ('entity_id', models.CharField(help_text='Primary key of the touched record.', max_length=64)),
                ('user_name', models.CharField(blank=True, help_text='Actor name; SYSTEM for scheduled jobs.', max_length=255, null=True)),
                ('details', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_log_entries', to='tenants.tenant')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_log_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_log_entry',
                'ordering': ('-created_at', '-id'),
                'indexes': [
                    models.Index(fields=['entity', 'entity_id'], name='audit_entity_idx'),
                    models.Index(fields=['action', '-created_at'], name='audit_action_ts_idx'),
                    models.Index(fields=['tenant', '-created_at'], name='audit_tenant_ts_idx'),
                ],
            },
        ),
    ]
