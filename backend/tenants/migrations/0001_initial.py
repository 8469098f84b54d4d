import uuid

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the tenant', primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Shop display name', max_length=255, unique=True)),
                ('subdomain', models.SlugField(help_text='Subdomain used to route requests to this tenant', max_length=255, unique=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('suspended', 'Suspended'), ('archived', 'Archived')], default='active', help_text='Access state driven by the subscription lifecycle', max_length=20)),
                ('plan', models.CharField(default='starter', help_text='Key of the plan attached to the live subscription (denormalized)', max_length=50)),
                ('suspended_at', models.DateTimeField(blank=True, help_text='When the tenant lost its last live subscription', null=True)),
                ('data_archived_at', models.DateTimeField(blank=True, help_text='When operational data was flagged inaccessible', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp of tenant creation')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp of last tenant modification')),
            ],
            options={
                'verbose_name': 'Tenant',
                'verbose_name_plural': 'Tenants',
                'db_table': 'tenant',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='tenant_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='TenantNameChangeRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('old_name', models.CharField(max_length=255)),
                ('proposed_name', models.CharField(max_length=255)),
                ('proposed_subdomain', models.SlugField(max_length=255)),
                ('reason', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('scheduled', 'Scheduled'), ('auto_approved', 'Auto Approved'), ('applied', 'Applied'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('requested_at', models.DateTimeField(help_text='Start of the auto-approval grace window')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('effective_at', models.DateTimeField(blank=True, help_text='Earliest time the apply job may rename the tenant', null=True)),
                ('applied_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('tenant', models.ForeignKey(help_text='Tenant asking to be renamed', on_delete=django.db.models.deletion.CASCADE, related_name='name_change_requests', to='tenants.tenant')),
            ],
            options={
                'verbose_name': 'Tenant name change request',
                'verbose_name_plural': 'Tenant name change requests',
                'db_table': 'tenant_name_change_request',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['status', 'effective_at'], name='tenant_rename_due_idx'),
                    models.Index(fields=['status', 'requested_at'], name='tenant_rename_stale_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'scheduled', 'auto_approved'])), fields=('tenant',), name='tenant_single_open_rename'),
                ],
            },
        ),
    ]
