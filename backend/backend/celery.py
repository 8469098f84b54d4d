import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')

app = Celery('backend')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

BILLING_QUEUE = 'billing'

LIFECYCLE_TASKS = (
    "billing.tasks.run_trial_expiration_task",
    "billing.tasks.run_trial_notifications_task",
    "billing.tasks.run_renewal_reminders_task",
    "billing.tasks.auto_approve_subscription_requests_task",
    "tenants.tasks.apply_due_name_changes_task",
    "tenants.tasks.auto_approve_name_changes_task",
)

app.conf.task_routes = {
    **{name: {'queue': BILLING_QUEUE} for name in LIFECYCLE_TASKS},
    '*': {'queue': 'default'},
}
app.conf.task_default_queue = 'default'

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    # Beat hours below are UTC.
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    # Every lifecycle job is idempotent; a redelivered run is a no-op.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_send_task_events=True,
    task_send_sent_event=True,
    task_queues={
        'default': {'exchange': 'default', 'routing_key': 'default'},
        BILLING_QUEUE: {'exchange': BILLING_QUEUE, 'routing_key': BILLING_QUEUE},
    },
)

# Reminder jobs talk to the mail server, so they are throttled.
app.conf.task_annotations = {
    'billing.tasks.run_trial_expiration_task': {'time_limit': 900, 'soft_time_limit': 840},
    'billing.tasks.run_trial_notifications_task': {'rate_limit': '1/m', 'time_limit': 900, 'soft_time_limit': 840},
    'billing.tasks.run_renewal_reminders_task': {'rate_limit': '1/m', 'time_limit': 900, 'soft_time_limit': 840},
}


def _daily(task, hour, minute=0, **options):
    return {
        "task": task,
        "schedule": crontab(hour=hour, minute=minute),
        "options": {"queue": BILLING_QUEUE, **options},
    }


# Approval sweeps run ahead of expiration so an approved tenant is not suspended.
app.conf.beat_schedule = {
    "tenant_name_changes_auto_approve_daily": _daily("tenants.tasks.auto_approve_name_changes_task", 1),
    "subscription_requests_auto_approve_daily": _daily("billing.tasks.auto_approve_subscription_requests_task", 1, 30),
    "trial_notifications_daily": _daily("billing.tasks.run_trial_notifications_task", 2),
    "renewal_reminders_daily": _daily("billing.tasks.run_renewal_reminders_task", 2, 30),
    "trial_expiration_daily": _daily("billing.tasks.run_trial_expiration_task", 3, priority=8),
    "tenant_name_changes_apply_15min": {
        "task": "tenants.tasks.apply_due_name_changes_task",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": BILLING_QUEUE},
    },
}
