"""
URL configuration for backend project.

Routes include administration, API modules, health checks, and metrics endpoints.
"""
import os
from prometheus_client import CollectorRegistry, multiprocess, generate_latest, REGISTRY
from django.contrib import admin
from django.urls import path, include
from django.http import HttpResponse

# Use multiprocess collector only if PROMETHEUS_MULTIPROC_DIR is set (production)
# Otherwise use default registry (development)
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY


def health_check(request):
    return HttpResponse("OK", content_type="text/plain")


def billing_metrics(request):
    payload = generate_latest(registry)
    return HttpResponse(payload, content_type="text/plain; version=0.0.4")


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/billing/', include('billing.urls', namespace='billing')),
    path('api/tenants/', include('tenants.urls', namespace='tenants')),
    path('api/audit/', include('audit.urls')),
    path('api/cron/', include('jobs.urls', namespace='jobs')),
    path('api/notifications/', include('notifications.urls')),
    path('health/', health_check, name='health_check'),
    path('metrics/billing/', billing_metrics, name='billing_metrics'),
]
