from rest_framework.routers import DefaultRouter

from .views import AuditLogEntryViewSet

router = DefaultRouter()
router.register(r"logs", AuditLogEntryViewSet, basename="audit-log")

urlpatterns = router.urls
