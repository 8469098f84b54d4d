from django.urls import path

from .views import (
    SubscriptionRequestJobView,
    SubscriptionRenewalJobView,
    TenantNameChangeJobView,
    TrialExpirationJobView,
    TrialNotificationJobView,
)

app_name = "jobs"

urlpatterns = [
    path("trial-expiration/", TrialExpirationJobView.as_view(), name="trial-expiration"),
    path("trial-notifications/", TrialNotificationJobView.as_view(), name="trial-notifications"),
    path("subscription-requests/", SubscriptionRequestJobView.as_view(), name="subscription-requests"),
    path("subscription-renewal/", SubscriptionRenewalJobView.as_view(), name="subscription-renewal"),
    path("tenant-name-changes/", TenantNameChangeJobView.as_view(), name="tenant-name-changes"),
]
