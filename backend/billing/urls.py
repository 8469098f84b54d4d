"""URL routes for billing endpoints."""
from django.urls import path

from .views import (
    BillingHistoryView,
    PlanListView,
    SubscriptionRequestSubmitView,
    SubscriptionStatusView,
)
from .views.admin_requests import (
    PendingSubscriptionRequestCountView,
    SubscriptionRequestApproveView,
    SubscriptionRequestRejectView,
    SubscriptionRequestViewSet,
    SubscriptionStatsView,
)

app_name = "billing"

urlpatterns = [
    path("plans/", PlanListView.as_view(), name="plan-list"),
    path("subscription/status/", SubscriptionStatusView.as_view(), name="subscription-status"),
    path("history/", BillingHistoryView.as_view(), name="billing-history"),
    path(
        "subscription-requests/",
        SubscriptionRequestSubmitView.as_view(),
        name="subscription-request-submit",
    ),
    path(
        "admin/subscription-requests/",
        SubscriptionRequestViewSet.as_view({"get": "list"}),
        name="admin-subscription-requests",
    ),
    path(
        "admin/subscription-requests/count/",
        PendingSubscriptionRequestCountView.as_view(),
        name="admin-subscription-requests-count",
    ),
    path(
        "admin/subscription-requests/<uuid:request_id>/",
        SubscriptionRequestViewSet.as_view({"get": "retrieve"}),
        name="admin-subscription-request-detail",
    ),
    path(
        "admin/subscription-requests/<uuid:request_id>/approve/",
        SubscriptionRequestApproveView.as_view(),
        name="admin-subscription-request-approve",
    ),
    path(
        "admin/subscription-requests/<uuid:request_id>/reject/",
        SubscriptionRequestRejectView.as_view(),
        name="admin-subscription-request-reject",
    ),
    path("admin/stats/", SubscriptionStatsView.as_view(), name="admin-subscription-stats"),
]
