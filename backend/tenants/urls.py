from django.urls import path

from .views import (
    AdminTenantNameChangeActionView,
    AdminTenantNameChangeViewSet,
    TenantBySubdomainView,
    TenantNameChangeRequestView,
    TenantNameChangeWithdrawView,
)

app_name = 'tenants'

urlpatterns = [
    path('by-subdomain/<str:subdomain>/', TenantBySubdomainView.as_view(), name='tenant-by-subdomain'),
    path('name-change-request/', TenantNameChangeRequestView.as_view(), name='name-change-request'),
    path(
        'name-change-request/<uuid:request_id>/cancel/',
        TenantNameChangeWithdrawView.as_view(),
        name='name-change-withdraw',
    ),
    path(
        'admin/name-changes/',
        AdminTenantNameChangeViewSet.as_view({'get': 'list'}),
        name='admin-name-changes',
    ),
    path(
        'admin/name-changes/<uuid:request_id>/',
        AdminTenantNameChangeViewSet.as_view({'get': 'retrieve'}),
        name='admin-name-change-detail',
    ),
    path(
        'admin/name-changes/<uuid:request_id>/approve/',
        AdminTenantNameChangeActionView.as_view(operation='approve'),
        name='admin-name-change-approve',
    ),
    path(
        'admin/name-changes/<uuid:request_id>/reject/',
        AdminTenantNameChangeActionView.as_view(operation='reject'),
        name='admin-name-change-reject',
    ),
    path(
        'admin/name-changes/<uuid:request_id>/cancel/',
        AdminTenantNameChangeActionView.as_view(operation='cancel'),
        name='admin-name-change-cancel',
    ),
]
